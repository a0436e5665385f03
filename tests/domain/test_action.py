"""Tests for the reference bulk action."""

from __future__ import annotations

import math
from decimal import Context, Decimal

import pytest

from cdt_metropolis.domain.action import action_coefficients, bulk_action
from cdt_metropolis.errors import ActionEvaluationError


def _context() -> Context:
    return Context(prec=78)


class TestActionCoefficients:
    def test_timelike_weight(self) -> None:
        timelike, _, _ = action_coefficients(1.0, 1.0, 1.0)
        assert timelike == pytest.approx(2.0 * math.pi)

    def test_known_values_at_unit_couplings(self) -> None:
        _, three_one, two_two = action_coefficients(1.0, 1.0, 1.0)
        expected_three_one = (
            -3.0 * math.asinh(1.0 / (math.sqrt(3.0) * math.sqrt(5.0)))
            - 3.0 * math.sqrt(5.0) * math.acos(3.0 / 5.0)
            - math.sqrt(4.0) / 12.0
        )
        expected_two_two = (
            2.0 * math.asinh(2.0 * math.sqrt(2.0) * math.sqrt(3.0) / 5.0)
            - 4.0 * math.acos(-1.0 / 5.0)
            - math.sqrt(6.0) / 12.0
        )
        assert three_one == pytest.approx(expected_three_one)
        assert two_two == pytest.approx(expected_two_two)

    def test_zero_alpha_has_no_timelike_weight(self) -> None:
        assert action_coefficients(0.0, 1.0, 1.0)[0] == 0.0

    def test_negative_alpha_rejected(self) -> None:
        with pytest.raises(ActionEvaluationError, match="alpha"):
            action_coefficients(-0.5, 1.0, 1.0)


class TestBulkAction:
    def test_returns_decimal(self) -> None:
        assert isinstance(bulk_action(1, 1, 1, 1.0, 1.0, 1.0, context=_context()), Decimal)

    def test_empty_configuration_has_zero_action(self) -> None:
        assert bulk_action(0, 0, 0, 1.0, 1.0, 1.0, context=_context()) == 0

    def test_matches_weighted_sum(self) -> None:
        c_tl, c_31, c_22 = action_coefficients(1.0, 1.0, 1.0)
        value = bulk_action(10, 20, 10, 1.0, 1.0, 1.0, context=_context())
        assert float(value) == pytest.approx(10 * c_tl + 20 * c_31 + 10 * c_22)

    def test_is_linear_in_counts(self) -> None:
        ctx = _context()
        base = bulk_action(10, 20, 10, 1.0, 1.0, 1.0, context=ctx)
        bumped = bulk_action(11, 20, 11, 1.0, 1.0, 1.0, context=ctx)
        c_tl, _, c_22 = action_coefficients(1.0, 1.0, 1.0)
        expected = ctx.add(Decimal(c_tl), Decimal(c_22))
        assert ctx.subtract(bumped, base) == expected

    def test_negative_counts_rejected(self) -> None:
        with pytest.raises(ActionEvaluationError, match="non-negative"):
            bulk_action(-1, 0, 0, 1.0, 1.0, 1.0, context=_context())
