"""Tests for move kinds, the Table 1 deltas, counts and move statistics."""

from __future__ import annotations

import pytest

from cdt_metropolis.domain.moves import (
    ALL_MOVE_KINDS,
    MOVE_DELTAS,
    ConfigurationCounts,
    MoveDelta,
    MoveKind,
    MoveStatistics,
)


class TestMoveKind:
    @pytest.mark.parametrize("raw", ["23", "(2,3)", "two_three", " TWO_THREE "])
    def test_parse_accepts_several_spellings(self, raw: str) -> None:
        assert MoveKind.parse(raw) is MoveKind.TWO_THREE

    def test_parse_rejects_unknown(self) -> None:
        with pytest.raises(ValueError, match="move kind"):
            MoveKind.parse("(5,5)")

    def test_all_kinds_in_canonical_order(self) -> None:
        assert [kind.value for kind in ALL_MOVE_KINDS] == [
            "(2,3)",
            "(3,2)",
            "(2,6)",
            "(6,2)",
            "(4,4)",
        ]


class TestMoveDeltas:
    def test_table_one_rows(self) -> None:
        assert MOVE_DELTAS[MoveKind.TWO_THREE] == MoveDelta(1, 0, 1)
        assert MOVE_DELTAS[MoveKind.THREE_TWO] == MoveDelta(-1, 0, -1)
        assert MOVE_DELTAS[MoveKind.TWO_SIX] == MoveDelta(2, 4, 0)
        assert MOVE_DELTAS[MoveKind.SIX_TWO] == MoveDelta(-2, -4, 0)
        assert MOVE_DELTAS[MoveKind.FOUR_FOUR] == MoveDelta(0, 0, 0)

    def test_every_kind_has_a_delta(self) -> None:
        assert set(MOVE_DELTAS) == set(MoveKind)

    def test_inverse_moves_cancel(self) -> None:
        for forward, backward in (
            (MoveKind.TWO_THREE, MoveKind.THREE_TWO),
            (MoveKind.TWO_SIX, MoveKind.SIX_TWO),
        ):
            a, b = MOVE_DELTAS[forward], MOVE_DELTAS[backward]
            assert a.timelike_edges + b.timelike_edges == 0
            assert a.three_one_simplices + b.three_one_simplices == 0
            assert a.two_two_simplices + b.two_two_simplices == 0

    def test_only_four_four_is_null(self) -> None:
        assert [kind for kind, delta in MOVE_DELTAS.items() if delta.is_null] == [
            MoveKind.FOUR_FOUR
        ]


class TestConfigurationCounts:
    def test_negative_counts_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            ConfigurationCounts(timelike_edges=-1, three_one_simplices=0, two_two_simplices=0)

    def test_total_simplices(self) -> None:
        counts = ConfigurationCounts(timelike_edges=7, three_one_simplices=20, two_two_simplices=10)
        assert counts.total_simplices == 30

    @pytest.mark.parametrize("kind", list(MoveKind))
    def test_apply_adds_exactly_the_delta(self, kind: MoveKind) -> None:
        before = ConfigurationCounts(timelike_edges=10, three_one_simplices=20, two_two_simplices=10)
        after = before.apply(kind)
        delta = MOVE_DELTAS[kind]
        assert after.timelike_edges - before.timelike_edges == delta.timelike_edges
        assert after.three_one_simplices - before.three_one_simplices == delta.three_one_simplices
        assert after.two_two_simplices - before.two_two_simplices == delta.two_two_simplices

    def test_can_apply_guards_negative_results(self) -> None:
        counts = ConfigurationCounts(timelike_edges=1, three_one_simplices=3, two_two_simplices=0)
        assert not counts.can_apply(MoveKind.THREE_TWO)
        assert not counts.can_apply(MoveKind.SIX_TWO)
        assert counts.can_apply(MoveKind.TWO_THREE)
        assert counts.can_apply(MoveKind.FOUR_FOUR)

    def test_as_dict(self) -> None:
        counts = ConfigurationCounts(timelike_edges=1, three_one_simplices=2, two_two_simplices=3)
        assert counts.as_dict() == {
            "timelike_edges": 1,
            "three_one_simplices": 2,
            "two_two_simplices": 3,
        }


class TestMoveStatistics:
    def test_starts_at_zero_for_every_kind(self) -> None:
        stats = MoveStatistics()
        assert stats.total_attempted == 0
        assert set(stats.attempted) == set(MoveKind)
        assert set(stats.successful) == set(MoveKind)

    def test_success_requires_a_prior_attempt(self) -> None:
        stats = MoveStatistics()
        with pytest.raises(ValueError, match="cannot record success"):
            stats.record_success(MoveKind.TWO_SIX)

    def test_attempted_never_below_successful(self) -> None:
        stats = MoveStatistics()
        stats.record_attempt(MoveKind.TWO_THREE)
        stats.record_success(MoveKind.TWO_THREE)
        with pytest.raises(ValueError):
            stats.record_success(MoveKind.TWO_THREE)
        assert stats.attempted[MoveKind.TWO_THREE] == stats.successful[MoveKind.TWO_THREE] == 1

    def test_acceptance_rate(self) -> None:
        stats = MoveStatistics()
        assert stats.acceptance_rate(MoveKind.THREE_TWO) == 0.0
        for _ in range(4):
            stats.record_attempt(MoveKind.THREE_TWO)
        stats.record_success(MoveKind.THREE_TWO)
        assert stats.acceptance_rate(MoveKind.THREE_TWO) == pytest.approx(0.25)

    def test_copy_is_independent(self) -> None:
        stats = MoveStatistics()
        snapshot = stats.copy()
        stats.record_attempt(MoveKind.FOUR_FOUR)
        assert snapshot.attempted[MoveKind.FOUR_FOUR] == 0

    def test_as_dict_uses_kind_values(self) -> None:
        stats = MoveStatistics()
        stats.record_attempt(MoveKind.SIX_TWO)
        assert stats.as_dict()["attempted"]["(6,2)"] == 1
        assert stats.as_dict()["successful"]["(6,2)"] == 0
