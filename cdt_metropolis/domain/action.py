"""Bulk action of a foliated 3D triangulation.

The discretised Einstein-Hilbert action depends on the triangulation only
through N1_TL, N3_31 and N3_22:

    S = 2*pi*k*sqrt(alpha)*N1_TL + c31*N3_31 + c22*N3_22

with

    c31 = -3k*asinh(1/(sqrt(3)*sqrt(4a+1))) - 3k*sqrt(4a+1)*acos((2a+1)/(4a+1))
          - (lambda/12)*sqrt(3a+1)
    c22 = 2k*asinh(2*sqrt(2)*sqrt(2a+1)/(4a+1)) - 4k*sqrt(a)*acos(-1/(4a+1))
          - (lambda/12)*sqrt(4a+2)

The per-element coefficients depend only on the couplings and are computed
once in double precision. The count-weighted sum is taken in the caller's
decimal context, so the difference between two nearby configurations is
exact to the working precision.
"""

from __future__ import annotations

import math
from decimal import Context, Decimal
from functools import lru_cache

from cdt_metropolis.errors import ActionEvaluationError


@lru_cache(maxsize=64)
def action_coefficients(alpha: float, k: float, lambda_: float) -> tuple[float, float, float]:
    """Return (timelike edge, (3,1) simplex, (2,2) simplex) action weights."""
    if alpha < 0:
        raise ActionEvaluationError(f"bulk action requires alpha >= 0, got {alpha}")
    four_a_plus_one = 4.0 * alpha + 1.0
    timelike = 2.0 * math.pi * k * math.sqrt(alpha)
    three_one = (
        -3.0 * k * math.asinh(1.0 / (math.sqrt(3.0) * math.sqrt(four_a_plus_one)))
        - 3.0 * k * math.sqrt(four_a_plus_one) * math.acos((2.0 * alpha + 1.0) / four_a_plus_one)
        - lambda_ / 12.0 * math.sqrt(3.0 * alpha + 1.0)
    )
    two_two = (
        2.0 * k * math.asinh(2.0 * math.sqrt(2.0) * math.sqrt(2.0 * alpha + 1.0) / four_a_plus_one)
        - 4.0 * k * math.sqrt(alpha) * math.acos(-1.0 / four_a_plus_one)
        - lambda_ / 12.0 * math.sqrt(4.0 * alpha + 2.0)
    )
    return timelike, three_one, two_two


def bulk_action(
    timelike_edges: int,
    three_one_simplices: int,
    two_two_simplices: int,
    alpha: float,
    k: float,
    lambda_: float,
    *,
    context: Context,
) -> Decimal:
    """Evaluate the bulk action for the given counts in ``context``."""
    if min(timelike_edges, three_one_simplices, two_two_simplices) < 0:
        raise ActionEvaluationError(
            "bulk action requires non-negative counts, got "
            f"({timelike_edges}, {three_one_simplices}, {two_two_simplices})"
        )
    c_timelike, c_three_one, c_two_two = action_coefficients(alpha, k, lambda_)
    terms = (
        context.multiply(Decimal(timelike_edges), Decimal(c_timelike)),
        context.multiply(Decimal(three_one_simplices), Decimal(c_three_one)),
        context.multiply(Decimal(two_two_simplices), Decimal(c_two_two)),
    )
    total = Decimal(0)
    for term in terms:
        total = context.add(total, term)
    return total
