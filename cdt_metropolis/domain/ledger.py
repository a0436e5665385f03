"""In-memory reference triangulation tracked at the level of element ids.

A ledger knows which (3,1), (1,3) and (2,2) simplices and which timelike
edges exist, plus how many spacelike edges there are, but not how they are
glued together. Its executor applies each Pachner move's effect on those
collections, which is all the acceptance engine can observe. It backs the
CLI and the test-suite; a geometric triangulation plugs in through the same
protocols.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass

from cdt_metropolis.domain.moves import ConfigurationCounts, MoveKind, MoveStatistics
from cdt_metropolis.domain.triangulation import (
    ELIGIBILITY,
    EdgeClasses,
    RandomSource,
    SimplexClasses,
)
from cdt_metropolis.errors import MoveNotPossibleError

logger = logging.getLogger(__name__)

SPACELIKE_EDGES_PER_TWO_SIX = 3
"""Spacelike edges created by a (2,6) move (and removed by a (6,2))."""


@dataclass
class LedgerTriangulation:
    """Element-id bookkeeping for a foliated triangulation."""

    three_one: list[int]
    one_three: list[int]
    two_two: list[int]
    timelike_edges: list[int]
    spacelike_edges: int
    next_id: int

    @classmethod
    def create(
        cls,
        *,
        three_one: int,
        one_three: int,
        two_two: int,
        timelike_edges: int,
        spacelike_edges: int = 0,
    ) -> LedgerTriangulation:
        """Build a ledger with sequentially numbered elements."""
        sizes = (three_one, one_three, two_two, timelike_edges, spacelike_edges)
        if min(sizes) < 0:
            raise ValueError(f"ledger sizes must be non-negative: {sizes}")
        next_id = 0
        buckets: list[list[int]] = []
        for size in sizes[:4]:
            buckets.append(list(range(next_id, next_id + size)))
            next_id += size
        return cls(
            three_one=buckets[0],
            one_three=buckets[1],
            two_two=buckets[2],
            timelike_edges=buckets[3],
            spacelike_edges=spacelike_edges,
            next_id=next_id,
        )

    def counts(self) -> ConfigurationCounts:
        return ConfigurationCounts(
            timelike_edges=len(self.timelike_edges),
            three_one_simplices=len(self.three_one) + len(self.one_three),
            two_two_simplices=len(self.two_two),
        )

    def new_ids(self, n: int) -> list[int]:
        ids = list(range(self.next_id, self.next_id + n))
        self.next_id += n
        return ids


class LedgerClassifier:
    """Every element of a ledger is movable."""

    def classify_simplices(self, triangulation: LedgerTriangulation) -> SimplexClasses:
        return SimplexClasses(
            three_one=tuple(triangulation.three_one),
            two_two=tuple(triangulation.two_two),
            one_three=tuple(triangulation.one_three),
        )

    def classify_edges(self, triangulation: LedgerTriangulation) -> EdgeClasses:
        return EdgeClasses(
            timelike=tuple(triangulation.timelike_edges),
            spacelike_count=triangulation.spacelike_edges,
        )


class LedgerExecutor:
    """Applies Pachner moves to a :class:`LedgerTriangulation`.

    The target element is drawn uniformly from the snapshot entries that
    still exist in the ledger, so a stale snapshot narrows the choice but
    never produces a move against a deleted element.
    """

    def __init__(
        self,
        rng: RandomSource,
        supported: Sequence[MoveKind] | None = None,
    ) -> None:
        self._rng = rng
        self._supported = frozenset(MoveKind if supported is None else supported)
        self._moves: dict[MoveKind, Callable[[LedgerTriangulation, Hashable], None]] = {
            MoveKind.TWO_THREE: self._two_three,
            MoveKind.THREE_TWO: self._three_two,
            MoveKind.TWO_SIX: self._two_six,
            MoveKind.SIX_TWO: self._six_two,
            MoveKind.FOUR_FOUR: self._four_four,
        }

    def supports(self, kind: MoveKind) -> bool:
        return kind in self._supported

    def execute(
        self,
        kind: MoveKind,
        triangulation: LedgerTriangulation,
        eligible: Sequence[Hashable],
        statistics: MoveStatistics,
    ) -> LedgerTriangulation:
        statistics.record_attempt(kind)
        if not self.supports(kind):
            raise MoveNotPossibleError(f"{kind.value} move is not enabled on this executor")
        present = set(getattr(triangulation, ELIGIBILITY[kind]))
        candidates = [element for element in eligible if element in present]
        if not candidates:
            raise MoveNotPossibleError(f"no eligible element left for a {kind.value} move")
        target = candidates[self._rng.uniform_int(0, len(candidates) - 1)]
        self._moves[kind](triangulation, target)
        logger.debug("%s move on element %s", kind.value, target)
        return triangulation

    # -- individual moves --------------------------------------------------

    def _two_three(self, triangulation: LedgerTriangulation, target: Hashable) -> None:
        # Two (2,2)-adjacent cells become three sharing a new timelike edge.
        simplex_id, edge_id = triangulation.new_ids(2)
        triangulation.two_two.append(simplex_id)
        triangulation.timelike_edges.append(edge_id)

    def _three_two(self, triangulation: LedgerTriangulation, target: Hashable) -> None:
        if not triangulation.two_two:
            raise MoveNotPossibleError("(3,2) move needs a (2,2) simplex to remove")
        triangulation.timelike_edges.remove(target)  # type: ignore[arg-type]
        triangulation.two_two.pop()

    def _two_six(self, triangulation: LedgerTriangulation, target: Hashable) -> None:
        new = triangulation.new_ids(6)
        triangulation.three_one.extend(new[0:2])
        triangulation.one_three.extend(new[2:4])
        triangulation.timelike_edges.extend(new[4:6])
        triangulation.spacelike_edges += SPACELIKE_EDGES_PER_TWO_SIX

    def _six_two(self, triangulation: LedgerTriangulation, target: Hashable) -> None:
        if (
            len(triangulation.three_one) < 2
            or len(triangulation.one_three) < 2
            or len(triangulation.timelike_edges) < 2
            or triangulation.spacelike_edges < SPACELIKE_EDGES_PER_TWO_SIX
        ):
            raise MoveNotPossibleError("(6,2) move needs a vertex of degree six")
        triangulation.three_one.remove(target)  # type: ignore[arg-type]
        triangulation.three_one.pop()
        del triangulation.one_three[-2:]
        del triangulation.timelike_edges[-2:]
        triangulation.spacelike_edges -= SPACELIKE_EDGES_PER_TWO_SIX

    def _four_four(self, triangulation: LedgerTriangulation, target: Hashable) -> None:
        # Re-glues the four cells around a spacelike edge; counts are unchanged.
        index = triangulation.two_two.index(target)  # type: ignore[arg-type]
        triangulation.two_two[index] = triangulation.new_ids(1)[0]
