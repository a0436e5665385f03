"""Collaborator contracts around the triangulation.

The engine never inspects a triangulation directly. It talks to a
classifier (which elements are movable), an executor (perform one move),
an action evaluator and a random source, all described here as protocols,
and it holds the triangulation only through a :class:`TriangulationHandle`.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from dataclasses import dataclass
from decimal import Context, Decimal
from random import Random
from typing import Generic, NamedTuple, Protocol, TypeVar, runtime_checkable

from cdt_metropolis.domain.moves import ConfigurationCounts, MoveKind, MoveStatistics
from cdt_metropolis.errors import HandleReleasedError

T = TypeVar("T")


class SimplexClasses(NamedTuple):
    """Movable simplices grouped by how their vertices straddle two slices."""

    three_one: Sequence[Hashable]
    two_two: Sequence[Hashable]
    one_three: Sequence[Hashable]


class EdgeClasses(NamedTuple):
    """Movable timelike edges plus the number of spacelike edges."""

    timelike: Sequence[Hashable]
    spacelike_count: int


@runtime_checkable
class MoveClassifier(Protocol[T]):
    def classify_simplices(self, triangulation: T) -> SimplexClasses: ...

    def classify_edges(self, triangulation: T) -> EdgeClasses: ...


@runtime_checkable
class MoveExecutor(Protocol[T]):
    """Performs one Pachner move.

    ``execute`` must call ``statistics.record_attempt(kind)`` exactly once per
    invocation, whether or not the move turns out to be geometrically
    possible, and returns the (possibly new) triangulation object.
    """

    def supports(self, kind: MoveKind) -> bool: ...

    def execute(
        self,
        kind: MoveKind,
        triangulation: T,
        eligible: Sequence[Hashable],
        statistics: MoveStatistics,
    ) -> T: ...


@runtime_checkable
class ActionEvaluator(Protocol):
    def __call__(
        self,
        timelike_edges: int,
        three_one_simplices: int,
        two_two_simplices: int,
        alpha: float,
        k: float,
        lambda_: float,
        *,
        context: Context,
    ) -> Decimal: ...


@runtime_checkable
class RandomSource(Protocol):
    def uniform01(self) -> float: ...

    def uniform_int(self, lo: int, hi: int) -> int: ...


class SeededRandomSource:
    """``RandomSource`` backed by a seeded :class:`random.Random`."""

    def __init__(self, seed: int = 0) -> None:
        self._rng = Random(seed)

    def uniform01(self) -> float:
        return self._rng.random()

    def uniform_int(self, lo: int, hi: int) -> int:
        """Return an integer in the closed range ``[lo, hi]``."""
        return self._rng.randint(lo, hi)


# Attribute of MovableSnapshot consulted for each kind's eligible elements.
ELIGIBILITY: dict[MoveKind, str] = {
    MoveKind.TWO_THREE: "two_two",
    MoveKind.THREE_TWO: "timelike_edges",
    MoveKind.TWO_SIX: "one_three",
    MoveKind.SIX_TWO: "three_one",
    MoveKind.FOUR_FOUR: "two_two",
}


@dataclass(frozen=True)
class MovableSnapshot:
    """Cached view of the elements eligible for each move kind."""

    three_one: tuple[Hashable, ...]
    two_two: tuple[Hashable, ...]
    one_three: tuple[Hashable, ...]
    timelike_edges: tuple[Hashable, ...]
    spacelike_edge_count: int

    @classmethod
    def classify(cls, classifier: MoveClassifier[T], triangulation: T) -> MovableSnapshot:
        """Run both classification passes and freeze the result."""
        simplices = classifier.classify_simplices(triangulation)
        edges = classifier.classify_edges(triangulation)
        return cls(
            three_one=tuple(simplices.three_one),
            two_two=tuple(simplices.two_two),
            one_three=tuple(simplices.one_three),
            timelike_edges=tuple(edges.timelike),
            spacelike_edge_count=edges.spacelike_count,
        )

    def eligible(self, kind: MoveKind) -> tuple[Hashable, ...]:
        return getattr(self, ELIGIBILITY[kind])

    def counts(self) -> ConfigurationCounts:
        """Counts derived from cardinalities; (3,1) and (1,3) are combined."""
        return ConfigurationCounts(
            timelike_edges=len(self.timelike_edges),
            three_one_simplices=len(self.three_one) + len(self.one_three),
            two_two_simplices=len(self.two_two),
        )

    def sizes(self) -> dict[str, int]:
        return {
            "three_one": len(self.three_one),
            "two_two": len(self.two_two),
            "one_three": len(self.one_three),
            "timelike_edges": len(self.timelike_edges),
            "spacelike_edges": self.spacelike_edge_count,
        }


class TriangulationHandle(Generic[T]):
    """Single-owner handle to a triangulation.

    ``release`` hands the triangulation to a new owner and invalidates this
    handle; any later ``get`` or ``release`` raises :class:`HandleReleasedError`.
    """

    __slots__ = ("_value", "_released")

    def __init__(self, value: T) -> None:
        self._value: T | None = value
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def get(self) -> T:
        if self._released:
            raise HandleReleasedError("triangulation handle used after release")
        return self._value  # type: ignore[return-value]

    def release(self) -> T:
        value = self.get()
        self._value = None
        self._released = True
        return value

    def __repr__(self) -> str:
        state = "released" if self._released else type(self._value).__name__
        return f"TriangulationHandle({state})"
