"""Pachner move kinds, their topology deltas, and the counters they drive.

``MOVE_DELTAS`` is the single table consulted both when evaluating the
hypothetical action of a proposed move and when updating the configuration
counts after an accepted one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


def _strip_punctuation(raw: str) -> str:
    return raw.replace("(", "").replace(")", "").replace(",", "")


class MoveKind(Enum):
    """The five ergodic moves on a foliated 3D triangulation."""

    TWO_THREE = "(2,3)"
    THREE_TWO = "(3,2)"
    TWO_SIX = "(2,6)"
    SIX_TWO = "(6,2)"
    FOUR_FOUR = "(4,4)"

    @classmethod
    def parse(cls, raw: str) -> MoveKind:
        """Parse ``"23"``, ``"(2,3)"`` or ``"two_three"`` into a MoveKind."""
        token = _strip_punctuation(raw.strip().lower())
        for kind in cls:
            if token in (kind.name.lower(), _strip_punctuation(kind.value)):
                return kind
        valid = ", ".join(kind.value for kind in cls)
        raise ValueError(f"move kind must be one of {valid}: {raw!r}")


ALL_MOVE_KINDS: tuple[MoveKind, ...] = tuple(MoveKind)
"""All move kinds in canonical order."""

REFERENCE_MOVE_KINDS: tuple[MoveKind, ...] = (
    MoveKind.TWO_THREE,
    MoveKind.THREE_TWO,
    MoveKind.TWO_SIX,
)
"""Kinds seeded and sampled by default."""


@dataclass(frozen=True)
class MoveDelta:
    """Change in (N1_TL, N3_31, N3_22) caused by one accepted move."""

    timelike_edges: int
    three_one_simplices: int
    two_two_simplices: int

    @property
    def is_null(self) -> bool:
        return (
            self.timelike_edges == 0
            and self.three_one_simplices == 0
            and self.two_two_simplices == 0
        )


MOVE_DELTAS: dict[MoveKind, MoveDelta] = {
    MoveKind.TWO_THREE: MoveDelta(timelike_edges=1, three_one_simplices=0, two_two_simplices=1),
    MoveKind.THREE_TWO: MoveDelta(timelike_edges=-1, three_one_simplices=0, two_two_simplices=-1),
    MoveKind.TWO_SIX: MoveDelta(timelike_edges=2, three_one_simplices=4, two_two_simplices=0),
    MoveKind.SIX_TWO: MoveDelta(timelike_edges=-2, three_one_simplices=-4, two_two_simplices=0),
    MoveKind.FOUR_FOUR: MoveDelta(timelike_edges=0, three_one_simplices=0, two_two_simplices=0),
}


@dataclass(frozen=True)
class ConfigurationCounts:
    """Believed global topology: N1_TL, N3_31 (incl. (1,3)) and N3_22."""

    timelike_edges: int
    three_one_simplices: int
    two_two_simplices: int

    def __post_init__(self) -> None:
        if self.timelike_edges < 0 or self.three_one_simplices < 0 or self.two_two_simplices < 0:
            raise ValueError(f"configuration counts must be non-negative: {self}")

    @property
    def total_simplices(self) -> int:
        return self.three_one_simplices + self.two_two_simplices

    def can_apply(self, kind: MoveKind) -> bool:
        """Return True when applying ``kind``'s delta keeps every count non-negative."""
        delta = MOVE_DELTAS[kind]
        return (
            self.timelike_edges + delta.timelike_edges >= 0
            and self.three_one_simplices + delta.three_one_simplices >= 0
            and self.two_two_simplices + delta.two_two_simplices >= 0
        )

    def apply(self, kind: MoveKind) -> ConfigurationCounts:
        """Return the counts after one accepted ``kind`` move."""
        delta = MOVE_DELTAS[kind]
        if delta.is_null:
            return self
        return ConfigurationCounts(
            timelike_edges=self.timelike_edges + delta.timelike_edges,
            three_one_simplices=self.three_one_simplices + delta.three_one_simplices,
            two_two_simplices=self.two_two_simplices + delta.two_two_simplices,
        )

    def as_dict(self) -> dict[str, int]:
        return {
            "timelike_edges": self.timelike_edges,
            "three_one_simplices": self.three_one_simplices,
            "two_two_simplices": self.two_two_simplices,
        }


def _zero_counters() -> dict[MoveKind, int]:
    return {kind: 0 for kind in MoveKind}


@dataclass
class MoveStatistics:
    """Attempted and successful move counters per kind.

    Counters only ever increase. ``attempted[kind] >= successful[kind]``
    holds after every public mutation.
    """

    attempted: dict[MoveKind, int] = field(default_factory=_zero_counters)
    successful: dict[MoveKind, int] = field(default_factory=_zero_counters)

    @property
    def total_attempted(self) -> int:
        return sum(self.attempted.values())

    @property
    def total_successful(self) -> int:
        return sum(self.successful.values())

    def record_attempt(self, kind: MoveKind) -> None:
        self.attempted[kind] += 1

    def record_success(self, kind: MoveKind) -> None:
        """Count a success for an attempt that has already been recorded."""
        if self.successful[kind] >= self.attempted[kind]:
            raise ValueError(
                f"cannot record success for {kind.value}: "
                f"successful={self.successful[kind]} attempted={self.attempted[kind]}"
            )
        self.successful[kind] += 1

    def acceptance_rate(self, kind: MoveKind) -> float:
        attempted = self.attempted[kind]
        if attempted == 0:
            return 0.0
        return self.successful[kind] / attempted

    def copy(self) -> MoveStatistics:
        return MoveStatistics(attempted=dict(self.attempted), successful=dict(self.successful))

    def as_dict(self) -> dict[str, dict[str, int]]:
        return {
            "attempted": {kind.value: count for kind, count in self.attempted.items()},
            "successful": {kind.value: count for kind, count in self.successful.items()},
        }
