"""Exception types raised by the Metropolis engine and its collaborators.

Engine-side failures derive from :class:`MetropolisError` and carry the
context needed to reproduce them (move kind, pass, iteration, counts).
Collaborator-side failures derive from :class:`TriangulationError`; the
engine wraps those in :class:`CollaboratorFailure` before they reach the
caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cdt_metropolis.domain.moves import ConfigurationCounts, MoveKind

__all__ = [
    "ActionEvaluationError",
    "BookkeepingDriftError",
    "CollaboratorFailure",
    "HandleReleasedError",
    "MetropolisError",
    "MoveNotPossibleError",
    "NumericalDegeneracyError",
    "PreconditionViolation",
    "TriangulationError",
    "UnsupportedMoveError",
]


class MetropolisError(Exception):
    """Base class for failures surfaced by the acceptance engine or pass driver."""

    def __init__(
        self,
        message: str,
        *,
        move_kind: MoveKind | None = None,
        pass_index: int | None = None,
        iteration: int | None = None,
        counts: ConfigurationCounts | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.move_kind = move_kind
        self.pass_index = pass_index
        self.iteration = iteration
        self.counts = counts
        # Set by the pass driver when a failed run hands the triangulation back.
        self.triangulation: object | None = None

    def with_context(
        self,
        *,
        move_kind: MoveKind | None = None,
        pass_index: int | None = None,
        iteration: int | None = None,
        counts: ConfigurationCounts | None = None,
    ) -> MetropolisError:
        """Fill context fields that are still unset and return ``self``."""
        if self.move_kind is None:
            self.move_kind = move_kind
        if self.pass_index is None:
            self.pass_index = pass_index
        if self.iteration is None:
            self.iteration = iteration
        if self.counts is None:
            self.counts = counts
        return self

    def __str__(self) -> str:
        parts = [self.message]
        if self.move_kind is not None:
            parts.append(f"move={self.move_kind.value}")
        if self.pass_index is not None:
            parts.append(f"pass={self.pass_index}")
        if self.iteration is not None:
            parts.append(f"iteration={self.iteration}")
        if self.counts is not None:
            parts.append(
                "counts=(N1_TL={}, N3_31={}, N3_22={})".format(
                    self.counts.timelike_edges,
                    self.counts.three_one_simplices,
                    self.counts.two_two_simplices,
                )
            )
        return " | ".join(parts)


class PreconditionViolation(MetropolisError):
    """A programming-contract breach; not recoverable at runtime."""


class HandleReleasedError(PreconditionViolation):
    """A triangulation handle was used after its ownership was transferred."""


class CollaboratorFailure(MetropolisError):
    """A classifier, executor or action evaluator could not proceed."""


class BookkeepingDriftError(CollaboratorFailure):
    """Incrementally maintained counts disagree with a fresh classification."""


class NumericalDegeneracyError(MetropolisError):
    """The action difference cannot be exponentiated meaningfully."""


class UnsupportedMoveError(MetropolisError):
    """The configured executor has no implementation for a move kind."""


class TriangulationError(Exception):
    """Base class for errors raised inside triangulation collaborators."""


class MoveNotPossibleError(TriangulationError):
    """No eligible element allows the requested move."""


class ActionEvaluationError(TriangulationError):
    """The bulk action is undefined for the given couplings or counts."""
