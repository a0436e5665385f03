"""Metropolis-Hastings acceptance engine.

A proposed move of kind ``m`` is accepted with probability ``a1 * a2`` where

    a1 = attempted[m] / sum(attempted)
    a2 = min(1, exp(S_new - S_current))

Both ratios are evaluated in one explicit :class:`decimal.Context` whose
precision is fixed at construction. ``exp`` of a small negative action
difference has to stay distinguishable from 1 over very long runs, which
binary doubles cannot guarantee.

``propose`` evaluates a2 against an immutable, versioned view of the state.
``commit`` re-validates that view, recomputes a1 from live statistics,
draws the trial value and, on acceptance, executes the move and applies
its counts delta as one unit under the engine lock.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from decimal import (
    ROUND_HALF_EVEN,
    Context,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    Overflow,
    Subnormal,
    Underflow,
)
from enum import Enum
from types import MappingProxyType
from typing import Generic, TypeVar

from cdt_metropolis.config.constants import PRECISION_BITS
from cdt_metropolis.config.types import RunConfig, SimulationParameters
from cdt_metropolis.domain.moves import (
    MOVE_DELTAS,
    ConfigurationCounts,
    MoveKind,
    MoveStatistics,
)
from cdt_metropolis.domain.triangulation import (
    ActionEvaluator,
    MovableSnapshot,
    MoveClassifier,
    MoveExecutor,
    RandomSource,
    TriangulationHandle,
)
from cdt_metropolis.errors import (
    BookkeepingDriftError,
    CollaboratorFailure,
    MetropolisError,
    MoveNotPossibleError,
    NumericalDegeneracyError,
    PreconditionViolation,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ONE = Decimal(1)


class Outcome(Enum):
    """Result of one move attempt."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    UNSUPPORTED = "unsupported"
    INFEASIBLE = "infeasible"


def make_context(precision_bits: int = PRECISION_BITS) -> Context:
    """Build the decimal context used for all acceptance arithmetic."""
    digits = RunConfig(precision_bits=precision_bits).precision_digits
    return Context(
        prec=digits,
        rounding=ROUND_HALF_EVEN,
        traps=[InvalidOperation, DivisionByZero, Overflow, Underflow, Subnormal],
    )


@dataclass(frozen=True)
class StateView:
    """Immutable snapshot of the state a proposal was evaluated against."""

    version: int
    counts: ConfigurationCounts
    attempted: MappingProxyType[MoveKind, int]

    @property
    def total_attempted(self) -> int:
        return sum(self.attempted.values())


@dataclass
class MetropolisState:
    """Mutable run state shared by the acceptance engine and pass driver.

    ``version`` increases whenever the configuration counts change, so a
    proposal evaluated against an older version is known to be stale.
    """

    counts: ConfigurationCounts
    snapshot: MovableSnapshot
    statistics: MoveStatistics = field(default_factory=MoveStatistics)
    version: int = 0

    def view(self) -> StateView:
        return StateView(
            version=self.version,
            counts=self.counts,
            attempted=MappingProxyType(dict(self.statistics.attempted)),
        )


@dataclass(frozen=True)
class Proposal:
    """A move kind together with its dynamical ratio at a given state version.

    ``possible`` is False when the snapshot offers no eligible element or the
    move would drive a count negative; ``a2`` is then not evaluated.
    """

    kind: MoveKind
    version: int
    a2: Decimal | None
    possible: bool


class AcceptanceEngine(Generic[T]):
    """Decides, executes and books individual Metropolis moves."""

    def __init__(
        self,
        params: SimulationParameters,
        state: MetropolisState,
        triangulation: TriangulationHandle[T],
        classifier: MoveClassifier[T],
        executor: MoveExecutor[T],
        action: ActionEvaluator,
        rng: RandomSource,
        *,
        precision_bits: int = PRECISION_BITS,
        refresh_after_accept: bool = False,
        verify_counts: bool = True,
    ) -> None:
        self.params = params
        self.refresh_after_accept = refresh_after_accept
        self.verify_counts = verify_counts
        self.state = state
        self._triangulation = triangulation
        self._classifier = classifier
        self._executor = executor
        self._action = action
        self._rng = rng
        self._context = make_context(precision_bits)
        self._lock = threading.RLock()

    @property
    def context(self) -> Context:
        """A private copy of the working-precision context."""
        return self._context.copy()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def release_triangulation(self) -> T:
        """Hand the triangulation back; the engine cannot touch it afterwards."""
        with self._lock:
            return self._triangulation.release()

    # ------------------------------------------------------------------
    # Ratios
    # ------------------------------------------------------------------

    def combinatorial_ratio(self, kind: MoveKind, view: StateView | None = None) -> Decimal:
        """Return ``attempted[kind] / total attempted`` at working precision."""
        if view is None:
            view = self.snapshot_view()
        total = view.total_attempted
        if total == 0:
            raise PreconditionViolation(
                "combinatorial ratio requested before any move was attempted",
                move_kind=kind,
                counts=view.counts,
            )
        return self.context.divide(Decimal(view.attempted[kind]), Decimal(total))

    def dynamical_ratio(self, kind: MoveKind, view: StateView | None = None) -> Decimal:
        """Return ``min(1, exp(S_new - S_current))`` at working precision.

        Kinds with a null counts delta return exactly 1 without evaluating the
        action. Asking for a move that would drive a count negative is a
        :class:`PreconditionViolation`; :meth:`propose` never does so.
        """
        if MOVE_DELTAS[kind].is_null:
            return ONE
        if view is None:
            view = self.snapshot_view()
        counts = view.counts
        if not counts.can_apply(kind):
            raise PreconditionViolation(
                "dynamical ratio requested for a move that would drive counts negative",
                move_kind=kind,
                counts=counts,
            )
        context = self.context
        current = self._evaluate_action(kind, counts, context)
        proposed = self._evaluate_action(kind, counts.apply(kind), context)
        try:
            delta = context.subtract(proposed, current)
        except InvalidOperation as exc:
            raise NumericalDegeneracyError(
                f"action difference is undefined ({proposed} - {current})",
                move_kind=kind,
                counts=counts,
            ) from exc
        if not delta.is_finite():
            raise NumericalDegeneracyError(
                f"action difference is not finite: {delta}", move_kind=kind, counts=counts
            )
        if delta >= 0:
            return ONE
        try:
            a2 = context.exp(delta)
        except Subnormal as exc:
            raise NumericalDegeneracyError(
                f"exp({delta}) is below the working precision of {context.prec} digits",
                move_kind=kind,
                counts=counts,
            ) from exc
        if a2.is_zero():
            raise NumericalDegeneracyError(
                f"exp({delta}) rounded to zero", move_kind=kind, counts=counts
            )
        return a2

    def _evaluate_action(
        self, kind: MoveKind, counts: ConfigurationCounts, context: Context
    ) -> Decimal:
        try:
            value = self._action(
                counts.timelike_edges,
                counts.three_one_simplices,
                counts.two_two_simplices,
                self.params.alpha,
                self.params.k,
                self.params.lambda_,
                context=context,
            )
        except MetropolisError:
            raise
        except Exception as exc:
            raise CollaboratorFailure(
                f"action evaluator failed: {exc}", move_kind=kind, counts=counts
            ) from exc
        if not isinstance(value, Decimal):
            value = context.create_decimal_from_float(float(value))
        return value

    # ------------------------------------------------------------------
    # Proposals
    # ------------------------------------------------------------------

    def snapshot_view(self) -> StateView:
        with self._lock:
            return self.state.view()

    def propose(self, kind: MoveKind) -> Proposal:
        """Evaluate the dynamical ratio for ``kind`` against the current state.

        Safe to call from several threads at once; only reads shared state.
        """
        with self._lock:
            view = self.state.view()
            has_eligible = bool(self.state.snapshot.eligible(kind))
        possible = has_eligible and view.counts.can_apply(kind)
        a2 = self.dynamical_ratio(kind, view) if possible else None
        return Proposal(kind=kind, version=view.version, a2=a2, possible=possible)

    def commit(self, proposal: Proposal) -> Outcome:
        """Decide ``proposal`` and apply its side effects atomically."""
        with self._lock:
            if proposal.version != self.state.version:
                logger.debug(
                    "re-evaluating stale %s proposal (v%d -> v%d)",
                    proposal.kind.value,
                    proposal.version,
                    self.state.version,
                )
                proposal = self.propose(proposal.kind)
            kind = proposal.kind
            statistics = self.state.statistics
            if not proposal.possible or proposal.a2 is None:
                statistics.record_attempt(kind)
                logger.debug(
                    "%s rejected: no eligible element or counts would go negative at %s",
                    kind.value,
                    self.state.counts,
                )
                return Outcome.REJECTED

            trial = Decimal(self._rng.uniform01())
            a1 = self.combinatorial_ratio(kind, self.state.view())
            try:
                probability = self.context.multiply(a1, proposal.a2)
            except Subnormal as exc:
                raise NumericalDegeneracyError(
                    f"a1*a2 = {a1}*{proposal.a2} is below the working precision",
                    move_kind=kind,
                    counts=self.state.counts,
                ) from exc
            accepted = trial <= probability
            logger.debug(
                "%s trial=%s a1=%s a2=%s a1*a2=%s -> %s",
                kind.value,
                trial,
                a1,
                proposal.a2,
                probability,
                "accepted" if accepted else "rejected",
            )
            if not accepted:
                statistics.record_attempt(kind)
                return Outcome.REJECTED
            if not self._executor.supports(kind):
                statistics.record_attempt(kind)
                logger.warning("%s move accepted but unsupported by executor", kind.value)
                return Outcome.UNSUPPORTED
            return self.apply_move(kind)

    def attempt_move(self, kind: MoveKind) -> Outcome:
        """Propose and immediately commit one ``kind`` move."""
        return self.commit(self.propose(kind))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def apply_move(self, kind: MoveKind) -> Outcome:
        """Execute ``kind`` unconditionally and book it as a success.

        The executor records the attempt itself; the counts delta and the
        success are applied only after it returns. A move the executor finds
        geometrically impossible changes nothing else and yields
        :attr:`Outcome.INFEASIBLE`.
        """
        with self._lock:
            statistics = self.state.statistics
            attempted_before = statistics.attempted[kind]
            eligible = self.state.snapshot.eligible(kind)
            try:
                updated = self._executor.execute(
                    kind, self._triangulation.get(), eligible, statistics
                )
            except MetropolisError:
                raise
            except MoveNotPossibleError as exc:
                self._check_recorded(kind, attempted_before)
                logger.debug("%s move not possible: %s", kind.value, exc)
                return Outcome.INFEASIBLE
            except Exception as exc:
                raise CollaboratorFailure(
                    f"{kind.value} move failed: {exc}", move_kind=kind, counts=self.state.counts
                ) from exc
            self._check_recorded(kind, attempted_before)
            try:
                counts = self.state.counts.apply(kind)
                statistics.record_success(kind)
            except ValueError as exc:
                raise BookkeepingDriftError(
                    f"cannot book {kind.value} move: {exc}",
                    move_kind=kind,
                    counts=self.state.counts,
                ) from exc
            self._triangulation.release()
            self._triangulation = TriangulationHandle(updated)
            self.state.counts = counts
            self.state.version += 1
            if self.refresh_after_accept:
                self.refresh_snapshot(verify=self.verify_counts)
            return Outcome.ACCEPTED

    def _check_recorded(self, kind: MoveKind, attempted_before: int) -> None:
        recorded = self.state.statistics.attempted[kind] - attempted_before
        if recorded != 1:
            raise CollaboratorFailure(
                f"executor recorded {recorded} attempts for one {kind.value} move",
                move_kind=kind,
                counts=self.state.counts,
            )

    def refresh_snapshot(self, *, verify: bool = True) -> MovableSnapshot:
        """Re-classify the triangulation and optionally check the counts."""
        with self._lock:
            try:
                snapshot = MovableSnapshot.classify(self._classifier, self._triangulation.get())
            except MetropolisError:
                raise
            except Exception as exc:
                raise CollaboratorFailure(
                    f"move classifier failed: {exc}", counts=self.state.counts
                ) from exc
            if verify and snapshot.counts() != self.state.counts:
                raise BookkeepingDriftError(
                    f"classified counts {snapshot.counts().as_dict()} differ from tracked counts",
                    counts=self.state.counts,
                )
            self.state.snapshot = snapshot
            return snapshot
