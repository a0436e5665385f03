"""Pass driver: seeds the move statistics and runs Metropolis passes.

One run takes ownership of a triangulation, classifies it once to obtain
exact starting counts, seeds every configured move kind with one forced
move, then performs ``passes`` sweeps of randomly chosen move attempts,
reporting a :class:`Checkpoint` every ``checkpoint_interval`` passes.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Generic, TypeVar

from cdt_metropolis.config.types import RunConfig, SimulationParameters, SnapshotRefresh
from cdt_metropolis.domain.action import bulk_action
from cdt_metropolis.domain.moves import ConfigurationCounts, MoveKind, MoveStatistics
from cdt_metropolis.domain.triangulation import (
    ActionEvaluator,
    MovableSnapshot,
    MoveClassifier,
    MoveExecutor,
    RandomSource,
    SeededRandomSource,
    TriangulationHandle,
)
from cdt_metropolis.errors import (
    CollaboratorFailure,
    MetropolisError,
    PreconditionViolation,
    UnsupportedMoveError,
)
from cdt_metropolis.simulation.acceptance import AcceptanceEngine, MetropolisState, Outcome
from cdt_metropolis.simulation.parallel import ParallelProposalRunner

logger = logging.getLogger(__name__)

T = TypeVar("T")

CheckpointHook = Callable[["Checkpoint"], None]


@dataclass(frozen=True)
class Checkpoint:
    """Counts and move statistics reported after a checkpoint pass.

    The mappings are read-only copies; hooks cannot alter the run through them.
    """

    pass_index: int
    counts: ConfigurationCounts
    attempted: Mapping[MoveKind, int]
    successful: Mapping[MoveKind, int]
    snapshot_sizes: Mapping[str, int]

    def __post_init__(self) -> None:
        for name in ("attempted", "successful", "snapshot_sizes"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    @property
    def total_attempted(self) -> int:
        return sum(self.attempted.values())


@dataclass
class MetropolisResult(Generic[T]):
    """Outcome of :meth:`Metropolis.run`; ``triangulation`` is the sole owner."""

    triangulation: TriangulationHandle[T]
    counts: ConfigurationCounts
    statistics: MoveStatistics
    passes_completed: int
    checkpoints_emitted: int
    aborted: bool = False


class Metropolis(Generic[T]):
    """Metropolis-Hastings driver over an externally supplied triangulation."""

    def __init__(
        self,
        params: SimulationParameters,
        classifier: MoveClassifier[T],
        executor: MoveExecutor[T],
        *,
        action: ActionEvaluator = bulk_action,
        rng: RandomSource | None = None,
        config: RunConfig | None = None,
        on_checkpoint: CheckpointHook | None = None,
    ) -> None:
        self.params = params
        self.config = config or RunConfig()
        self._classifier = classifier
        self._executor = executor
        self._action = action
        self._rng = rng if rng is not None else SeededRandomSource(self.config.seed)
        self._on_checkpoint = on_checkpoint
        self._engine: AcceptanceEngine[T] | None = None
        self.last_checkpoint: Checkpoint | None = None

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def engine(self) -> AcceptanceEngine[T]:
        if self._engine is None:
            raise PreconditionViolation("no run has been started")
        return self._engine

    @property
    def counts(self) -> ConfigurationCounts:
        return self.engine.state.counts

    @property
    def statistics(self) -> MoveStatistics:
        """Copy of the move statistics; valid after a failed run as well."""
        with self.engine.lock:
            return self.engine.state.statistics.copy()

    @property
    def total_attempted(self) -> int:
        return self.engine.state.statistics.total_attempted

    @property
    def snapshot_sizes(self) -> dict[str, int]:
        return self.engine.state.snapshot.sizes()

    def sampled_kinds(self) -> tuple[MoveKind, ...]:
        """Configured move kinds the executor can actually perform."""
        return tuple(kind for kind in self.config.move_kinds if self._executor.supports(kind))

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(
        self,
        triangulation: TriangulationHandle[T],
        *,
        cancel: threading.Event | None = None,
    ) -> MetropolisResult[T]:
        """Run all passes and return ownership of the triangulation.

        The caller's handle is released on entry. Every failure surfaces as a
        :class:`MetropolisError` (other exceptions are wrapped in
        :class:`CollaboratorFailure`) that carries the triangulation handle in
        its ``triangulation`` attribute; the statistics stay readable here.
        """
        owned = TriangulationHandle(triangulation.release())
        logger.info("Starting Metropolis-Hastings run: %s", self.params)
        try:
            snapshot = MovableSnapshot.classify(self._classifier, owned.get())
        except Exception as exc:
            failure = CollaboratorFailure(f"initial classification failed: {exc}")
            failure.triangulation = owned
            raise failure from exc

        state = MetropolisState(counts=snapshot.counts(), snapshot=snapshot)
        logger.info("Initial counts: %s", state.counts.as_dict())
        engine = AcceptanceEngine(
            self.params,
            state,
            owned,
            self._classifier,
            self._executor,
            self._action,
            self._rng,
            precision_bits=self.config.precision_bits,
            refresh_after_accept=self.config.snapshot_refresh is SnapshotRefresh.AFTER_ACCEPT,
            verify_counts=self.config.verify_counts,
        )
        self._engine = engine
        self.last_checkpoint = None

        try:
            return self._run(engine, cancel)
        except MetropolisError as exc:
            exc.with_context(counts=state.counts)
            exc.triangulation = TriangulationHandle(engine.release_triangulation())
            logger.error("Metropolis run halted: %s", exc)
            raise
        except Exception as exc:
            failure = CollaboratorFailure(f"unexpected failure: {exc!r}", counts=state.counts)
            failure.triangulation = TriangulationHandle(engine.release_triangulation())
            logger.error("Metropolis run halted: %s", failure)
            raise failure from exc

    def _run(
        self, engine: AcceptanceEngine[T], cancel: threading.Event | None
    ) -> MetropolisResult[T]:
        kinds = self.sampled_kinds()
        dropped = [kind.value for kind in self.config.move_kinds if kind not in kinds]
        if dropped:
            logger.warning("Executor does not support %s; not sampling them", dropped)
        if not kinds:
            raise PreconditionViolation("no configured move kind is supported by the executor")
        unseeded = [kind.value for kind in kinds if kind not in self.config.seed_kinds]
        if unseeded:
            logger.warning("Sampling unseeded kinds %s; their a1 starts at zero", unseeded)

        self.seed(engine)

        checkpoints = 0
        passes_completed = 0
        for pass_index in range(1, self.params.passes + 1):
            if self.config.snapshot_refresh is SnapshotRefresh.PER_PASS:
                engine.refresh_snapshot(verify=self.config.verify_counts)
            budget = self.attempt_budget(engine.state.counts)
            try:
                finished = self._run_pass(engine, kinds, budget, cancel)
            except MetropolisError as exc:
                raise exc.with_context(pass_index=pass_index)
            except Exception as exc:
                raise CollaboratorFailure(
                    f"pass failed: {exc!r}", pass_index=pass_index, counts=engine.state.counts
                ) from exc
            if not finished:
                logger.warning("Run aborted during pass %d", pass_index)
                return self._result(engine, passes_completed, checkpoints, aborted=True)
            passes_completed = pass_index
            if self.params.is_checkpoint_pass(pass_index):
                self._emit_checkpoint(engine, pass_index)
                checkpoints += 1

        logger.info(
            "Finished %d passes: %d attempted, %d successful",
            passes_completed,
            engine.state.statistics.total_attempted,
            engine.state.statistics.total_successful,
        )
        return self._result(engine, passes_completed, checkpoints, aborted=False)

    def seed(self, engine: AcceptanceEngine[T]) -> None:
        """Force one move of every seed kind so that a1 has a non-zero denominator."""
        for kind in self.config.seed_kinds:
            if not self._executor.supports(kind):
                raise UnsupportedMoveError(
                    "cannot seed a move kind the executor does not support", move_kind=kind
                )
            if not engine.state.snapshot.eligible(kind):
                raise PreconditionViolation(
                    "seeding requires at least one eligible element",
                    move_kind=kind,
                    counts=engine.state.counts,
                )
            if engine.apply_move(kind) is Outcome.INFEASIBLE:
                raise PreconditionViolation(
                    "seed move was rejected by the executor as geometrically impossible",
                    move_kind=kind,
                    counts=engine.state.counts,
                )
        logger.info(
            "Seeded %s; counts now %s",
            [kind.value for kind in self.config.seed_kinds],
            engine.state.counts.as_dict(),
        )

    def attempt_budget(self, counts: ConfigurationCounts) -> int:
        """Attempts per pass: fixed when configured, else the current simplex count."""
        if self.config.attempts_per_pass is not None:
            return self.config.attempts_per_pass
        return counts.total_simplices

    def _run_pass(
        self,
        engine: AcceptanceEngine[T],
        kinds: tuple[MoveKind, ...],
        budget: int,
        cancel: threading.Event | None,
    ) -> bool:
        if self.config.workers > 1:
            chosen = [self._choose(kinds) for _ in range(budget)]
            with ParallelProposalRunner(engine, self.config.workers) as runner:
                outcomes = runner.run(chosen, cancel)
            return len(outcomes) == budget

        for iteration in range(budget):
            if cancel is not None and cancel.is_set():
                return False
            kind = self._choose(kinds)
            try:
                engine.attempt_move(kind)
            except MetropolisError as exc:
                raise exc.with_context(move_kind=kind, iteration=iteration)
        return True

    def _choose(self, kinds: tuple[MoveKind, ...]) -> MoveKind:
        return kinds[self._rng.uniform_int(0, len(kinds) - 1)]

    def _emit_checkpoint(self, engine: AcceptanceEngine[T], pass_index: int) -> None:
        with engine.lock:
            statistics = engine.state.statistics
            checkpoint = Checkpoint(
                pass_index=pass_index,
                counts=engine.state.counts,
                attempted=statistics.attempted,
                successful=statistics.successful,
                snapshot_sizes=engine.state.snapshot.sizes(),
            )
        self.last_checkpoint = checkpoint
        logger.info(
            "Checkpoint pass %d: counts=%s attempted=%d",
            pass_index,
            checkpoint.counts.as_dict(),
            checkpoint.total_attempted,
        )
        if self._on_checkpoint is not None:
            try:
                self._on_checkpoint(checkpoint)
            except MetropolisError:
                raise
            except Exception as exc:
                raise CollaboratorFailure(
                    f"checkpoint hook failed: {exc!r}",
                    pass_index=pass_index,
                    counts=checkpoint.counts,
                ) from exc

    def _result(
        self,
        engine: AcceptanceEngine[T],
        passes_completed: int,
        checkpoints: int,
        *,
        aborted: bool,
    ) -> MetropolisResult[T]:
        return MetropolisResult(
            triangulation=TriangulationHandle(engine.release_triangulation()),
            counts=engine.state.counts,
            statistics=engine.state.statistics.copy(),
            passes_completed=passes_completed,
            checkpoints_emitted=checkpoints,
            aborted=aborted,
        )


def run_metropolis(
    triangulation: TriangulationHandle[T],
    params: SimulationParameters,
    classifier: MoveClassifier[T],
    executor: MoveExecutor[T],
    *,
    action: ActionEvaluator = bulk_action,
    rng: RandomSource | None = None,
    config: RunConfig | None = None,
    on_checkpoint: CheckpointHook | None = None,
    cancel: threading.Event | None = None,
) -> MetropolisResult[T]:
    """Convenience wrapper building a :class:`Metropolis` driver and running it."""
    driver = Metropolis(
        params,
        classifier,
        executor,
        action=action,
        rng=rng,
        config=config,
        on_checkpoint=on_checkpoint,
    )
    return driver.run(triangulation, cancel=cancel)
