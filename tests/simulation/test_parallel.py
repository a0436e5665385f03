"""Tests for concurrent proposal evaluation with serial commits."""

from __future__ import annotations

import threading
from collections.abc import Callable

import pytest

from cdt_metropolis.config.types import RunConfig, SimulationParameters
from cdt_metropolis.domain.ledger import LedgerClassifier, LedgerExecutor
from cdt_metropolis.domain.moves import MoveKind
from cdt_metropolis.domain.triangulation import SeededRandomSource, TriangulationHandle
from cdt_metropolis.errors import CollaboratorFailure
from cdt_metropolis.simulation.acceptance import Outcome
from cdt_metropolis.simulation.engine import Metropolis
from cdt_metropolis.simulation.parallel import ParallelProposalRunner

SEEDED = (MoveKind.TWO_THREE, MoveKind.THREE_TWO, MoveKind.TWO_SIX)


class TestParallelProposalRunner:
    def test_rejects_non_positive_workers(
        self, make_ledger: Callable, build_engine: Callable
    ) -> None:
        with pytest.raises(ValueError, match="workers"):
            ParallelProposalRunner(build_engine(make_ledger()), 0)

    def test_commits_every_proposal_in_order(
        self, make_ledger: Callable, make_rng: Callable, build_engine: Callable
    ) -> None:
        ledger = make_ledger(size=30)
        engine = build_engine(ledger, rng=make_rng(default=0.0))
        for kind in SEEDED:
            engine.apply_move(kind)
        kinds = [MoveKind.TWO_THREE, MoveKind.TWO_SIX, MoveKind.THREE_TWO] * 4

        with ParallelProposalRunner(engine, workers=3) as runner:
            outcomes = runner.run(kinds)

        assert outcomes == [Outcome.ACCEPTED] * len(kinds)
        assert engine.state.counts == ledger.counts()
        assert engine.state.statistics.total_attempted == 3 + len(kinds)
        assert 0 <= runner.stale_commits <= len(kinds)

    def test_cancel_stops_before_committing(
        self, make_ledger: Callable, make_rng: Callable, build_engine: Callable
    ) -> None:
        engine = build_engine(make_ledger(), rng=make_rng(default=0.0))
        for kind in SEEDED:
            engine.apply_move(kind)
        cancel = threading.Event()
        cancel.set()
        with ParallelProposalRunner(engine, workers=2) as runner:
            assert runner.run([MoveKind.TWO_THREE] * 5, cancel) == []
        assert engine.state.statistics.total_attempted == 3

    def test_failure_carries_iteration(
        self, make_ledger: Callable, make_action: Callable, build_engine: Callable
    ) -> None:
        def flaky(n1: int, n31: int, n22: int) -> int:
            raise RuntimeError("worker crashed")

        engine = build_engine(make_ledger(), action=make_action(flaky))
        for kind in SEEDED:
            engine.apply_move(kind)
        with ParallelProposalRunner(engine, workers=2) as runner:
            with pytest.raises(CollaboratorFailure) as excinfo:
                runner.run([MoveKind.FOUR_FOUR, MoveKind.TWO_SIX])
        assert excinfo.value.iteration == 1
        assert excinfo.value.move_kind is MoveKind.TWO_SIX


class TestParallelDriver:
    @pytest.mark.parametrize("workers", [2, 4])
    def test_parallel_run_keeps_bookkeeping_consistent(
        self, make_ledger: Callable, workers: int
    ) -> None:
        ledger = make_ledger(size=50)
        rng = SeededRandomSource(5)
        driver = Metropolis(
            SimulationParameters(passes=3, checkpoint_interval=1),
            LedgerClassifier(),
            LedgerExecutor(rng),
            rng=rng,
            config=RunConfig(attempts_per_pass=20, workers=workers),
        )
        result = driver.run(TriangulationHandle(ledger))

        assert result.passes_completed == 3
        assert result.counts == ledger.counts()
        assert result.statistics.total_attempted == 3 + 3 * 20
        stats = result.statistics
        assert all(stats.attempted[k] >= stats.successful[k] for k in MoveKind)

    def test_parallel_run_honours_cancel(self, make_ledger: Callable) -> None:
        cancel = threading.Event()
        cancel.set()
        rng = SeededRandomSource(5)
        driver = Metropolis(
            SimulationParameters(passes=2, checkpoint_interval=1),
            LedgerClassifier(),
            LedgerExecutor(rng),
            rng=rng,
            config=RunConfig(attempts_per_pass=10, workers=2),
        )
        result = driver.run(TriangulationHandle(make_ledger(size=20)), cancel=cancel)
        assert result.aborted
        assert result.passes_completed == 0
