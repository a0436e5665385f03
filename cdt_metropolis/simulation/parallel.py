"""Concurrent evaluation of Metropolis proposals with a single writer.

Dynamical ratios only read the configuration counts, so several of them can
be evaluated at once on worker threads. Decisions and their side effects
are still committed one at a time, in submission order, through
:meth:`AcceptanceEngine.commit`, which re-evaluates any proposal whose
state version went stale while it was in flight.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from types import TracebackType

from cdt_metropolis.domain.moves import MoveKind
from cdt_metropolis.errors import MetropolisError
from cdt_metropolis.simulation.acceptance import AcceptanceEngine, Outcome, Proposal

logger = logging.getLogger(__name__)


class ParallelProposalRunner:
    """Evaluates proposals on a thread pool and commits them serially."""

    def __init__(self, engine: AcceptanceEngine, workers: int) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self._engine = engine
        self._workers = workers
        self._pool = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="metropolis-proposal"
        )
        self.stale_commits = 0

    def run(
        self,
        kinds: Sequence[MoveKind],
        cancel: threading.Event | None = None,
    ) -> list[Outcome]:
        """Attempt ``kinds`` in order and return the outcomes committed.

        Proposals are submitted in windows of twice the worker count. The
        returned list is shorter than ``kinds`` only when ``cancel`` was set.
        """
        outcomes: list[Outcome] = []
        window = self._workers * 2
        for start in range(0, len(kinds), window):
            batch = kinds[start : start + window]
            futures: list[Future[Proposal]] = [
                self._pool.submit(self._engine.propose, kind) for kind in batch
            ]
            try:
                for offset, (kind, future) in enumerate(zip(batch, futures, strict=True)):
                    if cancel is not None and cancel.is_set():
                        return outcomes
                    try:
                        proposal = future.result()
                        if proposal.version != self._engine.state.version:
                            self.stale_commits += 1
                        outcomes.append(self._engine.commit(proposal))
                    except MetropolisError as exc:
                        raise exc.with_context(move_kind=kind, iteration=start + offset)
            finally:
                for future in futures:
                    future.cancel()
        return outcomes

    def close(self) -> None:
        self._pool.shutdown(wait=True, cancel_futures=True)
        logger.debug("proposal pool closed after %d stale commits", self.stale_commits)

    def __enter__(self) -> ParallelProposalRunner:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
