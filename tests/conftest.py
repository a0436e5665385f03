"""Shared fakes for deterministic Metropolis scenarios."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from decimal import Context, Decimal

import pytest

from cdt_metropolis.config.types import SimulationParameters
from cdt_metropolis.domain.ledger import LedgerClassifier, LedgerExecutor, LedgerTriangulation
from cdt_metropolis.domain.triangulation import MovableSnapshot, TriangulationHandle
from cdt_metropolis.simulation.acceptance import AcceptanceEngine, MetropolisState


class ScriptedRandom:
    """Returns scripted trial values, then ``default``; integer draws pick ``lo``."""

    def __init__(self, uniforms: Iterable[float] = (), default: float = 0.0) -> None:
        self._uniforms = list(uniforms)
        self._default = default
        self.uniform_calls = 0
        self.int_calls: list[tuple[int, int]] = []

    def uniform01(self) -> float:
        self.uniform_calls += 1
        if self._uniforms:
            return self._uniforms.pop(0)
        return self._default

    def uniform_int(self, lo: int, hi: int) -> int:
        self.int_calls.append((lo, hi))
        return lo


class RecordingAction:
    """Action evaluator computing ``fn(N1_TL, N3_31, N3_22)`` and recording each call."""

    def __init__(self, fn: Callable[[int, int, int], Decimal] | None = None) -> None:
        self._fn = fn if fn is not None else (lambda n1, n31, n22: Decimal(0))
        self.calls: list[tuple[int, int, int]] = []

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
    ) -> Decimal:
        self.calls.append((timelike_edges, three_one_simplices, two_two_simplices))
        return self._fn(timelike_edges, three_one_simplices, two_two_simplices)


@pytest.fixture
def make_rng() -> Callable[..., ScriptedRandom]:
    return ScriptedRandom


@pytest.fixture
def make_action() -> Callable[..., RecordingAction]:
    return RecordingAction


@pytest.fixture
def make_ledger() -> Callable[..., LedgerTriangulation]:
    def _make(size: int = 10, **overrides: int) -> LedgerTriangulation:
        sizes = {
            "three_one": size,
            "one_three": size,
            "two_two": size,
            "timelike_edges": size,
            "spacelike_edges": size,
        }
        sizes.update(overrides)
        return LedgerTriangulation.create(**sizes)

    return _make


@pytest.fixture
def build_engine() -> Callable[..., AcceptanceEngine]:
    """Factory wiring an engine around a ledger with the ledger collaborators."""

    def _build(
        ledger: LedgerTriangulation,
        *,
        rng: ScriptedRandom | None = None,
        action: RecordingAction | None = None,
        executor: object | None = None,
        params: SimulationParameters | None = None,
        refresh_after_accept: bool = False,
    ) -> AcceptanceEngine:
        rng = rng if rng is not None else ScriptedRandom()
        classifier = LedgerClassifier()
        snapshot = MovableSnapshot.classify(classifier, ledger)
        state = MetropolisState(counts=snapshot.counts(), snapshot=snapshot)
        return AcceptanceEngine(
            params or SimulationParameters(passes=1),
            state,
            TriangulationHandle(ledger),
            classifier,
            executor if executor is not None else LedgerExecutor(rng),
            action if action is not None else RecordingAction(),
            rng,
            refresh_after_accept=refresh_after_accept,
        )

    return _build
