"""Configuration dataclasses for Metropolis-Hastings runs.

``SimulationParameters`` holds the physical couplings and pass counts;
``RunConfig`` holds the engine policies (precision, attempt budget,
snapshot refresh, move subsets).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from cdt_metropolis.config.constants import (
    DEFAULT_ALPHA,
    DEFAULT_CHECKPOINT_INTERVAL,
    DEFAULT_K,
    DEFAULT_LAMBDA,
    DEFAULT_PASSES,
    MAX_WORKERS,
    PRECISION_BITS,
)
from cdt_metropolis.domain.moves import REFERENCE_MOVE_KINDS, MoveKind

__all__ = [
    "RunConfig",
    "SimulationParameters",
    "SnapshotRefresh",
]


class SnapshotRefresh(Enum):
    """When the movable-element snapshot is re-classified."""

    ONCE = "once"
    PER_PASS = "per_pass"
    AFTER_ACCEPT = "after_accept"


@dataclass(frozen=True)
class SimulationParameters:
    """Physical couplings and pass schedule for one run."""

    alpha: float = DEFAULT_ALPHA
    k: float = DEFAULT_K
    lambda_: float = DEFAULT_LAMBDA
    passes: int = DEFAULT_PASSES
    checkpoint_interval: int = DEFAULT_CHECKPOINT_INTERVAL

    def __post_init__(self) -> None:
        for name in ("alpha", "k", "lambda_"):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"{name} must be finite")
        if self.passes < 1:
            raise ValueError("passes must be >= 1")
        if self.checkpoint_interval < 0:
            raise ValueError("checkpoint_interval must be >= 0")

    @property
    def reporting_enabled(self) -> bool:
        return self.checkpoint_interval > 0

    def is_checkpoint_pass(self, pass_number: int) -> bool:
        """Return True when 1-based ``pass_number`` is a reporting pass."""
        if not self.reporting_enabled:
            return False
        return pass_number % self.checkpoint_interval == 0


@dataclass(frozen=True)
class RunConfig:
    """Engine policies shared by sequential and parallel runs."""

    precision_bits: int = PRECISION_BITS
    attempts_per_pass: int | None = None
    snapshot_refresh: SnapshotRefresh = SnapshotRefresh.AFTER_ACCEPT
    move_kinds: tuple[MoveKind, ...] = REFERENCE_MOVE_KINDS
    seed_kinds: tuple[MoveKind, ...] = REFERENCE_MOVE_KINDS
    verify_counts: bool = True
    seed: int = 0
    workers: int = 1

    def __post_init__(self) -> None:
        if self.precision_bits < 53:
            raise ValueError("precision_bits must be >= 53")
        if self.attempts_per_pass is not None and self.attempts_per_pass < 1:
            raise ValueError("attempts_per_pass must be >= 1 when set")
        if not self.move_kinds:
            raise ValueError("move_kinds must not be empty")
        if len(set(self.move_kinds)) != len(self.move_kinds):
            raise ValueError("move_kinds must not contain duplicates")
        if len(set(self.seed_kinds)) != len(self.seed_kinds):
            raise ValueError("seed_kinds must not contain duplicates")
        if not 1 <= self.workers <= MAX_WORKERS:
            raise ValueError(f"workers must be in [1, {MAX_WORKERS}]")

    @property
    def precision_digits(self) -> int:
        """Decimal digits equivalent to ``precision_bits``."""
        return math.ceil(self.precision_bits * math.log10(2))
