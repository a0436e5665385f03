"""Configuration layer: constants and typed config dataclasses."""

from cdt_metropolis.config.constants import (
    DEFAULT_ALPHA,
    DEFAULT_CHECKPOINT_INTERVAL,
    DEFAULT_K,
    DEFAULT_LAMBDA,
    DEFAULT_PASSES,
    FLUSH_THRESHOLD,
    MAX_WORKERS,
    PRECISION_BITS,
)
from cdt_metropolis.config.types import RunConfig, SimulationParameters, SnapshotRefresh

__all__ = [
    "DEFAULT_ALPHA",
    "DEFAULT_CHECKPOINT_INTERVAL",
    "DEFAULT_K",
    "DEFAULT_LAMBDA",
    "DEFAULT_PASSES",
    "FLUSH_THRESHOLD",
    "MAX_WORKERS",
    "PRECISION_BITS",
    "RunConfig",
    "SimulationParameters",
    "SnapshotRefresh",
]
