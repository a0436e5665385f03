"""Centralized defaults for Metropolis-Hastings runs.

Consuming modules should import from this module rather than defining
their own inline literals.
"""

from __future__ import annotations

PRECISION_BITS = 256
"""Working precision (in bits) for the a1/a2 acceptance ratios."""

DEFAULT_ALPHA = 1.0
"""Default timelike edge length squared."""

DEFAULT_K = 1.0
"""Default inverse Newton coupling."""

DEFAULT_LAMBDA = 1.0
"""Default cosmological-constant coupling."""

DEFAULT_PASSES = 10
"""Default number of passes per run."""

DEFAULT_CHECKPOINT_INTERVAL = 1
"""Report a checkpoint every N passes; 0 disables reporting."""

FLUSH_THRESHOLD = 1_024
"""Flush checkpoint rows to Parquet once this in-memory row count is reached."""

MAX_WORKERS = 64
"""Upper bound for concurrent proposal evaluation threads."""
