"""Path construction helpers for run output directories."""

from __future__ import annotations

from pathlib import Path


def logs_dir(out_dir: Path) -> Path:
    """Return path to the logs subdirectory within an output directory."""
    return out_dir / "logs"


def checkpoint_log_path(out_dir: Path) -> Path:
    """Return path to the checkpoint Parquet file."""
    return logs_dir(out_dir) / "checkpoints.parquet"


def run_summary_path(out_dir: Path) -> Path:
    """Return path to the JSON run summary."""
    return out_dir / "run_summary.json"
