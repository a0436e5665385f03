"""Parquet persistence for Metropolis checkpoints."""

from __future__ import annotations

from pathlib import Path
from types import TracebackType

import pyarrow as pa
import pyarrow.parquet as pq

from cdt_metropolis.config.constants import FLUSH_THRESHOLD
from cdt_metropolis.domain.moves import MoveKind
from cdt_metropolis.io.paths import checkpoint_log_path
from cdt_metropolis.io.schemas import (
    CHECKPOINT_SCHEMA,
    attempted_column,
    successful_column,
)
from cdt_metropolis.simulation.engine import Checkpoint


def checkpoint_row(run_id: str, checkpoint: Checkpoint) -> dict[str, int | str]:
    """Flatten a checkpoint into one row matching ``CHECKPOINT_SCHEMA``."""
    row: dict[str, int | str] = {"run_id": run_id, "pass_index": checkpoint.pass_index}
    row.update(checkpoint.counts.as_dict())
    row["total_attempted"] = checkpoint.total_attempted
    for kind in MoveKind:
        row[attempted_column(kind)] = checkpoint.attempted.get(kind, 0)
        row[successful_column(kind)] = checkpoint.successful.get(kind, 0)
    sizes = checkpoint.snapshot_sizes
    row["movable_three_one"] = sizes["three_one"]
    row["movable_two_two"] = sizes["two_two"]
    row["movable_one_three"] = sizes["one_three"]
    row["movable_timelike_edges"] = sizes["timelike_edges"]
    row["spacelike_edges"] = sizes["spacelike_edges"]
    return row


def flush_checkpoint_columns(
    columns: dict[str, list[int | str]],
    path: Path,
    writer: pq.ParquetWriter | None,
) -> pq.ParquetWriter | None:
    """Write accumulated checkpoint rows to Parquet and clear in-memory buffers."""
    if not columns["run_id"]:
        return writer
    table = pa.Table.from_pydict(columns, schema=CHECKPOINT_SCHEMA)
    if writer is None:
        writer = pq.ParquetWriter(path, CHECKPOINT_SCHEMA)
    writer.write_table(table)
    for values in columns.values():
        values.clear()
    return writer


class CheckpointRecorder:
    """Checkpoint hook that streams rows into ``logs/checkpoints.parquet``."""

    def __init__(
        self, out_dir: Path, run_id: str = "run", flush_threshold: int = FLUSH_THRESHOLD
    ) -> None:
        if flush_threshold < 1:
            raise ValueError("flush_threshold must be >= 1")
        self.path = checkpoint_log_path(Path(out_dir))
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.run_id = run_id
        self.rows_written = 0
        self._flush_threshold = flush_threshold
        self._columns: dict[str, list[int | str]] = {name: [] for name in CHECKPOINT_SCHEMA.names}
        self._writer: pq.ParquetWriter | None = None

    def __call__(self, checkpoint: Checkpoint) -> None:
        for name, value in checkpoint_row(self.run_id, checkpoint).items():
            self._columns[name].append(value)
        self.rows_written += 1
        if len(self._columns["run_id"]) >= self._flush_threshold:
            self.flush()

    def flush(self) -> None:
        self._writer = flush_checkpoint_columns(self._columns, self.path, self._writer)

    def close(self) -> None:
        self.flush()
        if self._writer is not None:
            self._writer.close()
            self._writer = None

    def __enter__(self) -> CheckpointRecorder:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
