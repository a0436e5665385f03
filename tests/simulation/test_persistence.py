"""Tests for Parquet checkpoint persistence."""

from __future__ import annotations

from pathlib import Path

import pyarrow.parquet as pq

from cdt_metropolis.domain.moves import ConfigurationCounts, MoveKind
from cdt_metropolis.io.schemas import CHECKPOINT_SCHEMA, attempted_column, successful_column
from cdt_metropolis.simulation.engine import Checkpoint
from cdt_metropolis.simulation.persistence import CheckpointRecorder, checkpoint_row


def _checkpoint(pass_index: int) -> Checkpoint:
    attempted = {kind: 0 for kind in MoveKind}
    successful = {kind: 0 for kind in MoveKind}
    attempted[MoveKind.TWO_THREE] = 3 * pass_index
    successful[MoveKind.TWO_THREE] = pass_index
    return Checkpoint(
        pass_index=pass_index,
        counts=ConfigurationCounts(
            timelike_edges=10 + pass_index, three_one_simplices=20, two_two_simplices=10
        ),
        attempted=attempted,
        successful=successful,
        snapshot_sizes={
            "three_one": 10,
            "two_two": 10,
            "one_three": 10,
            "timelike_edges": 10 + pass_index,
            "spacelike_edges": 12,
        },
    )


class TestCheckpointRow:
    def test_row_matches_schema(self) -> None:
        row = checkpoint_row("r1", _checkpoint(2))
        assert set(row) == set(CHECKPOINT_SCHEMA.names)
        assert row["run_id"] == "r1"
        assert row["timelike_edges"] == 12
        assert row["total_attempted"] == 6
        assert row[attempted_column(MoveKind.TWO_THREE)] == 6
        assert row[successful_column(MoveKind.TWO_THREE)] == 2
        assert row["spacelike_edges"] == 12


class TestCheckpointRecorder:
    def test_writes_rows_on_close(self, tmp_path: Path) -> None:
        with CheckpointRecorder(tmp_path, run_id="seed0") as recorder:
            recorder(_checkpoint(1))
            recorder(_checkpoint(2))
        table = pq.read_table(tmp_path / "logs" / "checkpoints.parquet")
        assert table.num_rows == 2
        assert table.schema.equals(CHECKPOINT_SCHEMA)
        assert table.column("pass_index").to_pylist() == [1, 2]
        assert recorder.rows_written == 2

    def test_flushes_at_threshold(self, tmp_path: Path) -> None:
        recorder = CheckpointRecorder(tmp_path, flush_threshold=2)
        for index in range(1, 6):
            recorder(_checkpoint(index))
        recorder.close()
        table = pq.read_table(recorder.path)
        assert table.column("pass_index").to_pylist() == [1, 2, 3, 4, 5]

    def test_no_file_without_checkpoints(self, tmp_path: Path) -> None:
        recorder = CheckpointRecorder(tmp_path)
        recorder.close()
        assert not recorder.path.exists()
