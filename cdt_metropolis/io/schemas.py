"""Parquet schema definitions for Metropolis checkpoint artifacts."""

from __future__ import annotations

import pyarrow as pa

from cdt_metropolis.domain.moves import MoveKind

CHECKPOINT_SCHEMA_VERSION = 1

COUNT_COLUMNS = ("timelike_edges", "three_one_simplices", "two_two_simplices")
"""Configuration-count columns, in Table 1 order."""

SNAPSHOT_COLUMNS = (
    "movable_three_one",
    "movable_two_two",
    "movable_one_three",
    "movable_timelike_edges",
    "spacelike_edges",
)


def attempted_column(kind: MoveKind) -> str:
    return f"attempted_{kind.name.lower()}"


def successful_column(kind: MoveKind) -> str:
    return f"successful_{kind.name.lower()}"


CHECKPOINT_SCHEMA = pa.schema(
    [
        ("run_id", pa.string()),
        ("pass_index", pa.int64()),
        *[(name, pa.int64()) for name in COUNT_COLUMNS],
        ("total_attempted", pa.int64()),
        *[(attempted_column(kind), pa.int64()) for kind in MoveKind],
        *[(successful_column(kind), pa.int64()) for kind in MoveKind],
        *[(name, pa.int64()) for name in SNAPSHOT_COLUMNS],
    ]
)
