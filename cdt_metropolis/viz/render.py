"""Matplotlib rendering of Metropolis checkpoint histories."""

from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pyarrow.parquet as pq  # noqa: E402

from cdt_metropolis.domain.moves import MoveKind  # noqa: E402
from cdt_metropolis.io.schemas import (  # noqa: E402
    COUNT_COLUMNS,
    attempted_column,
    successful_column,
)

COUNT_LABELS: dict[str, str] = {
    "timelike_edges": "N1_TL",
    "three_one_simplices": "N3_31",
    "two_two_simplices": "N3_22",
}


def load_checkpoint_history(
    checkpoint_path: Path, run_id: str | None = None
) -> dict[str, np.ndarray]:
    """Read checkpoint rows into per-column arrays ordered by pass index."""
    filters = [("run_id", "=", run_id)] if run_id is not None else None
    table = pq.read_table(checkpoint_path, filters=filters)
    if table.num_rows == 0:
        raise ValueError(f"No checkpoint rows in {checkpoint_path}")
    order = np.argsort(np.asarray(table.column("pass_index").to_pylist(), dtype=np.int64))
    return {
        name: np.asarray(table.column(name).to_pylist())[order]
        for name in table.column_names
        if name != "run_id"
    }


def acceptance_rates(history: dict[str, np.ndarray], kind: MoveKind) -> np.ndarray:
    """Cumulative successful/attempted ratio per checkpoint; zero where nothing was tried."""
    attempted = history[attempted_column(kind)].astype(float)
    successful = history[successful_column(kind)].astype(float)
    rates = np.zeros_like(attempted)
    np.divide(successful, attempted, out=rates, where=attempted > 0)
    return rates


def render_checkpoint_history(
    checkpoint_path: Path,
    output_path: Path,
    run_id: str | None = None,
    dpi: int = 150,
) -> None:
    """Plot configuration counts and per-kind acceptance rates against pass index."""
    history = load_checkpoint_history(Path(checkpoint_path), run_id=run_id)
    passes = history["pass_index"]

    fig, (counts_ax, rates_ax) = plt.subplots(2, 1, figsize=(8, 7), sharex=True)
    for name in COUNT_COLUMNS:
        counts_ax.plot(passes, history[name], marker="o", markersize=3, label=COUNT_LABELS[name])
    counts_ax.set_ylabel("Count")
    counts_ax.legend(loc="best")
    counts_ax.grid(True, alpha=0.3)

    for kind in MoveKind:
        if not history[attempted_column(kind)].any():
            continue
        rates_ax.plot(passes, acceptance_rates(history, kind), label=kind.value)
    rates_ax.set_xlabel("Pass")
    rates_ax.set_ylabel("Acceptance rate")
    rates_ax.set_ylim(0.0, 1.0)
    rates_ax.legend(loc="best")
    rates_ax.grid(True, alpha=0.3)

    fig.suptitle("Metropolis checkpoint history", fontsize=14)
    fig.tight_layout()
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=dpi)
    plt.close(fig)
