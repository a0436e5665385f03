"""CLI for rendering checkpoint histories written by ``cdt-metropolis``."""

from __future__ import annotations

import argparse
from pathlib import Path

from cdt_metropolis.io.paths import checkpoint_log_path
from cdt_metropolis.viz.render import render_checkpoint_history


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Plot Metropolis checkpoint history")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--checkpoints", type=Path, help="Path to checkpoints.parquet")
    source.add_argument("--out-dir", type=Path, help="Run output directory")
    parser.add_argument("--output", type=Path, required=True, help="Image file to write")
    parser.add_argument("--run-id", type=str, default=None)
    parser.add_argument("--dpi", type=int, default=150)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    path = args.checkpoints if args.checkpoints is not None else checkpoint_log_path(args.out_dir)
    if not path.exists():
        parser.error(f"Checkpoint log not found: {path}")
    if args.dpi < 1:
        parser.error("--dpi must be >= 1")
    try:
        render_checkpoint_history(path, args.output, run_id=args.run_id, dpi=args.dpi)
    except ValueError as exc:
        parser.error(str(exc))
    print(args.output)


if __name__ == "__main__":
    main()
