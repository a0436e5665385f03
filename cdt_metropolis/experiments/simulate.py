"""CLI entrypoint for a Metropolis-Hastings run on a ledger triangulation.

Supports ``--config path/to/config.json`` for reproducibility. CLI arguments
override config-file values; config-file values override built-in defaults.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from cdt_metropolis.config.constants import (
    DEFAULT_ALPHA,
    DEFAULT_CHECKPOINT_INTERVAL,
    DEFAULT_K,
    DEFAULT_LAMBDA,
    DEFAULT_PASSES,
    PRECISION_BITS,
)
from cdt_metropolis.config.types import RunConfig, SimulationParameters, SnapshotRefresh
from cdt_metropolis.domain.ledger import LedgerClassifier, LedgerExecutor, LedgerTriangulation
from cdt_metropolis.domain.moves import REFERENCE_MOVE_KINDS, MoveKind
from cdt_metropolis.domain.triangulation import SeededRandomSource, TriangulationHandle
from cdt_metropolis.errors import MetropolisError
from cdt_metropolis.io.paths import run_summary_path
from cdt_metropolis.simulation.engine import run_metropolis
from cdt_metropolis.simulation.persistence import CheckpointRecorder

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# CLI parsing helpers
# ---------------------------------------------------------------------------


def _parse_move_kinds(raw: str) -> tuple[MoveKind, ...]:
    """Parse ``23,32,26`` or, with parenthesised kinds, ``(2,3);(3,2)``."""
    parts = [part.strip() for part in raw.split(";" if "(" in raw else ",") if part.strip()]
    if not parts:
        raise ValueError("move list must not be empty")
    return tuple(MoveKind.parse(part) for part in parts)


def _parse_snapshot_refresh(raw: str) -> SnapshotRefresh:
    try:
        return SnapshotRefresh(raw)
    except ValueError as exc:
        valid = ", ".join(mode.value for mode in SnapshotRefresh)
        raise ValueError(f"snapshot-refresh must be one of {valid}") from exc


def _coerce_int(raw: object, key: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ValueError(f"{key} must be an integer, got {raw!r}")
    return raw


def _coerce_float(raw: object, key: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, int | float):
        raise ValueError(f"{key} must be a number, got {raw!r}")
    return float(raw)


def _coerce_str(raw: object, key: str) -> str:
    if not isinstance(raw, str):
        raise ValueError(f"{key} must be a string, got {raw!r}")
    return raw


def _coerce_bool(raw: object, key: str) -> bool:
    if not isinstance(raw, bool):
        raise ValueError(f"{key} must be a boolean, got {raw!r}")
    return raw


def _get_val(cli_val: object, key: str, file_cfg: dict[str, object], default: object) -> object:
    """Resolve a setting: CLI value, then config file, then built-in default."""
    if cli_val is not None:
        return cli_val
    return file_cfg.get(key, default)


def _get_int(cli_val: int | None, key: str, file_cfg: dict[str, object], default: int) -> int:
    return _coerce_int(_get_val(cli_val, key, file_cfg, default), key)


def _get_optional_int(
    cli_val: int | None, key: str, file_cfg: dict[str, object]
) -> int | None:
    raw = _get_val(cli_val, key, file_cfg, None)
    return None if raw is None else _coerce_int(raw, key)


def _get_float(
    cli_val: float | None, key: str, file_cfg: dict[str, object], default: float
) -> float:
    return _coerce_float(_get_val(cli_val, key, file_cfg, default), key)


def _get_str(cli_val: str | None, key: str, file_cfg: dict[str, object], default: str) -> str:
    return _coerce_str(_get_val(cli_val, key, file_cfg, default), key)


def _get_bool(cli_val: bool | None, key: str, file_cfg: dict[str, object], default: bool) -> bool:
    return _coerce_bool(_get_val(cli_val, key, file_cfg, default), key)


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the simulate CLI."""
    parser = argparse.ArgumentParser(
        description="Run Metropolis-Hastings moves on a foliated triangulation"
    )
    parser.add_argument("--config", type=Path, default=None, help="JSON file with defaults")
    parser.add_argument("--alpha", type=float, default=None)
    parser.add_argument("--k", type=float, default=None)
    parser.add_argument("--lambda", dest="lambda_", type=float, default=None)
    parser.add_argument("--passes", type=int, default=None)
    parser.add_argument("--checkpoint-interval", type=int, default=None)
    parser.add_argument("--attempts-per-pass", type=int, default=None)
    parser.add_argument("--precision-bits", type=int, default=None)
    parser.add_argument("--snapshot-refresh", type=str, default=None)
    parser.add_argument("--moves", type=str, default=None, help="e.g. 23,32,26,62,44")
    parser.add_argument("--seed-moves", type=str, default=None)
    parser.add_argument("--verify-counts", action=argparse.BooleanOptionalAction, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument("--three-one", type=int, default=None)
    parser.add_argument("--one-three", type=int, default=None)
    parser.add_argument("--two-two", type=int, default=None)
    parser.add_argument("--timelike-edges", type=int, default=None)
    parser.add_argument("--spacelike-edges", type=int, default=None)
    parser.add_argument("--out-dir", type=str, default=None)
    parser.add_argument("--run-id", type=str, default=None)
    parser.add_argument("--log-level", type=str, default=None)
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for a single Metropolis run."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    file_cfg: dict[str, object] = {}
    if args.config is not None:
        try:
            file_cfg = json.loads(Path(args.config).read_text())
        except FileNotFoundError:
            parser.error(f"Config file not found: {args.config}")
        except json.JSONDecodeError as exc:
            parser.error(f"Config file is not valid JSON: {args.config}: {exc}")

    log_level = _get_str(args.log_level, "log_level", file_cfg, "INFO")
    logging.basicConfig(
        level=log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    reference_moves = ",".join(kind.name.lower() for kind in REFERENCE_MOVE_KINDS)
    try:
        params = SimulationParameters(
            alpha=_get_float(args.alpha, "alpha", file_cfg, DEFAULT_ALPHA),
            k=_get_float(args.k, "k", file_cfg, DEFAULT_K),
            lambda_=_get_float(args.lambda_, "lambda", file_cfg, DEFAULT_LAMBDA),
            passes=_get_int(args.passes, "passes", file_cfg, DEFAULT_PASSES),
            checkpoint_interval=_get_int(
                args.checkpoint_interval,
                "checkpoint_interval",
                file_cfg,
                DEFAULT_CHECKPOINT_INTERVAL,
            ),
        )
        config = RunConfig(
            precision_bits=_get_int(
                args.precision_bits, "precision_bits", file_cfg, PRECISION_BITS
            ),
            attempts_per_pass=_get_optional_int(
                args.attempts_per_pass, "attempts_per_pass", file_cfg
            ),
            snapshot_refresh=_parse_snapshot_refresh(
                _get_str(
                    args.snapshot_refresh,
                    "snapshot_refresh",
                    file_cfg,
                    SnapshotRefresh.AFTER_ACCEPT.value,
                )
            ),
            move_kinds=_parse_move_kinds(_get_str(args.moves, "moves", file_cfg, reference_moves)),
            seed_kinds=_parse_move_kinds(
                _get_str(args.seed_moves, "seed_moves", file_cfg, reference_moves)
            ),
            verify_counts=_get_bool(args.verify_counts, "verify_counts", file_cfg, True),
            seed=_get_int(args.seed, "seed", file_cfg, 0),
            workers=_get_int(args.workers, "workers", file_cfg, 1),
        )
        ledger = LedgerTriangulation.create(
            three_one=_get_int(args.three_one, "three_one", file_cfg, 40),
            one_three=_get_int(args.one_three, "one_three", file_cfg, 40),
            two_two=_get_int(args.two_two, "two_two", file_cfg, 40),
            timelike_edges=_get_int(args.timelike_edges, "timelike_edges", file_cfg, 60),
            spacelike_edges=_get_int(args.spacelike_edges, "spacelike_edges", file_cfg, 60),
        )
    except ValueError as exc:
        parser.error(str(exc))

    out_dir = Path(_get_str(args.out_dir, "out_dir", file_cfg, "data"))
    run_id = _get_str(args.run_id, "run_id", file_cfg, f"seed{config.seed}")
    rng = SeededRandomSource(config.seed)
    executor = LedgerExecutor(rng)

    with CheckpointRecorder(out_dir, run_id=run_id) as recorder:
        try:
            result = run_metropolis(
                TriangulationHandle(ledger),
                params,
                LedgerClassifier(),
                executor,
                rng=rng,
                config=config,
                on_checkpoint=recorder,
            )
        except MetropolisError as exc:
            logger.error("Run failed: %s", exc)
            raise SystemExit(1) from exc

    summary = {
        "run_id": run_id,
        "passes_completed": result.passes_completed,
        "aborted": result.aborted,
        "checkpoints": result.checkpoints_emitted,
        "counts": result.counts.as_dict(),
        "statistics": result.statistics.as_dict(),
        "checkpoint_log": str(recorder.path),
    }
    run_summary_path(out_dir).parent.mkdir(parents=True, exist_ok=True)
    run_summary_path(out_dir).write_text(json.dumps(summary, indent=2))
    print(json.dumps(summary, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
