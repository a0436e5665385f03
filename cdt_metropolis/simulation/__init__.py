"""Simulation engine: acceptance decisions, pass driver and checkpoint persistence."""

from cdt_metropolis.simulation.acceptance import (
    AcceptanceEngine,
    MetropolisState,
    Outcome,
    Proposal,
    StateView,
    make_context,
)
from cdt_metropolis.simulation.engine import (
    Checkpoint,
    Metropolis,
    MetropolisResult,
    run_metropolis,
)
from cdt_metropolis.simulation.parallel import ParallelProposalRunner
from cdt_metropolis.simulation.persistence import CheckpointRecorder, checkpoint_row

__all__ = [
    "AcceptanceEngine",
    "Checkpoint",
    "CheckpointRecorder",
    "Metropolis",
    "MetropolisResult",
    "MetropolisState",
    "Outcome",
    "ParallelProposalRunner",
    "Proposal",
    "StateView",
    "checkpoint_row",
    "make_context",
    "run_metropolis",
]
