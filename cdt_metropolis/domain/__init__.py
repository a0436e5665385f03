"""Domain layer: move kinds, counters, collaborator protocols and reference collaborators."""

from cdt_metropolis.domain.action import action_coefficients, bulk_action
from cdt_metropolis.domain.ledger import LedgerClassifier, LedgerExecutor, LedgerTriangulation
from cdt_metropolis.domain.moves import (
    ALL_MOVE_KINDS,
    MOVE_DELTAS,
    REFERENCE_MOVE_KINDS,
    ConfigurationCounts,
    MoveDelta,
    MoveKind,
    MoveStatistics,
)
from cdt_metropolis.domain.triangulation import (
    ActionEvaluator,
    EdgeClasses,
    MovableSnapshot,
    MoveClassifier,
    MoveExecutor,
    RandomSource,
    SeededRandomSource,
    SimplexClasses,
    TriangulationHandle,
)

__all__ = [
    "ALL_MOVE_KINDS",
    "ActionEvaluator",
    "ConfigurationCounts",
    "EdgeClasses",
    "LedgerClassifier",
    "LedgerExecutor",
    "LedgerTriangulation",
    "MOVE_DELTAS",
    "MovableSnapshot",
    "MoveClassifier",
    "MoveDelta",
    "MoveExecutor",
    "MoveKind",
    "MoveStatistics",
    "REFERENCE_MOVE_KINDS",
    "RandomSource",
    "SeededRandomSource",
    "SimplexClasses",
    "TriangulationHandle",
    "action_coefficients",
    "bulk_action",
]
