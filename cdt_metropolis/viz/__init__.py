"""Visualization layer: checkpoint history plots and their CLI."""

from cdt_metropolis.viz.cli import main
from cdt_metropolis.viz.render import load_checkpoint_history, render_checkpoint_history

__all__ = ["load_checkpoint_history", "main", "render_checkpoint_history"]
