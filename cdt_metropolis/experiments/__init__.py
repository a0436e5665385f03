"""Experiments layer: command-line runs over the reference ledger."""

from cdt_metropolis.experiments.simulate import main

__all__ = ["main"]
