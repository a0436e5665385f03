"""Metropolis-Hastings sampling of foliated triangulations for Causal Dynamical Triangulations."""

__version__ = "0.1.0"
