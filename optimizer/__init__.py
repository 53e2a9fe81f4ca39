"""Optimization engines used across scheduling modules."""

from .annealing import (
    AnnealConfig,
    AnnealResult,
    acceptance_probability,
    anneal,
    hyperbolic_temperature,
)

__all__ = [
    "AnnealConfig",
    "AnnealResult",
    "acceptance_probability",
    "anneal",
    "hyperbolic_temperature",
]
