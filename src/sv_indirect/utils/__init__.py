"""Utility helpers for the :mod:`sv_indirect` package."""

from .logging import setup_logging
from .rng import DEFAULT_SEED, RNGManager

__all__ = ["DEFAULT_SEED", "RNGManager", "setup_logging"]
