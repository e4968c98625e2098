"""Core type definitions for the indirect-inference module.

The classes defined here capture the shock buffers shared by repeated
log-density evaluations and the structure of the sampler results.  They are
dataclass-based so that they play nicely with static type checking.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

import jax.numpy as jnp
import numpy as np
from numpy.typing import NDArray

from .errors import InvalidLength


@dataclass(frozen=True)
class ShockBuffers:
    """Fixed shocks driving the simulator.

    Attributes
    ----------
    eps:
        Measurement shocks :math:`\\epsilon_t \\sim \\chi^2(1)` with shape ``(M,)``.
    nu:
        Transition shocks :math:`\\nu_t \\sim N(0, 1)` with shape ``(M,)``.
    """

    eps: jnp.ndarray
    nu: jnp.ndarray

    def __post_init__(self) -> None:
        eps = jnp.asarray(self.eps, dtype=jnp.float64)
        nu = jnp.asarray(self.nu, dtype=jnp.float64)
        if eps.ndim != 1 or nu.ndim != 1:
            raise InvalidLength("Shock buffers must be one-dimensional.")
        if eps.shape != nu.shape:
            raise InvalidLength(
                f"Shock buffers must have equal length, got {eps.shape[0]} and {nu.shape[0]}."
            )
        object.__setattr__(self, "eps", eps)
        object.__setattr__(self, "nu", nu)

    def __len__(self) -> int:
        return int(self.eps.shape[0])


@dataclass
class ChainResult:
    """Draws and diagnostics from one sampler chain."""

    draws_unconstrained: NDArray[np.float64]
    draws_constrained: Dict[str, NDArray[np.float64]]
    logdensity: NDArray[np.float64]
    acceptance: NDArray[np.float64]
    divergences: int
    step_size: float
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    @property
    def accept_rate(self) -> float:
        return float(np.mean(self.acceptance)) if self.acceptance.size else float("nan")


__all__ = ["ShockBuffers", "ChainResult"]
