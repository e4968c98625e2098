"""Simulator for the discrete-time stochastic-volatility proxy.

The model, with measurement shocks ``eps`` and transition shocks ``nu``::

    z_t = x_t + log(eps_t) + c           eps_t ~ chi^2(1)
    x_t = rho * x_{t-1} + sigma * nu_t    nu_t ~ N(0, 1)

``c`` is ``-E[log chi^2(1)]`` so that ``log(eps_t) + c`` has mean zero.  The
first latent value is drawn from the stationary marginal of the AR(1).
"""
from __future__ import annotations

import jax
import jax.numpy as jnp
import numpy as np
from jax import lax

from .errors import InvalidLength, NumericDegenerate
from .types import ShockBuffers
from .typing import Array

#: ``-E[log chi^2(1)] = euler_gamma + log 2``.
LOG_CHISQ_MEAN_CORRECTION = float(np.euler_gamma + np.log(2.0))

DEFAULT_LAG_ORDER = 2


def minimum_length(lag_order: int = DEFAULT_LAG_ORDER) -> int:
    """Shortest series for which both auxiliary designs have a row per column."""

    if lag_order < 1:
        raise ValueError(f"Lag order must be at least 1, got {lag_order}.")
    return 2 * int(lag_order) + 3


def validate_shocks(eps: Array, nu: Array, lag_order: int = DEFAULT_LAG_ORDER) -> None:
    """Check shock shapes and, for concrete arrays, positivity of ``eps``."""

    eps_shape = jnp.shape(eps)
    nu_shape = jnp.shape(nu)
    if len(eps_shape) != 1 or len(nu_shape) != 1:
        raise InvalidLength("Shock sequences must be one-dimensional.")
    if eps_shape != nu_shape:
        raise InvalidLength(
            f"Shock sequences must have equal length, got {eps_shape[0]} and {nu_shape[0]}."
        )
    required = minimum_length(lag_order)
    if eps_shape[0] < required:
        raise InvalidLength(
            f"Need at least {required} shocks for lag order {lag_order}, got {eps_shape[0]}."
        )
    try:
        eps_values = np.asarray(eps)
    except jax.errors.TracerArrayConversionError:
        return
    if not np.all(eps_values > 0.0):
        raise NumericDegenerate("Measurement shocks must be strictly positive to take their log.")


def latent_path(rho: Array, sigma: Array, nu: Array) -> Array:
    """AR(1) path started from its stationary marginal."""

    rho = jnp.asarray(rho, dtype=jnp.float64)
    sigma = jnp.asarray(sigma, dtype=jnp.float64)
    nu = jnp.asarray(nu, dtype=jnp.float64)
    x0 = nu[0] * sigma * (1.0 - rho**2) ** -0.5

    def _step(x_prev, nu_t):
        x = rho * x_prev + sigma * nu_t
        return x, x

    _, tail = lax.scan(_step, x0, nu[1:])
    return jnp.concatenate((x0[None], tail))


def simulate_stochastic(
    rho: Array,
    sigma: Array,
    eps: Array,
    nu: Array,
    lag_order: int = DEFAULT_LAG_ORDER,
) -> Array:
    """Simulate the observed-series proxy from fixed shocks.

    Deterministic in its inputs and differentiable in ``(rho, sigma)``.
    """

    validate_shocks(eps, nu, lag_order)
    xs = latent_path(rho, sigma, nu)
    return xs + jnp.log(jnp.asarray(eps, dtype=jnp.float64)) + LOG_CHISQ_MEAN_CORRECTION


def draw_shocks(rng: np.random.Generator, num_shocks: int) -> ShockBuffers:
    """Draw ``num_shocks`` chi-square(1) and standard normal shocks."""

    eps = rng.chisquare(1.0, size=int(num_shocks))
    nu = rng.standard_normal(size=int(num_shocks))
    return ShockBuffers(eps=jnp.asarray(eps), nu=jnp.asarray(nu))


def simulate_series(
    rho: float,
    sigma: float,
    num_steps: int,
    rng: np.random.Generator,
    lag_order: int = DEFAULT_LAG_ORDER,
) -> np.ndarray:
    """Simulate a fresh series with newly drawn shocks, e.g. to synthesise data."""

    shocks = draw_shocks(rng, num_steps)
    zs = simulate_stochastic(rho, sigma, shocks.eps, shocks.nu, lag_order)
    return np.asarray(zs, dtype=np.float64)


__all__ = [
    "LOG_CHISQ_MEAN_CORRECTION",
    "DEFAULT_LAG_ORDER",
    "minimum_length",
    "validate_shocks",
    "latent_path",
    "simulate_stochastic",
    "draw_shocks",
    "simulate_series",
]
