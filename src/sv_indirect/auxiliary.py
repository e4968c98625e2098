"""Auxiliary regressions standing in for the intractable SV likelihood.

Two fixed specifications are fitted by ordinary least squares:

``difference_design``
    AR(``K``) in first differences with an intercept and the lagged level,
    capturing short-run dynamics.
``level_design``
    AR(``K``) in levels with an intercept, capturing persistence.

All lagged columns are aligned by dropping the first ``K`` observations of the
series they are built from.  Everything here is written in :mod:`jax.numpy` so
the fits can be traced and differentiated with respect to the simulated series.
"""
from __future__ import annotations

from typing import Callable, NamedTuple, Sequence, Tuple

import jax.numpy as jnp
from jax import lax
from jax.scipy.linalg import solve_triangular

from .errors import SingularDesign
from .typing import Array

#: Designs whose condition number exceeds this are treated as rank-deficient.
MAX_CONDITION_NUMBER = 1e10

Design = Tuple[Array, Array]


class AuxiliaryFit(NamedTuple):
    """OLS coefficients and maximum-likelihood residual variance."""

    beta: Array
    variance: Array


def lag(xs: Array, n: int, K: int) -> Array:
    """Lag-``n`` operator on ``xs`` aligned for a maximum of ``K`` lags."""

    if not 0 <= n <= K:
        raise ValueError(f"Lag {n} must lie in [0, {K}].")
    xs = jnp.asarray(xs)
    return xs[K - n : xs.shape[0] - n]


def lag_matrix(xs: Array, lags: Sequence[int], K: int | None = None) -> Array:
    """Stack the requested lags of ``xs`` as columns, in the order given.

    Rows are aligned to the valid range of the longest lag, so ``[1, 2, 3, 4, 5]``
    with lags ``[1, 2, 3]`` gives ``[[3, 2, 1], [4, 3, 2]]``.
    """

    lags = list(lags)
    if not lags:
        raise ValueError("At least one lag is required.")
    if K is None:
        K = max(lags)
    return jnp.stack([lag(xs, n, K) for n in lags], axis=1)


def difference_design(zs: Array, K: int) -> Design:
    """Target and regressors for the first-difference specification.

    Regresses ``dz_t`` on ``dz_{t-1}, ..., dz_{t-K}``, an intercept and
    ``z_{t-1}``.
    """

    zs = jnp.asarray(zs, dtype=jnp.float64)
    deltas = jnp.diff(zs)
    rows = deltas.shape[0] - K
    X = jnp.column_stack(
        (
            lag_matrix(deltas, range(1, K + 1), K),
            jnp.ones(rows, dtype=zs.dtype),
            lag(zs, 1, K + 1),
        )
    )
    return lag(deltas, 0, K), X


def level_design(zs: Array, K: int) -> Design:
    """Target and regressors for the level specification: intercept and ``K`` lags."""

    zs = jnp.asarray(zs, dtype=jnp.float64)
    rows = zs.shape[0] - K
    X = jnp.column_stack(
        (jnp.ones(rows, dtype=zs.dtype), lag_matrix(zs, range(1, K + 1), K))
    )
    return lag(zs, 0, K), X


AUXILIARY_SPECIFICATIONS: Tuple[Callable[[Array, int], Design], ...] = (
    difference_design,
    level_design,
)


def condition_number(X: Array) -> Array:
    """2-norm condition number of ``X``; carries no gradient."""

    s = jnp.linalg.svd(lax.stop_gradient(X), compute_uv=False)
    return s[0] / s[-1]


def fit_ols_unchecked(y: Array, X: Array) -> Tuple[AuxiliaryFit, Array]:
    """Least squares via a thin QR factorisation.

    Returns the fit together with the design's condition number so that traced
    callers can decide what to do with an ill-conditioned draw.
    """

    y = jnp.asarray(y, dtype=jnp.float64)
    X = jnp.asarray(X, dtype=jnp.float64)
    Q, R = jnp.linalg.qr(X, mode="reduced")
    beta = solve_triangular(R, Q.T @ y, lower=False)
    resid = y - X @ beta
    variance = jnp.mean(resid**2)
    return AuxiliaryFit(beta=beta, variance=variance), condition_number(X)


def is_well_conditioned(cond: Array) -> Array:
    return jnp.isfinite(cond) & (cond < MAX_CONDITION_NUMBER)


def fit_ols(y: Array, X: Array) -> AuxiliaryFit:
    """Eager OLS fit that raises :class:`SingularDesign` on a rank-deficient design."""

    rows, cols = jnp.shape(X)
    if rows < cols:
        raise SingularDesign(f"Design has {rows} rows but {cols} columns.")
    fit, cond = fit_ols_unchecked(y, X)
    if not bool(is_well_conditioned(cond)):
        raise SingularDesign(
            f"Design matrix is numerically rank-deficient (condition number {float(cond):.3g})."
        )
    return fit


def gaussian_loglik(resid: Array, variance: Array) -> Array:
    """Sum of ``log N(r; 0, variance)`` over the residual vector."""

    resid = jnp.asarray(resid, dtype=jnp.float64)
    n = resid.shape[0]
    return -0.5 * (n * jnp.log(2.0 * jnp.pi * variance) + jnp.sum(resid**2) / variance)


__all__ = [
    "MAX_CONDITION_NUMBER",
    "AuxiliaryFit",
    "AUXILIARY_SPECIFICATIONS",
    "lag",
    "lag_matrix",
    "difference_design",
    "level_design",
    "condition_number",
    "fit_ols_unchecked",
    "is_well_conditioned",
    "fit_ols",
    "gaussian_loglik",
]
