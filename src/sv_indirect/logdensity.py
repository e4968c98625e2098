"""Quasi-likelihood log-density for indirect inference on ``(rho, sigma)``.

One evaluation at an unconstrained ``theta``:

1. map ``theta`` to ``(rho, sigma)`` and collect the log-Jacobian;
2. evaluate the priors;
3. simulate the SV proxy from the problem's current shock buffers;
4. fit both auxiliary regressions on the simulated series;
5. build the same designs from the observed series;
6. score the observed residuals ``y - X @ beta`` under ``N(0, v)`` using the
   coefficients and variance fitted on the *simulated* series;
7. add everything up.

Fitting the auxiliary models on the simulation only, and never on the observed
data, is the auxiliary-matching step of indirect inference.

Draws that make a simulated design ill-conditioned, push a fitted variance to
or below :data:`VARIANCE_FLOOR`, or produce any non-finite term evaluate to
``-inf`` so that a sampler simply rejects them.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, NamedTuple

import jax.numpy as jnp

from .auxiliary import (
    AUXILIARY_SPECIFICATIONS,
    fit_ols_unchecked,
    gaussian_loglik,
    is_well_conditioned,
)
from .priors import UnivariatePrior
from .simulate import DEFAULT_LAG_ORDER, simulate_stochastic
from .transforms import bridge_transform, constrain
from .types import ShockBuffers
from .typing import Array

logger = logging.getLogger(__name__)

#: Fitted residual variances at or below this are degenerate.
VARIANCE_FLOOR = 1e-12


class LogDensityTerms(NamedTuple):
    """Additive pieces of one log-density evaluation."""

    log_prior: Array
    log_jacobian: Array
    quasi_loglik_difference: Array
    quasi_loglik_level: Array
    valid: Array

    def total(self) -> Array:
        value = (
            self.log_prior
            + self.log_jacobian
            + self.quasi_loglik_difference
            + self.quasi_loglik_level
        )
        ok = self.valid & jnp.isfinite(value)
        return jnp.where(ok, value, -jnp.inf)


def log_density_terms(
    theta: Array,
    ys: Array,
    eps: Array,
    nu: Array,
    prior_rho: UnivariatePrior,
    prior_sigma: UnivariatePrior,
    lag_order: int = DEFAULT_LAG_ORDER,
) -> LogDensityTerms:
    """Evaluate every term of the log-density; pure and traceable in ``theta``."""

    transforms = (bridge_transform(prior_rho), bridge_transform(prior_sigma))
    values, log_jacobian = constrain(transforms, theta)
    rho, sigma = values[0], values[1]
    log_prior = prior_rho.logpdf(rho) + prior_sigma.logpdf(sigma)

    zs = simulate_stochastic(rho, sigma, eps, nu, lag_order)
    observed = jnp.asarray(ys, dtype=jnp.float64)

    valid = jnp.asarray(True)
    quasi = []
    for design in AUXILIARY_SPECIFICATIONS:
        fit, cond = fit_ols_unchecked(*design(zs, lag_order))
        ok = (
            is_well_conditioned(cond)
            & jnp.all(jnp.isfinite(fit.beta))
            & (fit.variance > VARIANCE_FLOOR)
        )
        # keep the rejected branch finite so it cannot poison derivatives
        beta = jnp.where(ok, fit.beta, jnp.zeros_like(fit.beta))
        variance = jnp.where(ok, fit.variance, 1.0)
        y_obs, X_obs = design(observed, lag_order)
        quasi.append(gaussian_loglik(y_obs - X_obs @ beta, variance))
        valid = valid & ok

    return LogDensityTerms(
        log_prior=log_prior,
        log_jacobian=log_jacobian,
        quasi_loglik_difference=quasi[0],
        quasi_loglik_level=quasi[1],
        valid=valid,
    )


def log_density_pure(
    theta: Array,
    ys: Array,
    eps: Array,
    nu: Array,
    prior_rho: UnivariatePrior,
    prior_sigma: UnivariatePrior,
    lag_order: int = DEFAULT_LAG_ORDER,
) -> Array:
    """Scalar log-density, ``-inf`` for rejected draws."""

    return log_density_terms(theta, ys, eps, nu, prior_rho, prior_sigma, lag_order).total()


def make_logdensity_fn(
    problem, shocks: ShockBuffers | None = None
) -> Callable[[Array], Array]:
    """Close the log-density over one shock snapshot.

    The returned function is pure in ``theta`` and suitable for
    :func:`jax.jit`, :func:`jax.grad` and :mod:`blackjax`.
    """

    snapshot = problem.shocks if shocks is None else shocks
    ys = jnp.asarray(problem.ys, dtype=jnp.float64)
    prior_rho, prior_sigma = problem.priors
    lag_order = problem.lag_order

    def logdensity_fn(theta: Array) -> Array:
        return log_density_pure(
            theta, ys, snapshot.eps, snapshot.nu, prior_rho, prior_sigma, lag_order
        )

    return logdensity_fn


def logdensity(problem, theta) -> float:
    """Sampler-facing log-density; reads the current shocks and mutates nothing."""

    value = float(make_logdensity_fn(problem)(jnp.asarray(theta, dtype=jnp.float64)))
    if value == -float("inf"):
        logger.debug("Rejected theta=%s (degenerate auxiliary fit)", list(map(float, theta)))
    return value


def log_density_components(problem, theta) -> Dict[str, float]:
    """Break one evaluation into its additive terms, for diagnostics."""

    snapshot = problem.shocks
    prior_rho, prior_sigma = problem.priors
    terms = log_density_terms(
        jnp.asarray(theta, dtype=jnp.float64),
        problem.ys,
        snapshot.eps,
        snapshot.nu,
        prior_rho,
        prior_sigma,
        problem.lag_order,
    )
    return {
        "log_prior": float(terms.log_prior),
        "log_jacobian": float(terms.log_jacobian),
        "quasi_loglik_difference": float(terms.quasi_loglik_difference),
        "quasi_loglik_level": float(terms.quasi_loglik_level),
        "valid": bool(terms.valid),
        "total": float(terms.total()),
    }


__all__ = [
    "VARIANCE_FLOOR",
    "LogDensityTerms",
    "log_density_terms",
    "log_density_pure",
    "make_logdensity_fn",
    "logdensity",
    "log_density_components",
]
