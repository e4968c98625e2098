"""NUTS driver for the indirect-inference posterior.

The sampler itself is :mod:`blackjax`; this module only wires the
quasi-likelihood log-density into window adaptation and NUTS, converts draws
back to ``(rho, sigma)``, and owns the shock-resampling policy between chains.
Shocks are never resampled within a chain: every trajectory of one chain sees
the same log-density.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import blackjax
import jax
import jax.numpy as jnp
import numpy as np
from blackjax import diagnostics

from .config import SamplerConfig
from .logdensity import make_logdensity_fn
from .problem import ToyVolProblem
from .transforms import constrain, unconstrain
from .types import ChainResult
from .typing import PRNGKey

logger = logging.getLogger(__name__)

PARAMETER_NAMES = ("rho", "sigma")


def initial_position(
    problem: ToyVolProblem, init_values: Optional[Sequence[float]] = None
) -> np.ndarray:
    """Unconstrained starting point from a constrained guess, or the prior medians."""

    if init_values is None:
        init_values = [prior.median() for prior in problem.priors]
    return unconstrain(problem.transformations, init_values)


def _constrained_draws(problem: ToyVolProblem, draws_u: np.ndarray) -> dict:
    values = np.asarray(
        jax.vmap(lambda th: constrain(problem.transformations, th)[0])(jnp.asarray(draws_u))
    )
    return {name: values[:, i] for i, name in enumerate(PARAMETER_NAMES)}


def run_nuts(
    problem: ToyVolProblem,
    cfg: SamplerConfig,
    init_values: Optional[Sequence[float]] = None,
    *,
    key: Optional[PRNGKey] = None,
) -> ChainResult:
    """Adapt and run one NUTS chain on the problem's current shocks."""

    key = jax.random.PRNGKey(0) if key is None else key
    logdensity_fn = make_logdensity_fn(problem)
    theta0 = jnp.asarray(initial_position(problem, init_values))
    if not np.isfinite(float(logdensity_fn(theta0))):
        raise ValueError(
            f"Initial point {np.asarray(theta0).tolist()} has zero posterior density; "
            "choose another starting value."
        )

    adapt_key, draw_key = jax.random.split(key)
    adapt = blackjax.window_adaptation(
        blackjax.nuts,
        logdensity_fn,
        is_mass_matrix_diagonal=True,
        initial_step_size=float(cfg.initial_step_size),
        target_acceptance_rate=float(cfg.target_accept),
        max_num_doublings=int(cfg.max_num_doublings),
    )
    num_warmup = max(int(cfg.num_warmup), 1)
    logger.info("Window adaptation for %d steps", num_warmup)
    adapt_res, _ = adapt.run(adapt_key, theta0, num_warmup)
    params = adapt_res.parameters
    step_size = float(params["step_size"])
    logger.info("Adapted step size %.4g", step_size)

    nuts = blackjax.nuts(
        logdensity_fn,
        step_size=params["step_size"],
        inverse_mass_matrix=params["inverse_mass_matrix"],
        max_num_doublings=int(cfg.max_num_doublings),
    )
    step = jax.jit(nuts.step)

    state = adapt_res.state
    positions: List[np.ndarray] = []
    logdens: List[float] = []
    accepts: List[float] = []
    divergences = 0
    depths: List[int] = []
    for _ in range(int(cfg.num_samples)):
        draw_key, step_key = jax.random.split(draw_key)
        state, info = step(step_key, state)
        positions.append(np.asarray(state.position))
        logdens.append(float(state.logdensity))
        accepts.append(float(info.acceptance_rate))
        divergences += int(info.is_divergent)
        depths.append(int(info.num_trajectory_expansions))

    dim = problem.dimension
    draws_u = np.stack(positions, axis=0) if positions else np.zeros((0, dim))
    if draws_u.shape[0] >= 4:
        ess = np.asarray(
            diagnostics.effective_sample_size(draws_u[np.newaxis, ...], chain_axis=0, sample_axis=1)
        )
    else:
        ess = np.full(dim, np.nan)

    result = ChainResult(
        draws_unconstrained=draws_u,
        draws_constrained=_constrained_draws(problem, draws_u) if positions else {
            name: np.zeros(0) for name in PARAMETER_NAMES
        },
        logdensity=np.asarray(logdens, dtype=np.float64),
        acceptance=np.asarray(accepts, dtype=np.float64),
        divergences=divergences,
        step_size=step_size,
        diagnostics={
            "ess_unconstrained": dict(zip(PARAMETER_NAMES, ess.tolist())),
            "max_tree_depth": int(max(depths)) if depths else 0,
            "inverse_mass_matrix": np.asarray(params["inverse_mass_matrix"]),
        },
    )
    logger.info(
        "Chain finished: acceptance %.3f, %d divergences",
        result.accept_rate,
        result.divergences,
    )
    return result


def run_chains(
    problem: ToyVolProblem,
    cfg: SamplerConfig,
    init_values: Optional[Sequence[float]] = None,
    *,
    key: Optional[PRNGKey] = None,
) -> List[ChainResult]:
    """Run ``cfg.num_chains`` chains back to back, refreshing shocks between them when asked."""

    key = jax.random.PRNGKey(0) if key is None else key
    chain_keys = jax.random.split(key, max(int(cfg.num_chains), 1))
    results: List[ChainResult] = []
    for index, chain_key in enumerate(chain_keys):
        if index > 0 and cfg.resample_between_chains:
            problem.resample_shocks()
        logger.info("Starting chain %d of %d", index + 1, len(chain_keys))
        results.append(run_nuts(problem, cfg, init_values, key=chain_key))
    return results


__all__ = ["PARAMETER_NAMES", "initial_position", "run_nuts", "run_chains"]
