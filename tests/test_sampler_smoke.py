"""Smoke tests for the NUTS driver and posterior summaries."""

from __future__ import annotations

import numpy as np

import jax

from sv_indirect import InverseGamma, ToyVolProblem, Uniform, simulate_series
from sv_indirect.config import SamplerConfig
from sv_indirect.diagnostics import summarize, to_inference_data
from sv_indirect.sampler import initial_position, run_chains, run_nuts
from sv_indirect.types import ChainResult


def _problem() -> ToyVolProblem:
    ys = simulate_series(0.8, 0.6, 200, np.random.default_rng(9))
    return ToyVolProblem(ys, Uniform(-1.0, 1.0), InverseGamma(1.0, 1.0), 200, seed=10)


def _small_cfg(**overrides) -> SamplerConfig:
    params = dict(num_warmup=10, num_samples=8, num_chains=1, max_num_doublings=4)
    params.update(overrides)
    return SamplerConfig(**params)


def test_initial_position_defaults_to_prior_medians():
    problem = _problem()
    theta0 = initial_position(problem)
    values = [float(t(z)[0]) for t, z in zip(problem.transformations, theta0)]
    np.testing.assert_allclose(values, [p.median() for p in problem.priors], rtol=1e-10)


def test_run_nuts_shapes_and_support():
    problem = _problem()
    result = run_nuts(problem, _small_cfg(), [0.8, 0.6], key=jax.random.PRNGKey(1))

    assert result.draws_unconstrained.shape == (8, 2)
    assert result.draws_constrained["rho"].shape == (8,)
    assert np.all(np.abs(result.draws_constrained["rho"]) < 1.0)
    assert np.all(result.draws_constrained["sigma"] > 0.0)
    assert np.all(np.isfinite(result.logdensity))
    assert 0.0 <= result.accept_rate <= 1.0
    assert result.step_size > 0.0


def test_run_chains_resamples_between_chains_only():
    problem = _problem()
    initial = problem.shocks
    results = run_chains(problem, _small_cfg(num_chains=2), [0.8, 0.6], key=jax.random.PRNGKey(2))
    assert len(results) == 2
    assert problem.shocks is not initial

    problem = _problem()
    initial = problem.shocks
    run_chains(
        problem,
        _small_cfg(num_chains=2, resample_between_chains=False),
        [0.8, 0.6],
        key=jax.random.PRNGKey(2),
    )
    assert problem.shocks is initial


def _fake_chain(rng: np.random.Generator, n: int) -> ChainResult:
    draws = rng.standard_normal((n, 2))
    return ChainResult(
        draws_unconstrained=draws,
        draws_constrained={"rho": np.tanh(draws[:, 0]), "sigma": np.exp(draws[:, 1])},
        logdensity=rng.standard_normal(n),
        acceptance=rng.uniform(size=n),
        divergences=0,
        step_size=0.1,
    )


def test_summary_table():
    rng = np.random.default_rng(0)
    results = [_fake_chain(rng, 100), _fake_chain(rng, 100)]
    idata = to_inference_data(results)
    assert idata.posterior["rho"].shape == (2, 100)

    table = summarize(results)
    assert list(table.index) == ["rho", "sigma"]
    assert "mean" in table.columns
    np.testing.assert_allclose(
        table.loc["rho", "mean"],
        np.mean([r.draws_constrained["rho"] for r in results]),
    )
