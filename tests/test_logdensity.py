"""Tests for the problem state, the composed log-density and its gradients."""

from __future__ import annotations

import threading

import numpy as np
import pytest

import jax.numpy as jnp

from sv_indirect import (
    InvalidLength,
    InverseGamma,
    NumericDegenerate,
    ShockBuffers,
    ToyVolProblem,
    Uniform,
    check_gradient_agreement,
    dimension,
    gradient,
    logdensity,
    logdensity_and_gradient,
    resample_shocks,
    simulate_series,
)
from sv_indirect.auxiliary import difference_design, fit_ols, gaussian_loglik, level_design
from sv_indirect.errors import GradientMismatch
from sv_indirect.gradient import GRADIENT_STRATEGIES, get_strategy, make_value_and_grad_fn
from sv_indirect.logdensity import log_density_components, make_logdensity_fn
from sv_indirect.sampler import initial_position
from sv_indirect.simulate import simulate_stochastic


def _make_problem(n_obs: int = 400, num_shocks: int = 400, seed: int = 2024) -> ToyVolProblem:
    ys = simulate_series(0.8, 0.6, n_obs, np.random.default_rng(seed))
    return ToyVolProblem(ys, Uniform(-1.0, 1.0), InverseGamma(1.0, 1.0), num_shocks, seed=seed + 1)


def _theta(problem: ToyVolProblem, rho: float = 0.8, sigma: float = 0.6) -> np.ndarray:
    return initial_position(problem, [rho, sigma])


def test_dimension_is_integer_parameter_count():
    problem = _make_problem()
    assert problem.dimension == 2
    assert isinstance(dimension(problem), int)
    assert len(problem.transformations) == problem.dimension


def test_construction_validates_lengths():
    ys = simulate_series(0.5, 0.5, 50, np.random.default_rng(0))
    with pytest.raises(InvalidLength):
        ToyVolProblem(ys, Uniform(-1.0, 1.0), InverseGamma(1.0, 1.0), 6)
    with pytest.raises(InvalidLength):
        ToyVolProblem(ys[:5], Uniform(-1.0, 1.0), InverseGamma(1.0, 1.0), 50)
    with pytest.raises(InvalidLength):
        ShockBuffers(eps=jnp.ones(10), nu=jnp.zeros(11))


def test_shock_count_need_not_match_observations():
    problem = _make_problem(n_obs=300, num_shocks=500)
    assert problem.num_shocks == 500
    assert np.isfinite(logdensity(problem, _theta(problem)))


def test_seeded_problems_share_shocks():
    a = _make_problem()
    b = _make_problem()
    np.testing.assert_array_equal(np.asarray(a.shocks.eps), np.asarray(b.shocks.eps))
    np.testing.assert_array_equal(np.asarray(a.shocks.nu), np.asarray(b.shocks.nu))


def test_logdensity_is_pure_between_resamples():
    problem = _make_problem()
    theta = _theta(problem)
    before = problem.shocks

    first = logdensity(problem, theta)
    second = logdensity(problem, theta)

    assert np.isfinite(first)
    assert first == second
    assert problem.shocks is before

    resample_shocks(problem)
    third = logdensity(problem, theta)
    assert problem.shocks is not before
    assert third != first


def test_logdensity_matches_manual_composition():
    problem = _make_problem()
    rho, sigma = 0.7, 0.5
    theta = _theta(problem, rho, sigma)
    shocks = problem.shocks

    zs = simulate_stochastic(rho, sigma, shocks.eps, shocks.nu)
    expected = float(problem.prior_rho.logpdf(rho) + problem.prior_sigma.logpdf(sigma))
    for transform, z in zip(problem.transformations, theta):
        expected += float(transform(z)[1])
    for design in (difference_design, level_design):
        fit = fit_ols(*design(zs, 2))
        y_obs, X_obs = design(jnp.asarray(problem.ys), 2)
        expected += float(gaussian_loglik(y_obs - X_obs @ fit.beta, fit.variance))

    np.testing.assert_allclose(logdensity(problem, theta), expected, rtol=1e-8)

    components = log_density_components(problem, theta)
    assert components["valid"]
    np.testing.assert_allclose(components["total"], expected, rtol=1e-8)


def test_from_shocks_matches_regular_construction():
    problem = _make_problem(n_obs=100, num_shocks=100)
    rebuilt = ToyVolProblem.from_shocks(
        problem.ys, *problem.priors, problem.shocks, lag_order=problem.lag_order
    )
    assert set(vars(rebuilt)) == set(vars(problem))
    assert rebuilt.shocks is problem.shocks
    theta = _theta(problem)
    assert logdensity(rebuilt, theta) == logdensity(problem, theta)
    assert len(rebuilt.resample_shocks()) == 100


def test_degenerate_simulation_returns_negative_infinity():
    ys = simulate_series(0.8, 0.6, 100, np.random.default_rng(1))
    shocks = ShockBuffers(eps=jnp.ones(100), nu=jnp.zeros(100))
    problem = ToyVolProblem.from_shocks(ys, Uniform(-1.0, 1.0), InverseGamma(1.0, 1.0), shocks)
    theta = _theta(problem)

    assert logdensity(problem, theta) == -np.inf
    with pytest.raises(NumericDegenerate):
        gradient(problem, theta)


@pytest.mark.parametrize(
    "theta",
    [[40.0, 0.0], [-40.0, 0.0], [0.0, 800.0], [0.0, -800.0], [1e6, 1e6]],
)
def test_saturated_parameters_return_negative_infinity(theta):
    problem = _make_problem(n_obs=200, num_shocks=200)
    theta = np.asarray(theta)

    assert logdensity(problem, theta) == -np.inf
    assert log_density_components(problem, theta)["total"] == -np.inf
    for strategy in ("reverse", "forward"):
        with pytest.raises(NumericDegenerate):
            gradient(problem, theta, strategy=strategy)


def test_gradient_strategies_agree():
    problem = _make_problem()
    theta = _theta(problem)

    forward = gradient(problem, theta, strategy="forward")
    reverse = gradient(problem, theta, strategy="reverse")

    assert forward.shape == (2,)
    np.testing.assert_allclose(forward, reverse, rtol=1e-6)
    check = check_gradient_agreement(problem, theta, raise_on_mismatch=True)
    assert check.agree
    assert check.max_rel_diff <= 1e-6


def test_gradient_matches_central_differences():
    problem = _make_problem()
    theta = _theta(problem, 0.5, 0.4)
    grad = gradient(problem, theta)
    h = 1e-5
    fd = np.empty(2)
    for i in range(2):
        step = np.zeros(2)
        step[i] = h
        fd[i] = (logdensity(problem, theta + step) - logdensity(problem, theta - step)) / (2 * h)
    np.testing.assert_allclose(grad, fd, rtol=1e-4, atol=1e-4)


def test_gradient_does_not_touch_shocks():
    problem = _make_problem()
    shocks = problem.shocks
    eps_copy = np.asarray(shocks.eps).copy()
    value, grad = logdensity_and_gradient(problem, _theta(problem), strategy="forward")
    assert problem.shocks is shocks
    np.testing.assert_array_equal(np.asarray(problem.shocks.eps), eps_copy)
    assert np.isfinite(value)
    assert np.all(np.isfinite(grad))


def test_compiled_value_and_grad_matches_eager():
    problem = _make_problem()
    theta = _theta(problem)
    value, grad = make_value_and_grad_fn(problem)(jnp.asarray(theta))
    np.testing.assert_allclose(float(value), logdensity(problem, theta), rtol=1e-10)
    np.testing.assert_allclose(np.asarray(grad), gradient(problem, theta), rtol=1e-8)


def test_gradient_mismatch_is_reported(monkeypatch):
    class Broken:
        name = "broken"

        def __call__(self, fn, theta):
            return jnp.zeros_like(theta) + 1.0

    problem = _make_problem()
    monkeypatch.setitem(GRADIENT_STRATEGIES, "forward", Broken())
    with pytest.raises(GradientMismatch):
        check_gradient_agreement(problem, _theta(problem), raise_on_mismatch=True)


def test_unknown_strategy():
    with pytest.raises(ValueError):
        get_strategy("central")


def test_snapshot_survives_concurrent_resample():
    problem = _make_problem()
    theta = jnp.asarray(_theta(problem))
    snapshot = problem.shocks
    expected = float(make_logdensity_fn(problem, snapshot)(theta))

    results = []

    def evaluate():
        results.append(float(make_logdensity_fn(problem, snapshot)(theta)))

    threads = [threading.Thread(target=evaluate) for _ in range(4)]
    resampler = threading.Thread(target=problem.resample_shocks)
    for thread in threads:
        thread.start()
    resampler.start()
    for thread in threads + [resampler]:
        thread.join()

    assert problem.shocks is not snapshot
    assert results == [expected] * 4
