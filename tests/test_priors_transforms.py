"""Tests for priors and the unconstraining bridge transforms."""

from __future__ import annotations

import numpy as np
import pytest
from scipy import stats

import jax
import jax.numpy as jnp

from sv_indirect.errors import SupportViolation
from sv_indirect.priors import (
    HalfNormal,
    InverseGamma,
    Normal,
    Uniform,
    prior_from_spec,
)
from sv_indirect.transforms import BridgeTransform, bridge_transform, constrain, unconstrain

PRIORS = [
    Uniform(-1.0, 1.0),
    InverseGamma(2.0, 1.5),
    Normal(0.3, 2.0),
    HalfNormal(0.5),
]


@pytest.mark.parametrize("prior", PRIORS, ids=lambda p: type(p).__name__)
def test_logpdf_matches_scipy(prior):
    dist = prior.to_scipy()
    points = dist.ppf(np.array([0.05, 0.3, 0.5, 0.9]))
    for x in points:
        np.testing.assert_allclose(float(prior.logpdf(x)), dist.logpdf(x), rtol=1e-10)


def test_logpdf_outside_support_is_negative_infinity():
    assert float(Uniform(-1.0, 1.0).logpdf(1.5)) == -np.inf
    assert float(InverseGamma(1.0, 1.0).logpdf(-0.2)) == -np.inf
    assert float(HalfNormal(1.0).logpdf(-0.2)) == -np.inf


def test_invalid_hyper_parameters():
    with pytest.raises(ValueError):
        Uniform(1.0, -1.0)
    with pytest.raises(ValueError):
        InverseGamma(0.0, 1.0)
    with pytest.raises(ValueError):
        HalfNormal(-2.0)


def test_prior_from_spec():
    prior = prior_from_spec({"family": "inverse_gamma", "shape": 1, "scale": 2})
    assert prior == InverseGamma(1.0, 2.0)
    with pytest.raises(ValueError):
        prior_from_spec({"family": "cauchy"})


@pytest.mark.parametrize("prior", PRIORS, ids=lambda p: type(p).__name__)
def test_round_trip_inside_support(prior):
    transform = bridge_transform(prior)
    for x in prior.ppf(np.array([0.01, 0.2, 0.5, 0.8, 0.99])):
        value, _ = transform(transform.inverse(x))
        np.testing.assert_allclose(float(value), x, rtol=1e-10, atol=1e-12)


@pytest.mark.parametrize("prior", PRIORS, ids=lambda p: type(p).__name__)
def test_forward_stays_inside_support(prior):
    transform = bridge_transform(prior)
    lower, upper = prior.support
    for z in (-1e6, -800.0, -40.0, -1.0, 0.0, 1.0, 40.0, 800.0, 1e6):
        value, log_jac = transform(z)
        assert lower < float(value) < upper
        assert not np.isnan(float(log_jac))
    for z in (-1.0, 0.0, 1.0):
        assert np.isfinite(float(transform(z)[1]))


@pytest.mark.parametrize(
    "transform, z",
    [
        (BridgeTransform(-1.0, 1.0), 40.0),
        (BridgeTransform(-1.0, 1.0), -40.0),
        (BridgeTransform(0.0, np.inf), -800.0),
        (BridgeTransform(0.0, np.inf), 800.0),
        (BridgeTransform(-np.inf, 2.0), -800.0),
    ],
)
def test_saturated_points_have_no_density(transform, z):
    value, log_jac = transform(z)
    assert transform.lower < float(value) < transform.upper
    assert float(log_jac) == -np.inf


@pytest.mark.parametrize(
    "transform",
    [
        BridgeTransform(-1.0, 1.0),
        BridgeTransform(0.0, np.inf),
        BridgeTransform(-np.inf, 2.0),
        BridgeTransform(-np.inf, np.inf),
    ],
    ids=["interval", "lower", "upper", "identity"],
)
def test_log_jacobian_matches_derivative(transform):
    for z in (-2.0, 0.0, 0.7, 3.0):
        derivative = jax.grad(lambda u: transform(u)[0])(jnp.asarray(z))
        _, log_jac = transform(z)
        np.testing.assert_allclose(np.log(float(derivative)), float(log_jac), rtol=1e-10, atol=1e-12)


def test_inverse_rejects_boundary_and_outside_values():
    transform = bridge_transform(Uniform(-1.0, 1.0))
    for bad in (-1.0, 1.0, 1.5, np.nan):
        with pytest.raises(SupportViolation):
            transform.inverse(bad)
    with pytest.raises(SupportViolation):
        bridge_transform(InverseGamma(1.0, 1.0)).inverse(0.0)


def test_constrain_and_unconstrain_vectors():
    transforms = (bridge_transform(Uniform(-1.0, 1.0)), bridge_transform(InverseGamma(1.0, 1.0)))
    theta = unconstrain(transforms, [0.8, 0.6])
    assert theta.shape == (2,)
    values, log_jac = constrain(transforms, theta)
    np.testing.assert_allclose(np.asarray(values), [0.8, 0.6], rtol=1e-12)
    expected = float(transforms[0](theta[0])[1] + transforms[1](theta[1])[1])
    np.testing.assert_allclose(float(log_jac), expected)
    with pytest.raises(ValueError):
        constrain(transforms, jnp.zeros(3))
