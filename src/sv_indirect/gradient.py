"""Gradient of the quasi-likelihood log-density under interchangeable autodiff modes."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Protocol, Tuple

import jax
import jax.numpy as jnp
import numpy as np

from .errors import GradientMismatch, NumericDegenerate
from .logdensity import make_logdensity_fn
from .types import ShockBuffers
from .typing import Array, LogDensityFn, LogDensityWithGrad

logger = logging.getLogger(__name__)


class GradientStrategy(Protocol):
    """Differentiate a scalar function of a vector at one point."""

    name: str

    def __call__(self, fn: LogDensityFn, theta: Array) -> Array:
        ...


@dataclass(frozen=True)
class ReverseMode:
    """Reverse-mode differentiation via :func:`jax.grad`."""

    name: str = "reverse"

    def __call__(self, fn: LogDensityFn, theta: Array) -> Array:
        return jax.grad(fn)(theta)


@dataclass(frozen=True)
class ForwardMode:
    """Forward-mode differentiation via :func:`jax.jacfwd`."""

    name: str = "forward"

    def __call__(self, fn: LogDensityFn, theta: Array) -> Array:
        return jax.jacfwd(fn)(theta)


GRADIENT_STRATEGIES: Dict[str, GradientStrategy] = {
    "reverse": ReverseMode(),
    "forward": ForwardMode(),
}


def get_strategy(strategy: str | GradientStrategy) -> GradientStrategy:
    if not isinstance(strategy, str):
        return strategy
    try:
        return GRADIENT_STRATEGIES[strategy]
    except KeyError:
        known = ", ".join(sorted(GRADIENT_STRATEGIES))
        raise ValueError(f"Unknown gradient strategy {strategy!r}; expected one of: {known}.") from None


def _evaluate(
    problem, theta, strategy: str | GradientStrategy, shocks: ShockBuffers | None
) -> Tuple[float, np.ndarray]:
    fn = make_logdensity_fn(problem, shocks)
    theta = jnp.asarray(theta, dtype=jnp.float64)
    value = float(fn(theta))
    if not np.isfinite(value):
        raise NumericDegenerate(
            f"Log-density is {value} at theta={np.asarray(theta).tolist()}; no gradient exists there."
        )
    grad = np.asarray(get_strategy(strategy)(fn, theta), dtype=np.float64)
    if not np.all(np.isfinite(grad)):
        raise NumericDegenerate(
            f"Non-finite gradient {grad.tolist()} at theta={np.asarray(theta).tolist()}."
        )
    return value, grad


def gradient(problem, theta, strategy: str | GradientStrategy = "reverse") -> np.ndarray:
    """Gradient of :func:`~sv_indirect.logdensity.logdensity` with respect to ``theta``.

    Raises :class:`~sv_indirect.errors.NumericDegenerate` instead of returning a
    substitute when the value or gradient is not finite.
    """

    return _evaluate(problem, theta, strategy, None)[1]


def logdensity_and_gradient(
    problem, theta, strategy: str | GradientStrategy = "reverse"
) -> Tuple[float, np.ndarray]:
    """Value and gradient from one shock snapshot."""

    return _evaluate(problem, theta, strategy, None)


def make_value_and_grad_fn(problem, shocks: ShockBuffers | None = None) -> LogDensityWithGrad:
    """Compiled reverse-mode value-and-gradient closure over one shock snapshot."""

    return jax.jit(jax.value_and_grad(make_logdensity_fn(problem, shocks)))


@dataclass
class GradientCheck:
    """Side-by-side forward and reverse gradients at one point."""

    theta: np.ndarray
    forward: np.ndarray
    reverse: np.ndarray
    max_abs_diff: float
    max_rel_diff: float
    agree: bool


def check_gradient_agreement(
    problem,
    theta,
    rtol: float = 1e-6,
    atol: float = 1e-8,
    *,
    raise_on_mismatch: bool = False,
) -> GradientCheck:
    """Differentiate with both strategies on the same shocks and compare."""

    shocks = problem.shocks
    _, forward = _evaluate(problem, theta, "forward", shocks)
    _, reverse = _evaluate(problem, theta, "reverse", shocks)
    abs_diff = np.abs(forward - reverse)
    scale = np.maximum(np.abs(forward), np.abs(reverse))
    rel_diff = np.divide(abs_diff, scale, out=np.zeros_like(abs_diff), where=scale > 0.0)
    agree = bool(np.all(abs_diff <= atol + rtol * scale))
    check = GradientCheck(
        theta=np.asarray(theta, dtype=np.float64),
        forward=forward,
        reverse=reverse,
        max_abs_diff=float(np.max(abs_diff)),
        max_rel_diff=float(np.max(rel_diff)),
        agree=agree,
    )
    if agree:
        logger.info("Forward and reverse gradients agree (max rel diff %.2e)", check.max_rel_diff)
    else:
        logger.warning(
            "Forward %s and reverse %s gradients disagree (max rel diff %.2e)",
            forward.tolist(),
            reverse.tolist(),
            check.max_rel_diff,
        )
        if raise_on_mismatch:
            raise GradientMismatch(
                f"Gradients disagree at theta={check.theta.tolist()}: "
                f"forward={forward.tolist()}, reverse={reverse.tolist()}."
            )
    return check


__all__ = [
    "GradientStrategy",
    "ReverseMode",
    "ForwardMode",
    "GRADIENT_STRATEGIES",
    "get_strategy",
    "gradient",
    "logdensity_and_gradient",
    "make_value_and_grad_fn",
    "GradientCheck",
    "check_gradient_agreement",
]
