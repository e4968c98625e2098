"""Bridges from the real line to each prior's support, with log-Jacobians."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence, Tuple

import jax
import jax.numpy as jnp
import numpy as np

from .errors import SupportViolation
from .priors import UnivariatePrior
from .typing import Array

ArrayLike = float | Array


@dataclass(frozen=True)
class BridgeTransform:
    """Smooth, strictly increasing bijection ``R -> (lower, upper)``.

    ``(-inf, inf)``  identity
    ``(a, inf)``     ``a + exp(z)``
    ``(-inf, b)``    ``b - exp(-z)``
    ``(a, b)``       ``a + (b - a) * sigmoid(z)``

    Outputs are clipped to the nearest representable interior point so that a
    saturated ``exp`` or ``sigmoid`` never lands on the boundary.  Wherever the
    clip is active the log-Jacobian is ``-inf``, which makes the log-density
    reject the point instead of pairing a frozen value with a moving Jacobian.
    """

    lower: float
    upper: float

    def __post_init__(self) -> None:
        if np.isnan(self.lower) or np.isnan(self.upper) or not self.lower < self.upper:
            raise ValueError(f"Invalid support ({self.lower}, {self.upper}).")

    @property
    def kind(self) -> str:
        lower_finite = np.isfinite(self.lower)
        upper_finite = np.isfinite(self.upper)
        if lower_finite and upper_finite:
            return "interval"
        if lower_finite:
            return "lower"
        if upper_finite:
            return "upper"
        return "identity"

    def _interior(self, value: Array) -> Array:
        info = np.finfo(np.float64)
        # stay on normal numbers: XLA on CPU may flush subnormals to zero
        if np.isfinite(self.lower):
            lo = max(np.nextafter(self.lower, np.inf), self.lower + info.tiny)
        else:
            lo = -info.max
        if np.isfinite(self.upper):
            hi = min(np.nextafter(self.upper, -np.inf), self.upper - info.tiny)
        else:
            hi = info.max
        return jnp.clip(value, lo, hi)

    def __call__(self, z: ArrayLike) -> Tuple[Array, Array]:
        """Return ``(value, log|d value / d z|)``."""

        z = jnp.asarray(z, dtype=jnp.float64)
        kind = self.kind
        if kind == "identity":
            return z, jnp.zeros_like(z)
        if kind == "lower":
            raw, log_jac = self.lower + jnp.exp(z), z
        elif kind == "upper":
            raw, log_jac = self.upper - jnp.exp(-z), -z
        else:
            width = self.upper - self.lower
            raw = self.lower + width * jax.nn.sigmoid(z)
            log_jac = jnp.log(width) + jax.nn.log_sigmoid(z) + jax.nn.log_sigmoid(-z)
        value = self._interior(raw)
        # a clipped value is flat in z, so the point carries no density
        return value, jnp.where(value == raw, log_jac, -jnp.inf)

    def inverse(self, x: float) -> float:
        """Map a constrained value back to the real line.

        Raises :class:`~sv_indirect.errors.SupportViolation` when ``x`` is not
        strictly inside ``(lower, upper)``.
        """

        x = float(x)
        if not (np.isfinite(x) and self.lower < x < self.upper):
            raise SupportViolation(
                f"Value {x!r} lies outside the open support ({self.lower}, {self.upper})."
            )
        kind = self.kind
        if kind == "identity":
            return x
        if kind == "lower":
            return float(np.log(x - self.lower))
        if kind == "upper":
            return float(-np.log(self.upper - x))
        p = (x - self.lower) / (self.upper - self.lower)
        return float(np.log(p) - np.log1p(-p))


def bridge_transform(prior: UnivariatePrior) -> BridgeTransform:
    """Build the bridge matching ``prior.support``."""

    lower, upper = prior.support
    return BridgeTransform(float(lower), float(upper))


def parameter_transformations(problem: Any) -> Tuple[BridgeTransform, ...]:
    """One transform per free parameter, in ``(rho, sigma)`` order."""

    return tuple(bridge_transform(prior) for prior in problem.priors)


def dimension(problem: Any) -> int:
    """Number of free parameters, counted from the transforms."""

    return len(parameter_transformations(problem))


def constrain(
    transforms: Sequence[BridgeTransform], theta: ArrayLike
) -> Tuple[Array, Array]:
    """Apply each transform to its coordinate and sum the log-Jacobians."""

    theta = jnp.asarray(theta, dtype=jnp.float64)
    if theta.shape != (len(transforms),):
        raise ValueError(
            f"Expected an unconstrained vector of shape ({len(transforms)},), got {theta.shape}."
        )
    pairs = [t(theta[i]) for i, t in enumerate(transforms)]
    values = jnp.stack([value for value, _ in pairs])
    log_jac = sum((lj for _, lj in pairs), jnp.asarray(0.0, dtype=jnp.float64))
    return values, log_jac


def unconstrain(transforms: Sequence[BridgeTransform], values: Sequence[float]) -> np.ndarray:
    """Inverse of :func:`constrain` used to place a known starting point."""

    values = list(values)
    if len(values) != len(transforms):
        raise ValueError(f"Expected {len(transforms)} constrained values, got {len(values)}.")
    return np.asarray([t.inverse(v) for t, v in zip(transforms, values)], dtype=np.float64)


__all__ = [
    "BridgeTransform",
    "bridge_transform",
    "parameter_transformations",
    "dimension",
    "constrain",
    "unconstrain",
]
