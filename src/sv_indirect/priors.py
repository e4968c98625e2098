"""Univariate priors for the persistence and volatility-of-volatility parameters.

Each prior exposes three things the rest of the package relies on:

``support``
    Open interval ``(lower, upper)`` used to build the unconstraining bridge
    transform in :mod:`sv_indirect.transforms`.
``logpdf``
    Log-density written in :mod:`jax.numpy` so that it can be traced and
    differentiated inside the quasi-likelihood.  Values outside the support
    receive ``-inf``.
``to_scipy``
    The matching frozen :mod:`scipy.stats` distribution, used host-side for
    the inverse CDF, random starting points and cross-checks.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Tuple

import jax.numpy as jnp
import numpy as np
from jax.scipy.special import gammaln
from scipy import stats

from .typing import Array

ArrayLike = float | Array


def _positive(name: str, value: float) -> float:
    value = float(value)
    if not np.isfinite(value) or value <= 0.0:
        raise ValueError(f"{name} must be strictly positive and finite, got {value}.")
    return value


class UnivariatePrior:
    """Shared host-side behaviour of the concrete prior families."""

    @property
    def support(self) -> Tuple[float, float]:
        raise NotImplementedError

    def logpdf(self, x: ArrayLike) -> Array:
        raise NotImplementedError

    def to_scipy(self) -> Any:
        raise NotImplementedError

    def in_support(self, x: float) -> bool:
        """Return ``True`` when ``x`` lies strictly inside the support."""

        lower, upper = self.support
        x = float(x)
        return bool(np.isfinite(x) and lower < x < upper)

    def ppf(self, q: ArrayLike) -> np.ndarray:
        return np.asarray(self.to_scipy().ppf(np.asarray(q, dtype=float)), dtype=float)

    def median(self) -> float:
        return float(self.ppf(0.5))

    def sample(self, rng: np.random.Generator, size: int | None = None) -> np.ndarray:
        return np.asarray(self.to_scipy().rvs(size=size, random_state=rng), dtype=float)


@dataclass(frozen=True)
class Uniform(UnivariatePrior):
    """Flat prior on ``(lower, upper)``."""

    lower: float = -1.0
    upper: float = 1.0

    def __post_init__(self) -> None:
        if not (np.isfinite(self.lower) and np.isfinite(self.upper)) or not self.lower < self.upper:
            raise ValueError("Uniform prior needs finite bounds with lower < upper.")

    @property
    def support(self) -> Tuple[float, float]:
        return float(self.lower), float(self.upper)

    def logpdf(self, x: ArrayLike) -> Array:
        x = jnp.asarray(x, dtype=jnp.float64)
        inside = (x > self.lower) & (x < self.upper)
        return jnp.where(inside, -jnp.log(self.upper - self.lower), -jnp.inf)

    def to_scipy(self) -> Any:
        return stats.uniform(loc=self.lower, scale=self.upper - self.lower)


@dataclass(frozen=True)
class InverseGamma(UnivariatePrior):
    """Inverse-gamma prior with ``shape`` (alpha) and ``scale`` (beta)."""

    shape: float = 1.0
    scale: float = 1.0

    def __post_init__(self) -> None:
        _positive("InverseGamma shape", self.shape)
        _positive("InverseGamma scale", self.scale)

    @property
    def support(self) -> Tuple[float, float]:
        return 0.0, float("inf")

    def logpdf(self, x: ArrayLike) -> Array:
        x = jnp.asarray(x, dtype=jnp.float64)
        safe_x = jnp.clip(x, jnp.finfo(x.dtype).tiny, None)
        log_density = (
            self.shape * jnp.log(self.scale)
            - gammaln(self.shape)
            - (self.shape + 1.0) * jnp.log(safe_x)
            - self.scale / safe_x
        )
        return jnp.where(x > 0.0, log_density, -jnp.inf)

    def to_scipy(self) -> Any:
        return stats.invgamma(self.shape, scale=self.scale)


@dataclass(frozen=True)
class Normal(UnivariatePrior):
    """Gaussian prior on the whole real line."""

    loc: float = 0.0
    scale: float = 1.0

    def __post_init__(self) -> None:
        _positive("Normal scale", self.scale)

    @property
    def support(self) -> Tuple[float, float]:
        return float("-inf"), float("inf")

    def logpdf(self, x: ArrayLike) -> Array:
        x = jnp.asarray(x, dtype=jnp.float64)
        return -0.5 * (
            jnp.log(2.0 * jnp.pi * self.scale**2) + ((x - self.loc) / self.scale) ** 2
        )

    def to_scipy(self) -> Any:
        return stats.norm(loc=self.loc, scale=self.scale)


@dataclass(frozen=True)
class HalfNormal(UnivariatePrior):
    """Half-normal prior on the positive half-line."""

    scale: float = 1.0

    def __post_init__(self) -> None:
        _positive("HalfNormal scale", self.scale)

    @property
    def support(self) -> Tuple[float, float]:
        return 0.0, float("inf")

    def logpdf(self, x: ArrayLike) -> Array:
        x = jnp.asarray(x, dtype=jnp.float64)
        log_density = (
            0.5 * jnp.log(2.0 / jnp.pi)
            - jnp.log(self.scale)
            - 0.5 * (x / self.scale) ** 2
        )
        return jnp.where(x > 0.0, log_density, -jnp.inf)

    def to_scipy(self) -> Any:
        return stats.halfnorm(scale=self.scale)


PRIOR_FAMILIES = {
    "uniform": Uniform,
    "inverse_gamma": InverseGamma,
    "normal": Normal,
    "half_normal": HalfNormal,
}


def prior_from_spec(spec: Mapping[str, Any]) -> UnivariatePrior:
    """Build a prior from a mapping such as ``{"family": "uniform", "lower": -1, "upper": 1}``."""

    params = dict(spec)
    family = str(params.pop("family", "")).lower()
    try:
        cls = PRIOR_FAMILIES[family]
    except KeyError:
        known = ", ".join(sorted(PRIOR_FAMILIES))
        raise ValueError(f"Unknown prior family {family!r}; expected one of: {known}.") from None
    return cls(**{key: float(value) for key, value in params.items()})


__all__ = [
    "UnivariatePrior",
    "Uniform",
    "InverseGamma",
    "Normal",
    "HalfNormal",
    "PRIOR_FAMILIES",
    "prior_from_spec",
]
