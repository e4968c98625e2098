"""Shared typing aliases for the sv_indirect package."""

from __future__ import annotations

from typing import Callable, Protocol

import jax
import jax.numpy as jnp

Array = jnp.ndarray
PRNGKey = jax.Array
LogDensityFn = Callable[[Array], Array]


class LogDensityWithGrad(Protocol):
    """Protocol for callable returning value and gradient."""

    def __call__(self, x: Array) -> tuple[Array, Array]:
        ...


__all__ = ["Array", "PRNGKey", "LogDensityFn", "LogDensityWithGrad"]
