"""Problem definition: observed data, priors and the shared shock buffers."""
from __future__ import annotations

import logging
import threading
from typing import Tuple

import numpy as np

from .errors import InvalidLength
from .priors import UnivariatePrior
from .simulate import DEFAULT_LAG_ORDER, draw_shocks, minimum_length, validate_shocks
from .transforms import BridgeTransform, dimension, parameter_transformations
from .types import ShockBuffers
from .utils.rng import DEFAULT_SEED, SeedLike, numpy_generator

logger = logging.getLogger(__name__)


class ToyVolProblem:
    """Indirect-inference problem for the persistence ``rho`` and vol-of-vol ``sigma``.

    The shock buffers are drawn once at construction and reused by every
    log-density and gradient evaluation until :meth:`resample_shocks` is called
    explicitly.  Buffers are immutable; resampling swaps in a new
    :class:`~sv_indirect.types.ShockBuffers` under a lock, so an evaluation
    that already took its snapshot via :attr:`shocks` is never affected.
    """

    def __init__(
        self,
        ys,
        prior_rho: UnivariatePrior,
        prior_sigma: UnivariatePrior,
        num_shocks: int,
        *,
        lag_order: int = DEFAULT_LAG_ORDER,
        seed: SeedLike = DEFAULT_SEED,
        rng: np.random.Generator | None = None,
    ) -> None:
        self._setup(ys, prior_rho, prior_sigma, lag_order, rng, seed)
        required = minimum_length(self.lag_order)
        if int(num_shocks) < required:
            raise InvalidLength(
                f"Need at least {required} shocks for lag order {self.lag_order}, got {num_shocks}."
            )
        self._shocks = self._draw(int(num_shocks))
        logger.debug(
            "Built problem with %d observations and %d shocks (lag order %d)",
            self.ys.shape[0],
            int(num_shocks),
            self.lag_order,
        )

    @classmethod
    def from_shocks(
        cls,
        ys,
        prior_rho: UnivariatePrior,
        prior_sigma: UnivariatePrior,
        shocks: ShockBuffers,
        *,
        lag_order: int = DEFAULT_LAG_ORDER,
        rng: np.random.Generator | None = None,
    ) -> ToyVolProblem:
        """Build a problem around explicitly supplied shock buffers."""

        validate_shocks(shocks.eps, shocks.nu, lag_order)
        problem = cls.__new__(cls)
        problem._setup(ys, prior_rho, prior_sigma, lag_order, rng, DEFAULT_SEED)
        problem._shocks = shocks
        return problem

    def _setup(
        self,
        ys,
        prior_rho: UnivariatePrior,
        prior_sigma: UnivariatePrior,
        lag_order: int,
        rng: np.random.Generator | None,
        seed: SeedLike,
    ) -> None:
        # everything except the shock buffers
        self.lag_order = int(lag_order)
        self.ys = _validate_observed(ys, self.lag_order)
        self.prior_rho = prior_rho
        self.prior_sigma = prior_sigma
        self._rng = rng if rng is not None else numpy_generator(seed)
        self._lock = threading.Lock()

    def _draw(self, num_shocks: int) -> ShockBuffers:
        shocks = draw_shocks(self._rng, num_shocks)
        validate_shocks(shocks.eps, shocks.nu, self.lag_order)
        return shocks

    @property
    def priors(self) -> Tuple[UnivariatePrior, UnivariatePrior]:
        return self.prior_rho, self.prior_sigma

    @property
    def transformations(self) -> Tuple[BridgeTransform, ...]:
        return parameter_transformations(self)

    @property
    def dimension(self) -> int:
        return dimension(self)

    @property
    def num_shocks(self) -> int:
        return len(self.shocks)

    @property
    def shocks(self) -> ShockBuffers:
        """Current shock snapshot."""

        with self._lock:
            return self._shocks

    def resample_shocks(self) -> ShockBuffers:
        """Replace both shock buffers with fresh draws of the same length."""

        with self._lock:
            self._shocks = self._draw(len(self._shocks))
            shocks = self._shocks
        logger.debug("Resampled %d shocks", len(shocks))
        return shocks


def _validate_observed(ys, lag_order: int) -> np.ndarray:
    arr = np.asarray(ys, dtype=np.float64)
    if arr.ndim != 1:
        raise InvalidLength(f"Observed series must be one-dimensional, got shape {arr.shape}.")
    required = minimum_length(lag_order)
    if arr.shape[0] < required:
        raise InvalidLength(
            f"Observed series needs at least {required} points for lag order {lag_order}, "
            f"got {arr.shape[0]}."
        )
    if not np.all(np.isfinite(arr)):
        raise ValueError("Observed series contains non-finite values.")
    return arr


def resample_shocks(problem: ToyVolProblem) -> ShockBuffers:
    """Refresh the problem's shock buffers; call only between evaluations."""

    return problem.resample_shocks()


__all__ = ["ToyVolProblem", "resample_shocks"]
