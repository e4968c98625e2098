"""Indirect-inference log-density for a toy stochastic-volatility model.

The public surface consumed by a gradient-based sampler is ``logdensity``,
``gradient`` and ``dimension`` on a :class:`ToyVolProblem`, plus
``resample_shocks`` between independent runs.
"""
from __future__ import annotations

from .utils import jax_setup  # noqa: F401  (enables float64 before any array is built)

from .auxiliary import (
    AuxiliaryFit,
    difference_design,
    fit_ols,
    lag,
    lag_matrix,
    level_design,
)
from .errors import (
    GradientMismatch,
    InvalidLength,
    NumericDegenerate,
    SingularDesign,
    SupportViolation,
    SVIndirectError,
)
from .gradient import check_gradient_agreement, gradient, logdensity_and_gradient
from .logdensity import logdensity, make_logdensity_fn
from .priors import HalfNormal, InverseGamma, Normal, Uniform, prior_from_spec
from .problem import ToyVolProblem, resample_shocks
from .simulate import LOG_CHISQ_MEAN_CORRECTION, simulate_series, simulate_stochastic
from .transforms import bridge_transform, dimension, parameter_transformations
from .types import ChainResult, ShockBuffers

__all__ = [
    "AuxiliaryFit",
    "ChainResult",
    "GradientMismatch",
    "HalfNormal",
    "InvalidLength",
    "InverseGamma",
    "LOG_CHISQ_MEAN_CORRECTION",
    "Normal",
    "NumericDegenerate",
    "SVIndirectError",
    "ShockBuffers",
    "SingularDesign",
    "SupportViolation",
    "ToyVolProblem",
    "Uniform",
    "bridge_transform",
    "check_gradient_agreement",
    "difference_design",
    "dimension",
    "fit_ols",
    "gradient",
    "lag",
    "lag_matrix",
    "level_design",
    "logdensity",
    "logdensity_and_gradient",
    "make_logdensity_fn",
    "parameter_transformations",
    "prior_from_spec",
    "resample_shocks",
    "simulate_series",
    "simulate_stochastic",
]
