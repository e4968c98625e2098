"""Exception taxonomy for the indirect-inference log-density."""

from __future__ import annotations

import numpy as np


class SVIndirectError(RuntimeError):
    """Base class for every error raised by :mod:`sv_indirect`."""


class InvalidLength(SVIndirectError, ValueError):
    """Raised when shock sequences are mismatched or too short for the auxiliary designs."""


class SupportViolation(SVIndirectError, ValueError):
    """Raised when a constrained value lies outside the open support of its prior."""


class SingularDesign(SVIndirectError, np.linalg.LinAlgError):
    """Raised when an auxiliary regression design is numerically rank-deficient."""


class NumericDegenerate(SVIndirectError, FloatingPointError):
    """Raised on a non-positive variance, log of a non-positive shock, or a non-finite gradient."""


class GradientMismatch(SVIndirectError):
    """Raised when two differentiation strategies disagree beyond tolerance."""


__all__ = [
    "SVIndirectError",
    "InvalidLength",
    "SupportViolation",
    "SingularDesign",
    "NumericDegenerate",
    "GradientMismatch",
]
