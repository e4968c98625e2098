"""Posterior summaries for sampler output."""

from __future__ import annotations

from typing import Dict, Sequence

import arviz as az
import numpy as np
import pandas as pd

from .types import ChainResult


def to_inference_data(results: Sequence[ChainResult]) -> az.InferenceData:
    """Stack constrained draws of equal-length chains into ``(chain, draw)`` arrays."""

    if not results:
        return az.InferenceData()
    names = list(results[0].draws_constrained)
    lengths = {len(res.draws_constrained[names[0]]) for res in results}
    if len(lengths) != 1:
        raise ValueError(f"Chains have different lengths: {sorted(lengths)}.")
    posterior: Dict[str, np.ndarray] = {
        name: np.stack([np.asarray(res.draws_constrained[name]) for res in results], axis=0)
        for name in names
    }
    sample_stats = {
        "lp": np.stack([res.logdensity for res in results], axis=0),
        "acceptance_rate": np.stack([res.acceptance for res in results], axis=0),
    }
    return az.from_dict(posterior=posterior, sample_stats=sample_stats)


def summarize(results: Sequence[ChainResult]) -> pd.DataFrame:
    """``arviz`` summary table of ``rho`` and ``sigma``."""

    idata = to_inference_data(results)
    if not hasattr(idata, "posterior"):
        return pd.DataFrame()
    return az.summary(idata, var_names=list(idata.posterior.data_vars), round_to="none")


__all__ = ["to_inference_data", "summarize"]
