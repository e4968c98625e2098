from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd


def load_series(path: Path | str, column: str = "y") -> np.ndarray:
    """Read one column of a CSV file as the observed series."""

    frame = pd.read_csv(path)
    if column not in frame.columns:
        raise ValueError(f"Column {column!r} not found in {path}; columns are {list(frame.columns)}.")
    values = pd.to_numeric(frame[column], errors="coerce").to_numpy(dtype=np.float64)
    if not np.all(np.isfinite(values)):
        raise ValueError(f"Column {column!r} in {path} contains missing or non-numeric values.")
    return values


__all__ = ["load_series"]
