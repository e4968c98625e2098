"""Configuration utilities for indirect-inference runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .simulate import DEFAULT_LAG_ORDER
from .utils.rng import DEFAULT_SEED, SeedLike, seed_to_int


@dataclass
class ProblemConfig:
    """Shock count, auxiliary lag order and the shock seed."""

    num_shocks: int = 10_000
    lag_order: int = DEFAULT_LAG_ORDER
    seed: SeedLike = DEFAULT_SEED


@dataclass
class PriorConfig:
    """Prior specifications understood by :func:`sv_indirect.priors.prior_from_spec`."""

    rho: Dict[str, Any] = field(
        default_factory=lambda: {"family": "uniform", "lower": -1.0, "upper": 1.0}
    )
    sigma: Dict[str, Any] = field(
        default_factory=lambda: {"family": "inverse_gamma", "shape": 1.0, "scale": 1.0}
    )


@dataclass
class SamplerConfig:
    """NUTS budgets and adaptation targets."""

    num_warmup: int = 500
    num_samples: int = 1000
    num_chains: int = 1
    target_accept: float = 0.8
    initial_step_size: float = 0.1
    max_num_doublings: int = 10
    resample_between_chains: bool = True


@dataclass
class DataConfig:
    """Observed series location, or the parameters used to synthesise one."""

    path: Optional[Path] = None
    column: str = "y"
    synthetic_rho: float = 0.8
    synthetic_sigma: float = 0.6
    synthetic_length: int = 10_000


@dataclass
class LoggingConfig:
    """Logging verbosity and formatting options."""

    level: str = "INFO"
    rich_tracebacks: bool = True


@dataclass
class RunConfig:
    """Top-level configuration object composed of sub-configurations."""

    problem: ProblemConfig = field(default_factory=ProblemConfig)
    priors: PriorConfig = field(default_factory=PriorConfig)
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    data: DataConfig = field(default_factory=DataConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def parse_seed(value: Any) -> SeedLike:
    """Accept an integer below ``2**128`` or a list of up to four 32-bit words."""

    if value is None:
        return DEFAULT_SEED
    if isinstance(value, str):
        value = int(value, 0)
    if isinstance(value, (list, tuple)):
        words = tuple(int(w, 0) if isinstance(w, str) else w for w in value)
        seed_to_int(words)
        return words
    seed_to_int(value)
    return int(value)


def load_yaml(path: Path) -> Mapping[str, Any]:
    """Load a YAML document and return a mapping."""

    with Path(path).open("r", encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle)
    if loaded is None:
        return {}
    if not isinstance(loaded, Mapping):
        raise ValueError(f"Expected a mapping at the top level of {path}.")
    return loaded


def run_config_from_mapping(raw: Mapping[str, Any]) -> RunConfig:
    """Build :class:`RunConfig` from a parsed mapping, filling defaults."""

    problem = raw.get("problem", {}) or {}
    priors = raw.get("priors", {}) or {}
    sampler = raw.get("sampler", {}) or {}
    data = raw.get("data", {}) or {}
    logging_cfg = raw.get("logging", {}) or {}

    defaults = RunConfig()
    data_path = data.get("path")
    return RunConfig(
        problem=ProblemConfig(
            num_shocks=int(problem.get("num_shocks", defaults.problem.num_shocks)),
            lag_order=int(problem.get("lag_order", defaults.problem.lag_order)),
            seed=parse_seed(problem.get("seed")),
        ),
        priors=PriorConfig(
            rho=dict(priors.get("rho", defaults.priors.rho)),
            sigma=dict(priors.get("sigma", defaults.priors.sigma)),
        ),
        sampler=SamplerConfig(
            num_warmup=int(sampler.get("num_warmup", defaults.sampler.num_warmup)),
            num_samples=int(sampler.get("num_samples", defaults.sampler.num_samples)),
            num_chains=int(sampler.get("num_chains", defaults.sampler.num_chains)),
            target_accept=float(sampler.get("target_accept", defaults.sampler.target_accept)),
            initial_step_size=float(
                sampler.get("initial_step_size", defaults.sampler.initial_step_size)
            ),
            max_num_doublings=int(
                sampler.get("max_num_doublings", defaults.sampler.max_num_doublings)
            ),
            resample_between_chains=bool(
                sampler.get("resample_between_chains", defaults.sampler.resample_between_chains)
            ),
        ),
        data=DataConfig(
            path=Path(str(data_path)) if data_path else None,
            column=str(data.get("column", defaults.data.column)),
            synthetic_rho=float(data.get("synthetic_rho", defaults.data.synthetic_rho)),
            synthetic_sigma=float(data.get("synthetic_sigma", defaults.data.synthetic_sigma)),
            synthetic_length=int(data.get("synthetic_length", defaults.data.synthetic_length)),
        ),
        logging=LoggingConfig(
            level=str(logging_cfg.get("level", defaults.logging.level)),
            rich_tracebacks=bool(logging_cfg.get("rich_tracebacks", defaults.logging.rich_tracebacks)),
        ),
    )


def load_run_config(path: Path) -> RunConfig:
    """Load :class:`RunConfig` from ``path``."""

    return run_config_from_mapping(load_yaml(path))


__all__ = [
    "ProblemConfig",
    "PriorConfig",
    "SamplerConfig",
    "DataConfig",
    "LoggingConfig",
    "RunConfig",
    "parse_seed",
    "load_yaml",
    "run_config_from_mapping",
    "load_run_config",
]
