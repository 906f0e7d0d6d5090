from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Tuple
import warnings

from .basis import basis_matrix, basis_row
from .errors import (
    InvalidParameters,
    NumericOverflow,
    RealOptionError,
    SingularRegressionWarning,
    ValuationTimeout,
)
from .lsm import LsmResult, LsmValuator, discount_factors
from .metrics import ValuationReport, as_dict, summarize_valuation
from .params import N_BASIS, ProcessParameters
from .simulate import DEFAULT_CHUNK_RUNS, PathMatrix, PathSimulator, simulate_paths


@dataclass
class EngineConfig:
    seed: Optional[int] = 355
    workers: int = 1
    chunk_runs: int = DEFAULT_CHUNK_RUNS
    ridge: float = 0.0
    max_seconds: Optional[float] = None


def _build_cfg(**cfg_kwargs: Any) -> EngineConfig:
    cfg = EngineConfig()
    known = {f.name for f in fields(cfg)}
    for k, v in cfg_kwargs.items():
        if k not in known:
            raise TypeError(f"Unknown config key: {k}")
        setattr(cfg, k, v)
    return cfg


def _run(params: ProcessParameters, **cfg_kwargs: Any) -> LsmResult:
    params.validate()
    cfg = _build_cfg(**cfg_kwargs)

    if params.runs < 5_000:
        warnings.warn("runs < 5000 may cause regression instability / noisy values.", UserWarning)

    sim = PathSimulator(seed=cfg.seed, workers=cfg.workers, chunk_runs=cfg.chunk_runs)
    paths = sim.simulate(params)
    return LsmValuator(ridge=cfg.ridge, max_seconds=cfg.max_seconds).run(params, *paths)


def value_project(params: ProcessParameters, **cfg_kwargs: Any) -> Tuple[float, float]:
    """
    Simulate and value the project. Returns (value, mc_stderr).

    cfg_kwargs are EngineConfig fields (seed, workers, chunk_runs, ridge,
    max_seconds).
    """
    res = _run(params, **cfg_kwargs)
    return float(res.value), float(res.mc_stderr)


def value_project_with_report(params: ProcessParameters, **cfg_kwargs: Any) -> Tuple[LsmResult, Dict[str, Any]]:
    res = _run(params, **cfg_kwargs)
    return res, as_dict(summarize_valuation(res, params))


__all__ = [
    "EngineConfig",
    "InvalidParameters",
    "LsmResult",
    "LsmValuator",
    "N_BASIS",
    "NumericOverflow",
    "PathMatrix",
    "PathSimulator",
    "ProcessParameters",
    "RealOptionError",
    "SingularRegressionWarning",
    "ValuationReport",
    "ValuationTimeout",
    "as_dict",
    "basis_matrix",
    "basis_row",
    "discount_factors",
    "simulate_paths",
    "summarize_valuation",
    "value_project",
    "value_project_with_report",
]
