from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd

from .simulate import PathMatrix


@dataclass(frozen=True)
class ValidationConfig:
    # r_squared is only meaningful up to rounding
    r_squared_tol: float = 1e-9

    require_cols: Tuple[str, ...] = (
        "period", "investing_runs", "invest_decisions", "abandoned_runs",
        "completed_runs", "regression_rank", "r_squared", "mean_value",
    )


def validate_paths(paths: PathMatrix) -> Dict[str, bool]:
    """
    Hard checks for a simulated path pair.

    Zero cost is absorbing: once a run hits 0 it must stay at 0.
    """
    cash, cost = np.asarray(paths.net_cash), np.asarray(paths.remaining_cost)

    checks: Dict[str, bool] = {}
    checks["same_shape"] = bool(cash.shape == cost.shape and cash.ndim == 2)
    if not checks["same_shape"]:
        return checks

    checks["finite_cash"] = bool(np.isfinite(cash).all())
    checks["finite_cost"] = bool(np.isfinite(cost).all())
    checks["positive_cash"] = bool((cash > 0.0).all())
    checks["non_negative_cost"] = bool((cost >= 0.0).all())

    if cost.shape[1] > 1:
        was_done = cost[:, :-1] == 0.0
        checks["zero_cost_absorbing"] = bool((cost[:, 1:][was_done] == 0.0).all())
    else:
        checks["zero_cost_absorbing"] = True

    return checks


def validate_diagnostics(df: pd.DataFrame, cfg: Optional[ValidationConfig] = None) -> Dict[str, bool]:
    cfg = cfg or ValidationConfig()

    missing = [c for c in cfg.require_cols if c not in df.columns]
    if missing:
        raise ValueError(f"validate_diagnostics: missing columns: {missing}")

    d = df.sort_values("period")
    checks: Dict[str, bool] = {}

    checks["non_empty"] = bool(len(d) > 0)
    checks["finite_mean_value"] = bool(np.isfinite(d["mean_value"].astype(float)).all())

    # completed count can only grow with time
    completed = d["completed_runs"].astype(float).values
    checks["completed_monotone"] = bool((np.diff(completed) >= 0.0).all())

    inv = d["investing_runs"].astype(float)
    checks["decisions_bounded"] = bool(
        ((d["invest_decisions"] >= 0) & (d["invest_decisions"] <= inv)).all()
    )
    checks["runs_conserved"] = bool(
        (inv + d["completed_runs"].astype(float)).nunique() <= 1
    )

    r2 = d["r_squared"].astype(float).dropna()
    checks["r_squared_le_one"] = bool((r2 <= 1.0 + cfg.r_squared_tol).all())

    return checks
