from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

import numpy as np
import pandas as pd

from .deterministic import certainty_equivalent_value
from .lsm import LsmResult
from .params import ProcessParameters


@dataclass(frozen=True)
class ValuationReport:
    value: float
    mc_stderr: float
    ci95_low: float
    ci95_high: float
    n_runs: float
    n_periods: float
    completion_rate: float
    mean_completion_years: float
    initial_invest_fraction: float
    singular_regressions: float
    certainty_equivalent: float
    option_premium: float


def _completion_stats(diag: pd.DataFrame, n_runs: int, dt: float) -> tuple[float, float]:
    # completed_runs is cumulative in time since zero cost is absorbing
    completed = diag.sort_values("period")["completed_runs"].astype(float).values
    if completed.size == 0 or n_runs <= 0:
        return float("nan"), float("nan")

    rate = float(completed[-1] / n_runs)
    if completed[-1] <= 0:
        return rate, float("nan")

    newly = np.diff(completed, prepend=0.0).clip(min=0.0)
    times = (np.arange(completed.size) + 1) * dt
    return rate, float(np.sum(newly * times) / np.sum(newly))


def summarize_valuation(res: LsmResult, params: ProcessParameters) -> ValuationReport:
    diag = res.diagnostics
    for c in ("period", "completed_runs", "investing_runs", "invest_decisions"):
        if c not in diag.columns:
            raise ValueError(f"summarize_valuation: missing diagnostics column {c}")

    n_runs = int(res.initial_values.size)
    rate, mean_years = _completion_stats(diag, n_runs, float(params.time_step))

    first = diag.loc[diag["period"] == diag["period"].min()].iloc[0]
    investing0 = float(first["investing_runs"])
    invest_frac = float(first["invest_decisions"] / investing0) if investing0 > 0 else float("nan")

    ce = certainty_equivalent_value(params)
    half = 1.96 * res.mc_stderr

    return ValuationReport(
        value=float(res.value),
        mc_stderr=float(res.mc_stderr),
        ci95_low=float(res.value - half),
        ci95_high=float(res.value + half),
        n_runs=float(n_runs),
        n_periods=float(len(diag)),
        completion_rate=rate,
        mean_completion_years=mean_years,
        initial_invest_fraction=invest_frac,
        singular_regressions=float(res.singular_regressions),
        certainty_equivalent=float(ce),
        option_premium=float(res.value - ce),
    )


def as_dict(rep: ValuationReport) -> Dict[str, Any]:
    return {
        "value": rep.value,
        "mc_stderr": rep.mc_stderr,
        "ci95_low": rep.ci95_low,
        "ci95_high": rep.ci95_high,
        "n_runs": rep.n_runs,
        "n_periods": rep.n_periods,
        "completion_rate": rep.completion_rate,
        "mean_completion_years": rep.mean_completion_years,
        "initial_invest_fraction": rep.initial_invest_fraction,
        "singular_regressions": rep.singular_regressions,
        "certainty_equivalent": rep.certainty_equivalent,
        "option_premium": rep.option_premium,
    }
