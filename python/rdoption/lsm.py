from __future__ import annotations

import logging
import math
import time
import warnings
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from .basis import basis_matrix
from .errors import NumericOverflow, SingularRegressionWarning, ValuationTimeout
from .params import N_BASIS, ProcessParameters

logger = logging.getLogger(__name__)


@dataclass
class LsmResult:
    value: float
    mc_stderr: float
    initial_values: np.ndarray      # per-run value at t=0, already discounted
    diagnostics: pd.DataFrame       # one row per period
    singular_regressions: int = 0


def discount_factors(params: ProcessParameters) -> Tuple[float, float]:
    """
    (cash_disc, invest_disc) for one time step.

    The investment phase also discounts at the failure hazard rate.
    """
    dt = float(params.time_step)
    cash_disc = math.exp(-float(params.risk_free_rate) * dt)
    invest_disc = math.exp(-(float(params.risk_free_rate) + float(params.failure_prob)) * dt)
    return cash_disc, invest_disc


def fit_continuation(basis: np.ndarray, target: np.ndarray, ridge: float = 0.0) -> Tuple[np.ndarray, int]:
    """
    Least squares fit of target on the basis columns.

    Returns (fitted values, numerical rank). Columns are scaled by their
    max-abs first: cost and cash enter up to the fourth power, so the raw
    columns span ~30 orders of magnitude. For a rank-deficient basis lstsq
    returns the minimum-norm solution; ridge > 0 adds a Tikhonov penalty on
    the scaled coefficients instead. The rank is that of the scaled basis
    either way.
    """
    scale = np.max(np.abs(basis), axis=0)
    scale[scale == 0.0] = 1.0
    xs = basis / scale

    if ridge > 0.0:
        gram = xs.T @ xs
        rank = int(np.linalg.matrix_rank(xs))
        coef = np.linalg.solve(gram + ridge * np.eye(xs.shape[1]), xs.T @ target)
    else:
        coef, _, rank, _ = np.linalg.lstsq(xs, target, rcond=None)
        rank = int(rank)

    return xs @ coef, rank


def _r_squared(target: np.ndarray, fitted: np.ndarray) -> float:
    ss_tot = float(np.sum((target - target.mean()) ** 2))
    if ss_tot <= 0.0:
        return float("nan")
    return float(1.0 - np.sum((target - fitted) ** 2) / ss_tot)


class LsmValuator:
    """
    Backward induction over simulated (cash, cost) paths.

    Regress to decide, use the realized path value to value: the fitted
    continuation only gates the invest decision, the value array carries
    the actual discounted next-period value.
    """

    def __init__(self, ridge: float = 0.0, max_seconds: Optional[float] = None):
        if ridge < 0.0:
            raise ValueError("ridge must be >= 0")
        if max_seconds is not None and max_seconds <= 0.0:
            raise ValueError("max_seconds must be > 0")
        self.ridge = float(ridge)
        self.max_seconds = max_seconds

    def value(self, params: ProcessParameters, net_cash: np.ndarray, remaining_cost: np.ndarray) -> float:
        return self.run(params, net_cash, remaining_cost).value

    def run(self, params: ProcessParameters, net_cash: np.ndarray, remaining_cost: np.ndarray) -> LsmResult:
        params.validate()
        cash = np.asarray(net_cash, dtype=float)
        cost = np.asarray(remaining_cost, dtype=float)
        if cash.shape != cost.shape or cash.ndim != 2:
            raise ValueError("net_cash and remaining_cost must be 2-d arrays of equal shape")
        runs, n = cash.shape
        if n < 1 or runs < 1:
            raise ValueError("path matrices must have at least one run and one period")
        if not (np.isfinite(cash).all() and np.isfinite(cost).all()):
            raise NumericOverflow("path matrices contain non-finite values")

        t0 = time.perf_counter()
        dt = float(params.time_step)
        spend = float(params.investment) * dt
        cash_disc, invest_disc = discount_factors(params)
        last = n - 1

        values = np.zeros((runs, n))

        # terminal value: multiple of final cash flow, only if completed in time
        done_last = cost[:, last] == 0.0
        values[done_last, last] = float(params.terminal_multiplier) * cash[done_last, last]

        rows: List[Dict[str, float]] = [
            {
                "period": float(last),
                "time": float((last + 1) * dt),
                "investing_runs": float(runs - done_last.sum()),
                "invest_decisions": 0.0,
                "abandoned_runs": float(runs - done_last.sum()),
                "completed_runs": float(done_last.sum()),
                "regression_rank": float("nan"),
                "r_squared": float("nan"),
                "mean_value": float(values[:, last].mean()),
            }
        ]
        singular = 0

        for period in range(last - 1, -1, -1):
            if self.max_seconds is not None and time.perf_counter() - t0 > self.max_seconds:
                raise ValuationTimeout(
                    f"valuation exceeded {self.max_seconds:.3g}s with {period + 1} period(s) left"
                )

            next_val = invest_disc * values[:, period + 1]
            investing = cost[:, period] != 0.0
            n_investing = int(investing.sum())

            rank = float("nan")
            r2 = float("nan")
            go = np.zeros(runs, dtype=bool)
            if n_investing > 0:
                with np.errstate(over="ignore", invalid="ignore"):
                    basis = basis_matrix(cost[:, period], cash[:, period])
                if not (np.isfinite(basis).all() and np.isfinite(next_val).all()):
                    raise NumericOverflow(
                        f"regression inputs are non-finite at period {period}; "
                        "cash or cost too large for the polynomial basis"
                    )
                est, k = fit_continuation(basis, next_val, ridge=self.ridge)
                rank, r2 = float(k), _r_squared(next_val, est)
                if k < N_BASIS:
                    singular += 1
                go = investing & (est - spend > 0.0)
                values[go, period] = next_val[go] - spend

            # revenue phase: this period's cash plus discounted carry
            done = ~investing
            values[done, period] = cash[done, period] * dt + cash_disc * values[done, period + 1]

            logger.debug(
                "period %d: investing=%d invest=%d rank=%s", period, n_investing, int(go.sum()), rank
            )
            rows.append(
                {
                    "period": float(period),
                    "time": float((period + 1) * dt),
                    "investing_runs": float(n_investing),
                    "invest_decisions": float(go.sum()),
                    "abandoned_runs": float(n_investing - go.sum()),
                    "completed_runs": float(done.sum()),
                    "regression_rank": rank,
                    "r_squared": r2,
                    "mean_value": float(values[:, period].mean()),
                }
            )

        if not np.isfinite(values).all():
            raise NumericOverflow("value array contains non-finite entries")

        initial = values[:, 0] * (cash_disc * invest_disc)
        value = float(np.mean(initial))
        stderr = float(np.std(initial, ddof=1) / np.sqrt(runs)) if runs > 1 else 0.0

        if singular:
            warnings.warn(
                f"{singular} of {last} regression(s) had a rank-deficient basis; "
                f"used the {'ridge' if self.ridge > 0.0 else 'minimum-norm'} solution.",
                SingularRegressionWarning,
            )

        diag = pd.DataFrame(rows).sort_values("period").reset_index(drop=True)
        diag["period"] = diag["period"].astype(int)

        logger.info(
            "LSM value %.2f (stderr %.2f) over %d runs x %d periods in %.2fs",
            value, stderr, runs, n, time.perf_counter() - t0,
        )
        return LsmResult(
            value=value,
            mc_stderr=stderr,
            initial_values=initial,
            diagnostics=diag,
            singular_regressions=singular,
        )
