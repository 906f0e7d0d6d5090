from __future__ import annotations

import math
from typing import List

from .lsm import discount_factors
from .params import ProcessParameters


def certainty_equivalent_value(params: ProcessParameters) -> float:
    """
    Project value with every shock set to zero.

    Same cash/cost recursion and decision rule as the LSM engine, but along
    the single expected path, so the continuation value is known exactly.
    """
    params.validate()
    n = params.n_periods
    dt = float(params.time_step)
    spend = float(params.investment) * dt
    growth = math.exp((params.adjusted_drift - 0.5 * params.cash_volatility ** 2) * dt)

    cash: List[float] = []
    cost: List[float] = []
    prev_cash = float(params.annual_cash_flow)
    prev_cost = float(params.total_expected_cost)
    for _ in range(n):
        prev_cash = prev_cash * growth
        prev_cost = max(prev_cost - spend, 0.0) if prev_cost != 0.0 else 0.0
        cash.append(prev_cash)
        cost.append(prev_cost)

    cash_disc, invest_disc = discount_factors(params)

    v = float(params.terminal_multiplier) * cash[-1] if cost[-1] == 0.0 else 0.0
    for period in range(n - 2, -1, -1):
        if cost[period] != 0.0:
            nxt = invest_disc * v
            v = nxt - spend if nxt - spend > 0.0 else 0.0
        else:
            v = cash[period] * dt + cash_disc * v

    return v * cash_disc * invest_disc
