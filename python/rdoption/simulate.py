from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, NamedTuple, Optional, Tuple

import numpy as np

from .errors import NumericOverflow
from .params import ProcessParameters

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_RUNS = 25_000


class PathMatrix(NamedTuple):
    net_cash: np.ndarray        # [runs, periods]
    remaining_cost: np.ndarray  # [runs, periods]; 0 means investment complete


def _simulate_block(params: ProcessParameters, rng: Any, runs: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Simulate `runs` independent paths from a single normal source.

    Two draws per period: the cost shock, then an auxiliary normal used to
    build the correlated cash shock (2x2 Cholesky).
    """
    n = params.n_periods
    dt = float(params.time_step)
    rho = float(params.correlation)
    rho_c = math.sqrt(1.0 - rho * rho)

    cash_sig = float(params.cash_volatility)
    cash_mu = (params.adjusted_drift - 0.5 * cash_sig * cash_sig) * dt
    cash_vol = cash_sig * math.sqrt(dt)

    spend = float(params.investment) * dt
    cost_sig = float(params.cost_volatility)

    net_cash = np.empty((runs, n))
    cost = np.empty((runs, n))

    prev_cash = np.full(runs, float(params.annual_cash_flow))
    prev_cost = np.full(runs, float(params.total_expected_cost))

    with np.errstate(over="ignore", invalid="ignore"):
        for t in range(n):
            cost_eps = np.asarray(rng.standard_normal(runs), dtype=float)
            z = np.asarray(rng.standard_normal(runs), dtype=float)
            cash_eps = rho * cost_eps + rho_c * z

            next_cash = prev_cash * np.exp(cash_mu + cash_vol * cash_eps)

            # prev_cost >= 0 by the floor below, so the square root is defined
            diffused = prev_cost - spend + cost_sig * np.sqrt(float(params.investment) * prev_cost * dt) * cost_eps
            next_cost = np.where(prev_cost != 0.0, np.maximum(diffused, 0.0), 0.0)

            net_cash[:, t] = next_cash
            cost[:, t] = next_cost
            prev_cash, prev_cost = next_cash, next_cost

    return net_cash, cost


def _check_finite(paths: PathMatrix) -> PathMatrix:
    bad = ~(np.isfinite(paths.net_cash).all(axis=1) & np.isfinite(paths.remaining_cost).all(axis=1))
    if bad.any():
        raise NumericOverflow(
            f"{int(bad.sum())} of {bad.size} simulated runs diverged to non-finite values; "
            "reduce volatilities, drift or horizon"
        )
    return paths


class PathSimulator:
    """
    Generates the joint (net cash, remaining cost) paths.

    Random source, in priority order:
      1) rng: any object with standard_normal(size) (single stream, sequential)
      2) seed: SeedSequence(seed) spawns one child stream per chunk of
         `chunk_runs` runs; chunks can be simulated on `workers` threads.
         The draws depend on the chunk layout only, not on `workers`.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        rng: Any = None,
        workers: int = 1,
        chunk_runs: int = DEFAULT_CHUNK_RUNS,
    ):
        if int(workers) < 1:
            raise ValueError("workers must be >= 1")
        if int(chunk_runs) < 1:
            raise ValueError("chunk_runs must be >= 1")
        self.seed = seed
        self.rng = rng
        self.workers = int(workers)
        self.chunk_runs = int(chunk_runs)

    def _chunks(self, runs: int) -> List[Tuple[int, int]]:
        bounds = list(range(0, runs, self.chunk_runs)) + [runs]
        return [(bounds[i], bounds[i + 1]) for i in range(len(bounds) - 1)]

    def simulate(self, params: ProcessParameters) -> PathMatrix:
        params.validate()
        runs = int(params.runs)

        if self.rng is not None:
            net_cash, cost = _simulate_block(params, self.rng, runs)
            return _check_finite(PathMatrix(net_cash, cost))

        chunks = self._chunks(runs)
        children = np.random.SeedSequence(self.seed).spawn(len(chunks))

        net_cash = np.empty((runs, params.n_periods))
        cost = np.empty((runs, params.n_periods))

        def work(i: int) -> None:
            lo, hi = chunks[i]
            gen = np.random.default_rng(children[i])
            net_cash[lo:hi], cost[lo:hi] = _simulate_block(params, gen, hi - lo)

        if self.workers == 1 or len(chunks) == 1:
            for i in range(len(chunks)):
                work(i)
        else:
            # each chunk writes a disjoint row block
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                list(pool.map(work, range(len(chunks))))

        logger.debug("simulated %d runs x %d periods in %d chunk(s)", runs, params.n_periods, len(chunks))
        return _check_finite(PathMatrix(net_cash, cost))


def simulate_paths(params: ProcessParameters, seed: Optional[int] = None, **kwargs: Any) -> PathMatrix:
    return PathSimulator(seed=seed, **kwargs).simulate(params)
