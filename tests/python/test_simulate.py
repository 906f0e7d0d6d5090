import math

import numpy as np
import pytest

from rdoption import NumericOverflow, PathSimulator, ProcessParameters, simulate_paths
from rdoption.validators import validate_paths


def _small_params(**changes):
    base = ProcessParameters.reference().replace(
        runs=3000,
        patent_length=6.0,
        total_expected_cost=20e6,
    )
    return base.replace(**changes)


class _ZeroNormals:
    """Normal source that always returns 0 (every shock switched off)."""

    def standard_normal(self, size):
        return np.zeros(size)


def test_shapes_and_path_invariants():
    p = _small_params()
    paths = simulate_paths(p, seed=11)

    assert paths.net_cash.shape == (p.runs, p.n_periods)
    assert paths.remaining_cost.shape == (p.runs, p.n_periods)

    checks = validate_paths(paths)
    assert all(checks.values()), checks

    # some runs finish the investment inside the horizon
    assert (paths.remaining_cost[:, -1] == 0.0).any()


def test_path_matrix_unpacks_as_pair():
    net_cash, cost = simulate_paths(_small_params(runs=10), seed=3)
    assert net_cash.shape == cost.shape


def test_same_seed_is_bit_identical():
    p = _small_params()
    a = simulate_paths(p, seed=355)
    b = simulate_paths(p, seed=355)
    np.testing.assert_array_equal(a.net_cash, b.net_cash)
    np.testing.assert_array_equal(a.remaining_cost, b.remaining_cost)

    c = simulate_paths(p, seed=356)
    assert not np.array_equal(a.net_cash, c.net_cash)


def test_worker_count_does_not_change_paths():
    p = _small_params(runs=2500)
    serial = PathSimulator(seed=5, workers=1, chunk_runs=400).simulate(p)
    threaded = PathSimulator(seed=5, workers=4, chunk_runs=400).simulate(p)
    np.testing.assert_array_equal(serial.net_cash, threaded.net_cash)
    np.testing.assert_array_equal(serial.remaining_cost, threaded.remaining_cost)


def test_explicit_rng_is_used():
    p = _small_params(runs=50)
    a = PathSimulator(rng=np.random.default_rng(9)).simulate(p)
    b = PathSimulator(rng=np.random.default_rng(9)).simulate(p)
    np.testing.assert_array_equal(a.net_cash, b.net_cash)


def test_zero_shocks_follow_expected_path():
    p = _small_params(runs=4)
    paths = PathSimulator(rng=_ZeroNormals()).simulate(p)

    dt = p.time_step
    t = np.arange(1, p.n_periods + 1)
    growth = math.exp((p.adjusted_drift - 0.5 * p.cash_volatility ** 2) * dt)
    expected_cash = p.annual_cash_flow * growth ** t
    expected_cost = np.maximum(p.total_expected_cost - p.investment * dt * t, 0.0)

    for r in range(p.runs):
        np.testing.assert_allclose(paths.net_cash[r], expected_cash, rtol=1e-12)
        np.testing.assert_array_equal(paths.remaining_cost[r], expected_cost)


def test_shock_correlation_matches_rho():
    rho = -0.6
    p = _small_params(runs=20_000, correlation=rho, total_expected_cost=100e6)
    paths = simulate_paths(p, seed=21)

    dt = p.time_step
    # recover both period-0 shocks; cost is far from the zero floor here
    cash_mu = (p.adjusted_drift - 0.5 * p.cash_volatility ** 2) * dt
    cash_eps = (np.log(paths.net_cash[:, 0] / p.annual_cash_flow) - cash_mu) / (p.cash_volatility * math.sqrt(dt))
    cost_eps = (paths.remaining_cost[:, 0] - p.total_expected_cost + p.investment * dt) / (
        p.cost_volatility * math.sqrt(p.investment * p.total_expected_cost * dt)
    )

    assert np.corrcoef(cash_eps, cost_eps)[0, 1] == pytest.approx(rho, abs=0.03)
    assert np.std(cash_eps) == pytest.approx(1.0, abs=0.03)


def test_zero_cost_is_absorbing():
    p = _small_params(runs=2000, cost_volatility=1.5, total_expected_cost=5e6)
    paths = simulate_paths(p, seed=8)
    cost = paths.remaining_cost

    hit = cost[:, :-1] == 0.0
    assert hit.any()
    assert (cost[:, 1:][hit] == 0.0).all()


def test_divergent_cash_raises():
    p = ProcessParameters.reference().replace(runs=100, drift=400.0)
    with pytest.raises(NumericOverflow):
        simulate_paths(p, seed=1)


def test_invalid_simulator_settings():
    with pytest.raises(ValueError):
        PathSimulator(workers=0)
    with pytest.raises(ValueError):
        PathSimulator(chunk_runs=0)
