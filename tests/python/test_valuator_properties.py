import math
import warnings

import numpy as np
import pytest

from rdoption import (
    LsmValuator,
    PathSimulator,
    ProcessParameters,
    discount_factors,
    value_project,
)


def _value(params, seed=355, **cfg):
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        return value_project(params, seed=seed, **cfg)[0]


def test_reference_scenario_order_of_magnitude():
    p = ProcessParameters.reference().replace(runs=50_000)
    v, se = value_project(p, seed=355)

    assert math.isfinite(v) and math.isfinite(se)
    assert 1e6 < v < 5e8
    assert se > 0.0


def test_repeated_calls_are_identical():
    p = ProcessParameters.reference().replace(runs=8_000)
    assert _value(p) == _value(p)


def test_worker_count_does_not_change_value():
    p = ProcessParameters.reference().replace(runs=6_000)
    assert _value(p, workers=1, chunk_runs=1_000) == _value(p, workers=3, chunk_runs=1_000)


def test_terminal_multiplier_monotone():
    base = ProcessParameters.reference().replace(runs=20_000)
    values = [_value(base.replace(terminal_multiplier=m)) for m in (0.0, 2.5, 5.0, 10.0)]
    assert all(b >= a for a, b in zip(values, values[1:])), values


def test_certain_failure_drives_value_to_zero():
    base = ProcessParameters.reference().replace(runs=20_000)
    v_ref = _value(base)
    v_fail = _value(base.replace(failure_prob=1.0, terminal_multiplier=0.0))

    assert v_ref > 0.0
    assert abs(v_fail) < 0.1 * v_ref


def test_single_period_simulated_horizon():
    p = ProcessParameters.reference().replace(
        runs=5_000, patent_length=0.25, total_expected_cost=2e6
    )
    cash, cost = PathSimulator(seed=17).simulate(p)
    cd, idisc = discount_factors(p)

    done = cost[:, 0] == 0.0
    assert done.any() and (~done).any()
    expected = np.mean(np.where(done, p.terminal_multiplier * cash[:, 0], 0.0)) * cd * idisc

    res = LsmValuator().run(p, cash, cost)
    assert res.value == pytest.approx(expected, rel=1e-12)
    assert res.singular_regressions == 0


def test_ridge_close_to_least_squares():
    p = ProcessParameters.reference().replace(runs=20_000)
    paths = PathSimulator(seed=99).simulate(p)

    ols = LsmValuator().value(p, *paths)
    ridge = LsmValuator(ridge=1e-8).value(p, *paths)
    assert ridge == pytest.approx(ols, rel=0.05)


def test_unknown_engine_key_rejected():
    with pytest.raises(TypeError):
        value_project(ProcessParameters.reference().replace(runs=100), paths=100)


def test_small_run_count_warns():
    with pytest.warns(UserWarning, match="runs < 5000"):
        value_project(ProcessParameters.reference().replace(runs=500, patent_length=2.0), seed=1)
