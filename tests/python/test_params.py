import math

import pytest

from rdoption import InvalidParameters, ProcessParameters


def test_reference_scenario():
    p = ProcessParameters.reference()
    assert p.n_periods == 80
    assert p.adjusted_drift == pytest.approx(0.02 - 0.036)
    assert p.runs == 200_000
    assert p.validate() is p


def test_n_periods_floors():
    p = ProcessParameters(time_step=0.3, patent_length=1.0)
    assert p.n_periods == 3


@pytest.mark.parametrize(
    "changes",
    [
        {"time_step": 0.0},
        {"time_step": -0.25},
        {"runs": 0},
        {"runs": 10.5},
        {"correlation": 1.01},
        {"correlation": -2.0},
        {"polynomial_order": 5},
        {"patent_length": 0.1},
        {"cash_volatility": -0.1},
        {"investment": -1.0},
        {"failure_prob": -0.01},
        {"annual_cash_flow": 0.0},
        {"drift": float("nan")},
        {"risk_free_rate": float("inf")},
    ],
)
def test_validate_rejects(changes):
    with pytest.raises(InvalidParameters):
        ProcessParameters.reference().replace(**changes).validate()


def test_invalid_parameters_is_value_error():
    with pytest.raises(ValueError):
        ProcessParameters(runs=0).validate()


@pytest.mark.parametrize("rho", [-1.0, 1.0])
def test_perfect_correlation_allowed(rho):
    ProcessParameters(correlation=rho).validate()


def test_json_round_trip():
    p = ProcessParameters.reference().replace(runs=1234, correlation=0.25)
    q = ProcessParameters.from_json(p.to_json())
    assert q == p
    assert isinstance(q.runs, int)


def test_from_dict_accepts_integral_floats_for_counts():
    p = ProcessParameters.from_dict({"runs": 5000.0, "polynomial_order": 9.0})
    assert p.runs == 5000 and isinstance(p.runs, int)
    assert p.polynomial_order == 9


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(InvalidParameters):
        ProcessParameters.from_dict({"Runs": 10})


def test_parameters_are_immutable():
    p = ProcessParameters.reference()
    with pytest.raises(Exception):
        p.runs = 10  # type: ignore[misc]
    assert math.isclose(p.replace(drift=0.03).drift, 0.03)
