import numpy as np
import pytest

from rdoption.basis import basis_matrix, basis_row


def test_basis_row_monomial_order():
    np.testing.assert_array_equal(basis_row(2, 3), [1, 2, 3, 6, 4, 9, 12, 18, 36])


def test_basis_matrix_rows_match_basis_row():
    rng = np.random.default_rng(1)
    cost = rng.uniform(0.0, 100.0, size=7)
    cash = rng.uniform(1.0, 20.0, size=7)

    B = basis_matrix(cost, cash)
    assert B.shape == (7, 9)
    for i in range(7):
        np.testing.assert_allclose(B[i], basis_row(cost[i], cash[i]), rtol=1e-14)


def test_basis_matrix_zero_cost_keeps_cash_terms_only():
    B = basis_matrix(np.zeros(3), np.array([1.0, 2.0, 3.0]))
    # columns that involve cost vanish once the investment is complete
    np.testing.assert_array_equal(B[:, [1, 3, 4, 6, 7, 8]], 0.0)
    np.testing.assert_array_equal(B[:, 5], [1.0, 4.0, 9.0])


def test_basis_matrix_rejects_mismatched_inputs():
    with pytest.raises(ValueError):
        basis_matrix(np.zeros(3), np.zeros(4))
