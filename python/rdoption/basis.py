from __future__ import annotations

import numpy as np


def basis_row(cost: float, cash: float) -> np.ndarray:
    c, x = float(cost), float(cash)
    return np.array([1.0, c, x, c * x, c * c, x * x, c * c * x, c * x * x, (c * x) ** 2])


def basis_matrix(cost: np.ndarray, cash: np.ndarray) -> np.ndarray:
    """
    Stack basis rows for every run, shape [runs, 9]. Column order matches
    basis_row: 1, c, x, cx, c^2, x^2, c^2 x, c x^2, (cx)^2.
    """
    c = np.asarray(cost, dtype=float)
    x = np.asarray(cash, dtype=float)
    if c.shape != x.shape or c.ndim != 1:
        raise ValueError("cost and cash must be 1-d arrays of equal length")

    cx = c * x
    return np.column_stack([np.ones_like(c), c, x, cx, c * c, x * x, cx * c, cx * x, cx * cx])
