from __future__ import annotations


class RealOptionError(Exception):
    """Base class for valuation engine errors."""


class InvalidParameters(RealOptionError, ValueError):
    pass


class NumericOverflow(RealOptionError, ArithmeticError):
    pass


class ValuationTimeout(RealOptionError, TimeoutError):
    pass


class SingularRegressionWarning(UserWarning):
    """
    One or more per-period regressions had a rank-deficient basis and were
    resolved with the minimum-norm (or ridge) solution.
    """
