from __future__ import annotations

import dataclasses
import json
import math
from dataclasses import dataclass, fields
from typing import Any, Dict

from .errors import InvalidParameters

# number of monomials in the fixed (cost, cash) regression basis
N_BASIS = 9


@dataclass(frozen=True)
class ProcessParameters:
    # cash flow process (annual level, GBM)
    annual_cash_flow: float = 20e6
    drift: float = 0.02
    cash_volatility: float = 0.35
    terminal_multiplier: float = 5.0
    risk_premium: float = 0.036

    # cost-to-completion process (investment is the planned spend per year)
    investment: float = 10e6
    total_expected_cost: float = 100e6
    cost_volatility: float = 0.5
    failure_prob: float = 0.06931

    correlation: float = -0.1
    risk_free_rate: float = 0.05

    # simulation controls
    time_step: float = 0.25
    patent_length: float = 20.0
    runs: int = 200_000
    polynomial_order: int = N_BASIS

    @classmethod
    def reference(cls) -> "ProcessParameters":
        """
        The documented R&D project: $20M/yr cash flow once complete, $100M
        expected cost spent at $10M/yr, 20-year patent, quarterly steps.
        """
        return cls()

    @property
    def n_periods(self) -> int:
        return int(math.floor(float(self.patent_length) / float(self.time_step)))

    @property
    def adjusted_drift(self) -> float:
        # risk-neutral cash drift; lets the cash leg be discounted at r
        return float(self.drift - self.risk_premium)

    def validate(self) -> "ProcessParameters":
        for f in fields(self):
            v = getattr(self, f.name)
            if isinstance(v, bool) or not isinstance(v, (int, float)):
                raise InvalidParameters(f"{f.name} must be numeric, got {v!r}")
            if not math.isfinite(float(v)):
                raise InvalidParameters(f"{f.name} must be finite, got {v!r}")

        if self.time_step <= 0:
            raise InvalidParameters("time_step must be > 0")
        if int(self.runs) != self.runs or self.runs < 1:
            raise InvalidParameters("runs must be an integer >= 1")
        if abs(self.correlation) > 1.0:
            raise InvalidParameters("correlation must be in [-1, 1]")
        if self.polynomial_order != N_BASIS:
            raise InvalidParameters(
                f"polynomial_order must be {N_BASIS} (fixed cost/cash monomial basis), got {self.polynomial_order}"
            )
        if self.n_periods < 1:
            raise InvalidParameters("patent_length must cover at least one time_step")
        if self.annual_cash_flow <= 0:
            raise InvalidParameters("annual_cash_flow must be > 0")
        if self.cash_volatility < 0 or self.cost_volatility < 0:
            raise InvalidParameters("volatilities must be >= 0")
        if self.investment < 0 or self.total_expected_cost < 0:
            raise InvalidParameters("investment and total_expected_cost must be >= 0")
        if self.failure_prob < 0:
            raise InvalidParameters("failure_prob must be >= 0")
        return self

    def replace(self, **changes: Any) -> "ProcessParameters":
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProcessParameters":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidParameters(f"Unknown parameter keys: {unknown}")
        kwargs = dict(data)
        for k in ("runs", "polynomial_order"):
            if k in kwargs and isinstance(kwargs[k], float) and kwargs[k].is_integer():
                kwargs[k] = int(kwargs[k])
        return cls(**kwargs)

    @classmethod
    def from_json(cls, text: str) -> "ProcessParameters":
        return cls.from_dict(json.loads(text))
