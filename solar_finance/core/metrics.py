"""
FinancialMetricsEngine: NPV, IRR, payback, LCOE and CO2 from a cashflow series.

Formulas:
    NPV  = -net_capex + sum_{y=1..H} cf_y / (1 + r)^y
    IRR  = r such that NPV(r) = 0, searched on rates >= 0
    LCOE = net_capex / sum_{y=1..L} production_y      (L = lcoe_horizon_years)
    CO2  = annual_production * grid_emission_factor / 1000   [t/year]

IRR is None whenever no root exists in the search range: a series that never
recovers its investment, a series with no outflow (nothing was invested), or
a solver failure. These are legitimate outcomes and never raise.

LCOE uses its own truncated horizon (20 years by default), independent of the
25-year analysis horizon, and the same compounding order as the projector
(year 1 is already degraded once).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import numpy as np
from scipy.optimize import brentq

from solar_finance.core.assumptions import FinancialAssumptions
from solar_finance.core.cashflow import CashflowProjection


# IRR search range [rate]
IRR_LOWER_BOUND = 0.0
IRR_UPPER_LIMIT = 100.0
IRR_TOLERANCE = 1e-10


@dataclass(frozen=True)
class FinancialMetrics:
    """Summary metrics of one cashflow projection."""

    npv: float
    irr: Optional[float]
    simple_payback_years: int
    payback_reached: bool
    lcoe: Optional[float]

    def to_dict(self) -> dict:
        return {
            "npv": self.npv,
            "irr": self.irr,
            "simple_payback_years": self.simple_payback_years,
            "payback_reached": self.payback_reached,
            "lcoe": self.lcoe,
        }


def npv(series: Sequence[float], rate: float) -> float:
    """
    Net present value of [cf_0, cf_1, ..., cf_n] at `rate` (cf_0 undiscounted).

    Example:
        >>> npv([-100.0, 60.0, 60.0], 0.0)
        20.0
    """
    cashflows = np.asarray(series, dtype=float)
    discount = np.power(1.0 + rate, np.arange(cashflows.size, dtype=float))
    return float(np.sum(cashflows / discount))


def npv_profile(series: Sequence[float], rates: Iterable[float]) -> List[float]:
    """NPV at each of several discount rates."""
    return [npv(series, r) for r in rates]


def irr(series: Sequence[float]) -> Optional[float]:
    """
    Internal rate of return of [cf_0, ..., cf_n], or None if it does not exist.

    Uses Brent's method on a bracket [0, hi]; hi starts at 1.0 and doubles
    until NPV changes sign or IRR_UPPER_LIMIT is passed.
    """
    cashflows = np.asarray(series, dtype=float)
    if cashflows.size < 2 or not np.all(np.isfinite(cashflows)):
        return None
    if not (np.any(cashflows < 0) and np.any(cashflows > 0)):
        return None

    def f(rate: float) -> float:
        return npv(cashflows, rate)

    low = IRR_LOWER_BOUND
    f_low = f(low)
    if f_low == 0.0:
        return low

    high = 1.0
    f_high = f(high)
    while f_low * f_high > 0 and high < IRR_UPPER_LIMIT:
        high *= 2.0
        f_high = f(high)

    if f_low * f_high > 0:
        return None

    try:
        root = brentq(f, low, high, xtol=IRR_TOLERANCE, maxiter=200)
    except (ValueError, RuntimeError):
        return None
    return float(root) if np.isfinite(root) else None


def lifetime_production(initial_production_kwh: float, degradation_rate: float, years: int) -> float:
    """Sum of degraded production over `years`, year 1 already degraded once."""
    production = initial_production_kwh
    total = 0.0
    for _ in range(years):
        production = production * (1.0 - degradation_rate)
        total += production
    return total


def lcoe(net_capex: float, initial_production_kwh: float, degradation_rate: float, years: int) -> Optional[float]:
    """Levelized cost [$/kWh]; None when there is no production to divide by."""
    produced = lifetime_production(initial_production_kwh, degradation_rate, years)
    if produced <= 0:
        return None
    return net_capex / produced


def co2_avoided_tonnes(annual_production_kwh: float, emission_factor_kg_per_kwh: float) -> float:
    return annual_production_kwh * emission_factor_kg_per_kwh / 1000.0


class FinancialMetricsEngine:
    """Derives FinancialMetrics from a CashflowProjection."""

    def __init__(self, assumptions: Optional[FinancialAssumptions] = None) -> None:
        self.assumptions = assumptions or FinancialAssumptions()

    def evaluate(
        self,
        projection: CashflowProjection,
        initial_production_kwh: float,
        discount_rate: Optional[float] = None,
    ) -> FinancialMetrics:
        """
        Compute metrics for a projection.

        Args:
            projection:
                Output of CashflowProjector.project().

            initial_production_kwh:
                Year-0 production [kWh], used for LCOE.

            discount_rate:
                Overrides assumptions.discount_rate for NPV.
        """
        a = self.assumptions
        rate = a.discount_rate if discount_rate is None else discount_rate
        series = projection.as_series()

        return FinancialMetrics(
            npv=npv(series, rate),
            irr=irr(series),
            simple_payback_years=projection.simple_payback_years,
            payback_reached=projection.payback_reached,
            lcoe=lcoe(
                projection.initial_investment,
                initial_production_kwh,
                a.degradation_rate,
                a.lcoe_horizon_years,
            ),
        )
