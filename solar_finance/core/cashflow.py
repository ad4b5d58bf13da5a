"""
CashflowProjector: year-by-year net cashflow over the analysis horizon.

COMPOUNDING ORDER
-----------------
Production and tariff start at their year-0 (nameplate / current) values and
are stepped BEFORE each year's savings are computed. Year 1 is therefore
already one step degraded and one step inflated:

    for y in 1..horizon:
        production *= (1 - degradation_rate)
        tariff     *= (1 + tariff_inflation)
        savings     = production * tariff + demand_savings_y
        om          = gross_capex * om_rate
        net         = savings - om
        cumulative += net            # cumulative starts at -net_capex

Shifting the compounding by one year moves payback results by up to a year,
so the order above is part of the contract.

SIMPLE PAYBACK
--------------
First year whose cumulative cashflow is >= 0. When no such year exists the
payback is reported as the horizon itself with payback_reached=False; the
horizon value is a sentinel, not a break-even.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from solar_finance.core.assumptions import FinancialAssumptions
from solar_finance.core.exceptions import InvalidInputError


@dataclass(frozen=True)
class CashflowEntry:
    """One modeled year."""

    year: int
    production_kwh: float
    tariff_rate: float
    savings: float
    om_cost: float
    net_cashflow: float
    cumulative: float

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "production_kwh": self.production_kwh,
            "tariff_rate": self.tariff_rate,
            "savings": self.savings,
            "om_cost": self.om_cost,
            "net_cashflow": self.net_cashflow,
            "cumulative": self.cumulative,
        }


@dataclass(frozen=True)
class CashflowProjection:
    """Ordered, immutable cashflow series plus the payback it implies."""

    initial_investment: float
    entries: Tuple[CashflowEntry, ...]
    simple_payback_years: int
    payback_reached: bool

    @property
    def horizon(self) -> int:
        return len(self.entries)

    def as_series(self) -> List[float]:
        """[-net_capex, cf_1, ..., cf_horizon] for NPV/IRR."""
        return [-self.initial_investment] + [e.net_cashflow for e in self.entries]

    def to_dataframe(self):
        """Return entries as a pandas DataFrame indexed by year."""
        try:
            import pandas as pd
        except ImportError:
            raise ImportError("pandas required for to_dataframe(). Install with: pip install pandas") from None
        return pd.DataFrame([e.to_dict() for e in self.entries]).set_index("year")


class CashflowProjector:
    """Builds a CashflowProjection from investment and operating assumptions."""

    def __init__(self, assumptions: Optional[FinancialAssumptions] = None) -> None:
        self.assumptions = assumptions or FinancialAssumptions()

    def project(
        self,
        net_capex: float,
        gross_capex: float,
        initial_production_kwh: float,
        initial_tariff: float,
        horizon: Optional[int] = None,
        initial_demand_savings: float = 0.0,
    ) -> CashflowProjection:
        """
        Project the cashflow series.

        Args:
            net_capex:
                Investment after incentives [$]; cumulative starts at its negative.

            gross_capex:
                Investment before incentives [$]; base for O&M.

            initial_production_kwh:
                Year-0 annual production [kWh] (size * specific yield).

            initial_tariff:
                Year-0 energy rate [$/kWh].

            horizon:
                Number of years. Defaults to assumptions.horizon_years.

            initial_demand_savings:
                Year-0 demand-charge savings [$/year] from battery peak shaving.
                Escalates with the tariff, does not degrade.

        Returns:
            CashflowProjection with exactly `horizon` entries.
        """
        a = self.assumptions
        horizon = a.horizon_years if horizon is None else horizon
        if horizon < 1:
            raise InvalidInputError("horizon", horizon, "must be >= 1")
        if net_capex < 0:
            raise InvalidInputError("net_capex", net_capex, "must be >= 0")
        if gross_capex < 0:
            raise InvalidInputError("gross_capex", gross_capex, "must be >= 0")
        if initial_production_kwh < 0:
            raise InvalidInputError("initial_production_kwh", initial_production_kwh, "must be >= 0")
        if initial_tariff <= 0:
            raise InvalidInputError("initial_tariff", initial_tariff, "must be > 0")

        production = initial_production_kwh
        tariff = initial_tariff
        demand_savings = initial_demand_savings
        om_cost = gross_capex * a.om_rate
        cumulative = -net_capex

        entries: List[CashflowEntry] = []
        payback_year = None

        for year in range(1, horizon + 1):
            production = production * (1.0 - a.degradation_rate)
            tariff = tariff * (1.0 + a.tariff_inflation)
            demand_savings = demand_savings * (1.0 + a.tariff_inflation)

            savings = production * tariff + demand_savings
            net = savings - om_cost
            cumulative = cumulative + net

            entries.append(CashflowEntry(
                year=year,
                production_kwh=production,
                tariff_rate=tariff,
                savings=savings,
                om_cost=om_cost,
                net_cashflow=net,
                cumulative=cumulative,
            ))

            if payback_year is None and cumulative >= 0:
                payback_year = year

        return CashflowProjection(
            initial_investment=net_capex,
            entries=tuple(entries),
            simple_payback_years=payback_year if payback_year is not None else horizon,
            payback_reached=payback_year is not None,
        )
