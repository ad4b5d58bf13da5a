"""
Financing comparison: cash purchase, capital lease and PPA for one simulated run.

The energy side (production, tariff, savings, O&M) is taken as-is from the
SimulationRun so the three structures differ only in who pays for the system
and when.

CASH PURCHASE
-------------
The client invests net_capex up front and keeps every incentive. Unless the
run already took the accelerated-depreciation shield up front, the residual
cost is also depreciated on a declining balance (CCA) with the half-year rule:

    deduction_1 = ucc * cca_rate * 0.5
    deduction_y = ucc * cca_rate            (y > 1)
    cca_benefit = deduction * tax_rate

    net = savings - om + cca_benefit        cumulative starts at -net_capex

CAPITAL LEASE
-------------
No up-front investment. The lessor finances net_capex plus a premium, repaid
in equal instalments over the lease term; the client owns the system after:

    payment = net_capex / lease_term * (1 + lease_premium)     (y <= term)
    net     = savings - om - payment                           cumulative starts at 0

POWER PURCHASE AGREEMENT
------------------------
A third party owns the system and keeps the incentives. During the term the
client buys the solar output at a discount to the grid rate; afterwards the
system is handed over and only an O&M share of the solar value is paid:

    ppa_rate = tariff_0 * (1 + ppa_rate_inflation)^y * (1 - ppa_discount)
    payment  = production * ppa_rate                           (y <= term)
    payment  = savings * ppa_post_term_om_rate                 (y > term)
    net      = savings - payment

The PPA "payback" is the first year the client's cumulative benefit covers
the incentives and CCA value it gave up by not owning the system.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from solar_finance import settings
from solar_finance.core.exceptions import InvalidInputError
from solar_finance.core.simulation import SimulationRun

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinancingTerms:
    """
    Contract terms of the lease and PPA structures, plus the CCA rate.

    Attributes:
        lease_term_years: Number of lease instalments [years].
        lease_premium: Lessor margin on the financed amount [fraction].
        ppa_term_years: Duration of the PPA before hand-over [years].
        ppa_discount: PPA price reduction versus the grid rate [fraction].
        ppa_rate_inflation: Yearly escalation of the PPA price [fraction].
        ppa_post_term_om_rate: O&M paid after hand-over [fraction of solar value].
        cca_rate: Declining-balance depreciation rate for a cash purchase.
    """

    lease_term_years: int = settings.LEASE_TERM_YEARS
    lease_premium: float = settings.LEASE_PREMIUM
    ppa_term_years: int = settings.PPA_TERM_YEARS
    ppa_discount: float = settings.PPA_DISCOUNT
    ppa_rate_inflation: float = settings.PPA_RATE_INFLATION
    ppa_post_term_om_rate: float = settings.PPA_POST_TERM_OM_RATE
    cca_rate: float = settings.CCA_RATE

    def __post_init__(self) -> None:
        if self.lease_term_years < 1:
            raise InvalidInputError("lease_term_years", self.lease_term_years, "must be >= 1")
        if self.ppa_term_years < 0:
            raise InvalidInputError("ppa_term_years", self.ppa_term_years, "must be >= 0")
        if self.lease_premium < 0:
            raise InvalidInputError("lease_premium", self.lease_premium, "must be >= 0")
        if not 0.0 <= self.ppa_discount <= 1.0:
            raise InvalidInputError("ppa_discount", self.ppa_discount, "must be in [0, 1]")
        if self.ppa_rate_inflation <= -1.0:
            raise InvalidInputError("ppa_rate_inflation", self.ppa_rate_inflation, "must be > -1")
        if not 0.0 <= self.ppa_post_term_om_rate <= 1.0:
            raise InvalidInputError("ppa_post_term_om_rate", self.ppa_post_term_om_rate, "must be in [0, 1]")
        if not 0.0 <= self.cca_rate <= 1.0:
            raise InvalidInputError("cca_rate", self.cca_rate, "must be in [0, 1]")


@dataclass(frozen=True)
class FinancingYear:
    """One year of a financing scenario from the client's point of view [$]."""

    year: int
    savings: float
    om_cost: float
    cca_benefit: float
    payment: float
    net_cashflow: float
    cumulative: float


@dataclass(frozen=True)
class FinancingScenario:
    """
    Year-by-year client position under one financing structure.

    Attributes:
        name: "cash", "lease" or "ppa".
        investment: Up-front client investment [$].
        entries: One FinancingYear per modeled year.
        payback_year: First year the payback threshold is met, None if never.
        ownership_year: First year the client owns the system outright.
    """

    name: str
    investment: float
    entries: Tuple[FinancingYear, ...]
    payback_year: Optional[int]
    ownership_year: int

    @property
    def total_savings(self) -> float:
        """Final cumulative position [$]."""
        return self.entries[-1].cumulative

    @property
    def avg_annual_savings(self) -> float:
        """Net benefit per year, excluding the up-front investment [$/year]."""
        return (self.total_savings + self.investment) / len(self.entries)

    @property
    def total_payments(self) -> float:
        return sum(e.payment for e in self.entries)

    def to_dataframe(self):
        """Return entries as a pandas DataFrame indexed by year."""
        try:
            import pandas as pd
        except ImportError:
            raise ImportError("pandas required for to_dataframe(). Install with: pip install pandas") from None
        return pd.DataFrame([e.__dict__ for e in self.entries]).set_index("year")


@dataclass(frozen=True)
class FinancingComparison:
    """The three structures side by side for one run."""

    cash: FinancingScenario
    lease: FinancingScenario
    ppa: FinancingScenario
    foregone_incentives: float

    def as_dict(self) -> Dict[str, FinancingScenario]:
        return {"cash": self.cash, "lease": self.lease, "ppa": self.ppa}

    def best_by_total_savings(self) -> FinancingScenario:
        """Scenario with the highest final cumulative position (cash wins ties)."""
        return max(self.as_dict().values(), key=lambda s: s.total_savings)


def _first_year_at_or_above(entries: List[FinancingYear], threshold: float) -> Optional[int]:
    for entry in entries:
        if entry.cumulative >= threshold:
            return entry.year
    return None


class FinancingCalculator:
    """Build cash, lease and PPA scenarios from a SimulationRun."""

    def __init__(self, terms: Optional[FinancingTerms] = None, tax_rate: float = settings.TAX_RATE) -> None:
        self.terms = terms or FinancingTerms()
        self.tax_rate = tax_rate

    def cca_benefits(self, run: SimulationRun) -> List[float]:
        """Yearly CCA tax benefit of owning the system; zeros if the shield was taken up front."""
        horizon = len(run.cashflows)
        if run.incentives.tax_shield > 0:
            return [0.0] * horizon

        ucc = run.net_capex
        benefits = []
        for year in range(1, horizon + 1):
            rate = self.terms.cca_rate * (0.5 if year == 1 else 1.0)
            deduction = ucc * rate
            ucc -= deduction
            benefits.append(deduction * self.tax_rate)
        return benefits

    def cash(self, run: SimulationRun) -> FinancingScenario:
        benefits = self.cca_benefits(run)
        cumulative = -run.net_capex
        entries = []
        for entry, cca in zip(run.cashflows, benefits):
            net = entry.savings - entry.om_cost + cca
            cumulative += net
            entries.append(FinancingYear(
                year=entry.year,
                savings=entry.savings,
                om_cost=entry.om_cost,
                cca_benefit=cca,
                payment=0.0,
                net_cashflow=net,
                cumulative=cumulative,
            ))
        return FinancingScenario(
            name="cash",
            investment=run.net_capex,
            entries=tuple(entries),
            payback_year=_first_year_at_or_above(entries, 0.0),
            ownership_year=1,
        )

    def lease(self, run: SimulationRun) -> FinancingScenario:
        t = self.terms
        instalment = run.net_capex / t.lease_term_years * (1.0 + t.lease_premium)
        cumulative = 0.0
        entries = []
        for entry in run.cashflows:
            payment = instalment if entry.year <= t.lease_term_years else 0.0
            net = entry.savings - entry.om_cost - payment
            cumulative += net
            entries.append(FinancingYear(
                year=entry.year,
                savings=entry.savings,
                om_cost=entry.om_cost,
                cca_benefit=0.0,
                payment=payment,
                net_cashflow=net,
                cumulative=cumulative,
            ))
        return FinancingScenario(
            name="lease",
            investment=0.0,
            entries=tuple(entries),
            payback_year=_first_year_at_or_above(entries, 0.0),
            ownership_year=t.lease_term_years + 1,
        )

    def ppa(self, run: SimulationRun, foregone_incentives: float) -> FinancingScenario:
        t = self.terms
        ppa_rate = run.profile.tariff_rate * (1.0 - t.ppa_discount)
        cumulative = 0.0
        entries = []
        for entry in run.cashflows:
            ppa_rate = ppa_rate * (1.0 + t.ppa_rate_inflation)
            if entry.year <= t.ppa_term_years:
                payment = entry.production_kwh * ppa_rate
            else:
                payment = entry.savings * t.ppa_post_term_om_rate
            net = entry.savings - payment
            cumulative += net
            entries.append(FinancingYear(
                year=entry.year,
                savings=entry.savings,
                om_cost=0.0,
                cca_benefit=0.0,
                payment=payment,
                net_cashflow=net,
                cumulative=cumulative,
            ))
        return FinancingScenario(
            name="ppa",
            investment=0.0,
            entries=tuple(entries),
            payback_year=_first_year_at_or_above(entries, foregone_incentives),
            ownership_year=t.ppa_term_years + 1,
        )

    def compare(self, run: SimulationRun) -> FinancingComparison:
        """
        Compare the three structures for one run.

        Args:
            run:
                A completed simulation. Its cashflows supply the energy side.

        Returns:
            FinancingComparison with the incentives and CCA value a PPA client
            forgoes by not owning the system.
        """
        if not isinstance(run, SimulationRun):
            raise InvalidInputError("run", run, "expected a SimulationRun")

        foregone = run.incentives.total_incentives + sum(self.cca_benefits(run))
        comparison = FinancingComparison(
            cash=self.cash(run),
            lease=self.lease(run),
            ppa=self.ppa(run, foregone),
            foregone_incentives=foregone,
        )
        logger.debug(
            "Financing for %s: cash=%.2f lease=%.2f ppa=%.2f",
            run.design.label,
            comparison.cash.total_savings,
            comparison.lease.total_savings,
            comparison.ppa.total_savings,
        )
        return comparison


def compare_financing(run: SimulationRun, terms: Optional[FinancingTerms] = None) -> FinancingComparison:
    """Shortcut for FinancingCalculator(terms).compare(run)."""
    return FinancingCalculator(terms).compare(run)
