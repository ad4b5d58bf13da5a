"""
PortfolioAggregator: roll up many sites into one set of portfolio totals.

EFFECTIVE VALUES
----------------
Every site KPI is resolved through one accessor, PortfolioSite.effective():

    override (if not None)  ->  latest simulation run value  ->  0

Overrides are manual corrections entered by an analyst; they always win over
the simulated value, including an explicit override of 0.

TOTALS
------
    total_*         fsum of effective values over all sites
    weighted_irr    sum(irr * net_capex) / sum(net_capex), over sites with
                    net_capex > 0 and a defined IRR; None when no site qualifies
    total_co2       from latest runs only (not overridable)
    discounted_capex = total_net_capex * (1 - volume_discount)

math.fsum is exact-rounded, so totals are independent of site order and
recalculating the same portfolio twice gives bit-identical results.

DESIGN MANDATE QUOTE
--------------------
Fixed fee schedule for the engineering study of a portfolio:

    travel      = ceil(n / 3) days * 150 $
    visit       = n * 600 $
    evaluation  = n * 1000 $
    diagrams    = n * 1900 $
    discount    = (travel + visit + evaluation + diagrams) * volume_discount
    GST 5 %, QST 9.975 % on the discounted subtotal
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Sequence, Tuple

from solar_finance import settings
from solar_finance.core.exceptions import InvalidInputError
from solar_finance.core.simulation import SimulationRun, latest_run

logger = logging.getLogger(__name__)

# KPI name -> SimulationRun attribute
KPI_ATTRIBUTES: Dict[str, str] = {
    "pv_size_kw": "design.pv_size_kw",
    "battery_energy_kwh": "design.battery_energy_kwh",
    "net_capex": "net_capex",
    "npv": "npv",
    "irr": "irr",
    "annual_savings": "annual_savings",
}


@dataclass(frozen=True)
class SiteOverrides:
    """Manual KPI corrections for one site; None means 'not overridden'."""

    pv_size_kw: Optional[float] = None
    battery_energy_kwh: Optional[float] = None
    net_capex: Optional[float] = None
    npv: Optional[float] = None
    irr: Optional[float] = None
    annual_savings: Optional[float] = None


@dataclass(frozen=True)
class PortfolioSite:
    """One building in a portfolio: its latest run plus any overrides."""

    site_id: str
    latest_run: Optional[SimulationRun] = None
    overrides: SiteOverrides = field(default_factory=SiteOverrides)

    @classmethod
    def from_runs(
        cls,
        site_id: str,
        runs: Iterable[SimulationRun],
        overrides: Optional[SiteOverrides] = None,
    ) -> "PortfolioSite":
        """Build a site from its run history, keeping only the newest run."""
        return cls(site_id, latest_run(runs), overrides or SiteOverrides())

    def simulated(self, kpi: str) -> Optional[float]:
        """Value of `kpi` in the latest run, or None without a run."""
        if kpi not in KPI_ATTRIBUTES:
            raise InvalidInputError("kpi", kpi, f"expected one of {sorted(KPI_ATTRIBUTES)}")
        if self.latest_run is None:
            return None
        value = self.latest_run
        for attr in KPI_ATTRIBUTES[kpi].split("."):
            value = getattr(value, attr)
        return value

    def resolved(self, kpi: str) -> Optional[float]:
        """Override if set, else the simulated value (may be None)."""
        override = getattr(self.overrides, kpi) if kpi in KPI_ATTRIBUTES else None
        if override is not None:
            return override
        return self.simulated(kpi)

    def effective(self, kpi: str) -> float:
        """Override, else simulated value, else 0."""
        value = self.resolved(kpi)
        return 0.0 if value is None else value

    @property
    def has_data(self) -> bool:
        return self.latest_run is not None


@dataclass(frozen=True)
class Portfolio:
    name: str
    sites: Tuple[PortfolioSite, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "sites", tuple(self.sites))
        seen = set()
        for site in self.sites:
            if site.site_id in seen:
                raise InvalidInputError("site_id", site.site_id, "duplicated in portfolio")
            seen.add(site.site_id)

    def __len__(self) -> int:
        return len(self.sites)


class VolumeDiscountPolicy:
    """
    Step table mapping a building count to a discount fraction.

    Args:
        tiers:
            (min_buildings, discount) pairs with strictly increasing
            thresholds and non-decreasing discounts.

        ceiling:
            Upper bound on any discount returned.
    """

    def __init__(
        self,
        tiers: Sequence[Tuple[int, float]] = settings.VOLUME_DISCOUNT_TIERS,
        ceiling: float = settings.VOLUME_DISCOUNT_CEILING,
    ) -> None:
        if not 0 <= ceiling < 1:
            raise InvalidInputError("ceiling", ceiling, "must be in [0, 1)")

        previous_threshold, previous_discount = 0, 0.0
        for threshold, discount in tiers:
            if threshold <= previous_threshold:
                raise InvalidInputError("tiers", tiers, "thresholds must be positive and strictly increasing")
            if discount < previous_discount:
                raise InvalidInputError("tiers", tiers, "discounts must be non-negative and non-decreasing")
            if discount > ceiling:
                raise InvalidInputError("tiers", tiers, f"discount {discount} exceeds ceiling {ceiling}")
            previous_threshold, previous_discount = threshold, discount

        self.tiers = tuple((int(t), float(d)) for t, d in tiers)
        self.ceiling = float(ceiling)

    def discount_for(self, num_buildings: int) -> float:
        if num_buildings < 0:
            raise InvalidInputError("num_buildings", num_buildings, "must be >= 0")
        discount = 0.0
        for threshold, tier_discount in self.tiers:
            if num_buildings >= threshold:
                discount = tier_discount
        return min(max(discount, 0.0), self.ceiling)


@dataclass(frozen=True)
class PortfolioTotals:
    total_pv_size_kw: float
    total_battery_energy_kwh: float
    total_net_capex: float
    total_npv: float
    weighted_irr: Optional[float]
    total_annual_savings: float
    total_co2_avoided: float
    num_buildings: int
    sites_with_data: int
    volume_discount: float
    discounted_capex: float

    def to_dict(self) -> dict:
        return {
            "total_pv_size_kw": self.total_pv_size_kw,
            "total_battery_energy_kwh": self.total_battery_energy_kwh,
            "total_net_capex": self.total_net_capex,
            "total_npv": self.total_npv,
            "weighted_irr": self.weighted_irr,
            "total_annual_savings": self.total_annual_savings,
            "total_co2_avoided": self.total_co2_avoided,
            "num_buildings": self.num_buildings,
            "sites_with_data": self.sites_with_data,
            "volume_discount": self.volume_discount,
            "discounted_capex": self.discounted_capex,
        }


@dataclass(frozen=True)
class MandateQuote:
    """Fee quote for the design study of a portfolio [$]."""

    num_buildings: int
    estimated_travel_days: int
    travel: float
    visit: float
    evaluation: float
    diagrams: float
    volume_discount: float
    discount: float
    subtotal: float
    gst: float
    qst: float
    total: float

    @property
    def subtotal_before_discount(self) -> float:
        return self.travel + self.visit + self.evaluation + self.diagrams

    def to_dict(self) -> dict:
        return {
            "num_buildings": self.num_buildings,
            "estimated_travel_days": self.estimated_travel_days,
            "travel": self.travel,
            "visit": self.visit,
            "evaluation": self.evaluation,
            "diagrams": self.diagrams,
            "volume_discount": self.volume_discount,
            "discount": self.discount,
            "subtotal": self.subtotal,
            "gst": self.gst,
            "qst": self.qst,
            "total": self.total,
        }


def quote_design_mandate(num_buildings: int, policy: Optional[VolumeDiscountPolicy] = None) -> MandateQuote:
    """
    Quote the engineering study of `num_buildings` buildings.

    Example:
        >>> quote_design_mandate(3).subtotal
        10650.0
    """
    if isinstance(num_buildings, bool) or not isinstance(num_buildings, int):
        raise InvalidInputError("num_buildings", num_buildings, "must be an integer")
    if num_buildings < 0:
        raise InvalidInputError("num_buildings", num_buildings, "must be >= 0")
    policy = policy or VolumeDiscountPolicy()

    travel_days = math.ceil(num_buildings / settings.BUILDINGS_PER_TRAVEL_DAY)
    travel = travel_days * settings.TRAVEL_COST_PER_DAY
    visit = num_buildings * settings.VISIT_COST_PER_BUILDING
    evaluation = num_buildings * settings.EVALUATION_COST_PER_BUILDING
    diagrams = num_buildings * settings.DIAGRAMS_COST_PER_BUILDING

    volume_discount = policy.discount_for(num_buildings)
    discount = (travel + visit + evaluation + diagrams) * volume_discount
    subtotal = travel + visit + evaluation + diagrams - discount
    gst = subtotal * settings.GST_RATE
    qst = subtotal * settings.QST_RATE

    return MandateQuote(
        num_buildings=num_buildings,
        estimated_travel_days=travel_days,
        travel=travel,
        visit=visit,
        evaluation=evaluation,
        diagrams=diagrams,
        volume_discount=volume_discount,
        discount=discount,
        subtotal=subtotal,
        gst=gst,
        qst=qst,
        total=subtotal + gst + qst,
    )


class PortfolioAggregator:
    """Pure, idempotent reduction of a Portfolio into PortfolioTotals."""

    def __init__(self, policy: Optional[VolumeDiscountPolicy] = None) -> None:
        self.policy = policy or VolumeDiscountPolicy()

    def recalculate(self, portfolio: Portfolio) -> PortfolioTotals:
        """
        Compute portfolio totals.

        Args:
            portfolio:
                Sites with their latest runs and overrides.

        Returns:
            PortfolioTotals. An empty portfolio yields all-zero totals and
            weighted_irr=None.
        """
        sites = portfolio.sites

        def total(kpi: str) -> float:
            return math.fsum(site.effective(kpi) for site in sites)

        irr_numerator = []
        irr_denominator = []
        for site in sites:
            capex = site.effective("net_capex")
            site_irr = site.resolved("irr")
            if capex > 0 and site_irr is not None:
                irr_numerator.append(site_irr * capex)
                irr_denominator.append(capex)
        denominator = math.fsum(irr_denominator)
        weighted_irr = math.fsum(irr_numerator) / denominator if denominator > 0 else None

        total_net_capex = total("net_capex")
        num_buildings = len(sites)
        volume_discount = self.policy.discount_for(num_buildings)

        totals = PortfolioTotals(
            total_pv_size_kw=total("pv_size_kw"),
            total_battery_energy_kwh=total("battery_energy_kwh"),
            total_net_capex=total_net_capex,
            total_npv=total("npv"),
            weighted_irr=weighted_irr,
            total_annual_savings=total("annual_savings"),
            total_co2_avoided=math.fsum(
                site.latest_run.co2_avoided_tonnes_per_year for site in sites if site.has_data
            ),
            num_buildings=num_buildings,
            sites_with_data=sum(1 for site in sites if site.has_data),
            volume_discount=volume_discount,
            discounted_capex=total_net_capex * (1.0 - volume_discount),
        )
        logger.info(
            "Portfolio %r: %d buildings (%d with data), net CAPEX %.2f, discount %.0f%%",
            portfolio.name, num_buildings, totals.sites_with_data, total_net_capex, volume_discount * 100,
        )
        return totals

    def quote(self, portfolio: Portfolio) -> MandateQuote:
        """Design mandate quote for every building in `portfolio`."""
        return quote_design_mandate(len(portfolio), self.policy)
