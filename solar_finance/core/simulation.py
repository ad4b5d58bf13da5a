"""
Simulation pipeline: SiteEnergyProfile + SystemDesign -> SimulationRun.

    IncentiveCalculator -> CashflowProjector -> FinancialMetricsEngine

One call produces one immutable SimulationRun. A different design (or
different assumptions) produces a new run; runs are never edited in place.

Inputs are validated before any arithmetic happens. Validation failures
surface as InvalidInputError naming the field; anything else that goes wrong
inside the pipeline is wrapped in SimulationError carrying the design, so a
caller never receives a partially built run.

Energy model
------------
Production is annual: pv_size_kw * irradiance_yield. Under net metering every
produced kWh offsets the energy rate, so savings are production * tariff.
A battery adds demand-charge savings (peak shaving) and raises
self-sufficiency by shifting surplus PV energy:

    shaved_kw      = min(battery_power_kw, peak_demand_kw * peak_shaving_fraction)
    demand_savings = shaved_kw * demand_charge * 12

    direct  = min(production * solar_coincidence_fraction, consumption)
    stored  = min(battery_energy_kwh * round_trip_eff * cycles_per_year,
                  production - direct)
    self-sufficiency % = min(direct + stored, consumption) / consumption * 100
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional, Tuple

from solar_finance import settings
from solar_finance.core.assumptions import FinancialAssumptions
from solar_finance.core.cashflow import CashflowEntry, CashflowProjector
from solar_finance.core.exceptions import InvalidInputError, SimulationError, SolarFinanceError
from solar_finance.core.incentives import IncentiveBreakdown, IncentiveCalculator, gross_capex
from solar_finance.core.metrics import FinancialMetrics, FinancialMetricsEngine, co2_avoided_tonnes
from solar_finance.core.models import SiteEnergyProfile, SystemDesign

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationRun:
    """Result of one pipeline execution for one design."""

    design: SystemDesign
    profile: SiteEnergyProfile
    incentives: IncentiveBreakdown
    cashflows: Tuple[CashflowEntry, ...]
    metrics: FinancialMetrics
    annual_production_kwh: float
    annual_savings: float
    co2_avoided_tonnes_per_year: float
    self_sufficiency_percent: float
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), compare=False)

    # Shortcuts used by the optimizer and the portfolio aggregator

    @property
    def npv(self) -> float:
        return self.metrics.npv

    @property
    def irr(self) -> Optional[float]:
        return self.metrics.irr

    @property
    def simple_payback_years(self) -> int:
        return self.metrics.simple_payback_years

    @property
    def payback_reached(self) -> bool:
        return self.metrics.payback_reached

    @property
    def lcoe(self) -> Optional[float]:
        return self.metrics.lcoe

    @property
    def gross_capex(self) -> float:
        return self.incentives.gross_capex

    @property
    def net_capex(self) -> float:
        return self.incentives.net_capex

    def to_dict(self) -> dict:
        """Flat representation for persistence and reporting collaborators."""
        return {
            "site_id": self.profile.site_id,
            "pv_size_kw": self.design.pv_size_kw,
            "battery_energy_kwh": self.design.battery_energy_kwh,
            "battery_power_kw": self.design.battery_power_kw,
            **self.incentives.to_dict(),
            **self.metrics.to_dict(),
            "annual_production_kwh": self.annual_production_kwh,
            "annual_savings": self.annual_savings,
            "co2_avoided_tonnes_per_year": self.co2_avoided_tonnes_per_year,
            "self_sufficiency_percent": self.self_sufficiency_percent,
            "created_at": self.created_at.isoformat(),
            "cashflows": [entry.to_dict() for entry in self.cashflows],
        }


# ----------------------------------------------------------------------
# Sizing helpers
# ----------------------------------------------------------------------

def max_pv_from_roof(roof_area_sqft: float, utilization: float = settings.ROOF_UTILIZATION) -> float:
    """
    PV ceiling [kW] that fits on a roof.

    usable m2 / panel footprint * panel power, with the roof area given in sq ft.
    """
    if roof_area_sqft < 0:
        raise InvalidInputError("roof_area_sqft", roof_area_sqft, "must be >= 0")
    usable_m2 = roof_area_sqft / settings.SQFT_PER_M2 * utilization
    return usable_m2 / settings.PANEL_FOOTPRINT_M2 * settings.PANEL_POWER_KW


def size_for_offset(
    annual_consumption_kwh: float,
    offset_fraction: float,
    irradiance_yield: float = settings.IRRADIANCE_YIELD,
    roof_cap_kw: Optional[float] = None,
) -> float:
    """
    PV size [kWp] that produces `offset_fraction` of annual consumption.

    Rounded to the nearest kW and capped by the roof when a cap is given.

    Example:
        >>> size_for_offset(46_212, 0.70, 1250)
        26.0
    """
    if annual_consumption_kwh < 0:
        raise InvalidInputError("annual_consumption_kwh", annual_consumption_kwh, "must be >= 0")
    if offset_fraction < 0:
        raise InvalidInputError("offset_fraction", offset_fraction, "must be >= 0")
    if irradiance_yield <= 0:
        raise InvalidInputError("irradiance_yield", irradiance_yield, "must be > 0")

    size = round(annual_consumption_kwh * offset_fraction / irradiance_yield)
    if roof_cap_kw is not None:
        size = min(size, roof_cap_kw)
    return float(size)


def demand_savings(
    design: SystemDesign,
    profile: SiteEnergyProfile,
    assumptions: FinancialAssumptions,
) -> float:
    """Year-0 demand-charge savings [$/year] from battery peak shaving."""
    if design.battery_energy_kwh <= 0:
        return 0.0
    shaved_kw = min(design.battery_power_kw, profile.peak_demand_kw * assumptions.peak_shaving_fraction)
    return shaved_kw * assumptions.demand_charge * 12.0


def self_sufficiency_percent(
    design: SystemDesign,
    profile: SiteEnergyProfile,
    annual_production_kwh: float,
    assumptions: FinancialAssumptions,
) -> float:
    consumption = profile.annual_consumption_kwh
    if consumption <= 0:
        return 0.0

    direct = min(annual_production_kwh * assumptions.solar_coincidence_fraction, consumption)
    surplus = max(0.0, annual_production_kwh - direct)
    storable = (
        design.battery_energy_kwh
        * assumptions.battery_round_trip_efficiency
        * assumptions.battery_cycles_per_year
    )
    stored = min(storable, surplus)
    return min(direct + stored, consumption) / consumption * 100.0


# ----------------------------------------------------------------------
# Pipeline
# ----------------------------------------------------------------------

def run_simulation(
    profile: SiteEnergyProfile,
    design: SystemDesign,
    assumptions: Optional[FinancialAssumptions] = None,
    incentives: bool = True,
    created_at: Optional[datetime] = None,
) -> SimulationRun:
    """
    Run the full pipeline for one design.

    Args:
        profile:
            Site being studied.

        design:
            Proposed PV + battery sizes.

        assumptions:
            Financial assumptions; defaults from solar_finance.settings.

        incentives:
            Whether utility/federal incentives are requested.

        created_at:
            Timestamp recorded on the run (defaults to now, UTC). Used to
            pick the latest run of a site.

    Returns:
        SimulationRun.

    Raises:
        InvalidInputError: Bad profile, design or assumptions type.
        SimulationError: Any other failure while computing this design.
    """
    if not isinstance(profile, SiteEnergyProfile):
        raise InvalidInputError("profile", profile, "expected a SiteEnergyProfile")
    if not isinstance(design, SystemDesign):
        raise InvalidInputError("design", design, "expected a SystemDesign")
    a = assumptions or FinancialAssumptions()
    if not isinstance(a, FinancialAssumptions):
        raise InvalidInputError("assumptions", assumptions, "expected FinancialAssumptions")

    try:
        gross = gross_capex(design, a)
        breakdown = IncentiveCalculator(a).compute(gross, design.pv_size_kw, incentives_requested=incentives)

        production = design.pv_size_kw * a.irradiance_yield
        projection = CashflowProjector(a).project(
            net_capex=breakdown.net_capex,
            gross_capex=breakdown.gross_capex,
            initial_production_kwh=production,
            initial_tariff=profile.tariff_rate,
            initial_demand_savings=demand_savings(design, profile, a),
        )
        metrics = FinancialMetricsEngine(a).evaluate(projection, production)
    except SolarFinanceError:
        raise
    except (ArithmeticError, ValueError, TypeError) as exc:
        raise SimulationError(design, str(exc)) from exc

    run = SimulationRun(
        design=design,
        profile=profile,
        incentives=breakdown,
        cashflows=projection.entries,
        metrics=metrics,
        annual_production_kwh=production,
        annual_savings=projection.entries[0].savings,
        co2_avoided_tonnes_per_year=co2_avoided_tonnes(production, a.grid_emission_factor),
        self_sufficiency_percent=self_sufficiency_percent(design, profile, production, a),
        created_at=created_at or datetime.now(timezone.utc),
    )
    logger.debug(
        "Simulated %s for site %s: NPV=%.2f IRR=%s payback=%d",
        design.label, profile.site_id, run.npv, run.irr, run.simple_payback_years,
    )
    return run


def latest_run(runs: Iterable[SimulationRun]) -> Optional[SimulationRun]:
    """Most recent run by created_at (first one wins on identical timestamps)."""
    latest = None
    for run in runs:
        if latest is None or run.created_at > latest.created_at:
            latest = run
    return latest
