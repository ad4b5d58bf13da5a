"""
Input value objects: the site being studied and the system proposed for it.

SiteEnergyProfile describes the building (consumption, peak demand, energy
tariff). SystemDesign is one point in the sizing search space. Both are
immutable and validated on construction, so anything downstream can assume
non-negative sizes and a strictly positive tariff.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from solar_finance.core.exceptions import InvalidInputError


def _check_non_negative(field: str, value: float) -> None:
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(field, value, "must be a number")
    if not math.isfinite(value):
        raise InvalidInputError(field, value, "must be finite")
    if value < 0:
        raise InvalidInputError(field, value, "must be >= 0")


@dataclass(frozen=True)
class SiteEnergyProfile:
    """
    Energy profile of one building.

    Attributes:
        annual_consumption_kwh: Yearly consumption [kWh].
        peak_demand_kw: Maximum billed demand [kW].
        tariff_rate: Energy rate [$/kWh], must be > 0.
        building_type: Free-form category (office, warehouse, ...).
        roof_area_sqft: Total roof area [sq ft], bounds PV size in sweeps.
        site_id: Optional identifier used in logs and portfolio reporting.
    """

    annual_consumption_kwh: float
    peak_demand_kw: float
    tariff_rate: float
    building_type: str = "commercial"
    roof_area_sqft: Optional[float] = None
    site_id: Optional[str] = None

    def __post_init__(self) -> None:
        _check_non_negative("annual_consumption_kwh", self.annual_consumption_kwh)
        _check_non_negative("peak_demand_kw", self.peak_demand_kw)
        _check_non_negative("tariff_rate", self.tariff_rate)
        if self.tariff_rate == 0:
            raise InvalidInputError("tariff_rate", self.tariff_rate, "must be > 0")
        if self.roof_area_sqft is not None:
            _check_non_negative("roof_area_sqft", self.roof_area_sqft)


@dataclass(frozen=True)
class SystemDesign:
    """A candidate system: PV array plus optional battery."""

    pv_size_kw: float
    battery_energy_kwh: float = 0.0
    battery_power_kw: float = 0.0

    def __post_init__(self) -> None:
        _check_non_negative("pv_size_kw", self.pv_size_kw)
        _check_non_negative("battery_energy_kwh", self.battery_energy_kwh)
        _check_non_negative("battery_power_kw", self.battery_power_kw)

    @property
    def kind(self) -> str:
        has_pv = self.pv_size_kw > 0
        has_battery = self.battery_energy_kwh > 0
        if has_pv and has_battery:
            return "hybrid"
        if has_pv:
            return "solar"
        if has_battery:
            return "battery"
        return "none"

    @property
    def label(self) -> str:
        if self.kind == "hybrid":
            return f"{self.pv_size_kw:g} kW PV + {self.battery_energy_kwh:g} kWh"
        if self.kind == "battery":
            return f"{self.battery_energy_kwh:g} kWh storage only"
        return f"{self.pv_size_kw:g} kW solar only"

    def sort_key(self) -> Tuple[float, float, float]:
        """Total order used to break exact ties deterministically (smallest first)."""
        return (self.pv_size_kw, self.battery_energy_kwh, self.battery_power_kw)

    def __str__(self) -> str:
        return self.label
