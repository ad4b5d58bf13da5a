"""
FinancialAssumptions: the operating and market assumptions of one simulation.

Defaults come from solar_finance.settings. A run that needs different values
builds its own instance, either field by field:

    assumptions = FinancialAssumptions().with_overrides(discount_rate=0.06)

or from an untyped mapping (form payload, stored JSON, CLI arguments):

    assumptions = FinancialAssumptions.from_mapping({"discount_rate": "0.06"})

from_mapping coerces every value to the field's type and reports the first
field it cannot parse through AssumptionError, so callers can point the user
at the bad input instead of receiving a NaN-filled result later on.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping

from solar_finance import settings
from solar_finance.core.exceptions import AssumptionError


_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class FinancialAssumptions:
    """
    Immutable set of financial assumptions.

    All rates are fractions (0.048 = 4.8 %), costs are in $ and energy in kWh.
    """

    tariff_inflation: float = settings.TARIFF_INFLATION
    degradation_rate: float = settings.DEGRADATION_RATE
    om_rate: float = settings.OM_RATE
    discount_rate: float = settings.DISCOUNT_RATE
    horizon_years: int = settings.HORIZON_YEARS
    cost_per_watt: float = settings.COST_PER_WATT
    irradiance_yield: float = settings.IRRADIANCE_YIELD
    battery_energy_cost: float = settings.BATTERY_ENERGY_COST
    battery_power_cost: float = settings.BATTERY_POWER_COST
    utility_incentive_per_kw: float = settings.UTILITY_INCENTIVE_PER_KW
    utility_incentive_cap_fraction: float = settings.UTILITY_INCENTIVE_CAP_FRACTION
    utility_incentive_absolute_cap: float = settings.UTILITY_INCENTIVE_ABSOLUTE_CAP
    itc_rate: float = settings.ITC_RATE
    include_tax_shield: bool = settings.INCLUDE_TAX_SHIELD
    tax_rate: float = settings.TAX_RATE
    depreciation_fraction: float = settings.DEPRECIATION_FRACTION
    demand_charge: float = settings.DEMAND_CHARGE
    peak_shaving_fraction: float = settings.PEAK_SHAVING_FRACTION
    solar_coincidence_fraction: float = settings.SOLAR_COINCIDENCE_FRACTION
    battery_round_trip_efficiency: float = settings.BATTERY_ROUND_TRIP_EFFICIENCY
    battery_cycles_per_year: float = settings.BATTERY_CYCLES_PER_YEAR
    lcoe_horizon_years: int = settings.LCOE_HORIZON_YEARS
    grid_emission_factor: float = settings.GRID_EMISSION_FACTOR

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool):
                continue
            if not math.isfinite(value):
                raise AssumptionError(f.name, value, "must be a finite number")

        if self.horizon_years < 1:
            raise AssumptionError("horizon_years", self.horizon_years, "must be >= 1")
        if self.lcoe_horizon_years < 1:
            raise AssumptionError("lcoe_horizon_years", self.lcoe_horizon_years, "must be >= 1")
        if not 0.0 <= self.degradation_rate < 1.0:
            raise AssumptionError("degradation_rate", self.degradation_rate, "must be in [0, 1)")
        if self.tariff_inflation <= -1.0:
            raise AssumptionError("tariff_inflation", self.tariff_inflation, "must be > -1")
        if self.discount_rate <= -1.0:
            raise AssumptionError("discount_rate", self.discount_rate, "must be > -1")

        for name in (
            "om_rate",
            "cost_per_watt",
            "irradiance_yield",
            "battery_energy_cost",
            "battery_power_cost",
            "utility_incentive_per_kw",
            "utility_incentive_cap_fraction",
            "utility_incentive_absolute_cap",
            "itc_rate",
            "tax_rate",
            "depreciation_fraction",
            "demand_charge",
            "peak_shaving_fraction",
            "solar_coincidence_fraction",
            "battery_round_trip_efficiency",
            "battery_cycles_per_year",
            "grid_emission_factor",
        ):
            if getattr(self, name) < 0:
                raise AssumptionError(name, getattr(self, name), "must be >= 0")

        for name in ("solar_coincidence_fraction", "battery_round_trip_efficiency", "peak_shaving_fraction"):
            if getattr(self, name) > 1.0:
                raise AssumptionError(name, getattr(self, name), "must be <= 1")

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def with_overrides(self, **overrides: Any) -> "FinancialAssumptions":
        """Return a copy with the given fields replaced (validated again)."""
        unknown = set(overrides) - self.field_names()
        if unknown:
            name = sorted(unknown)[0]
            raise AssumptionError(name, overrides[name], "unknown assumption")
        return replace(self, **overrides)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "FinancialAssumptions":
        """
        Build assumptions from an untyped mapping, starting from the defaults.

        Args:
            mapping:
                Field name -> value. Values may be numbers or numeric strings;
                booleans accept true/false/yes/no/1/0. None means "use default".

        Raises:
            AssumptionError: Unknown field or value that cannot be parsed.
        """
        types = {f.name: f.type for f in fields(cls)}
        parsed: Dict[str, Any] = {}
        for name, raw in mapping.items():
            if name not in types:
                raise AssumptionError(name, raw, "unknown assumption")
            if raw is None:
                continue
            parsed[name] = _coerce(name, raw, types[name])
        return cls(**parsed)

    @classmethod
    def field_names(cls) -> set:
        return {f.name for f in fields(cls)}

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _coerce(name: str, raw: Any, type_name: str) -> Any:
    # Field types are strings because of `from __future__ import annotations`.
    if type_name == "bool":
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise AssumptionError(name, raw, "expected a boolean")

    if isinstance(raw, bool):
        raise AssumptionError(name, raw, "expected a number, got a boolean")

    try:
        number = float(str(raw).strip()) if isinstance(raw, str) else float(raw)
    except (TypeError, ValueError):
        raise AssumptionError(name, raw, "expected a number") from None

    if not math.isfinite(number):
        raise AssumptionError(name, raw, "must be a finite number")

    if type_name == "int":
        if not number.is_integer():
            raise AssumptionError(name, raw, "expected a whole number")
        return int(number)
    return number
