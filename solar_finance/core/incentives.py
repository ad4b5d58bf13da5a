"""
IncentiveCalculator: capital incentives and tax shields for a proposed system.

INCENTIVE STACKING ORDER
------------------------
1. Utility incentive (per-kW rebate) is granted first and bounded by three
   hard caps; the smallest one applies:

       utility = min(size_kw * per_kw_rate,
                     gross_capex * cap_fraction,
                     absolute_cap)

2. The federal investment tax credit is computed on the cost that remains
   after the utility rebate, not on gross cost:

       federal = (gross_capex - utility) * itc_rate

3. Optionally, an accelerated-depreciation tax shield on the residual cost:

       shield = max(0, gross - utility - federal) * depreciation_fraction * tax_rate

4. net_capex = gross - utility - federal - shield, clamped at zero. When the
   clamp engages the breakdown is flagged as over-credited instead of
   reporting a negative ("free money") investment.

All functions here are pure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from solar_finance.core.assumptions import FinancialAssumptions
from solar_finance.core.exceptions import InvalidInputError
from solar_finance.core.models import SystemDesign

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IncentiveBreakdown:
    """Gross cost, each incentive, and the resulting net investment [$]."""

    gross_capex: float
    utility_incentive: float
    federal_credit: float
    tax_shield: float
    net_capex: float
    over_credited: bool = False

    @property
    def total_incentives(self) -> float:
        return self.utility_incentive + self.federal_credit + self.tax_shield

    def to_dict(self) -> dict:
        return {
            "gross_capex": self.gross_capex,
            "utility_incentive": self.utility_incentive,
            "federal_credit": self.federal_credit,
            "tax_shield": self.tax_shield,
            "net_capex": self.net_capex,
            "over_credited": self.over_credited,
        }


def pv_capex(pv_size_kw: float, assumptions: FinancialAssumptions) -> float:
    """PV cost [$] = size [kW] * 1000 [W/kW] * cost per watt."""
    return pv_size_kw * 1000.0 * assumptions.cost_per_watt


def battery_capex(design: SystemDesign, assumptions: FinancialAssumptions) -> float:
    """Battery cost [$] from energy and power components."""
    return (
        design.battery_energy_kwh * assumptions.battery_energy_cost
        + design.battery_power_kw * assumptions.battery_power_cost
    )


def gross_capex(design: SystemDesign, assumptions: FinancialAssumptions) -> float:
    return pv_capex(design.pv_size_kw, assumptions) + battery_capex(design, assumptions)


class IncentiveCalculator:
    """
    Computes an IncentiveBreakdown from gross CAPEX and PV size.

    Only the PV array earns the per-kW utility incentive. Battery cost is
    part of gross CAPEX and therefore of the cap and the ITC base.
    """

    def __init__(self, assumptions: Optional[FinancialAssumptions] = None) -> None:
        self.assumptions = assumptions or FinancialAssumptions()

    def utility_incentive(self, gross: float, system_size_kw: float) -> float:
        """Per-kW rebate bounded by the CAPEX fraction cap and the program cap."""
        a = self.assumptions
        return min(
            system_size_kw * a.utility_incentive_per_kw,
            gross * a.utility_incentive_cap_fraction,
            a.utility_incentive_absolute_cap,
        )

    def compute(
        self,
        gross: float,
        system_size_kw: float,
        incentives_requested: bool = True,
    ) -> IncentiveBreakdown:
        """
        Apply the stacking order described in the module docstring.

        Args:
            gross:
                Gross CAPEX [$] before any incentive.

            system_size_kw:
                PV size [kWp] used for the per-kW utility incentive.

            incentives_requested:
                When False every incentive is zero and net equals gross.

        Returns:
            IncentiveBreakdown with net_capex >= 0.

        Raises:
            InvalidInputError: If gross or system_size_kw is negative.
        """
        if gross < 0:
            raise InvalidInputError("gross_capex", gross, "must be >= 0")
        if system_size_kw < 0:
            raise InvalidInputError("system_size_kw", system_size_kw, "must be >= 0")

        if not incentives_requested:
            return IncentiveBreakdown(
                gross_capex=gross,
                utility_incentive=0.0,
                federal_credit=0.0,
                tax_shield=0.0,
                net_capex=gross,
            )

        a = self.assumptions
        utility = self.utility_incentive(gross, system_size_kw)
        federal = (gross - utility) * a.itc_rate

        tax_shield = 0.0
        if a.include_tax_shield:
            residual = max(0.0, gross - utility - federal)
            tax_shield = residual * a.depreciation_fraction * a.tax_rate

        net = gross - utility - federal - tax_shield
        over_credited = net < 0
        if over_credited:
            logger.warning(
                "Incentives (%.2f) exceed gross CAPEX (%.2f); net CAPEX clamped to 0",
                utility + federal + tax_shield,
                gross,
            )
            net = 0.0

        return IncentiveBreakdown(
            gross_capex=gross,
            utility_incentive=utility,
            federal_credit=federal,
            tax_shield=tax_shield,
            net_capex=net,
            over_credited=over_credited,
        )
