"""Core financial pipeline: inputs, incentives, cashflows, metrics, simulation."""

from solar_finance.core.assumptions import FinancialAssumptions
from solar_finance.core.cashflow import CashflowEntry, CashflowProjection, CashflowProjector
from solar_finance.core.exceptions import (
    AssumptionError,
    InvalidInputError,
    SimulationError,
    SolarFinanceError,
    SweepError,
)
from solar_finance.core.financing import (
    FinancingCalculator,
    FinancingComparison,
    FinancingScenario,
    FinancingTerms,
    FinancingYear,
    compare_financing,
)
from solar_finance.core.incentives import IncentiveBreakdown, IncentiveCalculator
from solar_finance.core.metrics import FinancialMetrics, FinancialMetricsEngine
from solar_finance.core.models import SiteEnergyProfile, SystemDesign
from solar_finance.core.simulation import (
    SimulationRun,
    latest_run,
    max_pv_from_roof,
    run_simulation,
    size_for_offset,
)

__all__ = [
    'FinancialAssumptions',
    'CashflowEntry',
    'CashflowProjection',
    'CashflowProjector',
    'AssumptionError',
    'InvalidInputError',
    'SimulationError',
    'SolarFinanceError',
    'SweepError',
    'FinancingCalculator',
    'FinancingComparison',
    'FinancingScenario',
    'FinancingTerms',
    'FinancingYear',
    'compare_financing',
    'IncentiveBreakdown',
    'IncentiveCalculator',
    'FinancialMetrics',
    'FinancialMetricsEngine',
    'SiteEnergyProfile',
    'SystemDesign',
    'SimulationRun',
    'latest_run',
    'max_pv_from_roof',
    'run_simulation',
    'size_for_offset',
]
