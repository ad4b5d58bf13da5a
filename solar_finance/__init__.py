"""
Financial simulation and sizing engine for commercial solar + storage.

This package turns a building's energy profile and a proposed PV/battery
design into a full 25-year financial picture, searches the sizing space for
the best designs, and rolls many buildings up into a portfolio.

Architecture:
    - core.incentives: Utility incentive, federal ITC, optional tax shield
    - core.cashflow: Year-by-year savings, O&M and cumulative position
    - core.metrics: NPV, IRR, payback, LCOE, CO2
    - core.simulation: Full pipeline, one immutable SimulationRun per design
    - core.financing: Cash purchase vs capital lease vs PPA
    - optimization.sweep: Candidate grid evaluation and champion selection
    - optimization.monte_carlo: P10/P50/P90 outcomes under uncertain inputs
    - portfolio.aggregator: Portfolio totals, volume discount, mandate quote

Quick start:
    from solar_finance import SiteEnergyProfile, SystemDesign, run_simulation

    site = SiteEnergyProfile(annual_consumption_kwh=46_212, peak_demand_kw=40, tariff_rate=0.0759)
    run = run_simulation(site, SystemDesign(pv_size_kw=26))
    print(run.net_capex, run.npv, run.simple_payback_years)

    from solar_finance import SensitivitySweepOptimizer
    result = SensitivitySweepOptimizer().optimize(site, configured=SystemDesign(26))
    print(result.optimal.best_npv.design.label)
"""

from solar_finance.core import (
    AssumptionError,
    CashflowProjector,
    FinancialAssumptions,
    FinancialMetricsEngine,
    FinancingTerms,
    IncentiveCalculator,
    InvalidInputError,
    SimulationError,
    SimulationRun,
    SiteEnergyProfile,
    SolarFinanceError,
    SweepError,
    SystemDesign,
    compare_financing,
    latest_run,
    max_pv_from_roof,
    run_simulation,
    size_for_offset,
)
from solar_finance.optimization import (
    OptimalScenarios,
    SensitivitySweepOptimizer,
    SweepResult,
    UncertaintyRanges,
    monte_carlo,
)
from solar_finance.portfolio import (
    Portfolio,
    PortfolioAggregator,
    PortfolioSite,
    PortfolioTotals,
    SiteOverrides,
    VolumeDiscountPolicy,
    quote_design_mandate,
)

__version__ = "0.1.0"

__all__ = [
    'AssumptionError',
    'CashflowProjector',
    'FinancialAssumptions',
    'FinancialMetricsEngine',
    'FinancingTerms',
    'IncentiveCalculator',
    'InvalidInputError',
    'SimulationError',
    'SimulationRun',
    'SiteEnergyProfile',
    'SolarFinanceError',
    'SweepError',
    'SystemDesign',
    'compare_financing',
    'latest_run',
    'max_pv_from_roof',
    'run_simulation',
    'size_for_offset',
    'OptimalScenarios',
    'SensitivitySweepOptimizer',
    'SweepResult',
    'UncertaintyRanges',
    'monte_carlo',
    'Portfolio',
    'PortfolioAggregator',
    'PortfolioSite',
    'PortfolioTotals',
    'SiteOverrides',
    'VolumeDiscountPolicy',
    'quote_design_mandate',
]
