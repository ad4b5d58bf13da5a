"""Sizing sweeps, champion selection and Monte Carlo uncertainty analysis."""

from solar_finance.optimization.sweep import (
    OBJECTIVES,
    ExcludedCandidate,
    Objective,
    OptimalScenarios,
    SensitivitySweepOptimizer,
    SweepResult,
    build_candidate_grid,
    select_champions,
)
from solar_finance.optimization.monte_carlo import (
    MonteCarloResult,
    OutcomeSummary,
    UncertaintyRanges,
    monte_carlo,
)

__all__ = [
    'OBJECTIVES',
    'ExcludedCandidate',
    'Objective',
    'OptimalScenarios',
    'SensitivitySweepOptimizer',
    'SweepResult',
    'build_candidate_grid',
    'select_champions',
    'MonteCarloResult',
    'OutcomeSummary',
    'UncertaintyRanges',
    'monte_carlo',
]
