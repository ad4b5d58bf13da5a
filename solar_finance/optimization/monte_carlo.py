"""
Monte Carlo uncertainty analysis for one design.

Each iteration draws the uncertain assumptions uniformly from their ranges,
re-runs the full simulation and records the outcome. The spread of outcomes
is summarized as P10 / P50 / P90 and mean.

SAMPLED INPUTS
--------------
    tariff_inflation   <- tariff_inflation range
    discount_rate      <- discount_rate range
    irradiance_yield   <- yield range * (1 + bifacial boost range)
    cost_per_watt      <- cost_per_watt range
    om_rate            <- om_per_kw range / (cost_per_watt * 1000)

All draws come from one numpy Generator seeded by the caller, one vector per
range in a fixed order, so a given seed reproduces the same result.

Iterations whose simulation fails are logged and skipped. If every iteration
fails the analysis raises SimulationError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from solar_finance import settings
from solar_finance.core.assumptions import FinancialAssumptions
from solar_finance.core.exceptions import InvalidInputError, SimulationError, SolarFinanceError
from solar_finance.core.models import SiteEnergyProfile, SystemDesign
from solar_finance.core.simulation import run_simulation

logger = logging.getLogger(__name__)

Range = Tuple[float, float]

PERCENTILES = (10, 50, 90)


@dataclass(frozen=True)
class UncertaintyRanges:
    """(low, high) bounds of each sampled input."""

    tariff_inflation: Range = settings.MC_TARIFF_INFLATION_RANGE
    discount_rate: Range = settings.MC_DISCOUNT_RATE_RANGE
    irradiance_yield: Range = settings.MC_IRRADIANCE_YIELD_RANGE
    bifacial_boost: Range = settings.MC_BIFACIAL_BOOST_RANGE
    om_per_kw: Range = settings.MC_OM_PER_KW_RANGE
    cost_per_watt: Range = settings.MC_COST_PER_WATT_RANGE

    def __post_init__(self) -> None:
        for name in ("tariff_inflation", "discount_rate", "irradiance_yield",
                     "bifacial_boost", "om_per_kw", "cost_per_watt"):
            low, high = getattr(self, name)
            if low > high:
                raise InvalidInputError(name, (low, high), "low bound exceeds high bound")
        if self.irradiance_yield[0] <= 0:
            raise InvalidInputError("irradiance_yield", self.irradiance_yield, "must be > 0")
        if self.cost_per_watt[0] <= 0:
            raise InvalidInputError("cost_per_watt", self.cost_per_watt, "must be > 0")


@dataclass(frozen=True)
class OutcomeSummary:
    """One statistic (a percentile or the mean) of every tracked outcome."""

    npv: float
    irr: Optional[float]
    simple_payback_years: float
    net_capex: float
    total_savings: float


@dataclass(frozen=True, eq=False)
class MonteCarloResult:
    """
    Outcome distributions and their summaries.

    Distributions hold one value per successful iteration in draw order.
    IRR is NaN where the iteration never recovers its investment; summaries
    ignore those and report None when no iteration has an IRR.
    """

    iterations: int
    failed: int
    samples: Dict[str, np.ndarray]
    npv: np.ndarray
    irr: np.ndarray
    simple_payback_years: np.ndarray
    payback_reached: np.ndarray
    net_capex: np.ndarray
    total_savings: np.ndarray
    p10: OutcomeSummary
    p50: OutcomeSummary
    p90: OutcomeSummary
    mean: OutcomeSummary

    @property
    def probability_positive_npv(self) -> float:
        return float(np.mean(self.npv > 0))

    @property
    def probability_of_payback(self) -> float:
        return float(np.mean(self.payback_reached))


def _statistic(values: np.ndarray, q: Optional[float]) -> Optional[float]:
    finite = values[np.isfinite(values)]
    if finite.size == 0:
        return None
    if q is None:
        return float(np.mean(finite))
    return float(np.percentile(finite, q))


def _summarize(outcomes: Dict[str, np.ndarray], q: Optional[float]) -> OutcomeSummary:
    return OutcomeSummary(**{name: _statistic(values, q) for name, values in outcomes.items()})


def draw_samples(ranges: UncertaintyRanges, iterations: int, rng: np.random.Generator) -> Dict[str, np.ndarray]:
    """Draw the uncertain assumptions, one vector per assumption field."""
    tariff_inflation = rng.uniform(*ranges.tariff_inflation, size=iterations)
    discount_rate = rng.uniform(*ranges.discount_rate, size=iterations)
    base_yield = rng.uniform(*ranges.irradiance_yield, size=iterations)
    boost = rng.uniform(*ranges.bifacial_boost, size=iterations)
    cost_per_watt = rng.uniform(*ranges.cost_per_watt, size=iterations)
    om_per_kw = rng.uniform(*ranges.om_per_kw, size=iterations)
    return {
        "tariff_inflation": tariff_inflation,
        "discount_rate": discount_rate,
        "irradiance_yield": base_yield * (1.0 + boost),
        "cost_per_watt": cost_per_watt,
        "om_rate": om_per_kw / (cost_per_watt * 1000.0),
    }


def monte_carlo(
    profile: SiteEnergyProfile,
    design: SystemDesign,
    assumptions: Optional[FinancialAssumptions] = None,
    ranges: Optional[UncertaintyRanges] = None,
    iterations: int = settings.MONTE_CARLO_ITERATIONS,
    seed: Optional[int] = None,
    incentives: bool = True,
) -> MonteCarloResult:
    """
    Run a Monte Carlo uncertainty analysis of one design.

    Args:
        profile:
            Site being studied.

        design:
            Design to stress.

        assumptions:
            Base assumptions; sampled fields are overridden per iteration.

        ranges:
            Sampling bounds. Defaults to the settings ranges.

        iterations:
            Number of draws (>= 1).

        seed:
            Seed of numpy.random.default_rng. None draws fresh entropy.

        incentives:
            Whether utility/federal incentives are requested.

    Returns:
        MonteCarloResult.

    Raises:
        InvalidInputError: iterations < 1 or bad ranges.
        SimulationError: every iteration failed.
    """
    if iterations < 1:
        raise InvalidInputError("iterations", iterations, "must be >= 1")
    base = assumptions or FinancialAssumptions()
    ranges = ranges or UncertaintyRanges()

    rng = np.random.default_rng(seed)
    samples = draw_samples(ranges, iterations, rng)

    npv, irr, payback, reached, capex, savings = [], [], [], [], [], []
    failed = 0
    for i in range(iterations):
        overrides = {name: float(values[i]) for name, values in samples.items()}
        try:
            run = run_simulation(profile, design, base.with_overrides(**overrides), incentives=incentives)
        except SolarFinanceError as exc:
            failed += 1
            logger.warning("Monte Carlo iteration %d failed: %s", i, exc)
            continue
        npv.append(run.npv)
        irr.append(np.nan if run.irr is None else run.irr)
        payback.append(run.simple_payback_years)
        reached.append(run.payback_reached)
        capex.append(run.net_capex)
        savings.append(run.cashflows[-1].cumulative)

    if not npv:
        raise SimulationError(design, f"all {iterations} Monte Carlo iterations failed")

    outcomes = {
        "npv": np.asarray(npv, dtype=float),
        "irr": np.asarray(irr, dtype=float),
        "simple_payback_years": np.asarray(payback, dtype=float),
        "net_capex": np.asarray(capex, dtype=float),
        "total_savings": np.asarray(savings, dtype=float),
    }
    p10, p50, p90 = (_summarize(outcomes, q) for q in PERCENTILES)

    logger.info(
        "Monte Carlo %s: %d/%d iterations, NPV P10=%.0f P50=%.0f P90=%.0f",
        design.label, iterations - failed, iterations, p10.npv, p50.npv, p90.npv,
    )
    return MonteCarloResult(
        iterations=iterations - failed,
        failed=failed,
        samples=samples,
        payback_reached=np.asarray(reached, dtype=bool),
        p10=p10,
        p50=p50,
        p90=p90,
        mean=_summarize(outcomes, None),
        **outcomes,
    )
