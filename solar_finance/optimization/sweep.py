"""
SensitivitySweepOptimizer: evaluate a grid of system designs and pick champions.

WORKFLOW
--------
1. Build (or receive) a sequence of candidate SystemDesigns.
2. Run the full simulation pipeline once per candidate. Candidates are
   independent; evaluation is a plain map that can run sequentially or in a
   thread/process pool. Results keep the input order.
3. Select one champion per objective over the WHOLE batch:

       best_npv              maximize NPV
       best_irr              maximize IRR
       max_self_sufficiency  maximize self-sufficiency %
       fastest_payback       minimize simple payback (break-even runs only)

CHAMPION SELECTION
------------------
Per objective:
    - round the metric (currency: 2 decimals, rates and percentages: 4),
    - keep candidates that install something and have a meaningful value
      (NPV > 0, IRR defined and > 0, self-sufficiency > 0, payback actually
      reached); the empty design never wins,
    - take the best rounded value,
    - break ties with secondary metrics in objective priority order
      (NPV, then IRR, then self-sufficiency), and finally by the smallest
      design so the outcome does not depend on candidate order.

The same run may be champion of several objectives; hiding duplicates is a
presentation concern.

Candidates that fail design validation or exceed the roof ceiling are
excluded and reported in SweepResult.excluded. Any other failure aborts the
sweep with SweepError naming the candidate.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from solar_finance.core.assumptions import FinancialAssumptions
from solar_finance.core.exceptions import InvalidInputError, SolarFinanceError, SweepError
from solar_finance.core.models import SiteEnergyProfile, SystemDesign
from solar_finance.core.simulation import SimulationRun, max_pv_from_roof, run_simulation

logger = logging.getLogger(__name__)

Candidate = Union[SystemDesign, Tuple[float, float, float]]

CURRENCY_DECIMALS = 2
RATE_DECIMALS = 4

_NEG_INF = float("-inf")


# ----------------------------------------------------------------------
# Result containers
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class OptimalScenarios:
    """Champion run per objective; None when no candidate qualifies."""

    best_npv: Optional[SimulationRun] = None
    best_irr: Optional[SimulationRun] = None
    max_self_sufficiency: Optional[SimulationRun] = None
    fastest_payback: Optional[SimulationRun] = None

    def as_dict(self) -> Dict[str, Optional[SimulationRun]]:
        return {
            "best_npv": self.best_npv,
            "best_irr": self.best_irr,
            "max_self_sufficiency": self.max_self_sufficiency,
            "fastest_payback": self.fastest_payback,
        }

    def for_objective(self, objective: str) -> Optional[SimulationRun]:
        """Champion for `objective`, falling back to best_npv."""
        champion = self.as_dict().get(objective)
        return champion if champion is not None else self.best_npv


@dataclass(frozen=True)
class ExcludedCandidate:
    candidate: Any
    reason: str


@dataclass(frozen=True)
class SweepResult:
    """Evaluated runs, excluded candidates and champions of one sweep."""

    runs: Tuple[SimulationRun, ...]
    excluded: Tuple[ExcludedCandidate, ...]
    optimal: OptimalScenarios
    configured: Optional[SystemDesign] = None

    def solar_curve(self) -> List[Tuple[float, float]]:
        """(pv_size_kw, npv) along the PV axis at the configured battery."""
        ref = self.configured or SystemDesign(0.0)
        points = {
            r.design.pv_size_kw: r.npv
            for r in self.runs
            if r.design.battery_energy_kwh == ref.battery_energy_kwh
            and r.design.battery_power_kw == ref.battery_power_kw
        }
        return sorted(points.items())

    def battery_curve(self) -> List[Tuple[float, float]]:
        """(battery_energy_kwh, npv) along the battery axis at the configured PV size."""
        ref = self.configured or SystemDesign(0.0)
        points: Dict[float, float] = {}
        for r in sorted(self.runs, key=lambda run: run.design.sort_key()):
            if r.design.pv_size_kw == ref.pv_size_kw:
                points.setdefault(r.design.battery_energy_kwh, r.npv)
        return sorted(points.items())

    def frontier(self) -> List[Dict[str, Any]]:
        """One row per evaluated run, with the objectives it wins."""
        champions = self.optimal.as_dict()
        rows = []
        for run in self.runs:
            rows.append({
                "kind": run.design.kind,
                "label": run.design.label,
                "pv_size_kw": run.design.pv_size_kw,
                "battery_energy_kwh": run.design.battery_energy_kwh,
                "battery_power_kw": run.design.battery_power_kw,
                "net_capex": run.net_capex,
                "npv": run.npv,
                "irr": run.irr,
                "simple_payback_years": run.simple_payback_years,
                "self_sufficiency_percent": run.self_sufficiency_percent,
                "champion_of": [name for name, champ in champions.items() if champ is run],
            })
        return rows

    def to_dataframe(self):
        """Frontier rows as a pandas DataFrame."""
        try:
            import pandas as pd
        except ImportError:
            raise ImportError("pandas required for to_dataframe(). Install with: pip install pandas") from None
        return pd.DataFrame(self.frontier())


# ----------------------------------------------------------------------
# Champion selection
# ----------------------------------------------------------------------

def _rounded(value: Optional[float], decimals: int) -> float:
    if value is None or not math.isfinite(value):
        return _NEG_INF
    return round(value, decimals)


def _npv_key(run: SimulationRun) -> float:
    return _rounded(run.npv, CURRENCY_DECIMALS)


def _irr_key(run: SimulationRun) -> float:
    return _rounded(run.irr, RATE_DECIMALS)


def _self_sufficiency_key(run: SimulationRun) -> float:
    return _rounded(run.self_sufficiency_percent, RATE_DECIMALS)


def _installs_something(run: SimulationRun) -> bool:
    return run.design.kind != "none"


@dataclass(frozen=True)
class Objective:
    """
    One optimization objective.

    Attributes:
        name: Attribute name on OptimalScenarios.
        key: Rounded primary metric.
        eligible: Filter on the rounded primary metric and the run.
        maximize: Direction of the primary metric.
        tie_breakers: Rounded secondary metrics, all maximized, in order.
    """

    name: str
    key: Callable[[SimulationRun], float]
    eligible: Callable[[float, SimulationRun], bool]
    maximize: bool = True
    tie_breakers: Tuple[Callable[[SimulationRun], float], ...] = field(default_factory=tuple)

    def select(self, runs: Sequence[SimulationRun]) -> Optional[SimulationRun]:
        best = None
        best_rank = None
        for run in runs:
            primary = self.key(run)
            if not self.eligible(primary, run):
                continue
            # Lower rank wins: negate what we maximize.
            rank = (
                -primary if self.maximize else primary,
                *(-tb(run) for tb in self.tie_breakers),
                run.design.sort_key(),
            )
            if best_rank is None or rank < best_rank:
                best, best_rank = run, rank
        return best


OBJECTIVES: Tuple[Objective, ...] = (
    Objective(
        name="best_npv",
        key=_npv_key,
        eligible=lambda value, run: _installs_something(run) and value > 0,
        tie_breakers=(_irr_key, _self_sufficiency_key),
    ),
    Objective(
        name="best_irr",
        key=_irr_key,
        eligible=lambda value, run: _installs_something(run) and value > 0,
        tie_breakers=(_npv_key, _self_sufficiency_key),
    ),
    Objective(
        name="max_self_sufficiency",
        key=_self_sufficiency_key,
        eligible=lambda value, run: _installs_something(run) and value > 0,
        tie_breakers=(_npv_key, _irr_key),
    ),
    Objective(
        name="fastest_payback",
        key=lambda run: float(run.simple_payback_years),
        eligible=lambda value, run: _installs_something(run) and run.payback_reached,
        maximize=False,
        tie_breakers=(_npv_key, _irr_key),
    ),
)


def select_champions(runs: Sequence[SimulationRun]) -> OptimalScenarios:
    """Pick the champion of every objective; commutative over `runs`."""
    return OptimalScenarios(**{obj.name: obj.select(runs) for obj in OBJECTIVES})


# ----------------------------------------------------------------------
# Candidate grid
# ----------------------------------------------------------------------

def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _step(maximum: float, steps: int, granularity: int, minimum: int) -> int:
    return max(minimum, _round_half_up(maximum / steps / granularity) * granularity)


def _arange(start: float, stop: float, step: float) -> List[float]:
    values = []
    value = start
    while value <= stop + 1e-9:
        values.append(float(value))
        value += step
    return values


def build_candidate_grid(
    profile: SiteEnergyProfile,
    configured: Optional[SystemDesign] = None,
    assumptions: Optional[FinancialAssumptions] = None,
    max_pv_kw: Optional[float] = None,
    solar_steps: int = 20,
    battery_steps: int = 20,
    hybrid_steps: int = 5,
) -> List[SystemDesign]:
    """
    Build the default sizing grid around a configured design.

    The grid never contains the empty design. It holds, without duplicates
    and in this order:
        - the configured design,
        - a PV sweep at the configured battery,
        - a battery sweep at the configured PV size (power = energy / 2),
        - PV-only and battery-only points,
        - a coarse PV x battery hybrid grid.

    Args:
        profile:
            Site; its consumption, peak and roof area bound the grid.

        configured:
            Design the user currently has in mind. Defaults to no system.

        assumptions:
            Used for the specific yield when no roof ceiling is known.

        max_pv_kw:
            PV ceiling. Defaults to the roof-derived ceiling when the profile
            has a roof area.

    Returns:
        List of unique SystemDesigns.
    """
    a = assumptions or FinancialAssumptions()
    configured = configured or SystemDesign(0.0)
    if max_pv_kw is None and profile.roof_area_sqft is not None:
        max_pv_kw = max_pv_from_roof(profile.roof_area_sqft)

    if max_pv_kw is not None:
        solar_max = min(max(configured.pv_size_kw * 1.5, max_pv_kw * 0.5), max_pv_kw)
    else:
        full_offset_kw = profile.annual_consumption_kwh / a.irradiance_yield
        solar_max = max(configured.pv_size_kw * 1.5, full_offset_kw)
    solar_step = _step(solar_max, solar_steps, 5, 5)

    battery_max = max(configured.battery_energy_kwh * 2, 500.0)
    battery_step = _step(battery_max, battery_steps, 10, 10)

    hybrid_pv_step = _step(solar_max, hybrid_steps, 10, 10)
    hybrid_battery_max = max(profile.peak_demand_kw * 2, configured.battery_energy_kwh * 2, 200.0)
    hybrid_battery_step = _step(hybrid_battery_max, hybrid_steps, 20, 20)

    grid: Dict[Tuple[float, float, float], SystemDesign] = {}

    def add(pv: float, energy: float, power: float) -> None:
        design = SystemDesign(pv, energy, power)
        if design.kind == "none":
            return
        grid.setdefault(design.sort_key(), design)

    add(configured.pv_size_kw, configured.battery_energy_kwh, configured.battery_power_kw)

    for pv in _arange(0.0, solar_max, solar_step):
        add(pv, configured.battery_energy_kwh, configured.battery_power_kw)

    for energy in _arange(0.0, battery_max, battery_step):
        add(configured.pv_size_kw, energy, float(_round_half_up(energy / 2)))

    for pv in _arange(solar_step, solar_max, solar_step):
        add(pv, 0.0, 0.0)

    for energy in _arange(battery_step, battery_max, battery_step * 2):
        add(0.0, energy, float(_round_half_up(energy / 2)))

    for pv in _arange(hybrid_pv_step, solar_max, hybrid_pv_step):
        for energy in _arange(hybrid_battery_step, hybrid_battery_max, hybrid_battery_step):
            add(pv, energy, float(_round_half_up(energy / 2)))

    return list(grid.values())


# ----------------------------------------------------------------------
# Candidate evaluation
# ----------------------------------------------------------------------

def _evaluate_candidate(
    item: Tuple[int, SystemDesign],
    profile: SiteEnergyProfile,
    assumptions: FinancialAssumptions,
    incentives: bool,
) -> Tuple[int, Optional[SimulationRun], Optional[str]]:
    """
    Evaluate one candidate; module level so process pools can pickle it.

    Failures come back as a message instead of an exception so the parent
    process can attach candidate context.
    """
    index, design = item
    try:
        return index, run_simulation(profile, design, assumptions, incentives=incentives), None
    except SolarFinanceError as exc:
        return index, None, str(exc)


class SensitivitySweepOptimizer:
    """
    Runs the simulation pipeline over a candidate grid and selects champions.

    Args:
        assumptions:
            Financial assumptions shared by every candidate.

        incentives:
            Whether incentives are requested for every candidate.

        concurrency:
            None (sequential), "thread" or "process".

        max_workers:
            Pool size when concurrency is enabled.
    """

    def __init__(
        self,
        assumptions: Optional[FinancialAssumptions] = None,
        incentives: bool = True,
        concurrency: Optional[str] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        if concurrency not in (None, "thread", "process"):
            raise ValueError(f"concurrency must be 'thread', 'process', or None, got {concurrency!r}")
        self.assumptions = assumptions or FinancialAssumptions()
        self.incentives = incentives
        self.concurrency = concurrency
        self.max_workers = max_workers

    def _admit(
        self,
        candidates: Sequence[Candidate],
        max_pv_kw: Optional[float],
    ) -> Tuple[List[SystemDesign], List[ExcludedCandidate]]:
        admitted: List[SystemDesign] = []
        excluded: List[ExcludedCandidate] = []
        for candidate in candidates:
            try:
                design = candidate if isinstance(candidate, SystemDesign) else SystemDesign(*candidate)
            except (InvalidInputError, TypeError) as exc:
                excluded.append(ExcludedCandidate(candidate, f"invalid design: {exc}"))
                continue
            if max_pv_kw is not None and design.pv_size_kw > max_pv_kw + 1e-9:
                excluded.append(ExcludedCandidate(
                    design, f"pv_size_kw={design.pv_size_kw:g} exceeds roof ceiling {max_pv_kw:.1f} kW"
                ))
                continue
            admitted.append(design)

        for item in excluded:
            logger.warning("Excluded sweep candidate %s: %s", item.candidate, item.reason)
        return admitted, excluded

    def evaluate(self, profile: SiteEnergyProfile, designs: Sequence[SystemDesign]) -> List[SimulationRun]:
        """Simulate every design, preserving input order."""
        evaluate_fn = partial(
            _evaluate_candidate,
            profile=profile,
            assumptions=self.assumptions,
            incentives=self.incentives,
        )
        items = list(enumerate(designs))

        if self.concurrency is None:
            outcomes = [evaluate_fn(item) for item in items]
        else:
            executor_cls = ThreadPoolExecutor if self.concurrency == "thread" else ProcessPoolExecutor
            with executor_cls(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(evaluate_fn, items))

        runs: List[SimulationRun] = []
        for index, run, error in outcomes:
            if error is not None:
                raise SweepError(designs[index], error, index=index)
            runs.append(run)
        return runs

    def optimize(
        self,
        profile: SiteEnergyProfile,
        candidates: Optional[Sequence[Candidate]] = None,
        configured: Optional[SystemDesign] = None,
        max_pv_kw: Optional[float] = None,
    ) -> SweepResult:
        """
        Evaluate candidates and select champions.

        Args:
            profile:
                Reference site.

            candidates:
                Designs (or (pv, energy, power) tuples). Defaults to
                build_candidate_grid(profile, configured).

            configured:
                The user's current design; anchors the default grid and the
                solar/battery curves.

            max_pv_kw:
                PV ceiling. Defaults to the roof-derived ceiling of the profile.

        Returns:
            SweepResult.

        Raises:
            SweepError: A candidate failed for a reason other than validation.
        """
        if max_pv_kw is None and profile.roof_area_sqft is not None:
            max_pv_kw = max_pv_from_roof(profile.roof_area_sqft)
        if candidates is None:
            candidates = build_candidate_grid(profile, configured, self.assumptions, max_pv_kw)

        designs, excluded = self._admit(candidates, max_pv_kw)
        runs = self.evaluate(profile, designs)
        optimal = select_champions(runs)

        logger.info(
            "Sweep for site %s: %d evaluated, %d excluded, best NPV %s",
            profile.site_id, len(runs), len(excluded),
            optimal.best_npv.design.label if optimal.best_npv else None,
        )
        return SweepResult(
            runs=tuple(runs),
            excluded=tuple(excluded),
            optimal=optimal,
            configured=configured,
        )
