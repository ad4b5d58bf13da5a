"""
Tests for the sensitivity sweep optimizer.

Tests cover:
    1. Champion selection: filters, rounding, tie-breaks, order independence
    2. Candidate grid construction
    3. Sweep evaluation: exclusions, failures, concurrency

Run tests with: pytest tests/test_sweep.py -v
"""

from dataclasses import dataclass
from typing import Optional

import pytest

import solar_finance.optimization.sweep as sweep
from solar_finance.core import SimulationError, SiteEnergyProfile, SweepError, SystemDesign
from solar_finance.optimization import (
    OptimalScenarios,
    SensitivitySweepOptimizer,
    build_candidate_grid,
    select_champions,
)


@dataclass
class StubRun:
    """Carries only the attributes champion selection reads."""

    design: SystemDesign
    npv: float
    irr: Optional[float]
    self_sufficiency_percent: float
    simple_payback_years: int = 10
    payback_reached: bool = True


def reference_site(**kwargs):
    params = dict(annual_consumption_kwh=46_212.0, peak_demand_kw=40.0, tariff_rate=0.0779, site_id="ref")
    params.update(kwargs)
    return SiteEnergyProfile(**params)


class TestChampionSelection:
    """Tests for select_champions()."""

    def test_same_run_can_win_several_objectives(self):
        """Test that the highest-NPV run is also best IRR when it has the highest IRR."""
        a = StubRun(SystemDesign(30), npv=100.0, irr=0.20, self_sufficiency_percent=10.0)
        b = StubRun(SystemDesign(10), npv=50.0, irr=0.10, self_sufficiency_percent=30.0)

        optimal = select_champions([a, b])

        assert optimal.best_npv is a
        assert optimal.best_irr is a
        assert optimal.max_self_sufficiency is b

    def test_npv_tie_after_rounding_broken_by_irr(self):
        """Test that NPVs equal at cent precision fall back to IRR."""
        a = StubRun(SystemDesign(10), npv=100.001, irr=0.10, self_sufficiency_percent=10.0)
        b = StubRun(SystemDesign(20), npv=100.004, irr=0.12, self_sufficiency_percent=10.0)

        assert select_champions([a, b]).best_npv is b
        assert select_champions([b, a]).best_npv is b

    def test_irr_tie_broken_by_npv(self):
        """Test that equal IRRs fall back to NPV."""
        a = StubRun(SystemDesign(10), npv=500.0, irr=0.15, self_sufficiency_percent=10.0)
        b = StubRun(SystemDesign(20), npv=900.0, irr=0.15001, self_sufficiency_percent=10.0)

        assert select_champions([a, b]).best_irr is b

    def test_self_sufficiency_tie_broken_by_npv(self):
        """Test that equal self-sufficiency falls back to NPV."""
        a = StubRun(SystemDesign(10, 100, 50), npv=900.0, irr=0.10, self_sufficiency_percent=70.0)
        b = StubRun(SystemDesign(20, 100, 50), npv=100.0, irr=0.10, self_sufficiency_percent=70.0)

        assert select_champions([b, a]).max_self_sufficiency is a

    def test_full_tie_picks_smallest_design(self):
        """Test that identical metrics resolve to the smallest design in any order."""
        small = StubRun(SystemDesign(10), npv=100.0, irr=0.10, self_sufficiency_percent=20.0)
        large = StubRun(SystemDesign(20), npv=100.0, irr=0.10, self_sufficiency_percent=20.0)

        for runs in ([small, large], [large, small]):
            optimal = select_champions(runs)
            assert optimal.best_npv is small
            assert optimal.best_irr is small
            assert optimal.max_self_sufficiency is small
            assert optimal.fastest_payback is small

    def test_non_positive_values_filtered(self):
        """Test that unprofitable runs never become champions."""
        losing = StubRun(SystemDesign(10), npv=-5.0, irr=None, self_sufficiency_percent=0.0,
                         payback_reached=False, simple_payback_years=25)
        tiny = StubRun(SystemDesign(20), npv=0.004, irr=0.0, self_sufficiency_percent=0.0,
                       payback_reached=False, simple_payback_years=25)

        optimal = select_champions([losing, tiny])

        assert optimal == OptimalScenarios()
        assert optimal.for_objective("best_irr") is None

    def test_undefined_irr_excluded(self):
        """Test that runs without an IRR cannot win best IRR."""
        a = StubRun(SystemDesign(10), npv=100.0, irr=None, self_sufficiency_percent=10.0)
        b = StubRun(SystemDesign(20), npv=10.0, irr=0.05, self_sufficiency_percent=10.0)

        optimal = select_champions([a, b])

        assert optimal.best_npv is a
        assert optimal.best_irr is b

    def test_fastest_payback(self):
        """Test that the earliest real break-even wins; the horizon sentinel never does."""
        slow = StubRun(SystemDesign(10), npv=100.0, irr=0.10, self_sufficiency_percent=10.0,
                       simple_payback_years=9)
        fast = StubRun(SystemDesign(20), npv=50.0, irr=0.12, self_sufficiency_percent=10.0,
                       simple_payback_years=5)
        never = StubRun(SystemDesign(5), npv=-10.0, irr=None, self_sufficiency_percent=5.0,
                        simple_payback_years=1, payback_reached=False)

        assert select_champions([slow, fast, never]).fastest_payback is fast

    def test_empty_design_never_wins(self):
        """Test that installing nothing cannot be champion, even with a year-1 break-even."""
        empty = StubRun(SystemDesign(0), npv=5_000.0, irr=0.90, self_sufficiency_percent=1.0,
                        simple_payback_years=1)
        real = StubRun(SystemDesign(26), npv=100.0, irr=0.10, self_sufficiency_percent=0.5,
                       simple_payback_years=8)

        optimal = select_champions([empty, real])

        assert all(champ is real for champ in optimal.as_dict().values())
        assert select_champions([empty]) == OptimalScenarios()

    def test_for_objective_falls_back_to_best_npv(self):
        """Test the fallback when an objective has no champion."""
        a = StubRun(SystemDesign(10), npv=100.0, irr=None, self_sufficiency_percent=10.0)
        optimal = select_champions([a])

        assert optimal.best_irr is None
        assert optimal.for_objective("best_irr") is a
        assert optimal.for_objective("unknown") is a

    def test_empty_batch(self):
        """Test that no runs gives no champions."""
        assert select_champions([]) == OptimalScenarios()


class TestCandidateGrid:
    """Tests for build_candidate_grid()."""

    def test_configured_first_and_unique(self):
        """Test that the configured design leads and no design repeats."""
        configured = SystemDesign(26)
        grid = build_candidate_grid(reference_site(), configured)

        assert grid[0] == configured
        assert len(grid) == len(set(grid))

    def test_deterministic(self):
        """Test that the same inputs give the same grid."""
        site = reference_site()
        assert build_candidate_grid(site, SystemDesign(26)) == build_candidate_grid(site, SystemDesign(26))

    def test_grid_covers_all_kinds(self):
        """Test that PV-only, storage-only and hybrid points are present."""
        kinds = {d.kind for d in build_candidate_grid(reference_site(), SystemDesign(26))}
        assert {"solar", "battery", "hybrid"} <= kinds

    def test_respects_pv_ceiling(self):
        """Test that no PV point exceeds the ceiling."""
        grid = build_candidate_grid(reference_site(), SystemDesign(26), max_pv_kw=100.0)
        assert max(d.pv_size_kw for d in grid) <= 100.0

    def test_empty_design_never_in_grid(self):
        """Test that the no-system point is left out, configured or not."""
        site = reference_site()

        assert all(d.kind != "none" for d in build_candidate_grid(site, SystemDesign(26)))
        assert all(d.kind != "none" for d in build_candidate_grid(site))
        assert all(d.kind != "none" for d in build_candidate_grid(site, SystemDesign(0, 100, 50)))

    def test_battery_power_is_half_energy(self):
        """Test the battery sweep power convention."""
        grid = build_candidate_grid(reference_site(), SystemDesign(26))
        swept = [d for d in grid if d.pv_size_kw == 26 and d.battery_energy_kwh > 0]

        assert swept
        assert all(d.battery_power_kw == round(d.battery_energy_kwh / 2) for d in swept)


class TestOptimizer:
    """Tests for SensitivitySweepOptimizer.optimize()."""

    def test_runs_in_input_order(self):
        """Test that evaluated runs keep candidate order."""
        designs = [SystemDesign(40), SystemDesign(10), SystemDesign(26)]
        result = SensitivitySweepOptimizer().optimize(reference_site(), designs)

        assert [r.design for r in result.runs] == designs
        assert result.excluded == ()

    def test_invalid_candidate_excluded(self):
        """Test that a candidate failing validation is reported, not raised."""
        result = SensitivitySweepOptimizer().optimize(
            reference_site(), [SystemDesign(26), (-5.0, 0.0, 0.0)]
        )

        assert len(result.runs) == 1
        assert len(result.excluded) == 1
        assert result.excluded[0].candidate == (-5.0, 0.0, 0.0)
        assert "invalid design" in result.excluded[0].reason

    def test_roof_ceiling_excludes_oversized(self):
        """Test that candidates above the roof-derived ceiling are excluded."""
        site = reference_site(roof_area_sqft=2_000.0)  # about 26.4 kW
        result = SensitivitySweepOptimizer().optimize(site, [SystemDesign(26), SystemDesign(40)])

        assert [r.design for r in result.runs] == [SystemDesign(26)]
        assert result.excluded[0].candidate == SystemDesign(40)
        assert "roof ceiling" in result.excluded[0].reason

    def test_candidate_failure_raises_sweep_error(self, monkeypatch):
        """Test that non-validation failures abort with the candidate attached."""
        real_run = sweep.run_simulation

        def flaky(profile, design, assumptions=None, incentives=True):
            if design.pv_size_kw == 10:
                raise SimulationError(design, "solver exploded")
            return real_run(profile, design, assumptions, incentives=incentives)

        monkeypatch.setattr(sweep, "run_simulation", flaky)

        with pytest.raises(SweepError) as excinfo:
            SensitivitySweepOptimizer().optimize(reference_site(), [SystemDesign(26), SystemDesign(10)])

        assert excinfo.value.index == 1
        assert excinfo.value.candidate == SystemDesign(10)
        assert "solver exploded" in str(excinfo.value)

    def test_default_grid_champions(self):
        """Test a full default sweep around the configured design."""
        result = SensitivitySweepOptimizer().optimize(reference_site(), configured=SystemDesign(26))
        best = result.optimal.best_npv

        assert best is not None
        assert round(best.npv, 2) == round(max(r.npv for r in result.runs), 2)
        assert result.optimal.max_self_sufficiency is not None

    def test_default_grid_has_no_empty_champion(self):
        """Test that a real default sweep never crowns or reports the no-system design."""
        result = SensitivitySweepOptimizer().optimize(
            SiteEnergyProfile(46212, 40, 0.0779), configured=SystemDesign(26)
        )

        assert result.optimal.fastest_payback is not None
        assert result.optimal.fastest_payback.design.kind != "none"
        for champion in result.optimal.as_dict().values():
            assert champion is None or champion.design.kind != "none"
        assert all(row["kind"] != "none" for row in result.frontier())

    def test_explicit_empty_candidate_is_evaluated_but_not_champion(self):
        """Test that a caller-supplied empty design is simulated yet never selected."""
        result = SensitivitySweepOptimizer().optimize(reference_site(), [SystemDesign(0), SystemDesign(26)])

        assert len(result.runs) == 2
        assert result.optimal.fastest_payback.design == SystemDesign(26)
        assert result.optimal.best_npv.design == SystemDesign(26)

    def test_curves_and_frontier(self):
        """Test NPV curves and frontier rows."""
        result = SensitivitySweepOptimizer().optimize(reference_site(), configured=SystemDesign(26))

        solar = result.solar_curve()
        battery = result.battery_curve()
        assert [p[0] for p in solar] == sorted(p[0] for p in solar)
        assert battery[0][0] == 0.0

        rows = result.frontier()
        assert len(rows) == len(result.runs)
        assert any("best_npv" in row["champion_of"] for row in rows)

    def test_thread_pool_matches_sequential(self):
        """Test that a thread pool gives the same runs and champions."""
        site = reference_site()
        designs = [SystemDesign(pv, e, e / 2) for pv in (10, 26, 40) for e in (0, 100)]

        seq = SensitivitySweepOptimizer().optimize(site, designs)
        par = SensitivitySweepOptimizer(concurrency="thread", max_workers=4).optimize(site, designs)

        assert [r.npv for r in par.runs] == [r.npv for r in seq.runs]
        assert par.optimal.best_npv.design == seq.optimal.best_npv.design
        assert par.optimal.best_irr.design == seq.optimal.best_irr.design

    def test_process_pool_matches_sequential(self):
        """Test that a process pool gives the same runs."""
        site = reference_site()
        designs = [SystemDesign(10), SystemDesign(26)]

        seq = SensitivitySweepOptimizer().optimize(site, designs)
        par = SensitivitySweepOptimizer(concurrency="process", max_workers=2).optimize(site, designs)

        assert [r.npv for r in par.runs] == [r.npv for r in seq.runs]

    def test_invalid_concurrency(self):
        """Test that unknown concurrency modes are rejected."""
        with pytest.raises(ValueError, match="concurrency"):
            SensitivitySweepOptimizer(concurrency="gpu")

    def test_to_dataframe(self):
        """Test pandas export of the frontier."""
        pytest.importorskip("pandas")
        result = SensitivitySweepOptimizer().optimize(reference_site(), [SystemDesign(10), SystemDesign(26)])
        df = result.to_dataframe()

        assert len(df) == 2
        assert "npv" in df.columns
