"""
Tests for portfolio aggregation.

Tests cover:
    1. Effective values (override -> latest run -> 0)
    2. Totals, weighted IRR and CO2
    3. Idempotence and order independence
    4. Volume discount policy
    5. Design mandate quote

Run tests with: pytest tests/test_portfolio.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from solar_finance.core import InvalidInputError, SiteEnergyProfile, SystemDesign, run_simulation
from solar_finance.portfolio import (
    Portfolio,
    PortfolioAggregator,
    PortfolioSite,
    SiteOverrides,
    VolumeDiscountPolicy,
    quote_design_mandate,
)


def reference_run(pv_kw=26.0, battery_kwh=0.0, **kwargs):
    site = SiteEnergyProfile(annual_consumption_kwh=46_212.0, peak_demand_kw=40.0, tariff_rate=0.0779)
    return run_simulation(site, SystemDesign(pv_kw, battery_kwh, battery_kwh / 2), **kwargs)


class TestEffectiveValues:
    """Tests for PortfolioSite.effective()."""

    def test_simulated_value_used_without_override(self):
        """Test fallback to the latest run."""
        run = reference_run()
        site = PortfolioSite("a", run)

        assert site.effective("npv") == run.npv
        assert site.effective("pv_size_kw") == 26.0
        assert site.effective("net_capex") == run.net_capex

    def test_override_wins_even_when_zero(self):
        """Test that an explicit override of 0 beats the simulated value."""
        site = PortfolioSite("a", reference_run(), SiteOverrides(npv=0.0, pv_size_kw=30.0))

        assert site.effective("npv") == 0.0
        assert site.effective("pv_size_kw") == 30.0

    def test_missing_data_is_zero(self):
        """Test that a site with neither run nor override contributes 0."""
        site = PortfolioSite("a")

        assert site.effective("npv") == 0.0
        assert site.resolved("irr") is None
        assert site.has_data is False

    def test_unknown_kpi_rejected(self):
        """Test that unknown KPI names raise."""
        with pytest.raises(InvalidInputError, match="kpi"):
            PortfolioSite("a", reference_run()).effective("roi")

    def test_from_runs_keeps_latest(self):
        """Test that the newest run represents the site."""
        t0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
        old = reference_run(20.0, created_at=t0)
        new = reference_run(26.0, created_at=t0 + timedelta(hours=1))

        site = PortfolioSite.from_runs("a", [new, old])

        assert site.latest_run is new
        assert site.effective("pv_size_kw") == 26.0


class TestRecalculate:
    """Tests for PortfolioAggregator.recalculate()."""

    def test_totals_sum_effective_values(self):
        """Test totals over a mix of simulated and overridden sites."""
        run_a = reference_run(26.0)
        run_b = reference_run(40.0, 100.0)
        portfolio = Portfolio("p", [
            PortfolioSite("a", run_a),
            PortfolioSite("b", run_b, SiteOverrides(annual_savings=5_000.0)),
            PortfolioSite("c"),
        ])

        totals = PortfolioAggregator().recalculate(portfolio)

        assert totals.total_pv_size_kw == pytest.approx(66.0)
        assert totals.total_battery_energy_kwh == pytest.approx(100.0)
        assert totals.total_net_capex == pytest.approx(run_a.net_capex + run_b.net_capex)
        assert totals.total_npv == pytest.approx(run_a.npv + run_b.npv)
        assert totals.total_annual_savings == pytest.approx(run_a.annual_savings + 5_000.0)
        assert totals.num_buildings == 3
        assert totals.sites_with_data == 2

    def test_weighted_irr(self):
        """Test capex-weighted IRR: 5 % and 15 % on equal capex gives 10 %."""
        portfolio = Portfolio("p", [
            PortfolioSite("a", overrides=SiteOverrides(net_capex=100_000.0, irr=0.05)),
            PortfolioSite("b", overrides=SiteOverrides(net_capex=100_000.0, irr=0.15)),
        ])

        assert PortfolioAggregator().recalculate(portfolio).weighted_irr == pytest.approx(0.10)

    def test_weighted_irr_skips_undefined_and_zero_capex(self):
        """Test that sites without capex or IRR do not dilute the average."""
        portfolio = Portfolio("p", [
            PortfolioSite("a", overrides=SiteOverrides(net_capex=100_000.0, irr=0.12)),
            PortfolioSite("b", overrides=SiteOverrides(net_capex=0.0, irr=0.50)),
            PortfolioSite("c", overrides=SiteOverrides(net_capex=50_000.0)),
        ])

        assert PortfolioAggregator().recalculate(portfolio).weighted_irr == pytest.approx(0.12)

    def test_weighted_irr_none_without_capex(self):
        """Test that a zero denominator gives None, never NaN."""
        portfolio = Portfolio("p", [PortfolioSite("a"), PortfolioSite("b")])
        assert PortfolioAggregator().recalculate(portfolio).weighted_irr is None

    def test_co2_from_runs_only(self):
        """Test that CO2 comes from latest runs and ignores data-less sites."""
        run = reference_run()
        portfolio = Portfolio("p", [PortfolioSite("a", run), PortfolioSite("b")])

        totals = PortfolioAggregator().recalculate(portfolio)

        assert totals.total_co2_avoided == pytest.approx(run.co2_avoided_tonnes_per_year)

    def test_empty_portfolio(self):
        """Test that an empty portfolio yields zero totals."""
        totals = PortfolioAggregator().recalculate(Portfolio("empty"))

        assert totals.num_buildings == 0
        assert totals.total_net_capex == 0.0
        assert totals.weighted_irr is None
        assert totals.volume_discount == 0.0
        assert totals.discounted_capex == 0.0

    def test_discounted_capex(self):
        """Test the volume discount applied to total net CAPEX."""
        sites = [PortfolioSite(f"s{i}", overrides=SiteOverrides(net_capex=10_000.0)) for i in range(5)]
        totals = PortfolioAggregator().recalculate(Portfolio("p", sites))

        assert totals.volume_discount == 0.05
        assert totals.discounted_capex == pytest.approx(50_000.0 * 0.95)

    def test_idempotent_and_order_independent(self):
        """Test bit-identical totals across repeats and site orderings."""
        sites = [
            PortfolioSite("a", reference_run(26.0)),
            PortfolioSite("b", reference_run(40.0, 100.0), SiteOverrides(irr=0.1)),
            PortfolioSite("c", reference_run(12.5)),
            PortfolioSite("d", overrides=SiteOverrides(net_capex=12_345.67, npv=0.1, irr=0.07)),
        ]
        aggregator = PortfolioAggregator()

        first = aggregator.recalculate(Portfolio("p", sites))
        second = aggregator.recalculate(Portfolio("p", sites))
        reversed_order = aggregator.recalculate(Portfolio("p", list(reversed(sites))))

        assert first == second
        assert first == reversed_order
        assert first.to_dict() == second.to_dict()

    def test_duplicate_site_ids_rejected(self):
        """Test that a site may appear only once."""
        with pytest.raises(InvalidInputError, match="duplicated"):
            Portfolio("p", [PortfolioSite("a"), PortfolioSite("a")])


class TestVolumeDiscountPolicy:
    """Tests for the volume discount step table."""

    @pytest.mark.parametrize("count,expected", [
        (0, 0.0), (4, 0.0), (5, 0.05), (9, 0.05),
        (10, 0.10), (19, 0.10), (20, 0.15), (500, 0.15),
    ])
    def test_default_tiers(self, count, expected):
        """Test the default 5/10/20 building tiers."""
        assert VolumeDiscountPolicy().discount_for(count) == expected

    def test_monotonic(self):
        """Test that adding buildings never lowers the discount."""
        policy = VolumeDiscountPolicy()
        discounts = [policy.discount_for(n) for n in range(0, 50)]
        assert discounts == sorted(discounts)

    def test_negative_count_rejected(self):
        """Test that a negative building count raises."""
        with pytest.raises(InvalidInputError):
            VolumeDiscountPolicy().discount_for(-1)

    @pytest.mark.parametrize("tiers", [
        ((10, 0.05), (5, 0.10)),
        ((5, 0.10), (10, 0.05)),
        ((0, 0.05),),
        ((5, -0.01),),
        ((5, 0.20),),
    ])
    def test_invalid_tables_rejected(self, tiers):
        """Test that non-monotonic, negative or over-ceiling tables raise."""
        with pytest.raises(InvalidInputError, match="tiers"):
            VolumeDiscountPolicy(tiers)

    def test_custom_policy(self):
        """Test that the aggregator uses the given policy."""
        policy = VolumeDiscountPolicy(((2, 0.02),), ceiling=0.05)
        sites = [PortfolioSite("a"), PortfolioSite("b")]

        assert PortfolioAggregator(policy).recalculate(Portfolio("p", sites)).volume_discount == 0.02


class TestMandateQuote:
    """Tests for quote_design_mandate()."""

    def test_three_buildings(self):
        """Test one travel day and no discount."""
        quote = quote_design_mandate(3)

        assert quote.estimated_travel_days == 1
        assert quote.travel == 150.0
        assert quote.visit == 1_800.0
        assert quote.evaluation == 3_000.0
        assert quote.diagrams == 5_700.0
        assert quote.discount == 0.0
        assert quote.subtotal == pytest.approx(10_650.0)
        assert quote.gst == pytest.approx(532.5)
        assert quote.qst == pytest.approx(10_650.0 * 0.09975)
        assert quote.total == pytest.approx(quote.subtotal + quote.gst + quote.qst)

    def test_ten_buildings_discounted(self):
        """Test travel day rounding and the 10 % tier."""
        quote = quote_design_mandate(10)

        assert quote.estimated_travel_days == 4
        assert quote.subtotal_before_discount == pytest.approx(35_600.0)
        assert quote.discount == pytest.approx(3_560.0)
        assert quote.subtotal == pytest.approx(32_040.0)

    def test_zero_buildings(self):
        """Test an empty mandate."""
        quote = quote_design_mandate(0)

        assert quote.total == 0.0
        assert quote.estimated_travel_days == 0

    def test_invalid_count(self):
        """Test that non-integer or negative counts raise."""
        with pytest.raises(InvalidInputError):
            quote_design_mandate(2.5)
        with pytest.raises(InvalidInputError):
            quote_design_mandate(-1)

    def test_quote_for_portfolio(self):
        """Test that the aggregator quotes every building in the portfolio."""
        sites = [PortfolioSite(f"s{i}") for i in range(6)]
        quote = PortfolioAggregator().quote(Portfolio("p", sites))

        assert quote.num_buildings == 6
        assert quote.volume_discount == 0.05
