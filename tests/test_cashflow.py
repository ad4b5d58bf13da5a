"""
Unit tests for the cashflow projector.

Tests cover:
    1. Compounding order (year 1 already degraded and inflated)
    2. O&M and cumulative position
    3. Simple payback and the horizon sentinel
    4. Input validation

Run tests with: pytest tests/test_cashflow.py -v
"""

import pytest

from solar_finance.core import CashflowProjector, FinancialAssumptions, InvalidInputError


def project_reference(**kwargs):
    """26 kWp reference system: net 16 380 $, gross 39 000 $, 32 500 kWh, 0.0779 $/kWh."""
    params = dict(
        net_capex=16_380.0,
        gross_capex=39_000.0,
        initial_production_kwh=32_500.0,
        initial_tariff=0.0779,
    )
    params.update(kwargs)
    return CashflowProjector().project(**params)


class TestCompounding:
    """Tests for the year-by-year compounding order."""

    def test_horizon_length(self):
        """Test that one entry per modeled year is produced."""
        projection = project_reference()

        assert projection.horizon == 25
        assert [e.year for e in projection.entries] == list(range(1, 26))

    def test_year_one_already_stepped(self):
        """Test that year 1 is one step degraded and one step inflated."""
        first = project_reference().entries[0]

        assert first.production_kwh == pytest.approx(32_500.0 * (1 - 0.004))
        assert first.tariff_rate == pytest.approx(0.0779 * 1.048)
        assert first.savings == pytest.approx(first.production_kwh * first.tariff_rate)

    def test_production_declines_and_tariff_rises(self):
        """Test monotonic degradation and escalation."""
        entries = project_reference().entries

        for prev, cur in zip(entries, entries[1:]):
            assert cur.production_kwh < prev.production_kwh
            assert cur.tariff_rate > prev.tariff_rate

    def test_om_on_gross_capex(self):
        """Test that O&M is a flat fraction of gross (not net) CAPEX."""
        entries = project_reference().entries

        assert all(e.om_cost == pytest.approx(390.0) for e in entries)
        assert entries[0].net_cashflow == pytest.approx(entries[0].savings - 390.0)

    def test_cumulative_starts_at_minus_net_capex(self):
        """Test the cumulative running sum."""
        projection = project_reference()
        entries = projection.entries

        assert entries[0].cumulative == pytest.approx(-16_380.0 + entries[0].net_cashflow)
        assert entries[-1].cumulative == pytest.approx(
            -16_380.0 + sum(e.net_cashflow for e in entries)
        )

    def test_demand_savings_escalate_with_tariff(self):
        """Test that battery demand savings escalate but do not degrade."""
        projection = project_reference(initial_production_kwh=0.0, initial_demand_savings=100.0)

        assert projection.entries[0].savings == pytest.approx(100.0 * 1.048)
        assert projection.entries[1].savings == pytest.approx(100.0 * 1.048 ** 2)

    def test_as_series(self):
        """Test the NPV/IRR series layout."""
        projection = project_reference()
        series = projection.as_series()

        assert len(series) == 26
        assert series[0] == -16_380.0
        assert series[1] == projection.entries[0].net_cashflow


class TestPayback:
    """Tests for simple payback."""

    def test_reference_payback_year(self):
        """Test that the reference system breaks even in year 7."""
        projection = project_reference()

        assert projection.simple_payback_years == 7
        assert projection.payback_reached is True
        assert projection.entries[5].cumulative < 0
        assert projection.entries[6].cumulative >= 0

    def test_never_recovers_returns_horizon_sentinel(self):
        """Test that no break-even reports the horizon with payback_reached=False."""
        projection = project_reference(net_capex=10_000_000.0)

        assert projection.simple_payback_years == 25
        assert projection.payback_reached is False
        assert all(e.cumulative < 0 for e in projection.entries)

    def test_zero_investment_pays_back_in_year_one(self):
        """Test that a free system breaks even immediately."""
        projection = project_reference(net_capex=0.0)

        assert projection.simple_payback_years == 1
        assert projection.payback_reached is True

    def test_custom_horizon(self):
        """Test that the horizon argument overrides the assumption."""
        projection = project_reference(net_capex=10_000_000.0, horizon=10)

        assert projection.horizon == 10
        assert projection.simple_payback_years == 10

    def test_payback_within_bounds(self):
        """Test 1 <= payback <= horizon for a range of investments."""
        for net in (0.0, 5_000.0, 50_000.0, 500_000.0):
            projection = project_reference(net_capex=net)
            assert 1 <= projection.simple_payback_years <= projection.horizon


class TestValidation:
    """Tests for input validation."""

    @pytest.mark.parametrize("field,value", [
        ("net_capex", -1.0),
        ("gross_capex", -1.0),
        ("initial_production_kwh", -1.0),
        ("initial_tariff", 0.0),
        ("horizon", 0),
    ])
    def test_invalid_inputs(self, field, value):
        """Test that bad inputs raise InvalidInputError naming the field."""
        with pytest.raises(InvalidInputError, match=field):
            project_reference(**{field: value})

    def test_assumptions_drive_rates(self):
        """Test that projector uses the given assumptions."""
        a = FinancialAssumptions(degradation_rate=0.0, tariff_inflation=0.0)
        projection = CashflowProjector(a).project(0.0, 1_000.0, 1_000.0, 0.10, horizon=3)

        assert all(e.savings == pytest.approx(100.0) for e in projection.entries)
        assert projection.entries[-1].cumulative == pytest.approx(3 * (100.0 - 10.0))


class TestDataFrame:
    """Tests for pandas export."""

    def test_to_dataframe(self):
        """Test that entries export indexed by year."""
        pytest.importorskip("pandas")
        df = project_reference().to_dataframe()

        assert list(df.index) == list(range(1, 26))
        assert "cumulative" in df.columns


class TestDeterminism:
    """Tests that projections are pure functions of their inputs."""

    def test_repeated_projection_is_identical(self):
        """Test that projecting twice gives exactly equal entries."""
        p1 = project_reference(initial_demand_savings=703.0)
        p2 = project_reference(initial_demand_savings=703.0)

        assert p1.entries == p2.entries
        assert p1 == p2

    def test_fresh_projector_instances_agree(self):
        """Test that no state leaks between projector instances."""
        a = FinancialAssumptions(discount_rate=0.06, tariff_inflation=0.03)
        first = CashflowProjector(a).project(16_380.0, 39_000.0, 32_500.0, 0.0779)
        CashflowProjector().project(1.0, 1.0, 1.0, 1.0)
        second = CashflowProjector(a).project(16_380.0, 39_000.0, 32_500.0, 0.0779)

        assert first.as_series() == second.as_series()
