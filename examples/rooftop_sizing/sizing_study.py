"""
Rooftop Solar + Storage Sizing Study.

Walks one commercial building through the full workflow:
    1. Size PV for a 70 % consumption offset (capped by the roof)
    2. Simulate the configured design
    3. Sweep the sizing space and report the champion per objective
    4. Roll three buildings into a portfolio and quote the design mandate

Optionally writes interactive charts to examples/rooftop_sizing/output/
when plotly is installed.
"""

from pathlib import Path
import logging
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from solar_finance import (
    Portfolio,
    PortfolioAggregator,
    PortfolioSite,
    SensitivitySweepOptimizer,
    SiteEnergyProfile,
    SystemDesign,
    max_pv_from_roof,
    run_simulation,
    size_for_offset,
)
from solar_finance.visualization import PLOTLY_AVAILABLE, FinancialPlots


def run_study():
    """Run the single-building study and a small portfolio roll-up."""

    logging.basicConfig(level=logging.INFO, format="  [%(name)s] %(message)s")

    print("=" * 70)
    print("ROOFTOP SOLAR + STORAGE - SIZING STUDY")
    print("=" * 70)

    # ========================================================================
    # 1. Site and sizing
    # ========================================================================
    print("\n[1/4] Sizing the array...")
    site = SiteEnergyProfile(
        annual_consumption_kwh=46_212.0,
        peak_demand_kw=40.0,
        tariff_rate=0.0779,
        building_type="office",
        roof_area_sqft=4_000.0,
        site_id="office-01",
    )
    roof_cap = max_pv_from_roof(site.roof_area_sqft)
    pv_kw = size_for_offset(site.annual_consumption_kwh, 0.70, roof_cap_kw=roof_cap)
    print(f"  > Consumption:   {site.annual_consumption_kwh:,.0f} kWh/year")
    print(f"  > Roof ceiling:  {roof_cap:.1f} kW")
    print(f"  > 70 % offset:   {pv_kw} kW")

    # ========================================================================
    # 2. Configured design
    # ========================================================================
    print("\n[2/4] Simulating the configured design...")
    configured = SystemDesign(pv_kw)
    run = run_simulation(site, configured)
    inc = run.incentives
    print(f"\n  {configured.label}:")
    print(f"    Gross CAPEX:       {inc.gross_capex:>12,.0f} $")
    print(f"    Utility incentive: {inc.utility_incentive:>12,.0f} $")
    print(f"    Federal ITC:       {inc.federal_credit:>12,.0f} $")
    print(f"    Net CAPEX:         {inc.net_capex:>12,.0f} $")
    print(f"    NPV (25 y):        {run.npv:>12,.0f} $")
    print(f"    IRR:               {run.irr:>12.1%}" if run.irr is not None else "    IRR:               n/a")
    print(f"    Payback:           {run.simple_payback_years:>12d} years")
    print(f"    LCOE:              {run.lcoe * 100:>12.2f} c/kWh")

    # ========================================================================
    # 3. Sweep
    # ========================================================================
    print("\n[3/4] Sweeping the sizing space...")
    result = SensitivitySweepOptimizer(concurrency="thread").optimize(site, configured=configured)
    print(f"  > {len(result.runs)} designs evaluated, {len(result.excluded)} excluded")
    for name, champion in result.optimal.as_dict().items():
        if champion is None:
            print(f"    {name:<22} none")
            continue
        print(f"    {name:<22} {champion.design.label:<26} NPV {champion.npv:>10,.0f} $")

    # ========================================================================
    # 4. Portfolio
    # ========================================================================
    print("\n[4/4] Portfolio roll-up...")
    sites = [PortfolioSite(site.site_id, run)]
    for i, (consumption, peak) in enumerate([(120_000.0, 90.0), (80_000.0, 60.0)], start=2):
        other = SiteEnergyProfile(consumption, peak, 0.0779, site_id=f"office-0{i}")
        other_pv = size_for_offset(consumption, 0.70)
        sites.append(PortfolioSite(other.site_id, run_simulation(other, SystemDesign(other_pv))))

    portfolio = Portfolio("Downtown offices", sites)
    aggregator = PortfolioAggregator()
    totals = aggregator.recalculate(portfolio)
    quote = aggregator.quote(portfolio)
    print(f"  > Total PV:        {totals.total_pv_size_kw:,.0f} kW")
    print(f"  > Total net CAPEX: {totals.total_net_capex:,.0f} $")
    print(f"  > Weighted IRR:    {totals.weighted_irr:.1%}" if totals.weighted_irr is not None else "  > Weighted IRR: n/a")
    print(f"  > Mandate quote:   {quote.total:,.2f} $ (taxes included)")

    if PLOTLY_AVAILABLE:
        out = Path(__file__).parent / "output"
        out.mkdir(exist_ok=True)
        FinancialPlots.create_cumulative_cashflow(run).write_html(out / "cashflow.html")
        FinancialPlots.create_sweep_frontier(result).write_html(out / "frontier.html")
        print(f"\n  Charts written to {out}")

    print("\n" + "=" * 70)


if __name__ == "__main__":
    run_study()
