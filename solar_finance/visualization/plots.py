"""
Financial visualizations for simulation runs, sweeps and portfolios.

Interactive Plotly figures aimed at the proposal/report audience:
- Cumulative cashflow with break-even marker
- Incentive waterfall (gross CAPEX -> net CAPEX)
- Sweep frontier (net CAPEX vs NPV, champions highlighted)
- NPV curves along the PV and battery axes
- Per-site portfolio bars
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from solar_finance.core.simulation import SimulationRun
    from solar_finance.optimization.sweep import SweepResult
    from solar_finance.portfolio.aggregator import Portfolio

try:
    import plotly.graph_objects as go
    from plotly.subplots import make_subplots
    PLOTLY_AVAILABLE = True
except ImportError:
    PLOTLY_AVAILABLE = False

from solar_finance.visualization.colors import get_color_scheme


def _require_plotly() -> None:
    if not PLOTLY_AVAILABLE:
        raise ImportError("plotly required for visualizations. Install with: pip install plotly")


CHAMPION_LABELS = {
    'best_npv': 'Best NPV',
    'best_irr': 'Best IRR',
    'max_self_sufficiency': 'Max self-sufficiency',
    'fastest_payback': 'Fastest payback',
}


class FinancialPlots:
    """
    Factory class for financial visualizations.

    All methods are static and return plotly.graph_objects.Figure instances.
    """

    @staticmethod
    def create_cumulative_cashflow(
        run: 'SimulationRun',
        template: str = 'plotly_white',
    ) -> Any:  # go.Figure
        """
        Annual net cashflow bars with the cumulative position as a line.

        Args:
            run:
                SimulationRun to chart.

            template:
                Plotly template name ('plotly_white', 'plotly_dark', ...).

        Returns:
            plotly.graph_objects.Figure.

        Raises:
            ImportError: If plotly not installed.
        """
        _require_plotly()
        colors = get_color_scheme(template)

        years = [0] + [e.year for e in run.cashflows]
        net = [-run.net_capex] + [e.net_cashflow for e in run.cashflows]
        cumulative = [-run.net_capex] + [e.cumulative for e in run.cashflows]

        fig = go.Figure()
        fig.add_trace(go.Bar(
            x=years,
            y=net,
            name='Net cashflow',
            marker_color=[colors.savings_color if v >= 0 else colors.cost_color for v in net],
        ))
        fig.add_trace(go.Scatter(
            x=years,
            y=cumulative,
            name='Cumulative',
            mode='lines+markers',
            line=dict(color=colors.cumulative_color, width=3),
        ))
        fig.add_hline(y=0, line_color=colors.break_even_color, line_dash='dot')

        if run.payback_reached:
            fig.add_vline(
                x=run.simple_payback_years,
                line_color=colors.break_even_color,
                line_dash='dash',
                annotation_text=f'Payback: {run.simple_payback_years} years',
            )

        fig.update_layout(
            title=f'Cashflow: {run.design.label}<br><sub>NPV: {run.npv:,.0f} $</sub>',
            xaxis_title='Year',
            yaxis_title='Cashflow [$]',
            template=template,
        )
        return fig

    @staticmethod
    def create_incentive_waterfall(
        run: 'SimulationRun',
        template: str = 'plotly_white',
    ) -> Any:  # go.Figure
        """Waterfall from gross CAPEX through each incentive to net CAPEX."""
        _require_plotly()
        colors = get_color_scheme(template)
        inc = run.incentives

        fig = go.Figure(go.Waterfall(
            x=['Gross CAPEX', 'Utility incentive', 'Federal ITC', 'Tax shield', 'Net CAPEX'],
            y=[inc.gross_capex, -inc.utility_incentive, -inc.federal_credit, -inc.tax_shield, inc.net_capex],
            measure=['absolute', 'relative', 'relative', 'relative', 'total'],
            increasing=dict(marker=dict(color=colors.cost_color)),
            decreasing=dict(marker=dict(color=colors.savings_color)),
            totals=dict(marker=dict(color=colors.cumulative_color)),
        ))
        fig.update_layout(
            title=f'Incentives: {run.design.label}',
            yaxis_title='[$]',
            template=template,
            showlegend=False,
        )
        return fig

    @staticmethod
    def create_sweep_frontier(
        result: 'SweepResult',
        template: str = 'plotly_white',
    ) -> Any:  # go.Figure
        """
        Net CAPEX vs NPV for every evaluated candidate, champions highlighted.

        Args:
            result:
                Output of SensitivitySweepOptimizer.optimize().

            template:
                Plotly template name.

        Returns:
            plotly.graph_objects.Figure.
        """
        _require_plotly()
        colors = get_color_scheme(template)
        rows = result.frontier()

        fig = go.Figure()
        for kind in ('solar', 'battery', 'hybrid'):
            kind_rows = [r for r in rows if r['kind'] == kind]
            if not kind_rows:
                continue
            fig.add_trace(go.Scatter(
                x=[r['net_capex'] for r in kind_rows],
                y=[r['npv'] for r in kind_rows],
                mode='markers',
                name=kind.capitalize(),
                text=[r['label'] for r in kind_rows],
                marker=dict(color=colors.kind_color(kind), size=8),
                hovertemplate='%{text}<br>Net CAPEX: %{x:,.0f} $<br>NPV: %{y:,.0f} $<extra></extra>',
            ))

        for name, champion in result.optimal.as_dict().items():
            if champion is None:
                continue
            fig.add_trace(go.Scatter(
                x=[champion.net_capex],
                y=[champion.npv],
                mode='markers',
                name=f'{CHAMPION_LABELS[name]}: {champion.design.label}',
                marker=dict(color=colors.champion_color, size=14, symbol='star'),
            ))

        fig.add_hline(y=0, line_color=colors.break_even_color, line_dash='dot')
        fig.update_layout(
            title='Sizing Frontier',
            xaxis_title='Net CAPEX [$]',
            yaxis_title='NPV [$]',
            template=template,
        )
        return fig

    @staticmethod
    def create_npv_curves(
        result: 'SweepResult',
        template: str = 'plotly_white',
    ) -> Any:  # go.Figure
        """NPV along the PV axis and along the battery axis, side by side."""
        _require_plotly()
        colors = get_color_scheme(template)

        solar = result.solar_curve()
        battery = result.battery_curve()

        fig = make_subplots(rows=1, cols=2, subplot_titles=('NPV vs PV size', 'NPV vs battery energy'))
        fig.add_trace(go.Scatter(
            x=[p[0] for p in solar],
            y=[p[1] for p in solar],
            mode='lines+markers',
            name='PV sweep',
            line=dict(color=colors.solar_color),
        ), row=1, col=1)
        fig.add_trace(go.Scatter(
            x=[p[0] for p in battery],
            y=[p[1] for p in battery],
            mode='lines+markers',
            name='Battery sweep',
            line=dict(color=colors.battery_color),
        ), row=1, col=2)

        fig.update_xaxes(title_text='PV [kW]', row=1, col=1)
        fig.update_xaxes(title_text='Battery [kWh]', row=1, col=2)
        fig.update_yaxes(title_text='NPV [$]', row=1, col=1)
        fig.update_layout(template=template)
        return fig

    @staticmethod
    def create_portfolio_sites(
        portfolio: 'Portfolio',
        metric: str = 'npv',
        template: str = 'plotly_white',
    ) -> Any:  # go.Figure
        """
        Effective value of one KPI per site.

        Args:
            portfolio:
                Portfolio to chart.

            metric:
                KPI name accepted by PortfolioSite.effective() (default 'npv').

            template:
                Plotly template name.
        """
        _require_plotly()
        colors = get_color_scheme(template)

        site_ids = [site.site_id for site in portfolio.sites]
        values = [site.effective(metric) for site in portfolio.sites]

        fig = go.Figure(go.Bar(
            x=site_ids,
            y=values,
            marker_color=[
                colors.neutral_color if not site.has_data
                else colors.savings_color if value >= 0
                else colors.cost_color
                for site, value in zip(portfolio.sites, values)
            ],
            text=[f'{v:,.0f}' for v in values],
            textposition='auto',
        ))
        fig.update_layout(
            title=f'{portfolio.name}: {metric} per site',
            xaxis_title='Site',
            yaxis_title=metric,
            template=template,
            showlegend=False,
        )
        return fig
