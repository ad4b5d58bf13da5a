"""
Plotly charts for simulation runs, sizing sweeps and portfolios.

Requires the visualization extra:
    pip install solar_finance[visualization]

Usage:
    from solar_finance.visualization import FinancialPlots

    result = SensitivitySweepOptimizer().optimize(profile, configured=design)
    fig = FinancialPlots.create_sweep_frontier(result)
    fig.show()
"""

from solar_finance.visualization.colors import ColorScheme, get_color_scheme
from solar_finance.visualization.plots import PLOTLY_AVAILABLE, FinancialPlots

__all__ = [
    'ColorScheme',
    'FinancialPlots',
    'PLOTLY_AVAILABLE',
    'get_color_scheme',
]
