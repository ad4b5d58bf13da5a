"""Portfolio roll-ups and design mandate quotes."""

from solar_finance.portfolio.aggregator import (
    KPI_ATTRIBUTES,
    MandateQuote,
    Portfolio,
    PortfolioAggregator,
    PortfolioSite,
    PortfolioTotals,
    SiteOverrides,
    VolumeDiscountPolicy,
    quote_design_mandate,
)

__all__ = [
    'KPI_ATTRIBUTES',
    'MandateQuote',
    'Portfolio',
    'PortfolioAggregator',
    'PortfolioSite',
    'PortfolioTotals',
    'SiteOverrides',
    'VolumeDiscountPolicy',
    'quote_design_mandate',
]
