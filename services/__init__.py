"""
Services package for ZenWealth.
Provides core business logic separated from presentation and data layers.
"""

from services.valuation import (
    conversion_factor,
    value_in_home,
    total_value_in_home,
    distribution_by_type,
    group_by_type,
    summarize,
    format_amount,
    TypeAllocation,
    PortfolioSummary,
)
from services.portfolio import PortfolioStore
from services.market_data import MarketDataGateway, RateQuote
from services.refresh import (
    RefreshCoordinator,
    RefreshReport,
    RefreshOutcome,
    RefreshState,
)

__all__ = [
    # Valuation
    'conversion_factor',
    'value_in_home',
    'total_value_in_home',
    'distribution_by_type',
    'group_by_type',
    'summarize',
    'format_amount',
    'TypeAllocation',
    'PortfolioSummary',
    # Services
    'PortfolioStore',
    'MarketDataGateway',
    'RateQuote',
    'RefreshCoordinator',
    'RefreshReport',
    'RefreshOutcome',
    'RefreshState',
]
