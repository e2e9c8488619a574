"""
Valuation model - converts holdings into home-currency (TWD) values.
Pure functions only: no I/O, no rounding. Formatting is left to callers.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from models import Asset, AssetType, Currency, ExchangeRate, HOME_CURRENCY

logger = logging.getLogger(__name__)

HIDDEN_AMOUNT = "*******"

# Display labels for the categorized list and the distribution chart
TYPE_LABELS = {
    AssetType.TW_STOCK: "台股",
    AssetType.US_STOCK: "美股",
    AssetType.CASH: "現金",
    AssetType.OTHER: "其他",
}


@dataclass
class TypeAllocation:
    """One slice of the distribution breakdown."""
    type: AssetType
    value: float  # In home currency
    weight: float  # Fraction of the portfolio total, 0-1

    @property
    def label(self) -> str:
        return TYPE_LABELS[self.type]


@dataclass
class PortfolioSummary:
    """Headline numbers for the summary card."""
    total_value: float
    asset_count: int
    rates_last_update: int
    base_currency: str = HOME_CURRENCY.value


def conversion_factor(currency: Currency, rates: ExchangeRate) -> float:
    """
    Factor that converts an amount in ``currency`` to the home currency.

    Unknown currencies are treated as home currency instead of being dropped.
    """
    if currency == HOME_CURRENCY:
        return 1.0
    if currency == Currency.USD:
        return rates.usd_to_twd
    if currency == Currency.JPY:
        return rates.jpy_to_twd
    logger.warning(f"Unknown currency {currency!r}, valuing at 1:1")
    return 1.0


def value_in_home(asset: Asset, rates: ExchangeRate) -> float:
    """Value of one holding in the home currency."""
    return asset.shares * asset.price * conversion_factor(asset.currency, rates)


def total_value_in_home(assets: Iterable[Asset], rates: ExchangeRate) -> float:
    """Total portfolio value in the home currency (0 for an empty portfolio)."""
    return sum((value_in_home(asset, rates) for asset in assets), 0.0)


def distribution_by_type(assets: Sequence[Asset], rates: ExchangeRate) -> List[TypeAllocation]:
    """
    Break the portfolio value down by asset type.

    Groups follow AssetType declaration order; groups worth nothing are omitted.
    """
    totals: Dict[AssetType, float] = {asset_type: 0.0 for asset_type in AssetType}
    for asset in assets:
        totals[asset.type] += value_in_home(asset, rates)

    grand_total = sum(totals.values())
    allocations = []
    for asset_type, value in totals.items():
        if value <= 0:
            continue
        allocations.append(TypeAllocation(
            type=asset_type,
            value=value,
            weight=value / grand_total if grand_total > 0 else 0.0
        ))
    return allocations


def group_by_type(assets: Iterable[Asset]) -> Dict[AssetType, List[Asset]]:
    """Categorize holdings by type, keeping insertion order inside each group."""
    grouped: Dict[AssetType, List[Asset]] = {asset_type: [] for asset_type in AssetType}
    for asset in assets:
        grouped[asset.type].append(asset)
    return grouped


def summarize(assets: Sequence[Asset], rates: ExchangeRate) -> PortfolioSummary:
    return PortfolioSummary(
        total_value=total_value_in_home(assets, rates),
        asset_count=len(assets),
        rates_last_update=rates.last_update
    )


def format_amount(value: float, hidden: bool = False, symbol: Optional[str] = "$") -> str:
    """Format a home-currency amount for display, or mask it."""
    if hidden:
        return HIDDEN_AMOUNT
    return f"{symbol or ''}{value:,.0f}"
