"""
Data models for ZenWealth.
Holdings are SQLModel models, rates are frozen pydantic models; only StorageEntry is a table.
"""

from models.asset import Asset, AssetDraft, AssetType, Currency, HOME_CURRENCY, default_currency_for, now_ms
from models.exchange_rate import ExchangeRate, RateSource
from models.storage_entry import StorageEntry, utc_now

__all__ = [
    'Asset',
    'AssetDraft',
    'AssetType',
    'Currency',
    'HOME_CURRENCY',
    'default_currency_for',
    'now_ms',
    'ExchangeRate',
    'RateSource',
    'StorageEntry',
    'utc_now',
]
