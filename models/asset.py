"""
Asset model - represents one holding in the portfolio.
"""

import time
from enum import Enum
from typing import Any, Optional

from pydantic import model_validator
from sqlmodel import SQLModel, Field

from exceptions import InvalidAssetDraft


class AssetType(str, Enum):
    """Kind of holding. Declaration order is the display order."""
    TW_STOCK = "TW_STOCK"  # Domestic stock
    US_STOCK = "US_STOCK"  # Foreign stock
    CASH = "CASH"
    OTHER = "OTHER"

    @property
    def is_stock(self) -> bool:
        return self in (AssetType.TW_STOCK, AssetType.US_STOCK)


class Currency(str, Enum):
    USD = "USD"
    TWD = "TWD"
    JPY = "JPY"


HOME_CURRENCY = Currency.TWD


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def default_currency_for(asset_type: AssetType) -> Currency:
    """Currency the entry form preselects for a new asset of this type."""
    if asset_type == AssetType.US_STOCK:
        return Currency.USD
    return Currency.TWD


class AssetDraft(SQLModel):
    """Form payload for a new or edited asset (no id, no timestamp)."""
    type: AssetType
    symbol: str = ""
    name: str = ""
    shares: float = Field(default=1, ge=0)
    price: float = Field(default=0, ge=0)  # Unit price, or total value for CASH/OTHER
    currency: Currency = HOME_CURRENCY

    @model_validator(mode='before')
    @classmethod
    def _preselect_currency(cls, data: Any) -> Any:
        """Fill a missing currency with the default for the asset type."""
        if isinstance(data, dict) and not data.get('currency') and data.get('type'):
            data = {**data, 'currency': default_currency_for(data['type'])}
        return data

    def normalized(self) -> "AssetDraft":
        """
        Apply the per-type entry rules.

        CASH becomes ``CASH-<currency>`` named after its currency, OTHER gets the
        ``OTHER`` placeholder symbol, and both carry their value in ``price``
        with a single share. Stock symbols are upper-cased and double as name.

        Raises:
            InvalidAssetDraft: if a stock has no symbol or OTHER has no name
        """
        if self.type == AssetType.CASH:
            return self.model_copy(update={
                'symbol': f"CASH-{self.currency.value}",
                'name': self.currency.value,
                'shares': 1,
            })

        if self.type == AssetType.OTHER:
            name = self.name.strip()
            if not name:
                raise InvalidAssetDraft("OTHER assets need a name")
            return self.model_copy(update={'symbol': 'OTHER', 'name': name, 'shares': 1})

        symbol = self.symbol.strip().upper()
        if not symbol:
            raise InvalidAssetDraft(f"{self.type.value} assets need a symbol")
        return self.model_copy(update={'symbol': symbol, 'name': symbol})


class Asset(AssetDraft):
    """Represents a stored holding. ``shares * price`` is its value in ``currency``."""
    id: str
    updated_at: int = Field(default_factory=now_ms)  # epoch ms

    @property
    def value(self) -> float:
        """Value in the asset's own currency."""
        return self.shares * self.price

    def with_changes(self, updated_at: Optional[int] = None, **changes) -> "Asset":
        """Return a validated copy with ``changes`` applied and a fresh timestamp."""
        data = self.model_dump()
        data.update(changes)
        data['id'] = self.id
        data['updated_at'] = updated_at if updated_at is not None else now_ms()
        return Asset.model_validate(data)
