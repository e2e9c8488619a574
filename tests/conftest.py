import asyncio
from typing import Dict, List, Optional

import pytest
from sqlmodel import Session

from config import Settings
from db_engine import create_db_engine
from exceptions import GatewayUnavailable
from models import Asset, AssetDraft, AssetType, Currency, ExchangeRate, RateSource, StorageEntry
from repositories import SnapshotRepository
from services import PortfolioStore, RateQuote


class FakeGateway:
    """In-memory stand-in for MarketDataGateway that records its calls."""

    def __init__(
        self,
        quote: Optional[RateQuote] = None,
        prices: Optional[Dict[str, float]] = None,
        rates_error: Optional[Exception] = None,
        prices_error: Optional[Exception] = None,
        block: Optional[asyncio.Event] = None,
        delay: float = 0.0
    ):
        self.quote = quote or RateQuote(usd=31.0, jpy=0.22, sources=[RateSource(uri="https://example.com/fx", title="FX")])
        self.prices = prices if prices is not None else {}
        self.rates_error = rates_error
        self.prices_error = prices_error
        self.block = block
        self.delay = delay
        self.rate_calls = 0
        self.price_calls: List[List[str]] = []

    async def fetch_exchange_rates(self) -> RateQuote:
        self.rate_calls += 1
        await asyncio.sleep(0)  # network round trip
        if self.block is not None:
            await self.block.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.rates_error:
            raise self.rates_error
        return self.quote

    async def fetch_stock_prices(self, tickers) -> Dict[str, float]:
        self.price_calls.append(list(tickers))
        await asyncio.sleep(0)
        if self.prices_error:
            raise self.prices_error
        return dict(self.prices)


@pytest.fixture
def settings():
    return Settings(_env_file=None, gateway_timeout_seconds=1.0)


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'zenwealth_test.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine):
    return SnapshotRepository(engine, key="zenwealth_assets")


@pytest.fixture
def store(repository):
    return PortfolioStore(repository=repository)


@pytest.fixture
def rates():
    return ExchangeRate(usd_to_twd=32.0, jpy_to_twd=0.2, last_update=1_700_000_000_000)


@pytest.fixture
def tsla():
    return Asset(
        id="tsla-1",
        type=AssetType.US_STOCK,
        symbol="TSLA",
        name="TSLA",
        shares=10,
        price=200,
        currency=Currency.USD,
        updated_at=1_700_000_000_000
    )


@pytest.fixture
def gateway_down():
    return FakeGateway(
        rates_error=GatewayUnavailable("quota exhausted"),
        prices_error=GatewayUnavailable("quota exhausted")
    )


def stock_draft(symbol: str, shares: float, price: float, currency: Currency = Currency.TWD,
                asset_type: AssetType = AssetType.TW_STOCK) -> AssetDraft:
    return AssetDraft(type=asset_type, symbol=symbol, shares=shares, price=price, currency=currency)


def seed_snapshot(engine, payload: str, key: str = "zenwealth_assets") -> None:
    """Write ``payload`` verbatim under ``key``, bypassing encoding."""
    with Session(engine) as session:
        session.add(StorageEntry(key=key, value=payload))
        session.commit()
