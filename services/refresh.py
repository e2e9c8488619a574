"""
Refresh coordinator - one single-flight cycle of rates, prices and merge.
Runs on the asyncio event loop; the gateway calls are the only suspension points.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from exceptions import GatewayUnavailable
from models import AssetType, ExchangeRate
from services.market_data import MarketDataGateway
from services.portfolio import PortfolioStore

logger = logging.getLogger(__name__)

# Types that never have a market quote
_UNQUOTED_TYPES = (AssetType.CASH, AssetType.OTHER)


class RefreshState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


class RefreshOutcome(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"  # Another cycle was already in flight


@dataclass
class RefreshReport:
    """What one call to start_refresh() did."""
    outcome: RefreshOutcome
    rates_updated: bool = False
    assets_repriced: int = 0
    rates_error: Optional[str] = None
    prices_error: Optional[str] = None

    @property
    def degraded(self) -> bool:
        """True if any step fell back to previously known values."""
        return bool(self.rates_error or self.prices_error)


def quotable_tickers(store: PortfolioStore) -> List[str]:
    """Distinct symbols of holdings that have a market price, in portfolio order."""
    tickers = [a.symbol for a in store.snapshot() if a.type not in _UNQUOTED_TYPES and a.symbol]
    return list(dict.fromkeys(tickers))


class RefreshCoordinator:
    """
    Orchestrates refresh cycles with single-flight protection.

    A request arriving while a cycle is in flight is dropped, not queued.
    Rates are replaced all-or-nothing; prices are merged per symbol.
    """

    def __init__(
        self,
        store: PortfolioStore,
        gateway: MarketDataGateway,
        rates: ExchangeRate,
        timeout: float = 30.0
    ):
        """
        Args:
            store: Portfolio store to reprice
            gateway: Market data gateway
            rates: Current exchange rates (replaced on each successful fetch)
            timeout: Budget in seconds for each gateway call
        """
        self.store = store
        self.gateway = gateway
        self.rates = rates
        self.timeout = timeout
        self.state = RefreshState.IDLE

    @property
    def is_refreshing(self) -> bool:
        return self.state == RefreshState.REFRESHING

    async def start_refresh(self) -> RefreshReport:
        """
        Run one refresh cycle unless one is already running.

        Never raises for gateway problems: failed steps keep their previous
        values and are reported on the returned RefreshReport.
        """
        if self.state == RefreshState.REFRESHING:
            logger.info("Refresh already in progress, ignoring request")
            return RefreshReport(outcome=RefreshOutcome.SKIPPED)

        self.state = RefreshState.REFRESHING
        report = RefreshReport(outcome=RefreshOutcome.COMPLETED)
        logger.info("Starting refresh cycle")
        try:
            await self._refresh_rates(report)
            await self._refresh_prices(report)
        finally:
            self.state = RefreshState.IDLE

        logger.info(
            f"Refresh cycle done: rates {'updated' if report.rates_updated else 'kept'}, "
            f"{report.assets_repriced} assets repriced"
        )
        return report

    async def _call(self, awaitable, what: str):
        """Await a gateway call within the timeout budget."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise GatewayUnavailable(f"{what} timed out after {self.timeout}s") from e

    async def _refresh_rates(self, report: RefreshReport):
        try:
            quote = await self._call(self.gateway.fetch_exchange_rates(), "Exchange rate fetch")
            new_rates = ExchangeRate.from_quote(quote.usd, quote.jpy, quote.sources)
        except GatewayUnavailable as e:
            logger.warning(f"Keeping previous exchange rates: {e}")
            report.rates_error = str(e)
            return
        except Exception as e:
            logger.error(f"Unexpected error fetching exchange rates: {e}")
            report.rates_error = str(e)
            return

        self.rates = new_rates
        report.rates_updated = True

    async def _refresh_prices(self, report: RefreshReport):
        if len(self.store) == 0:
            return

        tickers = quotable_tickers(self.store)
        if not tickers:
            logger.debug("No quotable holdings, skipping price fetch")
            return

        try:
            price_map = await self._call(self.gateway.fetch_stock_prices(tickers), "Stock price fetch")
        except GatewayUnavailable as e:
            logger.warning(f"Keeping previous stock prices: {e}")
            report.prices_error = str(e)
            return
        except Exception as e:
            logger.error(f"Unexpected error fetching stock prices: {e}")
            report.prices_error = str(e)
            return

        report.assets_repriced = self.store.bulk_update_prices(price_map or {})
