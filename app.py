"""
ZenWealth - application root.
Owns the portfolio store, the exchange rates and the refresh coordinator, and
exposes the read model and mutation surface the presentation layer calls.
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from dotenv import load_dotenv

from config import Settings, get_settings
from db_engine import create_db_engine
from models import Asset, AssetDraft, AssetType, ExchangeRate
from repositories import LoadStatus, SnapshotRepository
from services import (
    MarketDataGateway,
    PortfolioStore,
    PortfolioSummary,
    RefreshCoordinator,
    RefreshReport,
    TypeAllocation,
    distribution_by_type,
    format_amount,
    group_by_type,
    summarize,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class ZenWealthApp:
    """
    Application root. There is exactly one store and one rates value per app;
    readers get snapshots, writers go through the methods below.
    """

    def __init__(
        self,
        store: PortfolioStore,
        coordinator: RefreshCoordinator,
        load_status: LoadStatus = LoadStatus.EMPTY
    ):
        self.store = store
        self.coordinator = coordinator
        self.load_status = load_status
        self._amount_hidden = False

    @classmethod
    def bootstrap(
        cls,
        settings: Optional[Settings] = None,
        repository: Optional[SnapshotRepository] = None,
        gateway: Optional[MarketDataGateway] = None
    ) -> "ZenWealthApp":
        """
        Build the app from persisted state and seeded fallback rates.

        A missing or corrupt snapshot starts an empty portfolio.
        """
        settings = settings or get_settings()
        if repository is None:
            engine = create_db_engine(settings.database_url, settings.db_echo)
            repository = SnapshotRepository(engine, settings.storage_key)

        result = repository.load()
        if result.status == LoadStatus.CORRUPT:
            logger.warning(f"Starting with an empty portfolio: {result.error}")

        store = PortfolioStore(repository=repository, assets=result.assets)
        coordinator = RefreshCoordinator(
            store=store,
            gateway=gateway or MarketDataGateway(),
            rates=ExchangeRate.fallback(settings.fallback_usd_to_twd, settings.fallback_jpy_to_twd),
            timeout=settings.gateway_timeout_seconds
        )
        logger.info(f"ZenWealth ready with {len(store)} assets ({result.status.value})")
        return cls(store, coordinator, load_status=result.status)

    async def startup(self) -> RefreshReport:
        """Run the initial refresh, as on first render."""
        return await self.start_refresh()

    # ==================== Read model ====================
    @property
    def assets(self) -> List[Asset]:
        return self.store.snapshot()

    @property
    def rates(self) -> ExchangeRate:
        return self.coordinator.rates

    @property
    def is_refreshing(self) -> bool:
        return self.coordinator.is_refreshing

    @property
    def is_amount_hidden(self) -> bool:
        return self._amount_hidden

    def summary(self) -> PortfolioSummary:
        return summarize(self.assets, self.rates)

    def distribution(self) -> List[TypeAllocation]:
        return distribution_by_type(self.assets, self.rates)

    def grouped_assets(self) -> Dict[AssetType, List[Asset]]:
        return group_by_type(self.assets)

    def display_total(self) -> str:
        """Total value as shown on the summary card (masked when hidden)."""
        return format_amount(self.summary().total_value, hidden=self._amount_hidden)

    # ==================== Mutations ====================
    def add_asset(self, draft: AssetDraft) -> Asset:
        return self.store.add(draft)

    def edit_asset(self, asset_id: str, patch: Union[AssetDraft, Mapping[str, Any]]) -> Optional[Asset]:
        return self.store.edit(asset_id, patch)

    def delete_asset(self, asset_id: str) -> bool:
        return self.store.delete(asset_id)

    async def start_refresh(self) -> RefreshReport:
        return await self.coordinator.start_refresh()

    def toggle_amount_visibility(self) -> bool:
        """Flip the masked-amounts flag. Presentation only; returns the new state."""
        self._amount_hidden = not self._amount_hidden
        return self._amount_hidden


def configure_logging(settings: Optional[Settings] = None):
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)


async def _run_once():
    app = ZenWealthApp.bootstrap()
    report = await app.startup()
    summary = app.summary()
    logger.info(
        f"Total {format_amount(summary.total_value)} {summary.base_currency} "
        f"across {summary.asset_count} assets (refresh: {report.outcome.value})"
    )
    for allocation in app.distribution():
        logger.info(f"  {allocation.label}: {allocation.weight:.1%}")


if __name__ == "__main__":
    load_dotenv()
    configure_logging()
    asyncio.run(_run_once())
