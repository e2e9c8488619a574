"""
Portfolio store - the in-memory collection of holdings.
Single source of truth for readers; every change is written through to storage.
"""

import logging
import math
import uuid
from typing import Any, Dict, List, Mapping, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from models import Asset, AssetDraft, now_ms
from repositories import SnapshotRepository

logger = logging.getLogger(__name__)

# Fields a patch may change; id and updated_at are owned by the store
EDITABLE_FIELDS = ('type', 'symbol', 'name', 'shares', 'price', 'currency')


def new_asset_id() -> str:
    """Generate a collision-resistant asset id."""
    return uuid.uuid4().hex


class PortfolioStore:
    """
    Ordered collection of assets keyed by id.
    Mutated only through add, edit, delete and bulk_update_prices.
    """

    def __init__(self, repository: Optional[SnapshotRepository] = None, assets: Optional[List[Asset]] = None):
        """
        Args:
            repository: Snapshot repository for write-through (None keeps the store in memory)
            assets: Initial holdings, typically from a loaded snapshot
        """
        self.repository = repository
        self._assets: List[Asset] = list(assets or [])

    @classmethod
    def from_repository(cls, repository: SnapshotRepository) -> "PortfolioStore":
        """Create a store seeded from the persisted snapshot (empty if absent or corrupt)."""
        result = repository.load()
        return cls(repository=repository, assets=result.assets)

    # ==================== Reads ====================
    def snapshot(self) -> List[Asset]:
        """Copy of the current holdings in insertion order."""
        return list(self._assets)

    def get(self, asset_id: str) -> Optional[Asset]:
        for asset in self._assets:
            if asset.id == asset_id:
                return asset
        return None

    def __len__(self) -> int:
        return len(self._assets)

    def __iter__(self):
        return iter(self.snapshot())

    # ==================== Mutations ====================
    def add(self, draft: AssetDraft) -> Asset:
        """
        Append a new holding.

        Args:
            draft: Form payload; normalized per its type before storing

        Returns:
            The stored Asset with its new id

        Raises:
            InvalidAssetDraft: if the draft lacks the field its type requires
        """
        normalized = draft.normalized()
        asset = Asset(id=new_asset_id(), updated_at=now_ms(), **normalized.model_dump())
        self._assets.append(asset)
        logger.info(f"Added {asset.type.value} asset {asset.symbol} ({asset.id})")
        self._persist()
        return asset

    def edit(self, asset_id: str, patch: Union[AssetDraft, Mapping[str, Any]]) -> Optional[Asset]:
        """
        Merge ``patch`` into the holding with ``asset_id``.

        A full AssetDraft (form re-submit) is normalized first. A mapping may carry
        any subset of the editable fields; other keys are ignored.

        Returns:
            Updated Asset, or None if no holding has that id (nothing is written)
        """
        for index, current in enumerate(self._assets):
            if current.id != asset_id:
                continue

            if isinstance(patch, AssetDraft):
                changes: Dict[str, Any] = patch.normalized().model_dump()
            else:
                changes = {k: v for k, v in patch.items() if k in EDITABLE_FIELDS}

            updated = current.with_changes(**changes)
            self._assets[index] = updated
            logger.info(f"Edited asset {updated.symbol} ({asset_id})")
            self._persist()
            return updated

        logger.debug(f"Edit ignored, no asset with id {asset_id}")
        return None

    def delete(self, asset_id: str) -> bool:
        """Remove the holding with ``asset_id``. Absent ids are a no-op."""
        remaining = [asset for asset in self._assets if asset.id != asset_id]
        if len(remaining) == len(self._assets):
            logger.debug(f"Delete ignored, no asset with id {asset_id}")
            return False

        self._assets = remaining
        logger.info(f"Deleted asset {asset_id}")
        self._persist()
        return True

    def bulk_update_prices(self, price_map: Mapping[str, float]) -> int:
        """
        Reprice every holding whose symbol appears in ``price_map``.

        Holdings missing from the map keep their price and timestamp untouched,
        as do entries whose quoted price is not a positive number.

        Returns:
            Number of holdings repriced
        """
        stamp = now_ms()
        updated_count = 0
        repriced = []

        for asset in self._assets:
            new_price = price_map.get(asset.symbol)
            if not _is_usable_price(new_price):
                repriced.append(asset)
                continue
            repriced.append(asset.with_changes(price=float(new_price), updated_at=stamp))
            updated_count += 1

        if updated_count:
            self._assets = repriced
            logger.info(f"Repriced {updated_count} of {len(self._assets)} assets")
            self._persist()
        return updated_count

    def _persist(self):
        """Write the full collection through to storage."""
        if self.repository is None:
            return
        try:
            self.repository.save(self._assets)
        except SQLAlchemyError as e:
            # In-memory state stays authoritative; the next mutation retries the write
            logger.error(f"Failed to persist portfolio snapshot: {e}")


def _is_usable_price(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0
