"""
Snapshot Repository - durable key-value persistence for the asset collection.
The whole portfolio lives under one namespaced key as a JSON array.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from config import get_settings
from db_engine import get_engine, init_db
from exceptions import PersistenceCorrupt
from models import Asset, StorageEntry, utc_now

logger = logging.getLogger(__name__)

# Wire names kept compatible with the browser snapshots
_WIRE_TIMESTAMP = "updatedAt"


class LoadStatus(str, Enum):
    LOADED = "loaded"
    EMPTY = "empty"
    CORRUPT = "corrupt"


@dataclass
class LoadResult:
    """Outcome of reading the stored snapshot. ``assets`` is empty unless LOADED."""
    status: LoadStatus
    assets: List[Asset] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != LoadStatus.CORRUPT


def encode_assets(assets: Sequence[Asset]) -> str:
    """Serialize assets to the stored JSON array."""
    records = []
    for asset in assets:
        record = asset.model_dump(mode="json")
        record[_WIRE_TIMESTAMP] = record.pop("updated_at")
        records.append(record)
    return json.dumps(records, ensure_ascii=False)


def decode_assets(payload: str) -> List[Asset]:
    """
    Parse the stored JSON array back into assets.

    Raises:
        PersistenceCorrupt: if the payload is not a JSON array of valid records
    """
    try:
        records = json.loads(payload)
    except (json.JSONDecodeError, TypeError) as e:
        raise PersistenceCorrupt(f"Snapshot is not valid JSON: {e}") from e

    if not isinstance(records, list):
        raise PersistenceCorrupt(f"Snapshot must be a JSON array, got {type(records).__name__}")

    assets = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise PersistenceCorrupt(f"Record {index} is not an object")
        data = dict(record)
        if _WIRE_TIMESTAMP in data:
            data["updated_at"] = data.pop(_WIRE_TIMESTAMP)
        try:
            assets.append(Asset.model_validate(data))
        except ValidationError as e:
            raise PersistenceCorrupt(f"Record {index} failed validation: {e}") from e
    return assets


class SnapshotRepository:
    """Repository for the write-through portfolio snapshot."""

    def __init__(self, engine: Optional[Engine] = None, key: Optional[str] = None):
        """
        Args:
            engine: Database engine (defaults to the configured one)
            key: Namespace key (defaults to Settings.storage_key)
        """
        self.engine = init_db(engine or get_engine())
        self.key = key or get_settings().storage_key

    def save(self, assets: Sequence[Asset]) -> None:
        """Replace the stored snapshot with ``assets``."""
        payload = encode_assets(assets)
        with Session(self.engine) as session:
            entry = session.get(StorageEntry, self.key)
            if entry:
                entry.value = payload
                entry.updated_at = utc_now()
            else:
                entry = StorageEntry(key=self.key, value=payload)
            session.add(entry)
            session.commit()
        logger.debug(f"Saved {len(assets)} assets under '{self.key}'")

    def load(self) -> LoadResult:
        """Read the stored snapshot. Never raises on a bad payload or unreadable storage."""
        try:
            with Session(self.engine) as session:
                entry = session.get(StorageEntry, self.key)
                payload = entry.value if entry else None
        except SQLAlchemyError as e:
            logger.error(f"Could not read snapshot under '{self.key}', starting empty: {e}")
            return LoadResult(status=LoadStatus.CORRUPT, error=str(e))

        if payload is None:
            logger.info(f"No stored snapshot under '{self.key}'")
            return LoadResult(status=LoadStatus.EMPTY)

        try:
            assets = decode_assets(payload)
        except PersistenceCorrupt as e:
            logger.error(f"Stored snapshot under '{self.key}' is corrupt, starting empty: {e}")
            return LoadResult(status=LoadStatus.CORRUPT, error=str(e))

        logger.info(f"Loaded {len(assets)} assets from '{self.key}'")
        return LoadResult(status=LoadStatus.LOADED, assets=assets)

    def clear(self) -> bool:
        """Delete the stored snapshot. Returns True if one existed."""
        with Session(self.engine) as session:
            entry = session.get(StorageEntry, self.key)
            if entry:
                session.delete(entry)
                session.commit()
                return True
            return False
