"""
StorageEntry model - one key/value row in the local durable store.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, DateTime
from sqlmodel import SQLModel, Field


def utc_now() -> datetime:
    """Timezone-aware current time for storage timestamps."""
    return datetime.now(timezone.utc)


class StorageEntry(SQLModel, table=True):
    """A namespaced key holding a JSON-encoded payload."""
    __tablename__ = "storage_entry"

    key: str = Field(primary_key=True)  # e.g., "zenwealth_assets"
    value: str  # JSON text
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
