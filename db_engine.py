"""
Database engine management for ZenWealth.
Backs the local key-value store with SQLModel on SQLite.
Features Write-Ahead Logging (WAL) mode so snapshot writes stay durable.
"""

from sqlmodel import SQLModel, create_engine
from sqlalchemy.engine import Engine
from typing import Optional
import logging

from config import get_settings

logger = logging.getLogger(__name__)

# Global engine instance
_engine: Optional[Engine] = None


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine for the given URL with WAL mode enabled."""
    engine = create_engine(
        database_url,
        echo=echo,
        connect_args={
            "check_same_thread": False,  # Allow use across threads
        }
    )
    _enable_wal_mode(engine)
    return engine


def get_engine() -> Engine:
    """Get or create the configured database engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_db_engine(settings.database_url, settings.db_echo)
    return _engine


def _enable_wal_mode(engine: Engine):
    """Enable SQLite WAL mode for durable, non-blocking snapshot writes."""
    try:
        with engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")
            # Set busy timeout to 5 seconds to handle concurrent access
            conn.exec_driver_sql("PRAGMA busy_timeout=5000")
            logger.info("SQLite WAL mode enabled")
    except Exception as e:
        logger.warning(f"Could not enable WAL mode: {e}")


def init_db(engine: Optional[Engine] = None) -> Engine:
    """Initialize the database and create all tables."""
    from models import StorageEntry  # noqa: F401  (registers the table)

    engine = engine or get_engine()
    SQLModel.metadata.create_all(engine)
    logger.info("Database initialized")
    return engine
