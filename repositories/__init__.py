"""
Repositories package for ZenWealth.
Provides the data access layer for local persistence.
"""

from repositories.snapshot_repository import (
    SnapshotRepository,
    LoadResult,
    LoadStatus,
    encode_assets,
    decode_assets,
)

__all__ = [
    'SnapshotRepository',
    'LoadResult',
    'LoadStatus',
    'encode_assets',
    'decode_assets',
]
