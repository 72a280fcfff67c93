"""
Record stores for Fleet Relay
"""

from .base import RecordStore, VersionToken
from .memory import InMemoryRecordStore
from .database import DatabaseRecordStore

from ..core.config import RelayConfig


def create_record_store(config: RelayConfig) -> RecordStore:
    """Build the record store selected by configuration"""
    if config.store_backend == "database":
        return DatabaseRecordStore.from_url(config.database_url, echo=config.debug_mode)
    return InMemoryRecordStore()


__all__ = [
    "RecordStore",
    "VersionToken",
    "InMemoryRecordStore",
    "DatabaseRecordStore",
    "create_record_store",
]
