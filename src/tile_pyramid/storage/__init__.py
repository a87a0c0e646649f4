"""
Storage Module

Record store collaborators. ``create_store`` picks the backend from the
configured database URL: ``memory://`` for the in-process store, anything
else is handed to SQLAlchemy.
"""

from .base_store import RecordStore
from .memory_store import MemoryRecordStore
from .sql_store import SqlRecordStore

MEMORY_URL = "memory://"


def create_store(config, metrics_collector=None) -> RecordStore:
    """Build the record store described by ``config.database``."""
    if config.database.url == MEMORY_URL:
        return MemoryRecordStore(metrics_collector=metrics_collector)
    return SqlRecordStore.from_config(config, metrics_collector=metrics_collector)


__all__ = [
    "RecordStore",
    "MemoryRecordStore",
    "SqlRecordStore",
    "create_store",
    "MEMORY_URL"
]
