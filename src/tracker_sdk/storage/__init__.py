"""Key/value storage facades - durable homes for queued events and user info."""

from __future__ import annotations

import logging
from pathlib import Path

from .base import KeyValueStorage, PersistenceError
from .memory import MemoryStorage
from .sqlite import SqliteStorage


logger = logging.getLogger(__name__)

__all__ = [
    "KeyValueStorage",
    "PersistenceError",
    "MemoryStorage",
    "SqliteStorage",
    "create_storage",
]


def create_storage(
    storage_type: str = "sqlite",
    prefix: str = "",
    path: str | Path = "tracker.db",
) -> KeyValueStorage:
    """
    Create a storage facade.

    Falls back to MemoryStorage when the durable medium can not be opened,
    so tracking keeps working (without persistence) on read-only hosts.
    """
    if storage_type == "sqlite":
        storage = SqliteStorage(db_path=path, prefix=prefix)
        try:
            storage.connect()
            return storage
        except PersistenceError as e:
            logger.warning(f"SQLite storage not available, falling back to memory: {e}")
    elif storage_type != "memory":
        logger.warning(f"Unknown storage type {storage_type!r}, using memory")

    return MemoryStorage(prefix=prefix)
