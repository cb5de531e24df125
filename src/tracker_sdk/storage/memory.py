"""In-memory storage, used when no durable medium is available."""

from __future__ import annotations

import copy
from typing import Any

from .base import KeyValueStorage


class MemoryStorage(KeyValueStorage):
    """
    Dict-backed storage.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store. Nothing survives the process.
    """

    def __init__(self, prefix: str = "", store: dict[str, Any] | None = None):
        super().__init__(prefix)
        # Passing a shared dict lets several facades see the same "medium"
        self._store = store if store is not None else {}

    def get(self, key: str) -> Any | None:
        value = self._store.get(self._key(key))
        return copy.deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        self._store[self._key(key)] = copy.deepcopy(value)

    def remove(self, key: str) -> None:
        self._store.pop(self._key(key), None)

    def clear(self) -> None:
        for key in [k for k in self._store if k.startswith(self.prefix)]:
            del self._store[key]
