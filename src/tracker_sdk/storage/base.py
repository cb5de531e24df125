"""Base key/value storage interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class PersistenceError(Exception):
    """Raised when the storage medium rejects a read or write."""
    pass


class KeyValueStorage(ABC):
    """
    Abstract base class for prefix-scoped key/value storage.

    Values are JSON-serializable objects. Every key is namespaced with
    ``prefix`` so several facades can share one medium without colliding.
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the stored value, or None if absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a value, replacing any previous one."""
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove a key (no-op if absent)."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove every key under this facade's prefix."""
        ...

    def close(self) -> None:
        """Release the underlying medium."""
        pass
