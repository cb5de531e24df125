"""Durable queue for events that could not be delivered."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from .events import EventRecord
from .storage.base import KeyValueStorage, PersistenceError


logger = logging.getLogger(__name__)

DEFAULT_KEY = "offline_events"


@dataclass
class PersistentQueue:
    """
    FIFO of undelivered events kept under one storage key.

    The whole queue is stored as a single JSON array. Every operation is a
    synchronous read-modify-write, so on a single event loop there is exactly
    one writer and append/drain never interleave. Two processes sharing the
    same store are not coordinated.

    Storage failures are logged and swallowed: a failed write means the
    events being written are lost. Events already persisted are never
    overwritten because of a failed read.
    """
    storage: KeyValueStorage
    key: str = DEFAULT_KEY

    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        self._stats = {
            "appended": 0,
            "drained": 0,
            "write_errors": 0,
            "read_errors": 0,
        }

    def append(self, events: Iterable[EventRecord]) -> bool:
        """
        Add events after everything already persisted.

        Returns False if the events could not be stored (they are lost).
        A failed read of the existing queue also returns False, and the
        store is left untouched.
        """
        events = list(events)
        if not events:
            return True
        existing = self._load()
        if existing is None:
            return self._skip_write(len(events))
        return self._write(existing + [e.to_dict() for e in events], len(events))

    def prepend(self, events: Iterable[EventRecord]) -> bool:
        """
        Add events ahead of everything already persisted.

        Used when a replay fails so the replayed events keep their place
        in front of events persisted while the replay was in flight.
        """
        events = list(events)
        if not events:
            return True
        existing = self._load()
        if existing is None:
            return self._skip_write(len(events))
        return self._write([e.to_dict() for e in events] + existing, len(events))

    def drain_all(self) -> list[EventRecord]:
        """Return every persisted event and clear the store."""
        raw = self._read()
        if not raw:
            return []

        try:
            self.storage.remove(self.key)
        except PersistenceError as e:
            # Leave the store as it was; nothing is handed out twice
            logger.error(f"Failed to clear persisted queue: {e}")
            self._stats["write_errors"] += 1
            return []

        events = self._decode(raw)
        self._stats["drained"] += len(events)
        logger.debug(f"Drained {len(events)} persisted events")
        return events

    def peek(self) -> list[EventRecord]:
        """Return the persisted events without clearing them."""
        return self._decode(self._read())

    def __len__(self) -> int:
        return len(self._read())

    def _read(self) -> list[dict[str, Any]]:
        raw = self._load()
        return [] if raw is None else raw

    def _load(self) -> list[dict[str, Any]] | None:
        """Persisted records, [] when absent, None when the read failed."""
        try:
            value = self.storage.get(self.key)
        except PersistenceError as e:
            logger.error(f"Failed to read persisted queue: {e}")
            self._stats["read_errors"] += 1
            return None

        if value is None:
            return []
        if not isinstance(value, list):
            logger.error(f"Persisted queue is corrupt (got {type(value).__name__}), ignoring it")
            self._stats["read_errors"] += 1
            return []
        return value

    def _write(self, raw: list[dict[str, Any]], added: int) -> bool:
        try:
            self.storage.set(self.key, raw)
        except PersistenceError as e:
            logger.error(f"Failed to persist {added} events, dropping them: {e}")
            self._stats["write_errors"] += 1
            return False

        self._stats["appended"] += added
        return True

    def _skip_write(self, added: int) -> bool:
        # Writing now would replace records we could not read
        logger.error(f"Persisted queue unreadable, dropping {added} events instead of overwriting it")
        self._stats["write_errors"] += 1
        return False

    def _decode(self, raw: list[dict[str, Any]]) -> list[EventRecord]:
        events = []
        for item in raw:
            try:
                events.append(EventRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Skipping unreadable persisted event: {e}")
                self._stats["read_errors"] += 1
        return events

    @property
    def stats(self) -> dict:
        """Get queue statistics."""
        return {
            **self._stats,
            "pending": len(self),
        }
