"""Shared plumbing for event sources."""

from __future__ import annotations

import logging
from typing import Callable

from ..events import EventRecord


logger = logging.getLogger(__name__)


class EventSourceBase:
    """
    Keeps a list of subscribers and fans events out to them.

    A failing subscriber is logged and skipped; it never breaks the
    producer or the other subscribers.
    """

    def __init__(self):
        self._subscribers: list[Callable[[EventRecord], None]] = []

    def subscribe(self, callback: Callable[[EventRecord], None]) -> None:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[EventRecord], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _emit(self, event: EventRecord) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Event subscriber error: {e}")
