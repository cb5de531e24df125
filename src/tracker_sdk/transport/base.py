"""Base transport interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ..events import EventRecord, now_ms


class TransportError(Exception):
    """Raised when a batch could not be delivered to the collector."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def batch_body(events: list[EventRecord]) -> dict[str, Any]:
    """Wire body for one batch: the events plus the send time."""
    return {
        "events": [event.to_dict() for event in events],
        "timestamp": now_ms(),
    }


class NetworkTransport(ABC):
    """
    Abstract base class for transports.

    A transport makes exactly one delivery attempt per call and holds no
    retry or offline policy; that lives in the DeliveryEngine.
    """

    @abstractmethod
    async def send(self, events: list[EventRecord]) -> None:
        """
        Deliver a batch of events.

        Raises:
            TransportError: If the collector did not accept the batch
        """
        ...

    async def start(self) -> None:
        """Initialize the transport (called on startup)."""
        pass

    async def stop(self) -> None:
        """Clean up the transport (called on shutdown)."""
        pass
