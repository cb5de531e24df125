"""Where the collector puts accepted events."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class CollectorSink(ABC):
    """
    Destination for accepted batches.

    The collector hands over events as plain dicts, already validated and
    deduplicated. start()/stop() follow the app lifespan.
    """

    @abstractmethod
    async def write(self, events: list[dict[str, Any]]) -> None:
        """Store one accepted batch."""
        ...

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def health_check(self) -> bool:
        """Reported by GET /health."""
        return True
