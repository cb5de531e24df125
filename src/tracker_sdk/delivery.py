"""Delivery engine - one batch, bounded retries, persisted on exhaustion."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from .events import EventRecord
from .offline_queue import PersistentQueue
from .transport.base import NetworkTransport, TransportError


logger = logging.getLogger(__name__)


class DeliveryOutcome(str, Enum):
    """Terminal state of one send() call."""
    DELIVERED = "delivered"  # Collector accepted the batch
    DEFERRED = "deferred"    # Batch is in the persisted queue
    LOST = "lost"            # Persisting failed too (logged)


@dataclass
class DeliveryEngine:
    """
    Delivers one batch at a time through a NetworkTransport.

    A failed attempt is retried up to ``max_retries`` times with linear
    backoff (``retry_backoff_seconds * attempt``). When retries run out the
    batch goes to the persisted queue unchanged; errors never reach the
    caller. If ``is_online`` reports offline, the batch is persisted without
    touching the network.

    close() wakes every pending backoff wait; batches cut short that way are
    persisted instead of retried.
    """
    transport: NetworkTransport
    queue: PersistentQueue

    max_retries: int = 3
    retry_backoff_seconds: float = 1.0

    # Connectivity probe; None means always online
    is_online: Callable[[], bool] | None = None

    # Internal state
    _closed: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    _waiting: int = field(default=0, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        self._stats = {
            "attempts": 0,
            "retries": 0,
            "batches_delivered": 0,
            "events_delivered": 0,
            "batches_deferred": 0,
            "batches_lost": 0,
        }

    async def send(
        self,
        batch: list[EventRecord],
        *,
        requeue_front: bool = False,
        max_retries: int | None = None,
    ) -> DeliveryOutcome:
        """
        Deliver a batch, retrying in-process, persisting on exhaustion.

        Args:
            batch: Events in delivery order
            requeue_front: Persist a failed batch ahead of the existing queue
            max_retries: Override the configured retry count for this call
        """
        if not batch:
            return DeliveryOutcome.DELIVERED

        if self.is_online is not None and not self.is_online():
            logger.debug(f"Offline, persisting {len(batch)} events without sending")
            return self._persist(batch, requeue_front)

        retries = self.max_retries if max_retries is None else max_retries
        attempt = 0

        while True:
            self._stats["attempts"] += 1
            try:
                await self.transport.send(batch)
            except TransportError as e:
                logger.warning(f"Report error (attempt {attempt + 1}): {e}")
            except Exception as e:
                logger.error(f"Transport raised unexpected error (attempt {attempt + 1}): {e}")
            else:
                self._stats["batches_delivered"] += 1
                self._stats["events_delivered"] += len(batch)
                return DeliveryOutcome.DELIVERED

            if attempt >= retries:
                break

            attempt += 1
            self._stats["retries"] += 1
            if not await self._backoff(self.retry_backoff_seconds * attempt):
                logger.info("Delivery engine closed during backoff, not retrying")
                break

        logger.error(f"Giving up on batch of {len(batch)} events after {attempt + 1} attempts")
        return self._persist(batch, requeue_front)

    async def _backoff(self, delay: float) -> bool:
        """Sleep before the next attempt. Returns False if closed meanwhile."""
        if self._closed.is_set():
            return False

        self._waiting += 1
        try:
            await asyncio.wait_for(self._closed.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        finally:
            self._waiting -= 1
        return False

    def _persist(self, batch: list[EventRecord], requeue_front: bool) -> DeliveryOutcome:
        stored = self.queue.prepend(batch) if requeue_front else self.queue.append(batch)
        if stored:
            self._stats["batches_deferred"] += 1
            return DeliveryOutcome.DEFERRED

        self._stats["batches_lost"] += 1
        return DeliveryOutcome.LOST

    def close(self) -> None:
        """Cancel pending backoff waits; later failures persist immediately."""
        self._closed.set()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def stats(self) -> dict:
        """Get delivery statistics."""
        return {
            **self._stats,
            "pending_backoffs": self._waiting,
        }
