"""Batch scheduler - accumulates events and decides when to flush."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

from .events import EventRecord


logger = logging.getLogger(__name__)


class FlushState(str, Enum):
    IDLE = "idle"
    FLUSHING = "flushing"


@dataclass
class BatchScheduler:
    """
    Accumulates events in memory and hands them off in batches.

    A flush starts when the queue reaches ``batch_size`` or when
    ``report_interval_seconds`` have passed since the first event landed in
    an idle queue. Only one flush runs at a time: a request that arrives
    while FLUSHING just marks the scheduler dirty, and the running flush
    takes another cycle to pick up the new events.

    Must be used from a single asyncio event loop.
    """
    # Receives each batch; normally DeliveryEngine.send
    deliver: Callable[[list[EventRecord]], Awaitable[Any]]

    # Batch configuration
    batch_size: int = 10
    report_interval_seconds: float = 5.0

    # Oldest events are dropped past this many
    max_queue_size: int = 1000

    # Internal state
    _queue: deque[EventRecord] = field(default_factory=deque, init=False)
    _state: FlushState = field(default=FlushState.IDLE, init=False)
    _dirty: bool = field(default=False, init=False)
    _timer: asyncio.TimerHandle | None = field(default=None, init=False)
    _flush_task: asyncio.Task | None = field(default=None, init=False)
    _closed: bool = field(default=False, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        self._stats = {
            "added": 0,
            "dropped": 0,
            "batches_flushed": 0,
            "events_flushed": 0,
            "flush_errors": 0,
        }

    def add(self, event: EventRecord) -> bool:
        """
        Queue an event (non-blocking).

        Returns False if the scheduler is closed and the event was ignored.
        """
        if self._closed:
            logger.debug(f"Scheduler closed, ignoring event {event.id}")
            return False

        if len(self._queue) >= self.max_queue_size:
            dropped = self._queue.popleft()
            self._stats["dropped"] += 1
            logger.warning(f"Event queue full ({self.max_queue_size}), dropped oldest event {dropped.id}")

        self._queue.append(event)
        self._stats["added"] += 1

        if len(self._queue) >= self.batch_size:
            # Threshold wins over the timer
            self._cancel_timer()
            self._request_flush()
        elif self._state is FlushState.IDLE and self._timer is None:
            self._arm_timer()

        return True

    async def flush(self) -> None:
        """Force a flush now, regardless of timer or threshold."""
        self._cancel_timer()
        task = self._request_flush()
        if task is not None:
            await asyncio.shield(task)

    async def drain(self) -> None:
        """
        Close the scheduler and deliver everything still in memory.

        Waits for an in-flight flush first, then hands over the remaining
        events batch by batch. Later add() calls are ignored.
        """
        self.close()

        if self._flush_task is not None:
            await asyncio.shield(self._flush_task)

        while self._queue:
            await self._deliver_batch(self._take_batch())

    def close(self) -> None:
        """Cancel the timer and stop accepting events."""
        self._closed = True
        self._cancel_timer()

    def _request_flush(self) -> asyncio.Task | None:
        if self._state is FlushState.FLUSHING:
            self._dirty = True
            return self._flush_task

        if not self._queue:
            return None

        self._state = FlushState.FLUSHING
        self._flush_task = asyncio.get_running_loop().create_task(self._flush_cycle())
        return self._flush_task

    async def _flush_cycle(self) -> None:
        try:
            while True:
                self._dirty = False
                await self._deliver_batch(self._take_batch())

                if self._closed:
                    break
                if self._queue and (self._dirty or len(self._queue) >= self.batch_size):
                    continue
                break
        finally:
            self._state = FlushState.IDLE
            self._flush_task = None
            if self._queue and not self._closed and self._timer is None:
                self._arm_timer()

    def _take_batch(self) -> list[EventRecord]:
        count = min(self.batch_size, len(self._queue))
        return [self._queue.popleft() for _ in range(count)]

    async def _deliver_batch(self, batch: list[EventRecord]) -> None:
        if not batch:
            return

        try:
            await self.deliver(batch)
            self._stats["batches_flushed"] += 1
            self._stats["events_flushed"] += len(batch)
        except Exception as e:
            logger.error(f"Failed to flush batch of {len(batch)} events: {e}")
            self._stats["flush_errors"] += 1

    def _arm_timer(self) -> None:
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.report_interval_seconds, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        if not self._closed:
            self._request_flush()

    @property
    def state(self) -> FlushState:
        return self._state

    @property
    def buffer_size(self) -> int:
        """Current in-memory queue length."""
        return len(self._queue)

    @property
    def stats(self) -> dict:
        """Get scheduler statistics."""
        return {
            **self._stats,
            "buffer_size": self.buffer_size,
            "state": self._state.value,
        }
