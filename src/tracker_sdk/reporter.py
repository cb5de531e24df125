"""Reporter - public surface of the delivery pipeline."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping, Protocol

from .batcher import BatchScheduler
from .config import TrackerConfig
from .connectivity import AlwaysOnline, ConnectivitySignal, OfflineCoordinator
from .delivery import DeliveryEngine
from .events import EventRecord, EventType
from .offline_queue import PersistentQueue
from .storage import KeyValueStorage, create_storage
from .transport.base import NetworkTransport
from .transport.http import HttpTransport


logger = logging.getLogger(__name__)


class EventSource(Protocol):
    """Producer of events (error monitor, performance monitor, ...)."""

    def subscribe(self, callback: Callable[[EventRecord], None]) -> None: ...

    def unsubscribe(self, callback: Callable[[EventRecord], None]) -> None: ...


class Reporter:
    """
    Facade over scheduler, delivery engine, persisted queue and
    connectivity coordinator.

    Producers call add()/track(); neither ever raises because of delivery
    problems. All pipeline work happens on the event loop the reporter was
    started on; add() calls from other threads are handed over to it.
    """

    def __init__(
        self,
        transport: NetworkTransport,
        queue: PersistentQueue,
        batch_size: int = 10,
        report_interval_seconds: float = 5.0,
        max_queue_size: int = 1000,
        max_retries: int = 3,
        retry_backoff_seconds: float = 1.0,
        connectivity: ConnectivitySignal | None = None,
        replay_on_start: bool = True,
    ):
        self.transport = transport
        self.queue = queue
        self.connectivity = connectivity if connectivity is not None else AlwaysOnline()
        self.replay_on_start = replay_on_start

        self.engine = DeliveryEngine(
            transport=transport,
            queue=queue,
            max_retries=max_retries,
            retry_backoff_seconds=retry_backoff_seconds,
        )
        self.coordinator = OfflineCoordinator(
            signal=self.connectivity,
            engine=self.engine,
            queue=queue,
        )
        self.engine.is_online = self.coordinator.is_online

        self.scheduler = BatchScheduler(
            deliver=self.engine.send,
            batch_size=batch_size,
            report_interval_seconds=report_interval_seconds,
            max_queue_size=max_queue_size,
        )

        self._sources: list[EventSource] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._started = False
        self._destroyed = False

    def start(self) -> None:
        """
        Bind to the running loop and start listening for connectivity.

        If online and events survived from an earlier run, they are
        replayed in the background. Called lazily by the first add().
        """
        if self._started or self._destroyed:
            return

        self._loop = asyncio.get_running_loop()
        self.coordinator.attach()
        self._started = True

        if self.replay_on_start and self.coordinator.is_online() and len(self.queue) > 0:
            self.coordinator.schedule_replay()

    def add(self, event: EventRecord) -> None:
        """Queue an event for delivery."""
        if self._destroyed:
            logger.debug(f"Reporter destroyed, ignoring event {event.id}")
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None and (self._loop is None or running is self._loop):
            self._add_on_loop(event)
            return

        if self._loop is None or self._loop.is_closed():
            logger.warning(f"Reporter has no event loop, dropping event {event.id}")
            return

        self._loop.call_soon_threadsafe(self._add_on_loop, event)

    def _add_on_loop(self, event: EventRecord) -> None:
        if self._destroyed:
            return
        if not self._started:
            self.start()
        self.scheduler.add(event)

    def track(
        self,
        event_type: EventType | str,
        data: Mapping[str, Any] | None = None,
    ) -> EventRecord:
        """Create an event from type and payload and queue it."""
        event = EventRecord.create(event_type, data)
        self.add(event)
        return event

    async def flush(self) -> None:
        """Send queued events now."""
        if self._destroyed:
            return
        if not self._started:
            self.start()
        await self.scheduler.flush()

    def subscribe(self, source: EventSource) -> None:
        """Feed events from a source into add()."""
        source.subscribe(self.add)
        self._sources.append(source)

    def unsubscribe(self, source: EventSource) -> None:
        if source in self._sources:
            source.unsubscribe(self.add)
            self._sources.remove(source)

    async def destroy(self) -> None:
        """
        Tear the pipeline down.

        Detaches sources and the connectivity listener, cancels the timer and
        any retry backoff, then makes one best-effort delivery attempt per
        remaining in-memory batch. Whatever fails is persisted for the next
        run; nothing is retried or tracked after this returns.
        """
        if self._destroyed:
            return
        self._destroyed = True

        for source in list(self._sources):
            self.unsubscribe(source)

        self.coordinator.detach()
        self.engine.close()
        self.scheduler.close()

        try:
            await self.scheduler.drain()
            await self.coordinator.wait_replay()
        finally:
            await self.transport.stop()

        logger.info(f"Reporter destroyed. Stats: {self.stats}")

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def stats(self) -> dict:
        """Get pipeline statistics."""
        return {
            "scheduler": self.scheduler.stats,
            "delivery": self.engine.stats,
            "queue": self.queue.stats,
            "connectivity": self.coordinator.stats,
        }


def create_reporter(
    config: TrackerConfig,
    transport: NetworkTransport | None = None,
    connectivity: ConnectivitySignal | None = None,
    storage: KeyValueStorage | None = None,
) -> Reporter:
    """
    Build a Reporter from config.

    Raises:
        ConfigurationError: If the config has no usable delivery path
    """
    config.validate()

    if storage is None:
        storage = create_storage(config.storage_type, prefix="", path=config.storage_path)
    if transport is None:
        transport = HttpTransport(
            url=config.report_url,
            headers=dict(config.headers),
            timeout=config.request_timeout,
        )

    return Reporter(
        transport=transport,
        queue=PersistentQueue(storage=storage, key=config.offline_key),
        batch_size=config.batch_size,
        report_interval_seconds=config.report_interval_seconds,
        max_queue_size=config.max_queue_size,
        max_retries=config.max_retries,
        retry_backoff_seconds=config.retry_backoff_seconds,
        connectivity=connectivity,
    )
