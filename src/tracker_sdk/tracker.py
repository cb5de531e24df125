"""Tracker - application-facing entry point."""

from __future__ import annotations

import asyncio
import logging
import platform
import random
from typing import Any, Mapping
from urllib.parse import urlparse

from .config import TrackerConfig
from .connectivity import ConnectivitySignal
from .events import EventRecord, EventType
from .monitors import ErrorMonitor, PerformanceMonitor
from .reporter import Reporter, create_reporter
from .storage import KeyValueStorage, PersistenceError, create_storage
from .transport.base import NetworkTransport


logger = logging.getLogger(__name__)

USER_KEY = "user"
SDK_VERSION = "0.1.0"


def runtime_context() -> dict[str, str]:
    """Describe the process sending events, the way a browser user agent would."""
    runtime = f"{platform.python_implementation()}/{platform.python_version()}"
    system = f"{platform.system()} {platform.release()}".strip() or "unknown"
    return {
        "sdk_version": SDK_VERSION,
        "user_agent": f"tracker-sdk/{SDK_VERSION} {runtime} ({system})",
    }


class Tracker:
    """
    Wires config, monitors, user identity and the reporter together.

    Every event goes through sampling and enrichment (runtime description,
    app id, stored user info) before it reaches the reporter. Monitor events
    take the same path.

    The transport, connectivity signal and storage can be injected; by
    default they are built from the config.
    """

    def __init__(
        self,
        transport: NetworkTransport | None = None,
        connectivity: ConnectivitySignal | None = None,
        storage: KeyValueStorage | None = None,
        queue_storage: KeyValueStorage | None = None,
    ):
        self._transport = transport
        self._connectivity = connectivity
        self._storage = storage
        self._queue_storage = queue_storage

        self.config: TrackerConfig | None = None
        self.reporter: Reporter | None = None
        self.error_monitor: ErrorMonitor | None = None
        self.performance_monitor: PerformanceMonitor | None = None
        self._initialized = False
        self._context = runtime_context()

    def init(self, config: TrackerConfig | Mapping[str, Any]) -> None:
        """
        Configure and start tracking.

        Raises:
            ConfigurationError: If the config has no usable delivery path
        """
        if self._initialized:
            logger.warning("Tracker has already been initialized")
            return

        if not isinstance(config, TrackerConfig):
            config = TrackerConfig.from_dict(dict(config))
        config.validate()
        self.config = config

        if config.debug:
            logging.getLogger("tracker_sdk").setLevel(logging.DEBUG)

        if self._storage is None:
            self._storage = create_storage(
                config.storage_type, prefix=config.storage_prefix, path=config.storage_path
            )
        if self._queue_storage is None:
            self._queue_storage = create_storage(
                config.storage_type, prefix="", path=config.storage_path
            )

        self.reporter = create_reporter(
            config,
            transport=self._transport,
            connectivity=self._connectivity,
            storage=self._queue_storage,
        )

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if config.auto_track_performance:
            self.performance_monitor = PerformanceMonitor()
            self.performance_monitor.subscribe(self._on_source_event)

        if config.auto_track_error:
            self.error_monitor = ErrorMonitor(loop=loop)
            self.error_monitor.subscribe(self._on_source_event)
            self.error_monitor.attach()

        if loop is not None:
            self.reporter.start()

        self._initialized = True

        logger.debug(f"Tracker initialized with config: {config}")

    @property
    def initialized(self) -> bool:
        return self._initialized

    def _should_sample(self) -> bool:
        return random.random() < self.config.sampling_rate

    def _enrich(self, data: Mapping[str, Any]) -> dict[str, Any]:
        # Caller fields win over the runtime description
        enriched = {**self._context, **data}
        if self.config.app_id:
            enriched["app_id"] = self.config.app_id
        enriched.update(self.get_user())
        return enriched

    def track(
        self,
        event_type: EventType | str,
        data: Mapping[str, Any] | None = None,
    ) -> EventRecord | None:
        """
        Track an event.

        Returns the queued record, or None if the tracker is not initialized
        or the event was sampled out.
        """
        if not self._initialized:
            logger.error("Tracker not initialized")
            return None

        if not self._should_sample():
            return None

        event = EventRecord.create(event_type, self._enrich(data or {}))
        self.reporter.add(event)

        logger.debug(f"Event tracked: {event.type.value} {event.id}")
        return event

    def _on_source_event(self, event: EventRecord) -> None:
        if not self._initialized or not self._should_sample():
            return
        # Keep the monitor's id and timestamp, add enrichment
        self.reporter.add(EventRecord(
            id=event.id,
            type=event.type,
            timestamp=event.timestamp,
            data=self._enrich(event.data),
        ))

    def track_page_view(self, url: str, title: str | None = None, **extra: Any) -> EventRecord | None:
        """Track a page (or screen) view."""
        performance = self.performance_monitor.get_metrics() if self.performance_monitor else {}
        return self.track(EventType.PAGE_VIEW, {
            "url": url,
            "path": urlparse(url).path or "/",
            "title": title,
            "performance": performance,
            **extra,
        })

    def track_click(self, target: str, **attrs: Any) -> EventRecord | None:
        """Track an interaction with a UI element, identified by its path."""
        return self.track(EventType.CLICK, {"path": target, **attrs})

    def set_user(self, **info: Any) -> None:
        """Merge user info into the stored identity."""
        if self._storage is None:
            logger.error("Tracker not initialized")
            return
        try:
            self._storage.set(USER_KEY, {**self.get_user(), **info})
        except PersistenceError as e:
            logger.error(f"Failed to store user info: {e}")

    def get_user(self) -> dict[str, Any]:
        if self._storage is None:
            return {}
        try:
            return self._storage.get(USER_KEY) or {}
        except PersistenceError as e:
            logger.error(f"Failed to read user info: {e}")
            return {}

    def clear_user(self) -> None:
        if self._storage is None:
            return
        try:
            self._storage.remove(USER_KEY)
        except PersistenceError as e:
            logger.error(f"Failed to clear user info: {e}")

    async def flush(self) -> None:
        if self._initialized:
            await self.reporter.flush()

    async def destroy(self) -> None:
        """Stop monitors, flush and shut down the reporter, clear user data."""
        if not self._initialized:
            return
        self._initialized = False

        if self.error_monitor is not None:
            self.error_monitor.destroy()
        if self.performance_monitor is not None:
            self.performance_monitor.destroy()

        await self.reporter.destroy()

        try:
            self._storage.clear()
        except PersistenceError as e:
            logger.error(f"Failed to clear tracker storage: {e}")

        self._storage.close()
        self._queue_storage.close()


def create_tracker(**kwargs: Any) -> Tracker:
    """Create an uninitialized Tracker (see Tracker for injectable parts)."""
    return Tracker(**kwargs)
