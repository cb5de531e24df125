"""Tracker SDK - batched, retrying, offline-tolerant event delivery."""

from .batcher import BatchScheduler, FlushState
from .config import CollectorConfig, ConfigurationError, TrackerConfig
from .connectivity import (
    AlwaysOnline,
    ConnectivitySignal,
    ConnectivityState,
    ManualConnectivity,
    OfflineCoordinator,
)
from .delivery import DeliveryEngine, DeliveryOutcome
from .events import EventRecord, EventType
from .monitors import ErrorMonitor, EventSourceBase, PerformanceMonitor
from .offline_queue import PersistentQueue
from .reporter import EventSource, Reporter, create_reporter
from .storage import KeyValueStorage, MemoryStorage, PersistenceError, SqliteStorage, create_storage
from .tracker import Tracker, create_tracker
from .transport import ConsoleTransport, HttpTransport, NetworkTransport, TransportError

__all__ = [
    "AlwaysOnline",
    "BatchScheduler",
    "CollectorConfig",
    "ConfigurationError",
    "ConnectivitySignal",
    "ConnectivityState",
    "ConsoleTransport",
    "DeliveryEngine",
    "DeliveryOutcome",
    "ErrorMonitor",
    "EventRecord",
    "EventSource",
    "EventSourceBase",
    "EventType",
    "FlushState",
    "HttpTransport",
    "KeyValueStorage",
    "ManualConnectivity",
    "MemoryStorage",
    "NetworkTransport",
    "OfflineCoordinator",
    "PerformanceMonitor",
    "PersistenceError",
    "PersistentQueue",
    "Reporter",
    "SqliteStorage",
    "Tracker",
    "TransportError",
    "TrackerConfig",
    "create_reporter",
    "create_storage",
    "create_tracker",
]
