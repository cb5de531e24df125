"""Shared test fixtures for tracker SDK tests."""

from __future__ import annotations

import pytest

from tracker_sdk.config import TrackerConfig
from tracker_sdk.connectivity import ManualConnectivity
from tracker_sdk.offline_queue import PersistentQueue
from tracker_sdk.reporter import Reporter
from tracker_sdk.storage import MemoryStorage


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest.fixture
def storage() -> MemoryStorage:
    """In-memory storage for the offline queue."""
    return MemoryStorage()


@pytest.fixture
def queue(storage) -> PersistentQueue:
    """Persisted queue backed by memory storage."""
    return PersistentQueue(storage=storage)


# =============================================================================
# Pipeline Fixtures
# =============================================================================

@pytest.fixture
def connectivity() -> ManualConnectivity:
    """Connectivity signal starting online."""
    return ManualConnectivity(online=True)


@pytest.fixture
def make_reporter(queue, connectivity):
    """Factory for reporters with fast retries and a long interval."""
    def factory(transport, **kwargs) -> Reporter:
        options = {
            "batch_size": 10,
            "report_interval_seconds": 60.0,
            "max_retries": 3,
            "retry_backoff_seconds": 0.01,
            "connectivity": connectivity,
        }
        options.update(kwargs)
        reporter = Reporter(transport=transport, queue=queue, **options)
        return reporter

    return factory


@pytest.fixture
def config() -> TrackerConfig:
    """Valid config using memory storage."""
    return TrackerConfig(
        report_url="https://collect.example.com/events",
        app_id="test-app",
        storage_type="memory",
        retry_backoff=10,
        auto_track_error=False,
    )
