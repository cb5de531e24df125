"""Performance monitor - named timings as performance events."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator

from ..events import EventRecord, EventType
from .base import EventSourceBase


class PerformanceMonitor(EventSourceBase):
    """
    Records named durations and emits one performance event per sample.

    Usage:
        with monitor.measure("load_catalog"):
            ...
        monitor.record("first_paint", 123.4)
    """

    def __init__(self):
        super().__init__()
        self._metrics: dict[str, float] = {}
        self._marks: dict[str, float] = {}

    @contextmanager
    def measure(self, name: str, **extra: Any) -> Iterator[None]:
        """Time the wrapped block; the sample is recorded even if it raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(name, (time.perf_counter() - start) * 1000, **extra)

    def mark(self, name: str) -> None:
        """Remember a start point for measure_since()."""
        self._marks[name] = time.perf_counter()

    def measure_since(self, mark: str, name: str | None = None, **extra: Any) -> float | None:
        """Record the time elapsed since mark(); None if the mark is unknown."""
        start = self._marks.pop(mark, None)
        if start is None:
            return None
        duration_ms = (time.perf_counter() - start) * 1000
        self.record(name or mark, duration_ms, **extra)
        return duration_ms

    def record(self, name: str, duration_ms: float, **extra: Any) -> EventRecord:
        """Store a sample and emit it."""
        self._metrics[name] = duration_ms
        event = EventRecord.create(EventType.PERFORMANCE, {
            "metric": name,
            "duration_ms": round(duration_ms, 3),
            **extra,
        })
        self._emit(event)
        return event

    def get_metrics(self) -> dict[str, float]:
        """Latest sample per metric name."""
        return dict(self._metrics)

    def destroy(self) -> None:
        self._subscribers.clear()
        self._marks.clear()
        self._metrics.clear()
