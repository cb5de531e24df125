"""Event sources - producers that feed the reporter."""

from .base import EventSourceBase
from .errors import ErrorMonitor
from .performance import PerformanceMonitor

__all__ = [
    "EventSourceBase",
    "ErrorMonitor",
    "PerformanceMonitor",
]
