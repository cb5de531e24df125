"""Collector sinks - destinations for received events."""

from .base import CollectorSink
from .console import ConsoleSink
from .file import FileSink

__all__ = [
    "CollectorSink",
    "ConsoleSink",
    "FileSink",
]
