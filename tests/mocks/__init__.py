"""Test doubles for transports and storage, plus event helpers."""

from .events import make_events, settle
from .storage import FailingStorage, FlakyStorage
from .transport import RecordingTransport

__all__ = ["FailingStorage", "FlakyStorage", "RecordingTransport", "make_events", "settle"]
