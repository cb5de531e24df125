"""Transports - how a batch physically reaches the collector."""

from .base import NetworkTransport, TransportError, batch_body
from .console import ConsoleTransport
from .http import HttpTransport

__all__ = [
    "NetworkTransport",
    "TransportError",
    "batch_body",
    "ConsoleTransport",
    "HttpTransport",
]
