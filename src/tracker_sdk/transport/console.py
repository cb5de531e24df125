"""Dry-run transport - prints what would have been POSTed."""

from __future__ import annotations

import json
import logging
import sys
from typing import TextIO

from ..events import EventRecord
from .base import NetworkTransport, batch_body


logger = logging.getLogger(__name__)


class ConsoleTransport(NetworkTransport):
    """
    Writes each batch to a text stream instead of the network.

    By default one line per batch holds the exact JSON body HttpTransport
    would send. With ``compact=True`` each event gets a short summary line
    instead. Never fails, so nothing ends up in the persisted queue.
    """

    def __init__(self, stream: TextIO | None = None, compact: bool = False, prefix: str = "[TRACKER] "):
        self.stream = stream
        self.compact = compact
        self.prefix = prefix
        self.batches_sent = 0

    async def send(self, events: list[EventRecord]) -> None:
        # Resolved per call so a redirected sys.stdout is honoured
        out = self.stream if self.stream is not None else sys.stdout

        if self.compact:
            lines = [f"{self.prefix}{e.timestamp} {e.type.value} {e.id}" for e in events]
        else:
            lines = [self.prefix + json.dumps(batch_body(events), default=str)]

        out.write("\n".join(lines) + "\n")
        out.flush()
        self.batches_sent += 1
        logger.debug(f"Printed batch of {len(events)} events")
