"""JSONL sink - one received event per line."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, TextIO

from .base import CollectorSink


class FileSink(CollectorSink):
    """
    Appends accepted events to a JSON-lines file.

    The file is opened on start() (or lazily on the first write) and
    flushed after every batch, so a reader tailing it sees whole batches.
    """

    def __init__(self, path: str = "./collected/events.jsonl", encoding: str = "utf-8"):
        self.path = Path(path)
        self.encoding = encoding
        self._handle: TextIO | None = None
        self._written = 0

    async def start(self) -> None:
        if self._handle is not None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open("a", encoding=self.encoding)

    async def stop(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    async def write(self, events: list[dict[str, Any]]) -> None:
        if self._handle is None:
            await self.start()

        lines = "".join(json.dumps(event, default=str) + "\n" for event in events)
        self._handle.write(lines)
        self._handle.flush()
        self._written += len(events)

    async def health_check(self) -> bool:
        return self._handle is not None and not self._handle.closed

    @property
    def written(self) -> int:
        """Events written since creation."""
        return self._written
