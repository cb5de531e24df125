"""Console sink for development/debugging."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from typing import Any

from .base import CollectorSink


@dataclass
class ConsoleSink(CollectorSink):
    """Sink that prints every received event, one per line."""
    # Output destination
    stream: str = "stdout"  # stdout | stderr

    # Output format
    format: str = "json"  # json | compact

    # Prefix for each line
    prefix: str = "[COLLECTOR] "

    async def write(self, events: list[dict[str, Any]]) -> None:
        out = sys.stdout if self.stream == "stdout" else sys.stderr

        for event in events:
            if self.format == "compact":
                line = f"{event.get('timestamp')} {event.get('type')} {event.get('id')}"
            else:
                line = json.dumps(event, default=str)
            print(f"{self.prefix}{line}", file=out)
