"""FastAPI application - development collection endpoint.

Receives batches POSTed by HttpTransport and writes them to a sink.
Delivery is at-least-once, so recently seen event ids are skipped.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, ValidationError

from ..config import CollectorConfig
from ..events import EventType
from .sinks import CollectorSink, ConsoleSink, FileSink


logger = logging.getLogger(__name__)


# Request/response models
class EventModel(BaseModel):
    id: str
    type: EventType
    timestamp: int
    data: dict[str, Any] = {}


class BatchRequest(BaseModel):
    """Body sent by the transport: events plus the send time."""
    events: list[EventModel]
    timestamp: int | None = None


class CollectResponse(BaseModel):
    status: str
    count: int
    duplicates: int = 0


class HealthResponse(BaseModel):
    status: str
    sink_healthy: bool
    stats: dict[str, Any]


class SeenIds:
    """Bounded memory of recently accepted event ids."""

    def __init__(self, max_size: int = 100_000):
        self.max_size = max_size
        self._ids: OrderedDict[str, None] = OrderedDict()

    def add(self, event_id: str) -> bool:
        """Remember an id. Returns False if it was already known."""
        if event_id in self._ids:
            return False
        self._ids[event_id] = None
        if len(self._ids) > self.max_size:
            self._ids.popitem(last=False)
        return True


def create_sink(config: CollectorConfig) -> CollectorSink:
    """Create sink based on config."""
    if config.sink_type == "file":
        return FileSink(**config.sink_config)
    if config.sink_type != "console":
        logger.warning(f"Unknown sink type {config.sink_type!r}, using console")
        return ConsoleSink()
    return ConsoleSink(**config.sink_config)


def create_app(config: CollectorConfig | None = None, sink: CollectorSink | None = None) -> FastAPI:
    """Build the collector app. A sink passed in overrides the configured one."""
    config = config or CollectorConfig()
    sink = sink or create_sink(config)
    seen = SeenIds()
    stats = {
        "batches_received": 0,
        "events_received": 0,
        "duplicates": 0,
        "rejected": 0,
    }

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting collector (sink={type(sink).__name__})")
        await sink.start()
        yield
        await sink.stop()
        logger.info(f"Collector stopped. Stats: {stats}")

    app = FastAPI(
        title="Tracker Collector",
        description="Development endpoint that receives tracker batches",
        lifespan=lifespan,
    )
    app.state.sink = sink
    app.state.stats = stats

    @app.post("/collect", response_model=CollectResponse)
    async def collect(request: Request):
        """
        Accept a batch.

        The body is either {"events": [...], "timestamp": ...} or a bare
        array of events.
        """
        try:
            payload = await request.json()
        except ValueError:
            stats["rejected"] += 1
            raise HTTPException(status_code=400, detail="Body is not valid JSON")

        if isinstance(payload, list):
            payload = {"events": payload}

        try:
            batch = BatchRequest.model_validate(payload)
        except ValidationError as e:
            stats["rejected"] += 1
            raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

        fresh = []
        for event in batch.events:
            if seen.add(event.id):
                fresh.append(event.model_dump(mode="json"))

        duplicates = len(batch.events) - len(fresh)
        if fresh:
            await sink.write(fresh)

        stats["batches_received"] += 1
        stats["events_received"] += len(fresh)
        stats["duplicates"] += duplicates

        logger.debug(f"Accepted batch of {len(fresh)} events ({duplicates} duplicates)")
        return CollectResponse(status="accepted", count=len(fresh), duplicates=duplicates)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        """Health check endpoint."""
        healthy = await sink.health_check()
        return HealthResponse(
            status="healthy" if healthy else "degraded",
            sink_healthy=healthy,
            stats=stats,
        )

    return app


def run(config_path: str | None = None):
    """Run the collector with uvicorn."""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = CollectorConfig.from_yaml(config_path) if config_path else CollectorConfig()
    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    run()
