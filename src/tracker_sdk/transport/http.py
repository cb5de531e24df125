"""HTTP transport - POSTs batches to the collection endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from ..events import EventRecord
from .base import NetworkTransport, TransportError, batch_body


logger = logging.getLogger(__name__)


@dataclass
class HttpTransport(NetworkTransport):
    """
    Transport that POSTs each batch as JSON.

    Body: {"events": [...], "timestamp": <epoch ms>}
    Any 2xx response is success; every other status, timeout or
    connection problem raises TransportError.

    Config:
        url: Collection endpoint
        headers: Extra headers merged over the JSON content type
        timeout: Request timeout in seconds
        client: Optional pre-built httpx.AsyncClient (not closed by stop())
    """
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float = 10.0
    client: httpx.AsyncClient | None = None

    # Internal state
    _owned_client: httpx.AsyncClient | None = field(default=None, init=False)

    async def start(self) -> None:
        if self.client is None and self._owned_client is None:
            self._owned_client = httpx.AsyncClient(timeout=self.timeout)

    async def stop(self) -> None:
        if self._owned_client is not None:
            await self._owned_client.aclose()
            self._owned_client = None

    async def send(self, events: list[EventRecord]) -> None:
        client = self.client
        if client is None:
            if self._owned_client is None:
                await self.start()
            client = self._owned_client

        headers = {"Content-Type": "application/json", **self.headers}

        try:
            response = await client.post(
                self.url,
                json=batch_body(events),
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timeout: {self.url}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to reach {self.url}: {e}") from e

        if not response.is_success:
            raise TransportError(
                f"HTTP error! status: {response.status_code} - {response.text[:200]}",
                status_code=response.status_code,
            )

        logger.debug(f"Delivered {len(events)} events to {self.url} ({response.status_code})")
