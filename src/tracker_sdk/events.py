"""Tracked event types."""

from __future__ import annotations

import copy
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class EventType(str, Enum):
    """Kind of occurrence being tracked."""
    PAGE_VIEW = "page_view"
    CLICK = "click"
    CUSTOM = "custom"
    PERFORMANCE = "performance"
    ERROR = "error"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class EventRecord:
    """
    A single tracked event.

    Records are immutable: the payload is deep-copied on creation and exposed
    through a read-only mapping, so producers holding the original dict can
    not change what gets delivered.
    """
    # Opaque unique identifier
    id: str

    # What happened
    type: EventType

    # When (epoch milliseconds)
    timestamp: int

    # Structured payload
    data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "type", EventType(self.type))
        object.__setattr__(self, "data", MappingProxyType(copy.deepcopy(dict(self.data))))

    @classmethod
    def create(
        cls,
        event_type: EventType | str,
        data: Mapping[str, Any] | None = None,
    ) -> EventRecord:
        """Factory method with a fresh id and timestamp."""
        return cls(
            id=str(uuid.uuid4()),
            type=EventType(event_type),
            timestamp=now_ms(),
            data=data or {},
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "type": self.type.value,
            "timestamp": self.timestamp,
            "data": copy.deepcopy(dict(self.data)),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EventRecord:
        """Rebuild a record from its serialized form."""
        return cls(
            id=str(data["id"]),
            type=EventType(data["type"]),
            timestamp=int(data["timestamp"]),
            data=data.get("data") or {},
        )
