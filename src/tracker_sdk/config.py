"""Configuration for the tracker SDK."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any
from urllib.parse import urlparse


class ConfigurationError(Exception):
    """Raised when the tracker is configured without a usable delivery path."""
    pass


@dataclass
class TrackerConfig:
    """Tracker configuration. Intervals are in milliseconds unless noted."""
    # Collection endpoint (required)
    report_url: str = ""

    # Application identifier, added to every event
    app_id: str | None = None

    # Batching
    batch_size: int = 10
    report_interval: int = 5000
    max_queue_size: int = 1000

    # Delivery
    headers: dict[str, str] = field(default_factory=dict)
    max_retries: int = 3
    retry_backoff: int = 1000
    request_timeout: float = 10.0  # seconds

    # Behaviour
    debug: bool = False
    sampling_rate: float = 1.0
    auto_track_error: bool = True
    auto_track_performance: bool = True

    # Persistence
    storage_type: str = "sqlite"  # sqlite | memory
    storage_path: str = "tracker.db"
    storage_prefix: str = "tracker_"
    offline_key: str = "offline_events"

    def validate(self) -> TrackerConfig:
        """Check the config; returns self so calls can be chained."""
        if not self.report_url:
            raise ConfigurationError("report_url is required")

        parsed = urlparse(self.report_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(f"report_url must be an http(s) URL, got {self.report_url!r}")

        if self.batch_size < 1:
            raise ConfigurationError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.report_interval <= 0:
            raise ConfigurationError(f"report_interval must be > 0, got {self.report_interval}")
        if self.max_queue_size < self.batch_size:
            raise ConfigurationError(
                f"max_queue_size ({self.max_queue_size}) must be >= batch_size ({self.batch_size})"
            )
        if self.max_retries < 0:
            raise ConfigurationError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_backoff < 0:
            raise ConfigurationError(f"retry_backoff must be >= 0, got {self.retry_backoff}")
        if not 0.0 <= self.sampling_rate <= 1.0:
            raise ConfigurationError(f"sampling_rate must be in [0, 1], got {self.sampling_rate}")
        if self.storage_type not in ("sqlite", "memory"):
            raise ConfigurationError(f"Unknown storage_type {self.storage_type!r}")
        # clear() on the user facade must never reach the offline queue key
        if not self.storage_prefix:
            raise ConfigurationError("storage_prefix must not be empty")

        return self

    @property
    def report_interval_seconds(self) -> float:
        return self.report_interval / 1000.0

    @property
    def retry_backoff_seconds(self) -> float:
        return self.retry_backoff / 1000.0

    @classmethod
    def from_dict(cls, data: dict) -> TrackerConfig:
        """Create config from dictionary. Unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str) -> TrackerConfig:
        """Load config from YAML file."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_json(cls, path: str) -> TrackerConfig:
        """Load config from JSON file."""
        import json
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)


@dataclass
class CollectorConfig:
    """Configuration for the development collection endpoint."""
    sink_type: str = "console"  # console | file
    sink_config: dict[str, Any] = field(default_factory=dict)

    host: str = "127.0.0.1"
    port: int = 8060

    @classmethod
    def from_dict(cls, data: dict) -> CollectorConfig:
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str) -> CollectorConfig:
        """Load collector config from YAML file."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})
