"""SQLite-backed durable key/value storage."""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from .base import KeyValueStorage, PersistenceError


logger = logging.getLogger(__name__)

# Default database path
DEFAULT_DB_PATH = "tracker.db"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


def init_db(db_path: str | Path = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Open the database and create the key/value table if needed.

    Args:
        db_path: Path to the SQLite database file, or ":memory:".

    Returns:
        A connection to the database.
    """
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    conn.executescript(SCHEMA_SQL)
    conn.commit()

    return conn


class SqliteStorage(KeyValueStorage):
    """
    Key/value storage in a single SQLite table.

    Values are stored as JSON text. Every sqlite or JSON failure is raised as
    PersistenceError so callers deal with one exception type.
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH, prefix: str = ""):
        super().__init__(prefix)
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            try:
                self._conn = init_db(self.db_path)
            except sqlite3.Error as e:
                raise PersistenceError(f"Cannot open {self.db_path}: {e}") from e
        return self._conn

    def get(self, key: str) -> Any | None:
        try:
            row = self.connect().execute(
                "SELECT value FROM kv_store WHERE key = ?", (self._key(key),)
            ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Read failed for {key!r}: {e}") from e

        if row is None:
            return None

        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Corrupt value for {key!r}: {e}") from e

    def set(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Value for {key!r} is not serializable: {e}") from e

        conn = self.connect()
        try:
            with conn:
                conn.execute(
                    "INSERT INTO kv_store (key, value, updated_at) "
                    "VALUES (?, ?, CURRENT_TIMESTAMP) "
                    "ON CONFLICT(key) DO UPDATE SET "
                    "value = excluded.value, updated_at = excluded.updated_at",
                    (self._key(key), payload),
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Write failed for {key!r}: {e}") from e

    def remove(self, key: str) -> None:
        conn = self.connect()
        try:
            with conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (self._key(key),))
        except sqlite3.Error as e:
            raise PersistenceError(f"Delete failed for {key!r}: {e}") from e

    def clear(self) -> None:
        conn = self.connect()
        # Escape LIKE wildcards in the prefix
        pattern = (
            self.prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            + "%"
        )
        try:
            with conn:
                conn.execute("DELETE FROM kv_store WHERE key LIKE ? ESCAPE '\\'", (pattern,))
        except sqlite3.Error as e:
            raise PersistenceError(f"Clear failed for prefix {self.prefix!r}: {e}") from e

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
