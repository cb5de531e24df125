"""Tests for key/value storage facades."""

import sqlite3

import pytest

from tracker_sdk.storage import MemoryStorage, PersistenceError, SqliteStorage, create_storage


class TestMemoryStorage:
    def test_set_get_remove(self):
        storage = MemoryStorage(prefix="tracker_")

        storage.set("user", {"user_id": "u1"})
        assert storage.get("user") == {"user_id": "u1"}

        storage.remove("user")
        assert storage.get("user") is None

    def test_values_are_copied(self):
        storage = MemoryStorage()
        value = {"items": [1]}

        storage.set("k", value)
        value["items"].append(2)
        storage.get("k")["items"].append(3)

        assert storage.get("k") == {"items": [1]}

    def test_clear_only_touches_prefix(self):
        shared = {}
        user = MemoryStorage(prefix="tracker_", store=shared)
        other = MemoryStorage(prefix="", store=shared)

        user.set("user", {"user_id": "u1"})
        other.set("offline_events", [])

        user.clear()

        assert user.get("user") is None
        assert other.get("offline_events") == []


class TestSqliteStorage:
    def test_round_trip(self, tmp_path):
        storage = SqliteStorage(db_path=tmp_path / "t.db", prefix="tracker_")

        storage.set("user", {"user_id": "u1", "tags": ["a"]})
        assert storage.get("user") == {"user_id": "u1", "tags": ["a"]}
        assert storage.get("missing") is None

        storage.set("user", {"user_id": "u2"})
        assert storage.get("user") == {"user_id": "u2"}

    def test_survives_reopen(self, tmp_path):
        path = tmp_path / "t.db"
        first = SqliteStorage(db_path=path)
        first.set("offline_events", [{"id": "1"}])
        first.close()

        second = SqliteStorage(db_path=path)
        assert second.get("offline_events") == [{"id": "1"}]

    def test_clear_is_prefix_scoped(self, tmp_path):
        path = tmp_path / "t.db"
        user = SqliteStorage(db_path=path, prefix="tracker_")
        plain = SqliteStorage(db_path=path)

        user.set("user", {"user_id": "u1"})
        plain.set("offline_events", [1, 2])
        # "_" must not act as a LIKE wildcard
        plain.set("trackerXuser", "keep")

        user.clear()

        assert user.get("user") is None
        assert plain.get("offline_events") == [1, 2]
        assert plain.get("trackerXuser") == "keep"

    def test_corrupt_value_raises_persistence_error(self, tmp_path):
        path = tmp_path / "t.db"
        storage = SqliteStorage(db_path=path)
        storage.connect()

        conn = sqlite3.connect(str(path))
        conn.execute("INSERT INTO kv_store (key, value) VALUES (?, ?)", ("broken", "{not json"))
        conn.commit()
        conn.close()

        with pytest.raises(PersistenceError):
            storage.get("broken")

    def test_unserializable_value_raises_persistence_error(self, tmp_path):
        storage = SqliteStorage(db_path=tmp_path / "t.db")
        with pytest.raises(PersistenceError):
            storage.set("bad", {"obj": object()})


class TestCreateStorage:
    def test_sqlite(self, tmp_path):
        storage = create_storage("sqlite", prefix="tracker_", path=tmp_path / "t.db")
        assert isinstance(storage, SqliteStorage)
        assert storage.prefix == "tracker_"

    def test_memory(self):
        assert isinstance(create_storage("memory"), MemoryStorage)

    def test_unknown_type_falls_back_to_memory(self):
        assert isinstance(create_storage("redis"), MemoryStorage)
