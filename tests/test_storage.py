from __future__ import annotations

import sqlite3

import pytest

from sidebery_mcp.models import StorageConfiguration, StorageError
from sidebery_mcp.snapshot.storage import SnapshotStore


def test_put_get_round_trip(store, document):
    stored = store.put("snap-1", document, 1700000000000)
    assert stored.created_at.endswith("Z")

    fetched = store.get("snap-1")
    assert fetched is not None
    assert fetched.raw == document
    assert fetched.time == 1700000000000
    assert fetched.created_at == stored.created_at


def test_get_unknown_returns_none(store):
    assert store.get("missing") is None


def test_put_replaces_whole_document(store):
    store.put("s", {"tabs": [], "extra": 1}, 1)
    store.put("s", {"tabs": []}, 2)
    fetched = store.get("s")
    assert fetched.raw == {"tabs": []}
    assert fetched.time == 2
    assert len(store.list()) == 1


def test_delete_reports_whether_a_row_went(store):
    store.put("s", {}, 1)
    assert store.delete("s") is True
    assert store.delete("s") is False
    assert store.get("s") is None


def test_list_is_newest_first(store):
    store.put("old", {}, 1)
    store.put("new", {}, 2)
    assert [meta.id for meta in store.list()] == ["new", "old"]
    assert [snap.id for snap in store.iter_documents()] == ["new", "old"]


def test_store_creates_parent_directory(tmp_path):
    path = tmp_path / "nested" / "dir" / "snapshots.db"
    with SnapshotStore(StorageConfiguration(db_path=path)) as snapshot_store:
        snapshot_store.put("s", {"a": 1}, 1)
    assert path.exists()

    with SnapshotStore(StorageConfiguration(db_path=path)) as reopened:
        assert reopened.get("s").raw == {"a": 1}


def test_unserializable_document_raises_storage_error(store):
    with pytest.raises(StorageError):
        store.put("s", {"bad": object()}, 1)


def test_corrupt_row_raises_storage_error(store):
    store.connection.execute(
        "INSERT INTO snapshots (id, time, rawJson, created_at) VALUES ('s', 1, '{nope', 'x')"
    )
    store.connection.commit()
    with pytest.raises(StorageError):
        store.get("s")


def test_driver_errors_are_wrapped(store, monkeypatch):
    class BrokenConnection:
        def execute(self, *args, **kwargs):
            raise sqlite3.OperationalError("disk I/O error")

        def close(self):
            pass

    monkeypatch.setattr(store, "_conn", BrokenConnection())
    with pytest.raises(StorageError, match="disk I/O error"):
        store.get("s")


def test_open_failure_raises_storage_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory", encoding="utf-8")
    snapshot_store = SnapshotStore(StorageConfiguration(db_path=blocker / "snapshots.db"))
    with pytest.raises(StorageError):
        snapshot_store.open()


def test_integer_overflow_raises_storage_error(store):
    with pytest.raises(StorageError, match="too large"):
        store.put("s", {}, 2**64)
    assert store.get("s") is None
