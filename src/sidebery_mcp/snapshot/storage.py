"""SQLite-backed snapshot store.

Documents are stored whole as JSON text and replaced whole on every write;
there is no field-level update. The store is constructed explicitly by its
owner (the server lifespan, the CLI, or a test) and must be closed by it.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

from ..models import SnapshotMeta, StorageConfiguration, StorageError, StoredSnapshot

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS snapshots (
    id TEXT PRIMARY KEY,
    time INTEGER,
    rawJson TEXT NOT NULL,
    created_at TEXT NOT NULL
)
"""


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SnapshotStore:
    """Whole-document snapshot persistence keyed by snapshot id."""

    def __init__(self, config: StorageConfiguration) -> None:
        self.config = config
        self.db_path = Path(config.db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    @property
    def connection(self) -> sqlite3.Connection:
        """Get or open the SQLite connection."""
        if self._conn is None:
            self.open()
        assert self._conn is not None
        return self._conn

    def open(self) -> None:
        """Open the database and create the schema if needed."""
        if self._conn is not None:
            return
        target = str(self.db_path)
        try:
            if target != ":memory:":
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(target, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute(SCHEMA)
            conn.commit()
        except (OSError, sqlite3.Error) as err:
            raise StorageError(f"Failed to open snapshot database {target}: {err}") from err
        self._conn = conn
        logger.info("Snapshot store opened at %s", target)

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Snapshot store closed")

    def __enter__(self) -> "SnapshotStore":
        self.open()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def _execute(self, sql: str, params: tuple = (), fetch: str | None = None) -> Any:
        """Run one statement under the lock; returns rows for fetch="one"/"all", else rowcount."""
        with self._lock:
            conn = self.connection
            try:
                cursor = conn.execute(sql, params)
                if fetch == "one":
                    result = cursor.fetchone()
                elif fetch == "all":
                    result = cursor.fetchall()
                else:
                    result = cursor.rowcount
                conn.commit()
                return result
            except (sqlite3.Error, OverflowError) as err:
                raise StorageError(f"Snapshot store query failed: {err}") from err

    def put(self, snapshot_id: str, raw: Any, time: int | float) -> StoredSnapshot:
        """Insert or wholly replace a snapshot document."""
        created_at = utc_now_iso()
        try:
            raw_json = json.dumps(raw, ensure_ascii=False)
        except (TypeError, ValueError) as err:
            raise StorageError(f"Snapshot {snapshot_id} is not JSON serializable: {err}") from err
        self._execute(
            "INSERT OR REPLACE INTO snapshots (id, time, rawJson, created_at) VALUES (?, ?, ?, ?)",
            (snapshot_id, time, raw_json, created_at),
        )
        return StoredSnapshot(id=snapshot_id, time=time, raw=raw, created_at=created_at)

    def get(self, snapshot_id: str) -> Optional[StoredSnapshot]:
        """Fetch one snapshot, or None when the id is unknown."""
        row = self._execute(
            "SELECT id, time, rawJson, created_at FROM snapshots WHERE id = ?",
            (snapshot_id,),
            fetch="one",
        )
        if row is None:
            return None
        try:
            raw = json.loads(row["rawJson"])
        except json.JSONDecodeError as err:
            raise StorageError(f"Stored snapshot {snapshot_id} is not valid JSON: {err}") from err
        return StoredSnapshot(id=row["id"], time=row["time"], raw=raw, created_at=row["created_at"])

    def delete(self, snapshot_id: str) -> bool:
        """Delete one snapshot; returns whether a row was removed."""
        return self._execute("DELETE FROM snapshots WHERE id = ?", (snapshot_id,)) > 0

    def list(self) -> List[SnapshotMeta]:
        """List snapshot rows, most recently written first (no documents)."""
        rows = self._execute(
            "SELECT id, time, created_at FROM snapshots ORDER BY created_at DESC, rowid DESC",
            fetch="all",
        )
        return [SnapshotMeta(id=r["id"], time=r["time"], created_at=r["created_at"]) for r in rows]

    def iter_documents(self) -> List[StoredSnapshot]:
        """Every stored snapshot with its document, newest first."""
        return [
            snapshot
            for snapshot in (self.get(meta.id) for meta in self.list())
            if snapshot is not None
        ]
