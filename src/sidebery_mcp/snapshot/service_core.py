"""Snapshot service - storage-backed CRUD and upload validation."""

import json
import sys
import uuid
from datetime import datetime, timezone
from typing import Any

from ..models import (
    MalformedInputError,
    NotFoundError,
    SnapshotMeta,
    StorageConfiguration,
    StoredSnapshot,
)
from .preview import extract_preview_title
from .storage import SnapshotStore


def log_event(message: str, component: str = "SNAPSHOTS") -> None:
    """Log an event to stderr with timestamp and consistent formatting."""
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print(f"[{timestamp}] [{component}] {message}", file=sys.stderr, flush=True)


class _ServiceLogger:
    """Logger-shaped wrapper around log_event.

    Under the stdio transport the MCP host only shows what reaches stderr,
    so service messages go through print rather than the logging tree.
    """

    def __init__(self, component: str = "SNAPSHOTS") -> None:
        self._component = component

    def info(self, msg: object) -> None:
        log_event(str(msg), self._component)

    def warning(self, msg: object) -> None:
        log_event(f"WARNING: {msg}", self._component)

    def error(self, msg: object) -> None:
        log_event(f"ERROR: {msg}", self._component)


def now_millis() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class SnapshotServiceCore:
    """Snapshot service - storage-backed CRUD operations and upload validation."""

    def __init__(self, store: SnapshotStore, config: StorageConfiguration | None = None):
        """Initialize the service around an already constructed store."""
        self.store = store
        self.config = config or store.config
        self.log = _ServiceLogger()

    def _decode_document(self, document: Any) -> dict[str, Any]:
        """Accept a snapshot as a JSON object, JSON text or UTF-8 bytes."""
        if isinstance(document, (bytes, bytearray)):
            if len(document) > self.config.max_document_bytes:
                raise MalformedInputError(
                    f"Snapshot is {len(document)} bytes; limit is {self.config.max_document_bytes}"
                )
            try:
                document = document.decode("utf-8")
            except UnicodeDecodeError as err:
                raise MalformedInputError(f"Snapshot is not UTF-8 text: {err}") from err

        if isinstance(document, str):
            if len(document.encode("utf-8")) > self.config.max_document_bytes:
                raise MalformedInputError(
                    f"Snapshot text exceeds {self.config.max_document_bytes} bytes"
                )
            try:
                document = json.loads(document)
            except json.JSONDecodeError as err:
                raise MalformedInputError(f"Snapshot is not valid JSON: {err}") from err

        if not isinstance(document, dict):
            raise MalformedInputError(
                f"Snapshot must be a JSON object, got {type(document).__name__}"
            )
        return document

    def _require(self, snapshot_id: str) -> StoredSnapshot:
        stored = self.store.get(snapshot_id)
        if stored is None:
            raise NotFoundError(f"Snapshot {snapshot_id} not found", snapshot_id=snapshot_id)
        return stored

    def upload(self, document: Any) -> SnapshotMeta:
        """Store a new snapshot document verbatim.

        The document's own ``id`` and ``time`` are used when present;
        otherwise a UUID4 and the current epoch milliseconds.
        """
        raw = self._decode_document(document)

        raw_id = raw.get("id")
        snapshot_id = str(raw_id) if raw_id not in (None, "") else str(uuid.uuid4())
        time = raw.get("time") if _is_number(raw.get("time")) else now_millis()

        stored = self.store.put(snapshot_id, raw, time)
        self.log.info(f"Stored snapshot {snapshot_id} (time={time})")
        return SnapshotMeta(
            id=stored.id,
            time=stored.time,
            created_at=stored.created_at,
            previewTitle=extract_preview_title(raw),
        )

    def list_snapshots(self) -> list[SnapshotMeta]:
        """List stored snapshots, newest write first, with preview titles."""
        return [
            SnapshotMeta(
                id=stored.id,
                time=stored.time,
                created_at=stored.created_at,
                previewTitle=extract_preview_title(stored.raw),
            )
            for stored in self.store.iter_documents()
        ]

    def get_raw(self, snapshot_id: str) -> StoredSnapshot:
        """Fetch the verbatim stored document."""
        return self._require(snapshot_id)

    def replace(self, snapshot_id: str, raw: Any, time: int | float | None = None) -> SnapshotMeta:
        """Replace a snapshot document wholesale (creates it if missing)."""
        document = self._decode_document(raw)
        stamp = time if _is_number(time) else now_millis()
        stored = self.store.put(snapshot_id, document, stamp)
        self.log.info(f"Replaced snapshot {snapshot_id}")
        return SnapshotMeta(
            id=stored.id,
            time=stored.time,
            created_at=stored.created_at,
            previewTitle=extract_preview_title(document),
        )

    def delete_snapshot(self, snapshot_id: str) -> bool:
        """Delete a snapshot; unknown ids are a no-op that returns False."""
        deleted = self.store.delete(snapshot_id)
        if deleted:
            self.log.info(f"Deleted snapshot {snapshot_id}")
        else:
            self.log.warning(f"Delete requested for unknown snapshot {snapshot_id}")
        return deleted
