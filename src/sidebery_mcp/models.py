"""Data models and error types for the Sidebery snapshot server."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_PANEL_ID = "__unknown__"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class SnapshotError(Exception):
    """Base exception for snapshot operations."""


class NotFoundError(SnapshotError):
    """Raised when a snapshot, group or node address does not resolve."""

    def __init__(self, message: str = "Not found", snapshot_id: str | None = None) -> None:
        self.snapshot_id = snapshot_id
        self.message = message
        super().__init__(message)


class MalformedInputError(SnapshotError):
    """Raised when an uploaded document cannot be accepted.

    The read path never raises this; an unreadable document there simply
    yields zero panels.
    """


class StorageError(SnapshotError):
    """Raised when the snapshot store fails."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class StorageConfiguration(BaseModel):
    """Settings handed to the snapshot store."""

    db_path: Path = Field(default=Path("data/snapshots.db"), description="SQLite database file")
    max_document_bytes: int = Field(default=50 * 1024 * 1024, description="Upload size limit")


# ---------------------------------------------------------------------------
# Snapshot document / view
# ---------------------------------------------------------------------------


class TabRecord(BaseModel):
    """Typed view over one raw tab record.

    Extra Sidebery fields are kept as-is; the raw dict remains the source of
    truth and is what gets persisted.
    """

    model_config = ConfigDict(extra="allow")

    url: str | None = None
    title: str | None = None
    panelId: str | int | None = None
    containerId: str | None = None
    lvl: int = 0
    folded: bool | None = None


class TreeNode(BaseModel):
    """One tab in a group outline."""

    tab: Any
    children: list[TreeNode] = Field(default_factory=list)
    indexInGroup: int


class Group(BaseModel):
    """A run of tab records belonging to one panel, plus its derived outline."""

    raw: list[Any] = Field(default_factory=list)
    tree: list[TreeNode] = Field(default_factory=list)


class Panel(BaseModel):
    id: str
    meta: Any = None
    groups: list[Group] = Field(default_factory=list)


class Snapshot(BaseModel):
    """Parsed snapshot view, rebuilt from the raw document on every read."""

    id: Any = None
    time: Any = None
    containers: dict[str, Any] = Field(default_factory=dict)
    sidebar: dict[str, Any] = Field(default_factory=dict)
    panels: list[Panel] = Field(default_factory=list)


class NodeAddress(BaseModel):
    """Where a tree node lived when the outline was built."""

    indexInGroup: int
    lvl: int = 0


# ---------------------------------------------------------------------------
# Storage / service payloads
# ---------------------------------------------------------------------------


class StoredSnapshot(BaseModel):
    id: str
    time: int | float
    raw: Any
    created_at: str


class SnapshotMeta(BaseModel):
    id: str
    time: int | float
    created_at: str
    previewTitle: str = ""


class NodeDeletion(BaseModel):
    """Outcome of a delete-node mutation."""

    document: dict[str, Any]
    removed: int
    relevelled: int


class PanelDeletion(BaseModel):
    """Outcome of a delete-panel mutation."""

    document: dict[str, Any]
    removed_groups: int
    remaining_panel_ids: list[str] = Field(default_factory=list)
