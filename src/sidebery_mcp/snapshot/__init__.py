"""Snapshot parsing, editing and storage."""

from .mutator import delete_node, delete_panel
from .normalizer import Shape, classify, normalize_group
from .panel_grouper import build_snapshot, group_panels
from .service import SnapshotService
from .storage import SnapshotStore
from .tree_builder import build_tree

__all__ = [
    "Shape",
    "SnapshotService",
    "SnapshotStore",
    "build_snapshot",
    "build_tree",
    "classify",
    "delete_node",
    "delete_panel",
    "group_panels",
    "normalize_group",
]
