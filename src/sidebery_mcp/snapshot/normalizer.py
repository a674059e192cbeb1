"""Shape classification for Sidebery snapshot exports.

Sidebery writes ``tabs`` as windows -> panel-group collections -> groups ->
tab records, but real exports are inconsistent about how many list levels
appear. A value at any of these levels can be:

- a single tab object (``{"url": ...}``),
- a group: a list whose first element is a tab object,
- a list of groups: a list whose first element is itself a list,
- or something unusable.

Everything here classifies by probing the *first* element only, mirroring the
way the export format is consumed elsewhere. The functions are pure and never
raise: an unrecognized value degrades to an empty group.
"""

from __future__ import annotations

import enum
from typing import Any, List

from ..models import UNKNOWN_PANEL_ID


class Shape(enum.Enum):
    """Tagged variant for an ambiguous snapshot value."""

    EMPTY = "empty"
    TAB = "tab"
    GROUP_OF_TABS = "group_of_tabs"
    LIST_OF_GROUPS = "list_of_groups"


def classify(value: Any) -> Shape:
    """Classify one snapshot value by its first-element shape."""
    if not value:
        return Shape.EMPTY
    if isinstance(value, list):
        first = value[0]
        if isinstance(first, dict):
            return Shape.GROUP_OF_TABS
        if isinstance(first, list):
            return Shape.LIST_OF_GROUPS
        return Shape.EMPTY
    if isinstance(value, dict) and "url" in value:
        return Shape.TAB
    return Shape.EMPTY


def normalize_group(value: Any) -> List[Any]:
    """Resolve a group-level value into its ordered list of tab records.

    For ``GROUP_OF_TABS`` the returned list *is* the input list (not a copy);
    the mutator relies on that identity to rewrite records in place.
    """
    shape = classify(value)
    if shape is Shape.GROUP_OF_TABS:
        return value
    if shape is Shape.TAB:
        return [value]
    if shape is Shape.LIST_OF_GROUPS:
        inner = value[0]
        return inner if isinstance(inner, list) else []
    return []


def expand(value: Any) -> List[Any]:
    """Split a window or collection value into its members.

    A group of tabs (or any non-list value) is a single member; any other list
    is a list of members. Members that normalize to nothing are dropped by the
    caller, not here.
    """
    if isinstance(value, list) and classify(value) is not Shape.GROUP_OF_TABS:
        return list(value)
    return [value]


def windows_of(document: Any) -> List[Any]:
    """Return the window list of a raw snapshot document."""
    if not isinstance(document, dict):
        return []
    tabs = document.get("tabs")
    if isinstance(tabs, list):
        return tabs
    return [tabs] if tabs else []


def level_of(record: Any) -> int:
    """Indentation level of a tab record; absent or invalid reads as 0.

    Sidebery writes integer levels. A fractional level is truncated, so
    ``0.5`` reads as 0 and makes the record a sibling, not a child.
    """
    if not isinstance(record, dict):
        return 0
    lvl = record.get("lvl")
    if isinstance(lvl, bool) or not isinstance(lvl, (int, float)):
        return 0
    return max(0, int(lvl))


def panel_id_of(records: List[Any]) -> str:
    """Owning panel of a normalized group: the first record's ``panelId``."""
    first = records[0] if records else None
    panel_id = first.get("panelId") if isinstance(first, dict) else None
    if panel_id is None:
        return UNKNOWN_PANEL_ID
    return str(panel_id)


__all__ = [
    "Shape",
    "classify",
    "normalize_group",
    "expand",
    "windows_of",
    "level_of",
    "panel_id_of",
]
