"""Structural edits applied directly to a raw snapshot document.

The mutator never looks at ``TreeNode`` objects. Every operation deep-copies the
incoming document, rewrites the flat ``lvl``-indented record arrays of the copy,
and returns the copy; the read path rebuilds outlines from the result.

Group addressing uses the same traversal and numbering as the panel grouper:
``group_index`` is the N-th non-empty group owned by ``panel_id`` in document
order, and ``NodeAddress.indexInGroup`` is the record position inside that
group's raw array.

Operations:

- ``delete_node(..., delete_subtree=True)`` removes the record and its
  descendant span: the contiguous run of following records whose level is
  strictly greater than the record's own.
- ``delete_node(..., delete_subtree=False)`` removes only the record and
  promotes that same run by decrementing each level once (floored at 0).
- ``delete_panel`` drops every group owned by a panel, plus any collection or
  window that the removal leaves empty.

An address that cannot be resolved, or whose record no longer sits at the
level recorded in the address, raises :class:`NotFoundError`.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterator, List, Tuple

from ..models import NodeAddress, NodeDeletion, NotFoundError, PanelDeletion
from .normalizer import Shape, classify, level_of, normalize_group, panel_id_of

logger = logging.getLogger(__name__)

JsonDict = Dict[str, Any]
Slot = Tuple[Any, Any]


class GroupSlot:
    """A resolved group plus the container position it was read from."""

    def __init__(self, panel_id: str, records: List[Any], holder: Any, key: Any) -> None:
        self.panel_id = panel_id
        self.records = records
        self.holder = holder
        self.key = key

    def commit(self) -> None:
        """Write edited records back when the group was a bare tab object.

        List-shaped groups are edited in place, so ``records`` already is the
        stored array.
        """
        if classify(self.holder[self.key]) is Shape.TAB:
            self.holder[self.key] = self.records


def _is_single(value: Any) -> bool:
    return not isinstance(value, list) or classify(value) is Shape.GROUP_OF_TABS


def _members(holder: Any, key: Any) -> List[Slot]:
    value = holder[key]
    if _is_single(value):
        return [(holder, key)]
    return [(value, index) for index in range(len(value))]


def _window_slots(document: JsonDict) -> List[Slot]:
    tabs = document.get("tabs")
    if isinstance(tabs, list):
        return [(tabs, index) for index in range(len(tabs))]
    return [(document, "tabs")] if tabs else []


def iter_group_slots(document: JsonDict) -> Iterator[GroupSlot]:
    """Yield writable slots for every non-empty group, in document order."""
    for window in _window_slots(document):
        for collection in _members(*window):
            for holder, key in _members(*collection):
                records = normalize_group(holder[key])
                if records:
                    yield GroupSlot(panel_id_of(records), records, holder, key)


def find_group(document: JsonDict, panel_id: str, group_index: int) -> GroupSlot:
    """Locate the ``group_index``-th group owned by ``panel_id``."""
    if group_index >= 0:
        seen = 0
        for slot in iter_group_slots(document):
            if slot.panel_id != panel_id:
                continue
            if seen == group_index:
                return slot
            seen += 1
    raise NotFoundError(f"Group {group_index} of panel {panel_id!r} not found")


def descendant_end(records: List[Any], index: int) -> int:
    """Exclusive end of the descendant span that follows ``records[index]``."""
    root_lvl = level_of(records[index])
    end = index + 1
    while end < len(records) and level_of(records[end]) > root_lvl:
        end += 1
    return end


def delete_node(
    document: JsonDict,
    panel_id: str,
    group_index: int,
    address: NodeAddress,
    delete_subtree: bool = False,
) -> NodeDeletion:
    """Delete one record (and optionally its subtree) from a copy of ``document``."""
    if not isinstance(document, dict):
        raise NotFoundError("Snapshot document has no groups")

    updated = copy.deepcopy(document)
    slot = find_group(updated, str(panel_id), group_index)
    records = slot.records

    index = address.indexInGroup
    if index < 0 or index >= len(records):
        raise NotFoundError(
            f"Node {index} not found in group {group_index} of panel {panel_id!r} "
            f"({len(records)} records)"
        )
    current_lvl = level_of(records[index])
    if current_lvl != address.lvl:
        raise NotFoundError(
            f"Node {index} in group {group_index} of panel {panel_id!r} is at level "
            f"{current_lvl}, expected {address.lvl}; address is stale"
        )

    end = descendant_end(records, index)
    if delete_subtree:
        removed = end - index
        relevelled = 0
        del records[index:end]
    else:
        removed = 1
        relevelled = end - index - 1
        del records[index]
        for record in records[index:index + relevelled]:
            record["lvl"] = max(0, level_of(record) - 1)

    slot.commit()
    logger.debug(
        "delete_node panel=%s group=%s index=%s subtree=%s removed=%s relevelled=%s",
        panel_id, group_index, index, delete_subtree, removed, relevelled,
    )
    return NodeDeletion(document=updated, removed=removed, relevelled=relevelled)


def _prune(value: Any, panel_id: str, depth: int) -> Tuple[bool, Any, int]:
    """Drop groups owned by ``panel_id`` below ``value``.

    Returns ``(keep, new_value, removed_groups)``. ``depth`` counts the list
    levels still allowed above a group: 2 for a window, 1 for a collection.
    """
    if depth == 0 or _is_single(value):
        records = normalize_group(value)
        if records and panel_id_of(records) == panel_id:
            return False, None, 1
        return True, value, 0

    kept: List[Any] = []
    removed = 0
    for member in value:
        keep, new_member, count = _prune(member, panel_id, depth - 1)
        removed += count
        if keep:
            kept.append(new_member)
    if removed and not kept:
        return False, None, removed
    return True, kept, removed


def delete_panel(document: JsonDict, panel_id: str) -> PanelDeletion:
    """Remove every group owned by ``panel_id`` from a copy of ``document``."""
    if not isinstance(document, dict):
        return PanelDeletion(document={}, removed_groups=0)

    panel_id = str(panel_id)
    updated = copy.deepcopy(document)
    tabs = updated.get("tabs")

    removed = 0
    if isinstance(tabs, list):
        windows: List[Any] = []
        for window in tabs:
            keep, new_window, count = _prune(window, panel_id, 2)
            removed += count
            if keep:
                windows.append(new_window)
        updated["tabs"] = windows
    elif tabs:
        keep, new_tabs, removed = _prune(tabs, panel_id, 2)
        updated["tabs"] = new_tabs if keep else []

    remaining: List[str] = []
    for slot in iter_group_slots(updated):
        if slot.panel_id not in remaining:
            remaining.append(slot.panel_id)

    logger.debug("delete_panel panel=%s removed=%s remaining=%s", panel_id, removed, remaining)
    return PanelDeletion(document=updated, removed_groups=removed, remaining_panel_ids=remaining)


__all__ = [
    "GroupSlot",
    "iter_group_slots",
    "find_group",
    "descendant_end",
    "delete_node",
    "delete_panel",
]
