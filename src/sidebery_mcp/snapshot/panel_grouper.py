"""Bucket a snapshot's groups under panels and order them for display.

Panels are not stored per panel in the export: a group belongs to whichever
panel its first tab names in ``panelId``. This module walks every window,
resolves each group through the normalizer, and assembles the parsed view:

    windows -> collections (expand) -> groups (expand) -> normalize_group

Panels listed in ``sidebar.nav`` come first in nav order; any other panel ids
follow in the order they were first seen. Groups that normalize to nothing
never appear.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, NamedTuple

from ..models import Group, Panel, Snapshot
from .normalizer import expand, normalize_group, panel_id_of, windows_of
from .tree_builder import build_tree, forest_to_dicts

logger = logging.getLogger(__name__)

JsonDict = Dict[str, Any]


class ResolvedGroup(NamedTuple):
    panel_id: str
    records: List[Any]


def iter_groups(document: Any) -> Iterator[ResolvedGroup]:
    """Yield every non-empty group of ``document`` in document order."""
    for window in windows_of(document):
        for collection in expand(window):
            for value in expand(collection):
                records = normalize_group(value)
                if not records:
                    continue
                yield ResolvedGroup(panel_id_of(records), records)


def _sidebar(document: JsonDict) -> JsonDict:
    sidebar = document.get("sidebar")
    return sidebar if isinstance(sidebar, dict) else {}


def _nav_order(sidebar: JsonDict) -> List[str]:
    nav = sidebar.get("nav")
    if not isinstance(nav, list):
        return []
    ordered: List[str] = []
    for entry in nav:
        if entry is None:
            continue
        pid = str(entry)
        if pid not in ordered:
            ordered.append(pid)
    return ordered


def group_panels(document: Any) -> List[Panel]:
    """Return the ordered panels of a raw snapshot document."""
    if not isinstance(document, dict):
        logger.warning("Snapshot document is %s, not an object; no panels", type(document).__name__)
        return []

    sidebar = _sidebar(document)
    panel_meta = sidebar.get("panels")
    if not isinstance(panel_meta, dict):
        panel_meta = {}

    buckets: Dict[str, Panel] = {}
    for resolved in iter_groups(document):
        panel = buckets.get(resolved.panel_id)
        if panel is None:
            meta = panel_meta.get(resolved.panel_id)
            panel = Panel(
                id=resolved.panel_id,
                meta=meta if meta is not None else {"id": resolved.panel_id},
            )
            buckets[resolved.panel_id] = panel
        panel.groups.append(Group(raw=resolved.records, tree=build_tree(resolved.records)))

    nav = _nav_order(sidebar)
    ordered = [buckets[pid] for pid in nav if pid in buckets]
    listed = set(nav)
    ordered.extend(panel for pid, panel in buckets.items() if pid not in listed)
    return ordered


def build_snapshot(document: Any) -> Snapshot:
    """Parse a raw snapshot document into the display view."""
    if not isinstance(document, dict):
        return Snapshot()

    containers = document.get("containers")
    return Snapshot(
        id=document.get("id"),
        time=document.get("time"),
        containers=containers if isinstance(containers, dict) else {},
        sidebar=_sidebar(document),
        panels=group_panels(document),
    )


def snapshot_to_dict(snapshot: Snapshot) -> JsonDict:
    """``snapshot.model_dump()`` equivalent that copes with arbitrarily deep outlines."""
    data = snapshot.model_dump(exclude={"panels"})
    data["panels"] = [
        {
            "id": panel.id,
            "meta": panel.meta,
            "groups": [
                {"raw": list(group.raw), "tree": forest_to_dicts(group.tree)}
                for group in panel.groups
            ],
        }
        for panel in snapshot.panels
    ]
    return data


__all__ = ["ResolvedGroup", "iter_groups", "group_panels", "build_snapshot", "snapshot_to_dict"]
