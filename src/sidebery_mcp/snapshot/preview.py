"""Human-readable previews of snapshots.

- :func:`extract_preview_title` picks a title for snapshot listings.
- :func:`render_outline` renders the parsed view as indented text lines.

Both are display helpers only; nothing in the read or write path depends on
their output.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..models import Panel, Snapshot, TabRecord, TreeNode

JsonDict = Dict[str, Any]

# Keys that usually hold the tab lists, searched before any other value.
_LIST_KEYS = ("tabs", "windows", "groups", "panels")

DEFAULT_CONTAINER_COLOR = "#888"


def _find_title(value: Any) -> Optional[str]:
    if not value:
        return None
    if isinstance(value, list):
        for item in value:
            found = _find_title(item)
            if found:
                return found
        return None
    if not isinstance(value, dict):
        return None

    title = value.get("title")
    url = value.get("url")
    if isinstance(title, str) and title.strip():
        return title.strip()
    if isinstance(url, str):
        return url

    for key in _LIST_KEYS:
        if value.get(key):
            found = _find_title(value[key])
            if found:
                return found
    for child in value.values():
        found = _find_title(child)
        if found:
            return found
    return None


def extract_preview_title(document: Any) -> str:
    """First tab title (or URL) found in ``document``, or ``""``."""
    try:
        return _find_title(document) or ""
    except RecursionError:
        return ""


def container_label(containers: JsonDict, container_id: Any) -> Optional[tuple[str, str]]:
    """Return ``(name, color)`` for a container id, or None when unknown."""
    if not container_id or not isinstance(containers, dict):
        return None
    container = containers.get(container_id)
    if not isinstance(container, dict):
        return None
    name = container.get("name") or str(container_id)
    color = container.get("color") or container.get("theme") or DEFAULT_CONTAINER_COLOR
    return str(name), str(color)


def _panel_name(panel: Panel) -> str:
    meta = panel.meta
    if isinstance(meta, dict):
        name = meta.get("name")
        if isinstance(name, str) and name.strip():
            return name.strip()
    return panel.id


def _as_record(tab: Any) -> TabRecord:
    if not isinstance(tab, dict):
        return TabRecord()
    try:
        return TabRecord.model_validate(tab)
    except ValidationError:
        # Keep whatever display fields are usable.
        return TabRecord(
            url=tab["url"] if isinstance(tab.get("url"), str) else None,
            title=tab["title"] if isinstance(tab.get("title"), str) else None,
        )


def _node_line(node: TreeNode, depth: int, containers: JsonDict) -> str:
    record = _as_record(node.tab)
    if node.children:
        bullet = "+" if record.folded else "-"
    else:
        bullet = "*"
    label = (record.title or "").strip() or record.url or "(untitled)"
    parts = [f"{'    ' * depth}{bullet} {label}"]
    if record.url and record.url != label:
        parts.append(f"<{record.url}>")
    container = container_label(containers, record.containerId)
    if container:
        parts.append(f"[{container[0]} {container[1]}]")
    return " ".join(parts)


def render_outline(snapshot: Snapshot, panel_id: Optional[str] = None) -> List[str]:
    """Render panels, groups and tab outlines as plain text lines.

    ``-`` marks an expanded parent, ``+`` a parent Sidebery exported folded,
    ``*`` a leaf. Pass ``panel_id`` to render a single panel.
    """
    lines: List[str] = []
    for panel in snapshot.panels:
        if panel_id is not None and panel.id != panel_id:
            continue
        lines.append(f"# {_panel_name(panel)} ({panel.id})")
        for group_index, group in enumerate(panel.groups):
            lines.append(f"## Group {group_index + 1}")
            pending: List[Tuple[TreeNode, int]] = [(root, 0) for root in reversed(group.tree)]
            while pending:
                node, depth = pending.pop()
                lines.append(_node_line(node, depth, snapshot.containers))
                pending.extend((child, depth + 1) for child in reversed(node.children))
        lines.append("")
    return lines


__all__ = ["extract_preview_title", "container_label", "render_outline"]
