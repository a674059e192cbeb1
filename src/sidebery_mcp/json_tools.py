"""json_tools.py

Utility CLI for inspecting and pruning Sidebery snapshot JSON files offline.

Commands operate on one exported snapshot file:
  - show          (print the panel/group/tab outline)
  - panels        (list panel ids with group and tab counts, in display order)
  - delete-node   (remove one tab, promoting its children or dropping its subtree)
  - delete-panel  (remove every group of a panel)
  - import        (store the file in a snapshot database)
  - export        (write a stored snapshot back out to the file)

Example (drop a tab and everything nested under it):

  sidebery-json-tools snapshot.json \
    delete-node --panel p1 --group 0 --index 3 --lvl 1 --subtree

Node addresses come from `show`/`panels` output or from the parsed view served
by the MCP server. Re-read the file after each edit: indexes shift.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, NoReturn, Optional

from .models import NodeAddress, SnapshotError, StorageConfiguration
from .snapshot.mutator import delete_node, delete_panel
from .snapshot.panel_grouper import build_snapshot
from .snapshot.preview import render_outline
from .snapshot.service import SnapshotService
from .snapshot.storage import SnapshotStore
from .snapshot.tree_builder import iter_preorder

JsonDict = Dict[str, Any]


def die(msg: str) -> NoReturn:
    print(f"[sidebery_json_tools] ERROR: {msg}", file=sys.stderr)
    sys.exit(1)


def load_json(path: str) -> JsonDict:
    if not os.path.isfile(path):
        die(f"File not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            die(f"Failed to parse JSON from {path}: {e}")
    if not isinstance(data, dict):
        die(f"{path} does not hold a snapshot object")
    return data


def save_json(path: str, data: JsonDict) -> None:
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
        f.write("\n")
    os.replace(tmp, path)


def _open_service(db_path: str) -> SnapshotService:
    store = SnapshotStore(StorageConfiguration(db_path=Path(db_path)))
    store.open()
    return SnapshotService(store)


def cmd_show(args: argparse.Namespace) -> None:
    data = load_json(args.file)
    lines = render_outline(build_snapshot(data), args.panel)
    if not any(lines):
        if args.panel is not None:
            die(f"Panel not found: {args.panel}")
        print("[sidebery_json_tools] Snapshot has no panels.")
        return
    print("\n".join(lines).rstrip())


def cmd_panels(args: argparse.Namespace) -> None:
    data = load_json(args.file)
    snapshot = build_snapshot(data)
    for panel in snapshot.panels:
        tabs = sum(len(list(iter_preorder(group.tree))) for group in panel.groups)
        print(f"{panel.id}\tgroups={len(panel.groups)}\ttabs={tabs}")


def cmd_delete_node(args: argparse.Namespace) -> None:
    data = load_json(args.file)
    address = NodeAddress(indexInGroup=args.index, lvl=args.lvl)
    try:
        result = delete_node(data, args.panel, args.group, address, delete_subtree=args.subtree)
    except SnapshotError as e:
        die(str(e))

    save_json(args.file, result.document)
    mode = "and its subtree" if args.subtree else "(children promoted)"
    print(
        f"[sidebery_json_tools] Deleted tab {args.index} of {args.panel}/{args.group} {mode}: "
        f"removed={result.removed} relevelled={result.relevelled}"
    )


def cmd_delete_panel(args: argparse.Namespace) -> None:
    data = load_json(args.file)
    result = delete_panel(data, args.panel)

    if not result.remaining_panel_ids:
        print(
            f"[sidebery_json_tools] No panels would remain after deleting {args.panel!r}; "
            "the snapshot would be deleted. File left unchanged."
        )
        return
    if result.removed_groups == 0:
        die(f"Panel not found: {args.panel}")

    save_json(args.file, result.document)
    print(
        f"[sidebery_json_tools] Deleted panel {args.panel!r} ({result.removed_groups} groups). "
        f"Remaining: {', '.join(result.remaining_panel_ids)}"
    )


def cmd_import(args: argparse.Namespace) -> None:
    data = load_json(args.file)
    service = _open_service(args.db)
    try:
        meta = service.upload(data)
    except SnapshotError as e:
        die(str(e))
    finally:
        service.store.close()
    print(f"[sidebery_json_tools] Imported snapshot {meta.id} ({meta.previewTitle or 'untitled'})")


def cmd_export(args: argparse.Namespace) -> None:
    service = _open_service(args.db)
    try:
        stored = service.get_raw(args.id)
    except SnapshotError as e:
        die(str(e))
    finally:
        service.store.close()
    save_json(args.file, stored.raw)
    print(f"[sidebery_json_tools] Exported snapshot {stored.id} to {args.file}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sidebery-json-tools",
        description="Inspect and prune Sidebery snapshot JSON files (show/panels/delete/import/export).",
    )
    parser.add_argument("file", help="Path to a Sidebery snapshot JSON file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # show
    p_show = subparsers.add_parser("show", help="Print the snapshot outline")
    p_show.add_argument("--panel", help="Only render this panel id")
    p_show.set_defaults(func=cmd_show)

    # panels
    p_panels = subparsers.add_parser("panels", help="List panels in display order")
    p_panels.set_defaults(func=cmd_panels)

    # delete-node
    p_del = subparsers.add_parser(
        "delete-node", help="Delete a tab (children promoted unless --subtree)",
    )
    p_del.add_argument("--panel", required=True, help="Panel id owning the group")
    p_del.add_argument("--group", required=True, type=int, help="0-based group index within the panel")
    p_del.add_argument("--index", required=True, type=int, help="The tab's indexInGroup")
    p_del.add_argument("--lvl", required=True, type=int, help="The tab's lvl as last read")
    p_del.add_argument(
        "--subtree",
        action="store_true",
        help="Delete the tab's descendants too",
    )
    p_del.set_defaults(func=cmd_delete_node)

    # delete-panel
    p_panel = subparsers.add_parser("delete-panel", help="Delete every group of a panel")
    p_panel.add_argument("--panel", required=True, help="Panel id to delete")
    p_panel.set_defaults(func=cmd_delete_panel)

    # import
    p_import = subparsers.add_parser("import", help="Store the file in a snapshot database")
    p_import.add_argument("--db", required=True, help="SQLite database path")
    p_import.set_defaults(func=cmd_import)

    # export
    p_export = subparsers.add_parser("export", help="Write a stored snapshot to the file")
    p_export.add_argument("--db", required=True, help="SQLite database path")
    p_export.add_argument("--id", required=True, help="Snapshot id to export")
    p_export.set_defaults(func=cmd_export)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":  # pragma: no cover
    main()
