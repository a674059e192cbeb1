"""Sidebery snapshot MCP server implementation using FastMCP."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator

from fastmcp import Context, FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from .config import ServerConfig, setup_logging
from .models import NodeAddress, SnapshotError
from .snapshot import SnapshotService, SnapshotStore
from .snapshot.panel_grouper import snapshot_to_dict

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastMCP) -> AsyncIterator[SnapshotService]:
    """Open the snapshot store for the server's lifetime and close it on exit."""
    logger.info("Starting Sidebery snapshot MCP server")

    config = ServerConfig()  # type: ignore[call-arg]
    storage_config = config.get_storage_config()

    store = SnapshotStore(storage_config)
    store.open()
    logger.info(f"Snapshot store ready at {storage_config.db_path}")

    try:
        yield SnapshotService(store, storage_config)
    finally:
        logger.info("Shutting down Sidebery snapshot MCP server")
        store.close()


# Initialize FastMCP server
mcp = FastMCP(
    "Sidebery Snapshot MCP Server",
    version="0.1.0",
    instructions=(
        "Browse and edit Sidebery tab snapshots. Read a snapshot with "
        "sidebery_get_parsed_snapshot, then address nodes by panel id, group index "
        "and the node's indexInGroup/lvl from that view. Re-read after every edit: "
        "indexes shift once records are removed."
    ),
    lifespan=lifespan,
)


def get_service(ctx: Context) -> SnapshotService:
    """Get the snapshot service created by the lifespan."""
    service = ctx.request_context.lifespan_context
    if not isinstance(service, SnapshotService):
        raise RuntimeError("Snapshot service not initialized. Server not started properly.")
    return service


async def _call(operation: str, func: Any, *args: Any, **kwargs: Any) -> Any:
    """Run a blocking service call off the event loop, logging failures."""
    try:
        return await asyncio.to_thread(func, *args, **kwargs)
    except SnapshotError as e:
        logger.warning(f"{operation} failed: {type(e).__name__}: {e}")
        raise
    except Exception as e:  # noqa: BLE001
        logger.error(f"{operation} failed unexpectedly: {e}")
        raise


@mcp.custom_route("/health", methods=["GET"])
async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()})


@mcp.tool(name="sidebery_upload_snapshot", description="Store a Sidebery snapshot export")
async def upload_snapshot(document: dict[str, Any] | str, ctx: Context) -> dict:
    """Store a Sidebery snapshot export.

    Args:
        document: The snapshot as a JSON object or JSON text. Its ``id`` and
            ``time`` are kept when present.

    Returns:
        Dictionary with the stored id, time, created_at and previewTitle
    """
    service = get_service(ctx)
    meta = await _call("upload_snapshot", service.upload, document)
    return meta.model_dump()


@mcp.tool(name="sidebery_list_snapshots", description="List stored snapshots, newest first")
async def list_snapshots(ctx: Context) -> dict:
    service = get_service(ctx)
    snapshots = await _call("list_snapshots", service.list_snapshots)
    return {"snapshots": [meta.model_dump() for meta in snapshots], "total": len(snapshots)}


@mcp.tool(name="sidebery_get_snapshot", description="Fetch a stored snapshot document verbatim")
async def get_snapshot(snapshot_id: str, ctx: Context) -> dict:
    service = get_service(ctx)
    stored = await _call("get_snapshot", service.get_raw, snapshot_id)
    return stored.model_dump()


@mcp.tool(
    name="sidebery_get_parsed_snapshot",
    description="Fetch a snapshot as ordered panels -> groups -> tab trees",
)
async def get_parsed_snapshot(snapshot_id: str, ctx: Context) -> dict:
    """Fetch the parsed view of a snapshot.

    Each group carries ``raw`` (the stored tab records) and ``tree`` (nodes
    with ``tab``, ``children`` and ``indexInGroup``). Use the panel id, the
    group's position in ``groups`` and a node's ``indexInGroup``/``tab.lvl`` to
    address it in sidebery_delete_node.
    """
    service = get_service(ctx)
    snapshot = await _call("get_parsed_snapshot", service.get_parsed, snapshot_id)
    return snapshot_to_dict(snapshot)


@mcp.tool(name="sidebery_render_outline", description="Render a snapshot as a plain-text outline")
async def render_outline(snapshot_id: str, ctx: Context, panel_id: str | None = None) -> str:
    service = get_service(ctx)
    return await _call("render_outline", service.render_outline, snapshot_id, panel_id)


@mcp.tool(
    name="sidebery_replace_snapshot",
    description="Replace a stored snapshot document wholesale",
)
async def replace_snapshot(
    snapshot_id: str,
    raw: dict[str, Any] | str,
    ctx: Context,
    time: float | None = None,
) -> dict:
    """Replace a snapshot document.

    Args:
        snapshot_id: Snapshot to overwrite (created when missing)
        raw: Complete replacement document
        time: Snapshot time in epoch milliseconds (defaults to now)
    """
    service = get_service(ctx)
    meta = await _call("replace_snapshot", service.replace, snapshot_id, raw, time)
    return meta.model_dump()


@mcp.tool(name="sidebery_delete_snapshot", description="Delete a stored snapshot")
async def delete_snapshot(snapshot_id: str, ctx: Context) -> dict:
    service = get_service(ctx)
    deleted = await _call("delete_snapshot", service.delete_snapshot, snapshot_id)
    return {"success": True, "deleted": deleted, "snapshot_id": snapshot_id}


@mcp.tool(
    name="sidebery_delete_node",
    description="Delete a tab from a snapshot group, promoting its children or removing its subtree",
)
async def delete_node(
    snapshot_id: str,
    panel_id: str,
    group_index: int,
    index_in_group: int,
    ctx: Context,
    lvl: int = 0,
    delete_subtree: bool = False,
) -> dict:
    """Delete a tab node.

    Args:
        snapshot_id: Snapshot to edit
        panel_id: Panel id of the group (as in the parsed view)
        group_index: 0-based position of the group within that panel
        index_in_group: The node's indexInGroup
        lvl: The node's lvl as read (a mismatch means the address is stale)
        delete_subtree: True removes all descendants; False promotes them one level

    Returns:
        Dictionary with removed and relevelled record counts
    """
    service = get_service(ctx)
    address = NodeAddress(indexInGroup=index_in_group, lvl=lvl)
    return await _call(
        "delete_node",
        service.delete_node,
        snapshot_id,
        panel_id,
        group_index,
        address,
        delete_subtree,
    )


@mcp.tool(
    name="sidebery_delete_panel",
    description="Delete every group of a panel; the snapshot is removed when no panel remains",
)
async def delete_panel(snapshot_id: str, panel_id: str, ctx: Context) -> dict:
    service = get_service(ctx)
    return await _call("delete_panel", service.delete_panel, snapshot_id, panel_id)


def main() -> None:
    """Run the server over stdio (default) or HTTP."""
    config = ServerConfig()  # type: ignore[call-arg]
    setup_logging(config.log_level)

    if config.transport == "http":
        logger.info(f"Serving over HTTP on {config.host}:{config.port}")
        mcp.run(transport="http", host=config.host, port=config.port)
    else:
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
