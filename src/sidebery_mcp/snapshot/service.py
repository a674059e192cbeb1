"""Snapshot service - parsed views and structural edit intents."""

from typing import Any

from pydantic import ValidationError

from ..models import NodeAddress, NotFoundError, Snapshot
from .mutator import delete_node as apply_delete_node
from .mutator import delete_panel as apply_delete_panel
from .panel_grouper import build_snapshot
from .preview import render_outline
from .service_core import SnapshotServiceCore


class SnapshotService(SnapshotServiceCore):
    """Snapshot service with the read projection and the edit intents.

    Every edit is fetch raw -> mutate a copy -> put the whole document back.
    Nothing wraps those two storage calls, so concurrent edits to one snapshot
    race and the last write wins.
    """

    def get_parsed(self, snapshot_id: str) -> Snapshot:
        """Derive the panel/group/tree view from the stored document."""
        stored = self._require(snapshot_id)
        return build_snapshot(stored.raw)

    def render_outline(self, snapshot_id: str, panel_id: str | None = None) -> str:
        """Plain-text outline of a stored snapshot."""
        return "\n".join(render_outline(self.get_parsed(snapshot_id), panel_id)).rstrip() + "\n"

    def delete_node(
        self,
        snapshot_id: str,
        panel_id: str,
        group_index: int,
        address: NodeAddress | dict[str, Any],
        delete_subtree: bool = False,
    ) -> dict[str, Any]:
        """Delete one tab (promoting its children) or its whole subtree.

        Args:
            snapshot_id: Stored snapshot to edit
            panel_id: Panel owning the group
            group_index: 0-based group number within the panel, as listed by get_parsed
            address: ``indexInGroup`` and ``lvl`` of the node as last read
            delete_subtree: Remove descendants too instead of promoting them

        Raises:
            NotFoundError: unknown snapshot, group or a stale node address
        """
        if not isinstance(address, NodeAddress):
            try:
                address = NodeAddress.model_validate(address)
            except ValidationError as err:
                raise NotFoundError(
                    f"Invalid node address {address!r}: {err}", snapshot_id=snapshot_id
                ) from err

        stored = self._require(snapshot_id)
        result = apply_delete_node(
            stored.raw, panel_id, group_index, address, delete_subtree=delete_subtree
        )
        self.store.put(snapshot_id, result.document, stored.time)

        mode = "subtree" if delete_subtree else "node"
        self.log.info(
            f"Deleted {mode} at {panel_id}/{group_index}/{address.indexInGroup} in {snapshot_id}: "
            f"removed={result.removed} relevelled={result.relevelled}"
        )
        return {
            "success": True,
            "snapshot_id": snapshot_id,
            "removed": result.removed,
            "relevelled": result.relevelled,
        }

    def delete_panel(self, snapshot_id: str, panel_id: str) -> dict[str, Any]:
        """Remove every group of a panel; drops the snapshot when nothing is left.

        Raises:
            NotFoundError: unknown snapshot
        """
        stored = self._require(snapshot_id)
        result = apply_delete_panel(stored.raw, panel_id)

        response: dict[str, Any] = {
            "success": True,
            "snapshot_id": snapshot_id,
            "removed_groups": result.removed_groups,
            "remaining_panel_ids": result.remaining_panel_ids,
            "snapshotDeleted": False,
        }

        if not result.remaining_panel_ids:
            self.store.delete(snapshot_id)
            self.log.info(f"No panels left after deleting {panel_id}; snapshot {snapshot_id} removed")
            response["snapshotDeleted"] = True
            return response

        if result.removed_groups == 0:
            self.log.warning(f"Panel {panel_id} has no groups in snapshot {snapshot_id}; nothing written")
            return response

        self.store.put(snapshot_id, result.document, stored.time)
        self.log.info(
            f"Deleted panel {panel_id} from {snapshot_id} ({result.removed_groups} groups)"
        )
        return response
