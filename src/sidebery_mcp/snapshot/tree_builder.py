"""Rebuild a group's outline from its flat, ``lvl``-indented tab records."""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Sequence, Tuple

from ..models import TreeNode
from .normalizer import level_of


def build_tree(records: Sequence[Any]) -> List[TreeNode]:
    """Return the forest of root nodes for one normalized group.

    Single pass with an ancestor stack. Each record first closes every open
    ancestor whose level is >= its own, so equal levels are always siblings.
    It then hangs under whatever remains on top of the stack (or becomes a
    root) and is pushed as a candidate parent for deeper records.

    A record with ``lvl > 0`` and no shallower predecessor becomes a root.
    """
    roots: List[TreeNode] = []
    stack: List[Tuple[int, TreeNode]] = []

    for index, record in enumerate(records):
        lvl = level_of(record)
        node = TreeNode(tab=record, indexInGroup=index)

        while stack and stack[-1][0] >= lvl:
            stack.pop()

        if stack:
            stack[-1][1].children.append(node)
        else:
            roots.append(node)

        stack.append((lvl, node))

    return roots


def iter_preorder(forest: Sequence[TreeNode]) -> Iterator[TreeNode]:
    """Yield every node of ``forest`` parent-first, in sibling order."""
    pending = list(reversed(forest))
    while pending:
        node = pending.pop()
        yield node
        pending.extend(reversed(node.children))


def subtree_size(node: TreeNode) -> int:
    """Number of records covered by ``node`` and all of its descendants."""
    return sum(1 for _ in iter_preorder([node]))


def forest_to_dicts(forest: Sequence[TreeNode]) -> List[Dict[str, Any]]:
    """Plain-dict copy of ``forest`` built without recursion.

    Same shape as ``TreeNode.model_dump()``, which gives up on outlines nested
    a few hundred levels deep.
    """
    roots: List[Dict[str, Any]] = []
    pending: List[Tuple[TreeNode, List[Dict[str, Any]]]] = [
        (node, roots) for node in reversed(forest)
    ]
    while pending:
        node, siblings = pending.pop()
        entry: Dict[str, Any] = {"tab": node.tab, "children": [], "indexInGroup": node.indexInGroup}
        siblings.append(entry)
        pending.extend((child, entry["children"]) for child in reversed(node.children))
    return roots


__all__ = ["build_tree", "iter_preorder", "subtree_size", "forest_to_dicts"]
