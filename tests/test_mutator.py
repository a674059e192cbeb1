from __future__ import annotations

import copy

import pytest
from conftest import tab

from sidebery_mcp.models import NodeAddress, NotFoundError
from sidebery_mcp.snapshot.mutator import delete_node, delete_panel, descendant_end, find_group
from sidebery_mcp.snapshot.panel_grouper import group_panels


def _doc(records, panel="p1"):
    return {"tabs": [[[records]]], "sidebar": {"nav": [panel]}}


def _levels(document, panel="p1", group=0):
    slot = find_group(document, panel, group)
    return [(record["url"], record.get("lvl", 0)) for record in slot.records]


def _scenario():
    return _doc([tab("a", 0, "p1"), tab("b", 1), tab("c", 1), tab("d", 0)])


def test_delete_node_promotes_children():
    result = delete_node(_scenario(), "p1", 0, NodeAddress(indexInGroup=0, lvl=0))
    assert _levels(result.document) == [("b", 0), ("c", 0), ("d", 0)]
    assert (result.removed, result.relevelled) == (1, 2)


def test_delete_node_with_subtree():
    result = delete_node(
        _scenario(), "p1", 0, NodeAddress(indexInGroup=0, lvl=0), delete_subtree=True
    )
    assert _levels(result.document) == [("d", 0)]
    assert (result.removed, result.relevelled) == (3, 0)


def test_promote_only_touches_the_contiguous_descendant_run():
    document = _doc(
        [tab("a", 0, "p1"), tab("b", 1), tab("c", 2), tab("d", 3), tab("e", 1), tab("f", 2)]
    )
    result = delete_node(document, "p1", 0, NodeAddress(indexInGroup=1, lvl=1))
    assert _levels(result.document) == [("a", 0), ("c", 1), ("d", 2), ("e", 1), ("f", 2)]
    assert result.relevelled == 2


def test_subtree_removal_is_one_contiguous_span():
    document = _doc(
        [tab("a", 0, "p1"), tab("b", 1), tab("c", 2), tab("d", 3), tab("e", 1), tab("f", 2)]
    )
    result = delete_node(
        document, "p1", 0, NodeAddress(indexInGroup=1, lvl=1), delete_subtree=True
    )
    assert _levels(result.document) == [("a", 0), ("e", 1), ("f", 2)]
    assert result.removed == 3


def test_deleting_a_leaf_changes_nothing_else():
    result = delete_node(_scenario(), "p1", 0, NodeAddress(indexInGroup=2, lvl=1))
    assert _levels(result.document) == [("a", 0), ("b", 1), ("d", 0)]
    assert result.relevelled == 0


def test_input_document_is_not_modified():
    document = _scenario()
    before = copy.deepcopy(document)
    delete_node(document, "p1", 0, NodeAddress(indexInGroup=0, lvl=0))
    delete_panel(document, "p1")
    assert document == before


def test_opaque_fields_survive(document):
    result = delete_node(document, "p1", 0, NodeAddress(indexInGroup=1, lvl=1))
    first = find_group(result.document, "p1", 0).records[0]
    assert first["cookieStoreId"] == "firefox-default"
    assert result.document["containers"] == document["containers"]
    assert result.document["sidebar"] == document["sidebar"]


def test_stale_level_is_rejected():
    with pytest.raises(NotFoundError, match="stale"):
        delete_node(_scenario(), "p1", 0, NodeAddress(indexInGroup=1, lvl=0))


@pytest.mark.parametrize(
    "panel, group, index",
    [
        ("p1", 0, 4),
        ("p1", 1, 0),
        ("p1", -1, 0),
        ("nope", 0, 0),
        ("p1", 0, -1),
    ],
)
def test_unresolvable_addresses_raise_not_found(panel, group, index):
    with pytest.raises(NotFoundError):
        delete_node(_scenario(), panel, group, NodeAddress(indexInGroup=index, lvl=0))


def test_group_index_follows_grouper_numbering():
    document = {
        "tabs": [
            [[tab("a", 0, "p1")], [tab("b", 0, "p2")], [tab("c", 0, "p1"), tab("c2", 1)]],
        ],
    }
    result = delete_node(document, "p1", 1, NodeAddress(indexInGroup=0, lvl=0), delete_subtree=True)
    panels = {panel.id: panel for panel in group_panels(result.document)}
    assert [len(group.raw) for group in panels["p1"].groups] == [1]
    assert panels["p1"].groups[0].raw[0]["url"] == "a"


def test_single_tab_group_is_written_back():
    document = {"tabs": [tab("only", 0, "p1"), [[tab("other", 0, "p2")]]]}
    result = delete_node(document, "p1", 0, NodeAddress(indexInGroup=0, lvl=0))
    assert result.document["tabs"][0] == []
    assert [panel.id for panel in group_panels(result.document)] == ["p2"]


def test_descendant_end():
    records = [tab("a", 0), tab("b", 1), tab("c", 2), tab("d", 1), tab("e", 0)]
    assert descendant_end(records, 0) == 4
    assert descendant_end(records, 1) == 3
    assert descendant_end(records, 4) == 5


def test_delete_panel_drops_emptied_collections(document):
    result = delete_panel(document, "p2")
    assert result.removed_groups == 1
    assert result.remaining_panel_ids == ["p1"]
    assert result.document["tabs"] == [[document["tabs"][0][0]]]


def test_delete_panel_keeps_other_groups_in_order():
    document = {
        "tabs": [
            [[tab("a", 0, "p1")], [tab("b", 0, "p2")], [tab("c", 0, "p1")]],
            [[tab("d", 0, "p2")]],
            [[tab("e", 0, "p3")]],
        ],
    }
    result = delete_panel(document, "p2")
    assert result.removed_groups == 2
    assert result.remaining_panel_ids == ["p1", "p3"]
    urls = [group.raw[0]["url"] for panel in group_panels(result.document) for group in panel.groups]
    assert urls == ["a", "c", "e"]
    assert len(result.document["tabs"]) == 2


def test_delete_last_panel_leaves_nothing(document):
    first = delete_panel(document, "p1")
    second = delete_panel(first.document, "p2")
    assert second.remaining_panel_ids == []
    assert second.document["tabs"] == []


def test_delete_unknown_panel_is_a_no_op(document):
    result = delete_panel(document, "missing")
    assert result.removed_groups == 0
    assert result.remaining_panel_ids == ["p1", "p2"]
    assert result.document == document


def test_delete_node_edits_unwrapped_list_of_groups_in_place():
    group = [tab("a", 0, "p1"), tab("b", 1)]
    other = [tab("x", 0, "p9")]
    document = {"tabs": [[[[group, other]]]]}

    result = delete_node(document, "p1", 0, NodeAddress(indexInGroup=0, lvl=0))

    wrapper = result.document["tabs"][0][0][0]
    assert wrapper[0] == [tab("b", 0)]
    assert wrapper[1] == other
    assert _levels(result.document) == [("b", 0)]


def test_delete_panel_on_single_tab_document():
    document = {"tabs": tab("only", 0, "p1")}

    kept = delete_panel(document, "p2")
    assert kept.removed_groups == 0
    assert kept.document["tabs"] == document["tabs"]
    assert kept.remaining_panel_ids == ["p1"]

    dropped = delete_panel(document, "p1")
    assert dropped.removed_groups == 1
    assert dropped.document["tabs"] == []
    assert dropped.remaining_panel_ids == []


def test_delete_panel_when_window_is_a_bare_group():
    document = {
        "tabs": [
            [tab("a", 0, "p1"), tab("b", 1)],
            [[tab("c", 0, "p2")]],
        ],
    }
    result = delete_panel(document, "p1")
    assert result.removed_groups == 1
    assert result.document["tabs"] == [[[tab("c", 0, "p2")]]]
    assert result.remaining_panel_ids == ["p2"]

    kept = delete_panel(document, "p2")
    assert kept.document["tabs"][0] == document["tabs"][0]
    assert kept.remaining_panel_ids == ["p1"]
