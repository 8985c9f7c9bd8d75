"""Tests for tree flattening and block content normalization."""

from outline_sync.core.tree.flatten import (
    FlatEntry,
    expand_references,
    flatten_tree,
    is_content_block,
    strip_sync_properties,
)
from outline_sync.models.document import BlockNode, BlockRef


def _tree() -> list[BlockNode]:
    return [
        BlockNode("a", "A", [BlockNode("a1", "A1"), BlockNode("a2", "A2", [BlockNode("x", "X")])]),
        BlockNode("b", "B"),
    ]


def test_flatten_tree_is_depth_first_parents_first() -> None:
    entries = flatten_tree(_tree(), "page", key=lambda n: n.local_id)

    assert [e.id for e in entries] == ["a", "a1", "a2", "x", "b"]
    assert entries[0] == FlatEntry(id="a", parent_id="page", order=0, content="A")
    assert entries[2] == FlatEntry(id="a2", parent_id="a", order=1, content="A2")
    assert entries[3].parent_id == "a2"
    assert entries[4].order == 1


def test_flatten_tree_empty() -> None:
    assert flatten_tree([], "page", key=lambda n: n.local_id) == []


def test_expand_references_resolves_from_lookup() -> None:
    lookup = {
        "c": BlockNode("c", "child", [BlockRef("gc")]),
        "gc": BlockNode("gc", "grandchild"),
    }
    nodes = expand_references([BlockNode("p", "parent", [BlockRef("c")])], lookup)

    child = nodes[0].children[0]
    assert isinstance(child, BlockNode)
    assert child.content == "child"
    assert child.children == [BlockNode("gc", "grandchild")]


def test_expand_references_drops_unresolved() -> None:
    nodes = expand_references([BlockRef("missing"), BlockNode("p", "P", [BlockRef("gone")])])
    assert nodes == [BlockNode("p", "P")]


def test_expand_references_does_not_share_nodes() -> None:
    original = BlockNode("p", "P", [BlockNode("c", "C")])
    expanded = expand_references([original])
    expanded[0].children.clear()
    assert len(original.children) == 1


def test_is_content_block() -> None:
    assert is_content_block(BlockNode("a", "hello"))
    assert is_content_block(BlockNode("a", ""))
    assert is_content_block(BlockNode("a", "hello\nid:: 123"))
    assert not is_content_block(BlockNode("a", "title:: Notes"))
    assert not is_content_block(BlockNode("a", "title:: Notes\nsamepage:: abc\n"))


def test_strip_sync_properties() -> None:
    assert strip_sync_properties("hello\nid:: 6512-ab") == "hello"
    assert strip_sync_properties("id:: 1\nhello") == "hello"
    assert strip_sync_properties("hello\nsamepage:: p1\n") == "hello"
    assert strip_sync_properties("status:: open") == "status:: open"
    assert strip_sync_properties("plain") == "plain"
