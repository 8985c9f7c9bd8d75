"""Tests for rebuilding the desired tree from a flat document."""

import pytest

from outline_sync.core.reconcile.desired import build_desired_tree
from outline_sync.models.document import Annotation, FlatDocument, ViewType


def _block(start: int, end: int, identifier: str, level: int, view: str = "bullet") -> Annotation:
    return Annotation(
        "block", start, end, {"identifier": identifier, "level": level, "viewType": view}
    )


def test_levels_nest_under_previous_block() -> None:
    doc = FlatDocument(
        "TitleABCD",
        [
            Annotation("metadata", 0, 5, {"title": "Title", "parent": ""}),
            _block(5, 6, "a", 0),
            _block(6, 7, "b", 1),
            _block(7, 8, "c", 1),
            _block(8, 9, "d", 0),
        ],
    )

    tree = build_desired_tree(doc)

    assert [b.identifier for b in tree.blocks] == ["a", "d"]
    assert [b.identifier for b in tree.blocks[0].children] == ["b", "c"]
    assert [b.content for b in tree.blocks[0].children] == ["B", "C"]
    assert tree.metadata is not None
    assert tree.metadata.attributes["title"] == "Title"


def test_level_deeper_than_tree_attaches_to_deepest() -> None:
    doc = FlatDocument("AB", [_block(0, 1, "a", 0), _block(1, 2, "b", 3)])
    tree = build_desired_tree(doc)
    assert tree.blocks[0].children[0].identifier == "b"


def test_inline_annotations_render_into_content() -> None:
    doc = FlatDocument(
        "hello worldnext",
        [
            _block(0, 11, "a", 0),
            Annotation("bold", 0, 5),
            Annotation("link", 6, 11, {"href": "x"}),
            _block(11, 15, "b", 0),
        ],
    )

    tree = build_desired_tree(doc)

    assert tree.blocks[0].content == "**hello** [world](x)"
    assert tree.blocks[1].content == "next"


def test_inline_annotation_belongs_to_most_recent_block() -> None:
    doc = FlatDocument("abc", [_block(0, 3, "a", 0), _block(3, 3, "e", 0), Annotation("bold", 1, 3)])
    tree = build_desired_tree(doc)
    assert tree.blocks[0].content == "a**bc**"
    assert tree.blocks[1].content == ""


def test_annotation_outside_blocks_is_dropped() -> None:
    doc = FlatDocument("Titlex", [_block(5, 6, "a", 0), Annotation("bold", 0, 5)])
    assert build_desired_tree(doc).blocks[0].content == "x"


def test_view_type_defaults_to_bullet() -> None:
    doc = FlatDocument("ab", [_block(0, 1, "a", 0, "numbered"), _block(1, 2, "b", 0, "kanban")])
    tree = build_desired_tree(doc)
    assert tree.blocks[0].view_type == ViewType.NUMBERED
    assert tree.blocks[1].view_type == ViewType.BULLET


def test_no_metadata() -> None:
    assert build_desired_tree(FlatDocument()).metadata is None


def test_invalid_document_raises() -> None:
    with pytest.raises(ValueError):
        build_desired_tree(FlatDocument("a", [_block(0, 2, "a", 0)]))
