"""Tests for the document models."""

import pytest

from outline_sync.models.document import Annotation, FlatDocument
from outline_sync.models.ops import CreateBlock, DeleteBlock, MoveBlock, RenamePage, describe_op


def test_shifted_copies_attributes() -> None:
    anno = Annotation("link", 2, 5, {"href": "x"})
    moved = anno.shifted(3)
    moved.attributes["href"] = "y"
    assert (moved.start, moved.end) == (5, 8)
    assert anno.attributes == {"href": "x"}


def test_validate_accepts_ranges_inside_content() -> None:
    FlatDocument("abc", [Annotation("bold", 0, 3), Annotation("block", 3, 3)]).validate()


@pytest.mark.parametrize(("start", "end"), [(-1, 2), (2, 1), (0, 4)])
def test_validate_rejects_out_of_bounds(start: int, end: int) -> None:
    with pytest.raises(ValueError, match="out of bounds"):
        FlatDocument("abc", [Annotation("bold", start, end)]).validate()


def test_from_dict_reads_wire_format() -> None:
    doc = FlatDocument.from_dict(
        {
            "content": "Title",
            "annotations": [
                {"type": "metadata", "start": 0, "end": 5, "attributes": {"title": "Title"}},
                {"type": "future-type", "start": 1, "end": 2},
            ],
        }
    )
    assert doc.annotations[0].attributes == {"title": "Title"}
    assert doc.annotations[1].type == "future-type"
    assert doc.annotations[1].attributes == {}
    assert FlatDocument.from_dict(doc.to_dict()) == doc


def test_from_dict_validates() -> None:
    with pytest.raises(ValueError):
        FlatDocument.from_dict(
            {"content": "", "annotations": [{"type": "bold", "start": 0, "end": 1}]}
        )


def test_describe_op_names_target() -> None:
    assert describe_op(DeleteBlock("b1")) == ("remove block", "b1")
    assert describe_op(CreateBlock("g1", "p", 0, "x")) == ("insert block", "g1")
    assert describe_op(MoveBlock("b1", "g1", "p", 2)) == ("move block", "g1")
    assert describe_op(RenamePage("p", "Old", "New")) == ("rename page", "p")
