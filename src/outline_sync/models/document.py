"""Domain models for block trees and flat annotated documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ViewType(StrEnum):
    """How a block renders its children."""

    BULLET = "bullet"
    NUMBERED = "numbered"
    DOCUMENT = "document"


class AnnotationType(StrEnum):
    """Annotation types with a known meaning.

    Annotation.type stays a plain string so types added by newer peers pass through.
    """

    BLOCK = "block"
    METADATA = "metadata"
    BOLD = "bold"
    ITALICS = "italics"
    HIGHLIGHTING = "highlighting"
    STRIKETHROUGH = "strikethrough"
    LINK = "link"


@dataclass(frozen=True)
class BlockRef:
    """A child given only by its id (not expanded by the host)."""

    local_id: str


@dataclass
class BlockNode:
    """A single block in a host notebook tree."""

    local_id: str
    content: str
    children: list[BlockNode | BlockRef] = field(default_factory=list)
    view_type: ViewType | None = None
    properties: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Page:
    """A shared container: a page, or a block when parent_id is set."""

    id: str
    title: str
    parent_id: str | None = None


@dataclass
class Annotation:
    """A typed span over [start, end) of a flat document."""

    type: str
    start: int
    end: int
    attributes: dict[str, Any] = field(default_factory=dict)

    def shifted(self, delta: int) -> Annotation:
        return Annotation(
            type=self.type,
            start=self.start + delta,
            end=self.end + delta,
            attributes=dict(self.attributes),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "start": self.start,
            "end": self.end,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Annotation:
        return cls(
            type=data["type"],
            start=int(data["start"]),
            end=int(data["end"]),
            attributes=dict(data.get("attributes") or {}),
        )


@dataclass
class FlatDocument:
    """Flat text plus offset-addressed annotations (the shared representation)."""

    content: str = ""
    annotations: list[Annotation] = field(default_factory=list)

    def validate(self) -> None:
        """Raise ValueError if any annotation falls outside the content."""
        size = len(self.content)
        for anno in self.annotations:
            if not 0 <= anno.start <= anno.end <= size:
                msg = (
                    f"Annotation {anno.type!r} [{anno.start}, {anno.end}) "
                    f"out of bounds for content of length {size}"
                )
                raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "annotations": [a.to_dict() for a in self.annotations],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FlatDocument:
        doc = cls(
            content=data["content"],
            annotations=[Annotation.from_dict(a) for a in data.get("annotations", [])],
        )
        doc.validate()
        return doc
