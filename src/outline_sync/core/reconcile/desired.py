"""Rebuild the block tree described by a flat annotated document."""

from __future__ import annotations

from dataclasses import dataclass, field

from outline_sync.core.markup.serializer import annotations_for_block, render_annotations
from outline_sync.models.document import Annotation, AnnotationType, FlatDocument, ViewType

_VIEW_TYPES = {v.value for v in ViewType}


@dataclass
class DesiredBlock:
    """A block as the shared document wants it; `content` is raw markup."""

    identifier: str
    content: str
    children: list[DesiredBlock] = field(default_factory=list)
    view_type: ViewType = ViewType.BULLET


@dataclass
class DesiredTree:
    blocks: list[DesiredBlock]
    metadata: Annotation | None = None


def _insert_at_level(nodes: list[DesiredBlock], block: DesiredBlock, level: int) -> None:
    """Append `block` `level` steps down the rightmost branch (or as deep as it goes)."""
    while level > 0 and nodes:
        nodes = nodes[-1].children
        level -= 1
    nodes.append(block)


def build_desired_tree(doc: FlatDocument) -> DesiredTree:
    """Invert the encoder: blocks nest by their `level` attribute, in document order.

    Inline annotations belong to the most recent block whose range contains them;
    annotations outside every block are dropped. Each block's text is rendered back to
    raw markup with its inline annotations.
    """
    doc.validate()
    tree = DesiredTree(blocks=[])
    spans: list[tuple[DesiredBlock, Annotation, list[Annotation]]] = []

    for anno in doc.annotations:
        if anno.type == AnnotationType.BLOCK:
            view_type = anno.attributes.get("viewType")
            block = DesiredBlock(
                identifier=anno.attributes["identifier"],
                content=doc.content[anno.start : anno.end],
                view_type=ViewType(view_type) if view_type in _VIEW_TYPES else ViewType.BULLET,
            )
            spans.append((block, anno, []))
            _insert_at_level(tree.blocks, block, int(anno.attributes.get("level", 0)))
        elif anno.type == AnnotationType.METADATA:
            tree.metadata = anno
        else:
            for _block, span, inline in reversed(spans):
                if span.start <= anno.start and anno.end <= span.end:
                    inline.append(anno)
                    break

    for block, span, inline in spans:
        block.content = render_annotations(block.content, annotations_for_block(span, inline))
    return tree
