"""Encode a local block tree into a flat annotated document."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from loguru import logger

from outline_sync.core.database.stores import get_or_create_global_id
from outline_sync.core.sync.context import SyncContext
from outline_sync.core.tree.flatten import is_content_block, strip_sync_properties
from outline_sync.errors import MissingPageError
from outline_sync.models.document import (
    Annotation,
    AnnotationType,
    BlockNode,
    BlockRef,
    FlatDocument,
    ViewType,
)
from outline_sync.protocols import IdentifierMappingStore, InlineMarkupCodec


@dataclass
class _Buffer:
    parts: list[str] = field(default_factory=list)
    annotations: list[Annotation] = field(default_factory=list)
    length: int = 0

    def append(self, text: str) -> None:
        self.parts.append(text)
        self.length += len(text)


async def _encode_blocks(
    nodes: Sequence[BlockNode | BlockRef],
    out: _Buffer,
    *,
    id_map: IdentifierMappingStore,
    codec: InlineMarkupCodec,
    level: int,
    view_type: ViewType,
) -> None:
    for node in nodes:
        if isinstance(node, BlockRef):
            # Unexpanded references carry no content to share.
            continue
        identifier = await get_or_create_global_id(id_map, node.local_id)
        text, inline = codec.decode(strip_sync_properties(node.content))

        start = out.length
        out.annotations.append(
            Annotation(
                type=AnnotationType.BLOCK,
                start=start,
                end=start + len(text),
                attributes={"identifier": identifier, "level": level, "viewType": str(view_type)},
            )
        )
        out.annotations.extend(a.shifted(start) for a in inline)
        out.append(text)

        await _encode_blocks(
            node.children,
            out,
            id_map=id_map,
            codec=codec,
            level=level + 1,
            view_type=node.view_type or view_type,
        )


async def encode_blocks(
    nodes: Sequence[BlockNode | BlockRef],
    *,
    id_map: IdentifierMappingStore,
    codec: InlineMarkupCodec,
    start: int = 0,
) -> tuple[str, list[Annotation]]:
    """Encode blocks depth-first into (content, annotations), offsets starting at `start`."""
    out = _Buffer(length=start)
    await _encode_blocks(nodes, out, id_map=id_map, codec=codec, level=0, view_type=ViewType.BULLET)
    return "".join(out.parts), out.annotations


async def encode_page(ctx: SyncContext, page_id: str) -> FlatDocument:
    """Compute the shared document for a local page.

    The document starts with the title, covered by a `metadata` annotation holding
    the title and the global id of the container's parent ("" for top-level pages).
    Each content block then contributes its plain text, a `block` annotation with its
    identifier, nesting level and inherited view type, and its inline annotations.

    New global ids are persisted as they are allocated. Re-encoding an unchanged
    tree yields an identical document.

    Raises:
        MissingPageError: The page does not exist locally.
    """
    page = await ctx.notebook.get_page(page_id)
    if page is None:
        raise MissingPageError(page_id)

    parent = ""
    if page.parent_id:
        parent = await get_or_create_global_id(ctx.id_map, page.parent_id)

    tree = [n for n in await ctx.notebook.get_block_tree(page_id) if is_content_block(n)]
    body, annotations = await encode_blocks(
        tree, id_map=ctx.id_map, codec=ctx.codec, start=len(page.title)
    )

    doc = FlatDocument(
        content=page.title + body,
        annotations=[
            Annotation(
                type=AnnotationType.METADATA,
                start=0,
                end=len(page.title),
                attributes={"title": page.title, "parent": parent},
            ),
            *annotations,
        ],
    )
    doc.validate()
    logger.debug(
        "Encoded page {}: {} chars, {} annotations", page_id, len(doc.content), len(doc.annotations)
    )
    return doc
