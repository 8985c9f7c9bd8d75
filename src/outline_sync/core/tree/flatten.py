"""Tree flattening and block content normalization."""

import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from outline_sync.models.document import BlockNode, BlockRef

_PROPERTY_LINE_RE = re.compile(r"[a-z]+:: [^\n]+\n?")
_SYNC_PROPERTY_RE = re.compile(r"^(?:id|title|samepage):: [^\n]*(?:\n|\Z)", re.MULTILINE)


@dataclass(frozen=True)
class FlatEntry:
    """A node stripped of its children, with its position in the tree."""

    id: str
    parent_id: str
    order: int
    content: str


def expand_references(
    nodes: Iterable[BlockNode | BlockRef],
    lookup: Mapping[str, BlockNode] | None = None,
) -> list[BlockNode]:
    """Replace BlockRef children by the nodes they reference.

    References that cannot be resolved (no lookup, or id not in it) are dropped.
    """
    result: list[BlockNode] = []
    for node in nodes:
        if isinstance(node, BlockRef):
            if lookup is None or node.local_id not in lookup:
                continue
            node = lookup[node.local_id]
        result.append(
            BlockNode(
                local_id=node.local_id,
                content=node.content,
                children=list(expand_references(node.children, lookup)),
                view_type=node.view_type,
                properties=dict(node.properties),
            )
        )
    return result


def flatten_tree(
    nodes: Sequence[Any], parent_id: str, *, key: Callable[[Any], str]
) -> list[FlatEntry]:
    """Flatten a tree depth-first, parents before their children.

    Args:
        nodes: Top-level nodes; each has `content` and expanded `children`.
        parent_id: Id recorded as the parent of the top-level nodes.
        key: Returns the id of a node.

    Returns:
        One FlatEntry per node; `order` is the zero-based index among siblings.
    """
    result: list[FlatEntry] = []
    for order, node in enumerate(nodes):
        node_id = key(node)
        result.append(FlatEntry(id=node_id, parent_id=parent_id, order=order, content=node.content))
        result.extend(flatten_tree(node.children, node_id, key=key))
    return result


def is_content_block(node: BlockNode) -> bool:
    """False for blocks that hold nothing but `key:: value` property lines."""
    if not node.content:
        return True
    return bool(_PROPERTY_LINE_RE.sub("", node.content))


def strip_sync_properties(content: str) -> str:
    """Remove the id/title/samepage property lines and trailing newlines."""
    return _SYNC_PROPERTY_RE.sub("", content).rstrip("\n")
