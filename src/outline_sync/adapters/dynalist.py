"""Dynalist documents as a host notebook.

Each Dynalist document is a shared page (page id = file id); its `root` node holds
the top-level blocks. Dynalist nodes have no properties, so they are kept as
`key:: value` lines in the node note.
"""

import asyncio
import re
from typing import Any

from loguru import logger

from outline_sync.adapters.dynalist_api import DynalistApiError
from outline_sync.core.tree.flatten import expand_references
from outline_sync.models.document import BlockNode, BlockRef, Page
from outline_sync.protocols import ApiProtocol

_NOTE_PROPERTY_RE = re.compile(r"^([a-z]+):: (.*)$")


def _parse_properties(note: str) -> dict[str, str]:
    props: dict[str, str] = {}
    for line in note.splitlines():
        m = _NOTE_PROPERTY_RE.match(line)
        if m:
            props[m.group(1)] = m.group(2)
    return props


def _set_note_property(note: str, key: str, value: str) -> str:
    lines = [line for line in note.splitlines() if not line.startswith(f"{key}:: ")]
    lines.append(f"{key}:: {value}")
    return "\n".join(lines)


def _nodes_to_blocks(raw_nodes: list[dict[str, Any]]) -> dict[str, BlockNode]:
    """Build a BlockNode per raw node; children stay BlockRefs until expanded."""
    return {
        raw["id"]: BlockNode(
            local_id=raw["id"],
            content=raw.get("content", ""),
            children=[BlockRef(cid) for cid in raw.get("children", [])],
            properties=_parse_properties(raw.get("note", "")),
        )
        for raw in raw_nodes
    }


class DynalistNotebook:
    """NotebookAdapter over the Dynalist API. Blocking calls run in a worker thread."""

    def __init__(self, api: ApiProtocol) -> None:
        self._api = api
        # node id -> file id, learned from reads and inserts
        self._owners: dict[str, str] = {}

    async def _call(self, path: str, args: dict[str, Any]) -> dict[str, Any]:
        return await asyncio.to_thread(self._api.call, path, args)

    async def _read_doc(self, file_id: str) -> dict[str, Any] | None:
        try:
            data = await self._call("doc/read", {"file_id": file_id})
        except DynalistApiError as e:
            if e.code == "NotFound":
                return None
            raise
        for raw in data.get("nodes", []):
            self._owners[raw["id"]] = file_id
        return data

    async def _edit(self, file_id: str, change: dict[str, Any]) -> dict[str, Any]:
        return await self._call("doc/edit", {"file_id": file_id, "changes": [change]})

    def _owner(self, local_id: str) -> str:
        try:
            return self._owners[local_id]
        except KeyError:
            msg = f"Unknown node {local_id!r}: its document has not been read"
            raise KeyError(msg) from None

    async def _documents(self) -> list[dict[str, Any]]:
        files = await self._call("file/list", {})
        return [f for f in files["files"] if f["type"] == "document"]

    async def get_page(self, page_id: str) -> Page | None:
        data = await self._read_doc(page_id)
        if data is None:
            return None
        return Page(id=page_id, title=data.get("title", ""))

    async def find_page(self, title: str) -> Page | None:
        for doc in await self._documents():
            if doc["title"] == title:
                return Page(id=doc["id"], title=doc["title"])
        return None

    async def get_block_tree(self, page_id: str) -> list[BlockNode]:
        data = await self._read_doc(page_id)
        if data is None:
            return []
        nodes = _nodes_to_blocks(data.get("nodes", []))
        root = nodes.get("root")
        if root is None:
            return []
        return expand_references(root.children, nodes)

    async def get_block(self, local_id: str) -> BlockNode | None:
        file_id = self._owners.get(local_id)
        if file_id is None:
            return None
        data = await self._read_doc(file_id)
        if data is None:
            return None
        nodes = _nodes_to_blocks(data.get("nodes", []))
        if local_id not in nodes:
            return None
        return expand_references([nodes[local_id]], nodes)[0]

    async def create_block(self, parent_id: str, order: int, content: str) -> str:
        # Top-level blocks hang off the document's root node.
        if parent_id in self._owners:
            file_id = self._owners[parent_id]
        else:
            file_id, parent_id = parent_id, "root"
        result = await self._edit(
            file_id,
            {"action": "insert", "parent_id": parent_id, "index": order, "content": content},
        )
        new_ids = result.get("new_node_ids", [])
        if not new_ids:
            return ""
        self._owners[new_ids[0]] = file_id
        return new_ids[0]

    async def update_block(self, local_id: str, content: str) -> None:
        await self._edit(
            self._owner(local_id), {"action": "edit", "node_id": local_id, "content": content}
        )

    async def move_block(self, local_id: str, parent_id: str, order: int) -> None:
        file_id = self._owner(local_id)
        target = "root" if parent_id == file_id else parent_id
        await self._edit(
            file_id, {"action": "move", "node_id": local_id, "parent_id": target, "index": order}
        )

    async def remove_block(self, local_id: str) -> None:
        await self._edit(self._owner(local_id), {"action": "delete", "node_id": local_id})
        self._owners.pop(local_id, None)

    async def rename_page(self, old_title: str, new_title: str) -> None:
        page = await self.find_page(old_title)
        if page is None:
            msg = f"No document titled {old_title!r}"
            raise LookupError(msg)
        await self._call(
            "file/edit",
            {"changes": [{"action": "edit", "type": "document", "file_id": page.id, "title": new_title}]},
        )
        logger.info("Renamed document {!r} to {!r}", old_title, new_title)

    async def set_block_property(self, local_id: str, key: str, value: str) -> None:
        file_id = self._owner(local_id)
        data = await self._read_doc(file_id)
        raw = next((n for n in (data or {}).get("nodes", []) if n["id"] == local_id), None)
        if raw is None:
            msg = f"Node {local_id!r} not found in {file_id!r}"
            raise LookupError(msg)
        note = _set_note_property(raw.get("note", ""), key, value)
        await self._edit(file_id, {"action": "edit", "node_id": local_id, "note": note})
