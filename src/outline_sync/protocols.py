"""Protocols for the host notebook and the stores the sync core depends on."""

from typing import Any, Protocol, runtime_checkable

from outline_sync.models.document import Annotation, BlockNode, FlatDocument, Page


@runtime_checkable
class ApiProtocol(Protocol):
    """Protocol for Dynalist API clients."""

    def call(self, path: str, args: dict[str, Any]) -> dict[str, Any]:
        """Invoke an API endpoint and return the JSON response."""
        ...


@runtime_checkable
class NotebookAdapter(Protocol):
    """Read/write access to the host notebook's block tree."""

    async def get_page(self, page_id: str) -> Page | None:
        """Return the shared container, or None if it does not exist."""
        ...

    async def find_page(self, title: str) -> Page | None:
        """Return the page with the given title, or None."""
        ...

    async def get_block_tree(self, page_id: str) -> list[BlockNode]:
        """Return the top-level blocks under the container, fully expanded."""
        ...

    async def get_block(self, local_id: str) -> BlockNode | None:
        ...

    async def create_block(self, parent_id: str, order: int, content: str) -> str:
        """Insert a block at position `order` under `parent_id`, return its local id."""
        ...

    async def update_block(self, local_id: str, content: str) -> None:
        ...

    async def move_block(self, local_id: str, parent_id: str, order: int) -> None:
        ...

    async def remove_block(self, local_id: str) -> None:
        ...

    async def rename_page(self, old_title: str, new_title: str) -> None:
        ...

    async def set_block_property(self, local_id: str, key: str, value: str) -> None:
        ...


@runtime_checkable
class IdentifierMappingStore(Protocol):
    """Bijection between local block ids and global ids. Unmapped ids yield ""."""

    async def local_to_global(self, local_id: str) -> str:
        ...

    async def global_to_local(self, global_id: str) -> str:
        ...

    async def put(self, local_id: str, global_id: str) -> None:
        ...

    async def remove(self, local_id: str, global_id: str) -> None:
        ...


@runtime_checkable
class StateStore(Protocol):
    """Persisted shared state per page."""

    async def load(self, page_id: str) -> FlatDocument | None:
        ...

    async def save(self, page_id: str, doc: FlatDocument) -> None:
        ...

    async def remove(self, page_id: str) -> None:
        ...


@runtime_checkable
class InlineMarkupCodec(Protocol):
    """Convert one block's raw markup into plain text plus inline annotations."""

    def decode(self, raw: str) -> tuple[str, list[Annotation]]:
        ...
