"""Store handles shared by the encoder and reconciler."""

import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from outline_sync.config import DEFAULT_GRAPH
from outline_sync.core.database.schema import migrate_schema
from outline_sync.core.database.stores import SqliteIdentifierStore, SqliteStateStore
from outline_sync.protocols import (
    IdentifierMappingStore,
    InlineMarkupCodec,
    NotebookAdapter,
    StateStore,
)


@dataclass
class SyncContext:
    """Everything a sync pass needs: the host notebook, stores and markup codec."""

    notebook: NotebookAdapter
    id_map: IdentifierMappingStore
    states: StateStore
    codec: InlineMarkupCodec


@asynccontextmanager
async def open_sync_context(
    db_path: Path | str,
    *,
    notebook: NotebookAdapter,
    codec: InlineMarkupCodec,
    graph: str = DEFAULT_GRAPH,
) -> AsyncIterator[SyncContext]:
    """Open the sync database on page-sync start, close it on teardown."""
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    try:
        migrate_schema(conn)
        logger.debug("Opened sync database {} (graph {!r})", db_path, graph)
        yield SyncContext(
            notebook=notebook,
            id_map=SqliteIdentifierStore(conn),
            states=SqliteStateStore(conn, graph=graph),
            codec=codec,
        )
    finally:
        conn.close()
