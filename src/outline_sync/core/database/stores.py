"""SQLite-backed identifier mapping and page state stores."""

import json
import sqlite3
import time
import uuid

from loguru import logger

from outline_sync.config import DEFAULT_GRAPH
from outline_sync.models.document import FlatDocument
from outline_sync.protocols import IdentifierMappingStore


class SqliteIdentifierStore:
    """Bijective local id <-> global id map in the `id_map` table."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    async def local_to_global(self, local_id: str) -> str:
        row = self._conn.execute(
            "SELECT global_id FROM id_map WHERE local_id = ?", (local_id,)
        ).fetchone()
        return row[0] if row else ""

    async def global_to_local(self, global_id: str) -> str:
        row = self._conn.execute(
            "SELECT local_id FROM id_map WHERE global_id = ?", (global_id,)
        ).fetchone()
        return row[0] if row else ""

    async def put(self, local_id: str, global_id: str) -> None:
        """Map local_id <-> global_id, evicting stale rows on either side."""
        try:
            self._conn.execute(
                "DELETE FROM id_map WHERE local_id = ? OR global_id = ?", (local_id, global_id)
            )
            self._conn.execute(
                "INSERT INTO id_map (local_id, global_id) VALUES (?, ?)", (local_id, global_id)
            )
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    async def remove(self, local_id: str, global_id: str) -> None:
        self._conn.execute(
            "DELETE FROM id_map WHERE local_id = ? OR global_id = ?", (local_id, global_id)
        )
        self._conn.commit()

    def items(self) -> list[tuple[str, str]]:
        """All (local_id, global_id) pairs, ordered by local id."""
        return self._conn.execute(
            "SELECT local_id, global_id FROM id_map ORDER BY local_id"
        ).fetchall()


class SqliteStateStore:
    """Last known shared state per page, namespaced by graph."""

    def __init__(self, conn: sqlite3.Connection, *, graph: str = DEFAULT_GRAPH) -> None:
        self._conn = conn
        self.graph = graph

    async def load(self, page_id: str) -> FlatDocument | None:
        row = self._conn.execute(
            "SELECT state FROM page_states WHERE graph = ? AND page_id = ?",
            (self.graph, page_id),
        ).fetchone()
        if row is None:
            return None
        return FlatDocument.from_dict(json.loads(row[0]))

    async def save(self, page_id: str, doc: FlatDocument) -> None:
        now_ms = int(time.time() * 1000)
        self._conn.execute(
            """INSERT OR REPLACE INTO page_states (graph, page_id, state, saved_at)
               VALUES (?, ?, ?, ?)""",
            (self.graph, page_id, json.dumps(doc.to_dict(), sort_keys=True), now_ms),
        )
        self._conn.commit()

    async def remove(self, page_id: str) -> None:
        self._conn.execute(
            "DELETE FROM page_states WHERE graph = ? AND page_id = ?", (self.graph, page_id)
        )
        self._conn.commit()


async def get_or_create_global_id(store: IdentifierMappingStore, local_id: str) -> str:
    """Return the global id of a local block, allocating and persisting one if needed."""
    global_id = await store.local_to_global(local_id)
    if global_id:
        return global_id
    global_id = str(uuid.uuid4())
    # Persisted before it is handed out, so peers never see an unmapped id.
    await store.put(local_id, global_id)
    logger.debug("Allocated global id {} for block {}", global_id, local_id)
    return global_id
