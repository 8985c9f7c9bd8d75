"""Tests for the sqlite schema and stores."""

import sqlite3

import pytest

from outline_sync.core.database.schema import (
    SCHEMA_VERSION,
    get_metadata,
    get_schema_version,
    migrate_schema,
    set_metadata,
)
from outline_sync.core.database.stores import (
    SqliteIdentifierStore,
    SqliteStateStore,
    get_or_create_global_id,
)
from outline_sync.models.document import Annotation, FlatDocument


def test_migrate_schema_on_empty_db_creates_tables() -> None:
    conn = sqlite3.connect(":memory:")
    assert get_schema_version(conn) is None
    migrate_schema(conn)
    tables = {
        row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    }
    assert {"id_map", "page_states", "metadata"} <= tables
    assert get_schema_version(conn) == SCHEMA_VERSION


def test_migrate_schema_rejects_newer_version(conn: sqlite3.Connection) -> None:
    set_metadata(conn, "schema_version", str(SCHEMA_VERSION + 1))
    with pytest.raises(RuntimeError, match="newer than supported"):
        migrate_schema(conn)


def test_metadata_round_trip(conn: sqlite3.Connection) -> None:
    assert get_metadata(conn, "missing") is None
    set_metadata(conn, "k", "v")
    assert get_metadata(conn, "k") == "v"


@pytest.mark.asyncio
async def test_identifier_store_maps_both_ways(conn: sqlite3.Connection) -> None:
    store = SqliteIdentifierStore(conn)
    assert await store.local_to_global("a") == ""

    await store.put("a", "g1")

    assert await store.local_to_global("a") == "g1"
    assert await store.global_to_local("g1") == "a"
    assert store.items() == [("a", "g1")]


@pytest.mark.asyncio
async def test_put_evicts_stale_rows(conn: sqlite3.Connection) -> None:
    store = SqliteIdentifierStore(conn)
    await store.put("a", "g1")
    await store.put("b", "g2")

    await store.put("a2", "g1")
    await store.put("b", "g3")

    assert store.items() == [("a2", "g1"), ("b", "g3")]
    assert await store.local_to_global("a") == ""
    assert await store.global_to_local("g2") == ""


@pytest.mark.asyncio
async def test_remove_mapping(conn: sqlite3.Connection) -> None:
    store = SqliteIdentifierStore(conn)
    await store.put("a", "g1")
    await store.remove("a", "g1")
    assert store.items() == []


@pytest.mark.asyncio
async def test_get_or_create_global_id_is_stable(conn: sqlite3.Connection) -> None:
    store = SqliteIdentifierStore(conn)

    first = await get_or_create_global_id(store, "a")
    second = await get_or_create_global_id(store, "a")
    other = await get_or_create_global_id(store, "b")

    assert first == second
    assert first != other
    assert await store.global_to_local(first) == "a"


@pytest.mark.asyncio
async def test_state_store_round_trip(conn: sqlite3.Connection) -> None:
    states = SqliteStateStore(conn)
    doc = FlatDocument("Title", [Annotation("metadata", 0, 5, {"title": "Title", "parent": ""})])

    assert await states.load("p") is None
    await states.save("p", doc)
    assert await states.load("p") == doc

    await states.save("p", FlatDocument("New"))
    assert await states.load("p") == FlatDocument("New")

    await states.remove("p")
    assert await states.load("p") is None


@pytest.mark.asyncio
async def test_state_store_is_namespaced_by_graph(conn: sqlite3.Connection) -> None:
    work = SqliteStateStore(conn, graph="work")
    home = SqliteStateStore(conn, graph="home")

    await work.save("p", FlatDocument("Work"))

    assert await home.load("p") is None
    assert await work.load("p") == FlatDocument("Work")
