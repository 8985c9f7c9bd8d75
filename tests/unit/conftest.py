"""Shared test fixtures."""

import sqlite3
from collections.abc import Iterator

import pytest

from outline_sync.core.database.schema import migrate_schema
from outline_sync.core.database.stores import SqliteIdentifierStore, SqliteStateStore
from outline_sync.core.markup.codec import MarkdownInlineCodec
from outline_sync.core.sync.context import SyncContext
from tests.unit.fakes import PAGE_ID, FakeNotebook, PlainCodec


@pytest.fixture
def conn() -> Iterator[sqlite3.Connection]:
    """Return an in-memory DB with the sync schema."""
    conn = sqlite3.connect(":memory:")
    migrate_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def notebook() -> FakeNotebook:
    """Return a notebook with one empty page titled 'Notes'."""
    notebook = FakeNotebook()
    notebook.add_page(PAGE_ID, "Notes")
    return notebook


@pytest.fixture
def ctx(conn: sqlite3.Connection, notebook: FakeNotebook) -> SyncContext:
    """Sync context over the fake notebook, without inline markup."""
    return SyncContext(
        notebook=notebook,
        id_map=SqliteIdentifierStore(conn),
        states=SqliteStateStore(conn),
        codec=PlainCodec(),
    )


@pytest.fixture
def md_ctx(conn: sqlite3.Connection, notebook: FakeNotebook) -> SyncContext:
    """Sync context over the fake notebook, decoding markdown inline markup."""
    return SyncContext(
        notebook=notebook,
        id_map=SqliteIdentifierStore(conn),
        states=SqliteStateStore(conn),
        codec=MarkdownInlineCodec(),
    )
