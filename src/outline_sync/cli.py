"""CLI for outline-sync (encode, apply and manage shared page state)."""

import asyncio
import json
import sqlite3
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, Any

import typer
from loguru import logger

from outline_sync.adapters.dynalist import DynalistNotebook
from outline_sync.adapters.dynalist_api import DynalistApi
from outline_sync.config import DATABASE_NAME, DEFAULT_GRAPH, resolve_data_directory
from outline_sync.core.database.schema import migrate_schema
from outline_sync.core.database.stores import SqliteIdentifierStore, SqliteStateStore
from outline_sync.core.encode.encoder import encode_page
from outline_sync.core.markup.codec import MarkdownInlineCodec
from outline_sync.core.reconcile.executor import execute_plan
from outline_sync.core.reconcile.planner import plan_reconciliation
from outline_sync.core.sync.context import SyncContext, open_sync_context
from outline_sync.core.sync.session import PageSyncManager
from outline_sync.errors import SyncError
from outline_sync.logging_config import configure_logging
from outline_sync.models.document import FlatDocument
from outline_sync.models.ops import describe_op
from outline_sync.protocols import NotebookAdapter

app = typer.Typer(help="Keep outliner pages in sync with a shared flat annotated document.")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Directory holding the sync database"),
]
GraphOption = Annotated[
    str, typer.Option("--graph", "-g", help="Namespace for stored page states")
]
CacheOption = Annotated[
    bool, typer.Option("--cache", "-C", help="Serve API reads from cache (stale data)")
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    log_file: Annotated[
        Path | None,
        typer.Option("--log-file", help="Also write a debug log to this file"),
    ] = None,
) -> None:
    configure_logging(verbose=verbose, log_file=log_file)


def make_notebook(*, from_cache: bool = False) -> NotebookAdapter:
    """Build the host notebook adapter."""
    return DynalistNotebook(DynalistApi(from_cache=from_cache))


@asynccontextmanager
async def _context(data_dir: Path | None, graph: str, cache: bool) -> AsyncIterator[SyncContext]:
    db_path = (data_dir or resolve_data_directory()) / DATABASE_NAME
    async with open_sync_context(
        db_path,
        notebook=make_notebook(from_cache=cache),
        codec=MarkdownInlineCodec(),
        graph=graph,
    ) as ctx:
        yield ctx


async def _discard(_page_id: str, _label: str, _doc: FlatDocument) -> None:
    return None


def _run_or_exit(coro: Coroutine[Any, Any, None]) -> None:
    try:
        asyncio.run(coro)
    except SyncError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e


@app.command()
def encode(
    page_id: str = typer.Argument(..., help="Page (document) id to encode"),
    save: bool = typer.Option(False, "--save", "-s", help="Store the result as the page state"),
    data_dir: DataDirOption = None,
    graph: GraphOption = DEFAULT_GRAPH,
    cache: CacheOption = False,
) -> None:
    """Print the shared document for a local page as JSON."""

    async def _run() -> None:
        async with _context(data_dir, graph, cache) as ctx:
            doc = await encode_page(ctx, page_id)
            if save:
                await ctx.states.save(page_id, doc)
            typer.echo(json.dumps(doc.to_dict(), indent=2))

    _run_or_exit(_run())


@app.command()
def apply(
    page_id: str = typer.Argument(..., help="Page (document) id to update"),
    state_file: Path = typer.Argument(..., help="JSON file with the shared document"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Only print the planned ops"),
    data_dir: DataDirOption = None,
    graph: GraphOption = DEFAULT_GRAPH,
    cache: CacheOption = False,
) -> None:
    """Reconcile a local page to a shared document."""
    if not state_file.exists():
        logger.error("State file not found: {}", state_file)
        raise typer.Exit(1)
    try:
        doc = FlatDocument.from_dict(json.loads(state_file.read_text(encoding="utf-8")))
    except (ValueError, KeyError) as e:
        logger.error("Invalid state file {}: {}", state_file, e)
        raise typer.Exit(1) from e

    async def _run() -> None:
        async with _context(data_dir, graph, cache) as ctx:
            plan = await plan_reconciliation(ctx, page_id, doc)
            for op in plan.ops:
                verb, target = describe_op(op)
                typer.echo(f"  {verb} {target}")
            if dry_run:
                typer.echo(f"{len(plan.ops)} op(s) planned (dry run)")
                return
            applied = await execute_plan(ctx, page_id, plan)
            await ctx.states.save(page_id, doc)
            typer.echo(f"Applied {applied} op(s)")

    _run_or_exit(_run())


@app.command()
def restore(
    page_id: str = typer.Argument(..., help="Page (document) id to restore"),
    data_dir: DataDirOption = None,
    graph: GraphOption = DEFAULT_GRAPH,
    cache: CacheOption = False,
) -> None:
    """Re-apply the stored state of a page."""

    async def _run() -> None:
        async with _context(data_dir, graph, cache) as ctx:
            manager = PageSyncManager(ctx, _discard)
            ops = await manager.restore(page_id)
            await manager.aclose()
            typer.echo(f"Applied {len(ops)} op(s)")

    _run_or_exit(_run())


def _open_db(data_dir: Path | None) -> sqlite3.Connection:
    """Open the sync database, raising if it doesn't exist."""
    db_path = (data_dir or resolve_data_directory()) / DATABASE_NAME
    if not db_path.exists():
        logger.error("Sync database not found: {}. Run 'encode' first.", db_path)
        raise typer.Exit(1)
    conn = sqlite3.connect(str(db_path))
    migrate_schema(conn)
    return conn


@app.command()
def forget(
    page_id: str = typer.Argument(..., help="Page (document) id to stop syncing"),
    data_dir: DataDirOption = None,
    graph: GraphOption = DEFAULT_GRAPH,
) -> None:
    """Drop the stored state of a page."""
    conn = _open_db(data_dir)
    try:
        asyncio.run(SqliteStateStore(conn, graph=graph).remove(page_id))
        typer.echo(f"Forgot page {page_id}")
    finally:
        conn.close()


@app.command()
def ids(data_dir: DataDirOption = None) -> None:
    """List local <-> global block id mappings."""
    conn = _open_db(data_dir)
    try:
        rows = SqliteIdentifierStore(conn).items()
        typer.echo(f"{len(rows)} mappings:\n")
        for local_id, global_id in rows:
            typer.echo(f"  {local_id}  ->  {global_id}")
    finally:
        conn.close()
