"""Per-page scheduling of local pushes and remote applies."""

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger

from outline_sync.config import DEBOUNCE_SECONDS
from outline_sync.core.encode.encoder import encode_page
from outline_sync.core.reconcile.executor import reconcile
from outline_sync.core.sync.context import SyncContext
from outline_sync.models.document import FlatDocument
from outline_sync.models.ops import MutationOp

PublishCallback = Callable[[str, str, FlatDocument], Awaitable[None]]


class PageSyncManager:
    """Serialize sync work per page and debounce local edits.

    Each page has a lock: an encode and a reconcile for the same page never overlap.
    Each page also has at most one pending local push. A new local edit or an incoming
    remote state cancels the pending push before it leaves its debounce window; once
    the window has passed, the push runs to completion. Different pages proceed
    independently.
    """

    def __init__(
        self,
        ctx: SyncContext,
        publish: PublishCallback,
        *,
        debounce: float = DEBOUNCE_SECONDS,
    ) -> None:
        self.ctx = ctx
        self._publish = publish
        self._debounce = debounce
        self._locks: dict[str, asyncio.Lock] = {}
        self._pending: dict[str, asyncio.Task[None]] = {}
        # Every scheduled push, including ones past their debounce window.
        self._tasks: set[asyncio.Task[None]] = set()

    def _lock(self, page_id: str) -> asyncio.Lock:
        return self._locks.setdefault(page_id, asyncio.Lock())

    def has_pending(self, page_id: str) -> bool:
        return page_id in self._pending

    def _cancel_pending(self, page_id: str) -> None:
        task = self._pending.pop(page_id, None)
        if task is not None and not task.done():
            logger.debug("Cancelled pending push for page {}", page_id)
            task.cancel()

    def notify_local_edit(self, page_id: str, label: str = "local-edit") -> None:
        """Schedule a push after the debounce window, replacing any pending one."""
        self._cancel_pending(page_id)
        task = asyncio.create_task(self._debounced_push(page_id, label))
        task.add_done_callback(_log_failure)
        task.add_done_callback(self._tasks.discard)
        self._tasks.add(task)
        self._pending[page_id] = task

    async def _debounced_push(self, page_id: str, label: str) -> None:
        await asyncio.sleep(self._debounce)
        # Past the window: later edits schedule a new push instead of cancelling this one.
        if self._pending.get(page_id) is asyncio.current_task():
            del self._pending[page_id]
        await self._push(page_id, label)

    async def _push(self, page_id: str, label: str) -> FlatDocument:
        async with self._lock(page_id):
            doc = await encode_page(self.ctx, page_id)
            await self.ctx.states.save(page_id, doc)
            await self._publish(page_id, label, doc)
        logger.debug("Published page {} ({})", page_id, label)
        return doc

    async def force_push(self, page_id: str) -> FlatDocument:
        """Encode and publish now, dropping any pending debounced push."""
        self._cancel_pending(page_id)
        return await self._push(page_id, "force-push")

    async def apply_remote(self, page_id: str, doc: FlatDocument) -> list[MutationOp]:
        """Reconcile the page to a remote state and remember it as the latest state."""
        self._cancel_pending(page_id)
        async with self._lock(page_id):
            ops = await reconcile(self.ctx, page_id, doc)
            await self.ctx.states.save(page_id, doc)
        return ops

    async def restore(self, page_id: str) -> list[MutationOp]:
        """Re-apply the stored state of a page, if there is one."""
        doc = await self.ctx.states.load(page_id)
        if doc is None:
            logger.info("No stored state for page {}", page_id)
            return []
        return await self.apply_remote(page_id, doc)

    async def disconnect(self, page_id: str) -> None:
        """Stop syncing a page: drop its pending push and stored state.

        The page lock is kept; other callers may already be waiting on it.
        """
        self._cancel_pending(page_id)
        async with self._lock(page_id):
            await self.ctx.states.remove(page_id)

    async def aclose(self) -> None:
        """Cancel pushes still in their debounce window and wait for the rest to finish."""
        for page_id in list(self._pending):
            self._cancel_pending(page_id)
        await asyncio.gather(*self._tasks, return_exceptions=True)


def _log_failure(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.opt(exception=exc).error("Debounced push failed: {}", exc)
