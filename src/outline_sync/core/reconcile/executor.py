"""Apply a reconciliation plan to the host notebook, one op at a time."""

from loguru import logger

from outline_sync.config import SHARED_PAGE_PROPERTY
from outline_sync.core.reconcile.planner import ReconcilePlan, plan_reconciliation
from outline_sync.core.sync.context import SyncContext
from outline_sync.errors import HostMutationError, MissingParentError, SyncError
from outline_sync.models.document import FlatDocument
from outline_sync.models.ops import (
    CreateBlock,
    DeleteBlock,
    MoveBlock,
    MutationOp,
    RenamePage,
    RetitleContainer,
    UpdateBlock,
    describe_op,
)


async def _resolve_parent(ctx: SyncContext, page_id: str, plan: ReconcilePlan, parent: str) -> str:
    if parent == page_id:
        return page_id
    local_id = plan.resolved.get(parent, "")
    if not local_id or await ctx.notebook.get_block(local_id) is None:
        raise MissingParentError(parent)
    return local_id


async def _release_shared_title(ctx: SyncContext, page_id: str, title: str) -> None:
    """Point a block on the page named `title` that claims another shared id at ours."""
    page = await ctx.notebook.find_page(title)
    if page is None:
        return
    for block in await ctx.notebook.get_block_tree(page.id):
        claimed = block.properties.get(SHARED_PAGE_PROPERTY)
        if claimed and claimed != page_id:
            logger.warning(
                "Page {!r} already claims shared id {}, reassigning to {}", title, claimed, page_id
            )
            await ctx.notebook.set_block_property(block.local_id, SHARED_PAGE_PROPERTY, page_id)
            return


async def _apply(ctx: SyncContext, page_id: str, plan: ReconcilePlan, op: MutationOp) -> None:
    notebook = ctx.notebook
    match op:
        case RenamePage(old_title=old_title, new_title=new_title):
            await _release_shared_title(ctx, page_id, new_title)
            await notebook.rename_page(old_title, new_title)
        case RetitleContainer(new_title=new_title):
            await notebook.update_block(page_id, new_title)
        case DeleteBlock(local_id=local_id):
            await notebook.remove_block(local_id)
            global_id = await ctx.id_map.local_to_global(local_id)
            if global_id:
                await ctx.id_map.remove(local_id, global_id)
        case CreateBlock(global_id=global_id, parent_global_id=parent, order=order, content=content):
            parent_local = await _resolve_parent(ctx, page_id, plan, parent)
            local_id = await notebook.create_block(parent_local, order, content)
            if not local_id:
                msg = "null block id created"
                raise SyncError(msg)
            await ctx.id_map.put(local_id, global_id)
            plan.resolved[global_id] = local_id
        case MoveBlock(
            local_id=local_id, global_id=global_id, parent_global_id=parent, order=order
        ):
            parent_local = await _resolve_parent(ctx, page_id, plan, parent)
            await notebook.move_block(local_id or plan.resolved[global_id], parent_local, order)
        case UpdateBlock(local_id=local_id, content=content):
            await notebook.update_block(local_id, content)


async def execute_plan(ctx: SyncContext, page_id: str, plan: ReconcilePlan) -> int:
    """Run the plan's ops strictly in order.

    Each op completes before the next starts. The first failure stops the run; ops
    already applied are not rolled back.

    Returns:
        Number of ops applied.

    Raises:
        HostMutationError: An op failed. Chained to the underlying error.
    """
    for applied, op in enumerate(plan.ops):
        verb, target = describe_op(op)
        logger.debug("Applying op {}/{}: {} {}", applied + 1, len(plan.ops), verb, target)
        try:
            await _apply(ctx, page_id, plan, op)
        except Exception as e:
            raise HostMutationError(op, e, applied=applied) from e
    return len(plan.ops)


async def reconcile(ctx: SyncContext, page_id: str, doc: FlatDocument) -> list[MutationOp]:
    """Bring the local page in line with a shared document. Returns the applied ops."""
    plan = await plan_reconciliation(ctx, page_id, doc)
    applied = await execute_plan(ctx, page_id, plan)
    if applied:
        logger.info("Applied {} op(s) to page {}", applied, page_id)
    return plan.ops
