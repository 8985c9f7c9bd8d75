"""Diff the desired tree against the local tree into an ordered op list."""

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field

from loguru import logger

from outline_sync.core.reconcile.desired import build_desired_tree
from outline_sync.core.sync.context import SyncContext
from outline_sync.core.tree.flatten import (
    FlatEntry,
    flatten_tree,
    is_content_block,
    strip_sync_properties,
)
from outline_sync.errors import MissingPageError
from outline_sync.models.document import Annotation, FlatDocument
from outline_sync.models.ops import (
    CreateBlock,
    DeleteBlock,
    MoveBlock,
    MutationOp,
    RenamePage,
    RetitleContainer,
    UpdateBlock,
)


@dataclass
class ReconcilePlan:
    """Ops to run in order, plus the global -> local ids known when planning.

    `resolved` is extended by the executor as creates produce local ids.
    """

    ops: list[MutationOp] = field(default_factory=list)
    resolved: dict[str, str] = field(default_factory=dict)

    def counts(self) -> dict[str, int]:
        result: dict[str, int] = {}
        for op in self.ops:
            name = type(op).__name__
            result[name] = result.get(name, 0) + 1
        return result


class _SiblingRows:
    """Simulated child lists of the local page, updated as ops are planned.

    Kept blocks are keyed by global id, everything else by local id, and the page
    itself by its page id. Indices into a row are host indices: they count the
    unshared and hidden blocks the host has under the same parent.
    """

    def __init__(self, entries: Sequence[FlatEntry], key: dict[str, str]) -> None:
        self.rows: defaultdict[str, list[str]] = defaultdict(list)
        self.parent_of: dict[str, str] = {}
        for entry in entries:
            node = key.get(entry.id, entry.id)
            parent = key.get(entry.parent_id, entry.parent_id)
            self.rows[parent].append(node)
            self.parent_of[node] = parent

    def discard(self, node: str) -> None:
        parent = self.parent_of.pop(node, None)
        if parent is not None:
            self.rows[parent].remove(node)

    def in_place(self, node: str, parent: str, previous: str | None, wanted: set[str]) -> bool:
        """True if `node` is under `parent` right after `previous`, ignoring unwanted blocks."""
        if self.parent_of.get(node) != parent:
            return False
        row = self.rows[parent]
        before = [n for n in row[: row.index(node)] if n in wanted]
        return (before[-1] if before else None) == previous

    def place(self, node: str, parent: str, previous: str | None) -> int:
        """Put `node` right after `previous` (first if None) and return its host index."""
        self.discard(node)
        row = self.rows[parent]
        index = row.index(previous) + 1 if previous in row else 0
        row.insert(index, node)
        self.parent_of[node] = parent
        return index


def _under(local_id: str, targets: set[str], parents: dict[str, str]) -> bool:
    """True if an ancestor of `local_id` is in `targets`."""
    parent = parents.get(local_id)
    while parent is not None:
        if parent in targets:
            return True
        parent = parents.get(parent)
    return False


async def _plan_metadata(
    ctx: SyncContext, page_id: str, metadata: Annotation | None
) -> MutationOp | None:
    if metadata is None:
        return None
    page = await ctx.notebook.get_page(page_id)
    if page is None:
        raise MissingPageError(page_id)

    title = metadata.attributes.get("title", "")
    if page.title == title:
        return None
    if page.parent_id:
        return RetitleContainer(page_id=page_id, old_title=page.title, new_title=title)
    return RenamePage(page_id=page_id, old_title=page.title, new_title=title)


async def plan_reconciliation(ctx: SyncContext, page_id: str, doc: FlatDocument) -> ReconcilePlan:
    """Compute the ops that bring the local page in line with `doc`.

    Order: metadata op, deletes (children before parents), creates (parents before
    children), then moves and updates. Blocks are matched through the identifier
    mapping; a desired block whose local id is unmapped or gone is created, and a
    shared local block missing from `doc` is deleted. Local blocks that were never
    shared are left alone. A kept block under a deleted block is recreated, since the
    delete takes it along.

    Positions are planned against a simulated copy of the local child lists, so
    `order` on creates and moves is a host index at the time the op runs. Each
    desired block must directly follow its previous desired sibling among the
    blocks wanted under that parent; anything else gets a move.

    Raises:
        MissingPageError: The document has metadata but the page does not exist locally.
    """
    desired = build_desired_tree(doc)
    plan = ReconcilePlan()

    metadata_op = await _plan_metadata(ctx, page_id, desired.metadata)
    if metadata_op is not None:
        plan.ops.append(metadata_op)

    expected = flatten_tree(desired.blocks, page_id, key=lambda b: b.identifier)
    for entry in expected:
        plan.resolved[entry.id] = await ctx.id_map.global_to_local(entry.id)

    raw_tree = await ctx.notebook.get_block_tree(page_id)
    hosted = flatten_tree(raw_tree, page_id, key=lambda n: n.local_id)
    local_parents = {e.id: e.parent_id for e in hosted}
    actual = flatten_tree(
        [n for n in raw_tree if is_content_block(n)], page_id, key=lambda n: n.local_id
    )
    actual_by_id = {a.id: a for a in actual}

    kept_local = {plan.resolved[e.id] for e in expected if plan.resolved[e.id] in actual_by_id}
    # Blocks never shared have no global id yet; they are local edits awaiting publish.
    to_delete: list[FlatEntry] = []
    for entry in actual:
        if entry.id not in kept_local and await ctx.id_map.local_to_global(entry.id):
            to_delete.append(entry)
    deleted = {e.id for e in to_delete}
    doomed = {e.id for e in hosted if e.id in deleted or _under(e.id, deleted, local_parents)}
    kept_local -= doomed

    created = {e.id for e in expected if plan.resolved[e.id] not in kept_local}
    for entry in expected:
        if entry.id in created and plan.resolved[entry.id] in doomed:
            logger.debug("Block {} goes with a deleted ancestor, recreating it", entry.id)

    key = {plan.resolved[e.id]: e.id for e in expected if e.id not in created}
    rows = _SiblingRows(hosted, key)
    for local_id in doomed:
        rows.discard(local_id)

    for entry in reversed(to_delete):
        plan.ops.append(DeleteBlock(local_id=entry.id))

    siblings: defaultdict[str, list[str]] = defaultdict(list)
    for entry in expected:
        siblings[entry.parent_id].append(entry.id)

    for entry in expected:
        if entry.id not in created:
            continue
        row = rows.rows[entry.parent_id]
        earlier = siblings[entry.parent_id][: entry.order]
        previous = next((s for s in reversed(earlier) if s in row), None)
        order = rows.place(entry.id, entry.parent_id, previous)
        plan.ops.append(
            CreateBlock(
                global_id=entry.id,
                parent_global_id=entry.parent_id,
                order=order,
                content=entry.content,
            )
        )

    for entry in expected:
        wanted = set(siblings[entry.parent_id])
        previous = siblings[entry.parent_id][entry.order - 1] if entry.order else None
        local_id = "" if entry.id in created else plan.resolved[entry.id]
        if not rows.in_place(entry.id, entry.parent_id, previous, wanted):
            order = rows.place(entry.id, entry.parent_id, previous)
            plan.ops.append(
                MoveBlock(
                    local_id=local_id,
                    global_id=entry.id,
                    parent_global_id=entry.parent_id,
                    order=order,
                )
            )
        if not local_id:
            continue
        if strip_sync_properties(actual_by_id[local_id].content) != entry.content:
            plan.ops.append(
                UpdateBlock(local_id=local_id, global_id=entry.id, content=entry.content)
            )

    logger.debug("Planned reconciliation of page {}: {}", page_id, plan.counts() or "no changes")
    return plan
