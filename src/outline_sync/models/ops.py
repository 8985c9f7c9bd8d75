"""Local tree mutations produced by reconciliation."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RenamePage:
    """Rename the shared page to the remote title."""

    page_id: str
    old_title: str
    new_title: str


@dataclass(frozen=True)
class RetitleContainer:
    """Rewrite the content of a shared container block to the remote title."""

    page_id: str
    old_title: str
    new_title: str


@dataclass(frozen=True)
class DeleteBlock:
    local_id: str


@dataclass(frozen=True)
class CreateBlock:
    """Create a block under the parent identified by its global id.

    `order` is the host index under that parent when the op runs, counting local
    blocks that are not shared.
    """

    global_id: str
    parent_global_id: str
    order: int
    content: str


@dataclass(frozen=True)
class MoveBlock:
    """Move a block under the parent identified by its global id, at host index `order`.

    `local_id` is empty for a block created earlier in the same plan.
    """

    local_id: str
    global_id: str
    parent_global_id: str
    order: int


@dataclass(frozen=True)
class UpdateBlock:
    local_id: str
    global_id: str
    content: str


MutationOp = RenamePage | RetitleContainer | DeleteBlock | CreateBlock | MoveBlock | UpdateBlock


def describe_op(op: MutationOp) -> tuple[str, str]:
    """Return (verb, target id) for log and error messages."""
    match op:
        case RenamePage(page_id=page_id):
            return "rename page", page_id
        case RetitleContainer(page_id=page_id):
            return "retitle container", page_id
        case DeleteBlock(local_id=local_id):
            return "remove block", local_id
        case CreateBlock(global_id=global_id):
            return "insert block", global_id
        case MoveBlock(global_id=global_id):
            return "move block", global_id
        case UpdateBlock(global_id=global_id):
            return "update block", global_id
    msg = f"unexpected op: {op!r}"
    raise TypeError(msg)
