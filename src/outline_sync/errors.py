"""Exceptions raised while encoding or reconciling shared pages."""

from outline_sync.models.ops import MutationOp, describe_op


class SyncError(Exception):
    """Base class for synchronization failures."""


class MissingPageError(SyncError):
    """The shared page (or container block) does not exist locally."""

    def __init__(self, page_id: str) -> None:
        super().__init__(f"Missing page with id: {page_id}")
        self.page_id = page_id


class MissingParentError(SyncError):
    """A block's parent could not be resolved to a local block."""

    def __init__(self, parent_id: str) -> None:
        super().__init__(f"Referencing parent {parent_id} but none exists")
        self.parent_id = parent_id


class HostMutationError(SyncError):
    """A mutation op failed; the ops before it stay applied.

    Attributes:
        op: The failing op.
        target_id: Block or page id the op addressed.
        applied: Number of ops completed before the failure.
    """

    def __init__(self, op: MutationOp, cause: BaseException, *, applied: int) -> None:
        verb, target_id = describe_op(op)
        super().__init__(f"Failed to {verb} {target_id}: {cause}")
        self.op = op
        self.target_id = target_id
        self.applied = applied
