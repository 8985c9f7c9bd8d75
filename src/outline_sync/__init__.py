"""Sync outliner block trees with a shared flat annotated document."""

from outline_sync.core.encode.encoder import encode_page
from outline_sync.core.reconcile.executor import reconcile
from outline_sync.core.sync.context import SyncContext, open_sync_context
from outline_sync.core.sync.session import PageSyncManager
from outline_sync.errors import HostMutationError, MissingPageError, MissingParentError, SyncError
from outline_sync.models.document import Annotation, FlatDocument

__all__ = [
    "Annotation",
    "FlatDocument",
    "HostMutationError",
    "MissingPageError",
    "MissingParentError",
    "PageSyncManager",
    "SyncContext",
    "SyncError",
    "encode_page",
    "open_sync_context",
    "reconcile",
]
