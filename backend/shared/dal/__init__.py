"""Data access layer: the draft store interface and its in-memory implementation."""

from shared.dal.draft_store import CommitConflictError, DraftStore
from shared.dal.memory import InMemoryDraftStore
from shared.dal.subscriptions import DraftSubscription

__all__ = [
    "CommitConflictError",
    "DraftStore",
    "DraftSubscription",
    "InMemoryDraftStore",
]
