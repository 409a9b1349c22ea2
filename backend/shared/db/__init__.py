"""SQLite database layer: connection management and the draft store implementation."""

from shared.db.connection import Database
from shared.db.draft_store import SqliteDraftStore

__all__ = [
    "Database",
    "SqliteDraftStore",
]
