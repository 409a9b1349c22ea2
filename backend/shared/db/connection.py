"""SQLite database connection and schema management."""

import contextlib
import os
import sqlite3
from collections.abc import Iterator
from pathlib import Path

import structlog

logger = structlog.get_logger()

_DB_FILE_PERMISSIONS = 0o600

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS drafts (
    id TEXT PRIMARY KEY,
    league_id TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL,
    revision INTEGER NOT NULL,
    created_at TEXT,
    data TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_drafts_league
    ON drafts (league_id);

CREATE TABLE IF NOT EXISTS picks (
    draft_id TEXT NOT NULL REFERENCES drafts (id) ON DELETE CASCADE,
    overall_pick_number INTEGER NOT NULL,
    participant_id TEXT NOT NULL,
    selection_id TEXT NOT NULL,
    category_id TEXT,
    data TEXT NOT NULL,
    PRIMARY KEY (draft_id, overall_pick_number)
);
"""


class Database:
    """SQLite database wrapper with schema management.

    The connection runs in autocommit mode; writers open explicit
    transactions with ``BEGIN IMMEDIATE`` so the write lock is taken up front.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Return the active connection or raise if disconnected."""
        if self._conn is None:
            raise RuntimeError("Database is not connected")
        return self._conn

    @property
    def path(self) -> str:
        return self._path

    def connect(self) -> None:
        """Open the database, apply pragmas, create schema, and harden file permissions."""
        parent = Path(self._path).parent
        parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(self._path, check_same_thread=False, isolation_level=None)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._conn.executescript(_SCHEMA_SQL)

        self._harden_permissions()
        logger.info("draft database connected", path=self._path)

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the block inside BEGIN IMMEDIATE, committing on success and rolling back on any error."""
        conn = self.connection
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _harden_permissions(self) -> None:
        """Set restrictive file permissions on POSIX systems (best effort).

        Covers the WAL/SHM sibling files too, since WAL mode keeps recent
        writes there.
        """
        if os.name != "posix":  # pragma: no cover
            return
        for suffix in ("", "-wal", "-shm"):
            p = Path(self._path + suffix)
            if p.exists():
                try:
                    p.chmod(_DB_FILE_PERMISSIONS)
                except OSError:
                    logger.warning("could not set file permissions", permissions=oct(_DB_FILE_PERMISSIONS), path=str(p))
