"""SQLite-backed draft store."""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

import structlog

from draft.logic.exceptions import DraftNotFoundError
from draft.logic.state import Draft, Pick
from shared.dal.draft_store import DraftStore, appended_picks

if TYPE_CHECKING:
    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteDraftStore(DraftStore):
    """SQLite implementation of DraftStore.

    The draft row holds the record without its picks as JSON, plus a
    revision column used for compare-and-set. Picks live in their own table
    keyed by (draft_id, overall_pick_number), so the database itself refuses
    a second pick with the same number.
    """

    def __init__(self, db: Database) -> None:
        super().__init__()
        self._db = db

    async def create_draft(self, draft: Draft) -> None:
        try:
            with self._db.transaction() as conn:
                conn.execute(
                    "INSERT INTO drafts (id, league_id, status, revision, created_at, data) VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        draft.id,
                        draft.league_id,
                        draft.status.value,
                        draft.revision,
                        draft.created_at.isoformat() if draft.created_at else None,
                        _draft_json(draft),
                    ),
                )
                self._insert_picks(conn, draft.id, draft.picks)
        except sqlite3.IntegrityError as exc:
            raise ValueError(f"draft {draft.id} already exists") from exc
        self._hub.publish(draft)

    async def get_draft(self, draft_id: str) -> Draft | None:
        row = self._db.connection.execute("SELECT data FROM drafts WHERE id = ?", (draft_id,)).fetchone()
        if row is None:
            return None
        return self._load(row[0], draft_id)

    async def get_picks(self, draft_id: str) -> list[Pick]:
        rows = self._db.connection.execute(
            "SELECT data FROM picks WHERE draft_id = ? ORDER BY overall_pick_number",
            (draft_id,),
        ).fetchall()
        return [Pick.model_validate_json(row[0]) for row in rows]

    async def list_drafts(self, league_id: str | None = None) -> list[Draft]:
        if league_id is None:
            rows = self._db.connection.execute("SELECT id, data FROM drafts ORDER BY created_at").fetchall()
        else:
            rows = self._db.connection.execute(
                "SELECT id, data FROM drafts WHERE league_id = ? ORDER BY created_at",
                (league_id,),
            ).fetchall()
        return [self._load(data, draft_id) for draft_id, data in rows]

    async def _read(self, draft_id: str) -> Draft:
        draft = await self.get_draft(draft_id)
        if draft is None:
            raise DraftNotFoundError(draft_id)
        return draft

    async def _compare_and_set(self, current: Draft, updated: Draft) -> bool:
        added = appended_picks(current, updated)
        try:
            with self._db.transaction() as conn:
                cursor = conn.execute(
                    "UPDATE drafts SET status = ?, revision = ?, data = ? WHERE id = ? AND revision = ?",
                    (updated.status.value, updated.revision, _draft_json(updated), current.id, current.revision),
                )
                if cursor.rowcount == 0:
                    return False
                self._insert_picks(conn, current.id, added)
        except sqlite3.IntegrityError:
            logger.warning("pick number already taken, rolled back", draft_id=current.id)
            return False
        except sqlite3.OperationalError as e:
            # "database is locked" from another writer; treated as a lost race
            logger.warning("draft commit failed, retrying", draft_id=current.id, error=str(e))
            return False
        return True

    def _load(self, data: str, draft_id: str) -> Draft:
        draft = Draft.model_validate_json(data)
        rows = self._db.connection.execute(
            "SELECT data FROM picks WHERE draft_id = ? ORDER BY overall_pick_number",
            (draft_id,),
        ).fetchall()
        return draft.model_copy(update={"picks": tuple(Pick.model_validate_json(row[0]) for row in rows)})

    @staticmethod
    def _insert_picks(conn: sqlite3.Connection, draft_id: str, picks: tuple[Pick, ...]) -> None:
        for pick in picks:
            conn.execute(
                "INSERT INTO picks (draft_id, overall_pick_number, participant_id, selection_id, category_id, data) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    draft_id,
                    pick.overall_pick_number,
                    pick.participant_id,
                    pick.selection_id,
                    pick.category_id,
                    pick.model_dump_json(),
                ),
            )


def _draft_json(draft: Draft) -> str:
    return draft.model_dump_json(exclude={"picks", "total_picks", "current_picker_id"})
