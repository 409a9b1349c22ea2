"""In-memory draft store for tests and single-process deployments."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from draft.logic.exceptions import DraftNotFoundError
from shared.dal.draft_store import DraftStore

if TYPE_CHECKING:
    from draft.logic.state import Draft, Pick


class InMemoryDraftStore(DraftStore):
    """DraftStore backed by a dict.

    Reads yield to the event loop before returning, the way a network round
    trip would, so concurrent transactions genuinely interleave and lose
    races against each other.
    """

    def __init__(self) -> None:
        super().__init__()
        self._drafts: dict[str, Draft] = {}

    async def create_draft(self, draft: Draft) -> None:
        if draft.id in self._drafts:
            raise ValueError(f"draft {draft.id} already exists")
        self._drafts[draft.id] = draft
        self._hub.publish(draft)

    async def get_draft(self, draft_id: str) -> Draft | None:
        return self._drafts.get(draft_id)

    async def get_picks(self, draft_id: str) -> list[Pick]:
        draft = self._drafts.get(draft_id)
        return list(draft.picks) if draft is not None else []

    async def list_drafts(self, league_id: str | None = None) -> list[Draft]:
        return [draft for draft in self._drafts.values() if league_id is None or draft.league_id == league_id]

    async def _read(self, draft_id: str) -> Draft:
        draft = self._drafts.get(draft_id)
        if draft is None:
            raise DraftNotFoundError(draft_id)
        await asyncio.sleep(0)
        return draft

    async def _compare_and_set(self, current: Draft, updated: Draft) -> bool:
        stored = self._drafts.get(current.id)
        if stored is None or stored.revision != current.revision:
            return False
        self._drafts[current.id] = updated
        return True
