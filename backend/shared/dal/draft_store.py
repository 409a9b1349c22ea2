"""Abstract interface for the authoritative draft store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import structlog

from draft.logic.exceptions import CommitConflictError
from shared.dal.subscriptions import SubscriptionHub

if TYPE_CHECKING:
    from collections.abc import Callable

    from draft.logic.state import Draft, Pick
    from shared.dal.subscriptions import DraftSubscription

    DraftMutation = Callable[[Draft], Draft]

logger = structlog.get_logger()

# Optimistic commits retry on a lost race; the retry re-runs validation
# against the fresh record, which normally turns a lost race into StaleTurn.
MAX_COMMIT_ATTEMPTS = 5


def appended_picks(before: Draft, after: Draft) -> tuple[Pick, ...]:
    """Return the picks ``after`` adds to ``before``.

    Raises ValueError if ``after`` rewrites history or numbers a pick out of
    sequence; the pick log is append-only and keyed by overall pick number.
    """
    existing = len(before.picks)
    if after.picks[:existing] != before.picks:
        raise ValueError(f"draft {before.id}: pick log is append-only")
    added = after.picks[existing:]
    for offset, pick in enumerate(added, start=existing + 1):
        if pick.overall_pick_number != offset:
            raise ValueError(f"draft {before.id}: pick {pick.overall_pick_number} written at position {offset}")
    return added


class DraftStore(ABC):
    """
    Authoritative storage for drafts and their pick logs.

    Every mutation goes through transact(): read the record, run the mutation
    (which may raise to abort), then commit only if nobody else committed in
    between. No lock is held while the mutation runs.
    """

    def __init__(self) -> None:
        self._hub = SubscriptionHub()

    @abstractmethod
    async def create_draft(self, draft: Draft) -> None:
        """Persist a new draft. Raise ValueError if the id already exists."""

    @abstractmethod
    async def get_draft(self, draft_id: str) -> Draft | None: ...

    @abstractmethod
    async def get_picks(self, draft_id: str) -> list[Pick]:
        """Return the pick log ordered by overall pick number."""

    @abstractmethod
    async def list_drafts(self, league_id: str | None = None) -> list[Draft]: ...

    @abstractmethod
    async def _read(self, draft_id: str) -> Draft:
        """Read the current record. Raise DraftNotFoundError if missing."""

    @abstractmethod
    async def _compare_and_set(self, current: Draft, updated: Draft) -> bool:
        """Write ``updated`` only if the stored revision still equals ``current.revision``."""

    async def transact(self, draft_id: str, mutate: DraftMutation) -> Draft:
        """Atomically read, mutate and write one draft.

        Exceptions raised by ``mutate`` abort the transaction and propagate.
        A mutation returning the same object is a no-op and is not written.
        """
        for attempt in range(1, MAX_COMMIT_ATTEMPTS + 1):
            current = await self._read(draft_id)
            updated = mutate(current)
            if updated is current:
                return current
            appended_picks(current, updated)
            updated = updated.model_copy(update={"revision": current.revision + 1})
            if await self._compare_and_set(current, updated):
                self._hub.publish(updated)
                return updated
            logger.debug("draft commit lost race, retrying", draft_id=draft_id, attempt=attempt)
        raise CommitConflictError(f"draft {draft_id}: gave up after {MAX_COMMIT_ATTEMPTS} attempts")

    def subscribe(self, draft_id: str) -> DraftSubscription:
        """Subscribe to committed snapshots of a draft. Close the subscription to release it."""
        return self._hub.subscribe(draft_id)

    def close_subscriptions(self) -> None:
        self._hub.close_all()
