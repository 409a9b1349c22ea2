"""Run draft transitions as atomic store transactions."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from draft.logic.transitions import (
    TransitionResult,
    apply_pick,
    new_draft,
    pause_draft,
    resume_draft,
    schedule_draft,
    start_draft,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from draft.logic.clock import Clock
    from draft.logic.settings import DraftSettings
    from draft.logic.state import Draft, PickRequest
    from shared.dal.draft_store import DraftStore

logger = structlog.get_logger()


class DraftStateMachine:
    """
    Authoritative state machine for drafts.

    Each operation reads the draft, validates against that snapshot and
    writes the result in one store transaction. Rule violations raise a
    DraftRuleError and leave the stored draft untouched.
    """

    def __init__(self, store: DraftStore, clock: Clock) -> None:
        self._store = store
        self._clock = clock

    @property
    def store(self) -> DraftStore:
        return self._store

    async def create(self, draft_id: str, settings: DraftSettings, league_id: str = "") -> Draft:
        draft = new_draft(draft_id, settings, self._clock.now(), league_id=league_id)
        await self._store.create_draft(draft)
        logger.info("draft created", draft_id=draft_id, mode=settings.mode, league_id=league_id)
        return draft

    async def schedule(self, draft_id: str, scheduled_at: datetime) -> TransitionResult:
        return await self._run(draft_id, lambda draft: schedule_draft(draft, scheduled_at))

    async def start(self, draft_id: str, participant_order: Sequence[str]) -> TransitionResult:
        return await self._run(draft_id, lambda draft: start_draft(draft, participant_order, self._clock.now()))

    async def apply(self, draft_id: str, request: PickRequest) -> TransitionResult:
        return await self._run(draft_id, lambda draft: apply_pick(draft, request, self._clock.now()))

    async def pause(self, draft_id: str) -> TransitionResult:
        return await self._run(draft_id, lambda draft: pause_draft(draft, self._clock.now()))

    async def resume(self, draft_id: str) -> TransitionResult:
        return await self._run(draft_id, lambda draft: resume_draft(draft, self._clock.now()))

    async def _run(self, draft_id: str, transition: Callable[[Draft], TransitionResult]) -> TransitionResult:
        outcome: list[TransitionResult] = []

        def mutate(draft: Draft) -> Draft:
            result = transition(draft)
            outcome[:] = [result]
            return result.draft

        committed = await self._store.transact(draft_id, mutate)
        result = outcome[0]
        # the store stamps a new revision on commit; hand back what was stored
        return result._replace(draft=committed)
