"""
Presentation-facing draft API.

DraftService is the boundary where domain exceptions stop. Every operation
returns a result value whose ``error`` is a DraftRuleError or None, so UI
and HTTP callers branch on data instead of catching exceptions. The service
also owns the auto-pick timers: it arms them from the events each transition
emits and fires the auto-pick when a turn runs out.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, NamedTuple

import structlog

from draft.logic.auto_pick import choose_auto_pick
from draft.logic.clock import SystemClock
from draft.logic.enums import DraftStatus, ScoringDirection
from draft.logic.events import (
    DraftCompletedEvent,
    DraftCreatedEvent,
    DraftPausedEvent,
    TurnStartedEvent,
)
from draft.logic.exceptions import (
    CommitConflictError,
    DraftNotFoundError,
    DraftRuleError,
    InvalidConfigurationError,
    StaleTurnError,
)
from draft.logic.standings import compute_standings
from draft.logic.state_machine import DraftStateMachine
from draft.logic.timer import is_expired, remaining
from draft.session.timer_manager import AutoPickScheduler

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence
    from datetime import datetime

    from draft.catalog.types import CandidateSource
    from draft.logic.clock import Clock
    from draft.logic.enums import DraftErrorCode
    from draft.logic.events import DraftEvent
    from draft.logic.settings import DraftSettings
    from draft.logic.standings import ScoreFunction, Standing
    from draft.logic.state import Draft, Pick, PickRequest
    from draft.logic.transitions import TransitionResult
    from shared.dal.draft_store import DraftStore
    from shared.dal.subscriptions import DraftSubscription


class DraftResult(NamedTuple):
    """Outcome of a draft operation: the resulting draft, or the rule it broke."""

    draft: Draft | None = None
    error: DraftRuleError | None = None
    events: tuple[DraftEvent, ...] = ()
    pick: Pick | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_code(self) -> DraftErrorCode | None:
        return self.error.code if self.error is not None else None


class StandingsResult(NamedTuple):
    standings: list[Standing]
    error: DraftRuleError | None = None


class TimerResult(NamedTuple):
    remaining_seconds: float | None
    deadline: datetime | None = None
    error: DraftRuleError | None = None


logger = structlog.get_logger()


class DraftService:
    def __init__(
        self,
        store: DraftStore,
        clock: Clock | None = None,
        candidates: CandidateSource | None = None,
        auto_pick_grace_seconds: float = 0.0,
        max_active_drafts: int | None = None,
        auto_pick_retry_seconds: float = 5.0,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._machine = DraftStateMachine(store, self._clock)
        self._candidates = candidates
        self._max_active_drafts = max_active_drafts
        self._auto_pick_retry_seconds = auto_pick_retry_seconds
        self._scheduler = AutoPickScheduler(self._handle_expiry, self._clock, auto_pick_grace_seconds)

    @property
    def scheduler(self) -> AutoPickScheduler:
        return self._scheduler

    async def create_draft(self, draft_id: str, settings: DraftSettings, league_id: str = "") -> DraftResult:
        try:
            await self._check_capacity()
            draft = await self._machine.create(draft_id, settings, league_id=league_id)
        except DraftRuleError as e:
            return self._rejected("create", draft_id, e)
        except ValueError:
            return self._rejected("create", draft_id, InvalidConfigurationError(f"draft {draft_id!r} already exists"))
        return DraftResult(draft=draft, events=(DraftCreatedEvent(draft_id=draft_id),))

    async def schedule(self, draft_id: str, scheduled_at: datetime) -> DraftResult:
        return await self._run("schedule", draft_id, lambda: self._machine.schedule(draft_id, scheduled_at))

    async def start(self, draft_id: str, participant_order: Sequence[str]) -> DraftResult:
        return await self._run("start", draft_id, lambda: self._machine.start(draft_id, participant_order))

    async def apply(self, draft_id: str, request: PickRequest) -> DraftResult:
        """Submit a pick. Exactly one of several concurrent requests for the same turn succeeds."""
        return await self._run(
            "apply",
            draft_id,
            lambda: self._machine.apply(draft_id, request),
            is_auto_pick=request.is_auto_pick,
        )

    async def pause(self, draft_id: str) -> DraftResult:
        return await self._run("pause", draft_id, lambda: self._machine.pause(draft_id))

    async def resume(self, draft_id: str) -> DraftResult:
        return await self._run("resume", draft_id, lambda: self._machine.resume(draft_id))

    async def current_state(self, draft_id: str) -> DraftResult:
        draft = await self._store.get_draft(draft_id)
        if draft is None:
            return DraftResult(error=DraftNotFoundError(draft_id))
        return DraftResult(draft=draft)

    async def list_drafts(self, league_id: str | None = None) -> list[Draft]:
        return await self._store.list_drafts(league_id)

    async def standings(
        self,
        draft_id: str,
        score: ScoreFunction,
        previous: Sequence[Standing] | None = None,
        direction: ScoringDirection = ScoringDirection.HIGHEST,
    ) -> StandingsResult:
        """Rank the draft's participants. Recomputed from the stored pick log on every call."""
        draft = await self._store.get_draft(draft_id)
        if draft is None:
            return StandingsResult([], DraftNotFoundError(draft_id))
        picks = await self._store.get_picks(draft_id)
        return StandingsResult(compute_standings(picks, draft.participant_order, score, previous, direction))

    async def remaining_time(self, draft_id: str, now: datetime | None = None) -> TimerResult:
        draft = await self._store.get_draft(draft_id)
        if draft is None:
            return TimerResult(None, error=DraftNotFoundError(draft_id))
        return TimerResult(remaining(draft, now or self._clock.now()), draft.timer_deadline)

    def subscribe(self, draft_id: str) -> DraftSubscription:
        return self._store.subscribe(draft_id)

    async def auto_pick(self, draft_id: str, overall_pick: int) -> DraftResult:
        """
        Submit the auto-pick for ``overall_pick`` if that turn has run out.

        Safe to call from any number of observers: once the turn has moved
        on, callers get StaleTurn and nothing is written.
        """
        draft = await self._store.get_draft(draft_id)
        if draft is None:
            return DraftResult(error=DraftNotFoundError(draft_id))
        if draft.status != DraftStatus.IN_PROGRESS or draft.current_overall_pick != overall_pick:
            logger.debug(
                "auto-pick skipped, turn already moved on",
                draft_id=draft_id,
                expected=overall_pick,
                current=draft.current_overall_pick,
                status=draft.status,
            )
            stale = StaleTurnError(expected_overall_pick=overall_pick, current_overall_pick=draft.current_overall_pick)
            return DraftResult(draft=draft, error=stale)

        now = self._clock.now()
        if not is_expired(draft, now):
            # woke before the deadline (clock skew); try again when it actually passes
            if draft.timer_deadline is not None:
                self._scheduler.arm(draft_id, overall_pick, draft.timer_deadline)
            return DraftResult(draft=draft)

        request = await self._choose_auto_pick(draft)
        if request is None:
            logger.warning(
                "no auto-pick candidate available",
                draft_id=draft_id,
                overall_pick=overall_pick,
                retry_in=self._auto_pick_retry_seconds,
            )
            self._retry_auto_pick(draft_id, overall_pick, now)
            return DraftResult(draft=draft)
        result = await self.apply(draft_id, request)
        if isinstance(result.error, CommitConflictError):
            self._retry_auto_pick(draft_id, overall_pick, now)
        return result

    async def run_overdue(self) -> int:
        """Auto-pick every in-progress draft whose turn has expired. Return the number of picks made."""
        now = self._clock.now()
        made = 0
        for draft in await self._store.list_drafts():
            if draft.is_active and is_expired(draft, now):
                result = await self.auto_pick(draft.id, draft.current_overall_pick)
                if result.pick is not None:
                    made += 1
        return made

    async def restore_timers(self) -> int:
        """Arm timers for in-progress drafts found in the store (e.g. after a restart)."""
        armed = 0
        for draft in await self._store.list_drafts():
            if draft.is_active and draft.timer_deadline is not None:
                self._scheduler.arm(draft.id, draft.current_overall_pick, draft.timer_deadline)
                armed += 1
        if armed:
            logger.info("auto-pick timers restored", count=armed)
        return armed

    def shutdown(self) -> None:
        self._scheduler.shutdown()
        self._store.close_subscriptions()

    async def _choose_auto_pick(self, draft: Draft) -> PickRequest | None:
        if self._candidates is None:
            return None
        candidates = await self._candidates.candidates(draft)
        odds = await self._candidates.odds(draft)
        return choose_auto_pick(draft, candidates, odds)

    async def _handle_expiry(self, draft_id: str, overall_pick: int) -> None:
        await self.auto_pick(draft_id, overall_pick)

    def _retry_auto_pick(self, draft_id: str, overall_pick: int, now: datetime) -> None:
        """Re-arm the draft timer so the expired turn is attempted again."""
        self._scheduler.arm(draft_id, overall_pick, now + timedelta(seconds=self._auto_pick_retry_seconds))

    async def _check_capacity(self) -> None:
        if self._max_active_drafts is None:
            return
        drafts = await self._store.list_drafts()
        open_drafts = sum(1 for draft in drafts if draft.status != DraftStatus.COMPLETED)
        if open_drafts >= self._max_active_drafts:
            raise InvalidConfigurationError(f"open draft limit reached ({self._max_active_drafts})")

    async def _run(
        self,
        operation: str,
        draft_id: str,
        action: Callable[[], Awaitable[TransitionResult]],
        *,
        is_auto_pick: bool = False,
    ) -> DraftResult:
        try:
            result = await action()
        except StaleTurnError as e:
            if is_auto_pick:
                logger.debug("stale auto-pick dropped", draft_id=draft_id, error_message=e.message)
                return DraftResult(error=e)
            return self._rejected(operation, draft_id, e)
        except DraftRuleError as e:
            return self._rejected(operation, draft_id, e)

        self._sync_timer(draft_id, result.events)
        if result.pick is not None:
            logger.info(
                "pick committed",
                draft_id=draft_id,
                overall_pick=result.pick.overall_pick_number,
                participant_id=result.pick.participant_id,
                selection_id=result.pick.selection_id,
                auto=result.pick.was_auto_pick,
            )
        return DraftResult(draft=result.draft, events=tuple(result.events), pick=result.pick)

    def _sync_timer(self, draft_id: str, events: Sequence[DraftEvent]) -> None:
        """Inspect transition events and arm or cancel the draft's auto-pick timer."""
        if any(isinstance(event, DraftCompletedEvent) for event in events):
            self._scheduler.cleanup_draft(draft_id)
            return
        if any(isinstance(event, DraftPausedEvent) for event in events):
            self._scheduler.cancel(draft_id)
            return
        for event in events:
            if isinstance(event, TurnStartedEvent) and event.timer_deadline is not None:
                self._scheduler.arm(draft_id, event.overall_pick, event.timer_deadline)
                return

    @staticmethod
    def _rejected(operation: str, draft_id: str, error: DraftRuleError) -> DraftResult:
        logger.warning(
            "draft operation rejected",
            operation=operation,
            draft_id=draft_id,
            error_code=error.code,
            error_message=error.message,
        )
        return DraftResult(error=error)
