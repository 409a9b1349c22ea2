"""
Pure draft state transitions.

Every function takes the current Draft and an explicit ``now`` and returns
a TransitionResult holding the new Draft plus the events it produced. Nothing
here touches storage or the wall clock; DraftStateMachine runs these inside a
store transaction so that each one is a single atomic read-validate-write.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, NamedTuple

import structlog

from draft.logic.enums import STARTABLE_STATUSES, DraftStatus
from draft.logic.events import (
    DraftCompletedEvent,
    DraftEvent,
    DraftPausedEvent,
    DraftResumedEvent,
    DraftScheduledEvent,
    DraftStartedEvent,
    PickCommittedEvent,
    TurnStartedEvent,
)
from draft.logic.exceptions import AlreadyStartedError, DraftNotActiveError
from draft.logic.settings import validate_participant_order, validate_settings
from draft.logic.state import Draft, Pick, PickRequest
from draft.logic.validator import check_active, check_selection, check_turn_number, check_turn_owner

if TYPE_CHECKING:
    from collections.abc import Sequence

    from draft.logic.settings import DraftSettings

logger = structlog.get_logger()


class TransitionResult(NamedTuple):
    """
    Result of a draft transition.

    ``pick`` is set only by apply_pick. An empty ``events`` list means the
    transition was a no-op (e.g. pausing an already paused draft).
    """

    draft: Draft
    events: list[DraftEvent]
    pick: Pick | None = None


def _deadline(settings: DraftSettings, now: datetime) -> datetime | None:
    if not settings.has_timer:
        return None
    return now + timedelta(seconds=settings.pick_timer_seconds)


def _seconds_taken(draft: Draft, now: datetime) -> int | None:
    if not draft.settings.has_timer or draft.timer_deadline is None:
        return None
    turn_started_at = draft.timer_deadline - timedelta(seconds=draft.settings.pick_timer_seconds)
    return max(0, int((now - turn_started_at).total_seconds()))


def _turn_started(draft: Draft) -> TurnStartedEvent:
    slot = draft.current_slot
    if slot is None or draft.current_picker_id is None:
        raise ValueError(f"draft {draft.id} has no current turn")
    return TurnStartedEvent(
        draft_id=draft.id,
        overall_pick=draft.current_overall_pick,
        round_number=slot.unit_index,
        picker_id=draft.current_picker_id,
        timer_deadline=draft.timer_deadline,
    )


def new_draft(draft_id: str, settings: DraftSettings, now: datetime, league_id: str = "") -> Draft:
    """Create a pending draft after validating its settings."""
    validate_settings(settings)
    return Draft(id=draft_id, league_id=league_id, settings=settings, created_at=now)


def schedule_draft(draft: Draft, scheduled_at: datetime) -> TransitionResult:
    """Record a start time for a draft that has not started yet."""
    if draft.status not in STARTABLE_STATUSES:
        raise AlreadyStartedError(f"draft is {draft.status.value}")
    new_state = draft.model_copy(update={"status": DraftStatus.SCHEDULED, "scheduled_at": scheduled_at})
    return TransitionResult(new_state, [DraftScheduledEvent(draft_id=draft.id, scheduled_at=scheduled_at)])


def start_draft(draft: Draft, participant_order: Sequence[str], now: datetime) -> TransitionResult:
    """
    Fix the participant order and put the first picker on the clock.

    Raises:
        AlreadyStartedError: The draft is not pending or scheduled.
        InvalidConfigurationError: The order or settings are malformed.

    """
    if draft.status not in STARTABLE_STATUSES:
        raise AlreadyStartedError(f"draft is {draft.status.value}")
    validate_settings(draft.settings)
    validate_participant_order(participant_order)

    new_state = draft.model_copy(
        update={
            "participant_order": tuple(participant_order),
            "status": DraftStatus.IN_PROGRESS,
            "current_overall_pick": 1,
            "timer_deadline": _deadline(draft.settings, now),
            "started_at": now,
            "paused_at": None,
        },
    )
    events: list[DraftEvent] = [
        DraftStartedEvent(
            draft_id=draft.id,
            participant_order=new_state.participant_order,
            total_picks=new_state.total_picks,
        ),
        _turn_started(new_state),
    ]
    logger.info("draft started", draft_id=draft.id, participants=len(participant_order), total=new_state.total_picks)
    return TransitionResult(new_state, events)


def apply_pick(draft: Draft, request: PickRequest, now: datetime) -> TransitionResult:
    """
    Commit one pick and advance the draft.

    Checks run in a fixed order so that concurrent callers get consistent
    answers: not active, stale turn, not your turn, then selection rules.
    """
    check_active(draft)
    check_turn_number(draft, request)
    check_turn_owner(draft, request)
    check_selection(draft, request)

    slot = draft.current_slot
    picker_id = draft.current_picker_id
    if slot is None or picker_id is None:
        raise DraftNotActiveError("draft has no current turn")

    pick = Pick(
        overall_pick_number=draft.current_overall_pick,
        participant_id=picker_id,
        selection_id=request.selection_id,
        selection_title=request.selection_title,
        category_id=request.category_id if draft.settings.is_oscar else None,
        round_number=slot.unit_index,
        position_in_round=slot.position_in_unit,
        committed_at=now,
        seconds_taken=_seconds_taken(draft, now),
        was_auto_pick=request.is_auto_pick,
    )
    next_pick = draft.current_overall_pick + 1
    events: list[DraftEvent] = [PickCommittedEvent(draft_id=draft.id, pick=pick)]

    if next_pick > draft.total_picks:
        new_state = draft.model_copy(
            update={
                "picks": (*draft.picks, pick),
                "current_overall_pick": next_pick,
                "status": DraftStatus.COMPLETED,
                "timer_deadline": None,
                "completed_at": now,
            },
        )
        events.append(DraftCompletedEvent(draft_id=draft.id, total_picks=draft.total_picks))
        logger.info("draft completed", draft_id=draft.id, total=draft.total_picks)
        return TransitionResult(new_state, events, pick)

    new_state = draft.model_copy(
        update={
            "picks": (*draft.picks, pick),
            "current_overall_pick": next_pick,
            "timer_deadline": _deadline(draft.settings, now),
        },
    )
    events.append(_turn_started(new_state))
    return TransitionResult(new_state, events, pick)


def pause_draft(draft: Draft, now: datetime) -> TransitionResult:
    """Pause an in-progress draft. Pausing a paused draft is a no-op."""
    if draft.status == DraftStatus.PAUSED:
        return TransitionResult(draft, [])
    check_active(draft)
    new_state = draft.model_copy(update={"status": DraftStatus.PAUSED, "paused_at": now})
    return TransitionResult(new_state, [DraftPausedEvent(draft_id=draft.id)])


def resume_draft(draft: Draft, now: datetime) -> TransitionResult:
    """Resume a paused draft. Resuming an in-progress draft is a no-op."""
    if draft.status == DraftStatus.IN_PROGRESS:
        return TransitionResult(draft, [])
    if draft.status != DraftStatus.PAUSED:
        raise DraftNotActiveError(f"draft is {draft.status.value}")

    update: dict[str, object] = {"status": DraftStatus.IN_PROGRESS, "paused_at": None}
    if draft.settings.rearm_timer_on_resume:
        update["timer_deadline"] = _deadline(draft.settings, now)
    new_state = draft.model_copy(update=update)
    return TransitionResult(new_state, [DraftResumedEvent(draft_id=draft.id), _turn_started(new_state)])

