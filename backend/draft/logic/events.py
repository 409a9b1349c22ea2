"""Domain events emitted by draft transitions.

Transitions return events alongside the new Draft. The service layer
inspects them to drive side effects (timer arming, logging) without the
pure transition code knowing about either.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

from draft.logic.enums import DraftEventType
from draft.logic.state import Pick


class DraftEvent(BaseModel):
    """Base class for all draft events."""

    model_config = ConfigDict(frozen=True)

    type: DraftEventType
    draft_id: str


class DraftCreatedEvent(DraftEvent):
    type: Literal[DraftEventType.DRAFT_CREATED] = DraftEventType.DRAFT_CREATED


class DraftScheduledEvent(DraftEvent):
    type: Literal[DraftEventType.DRAFT_SCHEDULED] = DraftEventType.DRAFT_SCHEDULED
    scheduled_at: datetime


class DraftStartedEvent(DraftEvent):
    type: Literal[DraftEventType.DRAFT_STARTED] = DraftEventType.DRAFT_STARTED
    participant_order: tuple[str, ...]
    total_picks: int


class TurnStartedEvent(DraftEvent):
    """A participant is on the clock."""

    type: Literal[DraftEventType.TURN_STARTED] = DraftEventType.TURN_STARTED
    overall_pick: int
    round_number: int
    picker_id: str
    timer_deadline: datetime | None = None


class PickCommittedEvent(DraftEvent):
    type: Literal[DraftEventType.PICK_COMMITTED] = DraftEventType.PICK_COMMITTED
    pick: Pick


class DraftPausedEvent(DraftEvent):
    type: Literal[DraftEventType.DRAFT_PAUSED] = DraftEventType.DRAFT_PAUSED


class DraftResumedEvent(DraftEvent):
    type: Literal[DraftEventType.DRAFT_RESUMED] = DraftEventType.DRAFT_RESUMED


class DraftCompletedEvent(DraftEvent):
    type: Literal[DraftEventType.DRAFT_COMPLETED] = DraftEventType.DRAFT_COMPLETED
    total_picks: int
