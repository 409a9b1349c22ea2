"""
Draft state models.

Draft and Pick are frozen, versioned records. They are decoded once at the
storage boundary and flow through business logic as typed values; every
transition returns a new Draft via model_copy instead of mutating one.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field

from draft.logic.enums import DraftStatus, OscarDraftStyle
from draft.logic.settings import DraftSettings
from draft.logic.turn_order import TurnSlot, turn_slot

SCHEMA_VERSION = 1


class Pick(BaseModel):
    """One committed selection. ``overall_pick_number`` is its identity."""

    model_config = ConfigDict(frozen=True)

    schema_version: int = SCHEMA_VERSION
    overall_pick_number: int
    participant_id: str
    selection_id: str
    selection_title: str = ""
    category_id: str | None = None  # oscar mode only
    round_number: int
    position_in_round: int  # 0-based
    committed_at: datetime
    seconds_taken: int | None = None  # None when the draft has no pick timer
    was_auto_pick: bool = False


class PickRequest(BaseModel):
    """A proposed pick as submitted by a client or the timer path."""

    model_config = ConfigDict(frozen=True)

    requester_id: str
    selection_id: str = Field(min_length=1)
    expected_overall_pick: int
    is_auto_pick: bool = False
    category_id: str | None = None
    selection_title: str = ""


class Draft(BaseModel):
    """
    The authoritative record of one drafting session.

    ``current_overall_pick`` is 0 until the draft starts, then 1-based and
    strictly increasing. ``current_picker_id`` is derived from it and is
    None whenever the draft is not in progress.
    """

    model_config = ConfigDict(frozen=True)

    schema_version: int = SCHEMA_VERSION
    id: str
    revision: int = 0  # bumped by the store on every committed write
    league_id: str = ""
    settings: DraftSettings = Field(default_factory=DraftSettings)
    participant_order: tuple[str, ...] = ()
    status: DraftStatus = DraftStatus.PENDING
    current_overall_pick: int = 0
    timer_deadline: datetime | None = None
    picks: tuple[Pick, ...] = ()

    created_at: datetime | None = None
    scheduled_at: datetime | None = None
    started_at: datetime | None = None
    paused_at: datetime | None = None
    completed_at: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_picks(self) -> int:
        return len(self.participant_order) * self.settings.units_per_participant

    @computed_field  # type: ignore[prop-decorator]
    @property
    def current_picker_id(self) -> str | None:
        slot = self.current_slot
        if slot is None:
            return None
        return self.participant_order[slot.participant_index]

    @property
    def num_participants(self) -> int:
        return len(self.participant_order)

    @property
    def is_active(self) -> bool:
        return self.status == DraftStatus.IN_PROGRESS

    @property
    def is_complete(self) -> bool:
        return self.status == DraftStatus.COMPLETED

    @property
    def picks_remaining(self) -> int:
        return self.total_picks - len(self.picks)

    @property
    def progress(self) -> float:
        """Fraction of picks made, 0.0 to 1.0."""
        if self.total_picks == 0:
            return 0.0
        return len(self.picks) / self.total_picks

    @property
    def current_slot(self) -> TurnSlot | None:
        """Slot of the pick being made, or None when nobody is on the clock."""
        if not self.is_active or not 1 <= self.current_overall_pick <= self.total_picks:
            return None
        return turn_slot(self.current_overall_pick, self.num_participants, self.settings.turn_style)

    @property
    def current_round(self) -> int | None:
        slot = self.current_slot
        return slot.unit_index if slot is not None else None

    @property
    def current_pick_in_round(self) -> int | None:
        """1-based position of the current pick within its round."""
        slot = self.current_slot
        return slot.position_in_unit + 1 if slot is not None else None

    @property
    def open_category_id(self) -> str | None:
        """Category every picker must use this round, for category-rounds oscar drafts."""
        settings = self.settings
        if not settings.is_oscar or settings.oscar_draft_style != OscarDraftStyle.CATEGORY_ROUNDS:
            return None
        round_number = self.current_round
        if round_number is None or round_number > len(settings.categories):
            return None
        return settings.categories[round_number - 1]

    @property
    def picked_selection_ids(self) -> frozenset[str]:
        return frozenset(pick.selection_id for pick in self.picks)

    def picks_for(self, participant_id: str) -> list[Pick]:
        return [pick for pick in self.picks if pick.participant_id == participant_id]

    def categories_picked_by(self, participant_id: str) -> frozenset[str]:
        return frozenset(
            pick.category_id for pick in self.picks if pick.participant_id == participant_id and pick.category_id
        )

    def pick_at(self, overall_pick_number: int) -> Pick | None:
        """Return the committed pick with the given number, if any."""
        if 1 <= overall_pick_number <= len(self.picks):
            return self.picks[overall_pick_number - 1]
        return None
