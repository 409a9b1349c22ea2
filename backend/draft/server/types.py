from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from draft.catalog.types import CatalogItem
from draft.logic.enums import ScoringDirection
from draft.logic.settings import DraftSettings


class CreateDraftRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    draft_id: str = Field(min_length=1, max_length=64, pattern=r"^[a-zA-Z0-9_-]+$")
    league_id: str = Field(default="", max_length=64)
    settings: DraftSettings


class ScheduleDraftRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    scheduled_at: datetime


class StartDraftRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    participant_order: list[str] = Field(max_length=64)


class SubmitPickRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    requester_id: str = Field(min_length=1, max_length=100)
    selection_id: str = Field(min_length=1, max_length=100)
    expected_overall_pick: int = Field(ge=1, strict=True)
    category_id: str | None = Field(default=None, max_length=64)
    selection_title: str = Field(default="", max_length=200)


class StandingsRequest(BaseModel):
    """Scores per selection id; unknown selections score zero."""

    model_config = ConfigDict(extra="forbid")

    scores: dict[str, float] = Field(default_factory=dict)
    direction: ScoringDirection = ScoringDirection.HIGHEST


class LoadCatalogRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    items: list[CatalogItem] = Field(max_length=5000)
