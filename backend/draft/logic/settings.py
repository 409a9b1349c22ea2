"""Centralized draft settings - the configurable rules of a single draft."""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from draft.logic.enums import DraftMode, OscarDraftStyle, TurnStyle
from draft.logic.exceptions import InvalidConfigurationError

MIN_PARTICIPANTS = 2

# The "big six" categories, in ceremony display order.
MAJOR_CATEGORIES: tuple[str, ...] = (
    "best_picture",
    "best_director",
    "best_actor",
    "best_actress",
    "best_supporting_actor",
    "best_supporting_actress",
)


class DraftSettings(BaseModel):
    """
    Configuration for one draft.

    Fields are plain values so that a malformed configuration reaches
    validate_settings() and is reported as InvalidConfigurationError
    instead of a pydantic ValidationError.
    """

    model_config = ConfigDict(frozen=True)

    mode: DraftMode = DraftMode.MOVIE_DRAFT
    turn_style: TurnStyle = TurnStyle.SERPENTINE
    units_per_participant: int = 5  # rounds (movie) or required categories (oscar)
    pick_timer_seconds: int = 120  # 0 = unlimited

    # --- Oscar mode ---
    oscar_draft_style: OscarDraftStyle = OscarDraftStyle.ANY_CATEGORY
    categories: tuple[str, ...] = MAJOR_CATEGORIES
    allow_duplicate_picks: bool = False

    # --- Pause behaviour ---
    rearm_timer_on_resume: bool = False

    @property
    def is_oscar(self) -> bool:
        return self.mode == DraftMode.OSCAR_PREDICTION

    @property
    def has_timer(self) -> bool:
        return self.pick_timer_seconds > 0


def validate_settings(settings: DraftSettings) -> None:
    """Validate draft settings independently of the participant order.

    Raises InvalidConfigurationError listing every problem found.
    """
    errors: list[str] = []

    if settings.units_per_participant <= 0:
        errors.append(f"units_per_participant={settings.units_per_participant} must be positive")

    if settings.pick_timer_seconds < 0:
        errors.append(f"pick_timer_seconds={settings.pick_timer_seconds} must not be negative")

    if settings.is_oscar:
        if not settings.categories:
            errors.append("oscar drafts need at least one category")
        elif len(set(settings.categories)) != len(settings.categories):
            errors.append("categories contain duplicates")
        elif settings.units_per_participant > len(settings.categories):
            errors.append(
                f"units_per_participant={settings.units_per_participant} exceeds "
                f"{len(settings.categories)} available categories",
            )

    if errors:
        raise InvalidConfigurationError("; ".join(errors))


def validate_participant_order(participant_order: Sequence[str]) -> None:
    """Validate the participant order fixed at draft start."""
    if len(participant_order) < MIN_PARTICIPANTS:
        raise InvalidConfigurationError(
            f"participant order needs at least {MIN_PARTICIPANTS} participants, got {len(participant_order)}",
        )
    if any(not participant_id for participant_id in participant_order):
        raise InvalidConfigurationError("participant order contains an empty id")
    if len(set(participant_order)) != len(participant_order):
        raise InvalidConfigurationError("participant order contains duplicates")
