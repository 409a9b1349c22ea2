"""
String enum definitions for draft concepts.
"""

from enum import StrEnum


class DraftMode(StrEnum):
    """What participants select during a draft."""

    MOVIE_DRAFT = "movie_draft"
    OSCAR_PREDICTION = "oscar_prediction"


class TurnStyle(StrEnum):
    """How the participant order is walked from one round to the next."""

    LINEAR = "linear"  # same order every round
    SERPENTINE = "serpentine"  # order reverses on even rounds


class DraftStatus(StrEnum):
    """Lifecycle status of a draft."""

    PENDING = "pending"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"


STARTABLE_STATUSES = frozenset({DraftStatus.PENDING, DraftStatus.SCHEDULED})


class OscarDraftStyle(StrEnum):
    """How categories are assigned to turns in oscar mode."""

    ANY_CATEGORY = "any_category"  # picker chooses any open category
    CATEGORY_ROUNDS = "category_rounds"  # round N picks from categories[N - 1]


class ScoringDirection(StrEnum):
    """Whether the highest or lowest total wins the league."""

    HIGHEST = "highest"
    LOWEST = "lowest"


class SortOrder(StrEnum):
    """Presentation ordering for the available pool."""

    POPULARITY = "popularity"
    RELEASE_DATE = "release_date"
    TITLE = "title"
    TITLE_DESC = "title_desc"


class DraftErrorCode(StrEnum):
    """Error codes returned to clients for rejected draft operations."""

    DRAFT_NOT_ACTIVE = "draft_not_active"
    NOT_YOUR_TURN = "not_your_turn"
    STALE_TURN = "stale_turn"
    DUPLICATE_SELECTION = "duplicate_selection"
    CATEGORY_ALREADY_PICKED = "category_already_picked"
    CATEGORY_NOT_OPEN = "category_not_open"
    ALREADY_STARTED = "already_started"
    INVALID_CONFIGURATION = "invalid_configuration"
    DRAFT_NOT_FOUND = "draft_not_found"
    COMMIT_CONFLICT = "commit_conflict"


class DraftEventType(StrEnum):
    """Types of events emitted to draft observers."""

    DRAFT_CREATED = "draft_created"
    DRAFT_SCHEDULED = "draft_scheduled"
    DRAFT_STARTED = "draft_started"
    TURN_STARTED = "turn_started"
    PICK_COMMITTED = "pick_committed"
    DRAFT_PAUSED = "draft_paused"
    DRAFT_RESUMED = "draft_resumed"
    DRAFT_COMPLETED = "draft_completed"
