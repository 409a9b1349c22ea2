"""Typed domain exceptions for draft rule violations.

All expected business rejections use subclasses of DraftRuleError rather
than raw ValueError. Domain logic (transitions.py, validator.py) raises
them; the service boundary (session/service.py) catches them and converts
them to DraftResult errors, so callers never see an exception for an
expected condition.
"""

from draft.logic.enums import DraftErrorCode


class DraftRuleError(Exception):
    """Base exception for draft rule violations.

    Each subclass carries a stable ``code`` that the UI and the server
    share, so a rejection means the same thing on both sides.
    """

    code: DraftErrorCode

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code.value)

    @property
    def message(self) -> str:
        return str(self)


class DraftNotActiveError(DraftRuleError):
    """Operation attempted while the draft is not in progress."""

    code = DraftErrorCode.DRAFT_NOT_ACTIVE


class NotYourTurnError(DraftRuleError):
    """Requester is not the current picker."""

    code = DraftErrorCode.NOT_YOUR_TURN


class StaleTurnError(DraftRuleError):
    """The expected pick number no longer matches; another pick already landed.

    Attributes:
        expected_overall_pick: The pick number the caller believed was current.
        current_overall_pick: The pick number the draft is actually on.

    """

    code = DraftErrorCode.STALE_TURN

    def __init__(self, *, expected_overall_pick: int, current_overall_pick: int) -> None:
        self.expected_overall_pick = expected_overall_pick
        self.current_overall_pick = current_overall_pick
        super().__init__(f"expected pick {expected_overall_pick}, draft is on pick {current_overall_pick}")


class DuplicateSelectionError(DraftRuleError):
    """Selection has already been consumed in this draft."""

    code = DraftErrorCode.DUPLICATE_SELECTION


class CategoryAlreadyPickedError(DraftRuleError):
    """Requester already holds a pick in this category (oscar mode)."""

    code = DraftErrorCode.CATEGORY_ALREADY_PICKED


class CategoryNotOpenError(DraftRuleError):
    """Category is unknown to the draft or not open for the current round."""

    code = DraftErrorCode.CATEGORY_NOT_OPEN


class AlreadyStartedError(DraftRuleError):
    """start() called on a draft that is not pending or scheduled."""

    code = DraftErrorCode.ALREADY_STARTED


class InvalidConfigurationError(DraftRuleError):
    """Participant order or draft settings are malformed."""

    code = DraftErrorCode.INVALID_CONFIGURATION


class DraftNotFoundError(DraftRuleError):
    """No draft exists with the requested id."""

    code = DraftErrorCode.DRAFT_NOT_FOUND

    def __init__(self, draft_id: str) -> None:
        self.draft_id = draft_id
        super().__init__(f"draft {draft_id!r} not found")


class CommitConflictError(DraftRuleError):
    """The draft kept changing underneath a write and nothing was committed.

    Unlike the other rule errors this one is transient: the same request may
    succeed if submitted again.
    """

    code = DraftErrorCode.COMMIT_CONFLICT
