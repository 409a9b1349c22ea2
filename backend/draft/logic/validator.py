"""
Pick validation against a draft snapshot.

The individual checks are shared with transitions.apply_pick, which runs
them again inside the store transaction. validate_pick() is the fast
client-side pre-check: it uses whatever snapshot the caller holds, so a
pass here never guarantees the commit will succeed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from draft.logic.exceptions import (
    CategoryAlreadyPickedError,
    CategoryNotOpenError,
    DraftNotActiveError,
    DraftRuleError,
    DuplicateSelectionError,
    NotYourTurnError,
    StaleTurnError,
)

if TYPE_CHECKING:
    from draft.logic.state import Draft, PickRequest


def check_active(draft: Draft) -> None:
    if not draft.is_active:
        raise DraftNotActiveError(f"draft is {draft.status.value}")


def check_turn_number(draft: Draft, request: PickRequest) -> None:
    if request.expected_overall_pick != draft.current_overall_pick:
        raise StaleTurnError(
            expected_overall_pick=request.expected_overall_pick,
            current_overall_pick=draft.current_overall_pick,
        )


def check_turn_owner(draft: Draft, request: PickRequest) -> None:
    """Auto-picks are submitted on the current picker's behalf and skip this check."""
    if request.is_auto_pick:
        return
    if request.requester_id != draft.current_picker_id:
        raise NotYourTurnError(f"{request.requester_id} is not on the clock")


def check_selection(draft: Draft, request: PickRequest) -> None:
    """Reject selections that are already consumed or categories that are closed."""
    if not draft.settings.is_oscar:
        if request.selection_id in draft.picked_selection_ids:
            raise DuplicateSelectionError(f"{request.selection_id} has already been picked")
        return
    _check_oscar_selection(draft, request)


def _check_oscar_selection(draft: Draft, request: PickRequest) -> None:
    settings = draft.settings
    category_id = request.category_id
    if category_id is None or category_id not in settings.categories:
        raise CategoryNotOpenError(f"unknown category {category_id!r}")

    open_category = draft.open_category_id
    if open_category is not None and category_id != open_category:
        raise CategoryNotOpenError(f"this round picks {open_category}, not {category_id}")

    picker_id = draft.current_picker_id
    if picker_id is not None and category_id in draft.categories_picked_by(picker_id):
        raise CategoryAlreadyPickedError(f"{picker_id} already picked in {category_id}")

    if not settings.allow_duplicate_picks:
        for pick in draft.picks:
            if pick.selection_id == request.selection_id and pick.category_id == category_id:
                raise DuplicateSelectionError(f"{request.selection_id} has already been picked in {category_id}")


def validate_pick(draft: Draft, request: PickRequest) -> None:
    """Pre-check a pick against a local snapshot, raising the same errors as apply."""
    check_active(draft)
    check_turn_owner(draft, request)
    check_selection(draft, request)


def check_pick(draft: Draft, request: PickRequest) -> DraftRuleError | None:
    """Return the error validate_pick() would raise, or None if the pick looks valid."""
    try:
        validate_pick(draft, request)
    except DraftRuleError as e:
        return e
    return None
