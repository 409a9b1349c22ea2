"""
Auto-pick selection policy.

When a turn expires the engine picks the highest-ranked selection that the
current picker could legally take:

- movie mode: highest catalog popularity, ties in catalog order;
- oscar mode: the first open category (the round's category, or else the
  first category in draft order the picker has not used), taking the nominee
  with the highest market probability, ties in catalog order.

The choice depends only on the draft snapshot, the candidate list and the
odds, so every observer that fires for the same expired turn submits the
same request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from draft.logic.exceptions import DraftRuleError
from draft.logic.timer import build_auto_pick
from draft.logic.validator import check_selection

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from draft.catalog.types import CatalogItem
    from draft.logic.state import Draft, PickRequest


def _first_legal(draft: Draft, ranked: Sequence[CatalogItem]) -> PickRequest | None:
    for item in ranked:
        request = build_auto_pick(draft, item.id, category_id=item.category_id, selection_title=item.title)
        try:
            check_selection(draft, request)
        except DraftRuleError:
            continue
        return request
    return None


def _open_categories(draft: Draft) -> list[str]:
    if draft.open_category_id is not None:
        return [draft.open_category_id]
    picker_id = draft.current_picker_id
    used = draft.categories_picked_by(picker_id) if picker_id is not None else frozenset()
    return [category_id for category_id in draft.settings.categories if category_id not in used]


def choose_auto_pick(
    draft: Draft,
    candidates: Sequence[CatalogItem],
    odds: Mapping[str, float] | None = None,
) -> PickRequest | None:
    """Return the auto-pick request for the current turn, or None if nothing is pickable."""
    if draft.current_picker_id is None:
        return None

    if not draft.settings.is_oscar:
        ranked = sorted(candidates, key=lambda item: item.popularity, reverse=True)
        return _first_legal(draft, ranked)

    odds = odds or {}
    for category_id in _open_categories(draft):
        nominees = [item for item in candidates if item.category_id == category_id]
        ranked = sorted(nominees, key=lambda item: odds.get(item.id, 0.0), reverse=True)
        request = _first_legal(draft, ranked)
        if request is not None:
            return request
    return None
