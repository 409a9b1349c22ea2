"""
Available-pool tracking across paginated catalog fetches.

The pool keeps fetch order and never holds the same id twice. Picked ids
are subtracted on read, so the available set is always pool minus picks
regardless of which side changed last.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from draft.logic.enums import SortOrder

if TYPE_CHECKING:
    from collections.abc import Iterable

    from draft.catalog.types import CatalogItem, CatalogPage, CatalogProvider
    from draft.logic.state import Pick

logger = structlog.get_logger()


class AvailabilityTracker:
    """Derive the selectable pool from fetched catalog pages minus picked selections."""

    def __init__(self, picked_ids: Iterable[str] = ()) -> None:
        self._pool: list[CatalogItem] = []
        self._pool_ids: set[str] = set()
        self._picked_ids: set[str] = set(picked_ids)
        self.current_page = 0
        self.has_more = True

    @property
    def picked_ids(self) -> frozenset[str]:
        return frozenset(self._picked_ids)

    @property
    def pool_size(self) -> int:
        return len(self._pool)

    def add_items(self, items: Iterable[CatalogItem]) -> list[CatalogItem]:
        """Append unseen, unpicked items to the pool. Return the items actually added."""
        added: list[CatalogItem] = []
        for item in items:
            if item.id in self._pool_ids or item.id in self._picked_ids:
                continue
            self._pool.append(item)
            self._pool_ids.add(item.id)
            added.append(item)
        return added

    def add_page(self, page: CatalogPage) -> list[CatalogItem]:
        """Merge a fetched page and update pagination bookkeeping."""
        added = self.add_items(page.items)
        self.current_page = max(self.current_page, page.page)
        self.has_more = page.has_more
        return added

    async def load_more(self, provider: CatalogProvider) -> list[CatalogItem]:
        """Fetch and merge the next page. Return an empty list when exhausted."""
        if not self.has_more:
            return []
        page = await provider.fetch_page(self.current_page + 1)
        added = self.add_page(page)
        logger.debug("catalog page merged", page=page.page, added=len(added), pool=len(self._pool))
        return added

    def sync_picks(self, picks: Iterable[Pick]) -> None:
        """Replace the picked set with the selections in a pick log."""
        self._picked_ids = {pick.selection_id for pick in picks}

    def mark_picked(self, selection_id: str) -> None:
        self._picked_ids.add(selection_id)

    def available(self) -> list[CatalogItem]:
        """Pool minus picked selections, in fetch order."""
        return [item for item in self._pool if item.id not in self._picked_ids]

    def available_ids(self) -> list[str]:
        return [item.id for item in self.available()]

    def sorted_available(self, order: SortOrder = SortOrder.POPULARITY) -> list[CatalogItem]:
        items = self.available()
        if order == SortOrder.POPULARITY:
            return sorted(items, key=lambda item: item.popularity, reverse=True)
        if order == SortOrder.RELEASE_DATE:
            return sorted(items, key=lambda item: item.release_date or "", reverse=True)
        if order == SortOrder.TITLE:
            return sorted(items, key=lambda item: item.title)
        return sorted(items, key=lambda item: item.title, reverse=True)

    def reset(self) -> None:
        """Forget the fetched pool, e.g. when switching catalog year. Picks are kept."""
        self._pool.clear()
        self._pool_ids.clear()
        self.current_page = 0
        self.has_more = True
