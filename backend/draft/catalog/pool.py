"""A fixed catalog used as the auto-pick candidate source."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from draft.logic.availability import AvailabilityTracker

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from draft.catalog.market import MarketOddsClient
    from draft.catalog.types import CatalogItem
    from draft.logic.state import Draft

logger = structlog.get_logger()


class CatalogPool:
    """
    Candidate source over a catalog loaded up front.

    In movie mode candidates are the catalog minus everything already picked.
    In oscar mode the whole nominee list is returned, because the same
    nominee can still be legal in another category; the category rules decide.
    Odds are fetched from the market client once and then reused.
    """

    def __init__(
        self,
        items: Iterable[CatalogItem] = (),
        odds: Mapping[str, float] | None = None,
        odds_client: MarketOddsClient | None = None,
    ) -> None:
        self._items = list(items)
        self._odds = dict(odds) if odds is not None else None
        self._odds_client = odds_client

    @property
    def items(self) -> list[CatalogItem]:
        return list(self._items)

    def replace_items(self, items: Iterable[CatalogItem]) -> None:
        self._items = list(items)
        self._odds = None if self._odds_client is not None else self._odds

    async def candidates(self, draft: Draft) -> Sequence[CatalogItem]:
        tracker = AvailabilityTracker()
        tracker.add_items(self._items)
        if not draft.settings.is_oscar:
            tracker.sync_picks(draft.picks)
        return tracker.available()

    async def odds(self, draft: Draft) -> Mapping[str, float]:
        if not draft.settings.is_oscar:
            return {}
        if self._odds is None and self._odds_client is not None:
            fetched = await self._odds_client.fetch_category_odds(self._items)
            self._odds = fetched.odds
            logger.debug("auto-pick odds loaded", draft_id=draft.id, nominees=len(self._odds))
        return self._odds or {}
