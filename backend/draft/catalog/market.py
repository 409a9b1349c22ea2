"""Prediction-market odds client for oscar-mode drafts.

Reads open markets per award series from a public trade API. Reading
market data needs no authentication. Every failure (transport error,
non-2xx response, malformed body) is logged and treated as "no quotes" so
that odds enrichment never blocks a draft.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from draft.logic.matching import odds_by_nominee

if TYPE_CHECKING:
    from collections.abc import Sequence

    from draft.catalog.types import CatalogItem

logger = structlog.get_logger()

DEFAULT_MARKET_API_URL = "https://api.elections.kalshi.com/trade-api/v2"
MARKET_PAGE_LIMIT = 50

# series ticker -> category id
SERIES_CATEGORIES: dict[str, str] = {
    "KXOSCARPIC": "best_picture",
    "KXOSCARDIR": "best_director",
    "KXOSCARACTO": "best_actor",
    "KXOSCARACTR": "best_actress",
    "KXOSCARSUPACTO": "best_supporting_actor",
    "KXOSCARSUPACTR": "best_supporting_actress",
}


class MarketQuote(BaseModel):
    """One binary market. Prices are in cents (0-100)."""

    model_config = ConfigDict(frozen=True)

    ticker: str
    title: str
    subtitle: str | None = None
    yes_bid: int = 0
    yes_ask: int = 0
    last_price: int = 0
    volume: int | None = None
    status: str = ""


class MarketsResponse(BaseModel):
    markets: list[MarketQuote] = Field(default_factory=list)
    cursor: str | None = None


class CategoryOdds(BaseModel):
    """Odds keyed by nominee id, plus how many categories returned markets."""

    odds: dict[str, float] = Field(default_factory=dict)
    categories_fetched: int = 0


class MarketOddsClient:
    def __init__(
        self,
        base_url: str = DEFAULT_MARKET_API_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    async def fetch_markets(self, series_ticker: str) -> list[MarketQuote]:
        """Return open markets for a series, or an empty list on any failure."""
        params = {"series_ticker": series_ticker, "status": "open", "limit": MARKET_PAGE_LIMIT}
        try:
            async with self._client() as client:
                response = await client.get("/markets", params=params)
        except httpx.HTTPError:
            logger.warning("market fetch failed", series=series_ticker, exc_info=True)
            return []

        if response.status_code != HTTPStatus.OK:
            logger.warning("market fetch rejected", series=series_ticker, status_code=response.status_code)
            return []

        try:
            return MarketsResponse.model_validate_json(response.content).markets
        except ValidationError:
            logger.warning("market response malformed", series=series_ticker)
            return []

    async def fetch_category_odds(self, nominees: Sequence[CatalogItem]) -> CategoryOdds:
        """Fetch every known series and match quotes to the nominees of its category."""
        result = CategoryOdds()
        for series_ticker, category_id in SERIES_CATEGORIES.items():
            markets = await self.fetch_markets(series_ticker)
            if not markets:
                continue
            category_nominees = [nominee for nominee in nominees if nominee.category_id == category_id]
            result.odds.update(odds_by_nominee(markets, category_nominees))
            result.categories_fetched += 1
        logger.info("market odds fetched", categories=result.categories_fetched, nominees=len(result.odds))
        return result
