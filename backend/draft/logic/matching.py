"""
Match prediction-market quotes to known nominees.

Market titles are free text ("Best Picture: Anora", "Adrien Brody"). A quote
matches the first nominee whose name, or credited work title, appears in the
quote text, compared case-insensitively; failing that, names are compared
again with diacritics folded away. Unmatched quotes are dropped: odds are a
best-effort enrichment and callers fall back to their own estimates.
"""

from __future__ import annotations

import unicodedata
from typing import TYPE_CHECKING, NamedTuple

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from draft.catalog.market import MarketQuote
    from draft.catalog.types import CatalogItem

logger = structlog.get_logger()

_CENTS = 100.0


class MatchedQuote(NamedTuple):
    quote: MarketQuote
    nominee: CatalogItem
    probability: float


def fold_diacritics(text: str) -> str:
    """Lowercase and strip combining marks ("Göransson" -> "goransson")."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def quote_text(quote: MarketQuote) -> str:
    return f"{quote.title} {quote.subtitle or ''}".lower()


def effective_probability(quote: MarketQuote) -> float:
    """Last traded price in cents as a probability, else the bid/ask midpoint, else 0."""
    if quote.last_price > 0:
        return quote.last_price / _CENTS
    mid = (quote.yes_bid + quote.yes_ask) // 2
    return mid / _CENTS if mid > 0 else 0.0


def match_nominee(quote: MarketQuote, nominees: Sequence[CatalogItem]) -> CatalogItem | None:
    """Return the nominee a quote refers to, or None."""
    text = quote_text(quote)
    for nominee in nominees:
        name = nominee.title.lower()
        work = (nominee.work_title or "").lower()
        if name and name in text:
            return nominee
        if work and work in text:
            return nominee

    folded_text = fold_diacritics(text)
    for nominee in nominees:
        folded_name = fold_diacritics(nominee.title)
        if folded_name and folded_name in folded_text:
            return nominee
    return None


def match_quotes(quotes: Iterable[MarketQuote], nominees: Sequence[CatalogItem]) -> list[MatchedQuote]:
    """Match each quote to at most one nominee. Never raises."""
    matches: list[MatchedQuote] = []
    for quote in quotes:
        try:
            nominee = match_nominee(quote, nominees)
            if nominee is None:
                continue
            matches.append(MatchedQuote(quote, nominee, effective_probability(quote)))
        except (AttributeError, TypeError, ValueError):
            logger.debug("skipping unmatchable quote", ticker=getattr(quote, "ticker", None))
    return matches


def odds_by_nominee(quotes: Iterable[MarketQuote], nominees: Sequence[CatalogItem]) -> dict[str, float]:
    """Map nominee id -> probability for matched quotes with a positive price."""
    odds: dict[str, float] = {}
    for match in match_quotes(quotes, nominees):
        if match.probability > 0:
            odds[match.nominee.id] = match.probability
    return odds
