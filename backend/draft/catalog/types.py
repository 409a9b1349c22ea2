"""Catalog records consumed from selection providers (movie listings, nominee lists)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from draft.logic.state import Draft


class CatalogItem(BaseModel):
    """A selectable item: a movie in movie mode, a nominee in oscar mode."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    release_date: str | None = None  # ISO date as delivered by the provider
    popularity: float = 0.0
    category_id: str | None = None  # oscar nominees only
    work_title: str | None = None  # film a nominee is credited for


class CatalogPage(BaseModel):
    """One page of a paginated catalog fetch."""

    model_config = ConfigDict(frozen=True)

    items: list[CatalogItem] = Field(default_factory=list)
    page: int = 1
    total_pages: int = 1

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages


class CatalogProvider(Protocol):
    """Paginated source of selectable items."""

    async def fetch_page(self, page: int) -> CatalogPage: ...


class CandidateSource(Protocol):
    """Supplies auto-pick candidates, and optionally their odds, for a draft snapshot."""

    async def candidates(self, draft: Draft) -> Sequence[CatalogItem]: ...

    async def odds(self, draft: Draft) -> Mapping[str, float]: ...
