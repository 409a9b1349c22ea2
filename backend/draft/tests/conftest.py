from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from draft.catalog.types import CatalogItem
from draft.logic.enums import DraftMode, TurnStyle
from draft.logic.settings import DraftSettings
from draft.logic.state import PickRequest
from draft.logic.state_machine import DraftStateMachine
from draft.logic.transitions import apply_pick, new_draft, start_draft
from draft.session.service import DraftService
from draft.tests.mocks import FakeClock, MockCandidateSource
from draft.tests.mocks.clock import DEFAULT_START
from shared.dal import InMemoryDraftStore

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime

    from draft.logic.state import Draft


PARTICIPANTS = ("A", "B", "C", "D")


# ============================================================================
# Test State Builder Helpers
# ============================================================================


def create_settings(**overrides: Any) -> DraftSettings:
    """Movie-mode serpentine settings with a 60 second timer unless overridden."""
    values: dict[str, Any] = {
        "mode": DraftMode.MOVIE_DRAFT,
        "turn_style": TurnStyle.SERPENTINE,
        "units_per_participant": 5,
        "pick_timer_seconds": 60,
    }
    values.update(overrides)
    return DraftSettings(**values)


def create_oscar_settings(**overrides: Any) -> DraftSettings:
    values: dict[str, Any] = {
        "mode": DraftMode.OSCAR_PREDICTION,
        "units_per_participant": 3,
        "categories": ("best_picture", "best_director", "best_actor"),
    }
    values.update(overrides)
    return create_settings(**values)


def create_draft(
    draft_id: str = "d1",
    *,
    participants: Sequence[str] = PARTICIPANTS,
    settings: DraftSettings | None = None,
    started: bool = True,
    now: datetime = DEFAULT_START,
) -> Draft:
    """Build a draft value, started with ``participants`` unless ``started`` is False."""
    draft = new_draft(draft_id, settings or create_settings(), now)
    if not started:
        return draft
    return start_draft(draft, participants, now).draft


def make_request(
    draft: Draft,
    selection_id: str,
    *,
    requester_id: str | None = None,
    expected_overall_pick: int | None = None,
    category_id: str | None = None,
    is_auto_pick: bool = False,
) -> PickRequest:
    """A pick request for the turn currently on the clock, unless overridden."""
    return PickRequest(
        requester_id=requester_id if requester_id is not None else (draft.current_picker_id or ""),
        selection_id=selection_id,
        expected_overall_pick=(
            expected_overall_pick if expected_overall_pick is not None else draft.current_overall_pick
        ),
        category_id=category_id,
        is_auto_pick=is_auto_pick,
    )


def play_picks(draft: Draft, selection_ids: Iterable[str], now: datetime = DEFAULT_START) -> Draft:
    """Apply one pick per selection id, each made by whoever is on the clock."""
    for selection_id in selection_ids:
        draft = apply_pick(draft, make_request(draft, selection_id), now).draft
    return draft


def movie(item_id: str, popularity: float = 0.0, title: str | None = None, release_date: str | None = None) -> CatalogItem:
    return CatalogItem(id=item_id, title=title or item_id, popularity=popularity, release_date=release_date)


def nominee(item_id: str, category_id: str, title: str, work_title: str | None = None) -> CatalogItem:
    return CatalogItem(id=item_id, title=title, category_id=category_id, work_title=work_title)


def movie_catalog(count: int = 30) -> list[CatalogItem]:
    """``movie_1`` .. ``movie_<count>``, most popular first."""
    return [movie(f"movie_{n}", popularity=float(count - n)) for n in range(1, count + 1)]


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryDraftStore:
    return InMemoryDraftStore()


@pytest.fixture
def machine(store: InMemoryDraftStore, clock: FakeClock) -> DraftStateMachine:
    return DraftStateMachine(store, clock)


@pytest.fixture
def candidates() -> MockCandidateSource:
    return MockCandidateSource(movie_catalog())


@pytest.fixture
async def service(store: InMemoryDraftStore, clock: FakeClock, candidates: MockCandidateSource):
    draft_service = DraftService(store, clock=clock, candidates=candidates)
    yield draft_service
    draft_service.shutdown()
