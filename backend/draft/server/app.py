from __future__ import annotations

import contextlib
import json
from http import HTTPStatus
from typing import TYPE_CHECKING, TypeVar

import structlog
from pydantic import BaseModel, ValidationError
from starlette.applications import Starlette
from starlette.responses import JSONResponse
from starlette.routing import Route

from draft.catalog.market import MarketOddsClient
from draft.catalog.pool import CatalogPool
from draft.logic.enums import DraftErrorCode
from draft.logic.state import PickRequest
from draft.server.settings import DraftServerSettings
from draft.server.types import (
    CreateDraftRequest,
    LoadCatalogRequest,
    ScheduleDraftRequest,
    StandingsRequest,
    StartDraftRequest,
    SubmitPickRequest,
)
from draft.session.service import DraftService
from shared.db import Database, SqliteDraftStore
from shared.logging import setup_logging

logger = structlog.get_logger()

T = TypeVar("T", bound=BaseModel)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request

    from draft.logic.enums import ScoringDirection
    from draft.logic.exceptions import DraftRuleError
    from draft.logic.standings import Standing
    from draft.logic.state import Draft
    from draft.session.service import DraftResult


_MAX_REQUEST_BODY_SIZE = 16 * 1024
_MAX_CATALOG_BODY_SIZE = 2 * 1024 * 1024

ERROR_STATUS: dict[DraftErrorCode, int] = {
    DraftErrorCode.STALE_TURN: HTTPStatus.CONFLICT,
    DraftErrorCode.ALREADY_STARTED: HTTPStatus.CONFLICT,
    DraftErrorCode.DRAFT_NOT_ACTIVE: HTTPStatus.CONFLICT,
    DraftErrorCode.DUPLICATE_SELECTION: HTTPStatus.CONFLICT,
    DraftErrorCode.CATEGORY_ALREADY_PICKED: HTTPStatus.CONFLICT,
    DraftErrorCode.NOT_YOUR_TURN: HTTPStatus.FORBIDDEN,
    DraftErrorCode.INVALID_CONFIGURATION: HTTPStatus.BAD_REQUEST,
    DraftErrorCode.CATEGORY_NOT_OPEN: HTTPStatus.BAD_REQUEST,
    DraftErrorCode.DRAFT_NOT_FOUND: HTTPStatus.NOT_FOUND,
    DraftErrorCode.COMMIT_CONFLICT: HTTPStatus.SERVICE_UNAVAILABLE,
}


# (pick count, score version, direction) the served standings were computed under
SnapshotKey = tuple[int, int, str]


class ScoreBook:
    """Latest scores per draft and the standings baseline used for rank changes.

    The baseline moves only when the pick count, the scores or the ranking
    direction change, so repeated reads report the same rank changes.
    """

    def __init__(self) -> None:
        self._scores: dict[str, dict[str, float]] = {}
        self._score_versions: dict[str, int] = {}
        self._served: dict[str, tuple[SnapshotKey, list[Standing]]] = {}
        self._baseline: dict[str, list[Standing]] = {}

    def set_scores(self, draft_id: str, scores: dict[str, float]) -> None:
        self._scores[draft_id] = dict(scores)
        self._score_versions[draft_id] = self._score_versions.get(draft_id, 0) + 1

    def score_for(self, draft_id: str) -> dict[str, float]:
        return self._scores.get(draft_id, {})

    def snapshot_key(self, draft: Draft, direction: ScoringDirection) -> SnapshotKey:
        return (len(draft.picks), self._score_versions.get(draft.id, 0), direction.value)

    def baseline(self, draft_id: str, key: SnapshotKey) -> list[Standing] | None:
        """Return the standings to diff against, promoting the last served ones if ``key`` is new."""
        served = self._served.get(draft_id)
        if served is not None and served[0] != key:
            self._baseline[draft_id] = served[1]
        return self._baseline.get(draft_id)

    def remember(self, draft_id: str, key: SnapshotKey, standings: list[Standing]) -> None:
        self._served[draft_id] = (key, standings)


def _error_response(error: DraftRuleError) -> JSONResponse:
    status_code = ERROR_STATUS.get(error.code, HTTPStatus.BAD_REQUEST)
    return JSONResponse({"error": error.code.value, "message": error.message}, status_code=status_code)


def _draft_response(result: DraftResult, status_code: int = HTTPStatus.OK) -> JSONResponse:
    if result.error is not None:
        return _error_response(result.error)
    body = result.draft.model_dump(mode="json") if result.draft is not None else {}
    if result.pick is not None:
        body = {"draft": body, "pick": result.pick.model_dump(mode="json")}
    return JSONResponse(body, status_code=status_code)


async def _parse_body(
    request: Request,
    model: type[T],
    max_size: int = _MAX_REQUEST_BODY_SIZE,
) -> T | JSONResponse:
    """Decode and validate a JSON body, or return the error response to send."""
    try:
        raw_body = await request.body()
        if len(raw_body) > max_size:
            return JSONResponse({"error": "Request body too large"}, status_code=HTTPStatus.REQUEST_ENTITY_TOO_LARGE)
        return model.model_validate(json.loads(raw_body or b"{}"))
    except (ValueError, TypeError, json.JSONDecodeError, UnicodeDecodeError, ValidationError):  # fmt: skip
        return JSONResponse({"error": "Invalid request body"}, status_code=HTTPStatus.BAD_REQUEST)


def _service(request: Request) -> DraftService:
    return request.app.state.draft_service


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def create_draft(request: Request) -> JSONResponse:
    body = await _parse_body(request, CreateDraftRequest)
    if isinstance(body, JSONResponse):
        return body
    result = await _service(request).create_draft(body.draft_id, body.settings, league_id=body.league_id)
    return _draft_response(result, status_code=HTTPStatus.CREATED)


async def list_drafts(request: Request) -> JSONResponse:
    league_id = request.query_params.get("league_id")
    drafts = await _service(request).list_drafts(league_id)
    return JSONResponse({"drafts": [draft.model_dump(mode="json") for draft in drafts]})


async def get_draft(request: Request) -> JSONResponse:
    return _draft_response(await _service(request).current_state(request.path_params["draft_id"]))


async def schedule_draft(request: Request) -> JSONResponse:
    body = await _parse_body(request, ScheduleDraftRequest)
    if isinstance(body, JSONResponse):
        return body
    return _draft_response(await _service(request).schedule(request.path_params["draft_id"], body.scheduled_at))


async def start_draft(request: Request) -> JSONResponse:
    body = await _parse_body(request, StartDraftRequest)
    if isinstance(body, JSONResponse):
        return body
    return _draft_response(await _service(request).start(request.path_params["draft_id"], body.participant_order))


async def pause_draft(request: Request) -> JSONResponse:
    return _draft_response(await _service(request).pause(request.path_params["draft_id"]))


async def resume_draft(request: Request) -> JSONResponse:
    return _draft_response(await _service(request).resume(request.path_params["draft_id"]))


async def submit_pick(request: Request) -> JSONResponse:
    body = await _parse_body(request, SubmitPickRequest)
    if isinstance(body, JSONResponse):
        return body
    pick_request = PickRequest(
        requester_id=body.requester_id,
        selection_id=body.selection_id,
        expected_overall_pick=body.expected_overall_pick,
        category_id=body.category_id,
        selection_title=body.selection_title,
    )
    result = await _service(request).apply(request.path_params["draft_id"], pick_request)
    return _draft_response(result, status_code=HTTPStatus.CREATED)


async def set_scores(request: Request) -> JSONResponse:
    body = await _parse_body(request, StandingsRequest)
    if isinstance(body, JSONResponse):
        return body
    draft_id = request.path_params["draft_id"]
    state = await _service(request).current_state(draft_id)
    if state.error is not None:
        return _error_response(state.error)
    request.app.state.score_book.set_scores(draft_id, body.scores)
    return await _standings_response(request, state.draft, body)


async def get_standings(request: Request) -> JSONResponse:
    direction = request.query_params.get("direction", "highest")
    try:
        options = StandingsRequest(direction=direction)
    except ValidationError:
        return JSONResponse({"error": "Invalid direction"}, status_code=HTTPStatus.BAD_REQUEST)
    state = await _service(request).current_state(request.path_params["draft_id"])
    if state.error is not None:
        return _error_response(state.error)
    return await _standings_response(request, state.draft, options)


async def _standings_response(request: Request, draft: Draft, options: StandingsRequest) -> JSONResponse:
    score_book: ScoreBook = request.app.state.score_book
    scores = score_book.score_for(draft.id)
    key = score_book.snapshot_key(draft, options.direction)
    result = await _service(request).standings(
        draft.id,
        lambda selection_id: scores.get(selection_id, 0.0),
        previous=score_book.baseline(draft.id, key),
        direction=options.direction,
    )
    if result.error is not None:
        return _error_response(result.error)
    score_book.remember(draft.id, key, result.standings)
    return JSONResponse({"standings": [standing.model_dump(mode="json") for standing in result.standings]})


async def get_timer(request: Request) -> JSONResponse:
    draft_id = request.path_params["draft_id"]
    result = await _service(request).remaining_time(draft_id)
    if result.error is not None:
        return _error_response(result.error)
    return JSONResponse(
        {
            "draft_id": draft_id,
            "remaining_seconds": result.remaining_seconds,
            "deadline": result.deadline.isoformat() if result.deadline else None,
        },
    )


async def load_catalog(request: Request) -> JSONResponse:
    body = await _parse_body(request, LoadCatalogRequest, max_size=_MAX_CATALOG_BODY_SIZE)
    if isinstance(body, JSONResponse):
        return body
    catalog: CatalogPool = request.app.state.catalog
    catalog.replace_items(body.items)
    logger.info("auto-pick catalog loaded", items=len(body.items))
    return JSONResponse({"items": len(body.items)})


def create_app(
    settings: DraftServerSettings | None = None,
    draft_service: DraftService | None = None,
    catalog: CatalogPool | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = DraftServerSettings()

    if catalog is None:
        odds_client = MarketOddsClient(settings.market_api_url, timeout=settings.market_timeout_seconds)
        catalog = CatalogPool(odds_client=odds_client)

    # When the app creates its own DraftService, it owns the DB lifecycle.
    owned_db: Database | None = None

    if draft_service is None:
        db = Database(settings.database_path)
        db.connect()
        owned_db = db
        draft_service = DraftService(
            SqliteDraftStore(db),
            candidates=catalog,
            auto_pick_grace_seconds=settings.auto_pick_grace_seconds,
            max_active_drafts=settings.max_active_drafts,
            auto_pick_retry_seconds=settings.auto_pick_retry_seconds,
        )

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/catalog", load_catalog, methods=["POST"]),
        Route("/drafts", list_drafts, methods=["GET"]),
        Route("/drafts", create_draft, methods=["POST"]),
        Route("/drafts/{draft_id}", get_draft, methods=["GET"]),
        Route("/drafts/{draft_id}/schedule", schedule_draft, methods=["POST"]),
        Route("/drafts/{draft_id}/start", start_draft, methods=["POST"]),
        Route("/drafts/{draft_id}/pause", pause_draft, methods=["POST"]),
        Route("/drafts/{draft_id}/resume", resume_draft, methods=["POST"]),
        Route("/drafts/{draft_id}/picks", submit_pick, methods=["POST"]),
        Route("/drafts/{draft_id}/standings", get_standings, methods=["GET"]),
        Route("/drafts/{draft_id}/scores", set_scores, methods=["POST"]),
        Route("/drafts/{draft_id}/timer", get_timer, methods=["GET"]),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        await draft_service.restore_timers()
        try:
            yield
        finally:
            draft_service.shutdown()
            if owned_db is not None:
                owned_db.close()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.state.settings = settings
    app.state.draft_service = draft_service
    app.state.catalog = catalog
    app.state.score_book = ScoreBook()

    logger.info("draft server ready")
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    settings = DraftServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
