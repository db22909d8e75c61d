from __future__ import annotations

import contextlib
import json
from http import HTTPStatus
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

from shared.build_info import APP_VERSION, GIT_COMMIT
from shared.dal.exceptions import StorageError
from shared.db import Database, SqliteHoleResultLog, SqliteTournamentRepository
from shared.logging import setup_logging
from tournament.logic.exceptions import InvalidHoleError, NotFoundError, ScoringError, SessionLockedError
from tournament.logic.standings import compute_magic_number
from tournament.scoring.coordinator import ScoringCoordinator
from tournament.scoring.standings_service import StandingsService
from tournament.server.settings import ScoringServerSettings
from tournament.server.types import RecordHoleRequest

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request

    from shared.dal.hole_result_log import HoleResultLog
    from shared.dal.tournament_repository import TournamentRepository

_MAX_REQUEST_BODY_SIZE = 4096


def _error(code: str, message: str, status: HTTPStatus) -> JSONResponse:
    return JSONResponse({"error": message, "code": code}, status_code=status)


async def _scoring_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Convert domain errors to JSON. A locked session tells the user to unlock it."""
    if isinstance(exc, NotFoundError):
        return _error("not_found", str(exc), HTTPStatus.NOT_FOUND)
    if isinstance(exc, SessionLockedError):
        return _error(
            "session_locked",
            "This session is locked. Unlock the session to record scores.",
            HTTPStatus.CONFLICT,
        )
    if isinstance(exc, InvalidHoleError):
        return _error("invalid_hole", exc.reason, HTTPStatus.UNPROCESSABLE_ENTITY)
    logger.error("unhandled scoring error", error=str(exc))
    return _error("scoring_error", str(exc), HTTPStatus.BAD_REQUEST)


async def _storage_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.error("storage failure", error=str(exc))
    return _error(
        "storage_unavailable",
        "Could not reach storage. The score was not saved, please retry.",
        HTTPStatus.SERVICE_UNAVAILABLE,
    )


async def _team_names_for_match(request: Request, match_id: str) -> tuple[str, str]:
    hole_result_log: HoleResultLog = request.app.state.hole_result_log
    standings_service: StandingsService = request.app.state.standings_service
    match = await hole_result_log.get_match(match_id)
    if match is None:
        raise NotFoundError("match", match_id)
    return await standings_service.team_names_for_session(match.session_id)


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": APP_VERSION, "commit": GIT_COMMIT})


async def match_state(request: Request) -> JSONResponse:
    coordinator: ScoringCoordinator = request.app.state.coordinator
    match_id = request.path_params["match_id"]
    team_names = await _team_names_for_match(request, match_id)
    state = await coordinator.get_state(match_id, team_names=team_names)
    return JSONResponse(state.model_dump(mode="json"))


async def record_hole(request: Request) -> JSONResponse:
    coordinator: ScoringCoordinator = request.app.state.coordinator
    match_id = request.path_params["match_id"]

    raw_body = await request.body()
    if len(raw_body) > _MAX_REQUEST_BODY_SIZE:
        return _error("body_too_large", "Request body too large", HTTPStatus.REQUEST_ENTITY_TOO_LARGE)
    try:
        req = RecordHoleRequest.model_validate(json.loads(raw_body or b"{}"))
    except (ValueError, ValidationError) as e:
        return _error("validation_error", str(e), HTTPStatus.UNPROCESSABLE_ENTITY)

    team_names = await _team_names_for_match(request, match_id)
    state = await coordinator.record_result(
        match_id,
        req.hole_number,
        req.winner,
        team_a_score=req.team_a_score,
        team_b_score=req.team_b_score,
        team_names=team_names,
    )
    return JSONResponse(state.model_dump(mode="json"))


async def undo_last_hole(request: Request) -> JSONResponse:
    coordinator: ScoringCoordinator = request.app.state.coordinator
    match_id = request.path_params["match_id"]
    team_names = await _team_names_for_match(request, match_id)
    state = await coordinator.undo_last(match_id, team_names=team_names)
    return JSONResponse(state.model_dump(mode="json"))


async def _set_session_locked(request: Request, *, locked: bool) -> JSONResponse:
    repository: TournamentRepository = request.app.state.tournament_repository
    session_id = request.path_params["session_id"]
    session = await repository.set_session_locked(session_id, locked=locked)
    if session is None:
        raise NotFoundError("session", session_id)
    return JSONResponse(session.model_dump(mode="json"))


async def lock_session(request: Request) -> JSONResponse:
    return await _set_session_locked(request, locked=True)


async def unlock_session(request: Request) -> JSONResponse:
    return await _set_session_locked(request, locked=False)


async def session_audit(request: Request) -> JSONResponse:
    repository: TournamentRepository = request.app.state.tournament_repository
    session_id = request.path_params["session_id"]
    if await repository.get_session(session_id) is None:
        raise NotFoundError("session", session_id)
    entries = await repository.list_audit_entries(session_id=session_id)
    return JSONResponse({"entries": [entry.model_dump(mode="json") for entry in entries]})


async def trip_standings(request: Request) -> JSONResponse:
    standings_service: StandingsService = request.app.state.standings_service
    settings: ScoringServerSettings = request.app.state.settings
    trip_id = request.path_params["trip_id"]

    standings = await standings_service.standings(trip_id)
    magic_number = compute_magic_number(standings, settings.points_to_win)
    return JSONResponse(
        {
            "standings": standings.model_dump(mode="json"),
            "magic_number": magic_number.model_dump(mode="json"),
        },
    )


async def trip_leaderboard(request: Request) -> JSONResponse:
    standings_service: StandingsService = request.app.state.standings_service
    records = await standings_service.leaderboard(request.path_params["trip_id"])
    return JSONResponse(
        {
            "players": [
                {**record.model_dump(mode="json"), "record": record.record, "matches_played": record.matches_played}
                for record in records
            ],
        },
    )


def create_app(
    settings: ScoringServerSettings | None = None,
    hole_result_log: HoleResultLog | None = None,
    tournament_repository: TournamentRepository | None = None,
) -> Starlette:
    """Build the scoring API.

    Storage collaborators can be injected; otherwise both repositories share
    one SQLite database at settings.database_path.
    """
    if settings is None:  # pragma: no cover
        settings = ScoringServerSettings()

    db: Database | None = None
    if hole_result_log is None or tournament_repository is None:
        db = Database(settings.database_path)
        db.connect()
        hole_result_log = hole_result_log or SqliteHoleResultLog(db)
        tournament_repository = tournament_repository or SqliteTournamentRepository(db)

    routes = [
        Route("/health", health, methods=["GET"], name="health"),
        Route("/matches/{match_id}/state", match_state, methods=["GET"], name="match_state"),
        Route("/matches/{match_id}/holes", record_hole, methods=["POST"], name="record_hole"),
        Route("/matches/{match_id}/undo", undo_last_hole, methods=["POST"], name="undo_last_hole"),
        Route("/sessions/{session_id}/lock", lock_session, methods=["POST"], name="lock_session"),
        Route("/sessions/{session_id}/unlock", unlock_session, methods=["POST"], name="unlock_session"),
        Route("/sessions/{session_id}/audit", session_audit, methods=["GET"], name="session_audit"),
        Route("/trips/{trip_id}/standings", trip_standings, methods=["GET"], name="trip_standings"),
        Route("/trips/{trip_id}/leaderboard", trip_leaderboard, methods=["GET"], name="trip_leaderboard"),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:  # pragma: no cover
        yield
        if db is not None:
            db.close()

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={
            ScoringError: _scoring_error_handler,
            StorageError: _storage_error_handler,
        },
    )
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    app.state.settings = settings
    app.state.hole_result_log = hole_result_log
    app.state.tournament_repository = tournament_repository
    app.state.coordinator = ScoringCoordinator(hole_result_log)
    app.state.standings_service = StandingsService(tournament_repository)

    logger.info("scoring server ready")
    return app


def get_app() -> Starlette:  # pragma: no cover
    """Factory function for uvicorn --factory tournament.server.app:get_app."""
    settings = ScoringServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
