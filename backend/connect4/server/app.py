from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from connect4.logic.settings import MatchSettings
from connect4.messaging.router import MessageRouter
from connect4.server.settings import ArenaServerSettings
from connect4.server.websocket import resolve_participant, websocket_endpoint
from connect4.session.broadcast import ConnectionHub
from connect4.session.coordinator import MatchCoordinator
from connect4.session.presence import PresenceTracker
from shared.db import Database, SqliteMatchRepository, SqliteStatsRepository
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket

    from connect4.session.models import Participant

_BEARER_PREFIX = "Bearer "


def _authenticate(request: Request) -> tuple[Participant | None, JSONResponse | None]:
    """Resolve the Bearer ticket on an admin request.

    Returns the admin participant, or an error response: 401 for a missing or
    invalid ticket, 403 for a valid ticket without admin rights.
    """
    settings: ArenaServerSettings = request.app.state.settings
    header = request.headers.get("authorization", "")
    if not header.startswith(_BEARER_PREFIX):
        return None, JSONResponse({"error": "Authentication required"}, status_code=401)
    participant = resolve_participant(header[len(_BEARER_PREFIX) :].strip(), settings.ticket_secret)
    if participant is None:
        return None, JSONResponse({"error": "Invalid or expired ticket"}, status_code=401)
    if not participant.is_admin:
        return None, JSONResponse({"error": "Admin access required"}, status_code=403)
    return participant, None


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def status(request: Request) -> JSONResponse:
    coordinator: MatchCoordinator = request.app.state.coordinator
    hub: ConnectionHub = request.app.state.hub
    return JSONResponse(
        {
            "status": "ok",
            "connected": hub.connection_count,
            "waiting": coordinator.queue.waiting_count,
            "max_queue_size": coordinator.queue.max_size,
            "active_sessions": coordinator.session_count,
        },
    )


async def queue_state(request: Request) -> JSONResponse:
    coordinator: MatchCoordinator = request.app.state.coordinator
    return JSONResponse(
        {
            "queue": coordinator.queue_snapshot().model_dump(mode="json"),
            "roster": coordinator.roster().model_dump(mode="json"),
        },
    )


async def clear_queue(request: Request) -> JSONResponse:
    admin, error = _authenticate(request)
    if error is not None:
        return error
    coordinator: MatchCoordinator = request.app.state.coordinator
    removed = await coordinator.clear_queue()
    logger.info("queue cleared by admin", admin_id=admin.participant_id, removed=removed)
    return JSONResponse({"removed": removed})


async def remove_from_queue(request: Request) -> JSONResponse:
    admin, error = _authenticate(request)
    if error is not None:
        return error
    coordinator: MatchCoordinator = request.app.state.coordinator
    participant_id = request.path_params["participant_id"]
    if not await coordinator.remove_from_queue(participant_id):
        return JSONResponse({"error": "Participant is not waiting in the queue"}, status_code=404)
    logger.info("participant removed from queue by admin", admin_id=admin.participant_id, participant_id=participant_id)
    return JSONResponse({"removed": participant_id})


async def leaderboard(request: Request) -> JSONResponse:
    coordinator: MatchCoordinator = request.app.state.coordinator
    entries = await coordinator.leaderboard()
    return JSONResponse({"entries": [entry.model_dump(mode="json") for entry in entries]})


async def match_history(request: Request) -> JSONResponse:
    coordinator: MatchCoordinator = request.app.state.coordinator
    participant_id = request.path_params["participant_id"]
    try:
        records = await coordinator.match_history(participant_id)
    except Exception:
        logger.exception("failed to load match history", participant_id=participant_id)
        return JSONResponse({"error": "History unavailable"}, status_code=503)
    return JSONResponse({"matches": [record.model_dump(mode="json") for record in records]})


async def admin_telemetry(request: Request) -> JSONResponse:
    _admin, error = _authenticate(request)
    if error is not None:
        return error
    router: MessageRouter = request.app.state.message_router
    return JSONResponse(router.build_telemetry().model_dump(mode="json"))


def create_app(
    settings: ArenaServerSettings | None = None,
    hub: ConnectionHub | None = None,
    coordinator: MatchCoordinator | None = None,
    presence: PresenceTracker | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = ArenaServerSettings()  # ty: ignore[missing-argument]

    if hub is None:
        hub = ConnectionHub()

    # When the app creates its own coordinator, it owns the DB lifecycle.
    owned_db: Database | None = None

    if coordinator is None:
        db = Database(settings.database_path)
        db.connect()
        owned_db = db
        coordinator = MatchCoordinator(
            hub,
            match_repository=SqliteMatchRepository(db),
            stats_repository=SqliteStatsRepository(db),
            settings=MatchSettings.from_server_settings(settings),
        )

    if presence is None:
        presence = PresenceTracker(settings.presence_active_threshold_seconds)

    if message_router is None:
        message_router = MessageRouter(coordinator, hub, presence)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router, settings.ticket_secret)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        Route("/queue", queue_state, methods=["GET"]),
        Route("/queue/clear", clear_queue, methods=["POST"]),
        Route("/queue/{participant_id}", remove_from_queue, methods=["DELETE"]),
        Route("/leaderboard", leaderboard, methods=["GET"]),
        Route("/history/{participant_id}", match_history, methods=["GET"]),
        Route("/admin/telemetry", admin_telemetry, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        presence.start_publishing(settings.telemetry_interval_seconds, message_router.publish_telemetry)
        try:
            yield
        finally:
            await presence.aclose()
            coordinator.shutdown()
            if owned_db is not None:
                owned_db.close()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.state.settings = settings
    app.state.hub = hub
    app.state.coordinator = coordinator
    app.state.presence = presence
    app.state.message_router = message_router

    logger.info("arena server ready")
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    _settings = ArenaServerSettings()  # ty: ignore[missing-argument]
    setup_logging(log_dir=_settings.log_dir)
    return create_app(settings=_settings)
