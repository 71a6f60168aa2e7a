from __future__ import annotations

import contextlib
from datetime import timedelta
from typing import TYPE_CHECKING

import anyio
import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

from game.admin.service import AdminService
from game.players import PlayerRegistry
from game.server.settings import ServerSettings
from game.session.manager import SessionManager
from game.session.store import GameStore
from game.views import (
    create_game,
    delete_games,
    delete_players,
    game_action,
    get_game,
    join_game,
    list_games,
    list_players,
    login,
    profile,
    resume,
)
from shared.build_info import APP_VERSION
from shared.logging import setup_logging
from shared.storage import LocalGameHistoryStorage

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request

    from shared.storage import GameHistoryStorage


async def health(request: Request) -> JSONResponse:
    store: GameStore = request.app.state.store
    return JSONResponse({"status": "ok", "activeGames": store.active_game_count, "version": APP_VERSION})


def create_app(
    settings: ServerSettings | None = None,
    store: GameStore | None = None,
    registry: PlayerRegistry | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = ServerSettings()

    if store is None:
        store = GameStore(code_length=settings.join_code_length, max_code_attempts=settings.max_code_attempts)
    if registry is None:
        registry = PlayerRegistry()

    history_storage: GameHistoryStorage | None = None
    if settings.history_dir is not None:
        history_storage = LocalGameHistoryStorage(settings.history_dir)

    session_manager = SessionManager(store, registry, history_storage=history_storage)
    session_manager.load_history()
    admin_service = AdminService(
        store,
        registry,
        history_storage=history_storage,
        presence_window=timedelta(seconds=settings.presence_window_seconds),
    )

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/api/create", create_game, methods=["POST"]),
        Route("/api/join", join_game, methods=["POST"]),
        Route("/api/game/{game_id}", get_game, methods=["GET"]),
        Route("/api/action", game_action, methods=["POST"]),
        Route("/api/players/login", login, methods=["POST"]),
        Route("/api/players/resume", resume, methods=["POST"]),
        Route("/api/players/{name}/profile", profile, methods=["GET"]),
        Route("/api/admin/games", list_games, methods=["GET"]),
        Route("/api/admin/games", delete_games, methods=["DELETE"]),
        Route("/api/admin/players", list_players, methods=["GET"]),
        Route("/api/admin/players", delete_players, methods=["DELETE"]),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:
        async with anyio.create_task_group() as tg:
            tg.start_soon(
                session_manager.run_stale_sweep,
                timedelta(seconds=settings.stale_game_seconds),
                settings.stale_sweep_interval_seconds,
            )
            logger.info("stale game sweep started", max_idle_seconds=settings.stale_game_seconds)
            yield
            tg.cancel_scope.cancel()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.store = store
    app.state.registry = registry
    app.state.session_manager = session_manager
    app.state.admin_service = admin_service

    logger.info("aspade server ready", history_dir=settings.history_dir)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (uvicorn --factory game.server.app:get_app)."""
    settings = ServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
