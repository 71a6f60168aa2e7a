"""Player identity endpoints: login, profile, resume."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from game.messaging.payload import active_game_summary, game_payload, profile_payload
from game.server.errors import json_endpoint, read_model
from game.server.types import LoginRequest, ResumeRequest

if TYPE_CHECKING:
    from typing import Any

    from starlette.requests import Request

    from game.players import PlayerRegistry
    from game.session.manager import SessionManager


def _active_games(session_manager: SessionManager, player_id: str) -> list[dict[str, Any]]:
    return [active_game_summary(game, player_id) for game in session_manager.active_games_for(player_id)]


@json_endpoint
async def login(request: Request) -> JSONResponse:
    """POST /api/players/login - register or log in by display name."""
    registry: PlayerRegistry = request.app.state.registry
    session_manager: SessionManager = request.app.state.session_manager
    req = await read_model(request, LoginRequest)

    profile = await registry.login(req.name, avatar=req.avatar)
    active_games = _active_games(session_manager, profile.player_id)
    return JSONResponse(
        {
            "success": True,
            "playerId": profile.player_id,
            "profile": profile_payload(profile),
            "activeGames": active_games,
            "hasActiveGames": bool(active_games),
        },
    )


@json_endpoint
async def profile(request: Request) -> JSONResponse:
    """GET /api/players/{name}/profile - profile, active games, and completed-game history."""
    registry: PlayerRegistry = request.app.state.registry
    session_manager: SessionManager = request.app.state.session_manager

    player = registry.profile(request.path_params["name"])
    history = session_manager.history_for(player.player_id)
    return JSONResponse(
        {
            "success": True,
            "profile": profile_payload(player),
            "activeGames": _active_games(session_manager, player.player_id),
            "gameHistory": [game_payload(game) for game in history],
        },
    )


@json_endpoint
async def resume(request: Request) -> JSONResponse:
    """POST /api/players/resume - reattach a client to a game it belongs to."""
    session_manager: SessionManager = request.app.state.session_manager
    req = await read_model(request, ResumeRequest)

    game, player = await session_manager.resume(req.player_name, req.game_id)
    return JSONResponse(
        {"success": True, "gameId": game.game_id, "playerId": player.player_id, "game": game_payload(game)},
    )
