"""Admin endpoints: listings and bulk deletion."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from game.server.errors import json_endpoint, read_model
from game.server.types import DeleteGamesRequest, DeletePlayersRequest

if TYPE_CHECKING:
    from starlette.requests import Request

    from game.admin.service import AdminService


@json_endpoint
async def list_games(request: Request) -> JSONResponse:
    admin: AdminService = request.app.state.admin_service
    return JSONResponse({"success": True, "games": admin.list_games()})


@json_endpoint
async def delete_games(request: Request) -> JSONResponse:
    admin: AdminService = request.app.state.admin_service
    req = await read_model(request, DeleteGamesRequest)

    result = await admin.delete_games(req.game_ids)
    return JSONResponse(
        {
            "success": True,
            "deleted": result.count,
            "deletedGames": result.deleted,
            "failedGames": result.failed,
        },
    )


@json_endpoint
async def list_players(request: Request) -> JSONResponse:
    admin: AdminService = request.app.state.admin_service
    return JSONResponse({"success": True, "players": admin.list_players()})


@json_endpoint
async def delete_players(request: Request) -> JSONResponse:
    """DELETE /api/admin/players - remove identities; completed games keep their records."""
    admin: AdminService = request.app.state.admin_service
    req = await read_model(request, DeletePlayersRequest)

    result = await admin.delete_players(req.player_ids)
    return JSONResponse(
        {
            "success": True,
            "deleted": result.count,
            "deletedPlayers": result.deleted,
            "failedPlayers": result.failed,
        },
    )
