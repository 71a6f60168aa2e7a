"""Game lifecycle endpoints: create, join, state reads, and in-game actions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from game.messaging.payload import game_payload
from game.server.errors import json_endpoint, parse_model, read_model
from game.server.types import (
    ActionRequest,
    BidData,
    CreateGameRequest,
    EditTricksData,
    GameAction,
    JoinRequest,
    SubmitTricksData,
    TricksData,
)

if TYPE_CHECKING:
    from starlette.requests import Request

    from game.logic.state import Game
    from game.players import PlayerRegistry
    from game.session.manager import SessionManager


@json_endpoint
async def create_game(request: Request) -> JSONResponse:
    """POST /api/create - create a lobby game with the requester as host."""
    session_manager: SessionManager = request.app.state.session_manager
    req = await read_model(request, CreateGameRequest)

    game, host = await session_manager.create_game(
        req.host_name,
        req.to_settings(),
        title=req.title,
        description=req.description,
        avatar=req.avatar,
    )
    return JSONResponse(
        {
            "success": True,
            "gameId": game.game_id,
            "code": game.code,
            "playerId": host.player_id,
            "game": game_payload(game),
        },
        status_code=201,
    )


@json_endpoint
async def join_game(request: Request) -> JSONResponse:
    """POST /api/join - seat a player in a lobby game by join code."""
    session_manager: SessionManager = request.app.state.session_manager
    req = await read_model(request, JoinRequest)

    game, profile = await session_manager.join_by_code(req.code, req.player_name, avatar=req.avatar)
    return JSONResponse(
        {"success": True, "gameId": game.game_id, "playerId": profile.player_id, "game": game_payload(game)},
    )


@json_endpoint
async def get_game(request: Request) -> JSONResponse:
    """GET /api/game/{game_id} - current snapshot, never blocks on writers."""
    session_manager: SessionManager = request.app.state.session_manager
    game = session_manager.get_game(request.path_params["game_id"])
    return JSONResponse({"success": True, "game": game_payload(game)})


async def _dispatch(session_manager: SessionManager, req: ActionRequest) -> Game | None:
    match req.action:
        case GameAction.START_GAME:
            return await session_manager.start(req.game_id, req.player_id)
        case GameAction.SUBMIT_BID:
            bid = parse_model(BidData, req.data).bid
            return await session_manager.submit_bid(req.game_id, req.player_id, bid)
        case GameAction.RECORD_TRICKS:
            tricks = parse_model(TricksData, req.data).tricks
            return await session_manager.record_tricks(req.game_id, tricks, requested_by=req.player_id)
        case GameAction.SUBMIT_TRICKS:
            own_tricks = parse_model(SubmitTricksData, req.data).tricks
            return await session_manager.submit_tricks(req.game_id, req.player_id, own_tricks)
        case GameAction.EDIT_PLAYER_TRICKS:
            edit = parse_model(EditTricksData, req.data)
            return await session_manager.edit_tricks(req.game_id, req.player_id, edit.target_player_id, edit.new_tricks)
        case GameAction.APPROVE_TRICKS:
            return await session_manager.approve_tricks(req.game_id, req.player_id)
        case GameAction.LEAVE_GAME:
            return await session_manager.leave(req.game_id, req.player_id)
        case GameAction.END_GAME:
            return await session_manager.end_game(req.game_id, req.player_id)
        case GameAction.CANCEL_GAME:
            await session_manager.cancel(req.game_id, req.player_id)
            return None


@json_endpoint
async def game_action(request: Request) -> JSONResponse:
    """POST /api/action - run one in-game action on behalf of a seated player."""
    session_manager: SessionManager = request.app.state.session_manager
    registry: PlayerRegistry = request.app.state.registry
    req = await read_model(request, ActionRequest)

    game = await _dispatch(session_manager, req)
    await registry.touch(req.player_id)
    if game is None:
        return JSONResponse({"success": True, "gameDeleted": True})
    return JSONResponse({"success": True, "game": game_payload(game)})
