"""
Session lifecycle transitions: lobby -> in_progress -> completed.

Each function validates against the given Game and returns a new Game.
Locking and storage are the session layer's concern.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from game.logic.enums import GameStatus, RoundPhase, Team
from game.logic.exceptions import (
    ForbiddenError,
    GameNotJoinableError,
    InvalidPhaseError,
    NotAMemberError,
    NotEnoughPlayersError,
)
from game.logic.round import approve_tricks, edit_tricks, open_round, record_tricks, report_tricks, submit_bid
from game.logic.scoring import determine_winner, target_score_reached, team_final_scores
from game.logic.state import Game, GamePlayer, Round

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from game.logic.settings import GameSettings


def _require_member(game: Game, player_id: str) -> GamePlayer:
    player = game.players.get(player_id)
    if player is None:
        raise NotAMemberError(player_id, game.game_id)
    return player


def require_host(game: Game, player_id: str, action: str) -> None:
    _require_member(game, player_id)
    if player_id != game.host_id:
        raise ForbiddenError(f"Only the host can {action}")


def _require_status(game: Game, status: GameStatus, message: str) -> None:
    if game.status != status:
        raise InvalidPhaseError(message)


def assign_team(game: Game) -> Team:
    """
    Pick a team for the next joiner.

    The team with fewer members wins. On a tie, the team whose most recent
    member joined earlier is chosen (an empty team counts as earliest), and
    on a full tie the team declared first. No randomness.
    """

    def sort_key(team: Team) -> tuple[int, int, int]:
        members = game.team_members(team)
        last_join = members[-1].join_order if members else -1
        return len(members), last_join, list(Team).index(team)

    return min(Team, key=sort_key)


def new_game(
    *,
    game_id: str,
    code: str,
    host_id: str,
    host_name: str,
    settings: GameSettings,
    now: datetime,
    title: str = "",
    description: str = "",
    host_avatar: str | None = None,
) -> Game:
    """Create a lobby game with the host seated on the first team."""
    host = GamePlayer(
        player_id=host_id,
        name=host_name,
        avatar=host_avatar,
        team=Team.RED,
        is_host=True,
        join_order=0,
        joined_at=now,
    )
    return Game(
        game_id=game_id,
        code=code,
        title=title.strip() or f"{host_name}'s Game",
        description=description.strip(),
        host_id=host_id,
        settings=settings,
        players={host_id: host},
        next_join_order=1,
        created_at=now,
        last_activity=now,
    )


def add_player(
    game: Game,
    *,
    player_id: str,
    name: str,
    now: datetime,
    avatar: str | None = None,
) -> Game:
    """
    Seat a player in a lobby game.

    Rejoining with an identity that is already seated returns the game
    unchanged, keeping the original team and join order.
    """
    if player_id in game.players:
        return game
    if game.status != GameStatus.LOBBY:
        raise GameNotJoinableError("Game already in progress")
    if game.is_full:
        raise GameNotJoinableError(f"Game is full ({game.settings.max_players} players maximum)")

    player = GamePlayer(
        player_id=player_id,
        name=name,
        avatar=avatar,
        team=assign_team(game),
        join_order=game.next_join_order,
        joined_at=now,
    )
    return game.model_copy(
        update={
            "players": {**game.players, player_id: player},
            "next_join_order": game.next_join_order + 1,
            "last_activity": now,
        },
    )


def remove_player(game: Game, player_id: str, now: datetime) -> Game | None:
    """
    Remove a player from a lobby game.

    When the host leaves, hosting passes to the earliest remaining joiner.
    Returns None when nobody is left, meaning the game should be deleted.
    """
    _require_member(game, player_id)
    _require_status(game, GameStatus.LOBBY, "Players can only leave a game in the lobby")

    players = {pid: p for pid, p in game.players.items() if pid != player_id}
    if not players:
        return None

    host_id = game.host_id
    if player_id == host_id:
        successor = min(players.values(), key=lambda p: p.join_order)
        host_id = successor.player_id
        players[host_id] = successor.model_copy(update={"is_host": True})

    return game.model_copy(update={"players": players, "host_id": host_id, "last_activity": now})


def start_game(game: Game, requested_by: str, now: datetime) -> Game:
    require_host(game, requested_by, "start the game")
    _require_status(game, GameStatus.LOBBY, "Game has already started")
    if game.player_count < game.settings.min_players:
        raise NotEnoughPlayersError(f"Need at least {game.settings.min_players} players to start")

    return game.model_copy(
        update={
            "status": GameStatus.IN_PROGRESS,
            "rounds": (open_round(1, game.settings),),
            "started_at": now,
            "last_activity": now,
        },
    )


def _replace_current_round(game: Game, *rounds: Round) -> tuple[Round, ...]:
    return (*game.rounds[:-1], *rounds)


def _round_in_play(game: Game, message: str) -> Round:
    _require_status(game, GameStatus.IN_PROGRESS, message)
    current = game.current_round
    if current is None:  # pragma: no cover - in_progress games always have a round
        raise InvalidPhaseError(message)
    return current


def apply_bid(game: Game, player_id: str, bid: int, now: datetime) -> Game:
    current = _round_in_play(game, "Not in bidding phase")
    updated = submit_bid(current, game.players, player_id, bid, game_id=game.game_id)
    return game.model_copy(update={"rounds": _replace_current_round(game, updated), "last_activity": now})


def is_finished(game: Game) -> bool:
    """Termination check, evaluated after a round is scored."""
    target_rounds = game.settings.target_rounds
    if target_rounds is not None:
        return len(game.scored_rounds) >= target_rounds
    return target_score_reached(game)


def complete_game(game: Game, now: datetime) -> Game:
    """Close the game and fix the winner. Unscored trailing rounds are dropped."""
    _require_status(game, GameStatus.IN_PROGRESS, "Only an in-progress game can be completed")
    rounds = game.scored_rounds
    return game.model_copy(
        update={
            "status": GameStatus.COMPLETED,
            "rounds": rounds,
            "completed_at": now,
            "last_activity": now,
            "winner_team": determine_winner(team_final_scores(rounds)),
        },
    )


def apply_tricks(
    game: Game,
    tricks: Mapping[str, int],
    now: datetime,
    requested_by: str | None = None,
) -> Game:
    """
    Score the current round, then open the next round or complete the game.

    When requested_by is given it must be the host.
    """
    if requested_by is not None:
        require_host(game, requested_by, "record tricks")
    current = _round_in_play(game, "Not in playing phase")
    scored = record_tricks(current, game.players, tricks, game.settings)
    return _close_round(game, scored, now)


def _close_round(game: Game, scored: Round, now: datetime) -> Game:
    game = game.model_copy(update={"rounds": _replace_current_round(game, scored), "last_activity": now})
    if is_finished(game):
        return complete_game(game, now)

    next_round = open_round(scored.round_number + 1, game.settings)
    return game.model_copy(update={"rounds": (*game.rounds, next_round)})


def apply_reported_tricks(game: Game, player_id: str, tricks: int, now: datetime) -> Game:
    """A player reports their own trick count; the last report opens host review."""
    current = _round_in_play(game, "Not in playing phase")
    updated = report_tricks(current, game.players, player_id, tricks, game_id=game.game_id)
    return game.model_copy(update={"rounds": _replace_current_round(game, updated), "last_activity": now})


def apply_trick_edit(game: Game, requested_by: str, player_id: str, tricks: int, now: datetime) -> Game:
    require_host(game, requested_by, "edit tricks")
    current = _round_in_play(game, "Not in trick review phase")
    updated = edit_tricks(current, game.players, player_id, tricks, game_id=game.game_id)
    return game.model_copy(update={"rounds": _replace_current_round(game, updated), "last_activity": now})


def approve_round(game: Game, requested_by: str, now: datetime) -> Game:
    """Host accepts the reviewed counts; scores the round like apply_tricks."""
    require_host(game, requested_by, "approve tricks")
    current = _round_in_play(game, "Not in trick review phase")
    scored = approve_tricks(current, game.players, game.settings)
    return _close_round(game, scored, now)


def end_game_early(game: Game, requested_by: str, now: datetime) -> Game:
    require_host(game, requested_by, "end the game")
    return complete_game(game, now)


def current_phase(game: Game) -> RoundPhase | None:
    current = game.current_round
    return current.phase if current is not None else None
