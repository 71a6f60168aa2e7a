"""JSON payload shaping for games, profiles, and admin listings.

The front end renders these dicts directly, so field names and nesting are
a public contract: camelCase keys, timestamps as epoch milliseconds, teams
as their string values.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from game.logic.enums import GameStatus, Team
from game.logic.game import current_phase
from game.logic.scoring import final_scores, team_final_scores

if TYPE_CHECKING:
    from datetime import datetime

    from game.logic.state import Game, GamePlayer, Round
    from game.players import PlayerProfile

SECONDS_PER_MINUTE = 60


def to_millis(value: datetime | None) -> int | None:
    if value is None:
        return None
    return int(value.timestamp() * 1000)


def _team_dict(totals: dict[Team, int]) -> dict[str, int]:
    return {team.value: totals.get(team, 0) for team in Team}


def _duration_minutes(game: Game) -> int | None:
    if game.started_at is None or game.completed_at is None:
        return None
    seconds = max(int((game.completed_at - game.started_at).total_seconds()), 0)
    return seconds // SECONDS_PER_MINUTE


def total_rounds(game: Game) -> int:
    """Configured round target, or rounds scored so far for score-target games."""
    if game.settings.target_rounds is not None:
        return game.settings.target_rounds
    return len(game.scored_rounds)


def _player_payload(player: GamePlayer) -> dict[str, Any]:
    return {
        "id": player.player_id,
        "name": player.name,
        "team": player.team.value if player.team is not None else None,
        "avatar": player.avatar,
        "isHost": player.is_host,
        "joinedAt": to_millis(player.joined_at),
    }


def _round_payload(round_state: Round) -> dict[str, Any]:
    return {
        "roundNumber": round_state.round_number,
        "phase": round_state.phase.value,
        "tricksThisRound": round_state.tricks_total,
        "bids": dict(round_state.bids),
        "tricks": dict(round_state.tricks),
        "scores": dict(round_state.scores),
        "teamScores": _team_dict(round_state.team_scores),
    }


def game_payload(game: Game) -> dict[str, Any]:
    """Full game document, used for state reads and history records alike."""
    host = game.host
    phase = current_phase(game)
    current = game.current_round
    team_totals = team_final_scores(game.rounds)
    winner = game.winner_team if game.status == GameStatus.COMPLETED else None
    return {
        "id": game.game_id,
        "code": game.code,
        "title": game.title,
        "description": game.description,
        "hostId": game.host_id,
        "hostName": host.name if host is not None else None,
        "status": game.status.value,
        "phase": phase.value if phase is not None else None,
        "createdAt": to_millis(game.created_at),
        "startedAt": to_millis(game.started_at),
        "completedAt": to_millis(game.completed_at),
        "lastActivity": to_millis(game.last_activity),
        "currentRound": current.round_number if current is not None else 0,
        "totalRounds": total_rounds(game),
        "targetScore": game.settings.target_score,
        "maxPlayers": game.settings.max_players,
        "trickSchedule": game.settings.trick_schedule.value,
        "duration": _duration_minutes(game),
        "players": {player_id: _player_payload(p) for player_id, p in game.players.items()},
        "rounds": [_round_payload(r) for r in game.rounds],
        "scores": _team_dict(team_totals),
        "finalScores": final_scores(game.rounds),
        "teamFinalScores": _team_dict(team_totals),
        "winnerTeam": winner.value if winner is not None else None,
    }


def active_game_summary(game: Game, player_id: str) -> dict[str, Any]:
    return {
        "gameId": game.game_id,
        "gameCode": game.code,
        "title": game.title,
        "status": game.status.value,
        "currentRound": game.current_round.round_number if game.current_round is not None else 0,
        "totalRounds": total_rounds(game),
        "playerCount": game.player_count,
        "playerId": player_id,
    }


def admin_game_summary(game: Game) -> dict[str, Any]:
    host = game.host
    return {
        "id": game.game_id,
        "code": game.code,
        "title": game.title,
        "host": host.name if host is not None else None,
        "players": game.player_count,
        "status": game.status.value,
        "createdAt": to_millis(game.created_at),
        "lastActivity": to_millis(game.last_activity),
    }


def profile_payload(profile: PlayerProfile) -> dict[str, Any]:
    return {
        "id": profile.player_id,
        "name": profile.name,
        "avatar": profile.avatar,
        "createdAt": to_millis(profile.created_at),
        "lastSeen": to_millis(profile.last_seen),
        "loginCount": profile.login_count,
    }
