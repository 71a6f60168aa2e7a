"""
Scoring for bids and tricks.

Everything here is a pure function of its inputs: the same bids and trick
counts always produce the same scores, and running totals are plain sums
over scored rounds (no decay, no recomputation of past rounds).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from game.logic.enums import Team

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from game.logic.settings import GameSettings
    from game.logic.state import Game, GamePlayer, Round

BID_MULTIPLIER = 10
OVERTRICK_VALUE = 1


def score_bid(bid: int, tricks_won: int, settings: GameSettings) -> int:
    """
    Score one player's round.

    Nil bid (0): fixed bonus when no tricks are taken, fixed penalty otherwise.
    Non-zero bid: 10 per bid trick when made, plus 1 per overtrick;
    -10 per bid trick when set.
    """
    if bid < 0 or tricks_won < 0:
        raise ValueError(f"bid and tricks must be non-negative, got bid={bid} tricks={tricks_won}")
    if bid == 0:
        return settings.nil_bonus if tricks_won == 0 else -settings.nil_penalty
    if tricks_won >= bid:
        return BID_MULTIPLIER * bid + OVERTRICK_VALUE * (tricks_won - bid)
    return -BID_MULTIPLIER * bid


def score_round(
    bids: Mapping[str, int],
    tricks: Mapping[str, int],
    settings: GameSettings,
) -> dict[str, int]:
    """Return per-player scores for a round keyed by player id."""
    return {player_id: score_bid(bid, tricks[player_id], settings) for player_id, bid in bids.items()}


def team_deltas(scores: Mapping[str, int], players: Mapping[str, GamePlayer]) -> dict[Team, int]:
    """Sum player round scores per team. Both teams are always present."""
    deltas = dict.fromkeys(Team, 0)
    for player_id, score in scores.items():
        player = players.get(player_id)
        if player is not None and player.team is not None:
            deltas[player.team] += score
    return deltas


def final_scores(rounds: Iterable[Round]) -> dict[str, int]:
    """Per-player totals over scored rounds."""
    totals: dict[str, int] = {}
    for r in rounds:
        if not r.is_scored:
            continue
        for player_id, score in r.scores.items():
            totals[player_id] = totals.get(player_id, 0) + score
    return totals


def team_final_scores(rounds: Iterable[Round]) -> dict[Team, int]:
    """Per-team totals over scored rounds."""
    totals = dict.fromkeys(Team, 0)
    for r in rounds:
        if not r.is_scored:
            continue
        for team, delta in r.team_scores.items():
            totals[team] += delta
    return totals


def determine_winner(team_totals: Mapping[Team, int]) -> Team | None:
    """Return the team with the strictly highest total, or None on a tie."""
    ranked = sorted(team_totals.items(), key=lambda item: item[1], reverse=True)
    if not ranked:
        return None
    if len(ranked) > 1 and ranked[0][1] == ranked[1][1]:
        return None
    return ranked[0][0]


def target_score_reached(game: Game) -> bool:
    target = game.settings.target_score
    if target is None:
        return False
    return any(total >= target for total in team_final_scores(game.rounds).values())
