"""
Round engine: collecting_bids -> playing_tricks [-> trick_review] -> scored.

Functions take a frozen Round and return a new one. Validation happens
before any new state is built, so a rejected call leaves the caller's
Round untouched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from game.logic.enums import RoundPhase
from game.logic.exceptions import (
    DuplicateBidError,
    InvalidBidError,
    InvalidPhaseError,
    InvalidTrickCountError,
    NotAMemberError,
    TrickCountMismatchError,
)
from game.logic.scoring import score_round, team_deltas
from game.logic.state import Round

if TYPE_CHECKING:
    from collections.abc import Mapping

    from game.logic.settings import GameSettings
    from game.logic.state import GamePlayer


def open_round(round_number: int, settings: GameSettings) -> Round:
    return Round(round_number=round_number, tricks_total=settings.tricks_for_round(round_number))


def submit_bid(
    round_state: Round,
    players: Mapping[str, GamePlayer],
    player_id: str,
    bid: int,
    *,
    game_id: str = "",
) -> Round:
    """
    Record a player's bid.

    Bids are immutable once recorded. When the last active player bids the
    round moves to playing_tricks.
    """
    if round_state.phase != RoundPhase.COLLECTING_BIDS:
        raise InvalidPhaseError(f"Round {round_state.round_number} is not collecting bids")
    if player_id not in players:
        raise NotAMemberError(player_id, game_id)
    if player_id in round_state.bids:
        raise DuplicateBidError(player_id, round_state.round_number)
    if bid < 0 or bid > round_state.tricks_total:
        raise InvalidBidError(f"Invalid bid {bid}. Must be between 0 and {round_state.tricks_total}")

    bids = {**round_state.bids, player_id: bid}
    phase = RoundPhase.PLAYING_TRICKS if set(players) <= set(bids) else RoundPhase.COLLECTING_BIDS
    return round_state.model_copy(update={"bids": bids, "phase": phase})


def _validate_tricks(round_state: Round, players: Mapping[str, GamePlayer], tricks: Mapping[str, int]) -> None:
    unknown = set(tricks) - set(players)
    if unknown:
        raise TrickCountMismatchError(f"Tricks recorded for players not in the game: {sorted(unknown)}")
    missing = set(players) - set(tricks)
    if missing:
        raise TrickCountMismatchError(f"Missing trick counts for players: {sorted(missing)}")
    negative = sorted(pid for pid, count in tricks.items() if count < 0)
    if negative:
        raise TrickCountMismatchError(f"Trick counts must be non-negative: {negative}")
    total = sum(tricks.values())
    if total != round_state.tricks_total:
        raise TrickCountMismatchError(
            f"Total tricks must equal {round_state.tricks_total}. Current total: {total}",
        )


def _check_player_count(
    round_state: Round,
    players: Mapping[str, GamePlayer],
    player_id: str,
    tricks: int,
    game_id: str,
) -> None:
    if player_id not in players:
        raise NotAMemberError(player_id, game_id)
    if tricks < 0 or tricks > round_state.tricks_total:
        raise InvalidTrickCountError(f"Tricks must be between 0 and {round_state.tricks_total}")


def report_tricks(
    round_state: Round,
    players: Mapping[str, GamePlayer],
    player_id: str,
    tricks: int,
    *,
    game_id: str = "",
) -> Round:
    """
    Record one player's own trick count.

    A player may resubmit until everyone has reported; the round then waits
    in trick_review for the host. The total is only checked on approval.
    """
    if round_state.phase != RoundPhase.PLAYING_TRICKS:
        raise InvalidPhaseError(f"Round {round_state.round_number} is not in trick play")
    _check_player_count(round_state, players, player_id, tricks, game_id)

    reported = {**round_state.tricks, player_id: tricks}
    phase = RoundPhase.TRICK_REVIEW if set(players) <= set(reported) else RoundPhase.PLAYING_TRICKS
    return round_state.model_copy(update={"tricks": reported, "phase": phase})


def edit_tricks(
    round_state: Round,
    players: Mapping[str, GamePlayer],
    player_id: str,
    tricks: int,
    *,
    game_id: str = "",
) -> Round:
    """Correct one player's reported count while the round is under review."""
    if round_state.phase != RoundPhase.TRICK_REVIEW:
        raise InvalidPhaseError(f"Round {round_state.round_number} is not in trick review")
    _check_player_count(round_state, players, player_id, tricks, game_id)
    return round_state.model_copy(update={"tricks": {**round_state.tricks, player_id: tricks}})


def record_tricks(
    round_state: Round,
    players: Mapping[str, GamePlayer],
    tricks: Mapping[str, int],
    settings: GameSettings,
) -> Round:
    """
    Record every player's tricks, score the round, and close it.

    Also accepted during trick_review, where the given counts replace the
    reported ones.
    """
    if round_state.phase not in (RoundPhase.PLAYING_TRICKS, RoundPhase.TRICK_REVIEW):
        raise InvalidPhaseError(f"Round {round_state.round_number} is not in trick play")
    _validate_tricks(round_state, players, tricks)

    scores = score_round(round_state.bids, tricks, settings)
    return round_state.model_copy(
        update={
            "tricks": dict(tricks),
            "scores": scores,
            "team_scores": team_deltas(scores, players),
            "phase": RoundPhase.SCORED,
        },
    )


def approve_tricks(round_state: Round, players: Mapping[str, GamePlayer], settings: GameSettings) -> Round:
    """Score the round from the reviewed counts."""
    if round_state.phase != RoundPhase.TRICK_REVIEW:
        raise InvalidPhaseError(f"Round {round_state.round_number} is not in trick review")
    return record_tricks(round_state, players, round_state.tricks, settings)
