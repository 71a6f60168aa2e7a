"""Enumerations shared across the game engine."""

from enum import StrEnum


class GameStatus(StrEnum):
    LOBBY = "lobby"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class RoundPhase(StrEnum):
    """Phase of a single round. trick_review is entered only when players report their own tricks."""

    COLLECTING_BIDS = "collecting_bids"
    PLAYING_TRICKS = "playing_tricks"
    TRICK_REVIEW = "trick_review"
    SCORED = "scored"


class Team(StrEnum):
    # declaration order is the registration order used to break ties on join
    RED = "red"
    BLUE = "blue"


class TrickSchedule(StrEnum):
    """How many tricks each round deals."""

    FIXED = "fixed"  # every round has tricks_per_round tricks
    PROGRESSIVE = "progressive"  # round n has n tricks, capped at tricks_per_round


ACTIVE_STATUSES = frozenset({GameStatus.LOBBY, GameStatus.IN_PROGRESS})
