"""Per-game rule configuration, fixed at creation time."""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from game.logic.enums import TrickSchedule

MIN_PLAYERS = 2
MAX_PLAYERS = 4
MAX_TRICKS_PER_ROUND = 13  # 52 cards dealt to 4 players

DEFAULT_TARGET_ROUNDS = 13
DEFAULT_NIL_BONUS = 100
DEFAULT_NIL_PENALTY = 100


class GameSettings(BaseModel):
    """
    Rules for one game session.

    Exactly one termination condition is set: ``target_rounds`` ends the game
    after that many scored rounds, ``target_score`` ends it as soon as either
    team's running total reaches the threshold.
    """

    model_config = ConfigDict(frozen=True)

    # --- Seating ---
    max_players: int = Field(default=MAX_PLAYERS, ge=MIN_PLAYERS, le=MAX_PLAYERS)
    min_players: int = Field(default=MIN_PLAYERS, ge=MIN_PLAYERS, le=MAX_PLAYERS)

    # --- Termination ---
    target_rounds: int | None = Field(default=None, ge=1, le=100)
    target_score: int | None = Field(default=None, ge=1)

    # --- Tricks ---
    trick_schedule: TrickSchedule = TrickSchedule.FIXED
    tricks_per_round: int = Field(default=MAX_TRICKS_PER_ROUND, ge=1, le=MAX_TRICKS_PER_ROUND)

    # --- Scoring ---
    nil_bonus: int = Field(default=DEFAULT_NIL_BONUS, ge=0)
    nil_penalty: int = Field(default=DEFAULT_NIL_PENALTY, ge=0)  # subtracted on a failed nil

    @model_validator(mode="after")
    def _validate_rules(self) -> Self:
        if (self.target_rounds is None) == (self.target_score is None):
            raise ValueError("Exactly one of target_rounds or target_score must be set")
        if self.min_players > self.max_players:
            raise ValueError(f"min_players ({self.min_players}) exceeds max_players ({self.max_players})")
        return self

    def tricks_for_round(self, round_number: int) -> int:
        """Return the fixed trick total for a 1-based round number."""
        if round_number < 1:
            raise ValueError(f"round_number must be >= 1, got {round_number}")
        if self.trick_schedule == TrickSchedule.PROGRESSIVE:
            return min(round_number, self.tricks_per_round)
        return self.tricks_per_round
