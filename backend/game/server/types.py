"""Request bodies accepted by the HTTP API.

Clients send camelCase keys; snake_case is accepted too so tests and
scripts can build bodies either way.
"""

from enum import StrEnum
from typing import Annotated, Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from game.logic.enums import TrickSchedule
from game.logic.exceptions import InvalidSettingsError
from game.logic.settings import DEFAULT_TARGET_ROUNDS, MAX_PLAYERS, MAX_TRICKS_PER_ROUND, MIN_PLAYERS, GameSettings

_NAME_MAX_LENGTH = 40
_ID_MAX_LENGTH = 64


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class CreateGameRequest(_CamelModel):
    # The web client also posts presentation-only fields (gameMode, bidTimer, ...).
    model_config = ConfigDict(extra="ignore")

    host_name: str = Field(min_length=1, max_length=_NAME_MAX_LENGTH)
    avatar: str | None = Field(default=None, max_length=200)
    title: str = Field(default="", max_length=80)
    description: str = Field(default="", max_length=500)
    max_players: int = Field(default=MAX_PLAYERS, ge=MIN_PLAYERS, le=MAX_PLAYERS, strict=True)
    total_rounds: int | None = Field(default=None, ge=1, le=100, strict=True)
    target_score: int | None = Field(default=None, ge=1, strict=True)
    trick_schedule: TrickSchedule = TrickSchedule.FIXED
    tricks_per_round: int = Field(default=MAX_TRICKS_PER_ROUND, ge=1, le=MAX_TRICKS_PER_ROUND, strict=True)

    @model_validator(mode="after")
    def _validate_termination(self) -> Self:
        if self.total_rounds is not None and self.target_score is not None:
            raise ValueError("Set either totalRounds or targetScore, not both")
        return self

    def to_settings(self) -> GameSettings:
        target_rounds = self.total_rounds
        if target_rounds is None and self.target_score is None:
            target_rounds = DEFAULT_TARGET_ROUNDS
        try:
            return GameSettings(
                max_players=self.max_players,
                target_rounds=target_rounds,
                target_score=self.target_score,
                trick_schedule=self.trick_schedule,
                tricks_per_round=self.tricks_per_round,
            )
        except ValidationError as e:
            raise InvalidSettingsError(f"Invalid game settings: {e.errors()[0]['msg']}") from e


class JoinRequest(_CamelModel):
    code: str = Field(min_length=1, max_length=12)
    player_name: str = Field(min_length=1, max_length=_NAME_MAX_LENGTH)
    avatar: str | None = Field(default=None, max_length=200)


class LoginRequest(_CamelModel):
    name: str = Field(min_length=1, max_length=_NAME_MAX_LENGTH)
    avatar: str | None = Field(default=None, max_length=200)


class ResumeRequest(_CamelModel):
    player_name: str = Field(min_length=1, max_length=_NAME_MAX_LENGTH)
    game_id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)


class GameAction(StrEnum):
    START_GAME = "startGame"
    SUBMIT_BID = "submitBid"
    RECORD_TRICKS = "recordTricks"
    SUBMIT_TRICKS = "submitTricks"
    EDIT_PLAYER_TRICKS = "editPlayerTricks"
    APPROVE_TRICKS = "approveTricks"
    LEAVE_GAME = "leaveGame"
    END_GAME = "endGame"
    CANCEL_GAME = "cancelGame"


class ActionRequest(_CamelModel):
    game_id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)
    player_id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)
    action: GameAction
    data: dict[str, Any] = Field(default_factory=dict)


class BidData(BaseModel):
    model_config = ConfigDict(extra="forbid")

    bid: int = Field(strict=True)


StrictCount = Annotated[int, Field(strict=True)]


class TricksData(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tricks: dict[str, StrictCount] = Field(min_length=1)


class SubmitTricksData(BaseModel):
    """A player's own trick count for the current round."""

    model_config = ConfigDict(extra="forbid")

    tricks: StrictCount


class EditTricksData(_CamelModel):
    target_player_id: str = Field(min_length=1, max_length=_ID_MAX_LENGTH)
    new_tricks: StrictCount


class DeleteGamesRequest(_CamelModel):
    game_ids: list[str] = Field(min_length=1, max_length=500)


class DeletePlayersRequest(_CamelModel):
    player_ids: list[str] = Field(min_length=1, max_length=500)
