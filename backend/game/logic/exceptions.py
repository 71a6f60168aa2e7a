"""Typed domain exceptions for the game engine.

Every engine failure is a subclass of GameError and carries an ErrorKind.
The HTTP layer maps the kind to a status code and returns the message in
an ``{"error": ...}`` body; anything that is not a GameError is treated as
an internal defect.
"""

from enum import StrEnum


class ErrorKind(StrEnum):
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    INTERNAL = "internal"


class GameError(Exception):
    """Base exception for all engine failures."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidInputError(GameError):
    """Malformed or missing fields."""

    kind = ErrorKind.INVALID_INPUT


class NotFoundError(GameError):
    kind = ErrorKind.NOT_FOUND


class ForbiddenError(GameError):
    """Requester is not allowed to perform a state-changing action."""

    kind = ErrorKind.FORBIDDEN


class ConflictError(GameError):
    """Request is well-formed but clashes with the current game state."""

    kind = ErrorKind.CONFLICT


class InvalidSettingsError(InvalidInputError):
    pass


class InvalidBidError(InvalidInputError):
    """Bid is negative or exceeds the round's trick count."""


class TrickCountMismatchError(InvalidInputError):
    """Recorded tricks do not cover every player or do not sum to the round's total."""


class InvalidTrickCountError(InvalidInputError):
    """A single reported trick count is negative or exceeds the round's trick total."""


class GameNotFoundError(NotFoundError):
    def __init__(self, game_id: str) -> None:
        self.game_id = game_id
        super().__init__(f"Game not found: {game_id}")


class JoinCodeNotFoundError(NotFoundError):
    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"No active game with code {code}")


class PlayerNotFoundError(NotFoundError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Player not found: {name}")


class NotAMemberError(ForbiddenError):
    def __init__(self, player_id: str, game_id: str) -> None:
        self.player_id = player_id
        self.game_id = game_id
        super().__init__(f"Player {player_id} is not in game {game_id}")


class GameNotJoinableError(ConflictError):
    """Game is full or no longer in the lobby."""


class InvalidPhaseError(ConflictError):
    """Operation is not valid in the current game or round phase."""


class DuplicateBidError(ConflictError):
    def __init__(self, player_id: str, round_number: int) -> None:
        self.player_id = player_id
        self.round_number = round_number
        super().__init__(f"Player {player_id} already bid in round {round_number}")


class NotEnoughPlayersError(ConflictError):
    pass


class AlreadyInActiveGameError(ConflictError):
    def __init__(self, player_id: str, game_id: str) -> None:
        self.player_id = player_id
        self.game_id = game_id
        super().__init__(f"Player {player_id} is already in active game {game_id}")


class CodeSpaceExhaustedError(ConflictError):
    """No unused join code was found within the configured number of attempts."""
