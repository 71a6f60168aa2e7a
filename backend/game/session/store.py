"""In-memory game store with per-game locks."""

from __future__ import annotations

import asyncio
import secrets
import uuid
from typing import TYPE_CHECKING

import structlog

from game.logic.enums import GameStatus
from game.logic.exceptions import (
    AlreadyInActiveGameError,
    CodeSpaceExhaustedError,
    GameNotFoundError,
    JoinCodeNotFoundError,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from game.logic.state import Game

logger = structlog.get_logger()

# Uppercase letters and digits minus the look-alikes 0/O and 1/I.
JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
DEFAULT_CODE_LENGTH = 5
DEFAULT_MAX_CODE_ATTEMPTS = 50
GAME_ID_LENGTH = 12


def normalize_code(code: str) -> str:
    return code.strip().upper()


class GameStore:
    """
    Owns every Game record, keyed by game id and by active join code.

    Game records are frozen; a mutation replaces the whole record via
    ``commit`` while the caller holds that game's lock, so readers always see
    either the old or the new snapshot. Locks are per game: distinct games
    never wait on each other. The index lock guards only the top-level maps
    and is never held across a multi-step operation.

    Lock order is always game lock, then index lock.
    """

    def __init__(
        self,
        code_length: int = DEFAULT_CODE_LENGTH,
        max_code_attempts: int = DEFAULT_MAX_CODE_ATTEMPTS,
        code_factory: Callable[[int], str] | None = None,
    ) -> None:
        self._games: dict[str, Game] = {}  # game_id -> Game
        self._codes: dict[str, str] = {}  # active join code -> game_id
        self._active_players: dict[str, str] = {}  # player_id -> active game_id
        self._game_locks: dict[str, asyncio.Lock] = {}  # game_id -> Lock
        self._index_lock = asyncio.Lock()
        self._code_length = code_length
        self._max_code_attempts = max_code_attempts
        self._code_factory = code_factory or self._random_code

    @staticmethod
    def _random_code(length: int) -> str:
        return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(length))

    def _allocate_code(self) -> str:
        for _ in range(self._max_code_attempts):
            code = normalize_code(self._code_factory(self._code_length))
            if code not in self._codes:
                return code
        raise CodeSpaceExhaustedError(f"Could not allocate a join code after {self._max_code_attempts} attempts")

    def _allocate_game_id(self) -> str:
        while True:
            game_id = uuid.uuid4().hex[:GAME_ID_LENGTH]
            if game_id not in self._games:
                return game_id

    async def create(self, host_id: str, build: Callable[[str, str], Game]) -> Game:
        """
        Allocate a game id and join code, then store the Game returned by ``build(game_id, code)``.

        Fails with AlreadyInActiveGameError when the host already sits in an
        active game, and CodeSpaceExhaustedError when no free code is found.
        """
        async with self._index_lock:
            current = self._active_players.get(host_id)
            if current is not None:
                raise AlreadyInActiveGameError(host_id, current)
            game = build(self._allocate_game_id(), self._allocate_code())
            self._games[game.game_id] = game
            self._game_locks[game.game_id] = asyncio.Lock()
            self._index(game)
        return game

    def _index(self, game: Game) -> None:
        if game.is_active:
            self._codes[game.code] = game.game_id
            for player_id in game.players:
                self._active_players[player_id] = game.game_id

    def _unindex(self, game: Game) -> None:
        if self._codes.get(game.code) == game.game_id:
            del self._codes[game.code]
        for player_id in game.players:
            if self._active_players.get(player_id) == game.game_id:
                del self._active_players[player_id]

    async def commit(self, game: Game) -> None:
        """
        Replace a stored game with its updated snapshot and refresh the indexes.

        Caller must hold the game's lock. Validation runs before anything is
        swapped in, so a failed commit leaves the store unchanged.
        """
        async with self._index_lock:
            previous = self._games.get(game.game_id)
            if previous is None:
                raise GameNotFoundError(game.game_id)
            if game.is_active:
                for player_id in game.players:
                    current = self._active_players.get(player_id)
                    if current is not None and current != game.game_id:
                        raise AlreadyInActiveGameError(player_id, current)
            self._unindex(previous)
            self._games[game.game_id] = game
            self._index(game)

    def restore(self, game: Game) -> bool:
        """Load a completed game from history. Returns False if the id is already taken."""
        if game.status != GameStatus.COMPLETED or game.game_id in self._games:
            return False
        self._games[game.game_id] = game
        self._game_locks[game.game_id] = asyncio.Lock()
        return True

    def get(self, game_id: str) -> Game:
        game = self._games.get(game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        return game

    def find_by_code(self, code: str) -> Game:
        """Look up an active game by join code (case-insensitive)."""
        normalized = normalize_code(code)
        game_id = self._codes.get(normalized)
        if game_id is None:
            raise JoinCodeNotFoundError(normalized)
        return self.get(game_id)

    def lock_for(self, game_id: str) -> asyncio.Lock:
        lock = self._game_locks.get(game_id)
        if lock is None:
            raise GameNotFoundError(game_id)
        return lock

    def active_game_id_for(self, player_id: str) -> str | None:
        return self._active_players.get(player_id)

    def list_all(self) -> list[Game]:
        """Snapshot of every game, newest first."""
        return sorted(self._games.values(), key=lambda g: g.created_at, reverse=True)

    async def remove(self, game_id: str) -> bool:
        """Remove one game. Caller must hold the game's lock."""
        async with self._index_lock:
            game = self._games.pop(game_id, None)
            if game is None:
                return False
            self._unindex(game)
            self._game_locks.pop(game_id, None)
        return True

    async def delete(self, game_ids: Iterable[str]) -> list[str]:
        """
        Delete games by id, waiting for any in-flight mutation on each.

        Idempotent: unknown ids are skipped. Returns the ids actually removed.
        """
        deleted: list[str] = []
        for game_id in dict.fromkeys(game_ids):
            lock = self._game_locks.get(game_id)
            if lock is None:
                continue
            async with lock:
                if await self.remove(game_id):
                    deleted.append(game_id)
        if deleted:
            logger.info("games deleted", count=len(deleted))
        return deleted

    @property
    def game_count(self) -> int:
        return len(self._games)

    @property
    def active_game_count(self) -> int:
        return sum(1 for g in self._games.values() if g.is_active)
