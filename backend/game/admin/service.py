"""Read-only listings and destructive admin operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import structlog
from anyio import to_thread

from game.logic.enums import GameStatus
from game.messaging.payload import admin_game_summary, to_millis

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from game.players import PlayerRegistry
    from game.session.store import GameStore
    from shared.storage import GameHistoryStorage

logger = structlog.get_logger()

DEFAULT_PRESENCE_WINDOW = timedelta(minutes=5)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class DeleteResult:
    deleted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.deleted)


class AdminService:
    """
    Admin view over the game store and identity registry.

    Listings are built from the current snapshots and never take a game
    lock. Deleting a player only removes the identity: completed games keep
    their own copy of the player's name, team, and scores.
    """

    def __init__(
        self,
        store: GameStore,
        registry: PlayerRegistry,
        history_storage: GameHistoryStorage | None = None,
        presence_window: timedelta = DEFAULT_PRESENCE_WINDOW,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._registry = registry
        self._history_storage = history_storage
        self._presence_window = presence_window
        self._clock = clock

    def list_games(self) -> list[dict[str, Any]]:
        return [admin_game_summary(game) for game in self._store.list_all()]

    def list_players(self) -> list[dict[str, Any]]:
        games_played: dict[str, int] = {}
        for game in self._store.list_all():
            if game.status != GameStatus.COMPLETED:
                continue
            for player_id in game.players:
                games_played[player_id] = games_played.get(player_id, 0) + 1

        now = self._clock()
        return [
            {
                "id": profile.player_id,
                "name": profile.name,
                "gamesPlayed": games_played.get(profile.player_id, 0),
                "lastSeen": to_millis(profile.last_seen),
                "isOnline": now - profile.last_seen <= self._presence_window,
            }
            for profile in self._registry.list_profiles()
        ]

    async def delete_games(self, game_ids: Iterable[str]) -> DeleteResult:
        requested = list(dict.fromkeys(game_ids))
        deleted = await self._store.delete(requested)
        if self._history_storage is not None:
            for game_id in deleted:
                try:
                    await to_thread.run_sync(self._history_storage.delete_game, game_id)
                except (OSError, ValueError):
                    logger.exception("failed to delete game history", game_id=game_id)
        failed = [game_id for game_id in requested if game_id not in deleted]
        return DeleteResult(deleted=deleted, failed=failed)

    async def delete_players(self, player_ids: Iterable[str]) -> DeleteResult:
        requested = list(dict.fromkeys(player_ids))
        deleted = await self._registry.delete(requested)
        failed = [player_id for player_id in requested if player_id not in deleted]
        return DeleteResult(deleted=deleted, failed=failed)
