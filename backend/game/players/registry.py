"""In-memory identity registry."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from game.logic.exceptions import InvalidInputError, PlayerNotFoundError
from game.players.models import PlayerProfile, normalize_name, player_id_for

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

logger = structlog.get_logger()

MAX_NAME_LENGTH = 40


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class PlayerRegistry:
    """
    Maps display names to stable player identities.

    The registry is the only owner of profile data; games keep their own
    name/team snapshots. Lookups are case-insensitive and ignore surrounding
    whitespace. Construct one per process (or per test); nothing here is global.
    """

    def __init__(self, clock: Callable[[], datetime] = _utc_now) -> None:
        self._profiles: dict[str, PlayerProfile] = {}  # player_id -> profile
        self._lock = asyncio.Lock()
        self._clock = clock

    @staticmethod
    def _clean_name(name: str) -> str:
        cleaned = " ".join(name.split())
        if not cleaned:
            raise InvalidInputError("Player name is required")
        if len(cleaned) > MAX_NAME_LENGTH:
            raise InvalidInputError(f"Player name must be at most {MAX_NAME_LENGTH} characters")
        return cleaned

    async def login(self, name: str, avatar: str | None = None) -> PlayerProfile:
        """Return the identity for a name, registering it on first use.

        Idempotent on identity: repeated logins return the same player id and
        only bump the login counter and last-seen time.
        """
        cleaned = self._clean_name(name)
        player_id = player_id_for(cleaned)
        now = self._clock()
        async with self._lock:
            existing = self._profiles.get(player_id)
            if existing is None:
                profile = PlayerProfile(
                    player_id=player_id,
                    name=cleaned,
                    avatar=avatar,
                    created_at=now,
                    last_seen=now,
                    login_count=1,
                )
                logger.info("player registered", player_id=player_id)
            else:
                profile = existing.model_copy(
                    update={
                        "last_seen": now,
                        "login_count": existing.login_count + 1,
                        "avatar": avatar if avatar is not None else existing.avatar,
                    },
                )
            self._profiles[player_id] = profile
        logger.info("player logged in", player_id=player_id, login_count=profile.login_count)
        return profile

    def preview(self, name: str, avatar: str | None = None) -> PlayerProfile:
        """Return the identity a name resolves to without registering it.

        The stored profile when one exists, otherwise an unsaved profile for
        the cleaned name. Lets callers validate a seat before the identity is
        committed with ``ensure``.
        """
        cleaned = self._clean_name(name)
        existing = self._profiles.get(player_id_for(cleaned))
        if existing is not None:
            return existing
        now = self._clock()
        return PlayerProfile(player_id=player_id_for(cleaned), name=cleaned, avatar=avatar, created_at=now, last_seen=now)

    async def ensure(self, name: str, avatar: str | None = None) -> PlayerProfile:
        """Return the identity for a name, registering it without counting a login."""
        cleaned = self._clean_name(name)
        player_id = player_id_for(cleaned)
        async with self._lock:
            existing = self._profiles.get(player_id)
            if existing is not None:
                return existing
            now = self._clock()
            profile = PlayerProfile(player_id=player_id, name=cleaned, avatar=avatar, created_at=now, last_seen=now)
            self._profiles[player_id] = profile
        logger.info("player registered", player_id=player_id)
        return profile

    async def touch(self, player_id: str) -> None:
        """Record activity for presence tracking. Unknown ids are ignored."""
        async with self._lock:
            profile = self._profiles.get(player_id)
            if profile is not None:
                self._profiles[player_id] = profile.model_copy(update={"last_seen": self._clock()})

    def profile(self, name: str) -> PlayerProfile:
        """Look up a profile by display name. Raises PlayerNotFoundError."""
        if not normalize_name(name):
            raise InvalidInputError("Player name is required")
        profile = self._profiles.get(player_id_for(name))
        if profile is None:
            raise PlayerNotFoundError(name.strip())
        return profile

    def get(self, player_id: str) -> PlayerProfile | None:
        return self._profiles.get(player_id)

    def list_profiles(self) -> list[PlayerProfile]:
        """Snapshot of all profiles, oldest registration first."""
        return sorted(self._profiles.values(), key=lambda p: p.created_at)

    async def delete(self, player_ids: Iterable[str]) -> list[str]:
        """Remove identities. Returns the ids that existed; unknown ids are skipped."""
        async with self._lock:
            deleted = [pid for pid in dict.fromkeys(player_ids) if self._profiles.pop(pid, None) is not None]
        if deleted:
            logger.info("players deleted", count=len(deleted))
        return deleted
