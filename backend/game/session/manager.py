from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import anyio
import structlog
from anyio import to_thread
from pydantic import ValidationError

from game.logic.enums import GameStatus, RoundPhase
from game.logic.exceptions import GameNotFoundError, GameNotJoinableError, NotAMemberError
from game.logic.game import (
    add_player,
    apply_bid,
    apply_reported_tricks,
    apply_trick_edit,
    apply_tricks,
    approve_round,
    complete_game,
    end_game_early,
    new_game,
    remove_player,
    require_host,
    start_game,
)
from game.logic.state import Game

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from datetime import timedelta

    from game.logic.settings import GameSettings
    from game.players import PlayerProfile, PlayerRegistry
    from game.session.store import GameStore
    from shared.storage import GameHistoryStorage

logger = structlog.get_logger()


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class SessionManager:
    """
    Drives games through lobby -> in_progress -> completed.

    Every state change runs as: take the game's lock, re-read the stored
    snapshot, apply a pure transition from ``game.logic.game``, commit the
    result. Transitions raise before building new state, so a rejected
    request never leaves a partial update behind. History persistence runs
    after the lock is released.
    """

    def __init__(
        self,
        store: GameStore,
        registry: PlayerRegistry,
        history_storage: GameHistoryStorage | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._registry = registry
        self._history_storage = history_storage
        self._clock = clock

    async def _mutate(self, game_id: str, transition: Callable[[Game], Game]) -> Game:
        lock = self._store.lock_for(game_id)
        async with lock:
            before = self._store.get(game_id)
            after = transition(before)
            if after is not before:
                await self._store.commit(after)
        self._log_phase_changes(before, after)
        if before.status != GameStatus.COMPLETED and after.status == GameStatus.COMPLETED:
            await self._on_game_completed(after)
        return after

    @staticmethod
    def _log_phase_changes(before: Game, after: Game) -> None:
        before_round = before.current_round
        after_round = after.current_round
        if (
            before_round is not None
            and after_round is not None
            and before_round.round_number == after_round.round_number
            and before_round.phase == RoundPhase.COLLECTING_BIDS
            and after_round.phase == RoundPhase.PLAYING_TRICKS
        ):
            logger.info("bidding closed", game_id=after.game_id, round_number=after_round.round_number)
        if (
            before_round is not None
            and after_round is not None
            and before_round.round_number == after_round.round_number
            and before_round.phase == RoundPhase.PLAYING_TRICKS
            and after_round.phase == RoundPhase.TRICK_REVIEW
        ):
            logger.info("trick review opened", game_id=after.game_id, round_number=after_round.round_number)
        if len(after.scored_rounds) > len(before.scored_rounds):
            scored = after.scored_rounds[-1]
            logger.info(
                "round scored",
                game_id=after.game_id,
                round_number=scored.round_number,
                team_scores=scored.team_scores,
            )

    async def _on_game_completed(self, game: Game) -> None:
        logger.info(
            "game completed",
            game_id=game.game_id,
            rounds=len(game.rounds),
            winner_team=game.winner_team,
        )
        if self._history_storage is None:
            return
        try:
            await to_thread.run_sync(self._history_storage.save_game, game.game_id, game.model_dump_json())
        except (OSError, ValueError):
            logger.exception("failed to save game history", game_id=game.game_id)
        else:
            logger.info("history saved", game_id=game.game_id)

    def load_history(self) -> int:
        """Restore completed games from history storage. Returns the number loaded."""
        if self._history_storage is None:
            return 0
        loaded = 0
        for document in self._history_storage.load_games():
            try:
                game = Game.model_validate_json(document)
            except ValidationError:
                logger.exception("skipping unreadable history document")
                continue
            if self._store.restore(game):
                loaded += 1
        logger.info("history loaded", count=loaded)
        return loaded

    # --- lifecycle ---

    async def create_game(
        self,
        host_name: str,
        settings: GameSettings,
        *,
        title: str = "",
        description: str = "",
        avatar: str | None = None,
    ) -> tuple[Game, PlayerProfile]:
        """Create a lobby game and seat its host. The host identity is registered only once the game exists."""
        host = self._registry.preview(host_name, avatar=avatar)
        now = self._clock()

        def build(game_id: str, code: str) -> Game:
            return new_game(
                game_id=game_id,
                code=code,
                host_id=host.player_id,
                host_name=host.name,
                host_avatar=host.avatar,
                settings=settings,
                title=title,
                description=description,
                now=now,
            )

        game = await self._store.create(host.player_id, build)
        host = await self._registry.ensure(host_name, avatar=avatar)
        logger.info("game created", game_id=game.game_id, code=game.code, host_id=host.player_id)
        return game, host

    async def join_by_code(self, code: str, player_name: str, avatar: str | None = None) -> tuple[Game, PlayerProfile]:
        """
        Seat a player in the lobby game behind ``code``.

        Joining again with the same identity returns the existing seat. The
        identity is registered only after the seat is taken, so a failed join
        leaves the registry unchanged.
        """
        profile = self._registry.preview(player_name, avatar=avatar)
        game = self._store.find_by_code(code)
        joined_at = self._clock()

        def transition(current: Game) -> Game:
            return add_player(
                current,
                player_id=profile.player_id,
                name=profile.name,
                avatar=profile.avatar,
                now=joined_at,
            )

        updated = await self._mutate(game.game_id, transition)
        profile = await self._registry.ensure(player_name, avatar=avatar)
        member = updated.players[profile.player_id]
        logger.info("player joined", game_id=updated.game_id, player_id=profile.player_id, team=member.team)
        return updated, profile

    async def resume(self, player_name: str, game_id: str) -> tuple[Game, PlayerProfile]:
        """Reattach a client to a game it already belongs to. Never mutates the game."""
        profile = self._registry.profile(player_name)
        game = self._store.get(game_id)
        if profile.player_id not in game.players:
            raise NotAMemberError(profile.player_id, game_id)
        if game.status == GameStatus.COMPLETED:
            raise GameNotJoinableError("This game has already ended")
        await self._registry.touch(profile.player_id)
        return game, profile

    async def start(self, game_id: str, requested_by: str) -> Game:
        game = await self._mutate(game_id, lambda g: start_game(g, requested_by, self._clock()))
        logger.info("game started", game_id=game_id, players=game.player_count)
        return game

    async def submit_bid(self, game_id: str, player_id: str, bid: int) -> Game:
        game = await self._mutate(game_id, lambda g: apply_bid(g, player_id, bid, self._clock()))
        logger.info("bid submitted", game_id=game_id, player_id=player_id, bid=bid)
        return game

    async def record_tricks(
        self,
        game_id: str,
        tricks: Mapping[str, int],
        requested_by: str | None = None,
    ) -> Game:
        """Record the current round's tricks for every player and score the round."""
        return await self._mutate(game_id, lambda g: apply_tricks(g, tricks, self._clock(), requested_by))

    async def submit_tricks(self, game_id: str, player_id: str, tricks: int) -> Game:
        """A player reports their own tricks; the round goes to host review once everyone has."""
        game = await self._mutate(game_id, lambda g: apply_reported_tricks(g, player_id, tricks, self._clock()))
        logger.info("tricks reported", game_id=game_id, player_id=player_id, tricks=tricks)
        return game

    async def edit_tricks(self, game_id: str, requested_by: str, player_id: str, tricks: int) -> Game:
        game = await self._mutate(
            game_id,
            lambda g: apply_trick_edit(g, requested_by, player_id, tricks, self._clock()),
        )
        logger.info("tricks edited", game_id=game_id, player_id=player_id, tricks=tricks)
        return game

    async def approve_tricks(self, game_id: str, requested_by: str) -> Game:
        return await self._mutate(game_id, lambda g: approve_round(g, requested_by, self._clock()))

    async def complete(self, game_id: str) -> Game:
        """Force an in-progress game to completion using its scored rounds."""
        return await self._mutate(game_id, lambda g: complete_game(g, self._clock()))

    async def end_game(self, game_id: str, requested_by: str) -> Game:
        return await self._mutate(game_id, lambda g: end_game_early(g, requested_by, self._clock()))

    async def leave(self, game_id: str, player_id: str) -> Game | None:
        """
        Remove a player from a lobby game.

        Returns the updated game, or None when the last player left and the
        game was deleted.
        """
        lock = self._store.lock_for(game_id)
        async with lock:
            game = self._store.get(game_id)
            updated = remove_player(game, player_id, self._clock())
            if updated is None:
                await self._store.remove(game_id)
            else:
                await self._store.commit(updated)
        logger.info("player left", game_id=game_id, player_id=player_id, game_deleted=updated is None)
        return updated

    async def cancel(self, game_id: str, requested_by: str) -> None:
        """Host deletes a game outright."""
        lock = self._store.lock_for(game_id)
        async with lock:
            game = self._store.get(game_id)
            require_host(game, requested_by, "cancel the game")
            await self._store.remove(game_id)
        logger.info("game cancelled", game_id=game_id, requested_by=requested_by)

    # --- maintenance ---

    async def remove_stale_games(self, max_idle: timedelta) -> list[str]:
        """
        Delete lobby and in-progress games with no activity for longer than ``max_idle``.

        Each candidate is re-checked under its own lock, so a move that lands
        during the sweep keeps its game. Completed games are history and are
        never swept.
        """
        cutoff = self._clock() - max_idle
        removed: list[str] = []
        for candidate in self._store.list_all():
            if not candidate.is_active or candidate.last_activity >= cutoff:
                continue
            try:
                lock = self._store.lock_for(candidate.game_id)
            except GameNotFoundError:
                continue
            async with lock:
                try:
                    game = self._store.get(candidate.game_id)
                except GameNotFoundError:
                    continue
                if game.is_active and game.last_activity < cutoff and await self._store.remove(game.game_id):
                    removed.append(game.game_id)
        if removed:
            logger.info("stale games removed", count=len(removed), game_ids=removed)
        return removed

    async def run_stale_sweep(self, max_idle: timedelta, interval: float) -> None:
        """Call remove_stale_games every ``interval`` seconds until cancelled."""
        while True:
            await anyio.sleep(interval)
            await self.remove_stale_games(max_idle)

    # --- reads ---

    def get_game(self, game_id: str) -> Game:
        return self._store.get(game_id)

    def active_games_for(self, player_id: str) -> list[Game]:
        game_id = self._store.active_game_id_for(player_id)
        if game_id is None:
            return []
        return [self._store.get(game_id)]

    def history_for(self, player_id: str) -> list[Game]:
        """Completed games the player took part in, most recently completed first."""
        games = [g for g in self._store.list_all() if g.status == GameStatus.COMPLETED and player_id in g.players]
        return sorted(games, key=lambda g: g.completed_at or g.created_at, reverse=True)

