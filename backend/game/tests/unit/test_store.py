"""Tests for GameStore indexing, code allocation, and deletion."""

import itertools
import re

import pytest

from game.logic.enums import GameStatus
from game.logic.exceptions import (
    AlreadyInActiveGameError,
    CodeSpaceExhaustedError,
    GameNotFoundError,
    JoinCodeNotFoundError,
)
from game.logic.game import add_player, complete_game, new_game, start_game
from game.session.store import JOIN_CODE_ALPHABET, GameStore
from game.tests.conftest import T0, make_settings


def _builder(host_id: str, host_name: str = "Alex"):
    def build(game_id: str, code: str):
        return new_game(
            game_id=game_id,
            code=code,
            host_id=host_id,
            host_name=host_name,
            settings=make_settings(),
            now=T0,
        )

    return build


async def _create(store: GameStore, host_id: str):
    return await store.create(host_id, _builder(host_id))


class TestCreate:
    async def test_allocates_id_and_code(self, store):
        game = await _create(store, "p0")

        assert re.fullmatch(r"[0-9a-f]{12}", game.game_id)
        assert len(game.code) == 5
        assert set(game.code) <= set(JOIN_CODE_ALPHABET)
        assert store.get(game.game_id) is game
        assert store.active_game_id_for("p0") == game.game_id

    async def test_code_lookup_is_case_insensitive(self, store):
        game = await _create(store, "p0")

        assert store.find_by_code(f"  {game.code.lower()} ") is game

    async def test_retries_code_collisions(self):
        codes = iter(["AAAAA", "AAAAA", "BBBBB"])
        store = GameStore(code_factory=lambda _length: next(codes))

        first = await _create(store, "p0")
        second = await _create(store, "p1")

        assert first.code == "AAAAA"
        assert second.code == "BBBBB"

    async def test_gives_up_after_max_attempts(self):
        attempts = itertools.count()

        def factory(_length: int) -> str:
            next(attempts)
            return "AAAAA"

        store = GameStore(max_code_attempts=3, code_factory=factory)
        await _create(store, "p0")

        with pytest.raises(CodeSpaceExhaustedError):
            await _create(store, "p1")
        assert next(attempts) == 4  # one for the first game, three retries
        assert store.game_count == 1

    async def test_host_already_in_active_game(self, store):
        game = await _create(store, "p0")

        with pytest.raises(AlreadyInActiveGameError) as exc_info:
            await _create(store, "p0")
        assert exc_info.value.game_id == game.game_id
        assert store.game_count == 1


class TestLookups:
    async def test_unknown_code(self, store):
        with pytest.raises(JoinCodeNotFoundError):
            store.find_by_code("ZZZZZ")

    async def test_unknown_game(self, store):
        with pytest.raises(GameNotFoundError):
            store.get("missing")
        with pytest.raises(GameNotFoundError):
            store.lock_for("missing")

    async def test_list_all_newest_first(self, store):
        first = await _create(store, "p0")
        second = await _create(store, "p1")
        second = second.model_copy(update={"created_at": T0.replace(hour=20)})
        async with store.lock_for(second.game_id):
            await store.commit(second)

        assert [g.game_id for g in store.list_all()] == [second.game_id, first.game_id]


class TestCommit:
    async def test_completion_releases_code_and_players(self):
        store = GameStore(code_factory=lambda _length: "AAAAA")
        game = await _create(store, "p0")
        game = add_player(game, player_id="p1", name="Blair", now=T0)
        game = complete_game(start_game(game, "p0", T0), T0)

        async with store.lock_for(game.game_id):
            await store.commit(game)

        with pytest.raises(JoinCodeNotFoundError):
            store.find_by_code("AAAAA")
        assert store.active_game_id_for("p1") is None
        assert store.active_game_count == 0

        reused = await _create(store, "p0")
        assert reused.code == "AAAAA"
        assert store.get(game.game_id).status == GameStatus.COMPLETED

    async def test_rejects_player_active_elsewhere(self, store):
        other = await _create(store, "p1")
        game = await _create(store, "p0")
        crowded = add_player(game, player_id="p1", name="Blair", now=T0)

        with pytest.raises(AlreadyInActiveGameError):
            async with store.lock_for(game.game_id):
                await store.commit(crowded)
        assert store.get(game.game_id) is game
        assert store.active_game_id_for("p1") == other.game_id

    async def test_commit_of_removed_game(self, store):
        game = await _create(store, "p0")
        await store.delete([game.game_id])

        with pytest.raises(GameNotFoundError):
            await store.commit(game)


class TestDelete:
    async def test_idempotent_and_counts_existing_only(self, store):
        game = await _create(store, "p0")

        assert await store.delete([game.game_id, "missing", game.game_id]) == [game.game_id]
        assert await store.delete([game.game_id]) == []
        assert store.game_count == 0
        assert store.active_game_id_for("p0") is None

    async def test_restore_only_completed_games(self, store):
        game = await _create(store, "p0")
        await store.delete([game.game_id])

        assert store.restore(game) is False
        completed = complete_game(start_game(add_player(game, player_id="p1", name="B", now=T0), "p0", T0), T0)
        assert store.restore(completed) is True
        assert store.restore(completed) is False
        assert store.get(game.game_id) is completed
