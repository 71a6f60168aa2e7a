from datetime import UTC, datetime, timedelta

import pytest

from game.logic.game import add_player, new_game, start_game
from game.logic.settings import GameSettings
from game.logic.state import Game
from game.players import PlayerRegistry
from game.session.manager import SessionManager
from game.session.store import GameStore

T0 = datetime(2025, 7, 8, 19, 0, tzinfo=UTC)

PLAYER_NAMES = ("Alex", "Blair", "Casey", "Drew")

# Bids and tricks for the four-player round used across engine and API tests.
# Teams alternate by join order: Alex/Casey red, Blair/Drew blue.
SCENARIO_BIDS = {"p0": 3, "p1": 2, "p2": 4, "p3": 1}
SCENARIO_TRICKS = {"p0": 3, "p1": 3, "p2": 3, "p3": 1}
SCENARIO_SCORES = {"p0": 30, "p1": 21, "p2": -40, "p3": 10}


class FakeClock:
    """Deterministic clock; advance it explicitly."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# ============================================================================
# Game State Builder Helpers
# ============================================================================


def make_settings(**overrides: object) -> GameSettings:
    """GameSettings with a ten-trick fixed schedule unless overridden."""
    values: dict[str, object] = {"target_rounds": 13, "tricks_per_round": 10}
    values.update(overrides)
    if "target_score" in overrides and "target_rounds" not in overrides:
        values["target_rounds"] = None
    return GameSettings(**values)


def create_game(
    players: int = 4,
    *,
    settings: GameSettings | None = None,
    game_id: str = "game01",
    code: str = "ABCDE",
) -> Game:
    """Lobby game with players p0..p{n-1}; p0 is the host."""
    game = new_game(
        game_id=game_id,
        code=code,
        host_id="p0",
        host_name=PLAYER_NAMES[0],
        settings=settings or make_settings(),
        now=T0,
    )
    for i in range(1, players):
        game = add_player(game, player_id=f"p{i}", name=PLAYER_NAMES[i], now=T0 + timedelta(seconds=i))
    return game


def create_started_game(players: int = 4, *, settings: GameSettings | None = None) -> Game:
    return start_game(create_game(players, settings=settings), "p0", T0 + timedelta(minutes=1))


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return PlayerRegistry(clock=clock)


@pytest.fixture
def store():
    return GameStore()


@pytest.fixture
def session_manager(store, registry, clock):
    return SessionManager(store, registry, clock=clock)
