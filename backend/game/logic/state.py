"""
Game state models.

All state is frozen. Engine operations never mutate a Game in place; they
return a new Game built with ``model_copy`` and the session layer swaps it
into the store in one step, so readers only ever see whole snapshots.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - pydantic needs it at runtime

from pydantic import BaseModel, ConfigDict, Field

from game.logic.enums import ACTIVE_STATUSES, GameStatus, RoundPhase, Team
from game.logic.settings import GameSettings


class GamePlayer(BaseModel):
    """
    Per-game snapshot of a player.

    Holds a copy of the display name and avatar taken at join time rather
    than a reference into the identity registry, so completed games stay
    readable after the identity is deleted.
    """

    model_config = ConfigDict(frozen=True)

    player_id: str
    name: str
    avatar: str | None = None
    team: Team | None = None
    is_host: bool = False
    join_order: int = 0  # monotonically increasing per game, never reused
    joined_at: datetime


class Round(BaseModel):
    model_config = ConfigDict(frozen=True)

    round_number: int = Field(ge=1)
    tricks_total: int = Field(ge=1)
    phase: RoundPhase = RoundPhase.COLLECTING_BIDS
    bids: dict[str, int] = Field(default_factory=dict)
    tricks: dict[str, int] = Field(default_factory=dict)
    scores: dict[str, int] = Field(default_factory=dict)
    team_scores: dict[Team, int] = Field(default_factory=dict)

    @property
    def is_scored(self) -> bool:
        return self.phase == RoundPhase.SCORED


class Game(BaseModel):
    model_config = ConfigDict(frozen=True)

    game_id: str
    code: str
    title: str
    description: str = ""
    host_id: str
    settings: GameSettings
    status: GameStatus = GameStatus.LOBBY
    players: dict[str, GamePlayer] = Field(default_factory=dict)
    rounds: tuple[Round, ...] = ()
    next_join_order: int = 0
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    last_activity: datetime
    winner_team: Team | None = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def host(self) -> GamePlayer | None:
        return self.players.get(self.host_id)

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def is_full(self) -> bool:
        return self.player_count >= self.settings.max_players

    @property
    def current_round(self) -> Round | None:
        return self.rounds[-1] if self.rounds else None

    @property
    def scored_rounds(self) -> tuple[Round, ...]:
        return tuple(r for r in self.rounds if r.is_scored)

    def team_members(self, team: Team) -> list[GamePlayer]:
        """Return members of a team in join order."""
        return sorted(
            (p for p in self.players.values() if p.team == team),
            key=lambda p: p.join_order,
        )
