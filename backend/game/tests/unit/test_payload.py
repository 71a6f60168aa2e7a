"""Tests for the JSON shapes the web client renders."""

from datetime import timedelta

from game.logic.game import apply_bid, apply_tricks
from game.messaging.payload import (
    active_game_summary,
    admin_game_summary,
    game_payload,
    profile_payload,
    to_millis,
)
from game.players import PlayerProfile
from game.tests.conftest import (
    SCENARIO_BIDS,
    SCENARIO_SCORES,
    SCENARIO_TRICKS,
    T0,
    create_game,
    create_started_game,
    make_settings,
)

GAME_KEYS = {
    "id", "code", "title", "description", "hostId", "hostName", "status", "phase",
    "createdAt", "startedAt", "completedAt", "lastActivity",
    "currentRound", "totalRounds", "targetScore", "maxPlayers", "trickSchedule", "duration",
    "players", "rounds", "scores", "finalScores", "teamFinalScores", "winnerTeam",
}  # fmt: skip


def _completed_game(minutes_played: float = 42.5):
    game = create_started_game(4, settings=make_settings(target_rounds=1))
    finished_at = game.started_at + timedelta(minutes=minutes_played)
    for player_id, bid in SCENARIO_BIDS.items():
        game = apply_bid(game, player_id, bid, finished_at)
    return apply_tricks(game, SCENARIO_TRICKS, finished_at)


def test_to_millis():
    assert to_millis(None) is None
    assert to_millis(T0) == 1752001200000


class TestGamePayload:
    def test_lobby_game(self):
        payload = game_payload(create_game(2))

        assert set(payload) == GAME_KEYS
        assert payload["status"] == "lobby"
        assert payload["phase"] is None
        assert payload["hostName"] == "Alex"
        assert payload["currentRound"] == 0
        assert payload["totalRounds"] == 13
        assert payload["duration"] is None
        assert payload["rounds"] == []
        assert payload["scores"] == {"red": 0, "blue": 0}
        assert payload["winnerTeam"] is None
        assert payload["players"]["p1"] == {
            "id": "p1",
            "name": "Blair",
            "team": "blue",
            "avatar": None,
            "isHost": False,
            "joinedAt": to_millis(T0 + timedelta(seconds=1)),
        }

    def test_in_progress_game(self):
        game = apply_bid(create_started_game(4), "p0", 3, T0)
        payload = game_payload(game)

        assert payload["status"] == "in_progress"
        assert payload["phase"] == "collecting_bids"
        assert payload["currentRound"] == 1
        assert payload["rounds"][0]["bids"] == {"p0": 3}
        assert payload["rounds"][0]["tricksThisRound"] == 10

    def test_completed_game(self):
        payload = game_payload(_completed_game())

        assert payload["status"] == "completed"
        assert payload["duration"] == 42
        assert payload["winnerTeam"] == "blue"
        assert payload["finalScores"] == SCENARIO_SCORES
        assert payload["teamFinalScores"] == {"red": -10, "blue": 31}
        assert payload["scores"] == payload["teamFinalScores"]
        assert payload["rounds"] == [
            {
                "roundNumber": 1,
                "phase": "scored",
                "tricksThisRound": 10,
                "bids": SCENARIO_BIDS,
                "tricks": SCENARIO_TRICKS,
                "scores": SCENARIO_SCORES,
                "teamScores": {"red": -10, "blue": 31},
            },
        ]

    def test_final_scores_match_round_sums(self):
        payload = game_payload(_completed_game())

        for player_id, total in payload["finalScores"].items():
            assert total == sum(r["scores"][player_id] for r in payload["rounds"])
        for team, total in payload["teamFinalScores"].items():
            assert total == sum(r["teamScores"][team] for r in payload["rounds"])

    def test_score_target_game_reports_rounds_played(self):
        game = create_started_game(4, settings=make_settings(target_score=500))
        for player_id, bid in SCENARIO_BIDS.items():
            game = apply_bid(game, player_id, bid, T0)
        game = apply_tricks(game, SCENARIO_TRICKS, T0)

        payload = game_payload(game)
        assert payload["totalRounds"] == 1
        assert payload["targetScore"] == 500
        assert payload["currentRound"] == 2


class TestSummaries:
    def test_active_game_summary(self):
        summary = active_game_summary(create_started_game(4), "p2")

        assert summary == {
            "gameId": "game01",
            "gameCode": "ABCDE",
            "title": "Alex's Game",
            "status": "in_progress",
            "currentRound": 1,
            "totalRounds": 13,
            "playerCount": 4,
            "playerId": "p2",
        }

    def test_admin_game_summary(self):
        summary = admin_game_summary(create_game(3))

        assert summary["host"] == "Alex"
        assert summary["players"] == 3
        assert summary["status"] == "lobby"
        assert summary["createdAt"] == to_millis(T0)

    def test_profile_payload(self):
        profile = PlayerProfile(player_id="abc", name="Alex", created_at=T0, last_seen=T0, login_count=2)

        assert profile_payload(profile) == {
            "id": "abc",
            "name": "Alex",
            "avatar": None,
            "createdAt": to_millis(T0),
            "lastSeen": to_millis(T0),
            "loginCount": 2,
        }
