import pytest
from pydantic import ValidationError

from game.logic.enums import TrickSchedule
from game.logic.exceptions import InvalidSettingsError
from game.server.types import (
    ActionRequest,
    CreateGameRequest,
    DeleteGamesRequest,
    EditTricksData,
    GameAction,
    JoinRequest,
    SubmitTricksData,
    TricksData,
)


class TestCreateGameRequest:
    def test_defaults_to_thirteen_rounds(self):
        settings = CreateGameRequest.model_validate({"hostName": "Alex"}).to_settings()

        assert settings.target_rounds == 13
        assert settings.target_score is None
        assert settings.max_players == 4

    def test_camel_case_fields(self):
        req = CreateGameRequest.model_validate(
            {"hostName": "Alex", "totalRounds": 7, "trickSchedule": "progressive", "tricksPerRound": 10},
        )
        settings = req.to_settings()

        assert settings.target_rounds == 7
        assert settings.trick_schedule == TrickSchedule.PROGRESSIVE
        assert settings.tricks_for_round(12) == 10

    def test_score_target(self):
        settings = CreateGameRequest.model_validate({"hostName": "Alex", "targetScore": 300}).to_settings()

        assert settings.target_rounds is None
        assert settings.target_score == 300

    def test_both_targets_rejected(self):
        with pytest.raises(ValidationError, match="either totalRounds or targetScore"):
            CreateGameRequest.model_validate({"hostName": "Alex", "totalRounds": 5, "targetScore": 300})

    def test_presentation_fields_ignored(self):
        req = CreateGameRequest.model_validate({"hostName": "Alex", "gameMode": "teams", "bidTimer": 300})
        assert req.host_name == "Alex"

    @pytest.mark.parametrize("body", [{}, {"hostName": ""}, {"hostName": "Alex", "maxPlayers": 6}])
    def test_invalid_bodies(self, body):
        with pytest.raises(ValidationError):
            CreateGameRequest.model_validate(body)

    def test_rules_rejected_by_game_settings(self):
        # model_construct skips request validation so only GameSettings checks run
        req = CreateGameRequest.model_construct(host_name="Alex", tricks_per_round=20)

        with pytest.raises(InvalidSettingsError, match="Invalid game settings"):
            req.to_settings()


class TestOtherRequests:
    def test_join_accepts_snake_case(self):
        req = JoinRequest.model_validate({"code": "abcde", "player_name": "Blair"})
        assert req.player_name == "Blair"

    def test_join_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            JoinRequest.model_validate({"code": "abcde", "playerName": "Blair", "seat": 2})

    def test_action_request(self):
        req = ActionRequest.model_validate(
            {"gameId": "g1", "playerId": "p1", "action": "submitBid", "data": {"bid": 3}},
        )
        assert req.action == GameAction.SUBMIT_BID
        assert req.data == {"bid": 3}

    def test_unknown_action(self):
        with pytest.raises(ValidationError):
            ActionRequest.model_validate({"gameId": "g1", "playerId": "p1", "action": "shuffleDeck"})

    def test_delete_requires_ids(self):
        with pytest.raises(ValidationError):
            DeleteGamesRequest.model_validate({"gameIds": []})


class TestTrickData:
    @pytest.mark.parametrize("count", ["3", True, 2.0])
    def test_tricks_must_be_plain_integers(self, count):
        with pytest.raises(ValidationError):
            TricksData.model_validate({"tricks": {"p1": count}})

    def test_tricks_accepts_integers(self):
        assert TricksData.model_validate({"tricks": {"p1": 3, "p2": 0}}).tricks == {"p1": 3, "p2": 0}

    def test_submit_tricks_rejects_strings(self):
        with pytest.raises(ValidationError):
            SubmitTricksData.model_validate({"tricks": "4"})

    def test_edit_tricks_camel_case(self):
        edit = EditTricksData.model_validate({"targetPlayerId": "p3", "newTricks": 1})

        assert edit.target_player_id == "p3"
        assert edit.new_tricks == 1

    def test_edit_tricks_requires_target(self):
        with pytest.raises(ValidationError):
            EditTricksData.model_validate({"newTricks": 1})
