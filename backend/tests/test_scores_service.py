"""
Mini-game score tests.
"""

import pytest

from comptoir.services import scores_service
from comptoir.validation import ValidationError
from conftest import make_user


def _submit(user, score, game_type="snake-game", level=1, duration=30):
    return scores_service.submit_score(
        {"game_type": game_type, "score": score, "level": level, "duration": duration},
        user=user,
    )


class TestSubmitScore:

    def test_first_score(self, employee):
        outcome = _submit(employee, 120)
        assert outcome.is_new_record
        assert not outcome.is_rejected
        assert outcome.previous_score is None
        assert outcome.score.username == "alice"

    def test_higher_score_replaces(self, employee):
        _submit(employee, 120)
        outcome = _submit(employee, 300, level=4)

        assert outcome.is_new_record
        assert outcome.previous_score == 120
        assert outcome.score.score == 300
        assert outcome.score.level == 4
        assert len(scores_service.my_scores(employee.id)) == 1

    @pytest.mark.parametrize("score", [120, 90, 0])
    def test_lower_or_equal_score_rejected(self, employee, score):
        _submit(employee, 120)
        outcome = _submit(employee, score)

        assert outcome.is_rejected
        assert not outcome.is_new_record
        assert outcome.score.score == 120
        assert outcome.to_dict()["is_score_rejected"] is True

    def test_best_is_per_game(self, employee):
        _submit(employee, 50, game_type="tetris")
        outcome = _submit(employee, 10, game_type="flappy-bird")
        assert outcome.is_new_record
        assert [s.game_type for s in scores_service.my_scores(employee.id)] == ["flappy-bird", "tetris"]

    @pytest.mark.parametrize("overrides", [
        {"game_type": "pong"},
        {"score": -1},
        {"level": 0},
        {"duration": -5},
        {"score": 1.5},
    ])
    def test_invalid(self, employee, overrides):
        data = {"game_type": "snake-game", "score": 10, "level": 1, "duration": 0}
        data.update(overrides)
        with pytest.raises(ValidationError):
            scores_service.submit_score(data, user=employee)


class TestLeaderboard:

    def test_ranked_by_score(self, db_session):
        for name, score in [("ana", 40), ("ben", 90), ("cid", 65)]:
            _submit(make_user(name), score)

        board = scores_service.leaderboard("snake-game")
        assert [(row["rank"], row["username"], row["score"]) for row in board] == [
            (1, "ben", 90),
            (2, "cid", 65),
            (3, "ana", 40),
        ]

    def test_limit(self, db_session):
        for i in range(4):
            _submit(make_user(f"player{i}"), i * 10)

        assert len(scores_service.leaderboard("snake-game", "2")) == 2
        with pytest.raises(ValidationError):
            scores_service.leaderboard("snake-game", 51)
        with pytest.raises(ValidationError):
            scores_service.leaderboard("snake-game", 0)

    def test_unknown_game(self):
        with pytest.raises(ValidationError):
            scores_service.leaderboard("minesweeper")
