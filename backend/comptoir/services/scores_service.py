# Overview: Best-score bookkeeping and leaderboards for the hidden mini-games.

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import GameScore, User
from ..models.games import GAME_TYPES
from ..validation import ValidationError, parse_int
from . import broadcast


DEFAULT_LEADERBOARD_LIMIT = 10
MAX_LEADERBOARD_LIMIT = 50


@dataclass
class ScoreOutcome:
    score: GameScore
    is_new_record: bool
    is_rejected: bool
    previous_score: int | None

    @property
    def message(self) -> str:
        if self.is_rejected:
            return (
                f"Score non enregistré. Votre meilleur score reste "
                f"{self.score.score} points."
            )
        if self.previous_score is not None:
            return f"Nouveau record ! {self.score.score} points (précédent: {self.previous_score})"
        return f"Premier score enregistré : {self.score.score} points !"

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "is_new_record": self.is_new_record,
            "is_score_rejected": self.is_rejected,
            "score": self.score.to_dict(),
            "previous_score": self.previous_score,
        }


def validate_game_type(game_type: str) -> str:
    if game_type not in GAME_TYPES:
        raise ValidationError(
            f"game_type must be one of: {', '.join(GAME_TYPES)}",
            details={"allowed": list(GAME_TYPES)},
        )
    return game_type


def submit_score(data: dict, *, user: User) -> ScoreOutcome:
    """Keep only the best score per (user, game type)."""
    game_type = validate_game_type(data.get("game_type"))
    score = parse_int(data.get("score"), "score", minimum=0)
    level = parse_int(data.get("level"), "level", minimum=1)
    duration = parse_int(data.get("duration"), "duration", minimum=0)
    game_data = data.get("game_data") or {}
    if not isinstance(game_data, dict):
        raise ValidationError("game_data must be an object")

    existing = db.session.query(GameScore).filter_by(user_id=user.id, game_type=game_type).first()

    if existing is not None and score <= existing.score:
        return ScoreOutcome(score=existing, is_new_record=False, is_rejected=True, previous_score=None)

    previous = None
    if existing is None:
        existing = GameScore(user_id=user.id, username=user.username, game_type=game_type)
        db.session.add(existing)
    else:
        previous = existing.score

    existing.score = score
    existing.level = level
    existing.duration = duration
    existing.game_data = game_data
    db.session.commit()

    broadcast.emit(broadcast.SCORES_UPDATED)
    return ScoreOutcome(score=existing, is_new_record=True, is_rejected=False, previous_score=previous)


def leaderboard(game_type: str, limit=None) -> list[dict]:
    validate_game_type(game_type)
    if limit in (None, ""):
        limit = DEFAULT_LEADERBOARD_LIMIT
    limit = parse_int(limit, "limit", minimum=1)
    if limit > MAX_LEADERBOARD_LIMIT:
        raise ValidationError(f"limit must be <= {MAX_LEADERBOARD_LIMIT}")

    rows = (
        db.session.query(GameScore)
        .filter_by(game_type=game_type)
        .order_by(GameScore.score.desc(), GameScore.updated_at.asc(), GameScore.id.asc())
        .limit(limit)
        .all()
    )
    return [dict(row.to_dict(), rank=index) for index, row in enumerate(rows, start=1)]


def my_scores(user_id: int) -> list[GameScore]:
    return db.session.query(GameScore).filter_by(user_id=user_id).order_by(GameScore.game_type).all()
