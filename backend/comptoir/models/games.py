from __future__ import annotations

from ..extensions import db
from comptoir.time_utils import to_utc_z


GAME_TYPES = ("snake-game", "flappy-bird", "tetris")


class GameScore(db.Model):
    """Best score of one user for one hidden mini-game."""
    __tablename__ = "game_scores"
    __table_args__ = (
        db.UniqueConstraint("user_id", "game_type", name="uq_game_scores_user_game"),
        db.Index("ix_game_scores_game_score", "game_type", "score"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    username = db.Column(db.String(64), nullable=False)
    game_type = db.Column(db.String(32), nullable=False)

    score = db.Column(db.Integer, nullable=False)
    level = db.Column(db.Integer, nullable=False, default=1)
    duration = db.Column(db.Integer, nullable=False, default=0)
    game_data = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "username": self.username,
            "game_type": self.game_type,
            "score": self.score,
            "level": self.level,
            "duration": self.duration,
            "game_data": self.game_data or {},
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
