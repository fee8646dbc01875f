from __future__ import annotations

from ..extensions import db
from comptoir.time_utils import to_utc_z


PRIZE_TIERS = ("first", "second", "third")


class TombolaTicket(db.Model):
    """
    Raffle ticket.

    Participants are identified by the owning user, not by the name on the
    ticket: one user may hold many tickets but wins at most one tier per draw.
    """
    __tablename__ = "tombola_tickets"
    __table_args__ = (
        db.Index("ix_tombola_tickets_winner_prize", "is_winner", "prize"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ticket_number = db.Column(db.String(64), nullable=False, unique=True, index=True)
    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    price = db.Column(db.Float, nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    is_winner = db.Column(db.Boolean, nullable=False, default=False)
    prize = db.Column(db.String(8), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ticket_number": self.ticket_number,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "price": self.price,
            "user_id": self.user_id,
            "purchase_date": to_utc_z(self.purchase_date),
            "is_winner": self.is_winner,
            "prize": self.prize,
        }
