# Overview: Raffle tickets and the three-tier prize draw.

"""
Tombola service.

States: open (no winner) -> drawn (three winners) -> reset (no tickets).
A participant is the user who sold/owns the tickets; every participant
enters the draw once, with one of their tickets picked at random, so
holding more tickets does not raise the odds of winning a tier.
"""

from __future__ import annotations

import logging
import random

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import TombolaTicket
from ..models.tombola import PRIZE_TIERS
from ..validation import BusinessRuleError, ValidationError, parse_amount, require_fields
from . import broadcast
from .concurrency import atomic, lock_for_update


logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = len(PRIZE_TIERS)


def create_ticket(data: dict, *, user_id: int) -> TombolaTicket:
    require_fields(data, "first_name", "last_name", "phone", "ticket_number", "price")
    price = parse_amount(data["price"], "price")
    ticket_number = str(data["ticket_number"]).strip()

    if db.session.query(TombolaTicket.id).filter_by(ticket_number=ticket_number).first():
        raise BusinessRuleError("Ce numéro de ticket existe déjà")

    ticket = TombolaTicket(
        ticket_number=ticket_number,
        first_name=str(data["first_name"]).strip(),
        last_name=str(data["last_name"]).strip(),
        phone=str(data["phone"]).strip(),
        price=price,
        user_id=user_id,
    )
    try:
        with atomic():
            db.session.add(ticket)
    except IntegrityError:
        # Lost a race against an identical ticket number
        raise BusinessRuleError("Ce numéro de ticket existe déjà")

    broadcast.emit(broadcast.TOMBOLA_UPDATED)
    return ticket


def list_tickets() -> list[TombolaTicket]:
    return (
        db.session.query(TombolaTicket)
        .order_by(TombolaTicket.purchase_date.desc(), TombolaTicket.id.desc())
        .all()
    )


def get_winners() -> dict:
    winners = dict.fromkeys(PRIZE_TIERS)
    rows = db.session.query(TombolaTicket).filter(TombolaTicket.is_winner.is_(True)).all()
    for ticket in rows:
        if ticket.prize in winners:
            winners[ticket.prize] = ticket.to_dict()
    return winners


def draw_winners(rng: random.Random | None = None) -> dict:
    """
    Assign first, second and third prize to three distinct participants.

    Rejected when a draw already happened or fewer than three participants
    hold tickets; nothing is written in either case.
    """
    rng = rng or random.SystemRandom()

    with atomic():
        if db.session.query(TombolaTicket.id).filter(TombolaTicket.is_winner.is_(True)).first():
            raise BusinessRuleError("Le tirage a déjà été effectué, réinitialisez d'abord les tickets")

        tickets = lock_for_update(
            db.session.query(TombolaTicket)
            .filter(TombolaTicket.is_winner.is_(False))
            .order_by(TombolaTicket.id)
        ).all()

        by_participant: dict[int, list[TombolaTicket]] = {}
        for ticket in tickets:
            by_participant.setdefault(ticket.user_id, []).append(ticket)

        if len(by_participant) < MIN_PARTICIPANTS:
            raise BusinessRuleError(
                f"Il faut au moins {MIN_PARTICIPANTS} participants pour le tirage",
                details={"participants": len(by_participant)},
            )

        candidates = [rng.choice(owned) for owned in by_participant.values()]
        rng.shuffle(candidates)

        for ticket, prize in zip(candidates, PRIZE_TIERS):
            ticket.is_winner = True
            ticket.prize = prize
            logger.info("Tombola %s prize: ticket %s (user %s)", prize, ticket.ticket_number, ticket.user_id)

    broadcast.emit(broadcast.TOMBOLA_UPDATED)
    return get_winners()


def reset_tickets() -> int:
    """Delete every ticket; returns how many were removed."""
    with atomic():
        deleted = db.session.query(TombolaTicket).delete(synchronize_session=False)

    broadcast.emit(broadcast.TOMBOLA_UPDATED)
    return deleted
