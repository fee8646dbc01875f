# Overview: Flask API routes for raffle tickets and the prize draw.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_admin
from ..errors import error_response, internal_error
from ..services import tombola_service
from ..validation import ServiceError, require_object


tombola_bp = Blueprint("tombola", __name__, url_prefix="/api/tombola")


@tombola_bp.post("")
@require_auth
def create_ticket_route():
    try:
        data = require_object(request.get_json(silent=True))
        ticket = tombola_service.create_ticket(data, user_id=g.current_user.id)
        return jsonify({"message": "Ticket créé avec succès", "ticket": ticket.to_dict()}), 201
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to create tombola ticket")


@tombola_bp.get("")
@require_auth
@require_admin
def list_tickets_route():
    tickets = tombola_service.list_tickets()
    return jsonify({"tickets": [t.to_dict() for t in tickets]}), 200


@tombola_bp.post("/draw")
@require_auth
@require_admin
def draw_route():
    try:
        winners = tombola_service.draw_winners()
        return jsonify({"message": "Tirage effectué", "winners": winners}), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to draw tombola winners")


@tombola_bp.post("/reset-tickets")
@require_auth
@require_admin
def reset_route():
    try:
        deleted = tombola_service.reset_tickets()
        return jsonify({"message": f"{deleted} tickets supprimés.", "deleted": deleted}), 200
    except Exception:
        return internal_error("Failed to reset tombola tickets")


@tombola_bp.get("/winners")
def winners_route():
    """Public: the winners board is shown on the customer-facing page."""
    return jsonify({"winners": tombola_service.get_winners()}), 200
