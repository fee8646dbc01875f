# Overview: Flask API routes for mini-game scores and leaderboards.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..errors import error_response, internal_error
from ..services import scores_service
from ..validation import ServiceError, require_object


scores_bp = Blueprint("scores", __name__, url_prefix="/api/scores")


@scores_bp.post("")
@require_auth
def submit_score_route():
    try:
        data = require_object(request.get_json(silent=True))
        outcome = scores_service.submit_score(data, user=g.current_user)
        return jsonify(outcome.to_dict()), 200 if outcome.is_rejected else 201
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to save score")


@scores_bp.get("/leaderboard/<game_type>")
@require_auth
def leaderboard_route(game_type: str):
    try:
        rows = scores_service.leaderboard(game_type, request.args.get("limit"))
        return jsonify({"game_type": game_type, "leaderboard": rows, "total": len(rows)}), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to build leaderboard")


@scores_bp.get("/me")
@require_auth
def my_scores_route():
    scores = scores_service.my_scores(g.current_user.id)
    return jsonify([score.to_dict() for score in scores]), 200
