# Overview: Flask API routes for staff administration and invitation codes.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_admin
from ..errors import error_response, internal_error
from ..services import auth_service
from ..validation import ServiceError, require_object


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.post("/generate-code")
@require_auth
@require_admin
def generate_code_route():
    try:
        code = auth_service.generate_invitation_code(created_by_user_id=g.current_user.id)
        return jsonify({"invitation_code": code}), 201
    except Exception:
        return internal_error("Failed to generate invitation code")


@users_bp.get("")
@require_auth
@require_admin
def list_users_route():
    users = auth_service.list_users()
    return jsonify([user.to_dict() for user in users]), 200


@users_bp.put("/<int:user_id>/status")
@require_auth
@require_admin
def toggle_status_route(user_id: int):
    try:
        user = auth_service.toggle_user_status(user_id)
        return jsonify({
            "message": f"Le statut de l'utilisateur {user.username} a été mis à jour.",
            "user": user.to_dict(),
        }), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to toggle user status")


@users_bp.put("/<int:user_id>")
@require_auth
@require_admin
def update_user_route(user_id: int):
    """Update role, grade and salary parameters."""
    try:
        data = require_object(request.get_json(silent=True))
        user = auth_service.update_user(user_id, data, actor=g.current_user)
        return jsonify({"user": user.to_dict()}), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to update user")
