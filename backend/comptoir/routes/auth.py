# Overview: Flask API routes for authentication; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..errors import error_response, internal_error
from ..services import auth_service
from ..services import session_service
from ..validation import ServiceError, require_object


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """Create an employee account with a one-time invitation code."""
    try:
        data = require_object(request.get_json(silent=True))
        user = auth_service.register_with_invitation(data)
        return jsonify({
            "message": "Compte créé avec succès ! Vous pouvez maintenant vous connecter.",
            "user": user.to_dict(),
        }), 201
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to register user")


@auth_bp.post("/login")
def login_route():
    """Returns user info and a session token for the x-auth-token header."""
    try:
        data = require_object(request.get_json(silent=True))
        username = data.get("username")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username and password required"}), 400

        user = auth_service.authenticate(username, password)
        if not user:
            return jsonify({"error": "Identifiants incorrects."}), 401

        session, token = session_service.create_session(user)
        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to login user")


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.auth_token)
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        return internal_error("Failed to logout user")


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200
