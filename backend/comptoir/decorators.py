# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service


AUTH_HEADER = "x-auth-token"


def require_auth(f):
    """
    Require a live session token in the x-auth-token header.

    Sets g.current_user and g.session_context.

    - No header -> 401
    - Header that is not a 64-char hex token -> 400
    - Unknown, expired or revoked token, or deactivated user -> 401
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = (request.headers.get(AUTH_HEADER) or "").strip()

        if not token:
            return jsonify({"error": "Authentication required"}), 401

        if not session_service.is_well_formed(token):
            return jsonify({"error": "Malformed authentication token"}), 400

        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context
        g.auth_token = token

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Admin gate; stack under @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = getattr(g, "current_user", None)
        if user is None:
            return jsonify({"error": "Authentication required"}), 401

        if not user.is_admin:
            return jsonify({"error": "Accès refusé, administrateur requis"}), 403

        return f(*args, **kwargs)

    return decorated_function
