# Overview: JSON error responses shared by the route modules.

import traceback

from flask import current_app, jsonify

from .validation import ServiceError


def error_response(exc: ServiceError):
    body = {"error": str(exc)}
    if exc.details:
        body["details"] = exc.details
    return jsonify(body), exc.status_code


def internal_error(message: str):
    """
    Log the active exception and return a 500.

    Outside production the traceback is included in the body.
    """
    current_app.logger.exception(message)
    body = {"error": "Internal server error"}
    if current_app.config.get("APP_ENV") != "production":
        body["traceback"] = traceback.format_exc()
    return jsonify(body), 500
