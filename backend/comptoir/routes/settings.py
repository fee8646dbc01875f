# Overview: Flask API routes for settings, account balances and week rollover.

from dataclasses import asdict

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_admin
from ..errors import error_response, internal_error
from ..services import broadcast
from ..services import settings_service
from ..services import week_service
from ..services.cache import invalidate, REPORTS_PREFIX
from ..validation import ServiceError, require_object


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings_route():
    return jsonify(settings_service.load_settings().to_dict()), 200


@settings_bp.put("")
@require_auth
@require_admin
def update_settings_route():
    """
    Update bonus_percentage, executive_salary, webhook_enabled, webhook_url
    or delivery_status. current_week_id only moves through /new-week.
    """
    try:
        data = require_object(request.get_json(silent=True))
        settings = settings_service.update_settings(data, user_id=g.current_user.id)
        invalidate(REPORTS_PREFIX)
        broadcast.emit(broadcast.SETTINGS_UPDATED)
        return jsonify(settings.to_dict()), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to update settings")


@settings_bp.get("/current-week")
@require_auth
def current_week_route():
    week = week_service.current_week()
    return jsonify({"current_week_id": week.week_id}), 200


@settings_bp.get("/delivery-status")
@require_auth
def get_delivery_status_route():
    return jsonify(asdict(settings_service.load_settings().delivery_status)), 200


@settings_bp.post("/delivery-status")
@require_auth
@require_admin
def set_delivery_status_route():
    try:
        data = require_object(request.get_json(silent=True))
        status = settings_service.set_delivery_status(data, user_id=g.current_user.id)
        broadcast.emit(broadcast.SETTINGS_UPDATED)
        return jsonify({"message": "Statut de livraison mis à jour.", "delivery_status": asdict(status)}), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to update delivery status")


@settings_bp.post("/account-balance")
@require_auth
@require_admin
def set_account_balance_route():
    """Body: {"week": N, "balance": amount}; the balance closes week N."""
    try:
        data = require_object(request.get_json(silent=True))
        week_id, balance = settings_service.set_account_balance(
            data.get("week"), data.get("balance"), user_id=g.current_user.id
        )
        invalidate(REPORTS_PREFIX)
        broadcast.emit(broadcast.SETTINGS_UPDATED)
        return jsonify({"message": "Solde du compte mis à jour.", "week": week_id, "balance": balance}), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to update account balance")


@settings_bp.post("/new-week")
@require_auth
@require_admin
def new_week_route():
    try:
        result = week_service.start_new_week(user_id=g.current_user.id)
        return jsonify(result), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to start a new week")
