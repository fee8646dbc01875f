# Overview: Flask API routes for weekly expenses (admin only).

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_admin
from ..errors import error_response, internal_error
from ..services import expense_service
from ..services.week_service import current_week, resolve_week
from ..validation import ServiceError, parse_week_arg, require_object


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.post("")
@require_auth
@require_admin
def create_expense_route():
    try:
        data = require_object(request.get_json(silent=True))
        expense = expense_service.create_expense(data, week=current_week(), user_id=g.current_user.id)
        return jsonify(expense.to_dict()), 201
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to create expense")


@expenses_bp.get("")
@require_auth
@require_admin
def list_expenses_route():
    try:
        week = resolve_week(parse_week_arg(request.args.get("week")))
        return jsonify([e.to_dict() for e in expense_service.list_expenses(week)]), 200
    except Exception:
        return internal_error("Failed to list expenses")


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_admin
def delete_expense_route(expense_id: int):
    try:
        expense_service.delete_expense(expense_id)
        return jsonify({"message": "Dépense supprimée avec succès"}), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to delete expense")
