# Overview: Flask API routes for recording and reviewing sales.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_admin
from ..errors import error_response, internal_error
from ..services import sales_service
from ..services.week_service import current_week, resolve_week
from ..validation import ServiceError, parse_week_arg, require_object


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("")
@require_auth
def create_transaction_route():
    """
    Record a sale.

    Body: {"cart": [{"product_id", "quantity", "price"?, "cost"?}],
           "employee_ids": [...]?}

    A non-empty employee_ids makes it a corporate sale split across those
    employees; otherwise the caller gets the whole sale.
    """
    try:
        data = require_object(request.get_json(silent=True))
        result = sales_service.record_sale(
            cart=data.get("cart"),
            caller=g.current_user,
            week=current_week(),
            employee_ids=data.get("employee_ids"),
        )
        return jsonify({
            "message": result.message,
            "sale_group": result.sale_group,
            "sale_type": result.sale_type,
            "transactions": [t.to_dict() for t in result.transactions],
        }), 201
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to record transaction")


@transactions_bp.get("/me")
@require_auth
def my_transactions_route():
    try:
        return jsonify(sales_service.list_my_transactions(g.current_user.id, current_week())), 200
    except Exception:
        return internal_error("Failed to list transactions")


@transactions_bp.get("")
@require_auth
@require_admin
def week_transactions_route():
    try:
        week = resolve_week(parse_week_arg(request.args.get("week")))
        return jsonify(sales_service.list_week_transactions(week)), 200
    except Exception:
        return internal_error("Failed to list transactions")


@transactions_bp.delete("/<int:transaction_id>")
@require_auth
@require_admin
def delete_transaction_route(transaction_id: int):
    try:
        sales_service.delete_transaction(transaction_id)
        return jsonify({"message": "Transaction supprimée"}), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to delete transaction")
