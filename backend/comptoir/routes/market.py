# Overview: Flask API routes for the holiday market.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_admin
from ..errors import error_response, internal_error
from ..services import market_service
from ..services.week_service import current_week, resolve_week
from ..validation import ServiceError, parse_week_arg, require_object


market_bp = Blueprint("market", __name__, url_prefix="/api/market")


@market_bp.get("/products")
@require_auth
def list_products_route():
    return jsonify(market_service.list_products()), 200


@market_bp.get("/products/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        return jsonify(market_service.get_product(product_id).to_dict()), 200
    except ServiceError as exc:
        return error_response(exc)


@market_bp.post("/products")
@require_auth
@require_admin
def create_product_route():
    try:
        data = require_object(request.get_json(silent=True))
        product = market_service.create_product(data)
        return jsonify(product.to_dict()), 201
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to create market product")


@market_bp.put("/products/<int:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: int):
    try:
        data = require_object(request.get_json(silent=True))
        product = market_service.update_product(product_id, data)
        return jsonify(product.to_dict()), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to update market product")


@market_bp.delete("/products/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    try:
        market_service.delete_product(product_id)
        return jsonify({"message": "Produit supprimé"}), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to delete market product")


@market_bp.post("/sales")
@require_auth
def create_sale_route():
    """Body: {"items": [{"product_id", "quantity"}]}"""
    try:
        data = require_object(request.get_json(silent=True))
        sale = market_service.create_sale(
            data.get("items"), seller_id=g.current_user.id, week=current_week()
        )
        return jsonify(sale.to_dict()), 201
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to record market sale")


@market_bp.get("/sales")
@require_auth
@require_admin
def list_sales_route():
    requested = parse_week_arg(request.args.get("week"))
    week = resolve_week(requested) if requested is not None else None
    return jsonify([sale.to_dict() for sale in market_service.list_sales(week)]), 200
