# Overview: Flask API routes for the product catalog and restock.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_admin
from ..errors import error_response, internal_error
from ..services import products_service
from ..validation import ServiceError, require_object


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    try:
        return jsonify(products_service.list_products()), 200
    except Exception:
        return internal_error("Failed to list products")


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    try:
        data = require_object(request.get_json(silent=True))
        product = products_service.create_product(data)
        return jsonify(product.to_dict()), 201
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to create product")


@products_bp.put("/<int:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: int):
    try:
        data = require_object(request.get_json(silent=True))
        product = products_service.update_product(product_id, data, user=g.current_user)
        return jsonify(product.to_dict()), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to update product")


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id)
        return jsonify({"message": "Produit supprimé"}), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to delete product")


@products_bp.put("/<int:product_id>/restock")
@require_auth
def restock_route(product_id: int):
    """Body: {"stock": <absolute non-negative integer>}"""
    try:
        data = require_object(request.get_json(silent=True))
        product = products_service.restock(product_id, data.get("stock"), user=g.current_user)
        return jsonify(product.to_dict()), 200
    except ServiceError as exc:
        return error_response(exc)
    except Exception:
        return internal_error("Failed to restock product")
