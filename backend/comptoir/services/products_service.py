# backend/comptoir/services/products_service.py
"""
Products Service

Catalog CRUD and restock. Stock is only ever set to an absolute value
here; sales take it down through sales_service.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product, User
from ..models.catalog import PRODUCT_CATEGORIES
from ..validation import NotFoundError, ValidationError, parse_amount, parse_int, require_fields
from . import broadcast
from .cache import cache, invalidate, PRODUCTS_PREFIX
from .settings_service import repository as settings_repository
from .webhook_service import notify_stock_update

PRODUCT_MUTABLE_FIELDS = {"name", "category", "price", "corporate_price", "cost", "stock"}
PRODUCTS_LIST_KEY = f"{PRODUCTS_PREFIX}all"


def _clean_payload(data: dict, *, partial: bool) -> dict:
    unknown = set(data) - PRODUCT_MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown product fields: {', '.join(sorted(unknown))}")
    if not partial:
        require_fields(data, "name", "category", "price", "cost")

    clean: dict = {}
    if "name" in data:
        name = data["name"]
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name must be a non-empty string")
        clean["name"] = name.strip()
    if "category" in data:
        if data["category"] not in PRODUCT_CATEGORIES:
            raise ValidationError(
                f"category must be one of: {', '.join(PRODUCT_CATEGORIES)}",
                details={"allowed": list(PRODUCT_CATEGORIES)},
            )
        clean["category"] = data["category"]
    if "price" in data:
        clean["price"] = parse_amount(data["price"], "price")
    if "cost" in data:
        clean["cost"] = parse_amount(data["cost"], "cost")
    if "corporate_price" in data:
        value = data["corporate_price"]
        clean["corporate_price"] = None if value in (None, "") else parse_amount(value, "corporate_price")
    if "stock" in data:
        clean["stock"] = parse_int(data["stock"], "stock", minimum=0)
    return clean


def _get(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Produit non trouvé")
    return product


def _changed() -> None:
    invalidate(PRODUCTS_PREFIX)
    broadcast.emit(broadcast.PRODUCTS_UPDATED)


def list_products() -> list[dict]:
    def build():
        rows = db.session.query(Product).order_by(Product.category.asc(), Product.name.asc()).all()
        return [row.to_dict() for row in rows]

    return cache.get_or_set(PRODUCTS_LIST_KEY, build)


def create_product(data: dict) -> Product:
    clean = _clean_payload(data, partial=False)
    clean.setdefault("stock", 0)
    product = Product(**clean)
    db.session.add(product)
    db.session.commit()
    _changed()
    return product


def update_product(product_id: int, data: dict, *, user: User) -> Product:
    product = _get(product_id)
    clean = _clean_payload(data, partial=True)
    if not clean:
        raise ValidationError("No product fields to update")

    old_stock = product.stock
    for key, value in clean.items():
        setattr(product, key, value)
    db.session.commit()

    if "stock" in clean and clean["stock"] != old_stock:
        notify_stock_update(
            settings_repository.load(),
            item_type="product",
            item_name=product.name,
            old_stock=old_stock,
            new_stock=product.stock,
            username=user.username,
        )
    _changed()
    return product


def delete_product(product_id: int) -> None:
    product = _get(product_id)
    db.session.delete(product)
    db.session.commit()
    _changed()


def restock(product_id: int, stock, *, user: User) -> Product:
    """Set stock to an absolute, non-negative value."""
    new_stock = parse_int(stock, "stock", minimum=0)
    product = _get(product_id)

    old_stock = product.stock
    product.stock = new_stock
    db.session.commit()

    notify_stock_update(
        settings_repository.load(),
        item_type="product",
        item_name=product.name,
        old_stock=old_stock,
        new_stock=new_stock,
        username=user.username,
    )
    _changed()
    return product
