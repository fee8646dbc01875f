# Overview: Holiday-market catalog and all-or-nothing market sales.

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import MarketProduct, MarketSale, MarketSaleLine
from ..validation import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
    parse_amount,
    parse_int,
    require_fields,
)
from . import broadcast
from .cache import cache, invalidate, MARKET_PREFIX
from .concurrency import atomic
from .week_service import WeekContext


MARKET_MUTABLE_FIELDS = {"name", "category", "description", "price", "cost", "stock"}
MARKET_LIST_KEY = f"{MARKET_PREFIX}products"


def _clean_payload(data: dict, *, partial: bool) -> dict:
    unknown = set(data) - MARKET_MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown market product fields: {', '.join(sorted(unknown))}")
    if not partial:
        require_fields(data, "name", "category", "price", "cost")

    clean: dict = {}
    for key in ("name", "category"):
        if key in data:
            value = data[key]
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"{key} must be a non-empty string")
            clean[key] = value.strip()
    if "description" in data:
        clean["description"] = str(data["description"] or "")
    if "price" in data:
        clean["price"] = parse_amount(data["price"], "price")
    if "cost" in data:
        clean["cost"] = parse_amount(data["cost"], "cost")
    if "stock" in data:
        clean["stock"] = parse_int(data["stock"], "stock", minimum=0)
    return clean


def _changed() -> None:
    invalidate(MARKET_PREFIX)
    broadcast.emit(broadcast.MARKET_PRODUCTS_UPDATED)


def _get(product_id: int) -> MarketProduct:
    product = db.session.get(MarketProduct, product_id)
    if product is None:
        raise NotFoundError("Produit non trouvé")
    return product


def list_products() -> list[dict]:
    def build():
        rows = db.session.query(MarketProduct).order_by(MarketProduct.category, MarketProduct.name).all()
        return [row.to_dict() for row in rows]

    return cache.get_or_set(MARKET_LIST_KEY, build)


def get_product(product_id: int) -> MarketProduct:
    return _get(product_id)


def create_product(data: dict) -> MarketProduct:
    clean = _clean_payload(data, partial=False)
    clean.setdefault("stock", 0)
    clean.setdefault("description", "")
    product = MarketProduct(**clean)
    db.session.add(product)
    db.session.commit()
    _changed()
    return product


def update_product(product_id: int, data: dict) -> MarketProduct:
    product = _get(product_id)
    clean = _clean_payload(data, partial=True)
    if not clean:
        raise ValidationError("No market product fields to update")
    for key, value in clean.items():
        setattr(product, key, value)
    db.session.commit()
    _changed()
    return product


def delete_product(product_id: int) -> None:
    product = _get(product_id)
    db.session.delete(product)
    db.session.commit()
    _changed()


def create_sale(items, *, seller_id: int, week: WeekContext) -> MarketSale:
    """
    Record a market sale.

    Every item is checked (existence then stock) before anything is
    written; the stock decrements and the sale row commit together.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    requested: list[tuple[int, int]] = []
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        requested.append((
            parse_int(raw.get("product_id"), f"items[{index}].product_id", minimum=1),
            parse_int(raw.get("quantity"), f"items[{index}].quantity", minimum=1),
        ))

    ids = {product_id for product_id, _ in requested}
    products = {p.id: p for p in db.session.query(MarketProduct).filter(MarketProduct.id.in_(ids)).all()}

    totals: dict[int, int] = {}
    for product_id, quantity in requested:
        if product_id not in products:
            raise NotFoundError(f"Produit non trouvé: {product_id}", details={"product_id": product_id})
        totals[product_id] = totals.get(product_id, 0) + quantity

    for product_id, quantity in totals.items():
        product = products[product_id]
        if product.stock < quantity:
            raise InsufficientStockError(
                f"Stock insuffisant pour {product.name}. Stock disponible: {product.stock}",
                details={"product_id": product_id, "requested_quantity": quantity, "stock": product.stock},
            )

    total_amount = sum(products[pid].price * qty for pid, qty in requested)
    total_cost = sum(products[pid].cost * qty for pid, qty in requested)

    with atomic():
        for product_id, quantity in totals.items():
            result = db.session.execute(
                update(MarketProduct)
                .where(MarketProduct.id == product_id, MarketProduct.stock >= quantity)
                .values(stock=MarketProduct.stock - quantity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InsufficientStockError(
                    f"Stock insuffisant pour {products[product_id].name}",
                    details={"product_id": product_id, "requested_quantity": quantity},
                )

        sale = MarketSale(
            seller_id=seller_id,
            week_id=week.week_id,
            total_amount=total_amount,
            total_cost=total_cost,
            margin=total_amount - total_cost,
        )
        sale.lines = [
            MarketSaleLine(
                product_id=pid,
                name=products[pid].name,
                category=products[pid].category,
                quantity=qty,
                price=products[pid].price,
                cost=products[pid].cost,
            )
            for pid, qty in requested
        ]
        db.session.add(sale)

    _changed()
    return sale


def list_sales(week: WeekContext | None = None) -> list[MarketSale]:
    query = db.session.query(MarketSale)
    if week is not None:
        query = query.filter_by(week_id=week.week_id)
    return query.order_by(MarketSale.created_at.desc(), MarketSale.id.desc()).all()
