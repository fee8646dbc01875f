# Overview: Sale Splitter; turns a cart into per-employee transactions with stock decrement.

"""
Sales service.

record_sale is the only way a sale enters the ledger. One cart becomes one
Transaction per target employee, each carrying 1/N of revenue, cost and
margin, with identical line snapshots and a shared sale_group.

Retail sales (no employee list) decrement stock, including the free bundle
units; corporate sales (explicit employee list) leave stock alone. Stock
is taken with a conditional UPDATE (stock >= requested) so a concurrent
sale can never drive it negative; a lost race aborts the whole sale.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from sqlalchemy import update

from ..extensions import db
from ..models import Product, Transaction, TransactionLine, User
from ..models.ledger import SALE_TYPE_CORPORATE, SALE_TYPE_RETAIL
from ..validation import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
    parse_amount,
    parse_int,
)
from . import broadcast
from .cache import cache, invalidate, PRODUCTS_PREFIX, REPORTS_PREFIX, TRANSACTIONS_PREFIX
from .concurrency import atomic
from .week_service import WeekContext
from .webhook_service import notify_sale


@dataclass(frozen=True)
class SalePolicy:
    """Bundle bonus and stock rules applied by record_sale."""
    bundle_category: str = "Menus"
    bundle_size: int = 5
    corporate_skips_stock: bool = True

    def free_units(self, category: str | None, quantity: int) -> int:
        if self.bundle_size <= 0 or category != self.bundle_category:
            return 0
        return quantity // self.bundle_size


DEFAULT_POLICY = SalePolicy()


@dataclass
class CartItem:
    product_id: int
    quantity: int
    price: float | None = None
    cost: float | None = None


@dataclass
class SaleResult:
    sale_group: str
    sale_type: str
    employee_ids: list[int]
    total_amount: float
    total_cost: float
    margin: float
    transactions: list[Transaction] = field(default_factory=list)
    stock_moved: bool = False

    @property
    def employee_count(self) -> int:
        return len(self.employee_ids)

    @property
    def message(self) -> str:
        return (
            f"Transaction de {self.total_amount:.2f}$ répartie entre "
            f"{self.employee_count} employé(s) !"
        )


def parse_cart(raw_cart) -> list[CartItem]:
    if not isinstance(raw_cart, list) or not raw_cart:
        raise ValidationError("cart must be a non-empty list")

    items = []
    for index, raw in enumerate(raw_cart):
        if not isinstance(raw, dict):
            raise ValidationError(f"cart[{index}] must be an object")
        items.append(CartItem(
            product_id=parse_int(raw.get("product_id"), f"cart[{index}].product_id", minimum=1),
            quantity=parse_int(raw.get("quantity"), f"cart[{index}].quantity", minimum=1),
            price=parse_amount(raw["price"], f"cart[{index}].price") if raw.get("price") is not None else None,
            cost=parse_amount(raw["cost"], f"cart[{index}].cost") if raw.get("cost") is not None else None,
        ))
    return items


def _resolve_employees(caller: User, employee_ids) -> list[int]:
    if not employee_ids:
        return [caller.id]

    if not isinstance(employee_ids, list):
        raise ValidationError("employee_ids must be a list")

    ids = [parse_int(value, "employee_ids", minimum=1) for value in employee_ids]
    if len(set(ids)) != len(ids):
        raise ValidationError("employee_ids contains duplicates")

    found = {
        user_id for (user_id,) in db.session.query(User.id).filter(User.id.in_(ids)).all()
    }
    missing = [user_id for user_id in ids if user_id not in found]
    if missing:
        raise NotFoundError("Employee not found", details={"employee_ids": missing})
    return ids


def _take_stock(product: Product, quantity: int) -> None:
    """Decrement stock only if enough remains; raise otherwise."""
    result = db.session.execute(
        update(Product)
        .where(Product.id == product.id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InsufficientStockError(
            f"Stock insuffisant pour : {product.name}",
            details={"product_id": product.id, "requested_quantity": quantity},
        )


def record_sale(
    *,
    cart,
    caller: User,
    week: WeekContext,
    employee_ids=None,
    policy: SalePolicy = DEFAULT_POLICY,
) -> SaleResult:
    """
    Record one sale, split evenly across the target employees.

    cart: list of {product_id, quantity, price?, cost?}. price and cost are
    unit values; when omitted the product's current values are used (the
    corporate price for corporate sales when the product has one).

    Raises ValidationError / NotFoundError / InsufficientStockError; nothing
    is written when any of them is raised.
    """
    items = parse_cart(cart)
    targets = _resolve_employees(caller, employee_ids)
    is_corporate = bool(employee_ids)
    decrement_stock = not (is_corporate and policy.corporate_skips_stock)

    product_ids = {item.product_id for item in items}
    products = {
        product.id: product
        for product in db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    }
    unknown = sorted(product_ids - set(products))
    if unknown:
        raise NotFoundError(f"Produit inconnu: {unknown[0]}", details={"product_ids": unknown})

    total_amount = 0.0
    total_cost = 0.0
    line_snapshots = []
    required: dict[int, int] = {}

    for item in items:
        product = products[item.product_id]
        free = policy.free_units(product.category, item.quantity)

        if item.price is not None:
            price = item.price
        elif is_corporate and product.corporate_price is not None:
            price = product.corporate_price
        else:
            price = product.price
        cost = item.cost if item.cost is not None else product.cost

        total_amount += price * item.quantity
        total_cost += cost * item.quantity
        required[product.id] = required.get(product.id, 0) + item.quantity + free

        line_snapshots.append({
            "product_id": product.id,
            "name": product.name,
            "category": product.category,
            "quantity": item.quantity,
            "free_quantity": free,
            "price_at_sale": price,
            "cost_at_sale": cost,
        })

    if decrement_stock:
        shortfalls = [
            {"product_id": pid, "name": products[pid].name, "requested_quantity": qty, "stock": products[pid].stock}
            for pid, qty in required.items()
            if products[pid].stock < qty
        ]
        if shortfalls:
            raise InsufficientStockError(
                f"Stock insuffisant pour : {shortfalls[0]['name']}",
                details={"items": shortfalls},
            )

    total_margin = total_amount - total_cost
    employee_count = len(targets)
    result = SaleResult(
        sale_group=str(uuid.uuid4()),
        sale_type=SALE_TYPE_CORPORATE if is_corporate else SALE_TYPE_RETAIL,
        employee_ids=targets,
        total_amount=total_amount,
        total_cost=total_cost,
        margin=total_margin,
        stock_moved=decrement_stock,
    )

    with atomic():
        if decrement_stock:
            for pid, qty in required.items():
                _take_stock(products[pid], qty)

        for employee_id in targets:
            transaction = Transaction(
                week_id=week.week_id,
                employee_id=employee_id,
                sale_group=result.sale_group,
                sale_type=result.sale_type,
                # Plain division: N shares may not sum back to the exact total
                total_amount=total_amount / employee_count,
                total_cost=total_cost / employee_count,
                margin=total_margin / employee_count,
            )
            transaction.lines = [TransactionLine(**snapshot) for snapshot in line_snapshots]
            db.session.add(transaction)
            result.transactions.append(transaction)

    if decrement_stock:
        invalidate(PRODUCTS_PREFIX, TRANSACTIONS_PREFIX, REPORTS_PREFIX)
        broadcast.emit(broadcast.TRANSACTIONS_UPDATED, broadcast.PRODUCTS_UPDATED)
    else:
        invalidate(TRANSACTIONS_PREFIX, REPORTS_PREFIX)
        broadcast.emit(broadcast.TRANSACTIONS_UPDATED)

    notify_sale(
        seller_name=caller.username,
        lines=line_snapshots,
        total_amount=total_amount,
        total_margin=total_margin,
        employee_count=employee_count,
    )
    return result


def list_my_transactions(employee_id: int, week: WeekContext) -> list[dict]:
    key = f"{TRANSACTIONS_PREFIX}me:{employee_id}:{week.week_id}"

    def build():
        rows = (
            db.session.query(Transaction)
            .filter_by(employee_id=employee_id, week_id=week.week_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .all()
        )
        return [row.to_dict() for row in rows]

    return cache.get_or_set(key, build)


def list_week_transactions(week: WeekContext) -> list[dict]:
    key = f"{TRANSACTIONS_PREFIX}week:{week.week_id}"

    def build():
        rows = (
            db.session.query(Transaction)
            .filter_by(week_id=week.week_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .all()
        )
        return [row.to_dict() for row in rows]

    return cache.get_or_set(key, build)


def delete_transaction(transaction_id: int) -> None:
    """Remove one employee's share. Stock is not restored."""
    transaction = db.session.get(Transaction, transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction non trouvée")

    with atomic():
        db.session.delete(transaction)

    invalidate(TRANSACTIONS_PREFIX, REPORTS_PREFIX)
    broadcast.emit(broadcast.TRANSACTIONS_UPDATED)
