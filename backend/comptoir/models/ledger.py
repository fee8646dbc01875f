from __future__ import annotations

from ..extensions import db
from comptoir.time_utils import to_utc_z


SALE_TYPE_RETAIL = "particulier"
SALE_TYPE_CORPORATE = "entreprise"


class Transaction(db.Model):
    """
    One employee's share of a recorded sale.

    A sale split across N employees produces N rows sharing sale_group and
    identical line snapshots; each row carries 1/N of the totals.
    Rows are never updated, only deleted.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_week_employee", "week_id", "employee_id"),
        db.Index("ix_transactions_week_created", "week_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    week_id = db.Column(db.Integer, nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    sale_group = db.Column(db.String(36), nullable=False, index=True)
    sale_type = db.Column(db.String(16), nullable=False, default=SALE_TYPE_RETAIL)

    total_amount = db.Column(db.Float, nullable=False)
    total_cost = db.Column(db.Float, nullable=False)
    margin = db.Column(db.Float, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    employee = db.relationship("User")
    lines = db.relationship(
        "TransactionLine",
        backref="transaction",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="TransactionLine.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "week_id": self.week_id,
            "employee_id": self.employee_id,
            "employee_name": self.employee.username if self.employee else None,
            "sale_group": self.sale_group,
            "sale_type": self.sale_type,
            "products": [line.to_dict() for line in self.lines],
            "total_amount": self.total_amount,
            "total_cost": self.total_cost,
            "margin": self.margin,
            "created_at": to_utc_z(self.created_at),
        }


class TransactionLine(db.Model):
    """Line snapshot: price and cost are frozen at sale time."""
    __tablename__ = "transaction_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    # No FK: products may be deleted while history remains
    product_id = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(255), nullable=True)
    category = db.Column(db.String(32), nullable=True, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    free_quantity = db.Column(db.Integer, nullable=False, default=0)
    price_at_sale = db.Column(db.Float, nullable=False)
    cost_at_sale = db.Column(db.Float, nullable=False)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "category": self.category,
            "quantity": self.quantity,
            "free_quantity": self.free_quantity,
            "price_at_sale": self.price_at_sale,
            "cost_at_sale": self.cost_at_sale,
        }


class Expense(db.Model):
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_week_category", "week_id", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    week_id = db.Column(db.Integer, nullable=False, index=True)
    amount = db.Column(db.Float, nullable=False)
    category = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text, nullable=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    added_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "week_id": self.week_id,
            "amount": self.amount,
            "category": self.category,
            "description": self.description,
            "date": to_utc_z(self.date),
            "added_by_user_id": self.added_by_user_id,
        }


EXPENSE_NOTE_PENDING = "pending"
EXPENSE_NOTE_APPROVED = "approved"
EXPENSE_NOTE_REJECTED = "rejected"
EXPENSE_NOTE_STATUSES = (EXPENSE_NOTE_PENDING, EXPENSE_NOTE_APPROVED, EXPENSE_NOTE_REJECTED)


class ExpenseNote(db.Model):
    """
    Employee reimbursement request.

    Approval posts an Expense in the current week and links it here so
    deleting an approved note can remove exactly that expense.
    """
    __tablename__ = "expense_notes"
    __table_args__ = (
        db.Index("ix_expense_notes_employee_created", "employee_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False)
    image_url = db.Column(db.String(1024), nullable=False)
    amount = db.Column(db.Float, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=EXPENSE_NOTE_PENDING, index=True)
    reviewed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejection_reason = db.Column(db.String(255), nullable=True)
    expense_id = db.Column(db.Integer, db.ForeignKey("expenses.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    employee = db.relationship("User", foreign_keys=[employee_id])
    reviewer = db.relationship("User", foreign_keys=[reviewed_by_user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "employee_name": self.employee.username if self.employee else None,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "date": to_utc_z(self.date),
            "image_url": self.image_url,
            "amount": self.amount,
            "status": self.status,
            "reviewed_by": self.reviewer.username if self.reviewer else None,
            "reviewed_at": to_utc_z(self.reviewed_at) if self.reviewed_at else None,
            "rejection_reason": self.rejection_reason,
            "expense_id": self.expense_id,
            "created_at": to_utc_z(self.created_at),
        }
