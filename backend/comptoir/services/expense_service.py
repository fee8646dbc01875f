# Overview: Weekly expenses and the employee expense-note approval workflow.

"""
Expense service.

Expenses are admin-entered ledger lines in a week. Expense notes are
employee reimbursement requests: pending -> approved (posts a
"Frais Véhicule" expense in the current week) or pending -> rejected.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Expense, ExpenseNote, User
from ..models.ledger import (
    EXPENSE_NOTE_APPROVED,
    EXPENSE_NOTE_PENDING,
    EXPENSE_NOTE_REJECTED,
    EXPENSE_NOTE_STATUSES,
)
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import (
    AuthorizationError,
    BusinessRuleError,
    NotFoundError,
    ValidationError,
    parse_amount,
    require_fields,
)
from . import broadcast
from .cache import invalidate, REPORTS_PREFIX
from .concurrency import atomic, lock_for_update
from .week_service import WeekContext


NOTE_EXPENSE_CATEGORY = "Frais Véhicule"
DEFAULT_REJECTION_REASON = "Non spécifié"


def _parse_date(value, field: str):
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 date")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date")


# --- Expenses -------------------------------------------------------------

def create_expense(data: dict, *, week: WeekContext, user_id: int) -> Expense:
    require_fields(data, "amount", "category")
    category = data["category"]
    if not isinstance(category, str) or not category.strip():
        raise ValidationError("category must be a non-empty string")

    expense = Expense(
        week_id=week.week_id,
        amount=parse_amount(data["amount"], "amount"),
        category=category.strip(),
        description=data.get("description") or None,
        date=_parse_date(data.get("date"), "date") or utcnow(),
        added_by_user_id=user_id,
    )
    db.session.add(expense)
    db.session.commit()

    invalidate(REPORTS_PREFIX)
    broadcast.emit(broadcast.EXPENSES_UPDATED)
    return expense


def list_expenses(week: WeekContext) -> list[Expense]:
    return (
        db.session.query(Expense)
        .filter_by(week_id=week.week_id)
        .order_by(Expense.date.desc(), Expense.id.desc())
        .all()
    )


def delete_expense(expense_id: int) -> None:
    expense = db.session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError("Dépense non trouvée")

    with atomic():
        # Detach any approved note still pointing at this expense
        db.session.query(ExpenseNote).filter_by(expense_id=expense_id).update(
            {"expense_id": None}, synchronize_session=False
        )
        db.session.delete(expense)

    invalidate(REPORTS_PREFIX)
    broadcast.emit(broadcast.EXPENSES_UPDATED)


# --- Expense notes ----------------------------------------------------------

def create_note(data: dict, *, employee_id: int) -> ExpenseNote:
    require_fields(data, "first_name", "last_name", "date", "image_url", "amount")
    note = ExpenseNote(
        employee_id=employee_id,
        first_name=str(data["first_name"]).strip(),
        last_name=str(data["last_name"]).strip(),
        date=_parse_date(data["date"], "date"),
        image_url=str(data["image_url"]).strip(),
        amount=parse_amount(data["amount"], "amount"),
        status=EXPENSE_NOTE_PENDING,
    )
    db.session.add(note)
    db.session.commit()

    broadcast.emit(broadcast.EXPENSE_NOTES_UPDATED)
    return note


def list_my_notes(employee_id: int) -> list[ExpenseNote]:
    return (
        db.session.query(ExpenseNote)
        .filter_by(employee_id=employee_id)
        .order_by(ExpenseNote.created_at.desc(), ExpenseNote.id.desc())
        .all()
    )


def list_notes(status: str | None = None) -> list[ExpenseNote]:
    query = db.session.query(ExpenseNote)
    if status:
        if status not in EXPENSE_NOTE_STATUSES:
            raise ValidationError(
                f"status must be one of: {', '.join(EXPENSE_NOTE_STATUSES)}",
                details={"allowed": list(EXPENSE_NOTE_STATUSES)},
            )
        query = query.filter_by(status=status)
    return query.order_by(ExpenseNote.created_at.desc(), ExpenseNote.id.desc()).all()


def _pending_note(note_id: int) -> ExpenseNote:
    note = lock_for_update(db.session.query(ExpenseNote).filter_by(id=note_id)).first()
    if note is None:
        raise NotFoundError("Note de frais non trouvée.")
    if note.status != EXPENSE_NOTE_PENDING:
        raise BusinessRuleError("Cette note de frais a déjà été traitée.")
    return note


def approve_note(note_id: int, *, reviewer_id: int, week: WeekContext) -> tuple[ExpenseNote, Expense]:
    """Approve a pending note and post its amount as an expense, atomically."""
    with atomic():
        note = _pending_note(note_id)
        expense = Expense(
            week_id=week.week_id,
            amount=note.amount,
            category=NOTE_EXPENSE_CATEGORY,
            description=f"Note de frais - {note.first_name} {note.last_name}",
            date=note.date,
            added_by_user_id=reviewer_id,
        )
        db.session.add(expense)
        db.session.flush()

        note.status = EXPENSE_NOTE_APPROVED
        note.reviewed_by_user_id = reviewer_id
        note.reviewed_at = utcnow()
        note.expense_id = expense.id

    invalidate(REPORTS_PREFIX)
    broadcast.emit(broadcast.EXPENSE_NOTES_UPDATED, broadcast.EXPENSES_UPDATED)
    return note, expense


def reject_note(note_id: int, *, reviewer_id: int, reason: str | None = None) -> ExpenseNote:
    with atomic():
        note = _pending_note(note_id)
        note.status = EXPENSE_NOTE_REJECTED
        note.reviewed_by_user_id = reviewer_id
        note.reviewed_at = utcnow()
        note.rejection_reason = (reason or "").strip() or DEFAULT_REJECTION_REASON

    broadcast.emit(broadcast.EXPENSE_NOTES_UPDATED)
    return note


def delete_note(note_id: int, *, caller: User) -> None:
    """
    Owners may delete their own pending notes; admins may delete any note.
    Deleting an approved note also removes the expense it posted.
    """
    note = db.session.get(ExpenseNote, note_id)
    if note is None:
        raise NotFoundError("Note de frais non trouvée.")

    is_owner = note.employee_id == caller.id
    if not is_owner and not caller.is_admin:
        raise AuthorizationError("Vous n'avez pas la permission de supprimer cette note de frais.")
    if not caller.is_admin and note.status != EXPENSE_NOTE_PENDING:
        raise BusinessRuleError("Seules les notes de frais en attente peuvent être supprimées.")

    removed_expense = False
    with atomic():
        if note.status == EXPENSE_NOTE_APPROVED and note.expense_id is not None:
            expense = db.session.get(Expense, note.expense_id)
            if expense is not None:
                db.session.delete(expense)
                removed_expense = True
        db.session.delete(note)

    if removed_expense:
        invalidate(REPORTS_PREFIX)
        broadcast.emit(broadcast.EXPENSE_NOTES_UPDATED, broadcast.EXPENSES_UPDATED)
    else:
        broadcast.emit(broadcast.EXPENSE_NOTES_UPDATED)
