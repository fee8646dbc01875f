# Overview: Week context resolution and the weekly rollover.

"""
Week service.

The business runs in numbered weeks. The current week lives in the
current_week_id setting; every sale, expense and report is scoped to a
week through an explicit WeekContext instead of a global lookup.

start_new_week closes week N: it computes N's summary, notifies the
weekly webhook, posts the fixed executive salaries into N+1 and moves the
counter to N+1. Salaries and the counter commit together.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import Expense, User
from ..models.auth import EXECUTIVE_GRADES
from . import broadcast
from .cache import invalidate, REPORTS_PREFIX, TRANSACTIONS_PREFIX
from .concurrency import atomic
from .reporting_service import financial_summary
from .settings_service import AppSettings, repository
from .webhook_service import notify_week_closed


SALARY_CATEGORY = "Salaires"


@dataclass(frozen=True)
class WeekContext:
    week_id: int

    @property
    def previous_week_id(self) -> int:
        return self.week_id - 1

    @property
    def next_week_id(self) -> int:
        return self.week_id + 1


def current_week(settings: AppSettings | None = None) -> WeekContext:
    if settings is None:
        settings = repository.load()
    return WeekContext(week_id=settings.current_week_id)


def resolve_week(requested: int | None, settings: AppSettings | None = None) -> WeekContext:
    """Use the requested week when given, else the current one."""
    if requested is not None:
        return WeekContext(week_id=requested)
    return current_week(settings)


def ensure_current_week(*, user_id: int | None = None) -> AppSettings:
    """Load settings, creating current_week_id=1 on first use. Does not commit."""
    settings = repository.load()
    if not repository.has("current_week_id"):
        settings.current_week_id = 1
        repository.save(settings, only=("current_week_id",), user_id=user_id)
    return settings


def start_new_week(*, user_id: int | None = None) -> dict:
    """
    Close the current week and open the next one.

    Not idempotent: two calls close two weeks and post two rounds of
    salaries.
    """
    settings = ensure_current_week(user_id=user_id)
    closing = current_week(settings)
    summary = financial_summary(closing, settings)

    closing_summary = {
        "week_id": closing.week_id,
        "total_revenue": summary["total_revenue"],
        "total_cost_of_goods": summary["total_cost_of_goods"],
        "total_expenses": summary["total_expenses"],
        "net_margin": summary["net_margin"],
    }

    executives = (
        db.session.query(User)
        .filter(User.is_active.is_(True), User.grade.in_(EXECUTIVE_GRADES))
        .order_by(User.id)
        .all()
    )

    with atomic():
        for executive in executives:
            db.session.add(Expense(
                week_id=closing.next_week_id,
                amount=settings.executive_salary,
                category=SALARY_CATEGORY,
                description=f"Salaire {executive.grade} - {executive.username}",
                added_by_user_id=user_id if user_id is not None else executive.id,
            ))
        settings.current_week_id = closing.next_week_id
        repository.save(settings, only=("current_week_id",), user_id=user_id)

    notify_week_closed(week_id=closing.week_id, summary=closing_summary)
    invalidate(REPORTS_PREFIX, TRANSACTIONS_PREFIX)
    broadcast.emit(broadcast.SETTINGS_UPDATED, broadcast.EXPENSES_UPDATED)

    return {
        "message": f"Semaine {closing.week_id} clôturée, semaine {closing.next_week_id} démarrée",
        "new_week_id": closing.next_week_id,
        "closed_week": closing.week_id,
        "salaries_posted": len(executives),
        "summary": closing_summary,
    }
