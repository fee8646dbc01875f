# Overview: Weekly financial aggregation, progressive tax and sales reports.

from __future__ import annotations

from collections import OrderedDict
from typing import TYPE_CHECKING

from sqlalchemy import func

from comptoir.extensions import db
from comptoir.models import Expense, Transaction, TransactionLine, User
from comptoir.models.auth import EXECUTIVE_GRADES
from comptoir.services.settings_service import AppSettings, repository
from comptoir.time_utils import day_name, weekday_index

if TYPE_CHECKING:
    from comptoir.services.week_service import WeekContext


# (upper bound of the bracket, marginal rate)
TAX_BRACKETS = (
    (10000, 0.0),
    (50000, 0.10),
    (100000, 0.19),
    (250000, 0.28),
    (500000, 0.36),
    (float("inf"), 0.46),
)

DEDUCTIBLE_CATEGORIES = ("Matières Premières", "Frais Véhicule", "Frais Avocat")

MENU_CATEGORY = "Menus"
LEADERBOARD_SIZE = 5


def calculate_tax(taxable_base: float) -> float:
    """
    Progressive tax on taxable_base.

    Each rate applies only to the slice of the base inside its bracket;
    a base at or below the first cutoff owes nothing.
    """
    if taxable_base <= TAX_BRACKETS[0][0]:
        return 0.0

    tax = 0.0
    remaining = taxable_base
    previous_limit = 0.0
    for limit, rate in TAX_BRACKETS:
        if remaining <= 0:
            break
        in_bracket = min(remaining, limit - previous_limit)
        tax += in_bracket * rate
        remaining -= in_bracket
        previous_limit = limit
    return tax


def financial_summary(week: WeekContext, settings: AppSettings | None = None) -> dict:
    if settings is None:
        settings = repository.load()

    sales = db.session.query(
        func.coalesce(func.sum(Transaction.total_amount), 0.0).label("revenue"),
        func.coalesce(func.sum(Transaction.total_cost), 0.0).label("cost"),
    ).filter(Transaction.week_id == week.week_id).one()

    expense_rows = (
        db.session.query(Expense.category, func.sum(Expense.amount))
        .filter(Expense.week_id == week.week_id)
        .group_by(Expense.category)
        .order_by(Expense.category)
        .all()
    )
    expenses_breakdown = {category: float(total or 0) for category, total in expense_rows}

    total_expenses = 0.0
    tax_deductible = 0.0
    for category, total in expenses_breakdown.items():
        total_expenses += total
        if category in DEDUCTIBLE_CATEGORIES:
            tax_deductible += total

    total_revenue = float(sales.revenue or 0)
    total_cost_of_goods = float(sales.cost or 0)
    starting_balance = repository.get_account_balance(week.previous_week_id)

    gross_margin = total_revenue - total_cost_of_goods
    tax_payable = calculate_tax(total_revenue - tax_deductible)
    net_margin = gross_margin - total_expenses

    return {
        "week_id": week.week_id,
        "starting_balance": starting_balance,
        "total_revenue": total_revenue,
        "total_cost_of_goods": total_cost_of_goods,
        "total_expenses": total_expenses,
        "tax_deductible": tax_deductible,
        "expenses_breakdown": expenses_breakdown,
        "gross_margin": gross_margin,
        "tax_payable": tax_payable,
        "net_margin": net_margin,
        "total_bonus": gross_margin * settings.bonus_percentage,
        "live_balance": starting_balance + net_margin - tax_payable,
    }


def estimate_salary(user: User, margin: float, settings: AppSettings) -> float:
    """
    Executives draw the fixed weekly salary; everyone else earns a share of
    their margin, capped at max_salary unless the cap may be exceeded.
    """
    if user.grade in EXECUTIVE_GRADES:
        return settings.executive_salary

    salary = max(margin, 0.0) * (user.salary_percentage_of_margin or 0.0)
    if user.max_salary is not None and not user.allow_max_salary_exceed:
        salary = min(salary, user.max_salary)
    return salary


def employee_performance(week: WeekContext, settings: AppSettings | None = None) -> list[dict]:
    if settings is None:
        settings = repository.load()

    rows = (
        db.session.query(
            User,
            func.sum(Transaction.total_amount).label("revenue"),
            func.sum(Transaction.margin).label("margin"),
        )
        .join(Transaction, Transaction.employee_id == User.id)
        .filter(Transaction.week_id == week.week_id)
        .group_by(User.id)
        .order_by(func.sum(Transaction.total_amount).desc())
        .all()
    )

    report = []
    for user, revenue, margin in rows:
        margin = float(margin or 0)
        report.append({
            "employee_id": user.id,
            "employee_name": user.username,
            "grade": user.grade,
            "total_revenue": float(revenue or 0),
            "total_margin": margin,
            "estimated_bonus": margin * settings.bonus_percentage,
            "estimated_salary": estimate_salary(user, margin, settings),
        })
    return report


def daily_sales_for_employee(week: WeekContext, employee_id: int) -> list[dict]:
    """Caller's revenue per weekday, Sunday first, only days with sales."""
    rows = (
        db.session.query(Transaction.created_at, Transaction.total_amount)
        .filter(Transaction.week_id == week.week_id, Transaction.employee_id == employee_id)
        .all()
    )

    totals: dict[int, float] = {}
    for created_at, amount in rows:
        day = weekday_index(created_at)
        totals[day] = totals.get(day, 0.0) + amount

    return [{"name": day_name(day, short=True), "sales": totals[day]} for day in sorted(totals)]


def leaderboard(week: WeekContext, limit: int = LEADERBOARD_SIZE) -> list[dict]:
    revenue = func.sum(Transaction.total_amount)
    rows = (
        db.session.query(User.id, User.username, revenue.label("revenue"))
        .join(Transaction, Transaction.employee_id == User.id)
        .filter(Transaction.week_id == week.week_id)
        .group_by(User.id, User.username)
        .order_by(revenue.desc())
        .limit(limit)
        .all()
    )
    return [
        {"employee_id": row.id, "employee_name": row.username, "total_revenue": float(row.revenue or 0)}
        for row in rows
    ]


def weekly_sales_summary(week: WeekContext) -> dict:
    """
    Chart data: one entry per weekday with a revenue column per employee.

    {"chart_data": [{"name": "Lundi", "alice": 120.0, ...}], "employees": [...]}
    """
    rows = (
        db.session.query(Transaction.created_at, Transaction.total_amount, User.username)
        .join(User, User.id == Transaction.employee_id)
        .filter(Transaction.week_id == week.week_id)
        .all()
    )

    by_day: dict[int, dict] = {}
    employees: OrderedDict[str, None] = OrderedDict()
    for created_at, amount, username in rows:
        day = weekday_index(created_at)
        entry = by_day.setdefault(day, {"name": day_name(day)})
        entry[username] = entry.get(username, 0.0) + amount
        employees[username] = None

    return {
        "chart_data": [by_day[day] for day in sorted(by_day)],
        "employees": list(employees),
    }


def menu_sales(week: WeekContext) -> list[dict]:
    """Per menu: how many sale lines, units, revenue, cost and margin."""
    revenue = func.sum(TransactionLine.quantity * TransactionLine.price_at_sale)
    cost = func.sum(TransactionLine.quantity * TransactionLine.cost_at_sale)
    count = func.count(TransactionLine.id)

    rows = (
        db.session.query(
            TransactionLine.name,
            count.label("line_count"),
            func.sum(TransactionLine.quantity).label("quantity"),
            revenue.label("revenue"),
            cost.label("cost"),
        )
        .join(Transaction, Transaction.id == TransactionLine.transaction_id)
        .filter(Transaction.week_id == week.week_id, TransactionLine.category == MENU_CATEGORY)
        .group_by(TransactionLine.name)
        .order_by(count.desc(), TransactionLine.name)
        .all()
    )

    report = []
    for row in rows:
        row_revenue = float(row.revenue or 0)
        row_cost = float(row.cost or 0)
        report.append({
            "menu_name": row.name,
            "count": int(row.line_count),
            "quantity": int(row.quantity or 0),
            "revenue": row_revenue,
            "cost": row_cost,
            "margin": row_revenue - row_cost,
        })
    return report
