"""
Weekly financial summary and report tests.
"""

import pytest

from comptoir.extensions import db
from comptoir.models import Expense
from comptoir.services.reporting_service import (
    calculate_tax,
    daily_sales_for_employee,
    employee_performance,
    estimate_salary,
    financial_summary,
    leaderboard,
    menu_sales,
    weekly_sales_summary,
)
from comptoir.services.sales_service import record_sale
from comptoir.services.settings_service import AppSettings, repository
from comptoir.services.week_service import WeekContext
from conftest import make_user


WEEK = WeekContext(week_id=3)


def _expense(user, amount, category, week_id=3):
    db.session.add(Expense(week_id=week_id, amount=amount, category=category, added_by_user_id=user.id))
    db.session.commit()


def _sell(user, product, quantity, *, price=None, cost=None, week=WEEK, employee_ids=None):
    line = {"product_id": product.id, "quantity": quantity}
    if price is not None:
        line["price"] = price
    if cost is not None:
        line["cost"] = cost
    return record_sale(cart=[line], caller=user, week=week, employee_ids=employee_ids)


# =============================================================================
# PROGRESSIVE TAX
# =============================================================================


class TestCalculateTax:

    @pytest.mark.parametrize("base,expected", [
        (-500, 0),
        (0, 0),
        (9999.99, 0),
        (10000, 0),
        (10001, 0.1),
        (50000, 4000),
        (100000, 4000 + 9500),
        (250000, 4000 + 9500 + 42000),
        (500000, 4000 + 9500 + 42000 + 90000),
        (600000, 4000 + 9500 + 42000 + 90000 + 46000),
    ])
    def test_brackets(self, base, expected):
        assert calculate_tax(base) == pytest.approx(expected)

    def test_non_decreasing(self):
        previous = 0.0
        for base in range(0, 700001, 2500):
            tax = calculate_tax(base)
            assert tax >= previous
            previous = tax


# =============================================================================
# FINANCIAL SUMMARY
# =============================================================================


class TestFinancialSummary:

    def test_empty_week(self):
        summary = financial_summary(WEEK)
        assert summary["week_id"] == 3
        assert summary["total_revenue"] == 0
        assert summary["tax_payable"] == 0
        assert summary["expenses_breakdown"] == {}
        assert summary["live_balance"] == 0

    def test_totals(self, admin, employee, burger):
        burger.stock = 10000
        db.session.commit()
        _sell(employee, burger, 6000, price=10, cost=4)
        _sell(employee, burger, 100, price=10, cost=4, week=WeekContext(2))
        _expense(admin, 5000, "Matières Premières")
        _expense(admin, 1000, "Frais Véhicule")
        _expense(admin, 2000, "Salaires")
        _expense(admin, 750, "Salaires", week_id=4)

        repository.set_account_balance(2, 1500.0)
        db.session.commit()

        summary = financial_summary(WEEK, AppSettings(bonus_percentage=0.1))

        assert summary["starting_balance"] == 1500.0
        assert summary["total_revenue"] == pytest.approx(60000)
        assert summary["total_cost_of_goods"] == pytest.approx(24000)
        assert summary["gross_margin"] == pytest.approx(36000)
        assert summary["total_expenses"] == pytest.approx(8000)
        assert summary["tax_deductible"] == pytest.approx(6000)
        assert summary["expenses_breakdown"] == {
            "Frais Véhicule": 1000.0,
            "Matières Premières": 5000.0,
            "Salaires": 2000.0,
        }
        # Taxable base 54000: 4000 in the 10% bracket, 4000 at 19%
        assert summary["tax_payable"] == pytest.approx(4000 + 760)
        assert summary["net_margin"] == pytest.approx(28000)
        assert summary["total_bonus"] == pytest.approx(3600)
        assert summary["live_balance"] == pytest.approx(1500 + 28000 - 4760)

    def test_balance_is_read_from_previous_week(self):
        repository.set_account_balance(3, 999.0)
        db.session.commit()
        assert financial_summary(WEEK)["starting_balance"] == 0.0
        assert financial_summary(WeekContext(4))["starting_balance"] == 999.0


# =============================================================================
# STAFF REPORTS
# =============================================================================


class TestStaffReports:

    def test_estimate_salary(self, db_session):
        settings = AppSettings(executive_salary=20000)
        boss = make_user("boss", grade="Co-Patronne")
        capped = make_user("capped")
        capped.salary_percentage_of_margin = 0.5
        capped.max_salary = 100
        uncapped = make_user("uncapped")
        uncapped.max_salary = 100
        uncapped.allow_max_salary_exceed = True

        assert estimate_salary(boss, 5, settings) == 20000
        assert estimate_salary(capped, 1000, settings) == 100
        assert estimate_salary(capped, 120, settings) == 60
        assert estimate_salary(capped, -50, settings) == 0
        assert estimate_salary(uncapped, 1000, settings) == 500

    def test_employee_performance(self, employee, other_employee, burger):
        burger.stock = 100
        db.session.commit()
        _sell(employee, burger, 3, price=10, cost=4)
        _sell(other_employee, burger, 1, price=10, cost=4)

        rows = employee_performance(WEEK, AppSettings(bonus_percentage=0.5))
        assert [row["employee_name"] for row in rows] == ["alice", "bob"]
        assert rows[0]["total_revenue"] == pytest.approx(30)
        assert rows[0]["total_margin"] == pytest.approx(18)
        assert rows[0]["estimated_bonus"] == pytest.approx(9)
        assert rows[0]["estimated_salary"] == pytest.approx(9)

    def test_leaderboard(self, employee, other_employee, burger):
        burger.stock = 100
        db.session.commit()
        _sell(employee, burger, 1)
        _sell(other_employee, burger, 4)

        board = leaderboard(WEEK, limit=1)
        assert board == [{"employee_id": other_employee.id, "employee_name": "bob", "total_revenue": 40.0}]

    def test_daily_sales_for_employee(self, employee, burger):
        _sell(employee, burger, 2)
        days = daily_sales_for_employee(WEEK, employee.id)
        assert len(days) == 1
        assert days[0]["name"] in ("Dim", "Lun", "Mar", "Mer", "Jeu", "Ven", "Sam")
        assert days[0]["sales"] == pytest.approx(20)

    def test_weekly_sales_summary(self, employee, other_employee, burger):
        _sell(employee, burger, 1)
        _sell(other_employee, burger, 2)

        report = weekly_sales_summary(WEEK)
        assert sorted(report["employees"]) == ["alice", "bob"]
        assert len(report["chart_data"]) == 1
        day = report["chart_data"][0]
        assert day["alice"] == pytest.approx(10)
        assert day["bob"] == pytest.approx(20)

    def test_menu_sales(self, employee, menu, burger):
        _sell(employee, menu, 2)
        _sell(employee, menu, 1)
        _sell(employee, burger, 1)

        rows = menu_sales(WEEK)
        assert rows == [{
            "menu_name": "Menu Classique",
            "count": 2,
            "quantity": 3,
            "revenue": 60.0,
            "cost": 24.0,
            "margin": 36.0,
        }]
