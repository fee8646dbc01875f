from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_admin
from ..errors import internal_error
from ..services import reporting_service
from ..services.cache import cache, REPORTS_PREFIX
from ..services.settings_service import load_settings
from ..services.week_service import current_week, resolve_week
from ..validation import parse_week_arg


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _requested_week():
    settings = load_settings()
    return resolve_week(parse_week_arg(request.args.get("week")), settings), settings


@reports_bp.get("/financial-summary")
@require_auth
@require_admin
def financial_summary_report():
    try:
        week, settings = _requested_week()
        report = cache.get_or_set(
            f"{REPORTS_PREFIX}financial-summary:{week.week_id}",
            lambda: reporting_service.financial_summary(week, settings),
        )
        return jsonify(report), 200
    except Exception:
        return internal_error("Failed to build financial summary")


@reports_bp.get("/employee-performance")
@require_auth
@require_admin
def employee_performance_report():
    try:
        week, settings = _requested_week()
        report = cache.get_or_set(
            f"{REPORTS_PREFIX}employee-performance:{week.week_id}",
            lambda: reporting_service.employee_performance(week, settings),
        )
        return jsonify(report), 200
    except Exception:
        return internal_error("Failed to build employee performance report")


@reports_bp.get("/daily-sales/me")
@require_auth
def daily_sales_report():
    try:
        return jsonify(reporting_service.daily_sales_for_employee(current_week(), g.current_user.id)), 200
    except Exception:
        return internal_error("Failed to build daily sales report")


@reports_bp.get("/leaderboard")
@require_auth
def leaderboard_report():
    try:
        return jsonify(reporting_service.leaderboard(current_week())), 200
    except Exception:
        return internal_error("Failed to build leaderboard")


@reports_bp.get("/weekly-sales-summary")
@require_auth
@require_admin
def weekly_sales_summary_report():
    try:
        week, _ = _requested_week()
        return jsonify(reporting_service.weekly_sales_summary(week)), 200
    except Exception:
        return internal_error("Failed to build weekly sales summary")


@reports_bp.get("/menu-sales")
@require_auth
@require_admin
def menu_sales_report():
    try:
        week, _ = _requested_week()
        return jsonify(reporting_service.menu_sales(week)), 200
    except Exception:
        return internal_error("Failed to build menu sales report")
