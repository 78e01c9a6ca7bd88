# Overview: Flask API routes for the read-only dashboards and analytics.

"""
Dashboard Routes

- /api/dashboard/admin*     VIEW_ANALYTICS
- /api/dashboard/warehouse  VIEW_WAREHOUSE_DASHBOARD
- /api/dashboard/staff      VIEW_STAFF_DASHBOARD
- /api/dashboard/customer   SHOP
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import handle_service_errors, require_auth, require_permission
from ..request_args import date_range_args, int_arg
from ..services import reporting_service
from ..validation import ValidationError


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


def _period_arg() -> str:
    period = request.args.get("period", "monthly")
    if period not in reporting_service.PERIODS:
        raise ValidationError({"period": ["The selected period is invalid."]})
    return period


@dashboard_bp.get("/admin")
@require_auth
@require_permission("VIEW_ANALYTICS")
@handle_service_errors("load admin dashboard")
def admin_dashboard_route():
    """Query parameters: start_date, end_date (default last 30 days), payment_method_id."""
    start, end = date_range_args()
    return jsonify(reporting_service.admin_dashboard(start, end, int_arg("payment_method_id")))


@dashboard_bp.get("/admin/income-analytics")
@require_auth
@require_permission("VIEW_ANALYTICS")
@handle_service_errors("load income analytics")
def income_analytics_route():
    start, end = date_range_args()
    return jsonify(reporting_service.income_analytics(_period_arg(), start, end))


@dashboard_bp.get("/admin/product-history")
@require_auth
@require_permission("VIEW_ANALYTICS")
@handle_service_errors("load product order history")
def product_history_route():
    start, end = date_range_args()
    return jsonify(reporting_service.product_order_history(
        _period_arg(),
        start,
        end,
        product_id=int_arg("product_id"),
        category_id=int_arg("category_id"),
    ))


@dashboard_bp.get("/admin/category-analytics")
@require_auth
@require_permission("VIEW_ANALYTICS")
@handle_service_errors("load category analytics")
def category_analytics_route():
    start, end = date_range_args()
    return jsonify(reporting_service.category_analytics(start, end))


@dashboard_bp.get("/admin/summary")
@require_auth
@require_permission("VIEW_ANALYTICS")
@handle_service_errors("load dashboard summary")
def dashboard_summary_route():
    start, end = date_range_args()
    return jsonify(reporting_service.dashboard_summary(start, end))


@dashboard_bp.get("/warehouse")
@require_auth
@require_permission("VIEW_WAREHOUSE_DASHBOARD")
def warehouse_dashboard_route():
    return jsonify(reporting_service.warehouse_dashboard())


@dashboard_bp.get("/staff")
@require_auth
@require_permission("VIEW_STAFF_DASHBOARD")
def staff_dashboard_route():
    return jsonify(reporting_service.staff_overview(g.current_user.id))


@dashboard_bp.get("/customer")
@require_auth
@require_permission("SHOP")
def customer_dashboard_route():
    return jsonify(reporting_service.customer_dashboard(g.current_user.id))
