# Overview: Flask API routes for cash-on-delivery handling and delivery staff lookups.

"""
Cash Handling API Routes

Cash moves deliveryman -> accounts in four steps: collect at the door,
submit to a named accounts employee, then receive or reject on the
accounts side. A rejected submission can be submitted again.
"""

from flask import Blueprint, g, request

from ..decorators import api_operation, require_auth, require_employee
from ..responses import json_body, order_payload
from ..services import cash_service, employee_service, reporting_service


cash_bp = Blueprint("cash", __name__, url_prefix="/api/employee")


def _staff_entry(user) -> dict:
    return {
        "id": user.id,
        "name": user.full_name,
        "email": user.email,
        "phone": user.phone,
    }


# =============================================================================
# DELIVERYMAN SIDE
# =============================================================================

@cash_bp.post("/orders/<int:order_id>/cash/collect")
@require_auth
@require_employee
@api_operation("Cash collected")
def collect_cash_route(order_id: int):
    """
    Record cash collected at the door.

    Request body: {"amount": 49.99, "notes": "..."}
    """
    data = json_body()
    order = cash_service.collect_cash(order_id, g.employee, data.get("amount"), data.get("notes"))
    return {"order": order_payload(order)}


@cash_bp.post("/orders/<int:order_id>/cash/submit")
@require_auth
@require_employee
@api_operation("Cash submitted")
def submit_cash_route(order_id: int):
    """Request body: {"accounts_employee_id": 7, "notes": "..."}"""
    data = json_body()
    order = cash_service.submit_cash_to_accounts(
        order_id,
        g.employee,
        data.get("accounts_employee_id"),
        data.get("notes"),
    )
    return {
        "message": f"Cash submitted to {order.assigned_accounts_employee_name}",
        "order": order_payload(order),
    }


# =============================================================================
# ACCOUNTS SIDE
# =============================================================================

@cash_bp.post("/orders/<int:order_id>/cash/receive")
@require_auth
@require_employee
@api_operation("Cash received")
def receive_cash_route(order_id: int):
    data = json_body()
    order = cash_service.receive_payment_from_deliveryman(order_id, g.employee, data.get("notes"))
    return {"order": order_payload(order)}


@cash_bp.post("/orders/<int:order_id>/cash/reject")
@require_auth
@require_employee
@api_operation("Cash submission rejected")
def reject_cash_route(order_id: int):
    """Request body: {"reason": "Amount short by 10.00"}"""
    data = json_body()
    order = cash_service.reject_cash_submission(order_id, g.employee, data.get("reason"))
    return {"order": order_payload(order)}


# =============================================================================
# STAFF LOOKUPS / STATS
# =============================================================================

@cash_bp.get("/deliverymen")
@require_auth
@require_employee
@api_operation("Deliverymen loaded")
def list_deliverymen_route():
    employee_service.authorize(g.employee, "LIST_DELIVERYMEN")
    users = employee_service.get_active_deliverymen()
    return {"deliverymen": [_staff_entry(u) for u in users]}


@cash_bp.get("/accounts-employees")
@require_auth
@require_employee
@api_operation("Accounts employees loaded")
def list_accounts_employees_route():
    employee_service.authorize(g.employee, "LIST_ACCOUNTS_EMPLOYEES")
    users = employee_service.get_active_accounts_employees()
    return {"accounts_employees": [_staff_entry(u) for u in users]}


@cash_bp.get("/deliveries/stats")
@require_auth
@require_employee
@api_operation("Delivery stats loaded")
def delivery_stats_route():
    """
    Delivery tab counts and outstanding cash.

    Query params: tab (assigned|delivering|delivered|collections) to also
    return that tab's orders.
    """
    payload = {"stats": reporting_service.get_delivery_stats(g.employee)}

    tab = request.args.get("tab")
    if tab:
        orders = reporting_service.get_orders_for_employee(g.employee)
        payload["orders"] = [
            order_payload(o) for o in reporting_service.filter_delivery_tab(orders, tab)
        ]
    return payload
