# Overview: Flask API routes for the accounts desk; read-only payment views.

from flask import Blueprint, g

from ..decorators import api_operation, require_auth, require_employee
from ..responses import order_payload
from ..services import reporting_service


accounts_bp = Blueprint("accounts", __name__, url_prefix="/api/accounts")


@accounts_bp.get("/orders")
@require_auth
@require_employee
@api_operation("Accounts orders loaded")
def accounts_orders_route():
    """
    Orders the accounts desk reconciles. buckets holds the order ids for
    online (paid through the processor), cash_pending (awaiting receipt) and
    cash_received.
    """
    orders = reporting_service.get_orders_for_accounts(g.employee)
    buckets = reporting_service.split_accounts_orders(orders)
    return {
        "orders": [order_payload(o) for o in orders],
        "buckets": {name: [o.id for o in items] for name, items in buckets.items()},
    }


@accounts_bp.get("/stats")
@require_auth
@require_employee
@api_operation("Payment stats loaded")
def accounts_stats_route():
    return {"stats": reporting_service.get_accounts_payment_stats(g.employee)}
