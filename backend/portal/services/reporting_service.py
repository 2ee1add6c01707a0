"""
Reporting Service - read-only order views and aggregates

Everything here is recomputed from the orders table on each call and never
writes. Amounts are integer cents.
"""

from __future__ import annotations

from sqlalchemy import and_, or_

from ..errors import ValidationError
from ..models import Order
from ..permissions import EmployeeRole
from .employee_service import EmployeeContext, authorize
from .fulfillment_service import DELIVERY_STATUSES, PRE_CONFIRMATION_STATUSES
from . import order_store


DELIVERY_TABS = ("assigned", "delivering", "delivered", "collections")

# Presentation order for order notes
ROLE_PRIORITY = (
    "callcenter",
    "packer",
    "warehouse",
    "deliveryman",
    "accounts",
    "incharge",
    "admin",
    "system",
)


# =============================================================================
# ROLE-SCOPED ORDER LISTS
# =============================================================================

def get_orders_for_employee(actor: EmployeeContext) -> list[Order]:
    """Orders the employee's role works on."""
    current = authorize(actor, "VIEW_ORDERS")
    role = current.role

    if role == EmployeeRole.CALLCENTER:
        return order_store.fetch_orders(statuses=PRE_CONFIRMATION_STATUSES)
    if role == EmployeeRole.PACKER:
        return order_store.fetch_orders(
            criteria=[
                or_(
                    and_(
                        Order.status.in_(PRE_CONFIRMATION_STATUSES),
                        Order.order_confirmed_at.isnot(None),
                    ),
                    Order.status == "packed",
                )
            ]
        )
    if role == EmployeeRole.WAREHOUSE:
        return order_store.fetch_orders(statuses=("packed", "ready_for_delivery", "failed_delivery"))
    if role == EmployeeRole.DELIVERYMAN:
        return order_store.fetch_orders(
            statuses=DELIVERY_STATUSES,
            assigned_deliveryman_id=current.user_id,
        )
    if role == EmployeeRole.ACCOUNTS:
        return get_orders_for_accounts(current)
    return order_store.fetch_orders()


def get_orders_for_accounts(actor: EmployeeContext) -> list[Order]:
    """
    Online-paid orders plus cash handed to accounts.

    Accounts employees see only the cash submissions assigned to them;
    online payments are visible to every accounts employee.
    """
    current = authorize(actor, "VIEW_ACCOUNTS_REPORTS")

    online_paid = and_(Order.stripe_payment_intent_id.isnot(None), Order.payment_status == "paid")
    handed_over = Order.cash_submission_status.in_(("pending", "received"))
    if not current.is_incharge:
        handed_over = and_(handed_over, Order.assigned_accounts_employee_id == current.user_id)

    return order_store.fetch_orders(criteria=[or_(online_paid, handed_over)])


def _summary(orders: list[Order], amount) -> dict:
    return {"count": len(orders), "amount_cents": sum(amount(o) or 0 for o in orders)}


def split_accounts_orders(orders: list[Order]) -> dict[str, list[Order]]:
    """Bucket accounts orders into online, cash_pending and cash_received."""
    return {
        "online": [o for o in orders if o.stripe_payment_intent_id and o.payment_status == "paid"],
        "cash_pending": [
            o for o in orders if o.cash_submitted_to_accounts and o.payment_received_by_id is None
        ],
        "cash_received": [o for o in orders if o.payment_received_by_id is not None],
    }


def get_accounts_payment_stats(actor: EmployeeContext) -> dict:
    buckets = split_accounts_orders(get_orders_for_accounts(actor))

    online_summary = _summary(buckets["online"], lambda o: o.total_price_cents)
    pending_summary = _summary(buckets["cash_pending"], lambda o: o.cash_collected_amount_cents)
    received_summary = _summary(buckets["cash_received"], lambda o: o.cash_collected_amount_cents)

    return {
        "online": online_summary,
        "cash_pending": pending_summary,
        "cash_received": received_summary,
        "total": {
            "count": online_summary["count"] + pending_summary["count"] + received_summary["count"],
            "amount_cents": (
                online_summary["amount_cents"]
                + pending_summary["amount_cents"]
                + received_summary["amount_cents"]
            ),
        },
    }


# =============================================================================
# DELIVERY
# =============================================================================

def _outstanding(order: Order) -> bool:
    return order.cash_collected and order.payment_received_by_id is None


def filter_delivery_tab(orders: list[Order], tab: str) -> list[Order]:
    if tab == "assigned":
        return [o for o in orders if o.status == "ready_for_delivery"]
    if tab == "delivering":
        return [o for o in orders if o.status == "out_for_delivery"]
    if tab == "delivered":
        return [o for o in orders if o.status == "delivered"]
    if tab == "collections":
        return [o for o in orders if _outstanding(o)]
    raise ValidationError(f"Unknown delivery tab: {tab}")


def get_delivery_stats(actor: EmployeeContext) -> dict:
    """Tab counts, pending submissions and outstanding cash for the deliveryman's orders."""
    current = authorize(actor, "VIEW_DELIVERY_STATS")
    if current.is_incharge:
        orders = order_store.fetch_orders(statuses=DELIVERY_STATUSES)
    else:
        orders = order_store.fetch_orders(
            statuses=DELIVERY_STATUSES,
            assigned_deliveryman_id=current.user_id,
        )

    stats = {tab: len(filter_delivery_tab(orders, tab)) for tab in DELIVERY_TABS}
    stats["pending_submission"] = sum(
        1 for o in orders
        if o.cash_collected
        and (not o.cash_submitted_to_accounts or o.cash_submission_status == "rejected")
    )
    stats["outstanding_cash_cents"] = sum(
        (o.cash_collected_amount_cents or o.total_price_cents) for o in orders if _outstanding(o)
    )
    return stats


# =============================================================================
# NOTES VIEW
# =============================================================================

def _role_rank(role: str | None) -> int:
    try:
        return ROLE_PRIORITY.index(role)
    except ValueError:
        return len(ROLE_PRIORITY)


def history_notes(order: Order) -> list[dict]:
    """Noted history entries grouped by role priority, oldest first within a role."""
    noted = [e for e in order.status_history if e.notes and e.notes.strip()]
    noted.sort(key=lambda e: (_role_rank(e.changed_by_role), e.changed_at, e.sequence))
    return [e.to_dict() for e in noted]
