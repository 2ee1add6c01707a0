"""
Fulfillment Service - order pipeline state machine

Stages:
    pending/processing -> address_confirmed -> order_confirmed -> packed
    -> ready_for_delivery -> out_for_delivery -> delivered
    out_for_delivery -> rescheduled -> out_for_delivery
    out_for_delivery -> failed_delivery -> ready_for_delivery (new cycle)

address_confirmed and order_confirmed are not stored statuses: they are
derived from the confirmation facts on a pending/processing order.

Every transition authorizes the actor, locks the order, checks the source
stage, then writes status, facts and one history entry in one commit.
A failed check leaves the order untouched.
"""

from __future__ import annotations

from ..errors import PermissionDeniedError, PreconditionFailedError
from ..extensions import db
from ..models import Address, Order
from ..permissions import EmployeeRole
from ..time_utils import utcnow
from ..validation import (
    ModelValidationPolicy,
    optional_text,
    require_date,
    require_id,
    require_text,
    validate_payload,
)
from . import order_store
from .employee_service import EmployeeContext, authorize, get_active_employee


PRE_CONFIRMATION_STATUSES = ("pending", "processing")
DELIVERY_STATUSES = (
    "ready_for_delivery",
    "out_for_delivery",
    "delivered",
    "rescheduled",
    "failed_delivery",
)

ADDRESS_POLICY = ModelValidationPolicy(
    writable_fields={"name", "street", "city", "state", "postal_code", "country", "phone"},
    required_on_create={"street", "city", "state", "postal_code", "country"},
)


def fulfillment_stage(order: Order) -> str:
    """Current pipeline stage, including the derived confirmation stages."""
    if order.status in PRE_CONFIRMATION_STATUSES:
        if order.order_confirmed_at is not None:
            return "order_confirmed"
        if order.address_confirmed_at is not None:
            return "address_confirmed"
    return order.status


def require_assignee(order: Order, actor: EmployeeContext) -> None:
    """Deliverymen act only on their own assignments; incharge on any."""
    if order.assigned_deliveryman_id is None:
        raise PreconditionFailedError("Order has no assigned deliveryman")
    if actor.is_incharge:
        return
    if order.assigned_deliveryman_id != actor.user_id:
        raise PermissionDeniedError("Order is assigned to another deliveryman")


def _transition(
    order_id: int,
    actor: EmployeeContext,
    permission: str,
    *,
    sources: tuple[str, ...],
    label: str,
    changes,
    notes: str | None = None,
    guard=None,
    verb: str = "update",
) -> Order:
    def _op():
        current = authorize(actor, permission)
        order = order_store.get_order(order_id, for_update=True)

        stage = fulfillment_stage(order)
        if stage == "cancelled":
            raise PreconditionFailedError("Cancelled orders cannot change")
        if stage not in sources:
            raise PreconditionFailedError(f"Cannot {verb} an order in stage {stage}")
        if guard:
            guard(order, current)

        now = utcnow()
        return order_store.commit_transition(
            order,
            changes(order, current, now),
            label=label,
            actor=current,
            notes=notes,
            at=now,
        )

    return order_store.transact(_op)


# =============================================================================
# CALL CENTER
# =============================================================================

def confirm_address(order_id: int, actor: EmployeeContext, notes: str | None = None) -> Order:
    notes = optional_text(notes)

    def _changes(order, current, now):
        return {
            "status": "processing",
            "address_confirmed_by_id": current.user_id,
            "address_confirmed_by_name": current.name,
            "address_confirmed_at": now,
        }

    return _transition(
        order_id,
        actor,
        "CONFIRM_ADDRESS",
        sources=PRE_CONFIRMATION_STATUSES,
        label="address_confirmed",
        changes=_changes,
        notes=notes,
        verb="confirm the address of",
    )


def confirm_order(order_id: int, actor: EmployeeContext, notes: str | None = None) -> Order:
    notes = optional_text(notes)

    def _guard(order, current):
        if order.address_confirmed_at is None:
            raise PreconditionFailedError("Address must be confirmed before the order")

    def _changes(order, current, now):
        return {
            "status": "processing",
            "order_confirmed_by_id": current.user_id,
            "order_confirmed_by_name": current.name,
            "order_confirmed_at": now,
        }

    return _transition(
        order_id,
        actor,
        "CONFIRM_ORDER",
        # pending/processing are listed so the guard reports the missing step
        sources=("address_confirmed",) + PRE_CONFIRMATION_STATUSES,
        label="order_confirmed",
        changes=_changes,
        notes=notes,
        guard=_guard,
        verb="confirm",
    )


def update_shipping_address(order_id: int, actor: EmployeeContext, address: dict) -> Order:
    """Replace the address snapshot. Allowed only before address confirmation; no history entry."""
    cleaned = validate_payload(model=Address, payload=address, policy=ADDRESS_POLICY, partial=False)

    def _op():
        authorize(actor, "UPDATE_SHIPPING_ADDRESS")
        order = order_store.get_order(order_id, for_update=True)
        if order.status not in PRE_CONFIRMATION_STATUSES or order.address_confirmed_at is not None:
            raise PreconditionFailedError("Shipping address can only change before it is confirmed")

        order.shipping_name = cleaned.get("name")
        order.shipping_street = cleaned["street"]
        order.shipping_city = cleaned["city"]
        order.shipping_state = cleaned["state"]
        order.shipping_postal_code = cleaned["postal_code"]
        order.shipping_country = cleaned["country"]
        order.shipping_phone = cleaned.get("phone")
        db.session.commit()
        return order

    return order_store.transact(_op)


# =============================================================================
# PACKING / WAREHOUSE
# =============================================================================

def mark_as_packed(order_id: int, actor: EmployeeContext, notes: str | None = None) -> Order:
    notes = optional_text(notes)

    def _changes(order, current, now):
        return {
            "status": "packed",
            "packed_by_id": current.user_id,
            "packed_by_name": current.name,
            "packed_at": now,
        }

    return _transition(
        order_id,
        actor,
        "MARK_PACKED",
        sources=("order_confirmed",),
        label="packed",
        changes=_changes,
        notes=notes,
        verb="pack",
    )


def assign_deliveryman(
    order_id: int,
    actor: EmployeeContext,
    deliveryman_id,
    notes: str | None = None,
) -> Order:
    deliveryman_id = require_id(deliveryman_id, field="deliveryman_id")
    notes = optional_text(notes)

    def _changes(order, current, now):
        deliveryman = get_active_employee(deliveryman_id, EmployeeRole.DELIVERYMAN)
        return {
            "status": "ready_for_delivery",
            "assigned_deliveryman_id": deliveryman.id,
            "assigned_deliveryman_name": deliveryman.full_name,
            "dispatched_by_id": current.user_id,
            "dispatched_by_name": current.name,
            "dispatched_at": now,
            "rescheduled_date": None,
        }

    return _transition(
        order_id,
        actor,
        "ASSIGN_DELIVERYMAN",
        sources=("packed", "failed_delivery"),
        label="ready_for_delivery",
        changes=_changes,
        notes=notes,
        verb="dispatch",
    )


# =============================================================================
# DELIVERY
# =============================================================================

def start_delivery(order_id: int, actor: EmployeeContext, notes: str | None = None) -> Order:
    notes = optional_text(notes)

    def _changes(order, current, now):
        return {
            "status": "out_for_delivery",
            "delivery_attempts": (order.delivery_attempts or 0) + 1,
        }

    return _transition(
        order_id,
        actor,
        "START_DELIVERY",
        sources=("ready_for_delivery", "rescheduled"),
        label="out_for_delivery",
        changes=_changes,
        notes=notes,
        guard=require_assignee,
        verb="start delivery of",
    )


def mark_as_delivered(order_id: int, actor: EmployeeContext, notes: str | None = None) -> Order:
    notes = optional_text(notes)

    def _guard(order, current):
        require_assignee(order, current)
        if order.is_cash_on_delivery and not order.cash_collected:
            raise PreconditionFailedError("Collect cash before marking a cash-on-delivery order delivered")

    def _changes(order, current, now):
        return {"status": "delivered", "delivered_at": now}

    return _transition(
        order_id,
        actor,
        "MARK_DELIVERED",
        sources=("out_for_delivery",),
        label="delivered",
        changes=_changes,
        notes=notes,
        guard=_guard,
        verb="deliver",
    )


def reschedule_delivery(order_id: int, actor: EmployeeContext, date, reason) -> Order:
    new_date = require_date(date, field="date")
    reason = require_text(reason, field="reason")

    def _changes(order, current, now):
        return {
            "status": "rescheduled",
            "rescheduled_date": new_date,
            "delivery_notes": reason,
        }

    return _transition(
        order_id,
        actor,
        "RESCHEDULE_DELIVERY",
        sources=("out_for_delivery",),
        label="rescheduled",
        changes=_changes,
        notes=f"Rescheduled to {new_date.isoformat()}: {reason}",
        guard=require_assignee,
        verb="reschedule",
    )


def mark_delivery_failed(order_id: int, actor: EmployeeContext, reason) -> Order:
    reason = require_text(reason, field="reason")

    def _changes(order, current, now):
        return {"status": "failed_delivery", "delivery_notes": reason}

    return _transition(
        order_id,
        actor,
        "MARK_DELIVERY_FAILED",
        sources=("out_for_delivery",),
        label="failed_delivery",
        changes=_changes,
        notes=reason,
        guard=require_assignee,
        verb="fail delivery of",
    )


def get_order_for_employee(order_id: int, actor: EmployeeContext) -> Order:
    """
    Single order read.

    Deliverymen see only their own assignments. Accounts employees see
    online-paid orders and cash submitted to them. Other roles see any order.
    """
    current = authorize(actor, "VIEW_ORDERS")
    order = order_store.get_order(order_id)

    if current.role == EmployeeRole.DELIVERYMAN and order.assigned_deliveryman_id != current.user_id:
        raise PermissionDeniedError("Order is assigned to another deliveryman")
    if current.role == EmployeeRole.ACCOUNTS:
        online_paid = order.stripe_payment_intent_id is not None and order.payment_status == "paid"
        if not online_paid and order.assigned_accounts_employee_id != current.user_id:
            raise PermissionDeniedError("Order is not in your accounts queue")
    return order
