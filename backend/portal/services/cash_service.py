"""
Cash Service - cash-on-delivery handling

Sub-states (cash_submission_status):
    not_submitted --collect--> (collected) --submit--> pending
    pending --receive--> received
    pending --reject--> rejected --submit--> pending

Money only moves forward: cash is collected once, received once, and a
rejection keeps the collected amount so the deliveryman can resubmit it.
Orders already paid online are refused by every operation here.
"""

from __future__ import annotations

from ..errors import NotFoundError, PermissionDeniedError, PreconditionFailedError, ValidationError
from ..models import Order
from ..time_utils import utcnow
from ..validation import optional_text, parse_amount_cents, require_id, require_text
from . import order_store
from .employee_service import EmployeeContext, authorize, get_active_accounts_employees
from .fulfillment_service import require_assignee


def _require_cash_order(order: Order) -> None:
    if not order.is_cash_on_delivery:
        raise PreconditionFailedError("Only cash-on-delivery orders take cash")
    if order.payment_status == "paid" and order.stripe_payment_intent_id:
        raise PreconditionFailedError("Order is already paid online")


def _require_accounts_assignee(order: Order, actor: EmployeeContext) -> None:
    if actor.is_incharge:
        return
    if order.assigned_accounts_employee_id != actor.user_id:
        raise PermissionDeniedError("Cash submission is assigned to another accounts employee")


def _cash_transition(order_id, actor, permission, *, label, guard, changes, notes=None):
    def _op():
        current = authorize(actor, permission)
        order = order_store.get_order(order_id, for_update=True)
        if order.status == "cancelled":
            raise PreconditionFailedError("Cancelled orders cannot change")
        _require_cash_order(order)
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


def collect_cash(order_id: int, actor: EmployeeContext, amount, notes: str | None = None) -> Order:
    amount_cents = parse_amount_cents(amount)
    notes = optional_text(notes)

    def _guard(order, current):
        if order.cash_collected:
            raise PreconditionFailedError("Cash already collected for this order")
        if order.status != "out_for_delivery":
            raise PreconditionFailedError("Cash can only be collected while the order is out for delivery")
        require_assignee(order, current)

    def _changes(order, current, now):
        return {
            "cash_collected": True,
            "cash_collected_amount_cents": amount_cents,
            "cash_collected_at": now,
        }

    return _cash_transition(
        order_id,
        actor,
        "COLLECT_CASH",
        label="cash_collected",
        guard=_guard,
        changes=_changes,
        notes=notes or f"Collected {amount_cents / 100:.2f}",
    )


def submit_cash_to_accounts(
    order_id: int,
    actor: EmployeeContext,
    accounts_employee_id,
    notes: str | None = None,
) -> Order:
    """Hand collected cash to an accounts employee (first submission or after rejection)."""
    notes = optional_text(notes)

    accounts = get_active_accounts_employees()
    if not accounts:
        raise ValidationError("No active accounts employees are available to receive cash")
    if accounts_employee_id in (None, ""):
        raise ValidationError("Select an accounts employee to submit cash to")
    target_id = require_id(accounts_employee_id, field="accounts_employee_id")
    if not any(u.id == target_id for u in accounts):
        raise NotFoundError(f"No active accounts employee with id {target_id}")

    def _guard(order, current):
        if not order.cash_collected:
            raise PreconditionFailedError("Cash has not been collected for this order")
        if order.cash_submission_status == "pending":
            raise PreconditionFailedError("Cash is already awaiting receipt by accounts")
        if order.cash_submission_status == "received":
            raise PreconditionFailedError("Cash has already been received by accounts")
        require_assignee(order, current)

    def _changes(order, current, now):
        # Re-checked inside the transaction
        target = next((u for u in get_active_accounts_employees() if u.id == target_id), None)
        if target is None:
            raise NotFoundError(f"No active accounts employee with id {target_id}")
        return {
            "cash_submitted_to_accounts": True,
            "cash_submitted_by_id": current.user_id,
            "cash_submitted_by_name": current.name,
            "cash_submitted_at": now,
            "cash_submission_notes": notes,
            "cash_submission_status": "pending",
            "cash_submission_rejection_reason": None,
            "assigned_accounts_employee_id": target.id,
            "assigned_accounts_employee_name": target.full_name,
        }

    return _cash_transition(
        order_id,
        actor,
        "SUBMIT_CASH",
        label="cash_submitted",
        guard=_guard,
        changes=_changes,
        notes=notes,
    )


def receive_payment_from_deliveryman(order_id: int, actor: EmployeeContext, notes: str | None = None) -> Order:
    notes = optional_text(notes)

    def _guard(order, current):
        if order.cash_submission_status == "received" or order.payment_received_at is not None:
            raise PreconditionFailedError("Cash has already been received for this order")
        if order.cash_submission_status != "pending":
            raise PreconditionFailedError("No cash submission is awaiting receipt")
        _require_accounts_assignee(order, current)

    def _changes(order, current, now):
        return {
            "cash_submission_status": "received",
            "payment_received_by_id": current.user_id,
            "payment_received_by_name": current.name,
            "payment_received_at": now,
            "payment_status": "paid",
        }

    return _cash_transition(
        order_id,
        actor,
        "RECEIVE_CASH",
        label="cash_received",
        guard=_guard,
        changes=_changes,
        notes=notes,
    )


def reject_cash_submission(order_id: int, actor: EmployeeContext, reason) -> Order:
    reason = require_text(reason, field="reason")

    def _guard(order, current):
        if order.cash_submission_status != "pending":
            raise PreconditionFailedError("Only cash awaiting receipt can be rejected")
        _require_accounts_assignee(order, current)

    def _changes(order, current, now):
        return {
            "cash_submission_status": "rejected",
            "cash_submission_rejection_reason": reason,
            "cash_submitted_to_accounts": False,
        }

    return _cash_transition(
        order_id,
        actor,
        "REJECT_CASH",
        label="cash_rejected",
        guard=_guard,
        changes=_changes,
        notes=reason,
    )
