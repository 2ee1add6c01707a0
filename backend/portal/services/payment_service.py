"""
Payment Service - online payment intake

The payment processor is external; its completion event reaches the portal
as the fact "payment completed for order X with intent Y". Recording it is
idempotent for the same intent.
"""

from __future__ import annotations

from ..errors import PreconditionFailedError
from ..extensions import db
from ..models import Order
from ..time_utils import utcnow
from ..validation import require_text
from . import order_store


def record_online_payment(order_id: int, payment_intent_id, *, completed_at=None) -> Order:
    intent_id = require_text(payment_intent_id, field="payment_intent_id", max_length=128)

    def _op():
        order = order_store.get_order(order_id, for_update=True)

        if order.payment_status == "paid":
            if order.stripe_payment_intent_id == intent_id:
                return order
            raise PreconditionFailedError("Order is already paid")
        if order.cash_collected:
            raise PreconditionFailedError("Cash was already collected for this order")
        if order.status == "cancelled":
            raise PreconditionFailedError("Cancelled orders cannot be paid")

        now = completed_at or utcnow()
        order.payment_method = "online"
        order.payment_status = "paid"
        order.stripe_payment_intent_id = intent_id
        order.payment_completed_at = now
        order_store.append_history(
            order,
            status="payment_completed",
            actor_id=None,
            actor_name=None,
            actor_role="system",
            notes=f"Online payment {intent_id}",
            at=now,
        )
        db.session.commit()
        return order

    return order_store.transact(_op)
