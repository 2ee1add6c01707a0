from __future__ import annotations

from ..extensions import db
from portal.time_utils import to_utc_z


def _iso(dt):
    return to_utc_z(dt) if dt else None


class Order(db.Model):
    """
    Customer order moving through the fulfillment pipeline.

    Actor attributions (confirmed_by, packed_by, ...) are snapshots of the
    employee id and display name at the time of the action. They carry no
    foreign key so historical orders survive employee/account deletion.

    version_id guards every write: two transitions racing on the same order
    cannot both commit.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_status_created", "status", "created_at"),
        db.Index("ix_orders_customer_identity", "customer_identity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(64), nullable=False)

    # Customer
    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    customer_identity_id = db.Column(db.String(128), nullable=True)
    customer_name = db.Column(db.String(255), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=True)

    # Shipping address snapshot (editable until address confirmation)
    address_id = db.Column(db.Integer, db.ForeignKey("addresses.id"), nullable=True, index=True)
    shipping_name = db.Column(db.String(255), nullable=True)
    shipping_street = db.Column(db.String(255), nullable=False)
    shipping_city = db.Column(db.String(128), nullable=False)
    shipping_state = db.Column(db.String(128), nullable=False)
    shipping_postal_code = db.Column(db.String(32), nullable=False)
    shipping_country = db.Column(db.String(64), nullable=False)
    shipping_phone = db.Column(db.String(32), nullable=True)

    # Totals (cents)
    currency = db.Column(db.String(3), nullable=False, default="USD")
    total_price_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default="cash_on_delivery")

    # Fulfillment status
    status = db.Column(db.String(32), nullable=False, default="pending", index=True)

    # Confirmation facts (written at most once)
    address_confirmed_by_id = db.Column(db.Integer, nullable=True)
    address_confirmed_by_name = db.Column(db.String(255), nullable=True)
    address_confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    order_confirmed_by_id = db.Column(db.Integer, nullable=True)
    order_confirmed_by_name = db.Column(db.String(255), nullable=True)
    order_confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    packed_by_id = db.Column(db.Integer, nullable=True)
    packed_by_name = db.Column(db.String(255), nullable=True)
    packed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    dispatched_by_id = db.Column(db.Integer, nullable=True)
    dispatched_by_name = db.Column(db.String(255), nullable=True)
    dispatched_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Delivery assignment and retry bookkeeping
    assigned_deliveryman_id = db.Column(db.Integer, nullable=True, index=True)
    assigned_deliveryman_name = db.Column(db.String(255), nullable=True)
    delivery_attempts = db.Column(db.Integer, nullable=False, default=0)
    rescheduled_date = db.Column(db.Date, nullable=True)
    delivery_notes = db.Column(db.Text, nullable=True)

    # Cash on delivery sub-state
    cash_collected = db.Column(db.Boolean, nullable=False, default=False)
    cash_collected_amount_cents = db.Column(db.Integer, nullable=True)
    cash_collected_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cash_submitted_to_accounts = db.Column(db.Boolean, nullable=False, default=False)
    cash_submitted_by_id = db.Column(db.Integer, nullable=True)
    cash_submitted_by_name = db.Column(db.String(255), nullable=True)
    cash_submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cash_submission_notes = db.Column(db.Text, nullable=True)
    cash_submission_status = db.Column(db.String(16), nullable=False, default="not_submitted", index=True)
    cash_submission_rejection_reason = db.Column(db.Text, nullable=True)
    assigned_accounts_employee_id = db.Column(db.Integer, nullable=True, index=True)
    assigned_accounts_employee_name = db.Column(db.String(255), nullable=True)
    payment_received_by_id = db.Column(db.Integer, nullable=True)
    payment_received_by_name = db.Column(db.String(255), nullable=True)
    payment_received_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Online payment facts (set from the payment processor outcome)
    payment_status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    stripe_payment_intent_id = db.Column(db.String(128), nullable=True)
    payment_completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "OrderLine",
        backref="order",
        cascade="all, delete-orphan",
        order_by="OrderLine.id",
        lazy=True,
    )
    status_history = db.relationship(
        "OrderStatusHistory",
        backref="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.sequence",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_cash_on_delivery(self) -> bool:
        return self.payment_method == "cash_on_delivery"

    def shipping_address_dict(self) -> dict:
        return {
            "name": self.shipping_name,
            "street": self.shipping_street,
            "city": self.shipping_city,
            "state": self.shipping_state,
            "postal_code": self.shipping_postal_code,
            "country": self.shipping_country,
            "phone": self.shipping_phone,
        }

    def to_dict(self, *, include_history: bool = True) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "customer_identity_id": self.customer_identity_id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "address_id": self.address_id,
            "shipping_address": self.shipping_address_dict(),
            "lines": [line.to_dict() for line in self.lines],
            "currency": self.currency,
            "total_price_cents": self.total_price_cents,
            "payment_method": self.payment_method,
            "status": self.status,
            "address_confirmed_by_id": self.address_confirmed_by_id,
            "address_confirmed_by_name": self.address_confirmed_by_name,
            "address_confirmed_at": _iso(self.address_confirmed_at),
            "order_confirmed_by_id": self.order_confirmed_by_id,
            "order_confirmed_by_name": self.order_confirmed_by_name,
            "order_confirmed_at": _iso(self.order_confirmed_at),
            "packed_by_id": self.packed_by_id,
            "packed_by_name": self.packed_by_name,
            "packed_at": _iso(self.packed_at),
            "dispatched_by_id": self.dispatched_by_id,
            "dispatched_by_name": self.dispatched_by_name,
            "dispatched_at": _iso(self.dispatched_at),
            "delivered_at": _iso(self.delivered_at),
            "assigned_deliveryman_id": self.assigned_deliveryman_id,
            "assigned_deliveryman_name": self.assigned_deliveryman_name,
            "delivery_attempts": self.delivery_attempts,
            "rescheduled_date": self.rescheduled_date.isoformat() if self.rescheduled_date else None,
            "delivery_notes": self.delivery_notes,
            "cash_collected": self.cash_collected,
            "cash_collected_amount_cents": self.cash_collected_amount_cents,
            "cash_collected_at": _iso(self.cash_collected_at),
            "cash_submitted_to_accounts": self.cash_submitted_to_accounts,
            "cash_submitted_by_id": self.cash_submitted_by_id,
            "cash_submitted_by_name": self.cash_submitted_by_name,
            "cash_submitted_at": _iso(self.cash_submitted_at),
            "cash_submission_notes": self.cash_submission_notes,
            "cash_submission_status": self.cash_submission_status,
            "cash_submission_rejection_reason": self.cash_submission_rejection_reason,
            "assigned_accounts_employee_id": self.assigned_accounts_employee_id,
            "assigned_accounts_employee_name": self.assigned_accounts_employee_name,
            "payment_received_by_id": self.payment_received_by_id,
            "payment_received_by_name": self.payment_received_by_name,
            "payment_received_at": _iso(self.payment_received_at),
            "payment_status": self.payment_status,
            "stripe_payment_intent_id": self.stripe_payment_intent_id,
            "payment_completed_at": _iso(self.payment_completed_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "version_id": self.version_id,
        }
        if include_history:
            data["status_history"] = [entry.to_dict() for entry in self.status_history]
        return data


class OrderLine(db.Model):
    """Line item snapshot taken when the order was placed. Never edited."""
    __tablename__ = "order_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_ref = db.Column(db.String(128), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_ref": self.product_ref,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }


class OrderStatusHistory(db.Model):
    """
    Append-only transition ledger for an order.

    Rows are inserted by the fulfillment and cash services only; nothing
    updates or reorders them. sequence is 1..n per order.
    """
    __tablename__ = "order_status_history"
    __table_args__ = (
        db.UniqueConstraint("order_id", "sequence", name="uq_order_status_history_seq"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    sequence = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(32), nullable=False)
    changed_by_id = db.Column(db.Integer, nullable=True)
    changed_by_name = db.Column(db.String(255), nullable=True)
    changed_by_role = db.Column(db.String(16), nullable=False)
    changed_at = db.Column(db.DateTime(timezone=True), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "sequence": self.sequence,
            "status": self.status,
            "changed_by_id": self.changed_by_id,
            "changed_by_name": self.changed_by_name,
            "changed_by_role": self.changed_by_role,
            "changed_at": _iso(self.changed_at),
            "notes": self.notes,
        }
