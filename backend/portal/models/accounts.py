from __future__ import annotations

from ..extensions import db
from portal.time_utils import to_utc_z


# Array-valued references held by a user document. The deletion cascade
# clears these before deleting anything they point at.
user_addresses = db.Table(
    "user_addresses",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("address_id", db.Integer, db.ForeignKey("addresses.id"), primary_key=True),
)

user_orders = db.Table(
    "user_orders",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("order_id", db.Integer, db.ForeignKey("orders.id"), primary_key=True),
)

wishlist_items = db.Table(
    "wishlist_items",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("product_ref", db.String(128), primary_key=True),
)

cart_items = db.Table(
    "cart_items",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("product_ref", db.String(128), primary_key=True),
    db.Column("quantity", db.Integer, nullable=False, default=1),
)


class User(db.Model):
    """
    Store-side account document for a customer or staff member.

    identity_id is the user's id at the external identity provider; it is how
    requests are mapped to store records. Employees are users with
    is_employee set plus a role and an active/inactive status.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("identity_id", name="uq_users_identity_id"),
        db.Index("ix_users_employee_role_status", "is_employee", "employee_role", "employee_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    identity_id = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    first_name = db.Column(db.String(128), nullable=True)
    last_name = db.Column(db.String(128), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    is_employee = db.Column(db.Boolean, nullable=False, default=False)
    employee_role = db.Column(db.String(16), nullable=True)
    employee_status = db.Column(db.String(16), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())

    address_refs = db.relationship("Address", secondary=user_addresses, lazy=True)
    order_refs = db.relationship("Order", secondary=user_orders, lazy=True)

    @property
    def full_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.email

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "identity_id": self.identity_id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "phone": self.phone,
            "is_employee": self.is_employee,
            "employee_role": self.employee_role,
            "employee_status": self.employee_status,
            "created_at": to_utc_z(self.created_at),
        }


class Address(db.Model):
    """Saved shipping address owned by a user."""
    __tablename__ = "addresses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    # Owner email, denormalized; older addresses were linked by email only
    email = db.Column(db.String(255), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=True)
    street = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(128), nullable=False)
    state = db.Column(db.String(128), nullable=False)
    postal_code = db.Column(db.String(32), nullable=False)
    country = db.Column(db.String(64), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    is_default = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "email": self.email,
            "name": self.name,
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
            "phone": self.phone,
            "is_default": self.is_default,
        }


class Review(db.Model):
    """Product review written by a user."""
    __tablename__ = "reviews"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_ref = db.Column(db.String(128), nullable=False)
    rating = db.Column(db.Integer, nullable=False)
    body = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "product_ref": self.product_ref,
            "rating": self.rating,
            "body": self.body,
            "created_at": to_utc_z(self.created_at),
        }
