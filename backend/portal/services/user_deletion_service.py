"""
User Deletion Service - admin cascade across the store and identity provider

For each target identity id:
1. Resolve the store user; collect its addresses (owner FK or owner email),
   orders (customer identity id or customer FK) and reviews.
2. In one store transaction: clear the user's reference tables, clear other
   rows that point at the doomed addresses/orders, delete the collected
   rows, delete the user.
3. Separately delete the identity-provider user. A provider 404 counts as
   already deleted and is not an error.

The two systems are independent: a failure in one is reported on the target
and never blocks the other. Bulk deletion runs targets one by one and is not
atomic across targets.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import inspect, or_
from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotFoundError, PermissionDeniedError, ValidationError
from ..extensions import db
from ..models import (
    Address,
    Order,
    OrderLine,
    OrderStatusHistory,
    Review,
    User,
    cart_items,
    user_addresses,
    user_orders,
    wishlist_items,
)
from . import order_store
from .identity_provider import IdentityNotFoundError, IdentityProviderError, get_identity_provider
from .order_store import Delete, Patch


@dataclass
class DeletionReport:
    identity_id: str
    identity_deleted: bool = False
    store_deleted: bool = False
    deleted_counts: dict = field(default_factory=lambda: {"addresses": 0, "orders": 0, "reviews": 0})
    errors: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.identity_deleted or self.store_deleted

    def to_dict(self) -> dict:
        return {
            "user_id": self.identity_id,
            "identity_deleted": self.identity_deleted,
            "store_deleted": self.store_deleted,
            "deleted_counts": dict(self.deleted_counts),
            "errors": list(self.errors),
        }


# =============================================================================
# ADMIN CHECK
# =============================================================================

def verify_admin(identity_id: str | None) -> str:
    """
    Re-fetch the caller from the identity provider and check ADMIN_EMAILS.

    Returns the admin's email. Raises PermissionDeniedError otherwise.
    """
    if not identity_id:
        raise PermissionDeniedError("Admin access required")
    try:
        user = get_identity_provider().get_user(identity_id)
    except IdentityNotFoundError:
        raise PermissionDeniedError("Admin access required")

    admins = current_app.config.get("ADMIN_EMAILS") or []
    if not user.email or user.email.lower() not in admins:
        current_app.logger.warning("Admin access denied for %s", identity_id)
        raise PermissionDeniedError("Admin access required")
    return user.email


def list_identity_users(admin_identity_id: str, *, limit: int = 10, offset: int = 0, query: str | None = None) -> dict:
    verify_admin(admin_identity_id)
    if limit < 1 or limit > 100:
        raise ValidationError("limit must be between 1 and 100")
    if offset < 0:
        raise ValidationError("offset must not be negative")

    page = get_identity_provider().list_users(limit=limit, offset=offset, query=query or None)
    return {
        "users": [u.to_dict() for u in page.users],
        "total_count": page.total_count,
        "has_next_page": offset + limit < page.total_count,
    }


# =============================================================================
# STORE CASCADE
# =============================================================================

def _collect(user: User) -> tuple[list[int], list[int], list[int]]:
    address_q = db.session.query(Address.id).filter(
        or_(Address.user_id == user.id, Address.email == user.email)
    )
    order_q = db.session.query(Order.id).filter(
        or_(Order.customer_identity_id == user.identity_id, Order.customer_id == user.id)
    )
    review_q = db.session.query(Review.id).filter(Review.user_id == user.id)
    return (
        [row[0] for row in address_q.all()],
        [row[0] for row in order_q.all()],
        [row[0] for row in review_q.all()],
    )


def _cascade_ops(user: User, address_ids: list[int], order_ids: list[int], review_ids: list[int]) -> list:
    return [
        # The user's own reference arrays
        Delete(user_addresses, {"user_id": user.id}),
        Delete(user_orders, {"user_id": user.id}),
        Delete(wishlist_items, {"user_id": user.id}),
        Delete(cart_items, {"user_id": user.id}),
        # Other documents still pointing at doomed rows
        Delete(user_addresses, {"address_id": address_ids}),
        Delete(user_orders, {"order_id": order_ids}),
        Patch(Order, {"address_id": address_ids}, {"address_id": None}),
        # Order sub-rows, then the collected documents
        Delete(OrderLine, {"order_id": order_ids}),
        Delete(OrderStatusHistory, {"order_id": order_ids}),
        Delete(Order, {"id": order_ids}),
        Delete(Address, {"id": address_ids}),
        Delete(Review, {"id": review_ids}),
        Delete(User, {"id": user.id}),
    ]


def _forget(model, ids) -> None:
    """Drop deleted rows from the session identity map."""
    ids = set(ids)
    for obj in list(db.session.identity_map.values()):
        identity = inspect(obj).identity
        if isinstance(obj, model) and identity and identity[0] in ids:
            db.session.expunge(obj)


def _delete_store_user(user: User, report: DeletionReport) -> None:
    user_id = user.id
    address_ids, order_ids, review_ids = _collect(user)
    order_store.run_transaction(_cascade_ops(user, address_ids, order_ids, review_ids))
    _forget(Order, order_ids)
    _forget(Address, address_ids)
    _forget(Review, review_ids)
    _forget(User, [user_id])

    report.store_deleted = True
    report.deleted_counts = {
        "addresses": len(address_ids),
        "orders": len(order_ids),
        "reviews": len(review_ids),
    }


def delete_store_data(admin_identity_id: str, identity_id: str) -> dict:
    """Store-only cascade for one user; the identity provider is left alone."""
    verify_admin(admin_identity_id)
    user = db.session.query(User).filter_by(identity_id=identity_id).first()
    if user is None:
        raise NotFoundError("User not found in store")

    snapshot = {
        "id": identity_id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
    }
    report = DeletionReport(identity_id=identity_id)
    _delete_store_user(user, report)
    current_app.logger.info("Deleted store data for %s: %s", identity_id, report.deleted_counts)
    return {"user": snapshot, "deleted_counts": report.deleted_counts}


# =============================================================================
# FULL CASCADE
# =============================================================================

def _delete_one(identity_id: str) -> DeletionReport:
    report = DeletionReport(identity_id=identity_id)

    try:
        get_identity_provider().delete_user(identity_id)
        report.identity_deleted = True
    except IdentityNotFoundError:
        current_app.logger.warning("User %s not found in identity provider, skipping", identity_id)
    except IdentityProviderError as exc:
        current_app.logger.exception("Failed to delete user %s from identity provider", identity_id)
        report.errors.append(f"Identity provider: {exc}")

    try:
        user = db.session.query(User).filter_by(identity_id=identity_id).first()
        if user is None:
            report.errors.append("Store: user not found")
        else:
            _delete_store_user(user, report)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete user %s from store", identity_id)
        report.errors.append(f"Store: {exc.__class__.__name__}")

    current_app.logger.info(
        "Deletion of %s: identity_deleted=%s store_deleted=%s counts=%s",
        identity_id,
        report.identity_deleted,
        report.store_deleted,
        report.deleted_counts,
    )
    return report


def _validate_targets(admin_identity_id: str, user_ids) -> list[str]:
    if not isinstance(user_ids, list) or not user_ids:
        raise ValidationError("User IDs array is required")
    if not all(isinstance(uid, str) and uid.strip() for uid in user_ids):
        raise ValidationError("User IDs must be non-empty strings")
    targets = [uid.strip() for uid in user_ids]
    if admin_identity_id in targets:
        raise ValidationError("Cannot delete your own admin account")
    return targets


def delete_user(admin_identity_id: str, identity_id: str) -> DeletionReport:
    verify_admin(admin_identity_id)
    targets = _validate_targets(admin_identity_id, [identity_id])
    return _delete_one(targets[0])


def delete_users(admin_identity_id: str, user_ids) -> dict:
    """Best-effort bulk deletion with an aggregate summary."""
    verify_admin(admin_identity_id)
    targets = _validate_targets(admin_identity_id, user_ids)

    reports = [_delete_one(identity_id) for identity_id in targets]
    identity_total = sum(1 for r in reports if r.identity_deleted)
    store_total = sum(1 for r in reports if r.store_deleted)
    return {
        "message": (
            f"Deleted {identity_total} user(s) from the identity provider "
            f"and {store_total} user(s) from the store"
        ),
        "results": [r.to_dict() for r in reports],
        "summary": {
            "total": len(reports),
            "successful": sum(1 for r in reports if r.succeeded),
            "identity_deleted": identity_total,
            "store_deleted": store_total,
        },
    }


def delete_users_maintenance(user_ids: list[str]) -> list[DeletionReport]:
    """CLI entry point: same cascade without an admin caller."""
    if not user_ids:
        raise ValidationError("User IDs array is required")
    return [_delete_one(identity_id) for identity_id in user_ids]
