"""
Order Store Adapter

Read, patch, delete and transaction primitives over the portal database.
Fulfillment and cash services load orders through get_order() and persist a
transition with commit_transition(); the deletion cascade batches Patch and
Delete operations through run_transaction().

Failure mapping:
- typed OperationError: rolled back and re-raised unchanged
- StaleDataError (version_id mismatch): ConflictError
- any other SQLAlchemyError: logged, ExternalDependencyError
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable

from flask import current_app
from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ExternalDependencyError, NotFoundError, OperationError
from ..extensions import db
from ..models import Order, OrderStatusHistory
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry


# =============================================================================
# READS
# =============================================================================

def get_order(order_id: int, *, for_update: bool = False) -> Order:
    query = db.session.query(Order).filter_by(id=order_id)
    if for_update:
        query = lock_for_update(query)
    order = query.first()
    if not order:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def fetch_orders(
    *,
    statuses: Iterable[str] | None = None,
    assigned_deliveryman_id: int | None = None,
    payment_method: str | None = None,
    criteria: Iterable[Any] = (),
) -> list[Order]:
    """Orders matching the filters, newest first."""
    query = db.session.query(Order)
    if statuses is not None:
        query = query.filter(Order.status.in_(list(statuses)))
    if assigned_deliveryman_id is not None:
        query = query.filter(Order.assigned_deliveryman_id == assigned_deliveryman_id)
    if payment_method is not None:
        query = query.filter(Order.payment_method == payment_method)
    for criterion in criteria:
        query = query.filter(criterion)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


# =============================================================================
# TRANSITIONS
# =============================================================================

def append_history(
    order: Order,
    *,
    status: str,
    actor_id: int | None,
    actor_name: str | None,
    actor_role: str,
    notes: str | None = None,
    at: datetime | None = None,
) -> OrderStatusHistory:
    """Append one ledger entry; sequence continues from the order's last entry."""
    entry = OrderStatusHistory(
        sequence=len(order.status_history) + 1,
        status=status,
        changed_by_id=actor_id,
        changed_by_name=actor_name,
        changed_by_role=actor_role,
        changed_at=at or utcnow(),
        notes=notes,
    )
    order.status_history.append(entry)
    return entry


def commit_transition(order: Order, changes: dict, *, label: str, actor, notes: str | None, at: datetime) -> Order:
    """Apply field changes and exactly one history entry, then commit."""
    for key, value in changes.items():
        setattr(order, key, value)
    append_history(
        order,
        status=label,
        actor_id=actor.user_id,
        actor_name=actor.name,
        actor_role=actor.role.value,
        notes=notes,
        at=at,
    )
    db.session.commit()
    return order


def transact(func: Callable[[], Any]) -> Any:
    """Run func under lock retry and translate store failures."""
    try:
        return run_with_retry(func)
    except OperationError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Order store transaction failed")
        raise ExternalDependencyError() from exc


# =============================================================================
# BATCH PATCH / DELETE
# =============================================================================

@dataclass(frozen=True)
class Patch:
    """Set `values` on every row of `table` matching `where`."""
    table: Any
    where: dict
    values: dict


@dataclass(frozen=True)
class Delete:
    """Delete every row of `table` matching `where`."""
    table: Any
    where: dict = field(default_factory=dict)


def _table(target):
    return getattr(target, "__table__", target)


def _conditions(table, where: dict) -> list:
    conditions = []
    for column, value in where.items():
        col = table.c[column]
        if isinstance(value, (list, tuple, set, frozenset)):
            conditions.append(col.in_(list(value)))
        else:
            conditions.append(col == value)
    return conditions


def _statement(op):
    table = _table(op.table)
    if isinstance(op, Patch):
        return update(table).where(*_conditions(table, op.where)).values(**op.values)
    if isinstance(op, Delete):
        if not op.where:
            raise ValueError("Refusing unconditional delete")
        return delete(table).where(*_conditions(table, op.where))
    raise TypeError(f"Unsupported store operation: {op!r}")


def run_transaction(ops: list) -> list[int]:
    """
    Execute ops in order inside one transaction.

    Returns affected row counts per op. Any failure rolls back every op and
    propagates the SQLAlchemy error to the caller.
    """
    counts = []
    try:
        for op in ops:
            # Empty IN () lists match nothing; skip the round trip
            if any(isinstance(v, (list, tuple, set, frozenset)) and not v for v in op.where.values()):
                counts.append(0)
                continue
            result = db.session.execute(_statement(op))
            counts.append(result.rowcount)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return counts
