"""
Employee Service - resolves request principals to portal employees.

Every portal operation receives an EmployeeContext built here and calls
authorize() before touching an order. authorize() re-reads the employee row,
so a deactivation or role change takes effect on the next operation even for
a context resolved earlier.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import (
    AuthenticationRequiredError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from ..extensions import db
from ..models import User
from ..permissions import EmployeeRole, EmployeeStatus, parse_role, role_has_permission


@dataclass(frozen=True)
class EmployeeContext:
    """The acting employee, passed explicitly into every service call."""

    user_id: int
    identity_id: str
    name: str
    email: str
    role: EmployeeRole
    status: str

    @property
    def is_incharge(self) -> bool:
        return self.role == EmployeeRole.INCHARGE

    @classmethod
    def from_user(cls, user: User) -> "EmployeeContext":
        return cls(
            user_id=user.id,
            identity_id=user.identity_id,
            name=user.full_name,
            email=user.email,
            role=parse_role(user.employee_role),
            status=user.employee_status,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.user_id,
            "identity_id": self.identity_id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "status": self.status,
        }


def _employee_by_identity(identity_id: str) -> User | None:
    return db.session.query(User).filter_by(identity_id=identity_id).first()


def _check_employee(user: User | None) -> EmployeeContext:
    if user is None or not user.is_employee or parse_role(user.employee_role) is None:
        raise PermissionDeniedError("Not an employee")
    if user.employee_status != EmployeeStatus.ACTIVE.value:
        raise PermissionDeniedError("Employee account is inactive")
    return EmployeeContext.from_user(user)


def resolve_employee(identity_id: str | None) -> EmployeeContext:
    """Map an authenticated identity to an active employee."""
    if not identity_id:
        raise AuthenticationRequiredError()
    return _check_employee(_employee_by_identity(identity_id))


def authorize(actor: EmployeeContext | None, permission_code: str) -> EmployeeContext:
    """
    Re-validate the actor against the store and the permission table.

    Returns a fresh context reflecting the employee's current role.
    """
    if actor is None:
        raise AuthenticationRequiredError()

    current = _check_employee(db.session.get(User, actor.user_id))
    if not role_has_permission(current.role, permission_code):
        current_app.logger.warning(
            "Permission denied: employee %s (%s) attempted %s",
            current.user_id,
            current.role.value,
            permission_code,
        )
        raise PermissionDeniedError(
            f"Role {current.role.value} is not allowed to perform this action"
        )
    return current


def get_employee_status(identity_id: str | None) -> dict:
    """
    Portal entry check. Never raises.

    is_employee is true only for active employees; role is reported for
    inactive ones too so the UI can explain the lockout.
    """
    if not identity_id:
        return {"is_employee": False, "role": None}
    try:
        user = _employee_by_identity(identity_id)
    except SQLAlchemyError:
        current_app.logger.exception("Failed to check employee status")
        db.session.rollback()
        return {"is_employee": False, "role": None}

    if user is None or not user.is_employee:
        return {"is_employee": False, "role": None}
    return {
        "is_employee": user.employee_status == EmployeeStatus.ACTIVE.value,
        "role": user.employee_role,
    }


def _active_with_role(role: EmployeeRole) -> list[User]:
    return (
        db.session.query(User)
        .filter_by(
            is_employee=True,
            employee_role=role.value,
            employee_status=EmployeeStatus.ACTIVE.value,
        )
        .order_by(User.first_name, User.last_name, User.id)
        .all()
    )


def get_active_accounts_employees() -> list[User]:
    return _active_with_role(EmployeeRole.ACCOUNTS)


def get_active_deliverymen() -> list[User]:
    return _active_with_role(EmployeeRole.DELIVERYMAN)


def get_active_employee(user_id: int, role: EmployeeRole) -> User:
    """Load an active employee holding `role`, else NotFoundError."""
    user = db.session.get(User, user_id)
    if (
        user is None
        or not user.is_employee
        or user.employee_role != role.value
        or user.employee_status != EmployeeStatus.ACTIVE.value
    ):
        raise NotFoundError(f"No active {role.value} employee with id {user_id}")
    return user


# =============================================================================
# MAINTENANCE (CLI)
# =============================================================================

def list_employees(role: str | None = None) -> list[User]:
    query = db.session.query(User).filter_by(is_employee=True)
    if role:
        if parse_role(role) is None:
            raise ValidationError(f"Unknown role: {role}")
        query = query.filter_by(employee_role=role)
    return query.order_by(User.employee_role, User.id).all()


def create_employee(
    *,
    identity_id: str,
    email: str,
    role: str,
    first_name: str | None = None,
    last_name: str | None = None,
    phone: str | None = None,
) -> User:
    """Create an employee, or promote the existing store user with that identity."""
    parsed = parse_role(role)
    if parsed is None:
        raise ValidationError(f"Unknown role: {role}")
    if not identity_id or not email:
        raise ValidationError("identity_id and email are required")

    user = _employee_by_identity(identity_id)
    if user is None:
        user = User(identity_id=identity_id, email=email.strip().lower())
        db.session.add(user)

    user.first_name = first_name or user.first_name
    user.last_name = last_name or user.last_name
    user.phone = phone or user.phone
    user.is_employee = True
    user.employee_role = parsed.value
    user.employee_status = EmployeeStatus.ACTIVE.value
    db.session.commit()
    return user


def set_employee_status(identity_id: str, status: str) -> User:
    if status not in {s.value for s in EmployeeStatus}:
        raise ValidationError(f"Unknown status: {status}")
    user = _employee_by_identity(identity_id)
    if user is None or not user.is_employee:
        raise NotFoundError(f"No employee with identity {identity_id}")
    user.employee_status = status
    db.session.commit()
    return user
