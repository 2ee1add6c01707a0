# Overview: Discriminated result envelope every API operation answers with.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ExternalDependencyError, OperationError
from ..extensions import db
from .identity_provider import IdentityProviderError


@dataclass
class OperationResult:
    success: bool
    message: str
    error_code: str | None = None
    data: Any = None
    http_status: int = field(default=200, repr=False)

    def to_dict(self) -> dict:
        if self.success:
            return {"success": True, "message": self.message, "data": self.data}
        return {"success": False, "error": self.error_code, "message": self.message}

    @classmethod
    def failed(cls, exc: OperationError) -> "OperationResult":
        return cls(False, exc.message, exc.error_code, http_status=exc.http_status)


def _to_dict(value):
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, list):
        return [_to_dict(item) for item in value]
    return value


def run_operation(fn, *args, message: str = "OK", **kwargs) -> OperationResult:
    """
    Call a service operation and wrap its outcome.

    Typed failures keep their code; store and identity-provider failures are
    logged and reported as EXTERNAL_DEPENDENCY_FAILURE. Anything else is
    logged and reported as INTERNAL_ERROR.
    """
    name = getattr(fn, "__name__", fn)
    try:
        value = fn(*args, **kwargs)
    except OperationError as exc:
        return OperationResult.failed(exc)
    except (SQLAlchemyError, IdentityProviderError):
        db.session.rollback()
        current_app.logger.exception("Operation %s failed", name)
        return OperationResult.failed(ExternalDependencyError())
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Unexpected error in %s", name)
        return OperationResult(False, "Internal server error", "INTERNAL_ERROR", http_status=500)
    return OperationResult(True, message, data=_to_dict(value))
