# Overview: Error taxonomy shared by services and routes.

"""
Operation errors.

Every failure a portal operation can report is one of the classes below.
Each carries a stable `error_code` (returned to clients) and the HTTP status
the route layer answers with. Services raise these; the route layer and
`services.results.run_operation` turn them into failure envelopes.
"""

from __future__ import annotations


class OperationError(Exception):
    """Base class for typed operation failures."""

    error_code = "OPERATION_FAILED"
    http_status = 400
    default_message = "Operation failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class AuthenticationRequiredError(OperationError):
    """No resolvable principal."""

    error_code = "UNAUTHENTICATED"
    http_status = 401
    default_message = "Authentication required"


class PermissionDeniedError(OperationError):
    """Principal resolved but lacks the role, is not an employee, or is inactive."""

    error_code = "UNAUTHORIZED"
    http_status = 403
    default_message = "Permission denied"


class NotFoundError(OperationError):
    error_code = "NOT_FOUND"
    http_status = 404
    default_message = "Not found"


class PreconditionFailedError(OperationError):
    """Wrong source state or a required prior step is missing."""

    error_code = "PRECONDITION_FAILED"
    http_status = 409
    default_message = "Precondition failed"


class ValidationError(OperationError):
    """Malformed payload."""

    error_code = "VALIDATION_FAILED"
    http_status = 400
    default_message = "Invalid input"


class ConflictError(OperationError):
    """A concurrent transition committed first."""

    error_code = "CONFLICT"
    http_status = 409
    default_message = "The order was changed by someone else. Refresh and try again."


class ExternalDependencyError(OperationError):
    """Store or identity provider failed for infrastructure reasons."""

    error_code = "EXTERNAL_DEPENDENCY_FAILURE"
    http_status = 503
    default_message = "A dependent service is unavailable. Try again later."
