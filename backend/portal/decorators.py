# Overview: Request decorators resolving the caller through the identity provider.

from functools import wraps

from flask import current_app, g, request

from .errors import (
    AuthenticationRequiredError,
    ExternalDependencyError,
    OperationError,
)
from .responses import failure, result_response
from .services import employee_service
from .services.identity_provider import IdentityProviderError, get_identity_provider
from .services.results import run_operation
from .services.user_deletion_service import verify_admin


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def resolve_identity() -> str | None:
    """
    Identity id for the request's bearer token, or None.

    Raises IdentityProviderError when the provider cannot be reached.
    """
    token = _bearer_token()
    if not token:
        return None
    return get_identity_provider().verify_token(token)


def require_auth(f):
    """
    Require a bearer token the identity provider accepts.

    Sets g.identity_id.

    Returns 401 if the header is missing or the token is rejected, 503 if
    the identity provider is unavailable.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            identity_id = resolve_identity()
        except IdentityProviderError:
            current_app.logger.exception("Token verification failed")
            return failure(ExternalDependencyError())

        if not identity_id:
            return failure(AuthenticationRequiredError("Invalid or missing token"))

        g.identity_id = identity_id
        return f(*args, **kwargs)

    return decorated_function


def require_employee(f):
    """
    Require an active employee. Must follow @require_auth.

    Sets g.employee (EmployeeContext). Role checks happen inside each
    service operation.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            g.employee = employee_service.resolve_employee(getattr(g, "identity_id", None))
        except OperationError as e:
            if e.http_status == 403:
                current_app.logger.warning(
                    "Employee access denied for %s on %s: %s",
                    getattr(g, "identity_id", None),
                    request.path,
                    e.message,
                )
            return failure(e)
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Require an admin caller. Must follow @require_auth.

    Admin status comes from the identity provider's record of the caller's
    primary email, never from the request.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            g.admin_email = verify_admin(getattr(g, "identity_id", None))
        except OperationError as e:
            return failure(e)
        except IdentityProviderError:
            current_app.logger.exception("Admin check failed")
            return failure(ExternalDependencyError())
        return f(*args, **kwargs)

    return decorated_function


def api_operation(message):
    """
    Run the view through run_operation and answer with its envelope.

    The view returns the payload dict spread into the success body. A
    "message" key in that payload overrides the default `message`.
    Failures come back as {"success": false, "error", "message"}.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            return result_response(run_operation(f, *args, message=message, **kwargs))

        return decorated_function

    return decorator
