# Overview: Flask API routes for admin user management; parses input and returns JSON responses.

"""
Admin API Routes

SECURITY:
- Admin status is re-derived from the identity provider on every request
  (primary email listed in ADMIN_EMAILS)
- Admins cannot delete their own account
- Deletion of one target never stops the others in a bulk request
"""

from flask import Blueprint, g, request

from ..decorators import api_operation, require_admin, require_auth
from ..errors import ValidationError
from ..responses import json_body
from ..services import user_deletion_service


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


@admin_bp.get("/users")
@require_auth
@require_admin
@api_operation("Users loaded")
def list_users_route():
    """
    Identity provider users, newest first.

    Query params: limit (1-100, default 10), offset (default 0), query
    """
    return user_deletion_service.list_identity_users(
        g.identity_id,
        limit=_int_arg("limit", 10),
        offset=_int_arg("offset", 0),
        query=request.args.get("query"),
    )


@admin_bp.delete("/users")
@require_auth
@require_admin
@api_operation("Users deleted")
def delete_users_route():
    """
    Delete users from the identity provider and the store.

    Request body: {"user_ids": ["user_abc", "user_def"]}

    Returns 200 with per-user results even when some targets fail; each
    result carries identity_deleted, store_deleted, deleted_counts, errors.
    """
    data = json_body()
    return user_deletion_service.delete_users(g.identity_id, data.get("user_ids"))


@admin_bp.delete("/users/<string:identity_id>")
@require_auth
@require_admin
@api_operation("User deleted")
def delete_user_route(identity_id: str):
    report = user_deletion_service.delete_user(g.identity_id, identity_id)
    return {
        "message": "User deleted" if report.succeeded else "Nothing was deleted",
        "result": report.to_dict(),
    }


@admin_bp.delete("/users/<string:identity_id>/store-data")
@require_auth
@require_admin
@api_operation("User and related data deleted from the store")
def delete_store_data_route(identity_id: str):
    """Remove a user's store records only; the identity provider account stays."""
    outcome = user_deletion_service.delete_store_data(g.identity_id, identity_id)
    return {"user": outcome["user"], "deleted_counts": outcome["deleted_counts"]}
