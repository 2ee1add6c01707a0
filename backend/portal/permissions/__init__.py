# Overview: Permission system package.
# Re-exports all public APIs for portal imports.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    FULFILLMENT_PERMISSIONS,
    DELIVERY_PERMISSIONS,
    CASH_PERMISSIONS,
    REPORTING_PERMISSIONS,
    STAFF_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, EmployeeRole, EmployeeStatus
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    validate_permission_code,
    parse_role,
    role_has_permission,
    roles_with_permission,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "FULFILLMENT_PERMISSIONS",
    "DELIVERY_PERMISSIONS",
    "CASH_PERMISSIONS",
    "REPORTING_PERMISSIONS",
    "STAFF_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "EmployeeRole",
    "EmployeeStatus",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_permission_code",
    "parse_role",
    "role_has_permission",
    "roles_with_permission",
]
