# Overview: Utility functions for permission lookups and validation.

from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS, EmployeeRole


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_permissions_by_category(category):
    """Get all permissions in a category."""
    return [perm for perm in PERMISSION_DEFINITIONS if perm[3] == category]


def get_permission_definition(code):
    """Get full definition for a permission code."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == code:
            return {
                "code": perm[0],
                "name": perm[1],
                "description": perm[2],
                "category": perm[3],
            }
    return None


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()


def parse_role(value):
    """EmployeeRole for a stored role string, or None when unknown."""
    if isinstance(value, EmployeeRole):
        return value
    try:
        return EmployeeRole(value)
    except ValueError:
        return None


def role_has_permission(role, code):
    role = parse_role(role)
    if role is None:
        return False
    return code in DEFAULT_ROLE_PERMISSIONS.get(role, set())


def roles_with_permission(code):
    """Roles granted a permission, in declaration order."""
    return [role for role in EmployeeRole if code in DEFAULT_ROLE_PERMISSIONS[role]]
