# Overview: Lookups over the permission definitions and role tables.

from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS, ROLE_PORTALS

PERMISSION_CODES = frozenset(code for code, _name, _description, _category in PERMISSION_DEFINITIONS)


def validate_permission_code(code):
    return code in PERMISSION_CODES


def describe_permission(code):
    """Definition of a permission code as a dict, or None if the code is unknown."""
    for perm_code, name, description, category in PERMISSION_DEFINITIONS:
        if perm_code == code:
            return {"code": perm_code, "name": name, "description": description, "category": category}
    return None


def get_role_permissions(role):
    """Permission codes granted to a role (empty set for unknown roles)."""
    return frozenset(DEFAULT_ROLE_PERMISSIONS.get(role, ()))


def get_role_portal(role):
    """Portal a role lands in, or None for unknown roles."""
    return ROLE_PORTALS.get(role)
