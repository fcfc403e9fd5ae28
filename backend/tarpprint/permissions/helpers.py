# Overview: Utility functions for permission lookups and role capabilities.

from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS, CUSTOMER_NAVIGATION, BACK_OFFICE_NAVIGATION


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()


def get_role_permissions(role: str) -> frozenset:
    """Permission codes granted to a role; unknown roles get nothing."""
    return DEFAULT_ROLE_PERMISSIONS.get(role, frozenset())


def get_capabilities(role: str) -> dict:
    """
    Everything a client needs to gate its UI for a role.

    Pure function of the role, so clients evaluate it once per session
    instead of comparing role strings in every component.
    """
    permissions = get_role_permissions(role)
    base = CUSTOMER_NAVIGATION if role == "customer" else BACK_OFFICE_NAVIGATION
    navigation = [
        {"to": path, "label": label}
        for path, label, required in base
        if required is None or required in permissions
    ]
    return {
        "role": role,
        "permissions": sorted(permissions),
        "navigation": navigation,
    }
