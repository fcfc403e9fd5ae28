# Overview: Service-layer operations for permission; role-based checks and denial logging.

"""
Permission Checking

WHY: Enforce role-based access control and create an audit trail of denials.

DESIGN PRINCIPLES:
- Fail closed: deny by default, unknown roles hold nothing
- Log denials only: permission grants are not logged
- Roles are fixed (customer, staff, admin); the role -> permission table
  lives in tarpprint.permissions and never touches the database
"""

from ..models import User
from ..permissions import get_role_permissions
from . import audit_service


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def get_user_permissions(user: User) -> frozenset:
    if not user or not user.is_active:
        return frozenset()
    return get_role_permissions(user.role)


def user_has_permission(user: User, permission_code: str) -> bool:
    """Core permission check. Used by decorators and in-route ownership checks."""
    return permission_code in get_user_permissions(user)


def log_permission_denied(user: User | None, permission_code: str, resource: str | None = None) -> None:
    audit_service.record(
        "PERMISSION_DENIED",
        "permissions",
        None,
        actor=user,
        new_values={"permission": permission_code, "resource": resource},
    )


def require_permission(user: User, permission_code: str, resource: str | None = None) -> None:
    """
    Raise PermissionDeniedError if the user lacks the permission.

    Denials are written to the audit log as PERMISSION_DENIED.
    """
    if user_has_permission(user, permission_code):
        return
    log_permission_denied(user, permission_code, resource)
    raise PermissionDeniedError(
        f"Role '{user.role if user else 'anonymous'}' lacks permission {permission_code}"
    )
