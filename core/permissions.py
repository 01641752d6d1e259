"""
Role based permission classes.
"""
from rest_framework.permissions import BasePermission

ADMIN_ROLES = {"super", "admin"}
CLINICAL_ROLES = {"super", "admin", "doctor"}
STAFF_ROLES = {"super", "admin", "doctor", "nurse", "analyst"}


def _has_role(request, roles) -> bool:
    user = getattr(request, "user", None)
    return bool(
        user and user.is_authenticated
        and getattr(user, "status", "active") == "active"
        and getattr(user, "role", None) in roles
    )


class IsAdminRole(BasePermission):
    """Allow access only to super and facility administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _has_role(request, ADMIN_ROLES)


class IsClinicalRole(BasePermission):
    """Roles that may validate assessments and act on referrals."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _has_role(request, CLINICAL_ROLES)


class IsStaff(BasePermission):
    """Any active staff account."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _has_role(request, STAFF_ROLES)
