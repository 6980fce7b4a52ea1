"""Static role -> permission table.

Three tiers:

- ``user``: reps, production crew, office staff and virtual assistants.
- ``manager``: sales managers and HR/IT. Full commission visibility but no
  approval power.
- ``admin``: owners and accounting. Full access.

Departments route notifications only and are independent of the tier.
Never hard-code role checks elsewhere: ask ``can(role, key)``.
"""
from __future__ import annotations

from typing import Iterable

# Every action in the app lives here.
PERMISSION_KEYS = (
    # Commissions
    "submitCommission",
    "viewOwnCommissions",
    "viewAllCommissions",
    "approveCommission",
    "denyCommission",
    "markCommissionPaid",
    "deleteCommission",
    # Playbook / SOPs
    "viewSalesSOPs",
    "viewProductionSOPs",
    "viewAccountingSOPs",
    "editSOPs",
    "uploadSOPVersion",
    # Production
    "viewProductionSchedule",
    "editProductionSchedule",
    "viewWarrantyTracker",
    "submitWarranty",
    "updateWarrantyStatus",
    "closeWarranty",
    # Training & onboarding
    "viewOwnTraining",
    "viewAllTraining",
    "uploadTrainingContent",
    # Users & admin panel
    "viewOwnProfile",
    "viewAllUsers",
    "assignRoles",
    "inviteUsers",
    "viewCredentialVault",
    "editCredentialVault",
    # Forms & requests
    "submitForms",
    "viewOwnForms",
    "viewAllForms",
    "approveFormRequests",
    # New hire onboarding
    "submitNewHireForm",
    "viewNewHireForms",
    "completeOnboardingChecklist",
    # OPS compliance
    "viewOPSCompliance",
    "issueWarning",
    "viewAuditLog",
    # Subcontractors / vendors
    "viewSubcontractors",
    "submitNewSubcontractor",
    "approveSubcontractor",
    # Dashboard
    "viewCommandCenter",
    "viewPaidDrawBalance",
    "viewAllStats",
    "viewTeamStats",
    "configureCommandCenter",
)

_USER_PERMISSIONS = (
    "submitCommission",
    "viewOwnCommissions",
    "viewSalesSOPs",
    "viewProductionSchedule",
    "viewWarrantyTracker",
    "submitWarranty",
    "viewOwnTraining",
    "viewOwnProfile",
    "submitForms",
    "viewOwnForms",
    "viewCommandCenter",
    "configureCommandCenter",
)

_MANAGER_PERMISSIONS = (
    "submitCommission",
    "viewOwnCommissions",
    "viewAllCommissions",  # read-only
    "viewSalesSOPs",
    "viewProductionSOPs",
    "viewProductionSchedule",
    "editProductionSchedule",
    "viewWarrantyTracker",
    "submitWarranty",
    "updateWarrantyStatus",
    "viewOwnTraining",
    "viewOwnProfile",
    "submitForms",
    "viewOwnForms",
    "viewNewHireForms",
    "completeOnboardingChecklist",
    "viewSubcontractors",
    "submitNewSubcontractor",
    "viewCommandCenter",
    "viewTeamStats",
    "configureCommandCenter",
)

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "user": frozenset(_USER_PERMISSIONS),
    "manager": frozenset(_MANAGER_PERMISSIONS),
    "admin": frozenset(PERMISSION_KEYS),
}

ROLE_LABELS = {
    "user": "User",
    "manager": "Manager",
    "admin": "Admin",
}

ALL_ROLES = ("user", "manager", "admin")


def _check_key(permission: str) -> None:
    if permission not in PERMISSION_KEYS:
        raise KeyError(f"Unknown permission key: {permission!r}")


def can(role: str | None, permission: str) -> bool:
    """Return True when *role* grants *permission*.

    A missing or unknown role grants nothing. An unknown permission key is a
    programming error and raises ``KeyError``.
    """
    _check_key(permission)
    if not role:
        return False
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def can_all(role: str | None, permissions: Iterable[str]) -> bool:
    return all(can(role, p) for p in permissions)


def can_any(role: str | None, permissions: Iterable[str]) -> bool:
    return any(can(role, p) for p in permissions)


def get_permissions(role: str | None) -> list[str]:
    """Return the permission keys of *role* in declaration order."""
    granted = ROLE_PERMISSIONS.get(role or "", frozenset())
    return [key for key in PERMISSION_KEYS if key in granted]


def user_can(user, permission: str) -> bool:
    """``can()`` for a user instance; inactive or anonymous users get nothing."""
    _check_key(permission)
    if user is None or not getattr(user, "is_authenticated", False):
        return False
    if not getattr(user, "is_active", False):
        return False
    if getattr(user, "is_superuser", False):
        return True
    return can(getattr(user, "role", None), permission)


def require_permission(user, permission: str) -> None:
    """Raise ``PermissionError`` unless *user* holds *permission*."""
    if not user_can(user, permission):
        raise PermissionError(f"Missing permission: {permission}")
