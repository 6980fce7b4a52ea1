"""User administration services: onboarding approval, roles and reporting lines."""

from __future__ import annotations

import logging

from django.db import transaction

from accounts.models import User
from accounts.permissions import require_permission
from core.audit import log_audit
from core.email import build_frontend_url, send_branded_email

logger = logging.getLogger("roofpro")


def _snapshot(user: User) -> dict:
    return {
        "role": user.role,
        "department": user.department,
        "employment_status": user.employment_status,
        "is_active": user.is_active,
        "manager_id": str(user.manager_id) if user.manager_id else None,
    }


def _locked(user: User) -> User:
    return User.objects.select_for_update().get(pk=user.pk)


def send_account_approved_email(user: User) -> int:
    return send_branded_email(
        subject="Your TSM Roof Pro Hub account is approved",
        template_name="emails/account_approved",
        context={"greeting": user.display_name, "login_url": build_frontend_url("/auth")},
        recipient_list=[user.email],
        fail_silently=True,
    )


def notify_admins_of_signup(user: User) -> None:
    """Queue the pending-account alert once the signup is committed."""
    from accounts.tasks import notify_new_signup

    user_id = str(user.pk)
    transaction.on_commit(lambda: notify_new_signup.delay(user_id))



@transaction.atomic
def approve_user(user: User, *, actor, role: str | None = None, department: str | None = None) -> User:
    """Move a pending signup to active, optionally assigning role/department."""
    require_permission(actor, "assignRoles")
    locked = _locked(user)
    if locked.employment_status != User.EmploymentStatus.PENDING:
        raise ValueError("Only pending accounts can be approved.")

    before = _snapshot(locked)
    locked.employment_status = User.EmploymentStatus.ACTIVE
    locked.is_active = True
    if role:
        if role not in User.Role.values:
            raise ValueError(f"Unknown role: {role}")
        locked.role = role
    if department:
        if department not in User.Department.values:
            raise ValueError(f"Unknown department: {department}")
        locked.department = department
    locked.save(update_fields=["employment_status", "is_active", "role", "department"])

    log_audit(actor=actor, action="user.approve", entity=locked, before=before, after=_snapshot(locked))
    transaction.on_commit(lambda: send_account_approved_email(locked))
    return locked


@transaction.atomic
def reject_user(user: User, *, actor, reason: str = "") -> User:
    require_permission(actor, "assignRoles")
    locked = _locked(user)
    if locked.employment_status != User.EmploymentStatus.PENDING:
        raise ValueError("Only pending accounts can be rejected.")

    before = _snapshot(locked)
    locked.employment_status = User.EmploymentStatus.REJECTED
    locked.is_active = False
    locked.save(update_fields=["employment_status", "is_active"])
    after = _snapshot(locked)
    after["reason"] = reason
    log_audit(actor=actor, action="user.reject", entity=locked, before=before, after=after)
    return locked


@transaction.atomic
def deactivate_user(user: User, *, actor) -> User:
    """Offboard a user: they can no longer sign in, history is kept."""
    require_permission(actor, "assignRoles")
    if user.pk == actor.pk:
        raise ValueError("You cannot deactivate your own account.")
    locked = _locked(user)
    before = _snapshot(locked)
    locked.is_active = False
    locked.employment_status = User.EmploymentStatus.INACTIVE
    locked.save(update_fields=["is_active", "employment_status"])
    log_audit(actor=actor, action="user.deactivate", entity=locked, before=before, after=_snapshot(locked))
    return locked


@transaction.atomic
def reactivate_user(user: User, *, actor) -> User:
    require_permission(actor, "assignRoles")
    locked = _locked(user)
    if locked.employment_status == User.EmploymentStatus.ACTIVE and locked.is_active:
        raise ValueError("This account is already active.")
    before = _snapshot(locked)
    locked.is_active = True
    locked.employment_status = User.EmploymentStatus.ACTIVE
    locked.save(update_fields=["is_active", "employment_status"])
    log_audit(actor=actor, action="user.reactivate", entity=locked, before=before, after=_snapshot(locked))
    return locked


@transaction.atomic
def assign_role(user: User, *, actor, role: str, department: str | None = None) -> User:
    require_permission(actor, "assignRoles")
    if role not in User.Role.values:
        raise ValueError(f"Unknown role: {role}")
    if department is not None and department and department not in User.Department.values:
        raise ValueError(f"Unknown department: {department}")
    if user.pk == actor.pk and role != User.Role.ADMIN:
        raise ValueError("You cannot remove your own admin role.")

    locked = _locked(user)
    before = _snapshot(locked)
    locked.role = role
    if department is not None:
        locked.department = department
    locked.save(update_fields=["role", "department"])
    log_audit(actor=actor, action="user.assign_role", entity=locked, before=before, after=_snapshot(locked))
    logger.info("Role changed: %s -> %s by %s", locked.email, role, actor)
    return locked


@transaction.atomic
def assign_manager(user: User, *, actor, manager: User | None) -> User:
    """Set (or clear) the manager a user reports to.

    Commission submission requires a manager, so this is usually the last
    onboarding step for a new rep.
    """
    require_permission(actor, "assignRoles")
    if manager is not None:
        if manager.pk == user.pk:
            raise ValueError("A user cannot be their own manager.")
        if manager.role not in (User.Role.MANAGER, User.Role.ADMIN):
            raise ValueError("The assigned manager must have the manager or admin role.")
        if not manager.is_active:
            raise ValueError("The assigned manager account is inactive.")

    locked = _locked(user)
    before = _snapshot(locked)
    locked.manager = manager
    locked.save(update_fields=["manager"])
    log_audit(actor=actor, action="user.assign_manager", entity=locked, before=before, after=_snapshot(locked))
    return locked
