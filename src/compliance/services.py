"""Compliance services: SOP acknowledgment gate, holds, violations and escalations."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from accounts.permissions import require_permission
from compliance.exceptions import ComplianceBlocked
from compliance.models import (
    ComplianceAuditLog,
    ComplianceEscalation,
    ComplianceHold,
    ComplianceViolation,
    MasterSOPAcknowledgment,
    SOPAcknowledgment,
)
from compliance.sops import (
    GOVERNED_ACTIONS,
    MASTER_SOP_COUNT,
    SOP_MASTER_KEY,
    current_sop_version,
    get_master_sop,
)

logger = logging.getLogger("roofpro")


def _notify_hold(hold: ComplianceHold, action: str) -> None:
    if not hold.user_id:
        return
    from compliance.tasks import send_hold_notification

    hold_id = str(hold.pk)
    transaction.on_commit(lambda: send_hold_notification.delay(hold_id, action))


def _notify_violation(violation: ComplianceViolation) -> None:
    if not violation.user_id:
        return
    from compliance.tasks import send_violation_notification

    violation_id = str(violation.pk)
    transaction.on_commit(lambda: send_violation_notification.delay(violation_id))


@dataclass(frozen=True)
class HoldCheckResult:
    """Outcome of a hold lookup; ``blocked`` is False when no active hold matches."""

    blocked: bool
    reason: str | None = None
    hold_id: str | None = None
    hold_type: str | None = None

    def raise_if_blocked(self, action: str):
        if self.blocked:
            raise ComplianceBlocked(
                f"{action} is blocked by an active compliance hold: {self.reason}",
                code=ComplianceBlocked.HOLD_ACTIVE,
                hold_id=self.hold_id,
                hold_type=self.hold_type,
            )


NO_HOLD = HoldCheckResult(blocked=False)


@dataclass
class MasterSOPStatus:
    version: str
    completed: int
    total: int
    acknowledged_numbers: list[int] = field(default_factory=list)

    @property
    def all_completed(self) -> bool:
        return self.completed >= self.total


def write_compliance_audit(*, actor, action: str, target_type: str, target_id, metadata=None):
    return ComplianceAuditLog.objects.create(
        actor=actor,
        action=action,
        target_type=target_type,
        target_id=str(target_id),
        metadata=metadata or {},
    )


# ---------------------------------------------------------------------------
# Holds
# ---------------------------------------------------------------------------

def _first_hold(qs) -> HoldCheckResult:
    hold = qs.order_by("created_at").first()
    if hold is None:
        return NO_HOLD
    return HoldCheckResult(
        blocked=True,
        reason=hold.reason,
        hold_id=str(hold.pk),
        hold_type=hold.hold_type,
    )


def _active_holds(hold_type):
    return ComplianceHold.objects.filter(hold_type=hold_type, status=ComplianceHold.Status.ACTIVE)


def check_commission_hold(job_id: str | None = None, user=None) -> HoldCheckResult:
    """Active commission hold on the job OR on the user."""
    if not job_id and user is None:
        return NO_HOLD
    condition = Q()
    if job_id:
        condition |= Q(job_id=job_id)
    if user is not None:
        condition |= Q(user=user)
    return _first_hold(_active_holds(ComplianceHold.HoldType.COMMISSION).filter(condition))


def check_invoice_hold(job_id: str | None) -> HoldCheckResult:
    if not job_id:
        return NO_HOLD
    return _first_hold(_active_holds(ComplianceHold.HoldType.INVOICE).filter(job_id=job_id))


def check_scheduling_hold(job_id: str | None) -> HoldCheckResult:
    if not job_id:
        return NO_HOLD
    return _first_hold(_active_holds(ComplianceHold.HoldType.SCHEDULING).filter(job_id=job_id))


def check_access_hold(user) -> HoldCheckResult:
    if user is None:
        return NO_HOLD
    return _first_hold(_active_holds(ComplianceHold.HoldType.ACCESS).filter(user=user))


@transaction.atomic
def place_hold(*, actor, hold_type: str, reason: str, user=None, job_id: str = "", violation=None) -> ComplianceHold:
    require_permission(actor, "viewOPSCompliance")
    if hold_type not in ComplianceHold.HoldType.values:
        raise ValueError(f"Unknown hold type: {hold_type}")
    reason = (reason or "").strip()
    if not reason:
        raise ValueError("A reason is required to place a hold.")
    job_id = (job_id or "").strip()
    if user is None and not job_id:
        raise ValueError("A hold must target a user or a job.")

    hold = ComplianceHold.objects.create(
        hold_type=hold_type,
        user=user,
        job_id=job_id,
        reason=reason,
        violation=violation,
        created_by=actor,
    )
    if violation is not None and violation.status == ComplianceViolation.Status.OPEN:
        violation.status = ComplianceViolation.Status.BLOCKED
        violation.save(update_fields=["status", "updated_at"])

    write_compliance_audit(
        actor=actor,
        action="place_hold",
        target_type="hold",
        target_id=hold.pk,
        metadata={"hold_type": hold_type, "job_id": job_id, "user_id": str(user.pk) if user else None},
    )
    _notify_hold(hold, "applied")
    logger.info("Compliance hold placed: %s job=%s user=%s by %s", hold_type, job_id or "-", user, actor)
    return hold


@transaction.atomic
def release_hold(hold: ComplianceHold, *, actor, notes: str = "") -> ComplianceHold:
    require_permission(actor, "viewOPSCompliance")
    locked = ComplianceHold.objects.select_for_update().get(pk=hold.pk)
    if locked.status != ComplianceHold.Status.ACTIVE:
        raise ValueError("This hold has already been released.")

    locked.status = ComplianceHold.Status.RELEASED
    locked.released_by = actor
    locked.released_at = timezone.now()
    locked.release_notes = (notes or "").strip()
    locked.save(update_fields=["status", "released_by", "released_at", "release_notes", "updated_at"])

    write_compliance_audit(
        actor=actor,
        action="release_hold",
        target_type="hold",
        target_id=locked.pk,
        metadata={"hold_type": locked.hold_type, "notes": locked.release_notes},
    )
    _notify_hold(locked, "released")
    logger.info("Compliance hold released: %s by %s", locked.pk, actor)
    return locked


# ---------------------------------------------------------------------------
# Violations & escalations
# ---------------------------------------------------------------------------

@transaction.atomic
def record_violation(
    *,
    violation_type: str,
    description: str,
    severity: str = ComplianceViolation.Severity.MINOR,
    sop_key: str = "",
    user=None,
    job_id: str = "",
    actor=None,
    enforce_permission: bool = True,
) -> ComplianceViolation:
    """Open a violation.

    System-detected violations (e.g. low margin at submission) pass
    ``enforce_permission=False`` since no human issued them.
    """
    if enforce_permission:
        require_permission(actor, "issueWarning")
    if severity not in ComplianceViolation.Severity.values:
        raise ValueError(f"Unknown severity: {severity}")
    if not (description or "").strip():
        raise ValueError("A description is required.")

    violation = ComplianceViolation.objects.create(
        violation_type=violation_type,
        description=description.strip(),
        severity=severity,
        sop_key=sop_key,
        user=user,
        job_id=job_id or "",
        detected_by=actor,
    )
    write_compliance_audit(
        actor=actor,
        action="record_violation",
        target_type="violation",
        target_id=violation.pk,
        metadata={"severity": severity, "sop_key": sop_key, "violation_type": violation_type},
    )
    _notify_violation(violation)
    logger.info("Compliance violation recorded: [%s] %s user=%s job=%s", severity, violation_type, user, job_id or "-")
    return violation


@transaction.atomic
def resolve_violation(violation: ComplianceViolation, *, actor, notes: str = "") -> ComplianceViolation:
    require_permission(actor, "issueWarning")
    locked = ComplianceViolation.objects.select_for_update().get(pk=violation.pk)
    if locked.status == ComplianceViolation.Status.RESOLVED:
        raise ValueError("This violation is already resolved.")
    locked.status = ComplianceViolation.Status.RESOLVED
    locked.resolved_by = actor
    locked.resolved_at = timezone.now()
    locked.resolution_notes = (notes or "").strip()
    locked.save(update_fields=["status", "resolved_by", "resolved_at", "resolution_notes", "updated_at"])
    write_compliance_audit(actor=actor, action="resolve_violation", target_type="violation", target_id=locked.pk)
    return locked


@transaction.atomic
def escalate_violation(violation: ComplianceViolation, *, actor, escalated_to=None, notes: str = "") -> ComplianceEscalation:
    require_permission(actor, "viewOPSCompliance")
    if violation.status == ComplianceViolation.Status.RESOLVED:
        raise ValueError("Resolved violations cannot be escalated.")
    escalation = ComplianceEscalation.objects.create(
        violation=violation,
        escalated_by=actor,
        escalated_to=escalated_to,
        notes=(notes or "").strip(),
    )
    write_compliance_audit(
        actor=actor,
        action="escalate_violation",
        target_type="violation",
        target_id=violation.pk,
        metadata={"escalation_id": str(escalation.pk)},
    )
    return escalation


@transaction.atomic
def resolve_escalation(escalation: ComplianceEscalation, *, actor, notes: str = "") -> ComplianceEscalation:
    require_permission(actor, "viewOPSCompliance")
    locked = ComplianceEscalation.objects.select_for_update().get(pk=escalation.pk)
    if locked.status != ComplianceEscalation.Status.PENDING:
        raise ValueError("This escalation is already resolved.")
    locked.status = ComplianceEscalation.Status.RESOLVED
    locked.resolved_at = timezone.now()
    locked.resolution_notes = (notes or "").strip()
    locked.save(update_fields=["status", "resolved_at", "resolution_notes", "updated_at"])
    write_compliance_audit(actor=actor, action="resolve_escalation", target_type="escalation", target_id=locked.pk)
    return locked


# ---------------------------------------------------------------------------
# SOP acknowledgment gate
# ---------------------------------------------------------------------------

def has_acknowledged_current_sop(user) -> bool:
    if user is None or not getattr(user, "is_authenticated", False):
        return False
    return SOPAcknowledgment.objects.filter(
        user=user,
        sop_key=SOP_MASTER_KEY,
        version=current_sop_version(),
    ).exists()


@transaction.atomic
def acknowledge_sop(user, *, method: str = SOPAcknowledgment.Method.CHECKBOX) -> SOPAcknowledgment:
    """Record the user's acknowledgment of the current playbook version.

    Acknowledging twice returns the existing row.
    """
    if method not in SOPAcknowledgment.Method.values:
        raise ValueError(f"Unknown acknowledgment method: {method}")
    version = current_sop_version()
    ack, created = SOPAcknowledgment.objects.get_or_create(
        user=user,
        sop_key=SOP_MASTER_KEY,
        version=version,
        defaults={"acknowledgment_method": method},
    )
    if created:
        write_compliance_audit(
            actor=user,
            action="acknowledge_sop",
            target_type="sop",
            target_id=SOP_MASTER_KEY,
            metadata={"version": version, "method": method},
        )
        logger.info("SOP acknowledged: %s %s by %s", SOP_MASTER_KEY, version, user)
    return ack


def get_master_sop_status(user) -> MasterSOPStatus:
    version = current_sop_version()
    numbers = sorted(
        MasterSOPAcknowledgment.objects.filter(user=user, sop_version=version)
        .values_list("sop_number", flat=True)
    )
    return MasterSOPStatus(
        version=version,
        completed=len(numbers),
        total=MASTER_SOP_COUNT,
        acknowledged_numbers=numbers,
    )


def acknowledge_master_sop(user, sop_number: int) -> MasterSOPStatus:
    """Acknowledge one numbered SOP; completing all of them satisfies the gate."""
    sop = get_master_sop(int(sop_number))
    version = current_sop_version()
    try:
        with transaction.atomic():
            MasterSOPAcknowledgment.objects.create(user=user, sop_number=sop.number, sop_version=version)
            write_compliance_audit(
                actor=user,
                action="acknowledge_master_sop",
                target_type="sop",
                target_id=sop.code,
                metadata={"sop_number": sop.number, "version": version},
            )
    except IntegrityError:
        logger.debug("Master SOP %s already acknowledged by %s", sop.code, user)

    status = get_master_sop_status(user)
    if status.all_completed:
        acknowledge_sop(user)
    return status


def guard_governed_action(user, action: str) -> None:
    """Raise ``ComplianceBlocked`` unless *user* may perform *action*."""
    if action not in GOVERNED_ACTIONS:
        raise ValueError(f"Unknown governed action: {action}")
    if not has_acknowledged_current_sop(user):
        raise ComplianceBlocked(
            "You must acknowledge the current master playbook before performing this action.",
            code=ComplianceBlocked.SOP_REQUIRED,
            action=action,
            version=current_sop_version(),
        )


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

def unacknowledged_active_users():
    User = get_user_model()
    acknowledged_ids = SOPAcknowledgment.objects.filter(
        sop_key=SOP_MASTER_KEY,
        version=current_sop_version(),
    ).values("user_id")
    return (
        User.objects
        .filter(is_active=True, employment_status=User.EmploymentStatus.ACTIVE)
        .exclude(pk__in=acknowledged_ids)
    )


def compliance_dashboard_counts() -> dict:
    return {
        "open_violations": ComplianceViolation.objects.filter(
            status__in=[ComplianceViolation.Status.OPEN, ComplianceViolation.Status.BLOCKED],
        ).count(),
        "active_holds": ComplianceHold.objects.filter(status=ComplianceHold.Status.ACTIVE).count(),
        "pending_escalations": ComplianceEscalation.objects.filter(
            status=ComplianceEscalation.Status.PENDING,
        ).count(),
        "unacknowledged_users": unacknowledged_active_users().count(),
    }
