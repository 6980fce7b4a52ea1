"""Commission services: tiers, documents and the submission approval workflow.

Every state change goes through this module so that permission checks,
compliance gates, status logs and notifications happen in one place.
"""
from __future__ import annotations

import datetime as dt
import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from accounts.permissions import require_permission, user_can
from commissions.calculations import (
    apply_tier_drop,
    calculate_margin,
    calculate_override,
    calculate_tier_drops,
    calculate_document_totals,
    to_decimal,
    validate_commission_document,
)
from commissions.models import (
    CALCULATION_INPUT_FIELDS,
    CommissionDocument,
    CommissionRevisionLog,
    CommissionStatusLog,
    CommissionSubmission,
    CommissionTier,
    DeniedJobNumber,
    JobType,
    ManagerOverride,
    OverrideTracking,
    RoofType,
    UserCommissionTier,
)
from commissions.paydates import calculate_scheduled_pay_date
from compliance.models import ComplianceViolation
from compliance.services import check_commission_hold, guard_governed_action, record_violation
from core.audit import log_audit

logger = logging.getLogger("roofpro")

Status = CommissionSubmission.Status
Stage = CommissionSubmission.Stage

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    Status.PENDING_REVIEW: frozenset({Status.APPROVED, Status.REJECTED, Status.DENIED}),
    Status.REJECTED: frozenset({Status.PENDING_REVIEW, Status.DENIED}),
    Status.APPROVED: frozenset({Status.PAID, Status.DENIED}),
    Status.DENIED: frozenset(),
    Status.PAID: frozenset(),
}

DocStatus = CommissionDocument.Status

DOCUMENT_TRANSITIONS: dict[str, frozenset[str]] = {
    DocStatus.DRAFT: frozenset({DocStatus.SUBMITTED}),
    DocStatus.SUBMITTED: frozenset({DocStatus.APPROVED, DocStatus.REJECTED}),
    DocStatus.REJECTED: frozenset({DocStatus.DRAFT, DocStatus.SUBMITTED}),
    DocStatus.APPROVED: frozenset(),
}

MANAGER_REQUIRED_MESSAGE = "MANAGER_REQUIRED: You must have a manager assigned before submitting commissions."

SUBMISSION_INPUT_FIELDS = (
    "job_number",
    "job_name",
    "job_address",
    "job_type",
    "roof_type",
    "submission_type",
    "rep_role",
    "subcontractor_name",
    "sales_rep_name",
    "contract_date",
    "install_completion_date",
    "contract_amount",
    "supplements_approved",
    "commission_percentage",
    "is_flat_fee",
    "flat_fee_amount",
    "advances_paid",
    "commission_requested",
    "document",
)

DOCUMENT_INPUT_FIELDS = ("job_name_id", "job_date", "sales_rep", "job_type", "roof_type", "notes") + CALCULATION_INPUT_FIELDS


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def _assert_transition(submission: CommissionSubmission, target: str) -> None:
    if not can_transition(submission.status, target):
        raise ValueError(
            f"Cannot move a commission from '{submission.status}' to '{target}'."
        )


def _setting_decimal(name: str, default: str) -> Decimal:
    return to_decimal(getattr(settings, name, default), default=Decimal(default))


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------

_PERCENT_SPLIT_RE = re.compile(r"[,\s]+")


def parse_percent_list(raw) -> list[str]:
    """``"10, 12.5, 15"`` -> ``["0.1", "0.125", "0.15"]``.

    Values above 1 are read as whole-number percents. Lists are accepted
    as well as strings. Results are sorted, de-duplicated decimal strings.
    """
    if isinstance(raw, str):
        parts = [p for p in _PERCENT_SPLIT_RE.split(raw.strip()) if p]
    else:
        parts = list(raw or [])

    values = set()
    for part in parts:
        try:
            value = Decimal(str(part).strip().rstrip("%"))
        except InvalidOperation:
            raise ValueError(f"Invalid percentage: {part!r}") from None
        if value > 1:
            value = value / 100
        if value < 0 or value > 1:
            raise ValueError(f"Percentage out of range: {part!r}")
        values.add(value.normalize())
    return [format(v, "f") for v in sorted(values)]


def _tier_payload(data: dict) -> dict:
    payload = {}
    for key in ("name", "description", "sort_order", "is_active"):
        if key in data:
            payload[key] = data[key]
    if "allowed_op_percentages" in data:
        payload["allowed_op_percentages"] = parse_percent_list(data["allowed_op_percentages"])
        if not payload["allowed_op_percentages"]:
            raise ValueError("At least one O&P percentage is required.")
    if "allowed_profit_splits" in data:
        payload["allowed_profit_splits"] = parse_percent_list(data["allowed_profit_splits"])
        if not payload["allowed_profit_splits"]:
            raise ValueError("At least one profit split is required.")
    return payload


@transaction.atomic
def create_tier(*, actor, data: dict) -> CommissionTier:
    require_permission(actor, "assignRoles")
    payload = _tier_payload(data)
    name = (payload.get("name") or "").strip()
    if not name:
        raise ValueError("Tier name is required.")
    payload["name"] = name
    if CommissionTier.objects.filter(name__iexact=name).exists():
        raise ValueError(f"A tier named '{name}' already exists.")
    tier = CommissionTier.objects.create(**payload)
    log_audit(actor=actor, action="commission_tier.create", entity=tier, after=payload)
    return tier


@transaction.atomic
def update_tier(tier: CommissionTier, *, actor, data: dict) -> CommissionTier:
    require_permission(actor, "assignRoles")
    before = {
        "name": tier.name,
        "allowed_op_percentages": tier.allowed_op_percentages,
        "allowed_profit_splits": tier.allowed_profit_splits,
        "is_active": tier.is_active,
    }
    payload = _tier_payload(data)
    for key, value in payload.items():
        setattr(tier, key, value)
    tier.save()
    log_audit(actor=actor, action="commission_tier.update", entity=tier, before=before, after=payload)
    return tier


def get_user_tier(user) -> CommissionTier | None:
    assignment = (
        UserCommissionTier.objects.select_related("tier")
        .filter(user=user, tier__is_active=True)
        .first()
    )
    return assignment.tier if assignment else None


@transaction.atomic
def assign_user_tier(user, *, actor, tier: CommissionTier | None, notes: str = "") -> UserCommissionTier | None:
    """Upsert the rep's tier; ``tier=None`` removes the assignment."""
    require_permission(actor, "assignRoles")
    if tier is None:
        UserCommissionTier.objects.filter(user=user).delete()
        log_audit(actor=actor, action="commission_tier.unassign", entity=user)
        return None
    if not tier.is_active:
        raise ValueError("Inactive tiers cannot be assigned.")
    assignment, _ = UserCommissionTier.objects.update_or_create(
        user=user,
        defaults={"tier": tier, "assigned_by": actor, "notes": notes or ""},
    )
    log_audit(
        actor=actor,
        action="commission_tier.assign",
        entity=user,
        after={"tier": tier.name},
    )
    return assignment


# ---------------------------------------------------------------------------
# Margin gate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MarginGate:
    margin: Decimal
    minimum: Decimal
    drops: int
    requested_split: Decimal
    applied_split: Decimal

    @property
    def below_minimum(self) -> bool:
        return self.margin < self.minimum


def minimum_margin_for(job_type: str, roof_type: str = "") -> Decimal:
    """Insurance jobs use the configured minimum; retail tile 35%, other retail 30%."""
    if job_type == JobType.INSURANCE:
        return _setting_decimal("COMMISSION_MINIMUM_MARGIN", "0.40")
    if roof_type == RoofType.TILE:
        return Decimal("0.35")
    return Decimal("0.30")


def evaluate_margin_gate(document: CommissionDocument) -> MarginGate:
    """Work out how many tiers the rep drops on this job.

    Only reps with a tier are moved down; without one the requested split
    is kept. The only query is the lazy load of `document.tier`.
    """
    inputs = {f: getattr(document, f) for f in CALCULATION_INPUT_FIELDS}
    totals = calculate_document_totals(inputs)
    margin = calculate_margin(totals.net_profit, inputs["gross_contract_total"]).quantize(Decimal("0.0001"))
    minimum = minimum_margin_for(document.job_type, document.roof_type)
    drops = calculate_tier_drops(margin, minimum, _setting_decimal("COMMISSION_TIER_DROP_STEP", "0.05"))
    requested = to_decimal(document.rep_profit_percent)

    applied = requested
    tier = document.tier if document.tier_id else None
    if tier is not None and drops:
        applied = apply_tier_drop(requested, tier.profit_split_values, drops)
    return MarginGate(margin=margin, minimum=minimum, drops=drops, requested_split=requested, applied_split=applied)


def flag_low_margin(document: CommissionDocument, *, user, job_id: str = "") -> ComplianceViolation | None:
    """Open a MAJOR violation when an insurance job is under the minimum margin."""
    if document.job_type != JobType.INSURANCE:
        return None
    gate = evaluate_margin_gate(document)
    if not gate.below_minimum:
        return None
    return record_violation(
        violation_type="low_margin",
        severity=ComplianceViolation.Severity.MAJOR,
        sop_key="SOP-01",
        user=user,
        job_id=job_id or document.job_name_id[:64],
        description=(
            f"Job margin {gate.margin:.2%} is below the {gate.minimum:.0%} minimum; "
            f"rep dropped {gate.drops} tier(s)."
        ),
        actor=None,
        enforce_permission=False,
    )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

def _document_values(document: CommissionDocument | None, data: dict) -> dict:
    values = {}
    if document is not None:
        values = {f: getattr(document, f) for f in DOCUMENT_INPUT_FIELDS}
    values.update({k: v for k, v in data.items() if k in DOCUMENT_INPUT_FIELDS})
    return values


def _validate_document(values: dict) -> None:
    errors = validate_commission_document(values)
    if errors:
        raise ValueError("; ".join(errors))


def _ensure_document_owner(document: CommissionDocument, actor) -> None:
    if document.created_by_id != actor.pk and not user_can(actor, "approveCommission"):
        raise PermissionError("You can only change your own commission documents.")


@transaction.atomic
def create_document(*, actor, data: dict) -> CommissionDocument:
    require_permission(actor, "submitCommission")
    values = _document_values(None, data)
    _validate_document(values)
    document = CommissionDocument(created_by=actor, tier=get_user_tier(actor))
    for key, value in values.items():
        if value is not None:
            setattr(document, key, value)
    document.save()
    logger.info("Commission document created: %s by %s", document.pk, actor)
    return document


@transaction.atomic
def update_document(document: CommissionDocument, *, actor, data: dict) -> CommissionDocument:
    document = CommissionDocument.objects.select_for_update().get(pk=document.pk)
    _ensure_document_owner(document, actor)
    if not document.is_editable:
        raise ValueError("Only draft or rejected documents can be edited.")
    values = _document_values(document, data)
    _validate_document(values)
    for key, value in values.items():
        if value is None and key in CALCULATION_INPUT_FIELDS:
            value = Decimal("0")
        setattr(document, key, value)
    document.save()
    logger.info("Commission document updated: %s by %s", document.pk, actor)
    return document


@transaction.atomic
def delete_document(document: CommissionDocument, *, actor) -> None:
    """Owners may discard their own drafts; ``deleteCommission`` removes anything."""
    if not user_can(actor, "deleteCommission"):
        _ensure_document_owner(document, actor)
        if document.status != DocStatus.DRAFT:
            raise ValueError("Only draft documents can be deleted.")
    log_audit(
        actor=actor,
        action="commission_document.delete",
        entity=document,
        before={"job_name_id": document.job_name_id, "status": document.status},
    )
    document.delete()


@transaction.atomic
def update_document_status(document: CommissionDocument, *, actor, status: str, notes: str = "") -> CommissionDocument:
    """Move a document along draft -> submitted -> approved/rejected."""
    document = CommissionDocument.objects.select_for_update().get(pk=document.pk)
    if status not in DOCUMENT_TRANSITIONS.get(document.status, frozenset()):
        raise ValueError(f"Cannot move a document from '{document.status}' to '{status}'.")

    if status in (DocStatus.APPROVED, DocStatus.REJECTED):
        require_permission(actor, "approveCommission")
        document.approved_by = actor if status == DocStatus.APPROVED else None
        document.approved_at = timezone.now() if status == DocStatus.APPROVED else None
        document.reviewer_notes = (notes or "").strip()
    else:
        _ensure_document_owner(document, actor)

    previous = document.status
    document.status = status
    if status == DocStatus.SUBMITTED:
        document.submitted_at = timezone.now()
    document.save()

    if status == DocStatus.SUBMITTED:
        flag_low_margin(document, user=document.created_by)
    logger.info("Commission document %s: %s -> %s by %s", document.pk, previous, status, actor)
    return document


def visible_documents(user):
    qs = CommissionDocument.objects.select_related("created_by", "tier")
    if user_can(user, "viewAllCommissions"):
        return qs
    return qs.filter(created_by=user)


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------

def _log_status(submission, *, from_status, from_stage, actor, notes: str = "") -> CommissionStatusLog:
    return CommissionStatusLog.objects.create(
        submission=submission,
        from_status=from_status or "",
        to_status=submission.status,
        from_stage=from_stage or "",
        to_stage=submission.approval_stage,
        changed_by=actor,
        notes=notes or "",
    )


def _notify(submission: CommissionSubmission, event: str) -> None:
    from commissions.tasks import send_commission_notification

    submission_id = str(submission.pk)
    transaction.on_commit(lambda: send_commission_notification.delay(submission_id, event))


def _initial_stage(is_manager_submission: bool) -> str:
    return Stage.PENDING_ADMIN if is_manager_submission else Stage.PENDING_MANAGER


def _check_job_number(job_number: str) -> str:
    job_number = (job_number or "").strip()
    if not re.fullmatch(r"\d{4}", job_number):
        raise ValueError("Job number must be exactly 4 digits.")
    if DeniedJobNumber.objects.filter(job_number=job_number).exists():
        raise ValueError(f"Job number {job_number} was denied and cannot be submitted again.")
    return job_number


def _lock(submission: CommissionSubmission) -> CommissionSubmission:
    return CommissionSubmission.objects.select_for_update().get(pk=submission.pk)


@transaction.atomic
def submit_commission(*, actor, data: dict) -> CommissionSubmission:
    """Create a submission and route it to its first approval stage."""
    require_permission(actor, "submitCommission")
    if not actor.manager_id and not actor.is_admin:
        raise ValueError(MANAGER_REQUIRED_MESSAGE)

    values = {k: v for k, v in data.items() if k in SUBMISSION_INPUT_FIELDS}
    values["job_number"] = _check_job_number(values.get("job_number", ""))
    for required in ("job_name", "job_address", "contract_date"):
        if not values.get(required):
            raise ValueError(f"{required.replace('_', ' ').capitalize()} is required.")

    check_commission_hold(job_id=values["job_number"], user=actor).raise_if_blocked("Commission submission")
    guard_governed_action(actor, "commission_submission")

    is_manager_submission = actor.role in ("manager", "admin")
    submission = CommissionSubmission(
        submitted_by=actor,
        is_manager_submission=is_manager_submission,
        approval_stage=_initial_stage(is_manager_submission),
        status=Status.PENDING_REVIEW,
    )
    for key, value in values.items():
        setattr(submission, key, value)
    if not submission.sales_rep_name:
        submission.sales_rep_name = actor.display_name
    submission.save()

    if submission.document_id:
        flag_low_margin(submission.document, user=actor, job_id=submission.job_number)

    _log_status(submission, from_status=None, from_stage=None, actor=actor, notes="Submitted")
    _notify(submission, "submitted")
    logger.info(
        "Commission submitted: job=%s stage=%s by %s",
        submission.job_number,
        submission.approval_stage,
        actor,
    )
    return submission


def _apply_override(submission: CommissionSubmission) -> ManagerOverride | None:
    rep = submission.submitted_by
    if submission.is_manager_submission or not rep.manager_id:
        return None

    tracking, _ = OverrideTracking.objects.select_for_update().get_or_create(sales_rep=rep)
    result = calculate_override(
        submission.net_commission_owed,
        tracking.approved_commission_count,
        tracking.override_phase_complete,
        rate=_setting_decimal("OVERRIDE_RATE", "0.10"),
        limit=int(getattr(settings, "OVERRIDE_COMMISSION_LIMIT", 10)),
    )
    if result.new_count == tracking.approved_commission_count:
        if not tracking.override_phase_complete:
            tracking.override_phase_complete = True
            tracking.save(update_fields=["override_phase_complete", "updated_at"])
        return None

    tracking.approved_commission_count = result.new_count
    tracking.override_phase_complete = result.phase_complete
    tracking.save(update_fields=["approved_commission_count", "override_phase_complete", "updated_at"])

    submission.override_amount = result.override_amount
    submission.override_commission_number = result.new_count
    submission.override_manager_id = rep.manager_id
    override = ManagerOverride.objects.create(
        manager_id=rep.manager_id,
        sales_rep=rep,
        submission=submission,
        override_amount=result.override_amount,
        commission_number=result.new_count,
    )
    logger.info(
        "Manager override #%d for %s: %s",
        result.new_count,
        rep,
        result.override_amount,
    )
    return override


@transaction.atomic
def approve_commission(
    submission: CommissionSubmission,
    *,
    actor,
    approved_amount=None,
    notes: str = "",
) -> CommissionSubmission:
    """Advance the submission one approval stage; the last stage approves it."""
    require_permission(actor, "approveCommission")
    guard_governed_action(actor, "commission_approval")

    submission = _lock(submission)
    if submission.status != Status.PENDING_REVIEW:
        raise ValueError("Only commissions pending review can be approved.")
    notes = (notes or "").strip()

    if approved_amount is not None and approved_amount != "":
        amount = to_decimal(approved_amount, default=None)
        if amount is None or amount < 0:
            raise ValueError("Approved amount must be a non-negative number.")
        current = submission.payable_amount
        if amount != current and not notes:
            raise ValueError("Notes are required when modifying the approved amount")
        submission.commission_approved = amount

    now = timezone.now()
    from_status, from_stage = submission.status, submission.approval_stage
    event = "accounting_approved"

    if from_stage == Stage.PENDING_MANAGER:
        submission.manager_approved_by = actor
        submission.manager_approved_at = now
        submission.approval_stage = Stage.PENDING_ACCOUNTING
        event = "compliance_approved"
    elif from_stage == Stage.PENDING_ACCOUNTING:
        submission.accounting_approved_by = actor
        submission.accounting_approved_at = now
        submission.approval_stage = (
            Stage.PENDING_ADMIN if submission.is_manager_submission else Stage.COMPLETED
        )
    elif from_stage == Stage.PENDING_ADMIN:
        submission.admin_approved_by = actor
        submission.admin_approved_at = now
        submission.approval_stage = Stage.COMPLETED
    else:
        raise ValueError(f"Unexpected approval stage '{from_stage}'.")

    if notes:
        submission.reviewer_notes = notes

    if submission.approval_stage == Stage.COMPLETED:
        _assert_transition(submission, Status.APPROVED)
        submission.status = Status.APPROVED
        submission.approved_by = actor
        submission.approved_at = now
        submission.scheduled_pay_date = calculate_scheduled_pay_date(now)
        if submission.commission_approved is None:
            submission.commission_approved = submission.payable_amount
        _apply_override(submission)
    elif submission.approval_stage == Stage.PENDING_ADMIN:
        event = None

    submission.save()
    _log_status(submission, from_status=from_status, from_stage=from_stage, actor=actor, notes=notes)
    if event:
        _notify(submission, event)
    logger.info(
        "Commission %s approved at stage %s -> %s by %s",
        submission.job_number,
        from_stage,
        submission.approval_stage,
        actor,
    )
    return submission


@transaction.atomic
def request_revision(submission: CommissionSubmission, *, actor, reason: str) -> CommissionSubmission:
    require_permission(actor, "approveCommission")
    reason = (reason or "").strip()
    if not reason:
        raise ValueError("A reason is required to request a revision.")

    submission = _lock(submission)
    _assert_transition(submission, Status.REJECTED)
    from_status, from_stage = submission.status, submission.approval_stage

    submission.status = Status.REJECTED
    submission.approval_stage = Stage.PENDING_MANAGER
    submission.revision_count += 1
    submission.was_rejected = True
    submission.rejection_reason = reason
    submission.save()

    CommissionRevisionLog.objects.create(
        submission=submission,
        revision_number=submission.revision_count,
        reason=reason,
        requested_by=actor,
    )
    _log_status(submission, from_status=from_status, from_stage=from_stage, actor=actor, notes=reason)
    _notify(submission, "revision_required")
    logger.info("Revision %d requested on %s by %s", submission.revision_count, submission.job_number, actor)
    return submission


@transaction.atomic
def resubmit_commission(submission: CommissionSubmission, *, actor, data: dict | None = None) -> CommissionSubmission:
    submission = _lock(submission)
    if submission.submitted_by_id != actor.pk:
        raise PermissionError("Only the submitter can resubmit this commission.")
    _assert_transition(submission, Status.PENDING_REVIEW)

    for key, value in (data or {}).items():
        if key in SUBMISSION_INPUT_FIELDS:
            setattr(submission, key, value)
    submission.job_number = _check_job_number(submission.job_number)
    check_commission_hold(job_id=submission.job_number, user=actor).raise_if_blocked("Commission submission")
    guard_governed_action(actor, "commission_submission")

    from_status, from_stage = submission.status, submission.approval_stage
    submission.status = Status.PENDING_REVIEW
    submission.approval_stage = _initial_stage(submission.is_manager_submission)
    submission.save()

    CommissionRevisionLog.objects.filter(
        submission=submission,
        revision_number=submission.revision_count,
    ).update(resubmitted_at=timezone.now())
    _log_status(submission, from_status=from_status, from_stage=from_stage, actor=actor, notes="Resubmitted")
    _notify(submission, "submitted")
    logger.info("Commission %s resubmitted by %s", submission.job_number, actor)
    return submission


@transaction.atomic
def deny_commission(submission: CommissionSubmission, *, actor, reason: str) -> CommissionSubmission:
    """Deny permanently; the job number can never be submitted again."""
    require_permission(actor, "denyCommission")
    reason = (reason or "").strip()
    if not reason:
        raise ValueError("A reason is required to deny a commission.")

    submission = _lock(submission)
    _assert_transition(submission, Status.DENIED)
    from_status, from_stage = submission.status, submission.approval_stage

    submission.status = Status.DENIED
    submission.approval_stage = Stage.COMPLETED
    submission.denied_by = actor
    submission.denied_at = timezone.now()
    submission.rejection_reason = reason
    submission.save()

    DeniedJobNumber.objects.get_or_create(
        job_number=submission.job_number,
        defaults={"submission": submission, "reason": reason, "denied_by": actor},
    )
    _log_status(submission, from_status=from_status, from_stage=from_stage, actor=actor, notes=reason)
    log_audit(
        actor=actor,
        action="commission.deny",
        entity=submission,
        before={"status": from_status},
        after={"status": submission.status, "reason": reason},
    )
    _notify(submission, "denied")
    logger.info("Commission %s denied by %s", submission.job_number, actor)
    return submission


@transaction.atomic
def mark_commission_paid(submission: CommissionSubmission, *, actor) -> CommissionSubmission:
    require_permission(actor, "markCommissionPaid")
    submission = _lock(submission)
    _assert_transition(submission, Status.PAID)
    check_commission_hold(job_id=submission.job_number, user=submission.submitted_by).raise_if_blocked(
        "Commission payment"
    )

    from_status, from_stage = submission.status, submission.approval_stage
    submission.status = Status.PAID
    submission.paid_by = actor
    submission.paid_at = timezone.now()
    submission.save()

    from draws.services import deduct_draws_for_commission

    applications = deduct_draws_for_commission(submission)
    _log_status(submission, from_status=from_status, from_stage=from_stage, actor=actor, notes="Paid")
    _notify(submission, "paid")
    logger.info(
        "Commission %s paid by %s (%d draw deduction(s))",
        submission.job_number,
        actor,
        len(applications),
    )
    return submission


def visible_submissions(user):
    qs = CommissionSubmission.objects.select_related("submitted_by", "document")
    if user_can(user, "viewAllCommissions"):
        return qs
    return qs.filter(submitted_by=user)


def stale_pending_reviews(hours: int | None = None):
    hours = hours if hours is not None else int(getattr(settings, "STALE_REVIEW_HOURS", 72))
    cutoff = timezone.now() - dt.timedelta(hours=hours)
    return CommissionSubmission.objects.filter(
        Q(status=Status.PENDING_REVIEW) & Q(updated_at__lt=cutoff),
    ).select_related("submitted_by")


@transaction.atomic
def adjust_override_count(sales_rep, *, actor, count: int) -> OverrideTracking:
    """Manually set how many override-earning commissions a rep has used."""
    require_permission(actor, "approveCommission")
    count = int(count)
    if count < 0:
        raise ValueError("Override count cannot be negative.")
    limit = int(getattr(settings, "OVERRIDE_COMMISSION_LIMIT", 10))

    tracking, _ = OverrideTracking.objects.select_for_update().get_or_create(sales_rep=sales_rep)
    before = {
        "approved_commission_count": tracking.approved_commission_count,
        "override_phase_complete": tracking.override_phase_complete,
    }
    tracking.approved_commission_count = count
    tracking.override_phase_complete = count >= limit
    tracking.save(update_fields=["approved_commission_count", "override_phase_complete", "updated_at"])
    log_audit(
        actor=actor,
        action="override.adjust",
        entity=tracking,
        before=before,
        after={
            "approved_commission_count": count,
            "override_phase_complete": tracking.override_phase_complete,
        },
    )
    return tracking
