"""Draw services: request, approval, payout and deduction against commissions."""
from __future__ import annotations

import logging
import re
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Q, Sum
from django.utils import timezone

from accounts.permissions import require_permission, user_can
from commissions.calculations import money, to_decimal
from core.audit import log_audit
from draws.models import Draw, DrawApplication, DrawSetting

logger = logging.getLogger("roofpro")

ZERO = Decimal("0.00")

_SETTING_DEFAULTS = {
    DrawSetting.MANAGER_APPROVAL_THRESHOLD: ("DRAW_MANAGER_APPROVAL_THRESHOLD", "1500.00"),
    DrawSetting.MAX_COMMISSION_RATIO: ("DRAW_MAX_COMMISSION_RATIO", "0.50"),
}


def get_draw_setting(key: str) -> Decimal:
    """Stored value for *key*, falling back to the Django setting."""
    if key not in _SETTING_DEFAULTS:
        raise ValueError(f"Unknown draw setting: {key}")
    row = DrawSetting.objects.filter(key=key).first()
    if row is not None:
        return row.value
    setting_name, default = _SETTING_DEFAULTS[key]
    return to_decimal(getattr(settings, setting_name, default), default=Decimal(default))


def all_draw_settings() -> dict[str, Decimal]:
    return {key: get_draw_setting(key) for key in _SETTING_DEFAULTS}


@transaction.atomic
def update_draw_setting(key: str, value, *, actor) -> DrawSetting:
    require_permission(actor, "viewPaidDrawBalance")
    if key not in _SETTING_DEFAULTS:
        raise ValueError(f"Unknown draw setting: {key}")
    value = to_decimal(value, default=None)
    if value is None or value < 0:
        raise ValueError("Setting value must be a non-negative number.")
    if key == DrawSetting.MAX_COMMISSION_RATIO and value > 1:
        raise ValueError("The maximum commission ratio cannot exceed 1.")

    before = {"value": str(get_draw_setting(key))}
    row, _ = DrawSetting.objects.update_or_create(key=key, defaults={"value": value, "updated_by": actor})
    log_audit(actor=actor, action="draw_setting.update", entity=row, before=before, after={"value": str(value)})
    return row


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def _lock(draw: Draw) -> Draw:
    return Draw.objects.select_for_update().select_related("requested_by").get(pk=draw.pk)


def _notify(draw: Draw, event: str, application: DrawApplication | None = None) -> None:
    from draws.tasks import send_draw_notification

    draw_id = str(draw.pk)
    application_id = str(application.pk) if application is not None else None
    transaction.on_commit(lambda: send_draw_notification.delay(draw_id, event, application_id))


def _ensure_can_review(draw: Draw, actor) -> None:
    """Admins review any draw; managers only their direct reports' draws."""
    if draw.requested_by_id == actor.pk:
        raise PermissionError("You cannot review your own draw request.")
    if user_can(actor, "viewPaidDrawBalance"):
        return
    if actor.role == "manager" and draw.requested_by.manager_id == actor.pk:
        return
    raise PermissionError("Only the requester's manager or an admin can review this draw.")


@transaction.atomic
def request_draw(
    *,
    actor,
    job_number: str,
    amount,
    estimated_commission=None,
    job_name: str = "",
    notes: str = "",
) -> Draw:
    require_permission(actor, "submitCommission")
    job_number = (job_number or "").strip()
    if not re.fullmatch(r"\d{4}", job_number):
        raise ValueError("Job number must be exactly 4 digits.")

    amount = to_decimal(amount, default=None)
    if amount is None or amount <= 0:
        raise ValueError("Draw amount must be greater than zero.")
    amount = money(amount)

    estimate = None
    if estimated_commission not in (None, ""):
        estimate = money(estimated_commission)
        ratio = get_draw_setting(DrawSetting.MAX_COMMISSION_RATIO)
        cap = money(estimate * ratio)
        if amount > cap:
            raise ValueError(
                f"Draw amount cannot exceed {ratio:.0%} of the estimated commission (max {cap})."
            )

    threshold = get_draw_setting(DrawSetting.MANAGER_APPROVAL_THRESHOLD)
    draw = Draw.objects.create(
        requested_by=actor,
        job_number=job_number,
        job_name=job_name or "",
        amount=amount,
        estimated_commission=estimate,
        requires_manager_approval=amount > threshold,
        notes=notes or "",
    )
    _notify(draw, "requested")
    logger.info(
        "Draw requested: %s on job %s by %s (manager approval=%s)",
        amount,
        job_number,
        actor,
        draw.requires_manager_approval,
    )
    return draw


@transaction.atomic
def approve_draw(draw: Draw, *, actor) -> Draw:
    draw = _lock(draw)
    _ensure_can_review(draw, actor)
    if draw.status != Draw.Status.PENDING:
        raise ValueError("Only pending draws can be approved.")
    draw.status = Draw.Status.APPROVED
    draw.approved_by = actor
    draw.approved_at = timezone.now()
    draw.save(update_fields=["status", "approved_by", "approved_at", "updated_at"])
    _notify(draw, "approved")
    logger.info("Draw %s approved by %s", draw.pk, actor)
    return draw


@transaction.atomic
def deny_draw(draw: Draw, *, actor, reason: str) -> Draw:
    reason = (reason or "").strip()
    if not reason:
        raise ValueError("A reason is required to deny a draw.")
    draw = _lock(draw)
    _ensure_can_review(draw, actor)
    if draw.status != Draw.Status.PENDING:
        raise ValueError("Only pending draws can be denied.")
    draw.status = Draw.Status.DENIED
    draw.denied_by = actor
    draw.denied_at = timezone.now()
    draw.denial_reason = reason
    draw.save(update_fields=["status", "denied_by", "denied_at", "denial_reason", "updated_at"])
    _notify(draw, "denied")
    logger.info("Draw %s denied by %s", draw.pk, actor)
    return draw


@transaction.atomic
def mark_draw_paid(draw: Draw, *, actor) -> Draw:
    require_permission(actor, "viewPaidDrawBalance")
    draw = _lock(draw)
    if draw.status != Draw.Status.APPROVED:
        raise ValueError("Only approved draws can be marked paid.")
    draw.status = Draw.Status.PAID
    draw.paid_by = actor
    draw.paid_at = timezone.now()
    draw.remaining_balance = draw.amount
    draw.save(update_fields=["status", "paid_by", "paid_at", "remaining_balance", "updated_at"])
    _notify(draw, "paid")
    logger.info("Draw %s paid out: %s by %s", draw.pk, draw.amount, actor)
    return draw


@transaction.atomic
def apply_draw_deduction(draw: Draw, amount, *, submission=None, actor=None, notes: str = "") -> DrawApplication:
    """Pay back part of a draw; the balance is clamped at zero and never rises."""
    amount = to_decimal(amount, default=None)
    if amount is None or amount <= 0:
        raise ValueError("Deduction amount must be greater than zero.")

    draw = _lock(draw)
    if draw.status != Draw.Status.PAID:
        raise ValueError("Deductions can only be applied to paid draws with an outstanding balance.")

    before = draw.remaining_balance
    after = max(ZERO, money(before - amount))
    applied = before - after

    application = DrawApplication.objects.create(
        draw=draw,
        submission=submission,
        amount=applied,
        balance_before=before,
        balance_after=after,
        applied_by=actor,
        notes=notes or "",
    )
    draw.remaining_balance = after
    fields = ["remaining_balance", "updated_at"]
    if after == ZERO:
        draw.status = Draw.Status.DEDUCTED
        draw.deducted_at = timezone.now()
        fields += ["status", "deducted_at"]
    draw.save(update_fields=fields)
    _notify(draw, "deducted", application)
    logger.info("Draw %s deduction %s: balance %s -> %s", draw.pk, applied, before, after)
    return application


def deduct_draws_for_commission(submission, *, actor=None) -> list[DrawApplication]:
    """Apply a paid commission to the rep's outstanding draws on the same job, oldest first."""
    remaining = money(submission.payable_amount)
    if remaining <= 0:
        return []

    draws = Draw.objects.filter(
        requested_by_id=submission.submitted_by_id,
        job_number=submission.job_number,
        status=Draw.Status.PAID,
        remaining_balance__gt=0,
    ).order_by("paid_at", "created_at")

    applications = []
    for draw in draws:
        if remaining <= 0:
            break
        application = apply_draw_deduction(
            draw,
            remaining,
            submission=submission,
            actor=actor or submission.paid_by,
            notes=f"Commission #{submission.job_number}",
        )
        applications.append(application)
        remaining -= application.amount
    return applications


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def visible_draws(user):
    qs = Draw.objects.select_related("requested_by")
    if user_can(user, "viewPaidDrawBalance"):
        return qs
    if getattr(user, "role", None) == "manager":
        return qs.filter(Q(requested_by__manager=user) | Q(requested_by=user))
    return qs.filter(requested_by=user)


def outstanding_draw_balance(user) -> Decimal:
    total = (
        Draw.objects.filter(requested_by=user, status=Draw.Status.PAID)
        .aggregate(total=Sum("remaining_balance"))
        .get("total")
    )
    return total or ZERO
