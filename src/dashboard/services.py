"""Command center aggregates and the sales leaderboard."""
from __future__ import annotations

import datetime as dt
import logging
from decimal import Decimal

from django.db.models import Count, DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce

from accounts.permissions import user_can
from commissions.models import CommissionSubmission
from compliance.services import compliance_dashboard_counts, get_master_sop_status, has_acknowledged_current_sop
from draws.services import outstanding_draw_balance

logger = logging.getLogger("roofpro")

Status = CommissionSubmission.Status
ZERO = Decimal("0.00")
_MONEY = DecimalField(max_digits=14, decimal_places=2)


def _commission_totals(qs) -> dict:
    counts = {status: 0 for status in Status.values}
    for row in qs.values("status").annotate(n=Count("id")):
        counts[row["status"]] = row["n"]

    sums = qs.aggregate(
        pending=Coalesce(
            Sum("net_commission_owed", filter=Q(status__in=[Status.PENDING_REVIEW, Status.APPROVED])),
            Value(ZERO),
            output_field=_MONEY,
        ),
        paid=Coalesce(
            Sum("commission_approved", filter=Q(status=Status.PAID)),
            Value(ZERO),
            output_field=_MONEY,
        ),
    )
    return {
        "counts": counts,
        "pending_total": sums["pending"],
        "paid_total": sums["paid"],
    }


def command_center_summary(user) -> dict:
    """Everything the home screen needs for *user*, scoped by their permissions."""
    own = CommissionSubmission.objects.filter(submitted_by=user)
    sop_status = get_master_sop_status(user)
    summary = {
        "commissions": _commission_totals(own),
        "draw_balance": outstanding_draw_balance(user),
        "sop": {
            "acknowledged": has_acknowledged_current_sop(user),
            "version": sop_status.version,
            "completed": sop_status.completed,
            "total": sop_status.total,
        },
    }

    if user_can(user, "viewTeamStats"):
        team = CommissionSubmission.objects.all()
        if not user_can(user, "viewAllStats"):
            team = team.filter(Q(submitted_by__manager=user) | Q(submitted_by=user))
        summary["team"] = _commission_totals(team)
        summary["team"]["awaiting_review"] = team.filter(status=Status.PENDING_REVIEW).count()

    if user_can(user, "viewOPSCompliance"):
        summary["compliance"] = compliance_dashboard_counts()
    return summary


def leaderboard(period_start: dt.date, period_end: dt.date, limit: int | None = None) -> list[dict]:
    """Reps ranked by paid commission in [period_start, period_end]."""
    if period_end < period_start:
        raise ValueError("period_end must not be before period_start.")

    rows = (
        CommissionSubmission.objects.filter(
            status=Status.PAID,
            paid_at__date__gte=period_start,
            paid_at__date__lte=period_end,
        )
        .values("submitted_by", "submitted_by__first_name", "submitted_by__last_name", "submitted_by__email")
        .annotate(
            total=Coalesce(Sum("commission_approved"), Value(ZERO), output_field=_MONEY),
            jobs=Count("id"),
        )
        .order_by("-total", "-jobs", "submitted_by__last_name")
    )
    if limit:
        rows = rows[:limit]

    from accounts.display import format_display_name

    entries = []
    for rank, row in enumerate(rows, start=1):
        full_name = f"{row['submitted_by__first_name']} {row['submitted_by__last_name']}".strip()
        entries.append(
            {
                "rank": rank,
                "user_id": str(row["submitted_by"]),
                "name": format_display_name(full_name, row["submitted_by__email"]),
                "total_paid": row["total"],
                "jobs": row["jobs"],
            }
        )
    logger.debug("Leaderboard %s..%s: %d reps", period_start, period_end, len(entries))
    return entries
