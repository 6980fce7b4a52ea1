"""Celery tasks for the compliance app."""
import logging

from celery import shared_task

logger = logging.getLogger("roofpro")


@shared_task(name="compliance.tasks.report_unacknowledged_users")
def report_unacknowledged_users():
    """Email admins the list of active users who have not acknowledged the playbook."""
    from django.contrib.auth import get_user_model

    from compliance.services import unacknowledged_active_users
    from compliance.sops import current_sop_version
    from core.email import send_branded_email

    User = get_user_model()
    pending = list(unacknowledged_active_users().order_by("last_name", "first_name"))
    if not pending:
        logger.info("report_unacknowledged_users: everyone acknowledged %s.", current_sop_version())
        return "0 users pending"

    admin_emails = list(
        User.objects.filter(role=User.Role.ADMIN, is_active=True).values_list("email", flat=True)
    )
    send_branded_email(
        subject=f"{len(pending)} team member(s) still need to acknowledge the playbook",
        template_name="emails/sop_unacknowledged",
        context={
            "version": current_sop_version(),
            "users": [{"name": u.display_name, "email": u.email} for u in pending],
        },
        recipient_list=admin_emails,
        fail_silently=True,
    )
    logger.info("report_unacknowledged_users completed: %d users pending.", len(pending))
    return f"{len(pending)} users pending"


@shared_task(name="compliance.tasks.send_hold_notification")
def send_hold_notification(hold_id: str, action: str):
    """Tell the held user that a hold was applied to or released from their account."""
    from compliance.models import ComplianceHold
    from core.email import build_frontend_url, send_branded_email

    if action not in ("applied", "released"):
        logger.error("send_hold_notification: unknown action %s", action)
        return "unknown action"

    hold = ComplianceHold.objects.select_related("user").filter(pk=hold_id).first()
    if hold is None or hold.user is None:
        logger.warning("send_hold_notification: hold %s not found or has no user.", hold_id)
        return "not found"

    hold_label = hold.get_hold_type_display()
    sent = send_branded_email(
        subject=f"Hold {action}: {hold_label}",
        template_name="emails/hold_notification",
        context={
            "applied": action == "applied",
            "name": hold.user.display_name,
            "hold_type": hold_label,
            "job_id": hold.job_id,
            "reason": hold.reason,
            "release_notes": hold.release_notes,
            "holds_url": build_frontend_url("/compliance"),
        },
        recipient_list=[hold.user.email],
        fail_silently=True,
    )
    logger.info("Hold notification %s for %s: %d sent", action, hold.pk, sent)
    return f"{action}: {sent} sent"


@shared_task(name="compliance.tasks.send_violation_notification")
def send_violation_notification(violation_id: str):
    """Email the user a violation was logged against, then their manager.

    SEVERE violations also go to every active admin.
    """
    from django.contrib.auth import get_user_model

    from compliance.models import ComplianceViolation
    from core.email import build_frontend_url, send_branded_email

    User = get_user_model()
    violation = (
        ComplianceViolation.objects.select_related("user", "user__manager").filter(pk=violation_id).first()
    )
    if violation is None or violation.user is None:
        logger.warning("send_violation_notification: violation %s not found or has no user.", violation_id)
        return "not found"

    user = violation.user
    context = {
        "name": user.display_name,
        "severity": violation.severity,
        "violation_type": violation.violation_type,
        "sop_key": violation.sop_key,
        "job_id": violation.job_id,
        "description": violation.description,
        "compliance_url": build_frontend_url("/compliance"),
    }
    sent = send_branded_email(
        subject=f"{violation.severity} compliance violation logged",
        template_name="emails/violation_notification",
        context={**context, "for_reviewers": False},
        recipient_list=[user.email],
        fail_silently=True,
    )

    reviewers = set()
    if user.manager_id and user.manager.is_active:
        reviewers.add(user.manager.email)
    if violation.severity == ComplianceViolation.Severity.SEVERE:
        reviewers.update(
            User.objects.filter(role=User.Role.ADMIN, is_active=True).values_list("email", flat=True)
        )
    reviewers.discard(user.email)
    if reviewers:
        sent += send_branded_email(
            subject=f"{violation.severity} violation logged for {user.display_name}",
            template_name="emails/violation_notification",
            context={**context, "for_reviewers": True},
            recipient_list=sorted(reviewers),
            fail_silently=True,
        )
    logger.info("Violation notification for %s: %d sent", violation.pk, sent)
    return f"{sent} sent"
