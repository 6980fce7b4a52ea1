"""Celery tasks for the commissions app."""
import logging

from celery import shared_task

logger = logging.getLogger("roofpro")

NOTIFICATION_SUBJECTS = {
    "submitted": "Commission submitted for job #{job}",
    "compliance_approved": "Commission for job #{job} passed compliance review",
    "accounting_approved": "Commission for job #{job} approved",
    "paid": "Commission for job #{job} has been paid",
    "revision_required": "Revision required: commission for job #{job}",
    "denied": "Commission for job #{job} was denied",
}


def _notification_recipients(submission, event: str) -> list[str]:
    from django.contrib.auth import get_user_model

    User = get_user_model()
    rep = submission.submitted_by
    if event != "submitted":
        return [rep.email]

    recipients = []
    if rep.manager_id and rep.manager.is_active:
        recipients.append(rep.manager.email)
    recipients.extend(
        User.objects.filter(role=User.Role.ADMIN, is_active=True)
        .exclude(pk=rep.pk)
        .values_list("email", flat=True)
    )
    return sorted(set(recipients))


@shared_task(name="commissions.tasks.send_commission_notification")
def send_commission_notification(submission_id: str, event: str):
    """Email the people who need to know about a workflow step."""
    from commissions.calculations import format_currency
    from commissions.models import CommissionSubmission
    from core.email import build_frontend_url, send_branded_email

    if event not in NOTIFICATION_SUBJECTS:
        logger.error("send_commission_notification: unknown event %s", event)
        return "unknown event"

    submission = (
        CommissionSubmission.objects.select_related("submitted_by", "submitted_by__manager")
        .filter(pk=submission_id)
        .first()
    )
    if submission is None:
        logger.warning("send_commission_notification: submission %s not found.", submission_id)
        return "not found"

    sent = send_branded_email(
        subject=NOTIFICATION_SUBJECTS[event].format(job=submission.job_number),
        template_name="emails/commission_notification",
        context={
            "event": event,
            "rep_name": submission.submitted_by.display_name,
            "job_number": submission.job_number,
            "job_name": submission.job_name,
            "amount": format_currency(submission.payable_amount),
            "stage": submission.get_approval_stage_display(),
            "reason": submission.rejection_reason,
            "notes": submission.reviewer_notes,
            "pay_date": submission.scheduled_pay_date.isoformat() if submission.scheduled_pay_date else "",
            "commission_url": build_frontend_url(f"/commissions/{submission.pk}"),
        },
        recipient_list=_notification_recipients(submission, event),
        fail_silently=True,
    )
    logger.info("Commission notification %s for %s: %d sent", event, submission.job_number, sent)
    return f"{event}: {sent} sent"


@shared_task(name="commissions.tasks.flag_stale_pending_reviews")
def flag_stale_pending_reviews():
    """Daily reminder to admins about submissions stuck in review."""
    from django.conf import settings
    from django.contrib.auth import get_user_model

    from commissions.services import stale_pending_reviews
    from core.email import send_branded_email

    User = get_user_model()
    hours = int(getattr(settings, "STALE_REVIEW_HOURS", 72))
    stale = list(stale_pending_reviews(hours).order_by("updated_at"))
    if not stale:
        logger.info("flag_stale_pending_reviews: nothing older than %dh.", hours)
        return "0 stale"

    for submission in stale:
        logger.warning(
            "Stale commission review: job=%s stage=%s last update %s",
            submission.job_number,
            submission.approval_stage,
            submission.updated_at.isoformat(),
        )

    admin_emails = list(
        User.objects.filter(role=User.Role.ADMIN, is_active=True).values_list("email", flat=True)
    )
    send_branded_email(
        subject=f"{len(stale)} commission(s) waiting more than {hours} hours",
        template_name="emails/stale_reviews",
        context={
            "hours": hours,
            "submissions": [
                {
                    "job_number": s.job_number,
                    "job_name": s.job_name,
                    "rep_name": s.submitted_by.display_name,
                    "stage": s.get_approval_stage_display(),
                }
                for s in stale
            ],
        },
        recipient_list=admin_emails,
        fail_silently=True,
    )
    return f"{len(stale)} stale"
