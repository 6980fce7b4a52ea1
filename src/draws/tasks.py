"""Celery tasks for the draws app."""
import logging

from celery import shared_task

logger = logging.getLogger("roofpro")

NOTIFICATION_SUBJECTS = {
    "requested": "New draw request: {rep} ({amount}) for job #{job}",
    "approved": "Draw approved: {amount} for job #{job}",
    "denied": "Draw denied: {amount} for job #{job}",
    "paid": "Draw disbursed: {amount} for job #{job}",
    "deducted": "Draw fully deducted: {amount} for job #{job}",
    "partially_deducted": "Partial draw deduction: {deducted} of {amount} for job #{job}",
}


def _notification_recipients(draw, event: str) -> list[str]:
    from django.contrib.auth import get_user_model

    User = get_user_model()
    rep = draw.requested_by
    active = User.objects.filter(is_active=True)

    if event == "requested":
        if rep.manager_id and rep.manager.is_active:
            return [rep.manager.email]
        return sorted(
            active.filter(role=User.Role.ADMIN).exclude(pk=rep.pk).values_list("email", flat=True)
        )

    recipients = {rep.email}
    if event == "approved":
        # Accounting disburses the money.
        recipients.update(
            active.filter(department=User.Department.ACCOUNTING).exclude(pk=rep.pk).values_list("email", flat=True)
        )
    return sorted(recipients)


@shared_task(name="draws.tasks.send_draw_notification")
def send_draw_notification(draw_id: str, event: str, application_id: str | None = None):
    """Email the rep (and, for new requests, their manager) about a draw."""
    from commissions.calculations import format_currency
    from core.email import build_frontend_url, send_branded_email
    from draws.models import Draw, DrawApplication

    if event not in ("requested", "approved", "denied", "paid", "deducted"):
        logger.error("send_draw_notification: unknown event %s", event)
        return "unknown event"

    draw = Draw.objects.select_related("requested_by", "requested_by__manager").filter(pk=draw_id).first()
    if draw is None:
        logger.warning("send_draw_notification: draw %s not found.", draw_id)
        return "not found"

    deducted = remaining = None
    subject_key = event
    if event == "deducted":
        application = DrawApplication.objects.filter(pk=application_id, draw=draw).first() if application_id else None
        if application is not None:
            deducted, remaining = application.amount, application.balance_after
        else:
            remaining = draw.remaining_balance
        if remaining:
            subject_key = "partially_deducted"

    rep = draw.requested_by
    sent = send_branded_email(
        subject=NOTIFICATION_SUBJECTS[subject_key].format(
            rep=rep.display_name,
            amount=format_currency(draw.amount),
            deducted=format_currency(deducted),
            job=draw.job_number,
        ),
        template_name="emails/draw_notification",
        context={
            "event": event,
            "partial": subject_key == "partially_deducted",
            "rep_name": rep.display_name,
            "job_number": draw.job_number,
            "job_name": draw.job_name,
            "amount": format_currency(draw.amount),
            "deducted": format_currency(deducted) if deducted is not None else "",
            "remaining": format_currency(remaining) if remaining is not None else "",
            "requires_manager_approval": draw.requires_manager_approval,
            "reason": draw.denial_reason,
            "draw_url": build_frontend_url(f"/draws/{draw.pk}"),
        },
        recipient_list=_notification_recipients(draw, event),
        fail_silently=True,
    )
    logger.info("Draw notification %s for %s: %d sent", event, draw.pk, sent)
    return f"{event}: {sent} sent"
