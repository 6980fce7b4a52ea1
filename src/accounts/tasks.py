"""Celery tasks for the accounts app."""
import logging

from celery import shared_task

logger = logging.getLogger("roofpro")


@shared_task(name="accounts.tasks.notify_new_signup")
def notify_new_signup(user_id: str):
    """Let the admins know a new account is waiting for approval."""
    from django.contrib.auth import get_user_model

    from core.email import build_frontend_url, send_branded_email

    User = get_user_model()
    user = User.objects.filter(pk=user_id, employment_status=User.EmploymentStatus.PENDING).first()
    if user is None:
        logger.info("notify_new_signup: %s is no longer pending.", user_id)
        return "not pending"

    admin_emails = sorted(
        User.objects.filter(role=User.Role.ADMIN, is_active=True).values_list("email", flat=True)
    )
    if not admin_emails:
        logger.warning("notify_new_signup: no active admins to notify about %s.", user.email)
        return "no admins"

    sent = send_branded_email(
        subject=f"New user signup: {user.display_name}",
        template_name="emails/new_signup",
        context={
            "name": user.display_name,
            "email": user.email,
            "phone": user.phone,
            "signed_up_at": user.date_joined,
            "admin_url": build_frontend_url("/admin/users"),
        },
        recipient_list=admin_emails,
        fail_silently=True,
    )
    logger.info("Signup alert for %s: %d sent", user.email, sent)
    return f"{sent} sent"
