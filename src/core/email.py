"""Email utilities for sending branded HTML emails with plain-text fallback."""

from __future__ import annotations

import logging
from typing import Sequence

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

logger = logging.getLogger("roofpro")

BRAND_NAME = "TSM Roof Pro Hub"


def build_frontend_url(path: str = "") -> str:
    """Join *path* onto the configured SPA base URL."""
    base = (getattr(settings, "FRONTEND_URL", "") or "http://localhost:5173").rstrip("/")
    if not path:
        return base
    return f"{base}/{path.lstrip('/')}"


def send_branded_email(
    *,
    subject: str,
    template_name: str,
    context: dict,
    recipient_list: Sequence[str],
    from_email: str | None = None,
    fail_silently: bool = False,
) -> int:
    """Render and send an HTML email with a plain-text fallback.

    *template_name* is the base name without extension, e.g.
    ``"emails/commission_paid"``; ``.html`` and ``.txt`` are appended.
    ``brand_name`` and ``portal_url`` are always available to templates.

    Returns the number of emails successfully sent (0 or 1).
    """
    recipients = [address for address in recipient_list if address]
    if not recipients:
        logger.warning("Email '%s' skipped: no recipients.", subject)
        return 0

    sender = from_email or getattr(settings, "DEFAULT_FROM_EMAIL", None)
    full_context = {"brand_name": BRAND_NAME, "portal_url": build_frontend_url()}
    full_context.update(context)

    text_body = render_to_string(f"{template_name}.txt", full_context).strip()
    html_body = render_to_string(f"{template_name}.html", full_context)

    msg = EmailMultiAlternatives(
        subject=subject,
        body=text_body,
        from_email=sender,
        to=recipients,
    )
    msg.attach_alternative(html_body, "text/html")
    sent = msg.send(fail_silently=fail_silently)
    logger.info("Email '%s' sent to %d recipient(s) via %s", subject, len(recipients), template_name)
    return sent
