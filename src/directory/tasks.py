"""Celery tasks for the directory app."""
import logging

from celery import shared_task

logger = logging.getLogger("roofpro")


@shared_task(name="directory.tasks.flag_expired_coi")
def flag_expired_coi():
    """Mark received COIs past their expiration date as missing again."""
    from django.utils import timezone

    from directory.models import DocStatus
    from directory.services import expired_coi_subcontractors

    today = timezone.localdate()
    expired = list(expired_coi_subcontractors(today))
    for sub in expired:
        logger.warning("COI expired for %s on %s", sub.company_name, sub.coi_expiration_date)
        sub.coi_status = DocStatus.MISSING
        sub.last_requested_date = today
        requested = list(sub.requested_docs or [])
        if "COI" not in requested:
            requested.append("COI")
        sub.requested_docs = requested
        sub.save(update_fields=["coi_status", "last_requested_date", "requested_docs", "updated_at"])
    logger.info("flag_expired_coi completed: %d subcontractor(s) flagged.", len(expired))
    return f"{len(expired)} flagged"
