"""Helpers for writing AuditLog rows."""
import logging

from core.models import AuditLog

logger = logging.getLogger("roofpro")


def log_audit(*, actor, action, entity, before=None, after=None, ip_address=None):
    """Record *action* performed by *actor* on *entity*.

    ``entity`` is any model instance; its class name and primary key are
    stored so the row outlives the entity itself.
    """
    entry = AuditLog.objects.create(
        actor=actor,
        action=action,
        entity_type=entity.__class__.__name__,
        entity_id=str(entity.pk),
        before_json=before,
        after_json=after,
        ip_address=ip_address,
    )
    logger.info("Audit: %s %s#%s by %s", action, entry.entity_type, entry.entity_id, actor)
    return entry
