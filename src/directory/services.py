"""Directory services: subcontractor approval, prospect conversion, paperwork checks."""
from __future__ import annotations

import datetime as dt
import logging

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from accounts.permissions import require_permission
from core.audit import log_audit
from directory.models import DocStatus, Prospect, ServiceArea, Subcontractor, TradeType, Vendor

logger = logging.getLogger("roofpro")


def clean_service_areas(values) -> list[str]:
    """Validate and de-duplicate a list of service areas, keeping order."""
    cleaned = []
    for value in values or []:
        if value not in ServiceArea.values:
            raise ValueError(f"Unknown service area: {value}")
        if value not in cleaned:
            cleaned.append(value)
    return cleaned


def compliance_docs_missing(entity, today: dt.date | None = None) -> list[str]:
    """Paperwork still outstanding for a subcontractor or vendor."""
    today = today or timezone.localdate()
    missing = []
    if entity.coi_status != DocStatus.RECEIVED:
        missing.append("COI")
    elif entity.coi_expiration_date and entity.coi_expiration_date < today:
        missing.append("COI (expired)")
    if entity.w9_status != DocStatus.RECEIVED:
        missing.append("W-9")
    if entity.ic_agreement_status != DocStatus.RECEIVED:
        missing.append("IC agreement")
    return missing


def expired_coi_subcontractors(today: dt.date | None = None):
    today = today or timezone.localdate()
    return Subcontractor.objects.filter(
        Q(coi_expiration_date__lt=today),
        coi_status=DocStatus.RECEIVED,
    ).exclude(status="do_not_use")


@transaction.atomic
def approve_subcontractor(subcontractor: Subcontractor, *, actor) -> Subcontractor:
    require_permission(actor, "approveSubcontractor")
    locked = Subcontractor.objects.select_for_update().get(pk=subcontractor.pk)
    if locked.is_approved:
        raise ValueError("This subcontractor is already approved.")
    locked.is_approved = True
    locked.approved_by = actor
    locked.approved_at = timezone.now()
    locked.save(update_fields=["is_approved", "approved_by", "approved_at", "updated_at"])

    log_audit(
        actor=actor,
        action="subcontractor.approve",
        entity=locked,
        before={"is_approved": False},
        after={"is_approved": True, "missing_docs": compliance_docs_missing(locked)},
    )
    logger.info("Subcontractor approved: %s by %s", locked.company_name, actor)
    return locked


@transaction.atomic
def convert_prospect(prospect: Prospect, *, actor):
    """Turn a prospect into a directory entry and mark it approved.

    Returns the new ``Subcontractor`` or ``Vendor``.
    """
    require_permission(actor, "submitNewSubcontractor")
    locked = Prospect.objects.select_for_update().get(pk=prospect.pk)
    if locked.stage == Prospect.Stage.NOT_A_FIT:
        raise ValueError("Prospects marked 'not a fit' cannot be converted.")
    if locked.converted_subcontractor_id or locked.converted_vendor_id:
        raise ValueError("This prospect has already been converted.")

    common = {
        "primary_contact_name": locked.contact_name,
        "phone": locked.phone,
        "email": locked.email,
        "notes": locked.notes,
        "created_by": actor,
    }
    if locked.prospect_type == Prospect.ProspectType.SUBCONTRACTOR:
        trade = locked.trade_vendor_type if locked.trade_vendor_type in TradeType.values else TradeType.OTHER
        entity = Subcontractor.objects.create(company_name=locked.company_name, trade_type=trade, **common)
        locked.converted_subcontractor = entity
    else:
        vendor_type = (
            locked.trade_vendor_type
            if locked.trade_vendor_type in Vendor.VendorType.values
            else Vendor.VendorType.OTHER
        )
        entity = Vendor.objects.create(vendor_name=locked.company_name, vendor_type=vendor_type, **common)
        locked.converted_vendor = entity

    before_stage = locked.stage
    locked.stage = Prospect.Stage.APPROVED
    locked.save()
    log_audit(
        actor=actor,
        action="prospect.convert",
        entity=locked,
        before={"stage": before_stage},
        after={"stage": locked.stage, "entity_type": entity.__class__.__name__, "entity_id": str(entity.pk)},
    )
    logger.info("Prospect %s converted to %s by %s", locked.company_name, entity.__class__.__name__, actor)
    return entity
