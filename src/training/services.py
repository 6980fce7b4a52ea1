"""Training library uploads and removal."""
from __future__ import annotations

import logging
import os

from django.conf import settings
from django.db import transaction
from django.utils.text import slugify

from accounts.permissions import require_permission
from core.audit import log_audit
from training.models import TrainingCategory, TrainingDocument

logger = logging.getLogger("roofpro")

ALLOWED_EXTENSIONS = ("pdf", "doc", "docx", "ppt", "pptx", "xls", "xlsx", "png", "jpg", "jpeg", "mp4", "mov")


def max_upload_bytes() -> int:
    return int(getattr(settings, "TRAINING_MAX_UPLOAD_MB", 50)) * 1024 * 1024


def validate_upload(uploaded_file) -> str:
    """Return the lowercase extension, or raise ``ValueError``."""
    extension = os.path.splitext(uploaded_file.name or "")[1].lstrip(".").lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise ValueError(f"Files of type '.{extension or '?'}' cannot be uploaded.")
    if uploaded_file.size > max_upload_bytes():
        raise ValueError(
            f"File is too large ({uploaded_file.size // (1024 * 1024)} MB); "
            f"the limit is {getattr(settings, 'TRAINING_MAX_UPLOAD_MB', 50)} MB."
        )
    return extension


@transaction.atomic
def create_category(*, actor, name: str, sort_order: int = 0) -> TrainingCategory:
    require_permission(actor, "uploadTrainingContent")
    name = (name or "").strip()
    if not name:
        raise ValueError("Category name is required.")
    slug = slugify(name)
    if TrainingCategory.objects.filter(slug=slug).exists():
        raise ValueError(f"A category named '{name}' already exists.")
    return TrainingCategory.objects.create(name=name, slug=slug, sort_order=sort_order)


@transaction.atomic
def upload_document(*, actor, uploaded_file, name: str = "", description: str = "", category=None) -> TrainingDocument:
    require_permission(actor, "uploadTrainingContent")
    extension = validate_upload(uploaded_file)
    document = TrainingDocument.objects.create(
        name=(name or "").strip() or os.path.splitext(uploaded_file.name)[0],
        description=description or "",
        category=category,
        file=uploaded_file,
        file_type=extension,
        file_size=uploaded_file.size,
        uploaded_by=actor,
    )
    logger.info("Training document uploaded: %s (%d bytes) by %s", document.name, document.file_size, actor)
    return document


@transaction.atomic
def delete_document(document: TrainingDocument, *, actor) -> None:
    require_permission(actor, "uploadTrainingContent")
    log_audit(
        actor=actor,
        action="training_document.delete",
        entity=document,
        before={"name": document.name, "file": document.file.name},
    )
    storage, path = document.file.storage, document.file.name
    document.delete()
    if path:
        transaction.on_commit(lambda: storage.delete(path))
    logger.info("Training document deleted: %s by %s", path, actor)
