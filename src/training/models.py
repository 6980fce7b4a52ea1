"""Models for the training library."""
import os

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


def training_upload_to(instance, filename):
    category = instance.category.slug if instance.category_id else "uncategorized"
    return f"training/{category}/{filename}"


class TrainingCategory(models.Model):
    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(max_length=100, unique=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "name"]
        verbose_name_plural = "training categories"

    def __str__(self):
        return self.name


class TrainingDocument(TimeStampedModel):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    category = models.ForeignKey(
        TrainingCategory,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="documents",
    )
    file = models.FileField(upload_to=training_upload_to)
    file_type = models.CharField(max_length=20, blank=True, default="")
    file_size = models.PositiveBigIntegerField(default=0)
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="training_uploads",
    )

    class Meta:
        ordering = ["category__sort_order", "name"]

    def __str__(self):
        return self.name

    @property
    def extension(self) -> str:
        return os.path.splitext(self.file.name or "")[1].lstrip(".").lower()
