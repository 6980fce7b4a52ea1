"""Models for the draws app: commission advances and how they are paid back."""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from core.models import TimeStampedModel


class Draw(TimeStampedModel):
    """An advance against a rep's expected commission on a job.

    ``remaining_balance`` starts at the paid amount and only ever goes
    down as commissions are applied against it.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        DENIED = "denied", "Denied"
        PAID = "paid", "Paid"
        DEDUCTED = "deducted", "Deducted"

    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="draws",
    )
    job_number = models.CharField(max_length=4, db_index=True)
    job_name = models.CharField(max_length=255, blank=True, default="")
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    estimated_commission = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    remaining_balance = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    requires_manager_approval = models.BooleanField(default=False)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)
    notes = models.TextField(blank=True, default="")

    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+",
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    denied_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+",
    )
    denied_at = models.DateTimeField(null=True, blank=True)
    denial_reason = models.TextField(blank=True, default="")
    paid_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+",
    )
    paid_at = models.DateTimeField(null=True, blank=True)
    deducted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["requested_by", "status"], name="draw_owner_status_idx"),
        ]

    def __str__(self):
        return f"Draw {self.amount} on #{self.job_number} [{self.status}]"


class DrawApplication(models.Model):
    """One deduction of a paid commission against a draw balance."""

    draw = models.ForeignKey(Draw, on_delete=models.CASCADE, related_name="applications")
    submission = models.ForeignKey(
        "commissions.CommissionSubmission",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="draw_applications",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    balance_before = models.DecimalField(max_digits=12, decimal_places=2)
    balance_after = models.DecimalField(max_digits=12, decimal_places=2)
    applied_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    notes = models.TextField(blank=True, default="")
    applied_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-applied_at"]

    def __str__(self):
        return f"{self.amount} applied to {self.draw_id}"


class DrawSetting(models.Model):
    """Admin-editable draw limits; values override the settings defaults."""

    MANAGER_APPROVAL_THRESHOLD = "manager_approval_threshold"
    MAX_COMMISSION_RATIO = "max_commission_ratio"

    key = models.CharField(max_length=60, unique=True)
    value = models.DecimalField(max_digits=12, decimal_places=4)
    description = models.CharField(max_length=255, blank=True, default="")
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["key"]

    def __str__(self):
        return f"{self.key}={self.value}"
