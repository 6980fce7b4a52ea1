"""Models for OPS compliance: SOP acknowledgments, holds, violations, escalations."""
from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.models import TimeStampedModel


class SOPAcknowledgment(TimeStampedModel):
    """A user's confirmation of a playbook version (one row per user/key/version)."""

    class Method(models.TextChoices):
        CHECKBOX = "checkbox", "Checkbox"
        SIGNATURE = "signature", "Signature"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sop_acknowledgments",
    )
    sop_key = models.CharField(max_length=40, default="SOPMASTER")
    version = models.CharField(max_length=40)
    acknowledgment_method = models.CharField(
        max_length=20,
        choices=Method.choices,
        default=Method.CHECKBOX,
    )
    acknowledged_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "SOP acknowledgment"
        verbose_name_plural = "SOP acknowledgments"
        ordering = ["-acknowledged_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "sop_key", "version"],
                name="uniq_sop_ack_per_version",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user} acknowledged {self.sop_key} {self.version}"


class MasterSOPAcknowledgment(TimeStampedModel):
    """Acknowledgment of a single numbered master SOP (1..10)."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="master_sop_acknowledgments",
    )
    sop_number = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(10)],
    )
    sop_version = models.CharField(max_length=40)
    acknowledged_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "master SOP acknowledgment"
        verbose_name_plural = "master SOP acknowledgments"
        ordering = ["sop_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "sop_number", "sop_version"],
                name="uniq_master_sop_ack",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user} SOP-{self.sop_number:02d} ({self.sop_version})"


class ComplianceHold(TimeStampedModel):
    """Blocks commission payment, invoicing, scheduling or access for a user/job."""

    class HoldType(models.TextChoices):
        COMMISSION = "commission_hold", "Commission hold"
        INVOICE = "invoice_hold", "Invoice hold"
        SCHEDULING = "scheduling_hold", "Scheduling hold"
        ACCESS = "access_hold", "Access hold"

    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        RELEASED = "released", "Released"

    hold_type = models.CharField(max_length=30, choices=HoldType.choices, db_index=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True,
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="compliance_holds",
    )
    job_id = models.CharField(max_length=64, blank=True, default="", db_index=True)
    reason = models.TextField()
    violation = models.ForeignKey(
        "compliance.ComplianceViolation",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="holds",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    released_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    released_at = models.DateTimeField(null=True, blank=True)
    release_notes = models.TextField(blank=True, default="")

    class Meta:
        verbose_name = "compliance hold"
        verbose_name_plural = "compliance holds"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        target = self.job_id or self.user
        return f"{self.get_hold_type_display()} on {target} [{self.status}]"


class ComplianceViolation(TimeStampedModel):
    """A recorded breach of a playbook rule."""

    class Severity(models.TextChoices):
        MINOR = "MINOR", "Minor"
        MAJOR = "MAJOR", "Major"
        SEVERE = "SEVERE", "Severe"

    class Status(models.TextChoices):
        OPEN = "open", "Open"
        BLOCKED = "blocked", "Blocked"
        RESOLVED = "resolved", "Resolved"

    violation_type = models.CharField(max_length=60)
    severity = models.CharField(max_length=10, choices=Severity.choices, default=Severity.MINOR)
    sop_key = models.CharField(max_length=20, blank=True, default="")
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.OPEN,
        db_index=True,
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="compliance_violations",
    )
    job_id = models.CharField(max_length=64, blank=True, default="")
    description = models.TextField()
    detected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolution_notes = models.TextField(blank=True, default="")

    class Meta:
        verbose_name = "compliance violation"
        verbose_name_plural = "compliance violations"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"[{self.severity}] {self.violation_type} ({self.status})"


class ComplianceEscalation(TimeStampedModel):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        RESOLVED = "resolved", "Resolved"

    violation = models.ForeignKey(
        ComplianceViolation,
        on_delete=models.CASCADE,
        related_name="escalations",
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    escalated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="+",
    )
    escalated_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="compliance_escalations",
    )
    notes = models.TextField(blank=True, default="")
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolution_notes = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Escalation of {self.violation_id} ({self.status})"


class ComplianceAuditLog(models.Model):
    """Append-only trail of compliance actions (acknowledgments, holds, violations)."""

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    action = models.CharField(max_length=60, db_index=True)
    target_type = models.CharField(max_length=60)
    target_id = models.CharField(max_length=64)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "compliance audit entry"
        verbose_name_plural = "compliance audit log"

    def __str__(self) -> str:
        return f"{self.action} {self.target_type}:{self.target_id}"
