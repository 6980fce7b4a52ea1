import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _timestamps():
    return [
        ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


def _user_fk(related_name="+", null=True, blank=True):
    return models.ForeignKey(
        blank=blank,
        null=null,
        on_delete=django.db.models.deletion.SET_NULL,
        related_name=related_name,
        to=settings.AUTH_USER_MODEL,
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="SOPAcknowledgment",
            fields=_timestamps() + [
                ("sop_key", models.CharField(default="SOPMASTER", max_length=40)),
                ("version", models.CharField(max_length=40)),
                (
                    "acknowledgment_method",
                    models.CharField(
                        choices=[("checkbox", "Checkbox"), ("signature", "Signature")],
                        default="checkbox",
                        max_length=20,
                    ),
                ),
                ("acknowledged_at", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sop_acknowledgments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "SOP acknowledgment",
                "verbose_name_plural": "SOP acknowledgments",
                "ordering": ["-acknowledged_at"],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "sop_key", "version"), name="uniq_sop_ack_per_version"),
                ],
            },
        ),
        migrations.CreateModel(
            name="MasterSOPAcknowledgment",
            fields=_timestamps() + [
                (
                    "sop_number",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(10),
                        ],
                    ),
                ),
                ("sop_version", models.CharField(max_length=40)),
                ("acknowledged_at", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="master_sop_acknowledgments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "master SOP acknowledgment",
                "verbose_name_plural": "master SOP acknowledgments",
                "ordering": ["sop_number"],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "sop_number", "sop_version"), name="uniq_master_sop_ack"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ComplianceViolation",
            fields=_timestamps() + [
                ("violation_type", models.CharField(max_length=60)),
                (
                    "severity",
                    models.CharField(
                        choices=[("MINOR", "Minor"), ("MAJOR", "Major"), ("SEVERE", "Severe")],
                        default="MINOR",
                        max_length=10,
                    ),
                ),
                ("sop_key", models.CharField(blank=True, default="", max_length=20)),
                (
                    "status",
                    models.CharField(
                        choices=[("open", "Open"), ("blocked", "Blocked"), ("resolved", "Resolved")],
                        db_index=True,
                        default="open",
                        max_length=20,
                    ),
                ),
                ("job_id", models.CharField(blank=True, default="", max_length=64)),
                ("description", models.TextField()),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("resolution_notes", models.TextField(blank=True, default="")),
                ("user", _user_fk("compliance_violations")),
                ("detected_by", _user_fk()),
                ("resolved_by", _user_fk()),
            ],
            options={
                "verbose_name": "compliance violation",
                "verbose_name_plural": "compliance violations",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="ComplianceHold",
            fields=_timestamps() + [
                (
                    "hold_type",
                    models.CharField(
                        choices=[
                            ("commission_hold", "Commission hold"),
                            ("invoice_hold", "Invoice hold"),
                            ("scheduling_hold", "Scheduling hold"),
                            ("access_hold", "Access hold"),
                        ],
                        db_index=True,
                        max_length=30,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("released", "Released")],
                        db_index=True,
                        default="active",
                        max_length=20,
                    ),
                ),
                ("job_id", models.CharField(blank=True, db_index=True, default="", max_length=64)),
                ("reason", models.TextField()),
                ("released_at", models.DateTimeField(blank=True, null=True)),
                ("release_notes", models.TextField(blank=True, default="")),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="compliance_holds",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "violation",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="holds",
                        to="compliance.complianceviolation",
                    ),
                ),
                ("created_by", _user_fk()),
                ("released_by", _user_fk()),
            ],
            options={
                "verbose_name": "compliance hold",
                "verbose_name_plural": "compliance holds",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="ComplianceEscalation",
            fields=_timestamps() + [
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("resolved", "Resolved")],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("resolution_notes", models.TextField(blank=True, default="")),
                (
                    "violation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="escalations",
                        to="compliance.complianceviolation",
                    ),
                ),
                ("escalated_by", _user_fk(blank=False)),
                ("escalated_to", _user_fk("compliance_escalations")),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="ComplianceAuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(db_index=True, max_length=60)),
                ("target_type", models.CharField(max_length=60)),
                ("target_id", models.CharField(max_length=64)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("actor", _user_fk()),
            ],
            options={
                "verbose_name": "compliance audit entry",
                "verbose_name_plural": "compliance audit log",
                "ordering": ["-created_at"],
            },
        ),
    ]
