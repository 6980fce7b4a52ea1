import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import commissions.models

JOB_TYPES = [("insurance", "Insurance"), ("retail", "Retail"), ("hoa", "HOA")]
ROOF_TYPES = [
    ("shingle", "Shingle"),
    ("tile", "Tile"),
    ("foam", "Foam"),
    ("metal", "Metal"),
    ("other", "Other"),
]


def _timestamps():
    return [
        ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


def _money():
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)


def _optional_money():
    return models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)


def _rate(verbose_name=None):
    return models.DecimalField(
        decimal_places=4,
        default=Decimal("0.0000"),
        max_digits=6,
        validators=[
            django.core.validators.MinValueValidator(Decimal("0")),
            django.core.validators.MaxValueValidator(Decimal("1")),
        ],
        verbose_name=verbose_name,
    )


def _job_number(**kwargs):
    return models.CharField(
        max_length=4,
        validators=[
            django.core.validators.RegexValidator(
                message="Job number must be exactly 4 digits.",
                regex="^\\d{4}$",
            ),
        ],
        **kwargs,
    )


def _user_fk(related_name="+", on_delete=django.db.models.deletion.SET_NULL, null=True, blank=True):
    return models.ForeignKey(
        blank=blank,
        null=null,
        on_delete=on_delete,
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
            name="CommissionTier",
            fields=_timestamps() + [
                ("name", models.CharField(max_length=100, unique=True)),
                ("description", models.TextField(blank=True, default="")),
                ("allowed_op_percentages", models.JSONField(default=commissions.models._default_op_percentages)),
                ("allowed_profit_splits", models.JSONField(default=commissions.models._default_profit_splits)),
                ("sort_order", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "ordering": ["sort_order", "name"],
            },
        ),
        migrations.CreateModel(
            name="UserCommissionTier",
            fields=_timestamps() + [
                ("notes", models.TextField(blank=True, default="")),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="commission_tier_assignment",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "tier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="assignments",
                        to="commissions.commissiontier",
                    ),
                ),
                ("assigned_by", _user_fk()),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="CommissionDocument",
            fields=_timestamps() + [
                ("job_name_id", models.CharField(max_length=255, verbose_name="job name & ID")),
                ("job_date", models.DateField()),
                ("sales_rep", models.CharField(max_length=150)),
                ("job_type", models.CharField(choices=JOB_TYPES, default="insurance", max_length=20)),
                ("roof_type", models.CharField(choices=ROOF_TYPES, default="shingle", max_length=20)),
                ("gross_contract_total", _money()),
                ("op_percent", _rate()),
                ("material_cost", _money()),
                ("labor_cost", _money()),
                ("neg_exp_1", _money()),
                ("neg_exp_2", _money()),
                ("neg_exp_3", _money()),
                ("supplement_fees_expense", _money()),
                ("pos_exp_1", _money()),
                ("pos_exp_2", _money()),
                ("pos_exp_3", _money()),
                ("pos_exp_4", _money()),
                ("rep_profit_percent", _rate("commission rate")),
                ("advance_total", _money()),
                ("op_amount", _money()),
                ("contract_total_net", _money()),
                ("net_profit", _money()),
                ("rep_commission", _money()),
                ("company_profit", _money()),
                ("margin", models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=8)),
                ("tier_drops", models.PositiveSmallIntegerField(default=0)),
                (
                    "applied_rep_profit_percent",
                    models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=6),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("submitted", "Submitted"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("reviewer_notes", models.TextField(blank=True, default="")),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                (
                    "created_by",
                    _user_fk(
                        "commission_documents",
                        on_delete=django.db.models.deletion.PROTECT,
                        null=False,
                        blank=False,
                    ),
                ),
                (
                    "tier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="documents",
                        to="commissions.commissiontier",
                    ),
                ),
                ("approved_by", _user_fk()),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="CommissionSubmission",
            fields=_timestamps() + [
                ("job_number", _job_number(db_index=True)),
                ("job_name", models.CharField(max_length=255)),
                ("job_address", models.CharField(max_length=500)),
                ("job_type", models.CharField(choices=JOB_TYPES, default="insurance", max_length=20)),
                ("roof_type", models.CharField(choices=ROOF_TYPES, default="shingle", max_length=20)),
                (
                    "submission_type",
                    models.CharField(
                        choices=[("employee", "Employee"), ("subcontractor", "Subcontractor")],
                        default="employee",
                        max_length=20,
                    ),
                ),
                (
                    "rep_role",
                    models.CharField(
                        blank=True,
                        choices=[("setter", "Setter"), ("closer", "Closer"), ("hybrid", "Hybrid")],
                        default="",
                        max_length=20,
                    ),
                ),
                ("subcontractor_name", models.CharField(blank=True, default="", max_length=255)),
                ("sales_rep_name", models.CharField(blank=True, default="", max_length=150)),
                ("contract_date", models.DateField()),
                ("install_completion_date", models.DateField(blank=True, null=True)),
                ("contract_amount", _money()),
                ("supplements_approved", _money()),
                (
                    "commission_percentage",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=5,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("100")),
                        ],
                    ),
                ),
                ("is_flat_fee", models.BooleanField(default=False)),
                ("flat_fee_amount", _optional_money()),
                ("advances_paid", _money()),
                ("total_job_revenue", _money()),
                ("gross_commission", _money()),
                ("net_commission_owed", _money()),
                ("commission_requested", _optional_money()),
                ("commission_approved", _optional_money()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending_review", "Pending review"),
                            ("rejected", "Revision required"),
                            ("approved", "Approved"),
                            ("denied", "Denied"),
                            ("paid", "Paid"),
                        ],
                        db_index=True,
                        default="pending_review",
                        max_length=20,
                    ),
                ),
                (
                    "approval_stage",
                    models.CharField(
                        choices=[
                            ("pending_manager", "Compliance review"),
                            ("pending_accounting", "Accounting review"),
                            ("pending_admin", "Admin review"),
                            ("completed", "Completed"),
                        ],
                        db_index=True,
                        default="pending_manager",
                        max_length=20,
                    ),
                ),
                ("is_manager_submission", models.BooleanField(default=False)),
                ("revision_count", models.PositiveIntegerField(default=0)),
                ("was_rejected", models.BooleanField(default=False)),
                ("rejection_reason", models.TextField(blank=True, default="")),
                ("reviewer_notes", models.TextField(blank=True, default="")),
                ("manager_approved_at", models.DateTimeField(blank=True, null=True)),
                ("accounting_approved_at", models.DateTimeField(blank=True, null=True)),
                ("admin_approved_at", models.DateTimeField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("denied_at", models.DateTimeField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("scheduled_pay_date", models.DateField(blank=True, null=True)),
                ("override_amount", _optional_money()),
                ("override_commission_number", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "submitted_by",
                    _user_fk(
                        "commission_submissions",
                        on_delete=django.db.models.deletion.PROTECT,
                        null=False,
                        blank=False,
                    ),
                ),
                (
                    "document",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="submissions",
                        to="commissions.commissiondocument",
                    ),
                ),
                ("manager_approved_by", _user_fk()),
                ("accounting_approved_by", _user_fk()),
                ("admin_approved_by", _user_fk()),
                ("approved_by", _user_fk()),
                ("denied_by", _user_fk()),
                ("paid_by", _user_fk()),
                ("override_manager", _user_fk()),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["submitted_by", "status"], name="commission_sub_owner_idx"),
                    models.Index(fields=["status", "approval_stage"], name="commission_sub_stage_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CommissionStatusLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("from_status", models.CharField(blank=True, default="", max_length=20)),
                ("to_status", models.CharField(max_length=20)),
                ("from_stage", models.CharField(blank=True, default="", max_length=20)),
                ("to_stage", models.CharField(blank=True, default="", max_length=20)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                (
                    "submission",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_logs",
                        to="commissions.commissionsubmission",
                    ),
                ),
                ("changed_by", _user_fk(blank=False)),
            ],
            options={
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="CommissionRevisionLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("revision_number", models.PositiveIntegerField()),
                ("reason", models.TextField()),
                ("resubmitted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "submission",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="revision_logs",
                        to="commissions.commissionsubmission",
                    ),
                ),
                ("requested_by", _user_fk(blank=False)),
            ],
            options={
                "ordering": ["revision_number"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("submission", "revision_number"),
                        name="uniq_revision_number_per_submission",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="DeniedJobNumber",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("job_number", _job_number(unique=True)),
                ("reason", models.TextField()),
                ("denied_at", models.DateTimeField(auto_now_add=True)),
                (
                    "submission",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="commissions.commissionsubmission",
                    ),
                ),
                ("denied_by", _user_fk(blank=False)),
            ],
            options={
                "ordering": ["-denied_at"],
            },
        ),
        migrations.CreateModel(
            name="OverrideTracking",
            fields=_timestamps() + [
                ("approved_commission_count", models.PositiveIntegerField(default=0)),
                ("override_phase_complete", models.BooleanField(default=False)),
                (
                    "sales_rep",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="override_tracking",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="ManagerOverride",
            fields=_timestamps() + [
                ("override_amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("commission_number", models.PositiveIntegerField()),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("paid", "Paid")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "manager",
                    _user_fk(
                        "overrides_earned",
                        on_delete=django.db.models.deletion.PROTECT,
                        null=False,
                        blank=False,
                    ),
                ),
                (
                    "sales_rep",
                    _user_fk(
                        "overrides_generated",
                        on_delete=django.db.models.deletion.PROTECT,
                        null=False,
                        blank=False,
                    ),
                ),
                (
                    "submission",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="manager_override",
                        to="commissions.commissionsubmission",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
