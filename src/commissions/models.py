"""Models for the commissions app."""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models

from commissions.calculations import (
    OP_PERCENT_OPTIONS,
    REP_PERCENT_OPTIONS,
    calculate_document_totals,
    calculate_worksheet,
    to_decimal,
)
from core.models import TimeStampedModel

job_number_validator = RegexValidator(
    regex=r"^\d{4}$",
    message="Job number must be exactly 4 digits.",
)

MONEY = {"max_digits": 14, "decimal_places": 2, "default": Decimal("0.00")}
RATE = {
    "max_digits": 6,
    "decimal_places": 4,
    "default": Decimal("0.0000"),
    "validators": [MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("1"))],
}


class JobType(models.TextChoices):
    INSURANCE = "insurance", "Insurance"
    RETAIL = "retail", "Retail"
    HOA = "hoa", "HOA"


class RoofType(models.TextChoices):
    SHINGLE = "shingle", "Shingle"
    TILE = "tile", "Tile"
    FOAM = "foam", "Foam"
    METAL = "metal", "Metal"
    OTHER = "other", "Other"


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------

def _default_op_percentages():
    return [str(v) for v in OP_PERCENT_OPTIONS]


def _default_profit_splits():
    return [str(v) for v in REP_PERCENT_OPTIONS]


class CommissionTier(TimeStampedModel):
    """A named set of O&P percentages and rep profit splits a rep may choose from.

    Percentages are stored as decimal strings (``"0.125"``), never as whole
    numbers, so ``Decimal`` round-trips exactly.
    """

    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True, default="")
    allowed_op_percentages = models.JSONField(default=_default_op_percentages)
    allowed_profit_splits = models.JSONField(default=_default_profit_splits)
    sort_order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["sort_order", "name"]

    def __str__(self):
        return self.name

    @property
    def op_percent_values(self) -> list[Decimal]:
        return sorted(to_decimal(v) for v in self.allowed_op_percentages or [])

    @property
    def profit_split_values(self) -> list[Decimal]:
        return sorted(to_decimal(v) for v in self.allowed_profit_splits or [])


class UserCommissionTier(TimeStampedModel):
    """The tier currently assigned to a rep (at most one)."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="commission_tier_assignment",
    )
    tier = models.ForeignKey(CommissionTier, on_delete=models.PROTECT, related_name="assignments")
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    notes = models.TextField(blank=True, default="")

    def __str__(self):
        return f"{self.user} -> {self.tier}"


# ---------------------------------------------------------------------------
# Commission document (O&P / profit split worksheet)
# ---------------------------------------------------------------------------

class CommissionDocument(TimeStampedModel):
    """Per-job profit breakdown filled in by the rep and signed off by accounting."""

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        SUBMITTED = "submitted", "Submitted"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"

    EDITABLE_STATUSES = (Status.DRAFT, Status.REJECTED)

    job_name_id = models.CharField("job name & ID", max_length=255)
    job_date = models.DateField()
    sales_rep = models.CharField(max_length=150)
    job_type = models.CharField(max_length=20, choices=JobType.choices, default=JobType.INSURANCE)
    roof_type = models.CharField(max_length=20, choices=RoofType.choices, default=RoofType.SHINGLE)

    gross_contract_total = models.DecimalField(**MONEY)
    op_percent = models.DecimalField(**RATE)
    material_cost = models.DecimalField(**MONEY)
    labor_cost = models.DecimalField(**MONEY)
    neg_exp_1 = models.DecimalField(**MONEY)
    neg_exp_2 = models.DecimalField(**MONEY)
    neg_exp_3 = models.DecimalField(**MONEY)
    supplement_fees_expense = models.DecimalField(**MONEY)
    pos_exp_1 = models.DecimalField(**MONEY)
    pos_exp_2 = models.DecimalField(**MONEY)
    pos_exp_3 = models.DecimalField(**MONEY)
    pos_exp_4 = models.DecimalField(**MONEY)
    rep_profit_percent = models.DecimalField("commission rate", **RATE)
    advance_total = models.DecimalField(**MONEY)

    # Derived, recomputed on every save.
    op_amount = models.DecimalField(**MONEY)
    contract_total_net = models.DecimalField(**MONEY)
    net_profit = models.DecimalField(**MONEY)
    rep_commission = models.DecimalField(**MONEY)
    company_profit = models.DecimalField(**MONEY)
    margin = models.DecimalField(max_digits=8, decimal_places=4, default=Decimal("0"))
    tier_drops = models.PositiveSmallIntegerField(default=0)
    applied_rep_profit_percent = models.DecimalField(max_digits=6, decimal_places=4, default=Decimal("0"))

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT, db_index=True)
    notes = models.TextField(blank=True, default="")
    reviewer_notes = models.TextField(blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="commission_documents",
    )
    tier = models.ForeignKey(
        CommissionTier,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="documents",
    )
    submitted_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    approved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.job_name_id} ({self.status})"

    @property
    def is_editable(self) -> bool:
        return self.status in self.EDITABLE_STATUSES

    def recalculate(self) -> None:
        """Refresh the derived fields from the current inputs.

        ``applied_rep_profit_percent`` is set by the margin gate; when it is
        unset the rep's requested rate is used as-is.
        """
        from commissions.services import evaluate_margin_gate

        gate = evaluate_margin_gate(self)
        self.margin = gate.margin
        self.tier_drops = gate.drops
        self.applied_rep_profit_percent = gate.applied_split

        inputs = {f: getattr(self, f) for f in CALCULATION_INPUT_FIELDS}
        inputs["rep_profit_percent"] = gate.applied_split
        totals = calculate_document_totals(inputs)
        for name, value in totals.as_dict().items():
            setattr(self, name, value)

    def save(self, *args, **kwargs):
        self.recalculate()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = set(update_fields) | set(DERIVED_FIELDS)
        super().save(*args, **kwargs)


CALCULATION_INPUT_FIELDS = (
    "gross_contract_total",
    "op_percent",
    "material_cost",
    "labor_cost",
    "neg_exp_1",
    "neg_exp_2",
    "neg_exp_3",
    "supplement_fees_expense",
    "pos_exp_1",
    "pos_exp_2",
    "pos_exp_3",
    "pos_exp_4",
    "rep_profit_percent",
    "advance_total",
)

DERIVED_FIELDS = (
    "op_amount",
    "contract_total_net",
    "net_profit",
    "rep_commission",
    "company_profit",
    "margin",
    "tier_drops",
    "applied_rep_profit_percent",
)


# ---------------------------------------------------------------------------
# Commission submission (payout request)
# ---------------------------------------------------------------------------

class CommissionSubmission(TimeStampedModel):
    """A rep's request to be paid commission on a job, routed through approvals."""

    class Status(models.TextChoices):
        PENDING_REVIEW = "pending_review", "Pending review"
        REJECTED = "rejected", "Revision required"
        APPROVED = "approved", "Approved"
        DENIED = "denied", "Denied"
        PAID = "paid", "Paid"

    class Stage(models.TextChoices):
        PENDING_MANAGER = "pending_manager", "Compliance review"
        PENDING_ACCOUNTING = "pending_accounting", "Accounting review"
        PENDING_ADMIN = "pending_admin", "Admin review"
        COMPLETED = "completed", "Completed"

    class SubmissionType(models.TextChoices):
        EMPLOYEE = "employee", "Employee"
        SUBCONTRACTOR = "subcontractor", "Subcontractor"

    class RepRole(models.TextChoices):
        SETTER = "setter", "Setter"
        CLOSER = "closer", "Closer"
        HYBRID = "hybrid", "Hybrid"

    job_number = models.CharField(max_length=4, validators=[job_number_validator], db_index=True)
    job_name = models.CharField(max_length=255)
    job_address = models.CharField(max_length=500)
    job_type = models.CharField(max_length=20, choices=JobType.choices, default=JobType.INSURANCE)
    roof_type = models.CharField(max_length=20, choices=RoofType.choices, default=RoofType.SHINGLE)
    submission_type = models.CharField(
        max_length=20,
        choices=SubmissionType.choices,
        default=SubmissionType.EMPLOYEE,
    )
    rep_role = models.CharField(max_length=20, choices=RepRole.choices, blank=True, default="")
    subcontractor_name = models.CharField(max_length=255, blank=True, default="")
    sales_rep_name = models.CharField(max_length=150, blank=True, default="")
    contract_date = models.DateField()
    install_completion_date = models.DateField(null=True, blank=True)
    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="commission_submissions",
    )
    document = models.ForeignKey(
        CommissionDocument,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="submissions",
    )

    # Worksheet inputs
    contract_amount = models.DecimalField(**MONEY)
    supplements_approved = models.DecimalField(**MONEY)
    commission_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    is_flat_fee = models.BooleanField(default=False)
    flat_fee_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    advances_paid = models.DecimalField(**MONEY)

    # Worksheet totals
    total_job_revenue = models.DecimalField(**MONEY)
    gross_commission = models.DecimalField(**MONEY)
    net_commission_owed = models.DecimalField(**MONEY)

    commission_requested = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    commission_approved = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING_REVIEW,
        db_index=True,
    )
    approval_stage = models.CharField(
        max_length=20,
        choices=Stage.choices,
        default=Stage.PENDING_MANAGER,
        db_index=True,
    )
    is_manager_submission = models.BooleanField(default=False)
    revision_count = models.PositiveIntegerField(default=0)
    was_rejected = models.BooleanField(default=False)
    rejection_reason = models.TextField(blank=True, default="")
    reviewer_notes = models.TextField(blank=True, default="")

    manager_approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+",
    )
    manager_approved_at = models.DateTimeField(null=True, blank=True)
    accounting_approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+",
    )
    accounting_approved_at = models.DateTimeField(null=True, blank=True)
    admin_approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+",
    )
    admin_approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+",
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    denied_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+",
    )
    denied_at = models.DateTimeField(null=True, blank=True)
    paid_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+",
    )
    paid_at = models.DateTimeField(null=True, blank=True)
    scheduled_pay_date = models.DateField(null=True, blank=True)

    override_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    override_commission_number = models.PositiveIntegerField(null=True, blank=True)
    override_manager = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["submitted_by", "status"], name="commission_sub_owner_idx"),
            models.Index(fields=["status", "approval_stage"], name="commission_sub_stage_idx"),
        ]

    def __str__(self):
        return f"#{self.job_number} {self.job_name} [{self.status}]"

    def recalculate(self) -> None:
        totals = calculate_worksheet(
            contract_amount=self.contract_amount,
            supplements_approved=self.supplements_approved,
            commission_percentage=self.commission_percentage,
            advances_paid=self.advances_paid,
            flat_fee_amount=self.flat_fee_amount if self.is_flat_fee else None,
        )
        self.total_job_revenue = totals.total_job_revenue
        self.gross_commission = totals.gross_commission
        self.net_commission_owed = totals.net_commission_owed

    def save(self, *args, **kwargs):
        self.recalculate()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = set(update_fields) | {
                "total_job_revenue",
                "gross_commission",
                "net_commission_owed",
            }
        super().save(*args, **kwargs)

    @property
    def payable_amount(self) -> Decimal:
        """What accounting pays out.

        The approved amount once a reviewer sets it, otherwise what the rep
        requested, otherwise the net owed from the worksheet.
        """
        if self.commission_approved is not None:
            return self.commission_approved
        if self.commission_requested is not None:
            return self.commission_requested
        return self.net_commission_owed


class CommissionStatusLog(models.Model):
    """One row per status or stage change of a submission."""

    submission = models.ForeignKey(
        CommissionSubmission,
        on_delete=models.CASCADE,
        related_name="status_logs",
    )
    from_status = models.CharField(max_length=20, blank=True, default="")
    to_status = models.CharField(max_length=20)
    from_stage = models.CharField(max_length=20, blank=True, default="")
    to_stage = models.CharField(max_length=20, blank=True, default="")
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="+",
    )
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.submission_id}: {self.from_status or '-'} -> {self.to_status}"


class CommissionRevisionLog(models.Model):
    submission = models.ForeignKey(
        CommissionSubmission,
        on_delete=models.CASCADE,
        related_name="revision_logs",
    )
    revision_number = models.PositiveIntegerField()
    reason = models.TextField()
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="+",
    )
    resubmitted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["revision_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["submission", "revision_number"],
                name="uniq_revision_number_per_submission",
            ),
        ]

    def __str__(self):
        return f"Revision {self.revision_number} of {self.submission_id}"


class DeniedJobNumber(models.Model):
    """A job number that can never be submitted again once a commission on it is denied."""

    job_number = models.CharField(max_length=4, unique=True, validators=[job_number_validator])
    submission = models.ForeignKey(
        CommissionSubmission,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    reason = models.TextField()
    denied_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="+",
    )
    denied_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-denied_at"]

    def __str__(self):
        return self.job_number


class OverrideTracking(TimeStampedModel):
    """How many of a rep's commissions have earned their manager an override."""

    sales_rep = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="override_tracking",
    )
    approved_commission_count = models.PositiveIntegerField(default=0)
    override_phase_complete = models.BooleanField(default=False)

    def __str__(self):
        return f"{self.sales_rep}: {self.approved_commission_count}"


class ManagerOverride(TimeStampedModel):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PAID = "paid", "Paid"

    manager = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="overrides_earned",
    )
    sales_rep = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="overrides_generated",
    )
    submission = models.OneToOneField(
        CommissionSubmission,
        on_delete=models.CASCADE,
        related_name="manager_override",
    )
    override_amount = models.DecimalField(max_digits=14, decimal_places=2)
    commission_number = models.PositiveIntegerField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Override {self.override_amount} for {self.manager} (#{self.commission_number})"
