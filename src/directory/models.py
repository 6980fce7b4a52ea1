"""Models for the subcontractor / vendor directory and its prospect pipeline."""
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.models import TimeStampedModel


class TradeType(models.TextChoices):
    ROOFING = "roofing", "Roofing"
    TILE = "tile", "Tile"
    SHINGLE = "shingle", "Shingle"
    FOAM = "foam", "Foam"
    COATINGS = "coatings", "Coatings"
    METAL = "metal", "Metal"
    GUTTERS = "gutters", "Gutters"
    DRYWALL = "drywall", "Drywall"
    PAINT = "paint", "Paint"
    OTHER = "other", "Other"


class ServiceArea(models.TextChoices):
    PHOENIX_METRO = "phoenix_metro", "Phoenix Metro"
    WEST_VALLEY = "west_valley", "West Valley"
    EAST_VALLEY = "east_valley", "East Valley"
    NORTH_VALLEY = "north_valley", "North Valley"
    PRESCOTT = "prescott", "Prescott"
    OTHER = "other", "Other"


class EntityStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    ON_HOLD = "on_hold", "On hold"
    DO_NOT_USE = "do_not_use", "Do not use"


class DocStatus(models.TextChoices):
    RECEIVED = "received", "Received"
    MISSING = "missing", "Missing"


class DirectoryEntry(TimeStampedModel):
    """Contact details and compliance paperwork shared by subcontractors and vendors."""

    primary_contact_name = models.CharField(max_length=150)
    phone = models.CharField(max_length=30)
    email = models.EmailField()
    service_areas = models.JSONField(default=list, blank=True)
    status = models.CharField(
        max_length=20,
        choices=EntityStatus.choices,
        default=EntityStatus.ACTIVE,
        db_index=True,
    )
    notes = models.TextField(blank=True, default="")

    coi_status = models.CharField(max_length=10, choices=DocStatus.choices, default=DocStatus.MISSING)
    coi_expiration_date = models.DateField(null=True, blank=True)
    w9_status = models.CharField(max_length=10, choices=DocStatus.choices, default=DocStatus.MISSING)
    ic_agreement_status = models.CharField(max_length=10, choices=DocStatus.choices, default=DocStatus.MISSING)
    requested_docs = models.JSONField(default=list, blank=True)
    docs_due_date = models.DateField(null=True, blank=True)
    last_requested_date = models.DateField(null=True, blank=True)
    last_received_date = models.DateField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        abstract = True


class Subcontractor(DirectoryEntry):
    company_name = models.CharField(max_length=255, db_index=True)
    trade_type = models.CharField(max_length=20, choices=TradeType.choices, default=TradeType.ROOFING)
    internal_rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )
    is_approved = models.BooleanField(default=False)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    approved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["company_name"]

    def __str__(self):
        return self.company_name


class Vendor(DirectoryEntry):
    class VendorType(models.TextChoices):
        SUPPLIER = "supplier", "Supplier"
        DUMP = "dump", "Dump"
        EQUIPMENT_RENTAL = "equipment_rental", "Equipment rental"
        SAFETY = "safety", "Safety"
        MARKETING = "marketing", "Marketing"
        OTHER = "other", "Other"

    class ContactMethod(models.TextChoices):
        CALL = "call", "Call"
        TEXT = "text", "Text"
        EMAIL = "email", "Email"

    vendor_name = models.CharField(max_length=255, db_index=True)
    vendor_type = models.CharField(max_length=20, choices=VendorType.choices, default=VendorType.SUPPLIER)
    preferred_contact_method = models.CharField(
        max_length=10,
        choices=ContactMethod.choices,
        blank=True,
        default="",
    )
    website = models.URLField(blank=True, default="")
    account_number = models.CharField(max_length=100, blank=True, default="")

    class Meta:
        ordering = ["vendor_name"]

    def __str__(self):
        return self.vendor_name


class Prospect(TimeStampedModel):
    """A company we might start working with, tracked until approved or dropped."""

    class ProspectType(models.TextChoices):
        SUBCONTRACTOR = "subcontractor", "Subcontractor"
        VENDOR = "vendor", "Vendor"

    class Source(models.TextChoices):
        INBOUND_CALL = "inbound_call", "Inbound call"
        REFERRAL = "referral", "Referral"
        JOBSITE_MEET = "jobsite_meet", "Jobsite meet"
        OTHER = "other", "Other"

    class Stage(models.TextChoices):
        NEW = "new", "New"
        CONTACTED = "contacted", "Contacted"
        WAITING_DOCS = "waiting_docs", "Waiting on docs"
        TRIAL_JOB = "trial_job", "Trial job"
        APPROVED = "approved", "Approved"
        NOT_A_FIT = "not_a_fit", "Not a fit"

    company_name = models.CharField(max_length=255)
    contact_name = models.CharField(max_length=150)
    phone = models.CharField(max_length=30)
    email = models.EmailField()
    prospect_type = models.CharField(max_length=20, choices=ProspectType.choices)
    trade_vendor_type = models.CharField(max_length=30, blank=True, default="")
    source = models.CharField(max_length=20, choices=Source.choices, default=Source.OTHER)
    stage = models.CharField(max_length=20, choices=Stage.choices, default=Stage.NEW, db_index=True)
    next_followup_date = models.DateField(null=True, blank=True)
    assigned_owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="prospects",
    )
    notes = models.TextField(blank=True, default="")
    converted_subcontractor = models.ForeignKey(
        Subcontractor, on_delete=models.SET_NULL, null=True, blank=True, related_name="+",
    )
    converted_vendor = models.ForeignKey(
        Vendor, on_delete=models.SET_NULL, null=True, blank=True, related_name="+",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        ordering = ["next_followup_date", "company_name"]

    def __str__(self):
        return f"{self.company_name} ({self.stage})"
