import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

DOC_STATUS = [("received", "Received"), ("missing", "Missing")]
ENTITY_STATUS = [("active", "Active"), ("on_hold", "On hold"), ("do_not_use", "Do not use")]


def _user_fk(related_name="+"):
    return models.ForeignKey(
        blank=True,
        null=True,
        on_delete=django.db.models.deletion.SET_NULL,
        related_name=related_name,
        to=settings.AUTH_USER_MODEL,
    )


def _directory_entry_fields():
    return [
        ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        ("primary_contact_name", models.CharField(max_length=150)),
        ("phone", models.CharField(max_length=30)),
        ("email", models.EmailField(max_length=254)),
        ("service_areas", models.JSONField(blank=True, default=list)),
        ("status", models.CharField(choices=ENTITY_STATUS, db_index=True, default="active", max_length=20)),
        ("notes", models.TextField(blank=True, default="")),
        ("coi_status", models.CharField(choices=DOC_STATUS, default="missing", max_length=10)),
        ("coi_expiration_date", models.DateField(blank=True, null=True)),
        ("w9_status", models.CharField(choices=DOC_STATUS, default="missing", max_length=10)),
        ("ic_agreement_status", models.CharField(choices=DOC_STATUS, default="missing", max_length=10)),
        ("requested_docs", models.JSONField(blank=True, default=list)),
        ("docs_due_date", models.DateField(blank=True, null=True)),
        ("last_requested_date", models.DateField(blank=True, null=True)),
        ("last_received_date", models.DateField(blank=True, null=True)),
        ("created_by", _user_fk()),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Subcontractor",
            fields=_directory_entry_fields() + [
                ("company_name", models.CharField(db_index=True, max_length=255)),
                (
                    "trade_type",
                    models.CharField(
                        choices=[
                            ("roofing", "Roofing"),
                            ("tile", "Tile"),
                            ("shingle", "Shingle"),
                            ("foam", "Foam"),
                            ("coatings", "Coatings"),
                            ("metal", "Metal"),
                            ("gutters", "Gutters"),
                            ("drywall", "Drywall"),
                            ("paint", "Paint"),
                            ("other", "Other"),
                        ],
                        default="roofing",
                        max_length=20,
                    ),
                ),
                (
                    "internal_rating",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(5),
                        ],
                    ),
                ),
                ("is_approved", models.BooleanField(default=False)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("approved_by", _user_fk()),
            ],
            options={
                "ordering": ["company_name"],
            },
        ),
        migrations.CreateModel(
            name="Vendor",
            fields=_directory_entry_fields() + [
                ("vendor_name", models.CharField(db_index=True, max_length=255)),
                (
                    "vendor_type",
                    models.CharField(
                        choices=[
                            ("supplier", "Supplier"),
                            ("dump", "Dump"),
                            ("equipment_rental", "Equipment rental"),
                            ("safety", "Safety"),
                            ("marketing", "Marketing"),
                            ("other", "Other"),
                        ],
                        default="supplier",
                        max_length=20,
                    ),
                ),
                (
                    "preferred_contact_method",
                    models.CharField(
                        blank=True,
                        choices=[("call", "Call"), ("text", "Text"), ("email", "Email")],
                        default="",
                        max_length=10,
                    ),
                ),
                ("website", models.URLField(blank=True, default="")),
                ("account_number", models.CharField(blank=True, default="", max_length=100)),
            ],
            options={
                "ordering": ["vendor_name"],
            },
        ),
        migrations.CreateModel(
            name="Prospect",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company_name", models.CharField(max_length=255)),
                ("contact_name", models.CharField(max_length=150)),
                ("phone", models.CharField(max_length=30)),
                ("email", models.EmailField(max_length=254)),
                (
                    "prospect_type",
                    models.CharField(
                        choices=[("subcontractor", "Subcontractor"), ("vendor", "Vendor")],
                        max_length=20,
                    ),
                ),
                ("trade_vendor_type", models.CharField(blank=True, default="", max_length=30)),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("inbound_call", "Inbound call"),
                            ("referral", "Referral"),
                            ("jobsite_meet", "Jobsite meet"),
                            ("other", "Other"),
                        ],
                        default="other",
                        max_length=20,
                    ),
                ),
                (
                    "stage",
                    models.CharField(
                        choices=[
                            ("new", "New"),
                            ("contacted", "Contacted"),
                            ("waiting_docs", "Waiting on docs"),
                            ("trial_job", "Trial job"),
                            ("approved", "Approved"),
                            ("not_a_fit", "Not a fit"),
                        ],
                        db_index=True,
                        default="new",
                        max_length=20,
                    ),
                ),
                ("next_followup_date", models.DateField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("assigned_owner", _user_fk("prospects")),
                (
                    "converted_subcontractor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="directory.subcontractor",
                    ),
                ),
                (
                    "converted_vendor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="directory.vendor",
                    ),
                ),
                ("created_by", _user_fk()),
            ],
            options={
                "ordering": ["next_followup_date", "company_name"],
            },
        ),
    ]
