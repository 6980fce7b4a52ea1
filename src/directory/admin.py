from django.contrib import admin

from directory.models import Prospect, Subcontractor, Vendor


@admin.register(Subcontractor)
class SubcontractorAdmin(admin.ModelAdmin):
    list_display = ("company_name", "trade_type", "status", "is_approved", "coi_status", "coi_expiration_date")
    list_filter = ("trade_type", "status", "is_approved", "coi_status")
    search_fields = ("company_name", "primary_contact_name", "email")


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ("vendor_name", "vendor_type", "status", "preferred_contact_method")
    list_filter = ("vendor_type", "status")
    search_fields = ("vendor_name", "primary_contact_name", "email")


@admin.register(Prospect)
class ProspectAdmin(admin.ModelAdmin):
    list_display = ("company_name", "prospect_type", "stage", "source", "next_followup_date", "assigned_owner")
    list_filter = ("prospect_type", "stage", "source")
    search_fields = ("company_name", "contact_name", "email")
