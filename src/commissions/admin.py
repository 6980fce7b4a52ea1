from django.contrib import admin

from commissions.models import (
    CommissionDocument,
    CommissionRevisionLog,
    CommissionStatusLog,
    CommissionSubmission,
    CommissionTier,
    DeniedJobNumber,
    ManagerOverride,
    OverrideTracking,
    UserCommissionTier,
)


@admin.register(CommissionTier)
class CommissionTierAdmin(admin.ModelAdmin):
    list_display = ("name", "sort_order", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name",)


@admin.register(UserCommissionTier)
class UserCommissionTierAdmin(admin.ModelAdmin):
    list_display = ("user", "tier", "assigned_by", "updated_at")
    raw_id_fields = ("user", "assigned_by")


@admin.register(CommissionDocument)
class CommissionDocumentAdmin(admin.ModelAdmin):
    list_display = ("job_name_id", "sales_rep", "status", "gross_contract_total", "rep_commission", "created_at")
    list_filter = ("status", "job_type")
    search_fields = ("job_name_id", "sales_rep")
    readonly_fields = (
        "op_amount",
        "contract_total_net",
        "net_profit",
        "rep_commission",
        "company_profit",
        "margin",
        "tier_drops",
        "applied_rep_profit_percent",
    )


class CommissionStatusLogInline(admin.TabularInline):
    model = CommissionStatusLog
    extra = 0
    readonly_fields = ("from_status", "to_status", "from_stage", "to_stage", "changed_by", "notes", "created_at")
    can_delete = False


@admin.register(CommissionSubmission)
class CommissionSubmissionAdmin(admin.ModelAdmin):
    list_display = (
        "job_number",
        "job_name",
        "submitted_by",
        "status",
        "approval_stage",
        "net_commission_owed",
        "scheduled_pay_date",
        "created_at",
    )
    list_filter = ("status", "approval_stage", "job_type", "is_manager_submission")
    search_fields = ("job_number", "job_name", "submitted_by__email")
    raw_id_fields = ("submitted_by", "document")
    readonly_fields = ("total_job_revenue", "gross_commission", "net_commission_owed")
    inlines = [CommissionStatusLogInline]


@admin.register(DeniedJobNumber)
class DeniedJobNumberAdmin(admin.ModelAdmin):
    list_display = ("job_number", "denied_by", "denied_at")
    search_fields = ("job_number",)


@admin.register(OverrideTracking)
class OverrideTrackingAdmin(admin.ModelAdmin):
    list_display = ("sales_rep", "approved_commission_count", "override_phase_complete")


@admin.register(ManagerOverride)
class ManagerOverrideAdmin(admin.ModelAdmin):
    list_display = ("manager", "sales_rep", "override_amount", "commission_number", "status")
    list_filter = ("status",)


admin.site.register(CommissionRevisionLog)
