from django.contrib import admin

from compliance.models import (
    ComplianceAuditLog,
    ComplianceEscalation,
    ComplianceHold,
    ComplianceViolation,
    MasterSOPAcknowledgment,
    SOPAcknowledgment,
)


@admin.register(SOPAcknowledgment)
class SOPAcknowledgmentAdmin(admin.ModelAdmin):
    list_display = ("user", "sop_key", "version", "acknowledgment_method", "acknowledged_at")
    list_filter = ("sop_key", "version")
    search_fields = ("user__email",)


@admin.register(MasterSOPAcknowledgment)
class MasterSOPAcknowledgmentAdmin(admin.ModelAdmin):
    list_display = ("user", "sop_number", "sop_version", "acknowledged_at")
    list_filter = ("sop_version", "sop_number")


@admin.register(ComplianceHold)
class ComplianceHoldAdmin(admin.ModelAdmin):
    list_display = ("hold_type", "status", "user", "job_id", "created_at")
    list_filter = ("hold_type", "status")
    search_fields = ("job_id", "user__email", "reason")


@admin.register(ComplianceViolation)
class ComplianceViolationAdmin(admin.ModelAdmin):
    list_display = ("violation_type", "severity", "status", "user", "job_id", "created_at")
    list_filter = ("severity", "status", "sop_key")


admin.site.register(ComplianceEscalation)


@admin.register(ComplianceAuditLog)
class ComplianceAuditLogAdmin(admin.ModelAdmin):
    list_display = ("action", "target_type", "target_id", "actor", "created_at")
    list_filter = ("action", "target_type")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
