"""Admin registration for the system-wide audit trail."""
from django.contrib import admin

from core.models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "action", "entity_type", "entity_id", "actor", "ip_address")
    list_filter = ("action", "entity_type")
    search_fields = ("entity_id", "actor__email", "action")
    date_hierarchy = "created_at"
    readonly_fields = (
        "actor",
        "action",
        "entity_type",
        "entity_id",
        "before_json",
        "after_json",
        "ip_address",
        "created_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
