from django.contrib import admin

from draws.models import Draw, DrawApplication, DrawSetting


class DrawApplicationInline(admin.TabularInline):
    model = DrawApplication
    extra = 0
    readonly_fields = ("submission", "amount", "balance_before", "balance_after", "applied_by", "applied_at")
    can_delete = False


@admin.register(Draw)
class DrawAdmin(admin.ModelAdmin):
    list_display = (
        "job_number",
        "requested_by",
        "amount",
        "remaining_balance",
        "status",
        "requires_manager_approval",
        "created_at",
    )
    list_filter = ("status", "requires_manager_approval")
    search_fields = ("job_number", "job_name", "requested_by__email")
    raw_id_fields = ("requested_by",)
    inlines = [DrawApplicationInline]


@admin.register(DrawSetting)
class DrawSettingAdmin(admin.ModelAdmin):
    list_display = ("key", "value", "updated_by", "updated_at")
