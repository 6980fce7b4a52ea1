from django.contrib import admin

from training.models import TrainingCategory, TrainingDocument


@admin.register(TrainingCategory)
class TrainingCategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "sort_order")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(TrainingDocument)
class TrainingDocumentAdmin(admin.ModelAdmin):
    list_display = ("name", "category", "file_type", "file_size", "uploaded_by", "created_at")
    list_filter = ("category", "file_type")
    search_fields = ("name", "description")
