"""Serializers for the training library."""
from rest_framework import serializers

from training.models import TrainingCategory, TrainingDocument


class TrainingCategorySerializer(serializers.ModelSerializer):
    document_count = serializers.IntegerField(source='documents.count', read_only=True)

    class Meta:
        model = TrainingCategory
        fields = ['id', 'name', 'slug', 'sort_order', 'document_count']
        read_only_fields = ['id', 'slug', 'document_count']
        extra_kwargs = {'name': {'validators': []}}


class TrainingDocumentSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    uploaded_by_name = serializers.CharField(source='uploaded_by.display_name', read_only=True, default=None)
    file_url = serializers.SerializerMethodField()

    class Meta:
        model = TrainingDocument
        fields = [
            'id', 'name', 'description', 'category', 'category_name',
            'file_url', 'file_type', 'file_size',
            'uploaded_by', 'uploaded_by_name', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_file_url(self, obj):
        if not obj.file:
            return None
        request = self.context.get('request')
        url = obj.file.url
        return request.build_absolute_uri(url) if request else url


class TrainingUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    name = serializers.CharField(required=False, allow_blank=True, default='')
    description = serializers.CharField(required=False, allow_blank=True, default='')
    category = serializers.PrimaryKeyRelatedField(
        queryset=TrainingCategory.objects.all(), required=False, allow_null=True,
    )


class TrainingDocumentUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = TrainingDocument
        fields = ['name', 'description', 'category']
