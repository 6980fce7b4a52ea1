"""ViewSets for training categories and documents."""
from rest_framework import mixins, status, viewsets
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from training import services
from training.models import TrainingCategory, TrainingDocument
from api.v1.pagination import LargeResultsSetPagination
from api.v1.permissions import HasPermissionKey, IsActiveEmployee
from api.v1.training_serializers import (
    TrainingCategorySerializer,
    TrainingDocumentSerializer,
    TrainingDocumentUpdateSerializer,
    TrainingUploadSerializer,
)


class TrainingCategoryViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = TrainingCategorySerializer
    queryset = TrainingCategory.objects.all()
    pagination_class = None

    def get_permissions(self):
        if self.action == 'create':
            return [HasPermissionKey('uploadTrainingContent')]
        return [IsActiveEmployee()]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        category = services.create_category(
            actor=request.user,
            name=serializer.validated_data['name'],
            sort_order=serializer.validated_data.get('sort_order', 0),
        )
        return Response(self.get_serializer(category).data, status=status.HTTP_201_CREATED)


class TrainingDocumentViewSet(viewsets.ModelViewSet):
    """
    Training library.

    - list / retrieve: every role
    - create (multipart upload) / update / destroy: ``uploadTrainingContent``
    """

    serializer_class = TrainingDocumentSerializer
    queryset = TrainingDocument.objects.select_related('category', 'uploaded_by')
    parser_classes = [MultiPartParser, FormParser, JSONParser]
    filterset_fields = ['category', 'file_type']
    search_fields = ['name', 'description']
    ordering_fields = ['name', 'created_at', 'file_size']
    pagination_class = LargeResultsSetPagination

    def get_permissions(self):
        if self.action in ('create', 'update', 'partial_update', 'destroy'):
            return [HasPermissionKey('uploadTrainingContent')]
        return [IsActiveEmployee()]

    def create(self, request, *args, **kwargs):
        serializer = TrainingUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        document = services.upload_document(
            actor=request.user,
            uploaded_file=data['file'],
            name=data['name'],
            description=data['description'],
            category=data.get('category'),
        )
        return Response(
            self.get_serializer(document).data,
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        document = self.get_object()
        serializer = TrainingDocumentUpdateSerializer(document, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(self.get_serializer(document).data)

    def destroy(self, request, *args, **kwargs):
        services.delete_document(self.get_object(), actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)
