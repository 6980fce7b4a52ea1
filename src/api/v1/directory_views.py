"""ViewSets for the subcontractor / vendor directory and prospect pipeline."""
import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from directory import services
from directory.models import Prospect, Subcontractor, Vendor
from api.v1.directory_serializers import ProspectSerializer, SubcontractorSerializer, VendorSerializer
from api.v1.pagination import LargeResultsSetPagination
from api.v1.permissions import HasPermissionKey

logger = logging.getLogger('roofpro')


class _DirectoryViewSet(viewsets.ModelViewSet):
    """Read with ``viewSubcontractors``; write with ``submitNewSubcontractor``."""

    pagination_class = LargeResultsSetPagination

    def get_permissions(self):
        if self.action in ('list', 'retrieve'):
            return [HasPermissionKey('viewSubcontractors')]
        return [HasPermissionKey('submitNewSubcontractor')]

    def perform_create(self, serializer):
        instance = serializer.save(created_by=self.request.user)
        logger.info('%s created: %s by %s', instance.__class__.__name__, instance, self.request.user)


class SubcontractorViewSet(_DirectoryViewSet):
    serializer_class = SubcontractorSerializer
    queryset = Subcontractor.objects.all()
    filterset_fields = ['trade_type', 'status', 'is_approved', 'coi_status', 'w9_status', 'ic_agreement_status']
    search_fields = ['company_name', 'primary_contact_name', 'email', 'phone']
    ordering_fields = ['company_name', 'internal_rating', 'coi_expiration_date', 'created_at']

    def get_permissions(self):
        if self.action == 'approve':
            return [HasPermissionKey('approveSubcontractor')]
        return super().get_permissions()

    def get_queryset(self):
        qs = super().get_queryset()
        area = self.request.query_params.get('service_area')
        if area:
            # JSON list membership without backend-specific lookups (SQLite has no __contains).
            ids = [pk for pk, areas in qs.values_list('pk', 'service_areas') if area in (areas or [])]
            qs = qs.filter(pk__in=ids)
        return qs

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        sub = services.approve_subcontractor(self.get_object(), actor=request.user)
        return Response(self.get_serializer(sub).data)

    @action(detail=False, methods=['get'], url_path='expired-coi')
    def expired_coi(self, request):
        qs = services.expired_coi_subcontractors()
        return Response(self.get_serializer(qs, many=True).data)


class VendorViewSet(_DirectoryViewSet):
    serializer_class = VendorSerializer
    queryset = Vendor.objects.all()
    filterset_fields = ['vendor_type', 'status', 'coi_status', 'w9_status']
    search_fields = ['vendor_name', 'primary_contact_name', 'email', 'account_number']
    ordering_fields = ['vendor_name', 'created_at']


class ProspectViewSet(_DirectoryViewSet):
    serializer_class = ProspectSerializer
    queryset = Prospect.objects.select_related('assigned_owner')
    filterset_fields = ['prospect_type', 'source', 'stage', 'assigned_owner']
    search_fields = ['company_name', 'contact_name', 'email', 'phone']
    ordering_fields = ['next_followup_date', 'company_name', 'created_at']

    @action(detail=True, methods=['post'])
    def convert(self, request, pk=None):
        entity = services.convert_prospect(self.get_object(), actor=request.user)
        if isinstance(entity, Subcontractor):
            data = {'type': 'subcontractor', 'entity': SubcontractorSerializer(entity).data}
        else:
            data = {'type': 'vendor', 'entity': VendorSerializer(entity).data}
        return Response(data, status=status.HTTP_201_CREATED)
