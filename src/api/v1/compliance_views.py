"""Views for the OPS compliance module."""
from dataclasses import asdict

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from compliance import services
from compliance.models import (
    ComplianceAuditLog,
    ComplianceEscalation,
    ComplianceHold,
    ComplianceViolation,
)
from compliance.sops import MASTER_SOPS, SOP_MASTER_KEY, current_sop_version
from api.v1.compliance_serializers import (
    AcknowledgeMasterSOPSerializer,
    AcknowledgeSOPSerializer,
    ComplianceAuditLogSerializer,
    ComplianceHoldSerializer,
    EscalateSerializer,
    EscalationSerializer,
    HoldCheckSerializer,
    NotesSerializer,
    SOPAcknowledgmentSerializer,
    ViolationSerializer,
)
from api.v1.pagination import StandardResultsSetPagination
from api.v1.permissions import HasPermissionKey, IsActiveEmployee
from api.v1.serializers import UserSerializer


def _sop_status_payload(user):
    master = services.get_master_sop_status(user)
    return {
        'sop_key': SOP_MASTER_KEY,
        'version': current_sop_version(),
        'acknowledged': services.has_acknowledged_current_sop(user),
        'master': {
            'completed': master.completed,
            'total': master.total,
            'all_completed': master.all_completed,
            'acknowledged_numbers': master.acknowledged_numbers,
        },
        'sops': [
            {
                'number': sop.number,
                'code': sop.code,
                'title': sop.title,
                'phase': sop.phase,
                'acknowledged': sop.number in master.acknowledged_numbers,
            }
            for sop in MASTER_SOPS
        ],
    }


class SOPStatusView(APIView):
    """GET /compliance/sop/ - the signed-in user's playbook acknowledgment status."""

    permission_classes = [IsActiveEmployee]

    def get(self, request):
        return Response(_sop_status_payload(request.user))


class SOPAcknowledgeView(APIView):
    """POST /compliance/sop/acknowledge/ - acknowledge the whole current playbook."""

    permission_classes = [IsActiveEmployee]

    def post(self, request):
        serializer = AcknowledgeSOPSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ack = services.acknowledge_sop(request.user, method=serializer.validated_data['method'])
        return Response(SOPAcknowledgmentSerializer(ack).data, status=status.HTTP_200_OK)


class MasterSOPAcknowledgeView(APIView):
    """POST /compliance/sop/master/ {sop_number} - acknowledge one numbered SOP."""

    permission_classes = [IsActiveEmployee]

    def post(self, request):
        serializer = AcknowledgeMasterSOPSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.acknowledge_master_sop(request.user, serializer.validated_data['sop_number'])
        return Response(_sop_status_payload(request.user))


class ComplianceHoldViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """Holds on commissions, invoices, scheduling or access (``viewOPSCompliance``)."""

    serializer_class = ComplianceHoldSerializer
    queryset = ComplianceHold.objects.select_related('user', 'violation')
    filterset_fields = ['hold_type', 'status', 'user', 'job_id']
    search_fields = ['job_id', 'reason']
    ordering_fields = ['created_at', 'released_at']
    pagination_class = StandardResultsSetPagination

    def get_permissions(self):
        if self.action == 'mine':
            return [IsActiveEmployee()]
        return [HasPermissionKey('viewOPSCompliance')]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        hold = services.place_hold(
            actor=request.user,
            hold_type=data['hold_type'],
            reason=data['reason'],
            user=data.get('user'),
            job_id=data.get('job_id', ''),
            violation=data.get('violation'),
        )
        return Response(self.get_serializer(hold).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def release(self, request, pk=None):
        serializer = NotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        hold = services.release_hold(self.get_object(), actor=request.user, notes=serializer.validated_data['notes'])
        return Response(self.get_serializer(hold).data)

    @action(detail=False, methods=['get'])
    def check(self, request):
        """GET ?hold_type=&job_id=&user= - would this job/user be blocked?"""
        serializer = HoldCheckSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        hold_type = data['hold_type']
        if hold_type == ComplianceHold.HoldType.COMMISSION:
            result = services.check_commission_hold(data['job_id'], data.get('user'))
        elif hold_type == ComplianceHold.HoldType.INVOICE:
            result = services.check_invoice_hold(data['job_id'])
        elif hold_type == ComplianceHold.HoldType.SCHEDULING:
            result = services.check_scheduling_hold(data['job_id'])
        else:
            result = services.check_access_hold(data.get('user'))
        return Response(asdict(result))

    @action(detail=False, methods=['get'])
    def mine(self, request):
        qs = self.get_queryset().filter(user=request.user, status=ComplianceHold.Status.ACTIVE)
        return Response(self.get_serializer(qs, many=True).data)


class ComplianceViolationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = ViolationSerializer
    queryset = ComplianceViolation.objects.select_related('user')
    filterset_fields = ['severity', 'status', 'user', 'sop_key', 'violation_type']
    search_fields = ['job_id', 'description', 'violation_type']
    ordering_fields = ['created_at', 'severity']
    pagination_class = StandardResultsSetPagination

    def get_permissions(self):
        if self.action in ('create', 'resolve'):
            return [HasPermissionKey('issueWarning')]
        return [HasPermissionKey('viewOPSCompliance')]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        violation = services.record_violation(
            violation_type=data['violation_type'],
            description=data['description'],
            severity=data.get('severity', ComplianceViolation.Severity.MINOR),
            sop_key=data.get('sop_key', ''),
            user=data.get('user'),
            job_id=data.get('job_id', ''),
            actor=request.user,
        )
        return Response(self.get_serializer(violation).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def resolve(self, request, pk=None):
        serializer = NotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        violation = services.resolve_violation(
            self.get_object(), actor=request.user, notes=serializer.validated_data['notes'],
        )
        return Response(self.get_serializer(violation).data)

    @action(detail=True, methods=['post'])
    def escalate(self, request, pk=None):
        serializer = EscalateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        escalation = services.escalate_violation(
            self.get_object(),
            actor=request.user,
            escalated_to=serializer.validated_data.get('escalated_to'),
            notes=serializer.validated_data['notes'],
        )
        return Response(EscalationSerializer(escalation).data, status=status.HTTP_201_CREATED)


class ComplianceEscalationViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = EscalationSerializer
    queryset = ComplianceEscalation.objects.select_related('violation')
    permission_classes = [HasPermissionKey.for_key('viewOPSCompliance')]
    filterset_fields = ['status', 'escalated_to']
    ordering_fields = ['created_at']
    pagination_class = StandardResultsSetPagination

    @action(detail=True, methods=['post'])
    def resolve(self, request, pk=None):
        serializer = NotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        escalation = services.resolve_escalation(
            self.get_object(), actor=request.user, notes=serializer.validated_data['notes'],
        )
        return Response(self.get_serializer(escalation).data)


class ComplianceAuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = ComplianceAuditLogSerializer
    queryset = ComplianceAuditLog.objects.select_related('actor')
    permission_classes = [HasPermissionKey.for_key('viewAuditLog')]
    filterset_fields = ['action', 'target_type', 'actor']
    search_fields = ['target_id', 'action']
    ordering_fields = ['created_at']
    pagination_class = StandardResultsSetPagination


class ComplianceDashboardView(APIView):
    """GET /compliance/dashboard/ - counts plus who still owes a playbook acknowledgment."""

    permission_classes = [HasPermissionKey.for_key('viewOPSCompliance')]

    def get(self, request):
        pending_users = services.unacknowledged_active_users().order_by('last_name', 'first_name')
        return Response({
            'version': current_sop_version(),
            'counts': services.compliance_dashboard_counts(),
            'unacknowledged_users': UserSerializer(pending_users, many=True).data,
        })
