"""ViewSets for commission tiers, documents, submissions and manager overrides."""
import logging

from django.utils import timezone
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.permissions import user_can
from commissions import services
from commissions.calculations import (
    OP_PERCENT_OPTIONS,
    REP_PERCENT_OPTIONS,
    calculate_document_totals,
    calculate_worksheet,
    filter_op_percent_options,
    format_percent,
    format_tier_percent,
    generate_profit_split_options,
    validate_commission_document,
)
from commissions.models import CommissionDocument, CommissionTier, ManagerOverride, OverrideTracking
from commissions.paydates import calculate_scheduled_pay_date
from api.v1.commission_serializers import (
    AdjustOverrideSerializer,
    ApproveCommissionSerializer,
    AssignTierSerializer,
    CommissionDocumentSerializer,
    CommissionSubmissionDetailSerializer,
    CommissionSubmissionInputSerializer,
    CommissionSubmissionSerializer,
    CommissionTierSerializer,
    DocumentPreviewSerializer,
    DocumentStatusSerializer,
    ManagerOverrideSerializer,
    OverrideTrackingSerializer,
    PayDatePreviewSerializer,
    ReasonSerializer,
    WorksheetPreviewSerializer,
)
from api.v1.pagination import StandardResultsSetPagination
from api.v1.permissions import HasPermissionKey, IsActiveEmployee

logger = logging.getLogger('roofpro')


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------

class CommissionTierViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Commission tiers.

    - list / retrieve / mine: any employee
    - create / update / assign: ``assignRoles``
    """

    serializer_class = CommissionTierSerializer
    queryset = CommissionTier.objects.all()
    filterset_fields = ['is_active']
    search_fields = ['name']
    ordering_fields = ['sort_order', 'name']
    pagination_class = StandardResultsSetPagination

    def get_permissions(self):
        if self.action in ('create', 'update', 'partial_update', 'assign'):
            return [HasPermissionKey('assignRoles')]
        return [IsActiveEmployee()]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tier = services.create_tier(actor=request.user, data=serializer.validated_data)
        return Response(self.get_serializer(tier).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        tier = self.get_object()
        serializer = self.get_serializer(tier, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        tier = services.update_tier(tier, actor=request.user, data=serializer.validated_data)
        return Response(self.get_serializer(tier).data)

    @action(detail=False, methods=['post'])
    def assign(self, request):
        """POST /commission-tiers/assign/ {user, tier|null, notes}."""
        serializer = AssignTierSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignment = services.assign_user_tier(
            serializer.validated_data['user'],
            actor=request.user,
            tier=serializer.validated_data['tier'],
            notes=serializer.validated_data['notes'],
        )
        if assignment is None:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return Response(
            {'user': str(assignment.user_id), 'tier': str(assignment.tier_id), 'notes': assignment.notes},
            status=status.HTTP_200_OK,
        )

    @action(detail=False, methods=['get'])
    def mine(self, request):
        tier = services.get_user_tier(request.user)
        if tier is None:
            return Response({'tier': None})
        return Response({'tier': self.get_serializer(tier).data})


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

class CommissionDocumentViewSet(viewsets.ModelViewSet):
    """
    O&P / profit split documents.

    - list: own documents, or everything with ``viewAllCommissions``
    - create / update: ``submitCommission``; only draft or rejected documents are editable
    - set_status: draft -> submitted (owner), submitted -> approved/rejected (``approveCommission``)
    - preview / options: live calculator support for the form
    """

    serializer_class = CommissionDocumentSerializer
    filterset_fields = ['status', 'job_type', 'roof_type', 'created_by']
    search_fields = ['job_name_id', 'sales_rep']
    ordering_fields = ['created_at', 'job_date', 'gross_contract_total', 'net_profit']
    pagination_class = StandardResultsSetPagination

    def get_permissions(self):
        if self.action in ('create', 'update', 'partial_update', 'destroy', 'set_status'):
            return [HasPermissionKey('submitCommission')]
        return [IsActiveEmployee()]

    def get_queryset(self):
        return services.visible_documents(self.request.user)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        document = services.create_document(actor=request.user, data=serializer.validated_data)
        return Response(self.get_serializer(document).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        document = self.get_object()
        serializer = self.get_serializer(document, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        document = services.update_document(document, actor=request.user, data=serializer.validated_data)
        return Response(self.get_serializer(document).data)

    def destroy(self, request, *args, **kwargs):
        services.delete_document(self.get_object(), actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'], url_path='set-status')
    def set_status(self, request, pk=None):
        document = self.get_object()
        serializer = DocumentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        document = services.update_document_status(
            document,
            actor=request.user,
            status=serializer.validated_data['status'],
            notes=serializer.validated_data['notes'],
        )
        return Response(self.get_serializer(document).data)

    @action(detail=False, methods=['post'])
    def preview(self, request):
        """Calculate totals and the margin gate for unsaved inputs."""
        serializer = DocumentPreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        draft = CommissionDocument(**data)
        draft.tier = services.get_user_tier(request.user)
        gate = services.evaluate_margin_gate(draft)
        inputs = dict(data)
        inputs['rep_profit_percent'] = gate.applied_split
        totals = calculate_document_totals(inputs)
        return Response({
            'totals': totals.as_dict(),
            'margin': gate.margin,
            'minimum_margin': gate.minimum,
            'below_minimum': gate.below_minimum,
            'tier_drops': gate.drops,
            'requested_rep_profit_percent': gate.requested_split,
            'applied_rep_profit_percent': gate.applied_split,
        })

    @action(detail=False, methods=['post'], url_path='validate')
    def check_inputs(self, request):
        """Return the form's validation messages without saving anything."""
        errors = validate_commission_document(request.data)
        return Response({'valid': not errors, 'errors': errors})

    @action(detail=False, methods=['get'])
    def options(self, request):
        """O&P and profit split choices for the signed-in rep's tier."""
        tier = services.get_user_tier(request.user)
        op_values = filter_op_percent_options(tier.op_percent_values if tier else None)
        rep_values = tier.profit_split_values if tier else list(REP_PERCENT_OPTIONS)
        return Response({
            'tier': tier.name if tier else None,
            'op_percentages': [
                {'value': str(v), 'label': format_tier_percent(v)} for v in op_values
            ],
            'rep_percentages': [
                {'value': str(v), 'label': format_percent(v)} for v in rep_values
            ],
            'profit_splits': [
                {'label': split.label, 'op': str(split.op), 'rep': str(split.rep), 'company': str(split.company)}
                for split in generate_profit_split_options(op_values, rep_values)
            ],
            'all_op_percentages': [str(v) for v in OP_PERCENT_OPTIONS],
        })


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------

class CommissionSubmissionViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Commission payout requests and their approval workflow.

    - create: ``submitCommission`` (manager required, SOP gate, hold check)
    - approve / request_revision: ``approveCommission``
    - resubmit: the submitter only
    - deny: ``denyCommission``
    - mark_paid: ``markCommissionPaid``
    """

    serializer_class = CommissionSubmissionSerializer
    filterset_fields = ['status', 'approval_stage', 'job_type', 'submitted_by', 'is_manager_submission']
    search_fields = ['job_number', 'job_name', 'job_address', 'sales_rep_name']
    ordering_fields = ['created_at', 'contract_date', 'net_commission_owed', 'scheduled_pay_date', 'status']
    pagination_class = StandardResultsSetPagination

    def get_permissions(self):
        if self.action == 'create':
            return [HasPermissionKey('submitCommission')]
        if self.action in ('approve', 'request_revision', 'stale', 'override_tracking', 'adjust_override'):
            return [HasPermissionKey('approveCommission')]
        if self.action == 'deny':
            return [HasPermissionKey('denyCommission')]
        if self.action == 'mark_paid':
            return [HasPermissionKey('markCommissionPaid')]
        return [IsActiveEmployee()]

    def get_queryset(self):
        qs = services.visible_submissions(self.request.user)
        date_from = self.request.query_params.get('date_from')
        date_to = self.request.query_params.get('date_to')
        if date_from:
            qs = qs.filter(created_at__date__gte=date_from)
        if date_to:
            qs = qs.filter(created_at__date__lte=date_to)
        return qs

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return CommissionSubmissionDetailSerializer
        return super().get_serializer_class()

    def _detail(self, submission):
        submission.refresh_from_db()
        return Response(CommissionSubmissionDetailSerializer(submission).data)

    def create(self, request, *args, **kwargs):
        serializer = CommissionSubmissionInputSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        submission = services.submit_commission(actor=request.user, data=serializer.validated_data)
        return Response(
            CommissionSubmissionDetailSerializer(submission).data,
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        submission = self.get_object()
        serializer = ApproveCommissionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        submission = services.approve_commission(
            submission,
            actor=request.user,
            approved_amount=serializer.validated_data.get('approved_amount'),
            notes=serializer.validated_data['notes'],
        )
        return self._detail(submission)

    @action(detail=True, methods=['post'], url_path='request-revision')
    def request_revision(self, request, pk=None):
        submission = self.get_object()
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        submission = services.request_revision(
            submission, actor=request.user, reason=serializer.validated_data['reason'],
        )
        return self._detail(submission)

    @action(detail=True, methods=['post'])
    def resubmit(self, request, pk=None):
        submission = self.get_object()
        serializer = CommissionSubmissionInputSerializer(
            submission, data=request.data, partial=True, context={'request': request},
        )
        serializer.is_valid(raise_exception=True)
        submission = services.resubmit_commission(
            submission, actor=request.user, data=serializer.validated_data,
        )
        return self._detail(submission)

    @action(detail=True, methods=['post'])
    def deny(self, request, pk=None):
        submission = self.get_object()
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        submission = services.deny_commission(
            submission, actor=request.user, reason=serializer.validated_data['reason'],
        )
        return self._detail(submission)

    @action(detail=True, methods=['post'], url_path='mark-paid')
    def mark_paid(self, request, pk=None):
        submission = services.mark_commission_paid(self.get_object(), actor=request.user)
        return self._detail(submission)

    @action(detail=False, methods=['post'], url_path='worksheet-preview')
    def worksheet_preview(self, request):
        serializer = WorksheetPreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        totals = calculate_worksheet(**serializer.validated_data)
        return Response(totals.as_dict())

    @action(detail=False, methods=['get', 'post'], url_path='pay-date')
    def pay_date(self, request):
        """Friday payroll date for an approval made now (or at ``approved_at``)."""
        serializer = PayDatePreviewSerializer(data=request.data if request.method == 'POST' else request.query_params)
        serializer.is_valid(raise_exception=True)
        approved_at = serializer.validated_data.get('approved_at') or timezone.now()
        return Response({
            'approved_at': approved_at,
            'scheduled_pay_date': calculate_scheduled_pay_date(approved_at),
        })

    @action(detail=False, methods=['get'])
    def stale(self, request):
        hours = request.query_params.get('hours')
        qs = services.stale_pending_reviews(int(hours) if hours and hours.isdigit() else None)
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(qs, many=True).data)

    @action(detail=False, methods=['get'], url_path='override-tracking')
    def override_tracking(self, request):
        qs = OverrideTracking.objects.select_related('sales_rep').order_by('sales_rep__last_name')
        return Response(OverrideTrackingSerializer(qs, many=True).data)

    @action(detail=False, methods=['post'], url_path='adjust-override')
    def adjust_override(self, request):
        serializer = AdjustOverrideSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tracking = services.adjust_override_count(
            serializer.validated_data['sales_rep'],
            actor=request.user,
            count=serializer.validated_data['count'],
        )
        return Response(OverrideTrackingSerializer(tracking).data)


class ManagerOverrideViewSet(viewsets.ReadOnlyModelViewSet):
    """Overrides earned by managers; managers see their own, admins see all."""

    serializer_class = ManagerOverrideSerializer
    permission_classes = [HasPermissionKey.for_key('viewTeamStats')]
    filterset_fields = ['status', 'manager', 'sales_rep']
    ordering_fields = ['created_at', 'override_amount']
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        qs = ManagerOverride.objects.select_related('manager', 'sales_rep', 'submission')
        if user_can(self.request.user, 'approveCommission'):
            return qs
        return qs.filter(manager=self.request.user)
