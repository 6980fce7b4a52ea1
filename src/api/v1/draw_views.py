"""ViewSets for draw requests, review, payout and deductions."""
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from draws import services
from api.v1.draw_serializers import (
    DrawApplicationSerializer,
    DrawDeductionSerializer,
    DrawDenySerializer,
    DrawRequestSerializer,
    DrawSerializer,
    DrawSettingUpdateSerializer,
)
from api.v1.pagination import StandardResultsSetPagination
from api.v1.permissions import HasPermissionKey, IsActiveEmployee, IsManagerOrAdmin


class DrawViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Draws against future commission.

    - create: any rep (``submitCommission``)
    - approve / deny: the requester's manager or an admin
    - mark_paid / deduct: ``viewPaidDrawBalance``
    - balance: the signed-in user's outstanding balance
    """

    serializer_class = DrawSerializer
    filterset_fields = ['status', 'job_number', 'requested_by', 'requires_manager_approval']
    search_fields = ['job_number', 'job_name', 'requested_by__first_name', 'requested_by__last_name']
    ordering_fields = ['created_at', 'amount', 'remaining_balance', 'status']
    pagination_class = StandardResultsSetPagination

    def get_permissions(self):
        if self.action == 'create':
            return [HasPermissionKey('submitCommission')]
        if self.action in ('approve', 'deny'):
            return [IsManagerOrAdmin()]
        if self.action in ('mark_paid', 'deduct'):
            return [HasPermissionKey('viewPaidDrawBalance')]
        return [IsActiveEmployee()]

    def get_queryset(self):
        return services.visible_draws(self.request.user).prefetch_related('applications')

    def create(self, request, *args, **kwargs):
        serializer = DrawRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        draw = services.request_draw(actor=request.user, **serializer.validated_data)
        return Response(DrawSerializer(draw).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        draw = services.approve_draw(self.get_object(), actor=request.user)
        return Response(DrawSerializer(draw).data)

    @action(detail=True, methods=['post'])
    def deny(self, request, pk=None):
        serializer = DrawDenySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        draw = services.deny_draw(self.get_object(), actor=request.user, reason=serializer.validated_data['reason'])
        return Response(DrawSerializer(draw).data)

    @action(detail=True, methods=['post'], url_path='mark-paid')
    def mark_paid(self, request, pk=None):
        draw = services.mark_draw_paid(self.get_object(), actor=request.user)
        return Response(DrawSerializer(draw).data)

    @action(detail=True, methods=['post'])
    def deduct(self, request, pk=None):
        """Manual payback, e.g. from a payroll adjustment outside a commission."""
        serializer = DrawDeductionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        application = services.apply_draw_deduction(
            self.get_object(),
            serializer.validated_data['amount'],
            actor=request.user,
            notes=serializer.validated_data['notes'],
        )
        return Response(DrawApplicationSerializer(application).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def balance(self, request):
        return Response({'outstanding_balance': services.outstanding_draw_balance(request.user)})


class DrawSettingsView(APIView):
    """GET any employee; PATCH ``viewPaidDrawBalance``."""

    def get_permissions(self):
        if self.request.method == 'GET':
            return [IsActiveEmployee()]
        return [HasPermissionKey('viewPaidDrawBalance')]

    def get(self, request):
        return Response({key: str(value) for key, value in services.all_draw_settings().items()})

    def patch(self, request):
        serializer = DrawSettingUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.update_draw_setting(
            serializer.validated_data['key'],
            serializer.validated_data['value'],
            actor=request.user,
        )
        return Response({key: str(value) for key, value in services.all_draw_settings().items()})
