"""Account, user administration, audit log and dashboard views for API v1."""
import datetime as dt
import logging

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts import services as account_services
from core.models import AuditLog
from dashboard.services import command_center_summary, leaderboard
from api.auth_views import SafeScopedRateThrottle
from api.v1.pagination import StandardResultsSetPagination
from api.v1.permissions import HasPermissionKey, IsActiveEmployee
from api.v1.serializers import (
    ApproveUserSerializer,
    AssignManagerSerializer,
    AssignRoleSerializer,
    AuditLogSerializer,
    ChangePasswordSerializer,
    MeSerializer,
    PasswordStrengthSerializer,
    RejectUserSerializer,
    SignupSerializer,
    UserSerializer,
)

logger = logging.getLogger('roofpro')

User = get_user_model()


# ---------------------------------------------------------------------------
# Me / password
# ---------------------------------------------------------------------------

class MeView(APIView):
    """
    GET /api/v1/auth/me/ - the signed-in user's profile and permission keys.
    PATCH /api/v1/auth/me/ - update first_name, last_name, phone.

    Pending accounts can reach this view so the client can show the
    "awaiting approval" screen.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(MeSerializer(request.user).data)

    def patch(self, request):
        serializer = MeSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


class ChangePasswordView(APIView):
    """POST /api/v1/auth/password/change/"""

    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = ChangePasswordSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        request.user.set_password(serializer.validated_data['new_password'])
        request.user.save(update_fields=['password'])
        logger.info('Password changed for %s', request.user.email)
        return Response({'detail': 'Password changed.'})


class PasswordStrengthView(APIView):
    """POST /api/v1/auth/password/strength/ - live meter for the signup form."""

    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = PasswordStrengthSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(serializer.to_representation(serializer.validated_data))


class SignupView(APIView):
    """POST /api/v1/auth/signup/ - create a pending account for admin approval."""

    permission_classes = [permissions.AllowAny]
    throttle_classes = [SafeScopedRateThrottle]
    throttle_scope = 'auth_burst'

    def post(self, request):
        serializer = SignupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        account_services.notify_admins_of_signup(user)
        logger.info('Signup pending approval: %s', user.email)
        return Response(MeSerializer(user).data, status=status.HTTP_201_CREATED)


# ---------------------------------------------------------------------------
# User administration
# ---------------------------------------------------------------------------

class UserViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    Employee directory and onboarding / offboarding.

    - list / retrieve: ``viewAllUsers``
    - approve, reject, deactivate, reactivate, assign_role, assign_manager: ``assignRoles``
    """

    serializer_class = UserSerializer
    queryset = User.objects.select_related('manager')
    filterset_fields = ['role', 'department', 'employment_status', 'is_active', 'manager']
    search_fields = ['email', 'first_name', 'last_name', 'phone']
    ordering_fields = ['last_name', 'email', 'date_joined', 'role']
    pagination_class = StandardResultsSetPagination

    def get_permissions(self):
        if self.action in ('list', 'retrieve'):
            return [HasPermissionKey('viewAllUsers')]
        if self.action == 'managers':
            return [IsActiveEmployee()]
        return [HasPermissionKey('assignRoles')]

    def _respond(self, user):
        return Response(self.get_serializer(user).data)

    @action(detail=False, methods=['get'])
    def managers(self, request):
        """Active managers and admins, for the "reports to" picker."""
        qs = self.get_queryset().filter(
            role__in=[User.Role.MANAGER, User.Role.ADMIN],
            is_active=True,
            employment_status=User.EmploymentStatus.ACTIVE,
        )
        return Response(self.get_serializer(qs, many=True).data)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        serializer = ApproveUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = account_services.approve_user(
            self.get_object(),
            actor=request.user,
            role=serializer.validated_data.get('role'),
            department=serializer.validated_data.get('department'),
        )
        return self._respond(user)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        serializer = RejectUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = account_services.reject_user(
            self.get_object(), actor=request.user, reason=serializer.validated_data['reason'],
        )
        return self._respond(user)

    @action(detail=True, methods=['post'])
    def deactivate(self, request, pk=None):
        return self._respond(account_services.deactivate_user(self.get_object(), actor=request.user))

    @action(detail=True, methods=['post'])
    def reactivate(self, request, pk=None):
        return self._respond(account_services.reactivate_user(self.get_object(), actor=request.user))

    @action(detail=True, methods=['post'], url_path='assign-role')
    def assign_role(self, request, pk=None):
        serializer = AssignRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = account_services.assign_role(
            self.get_object(),
            actor=request.user,
            role=serializer.validated_data['role'],
            department=serializer.validated_data.get('department'),
        )
        return self._respond(user)

    @action(detail=True, methods=['post'], url_path='assign-manager')
    def assign_manager(self, request, pk=None):
        serializer = AssignManagerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = account_services.assign_manager(
            self.get_object(), actor=request.user, manager=serializer.validated_data['manager'],
        )
        return self._respond(user)


class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    """Read-only audit trail; admins only (``viewAuditLog``)."""

    serializer_class = AuditLogSerializer
    queryset = AuditLog.objects.select_related('actor')
    permission_classes = [HasPermissionKey.for_key('viewAuditLog')]
    filterset_fields = ['action', 'entity_type', 'actor']
    search_fields = ['action', 'entity_type', 'entity_id']
    ordering_fields = ['created_at']
    pagination_class = StandardResultsSetPagination


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

class CommandCenterView(APIView):
    """GET /api/v1/dashboard/summary/"""

    permission_classes = [HasPermissionKey.for_key('viewCommandCenter')]

    def get(self, request):
        return Response(command_center_summary(request.user))


def _parse_date(value, field):
    try:
        return dt.date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError({field: 'Use the YYYY-MM-DD format.'})


class LeaderboardView(APIView):
    """GET /api/v1/dashboard/leaderboard/?start=YYYY-MM-DD&end=YYYY-MM-DD&limit=10

    Defaults to the current calendar month.
    """

    permission_classes = [HasPermissionKey.for_key('viewCommandCenter')]

    def get(self, request):
        today = timezone.localdate()
        start_raw = request.query_params.get('start')
        end_raw = request.query_params.get('end')
        start = _parse_date(start_raw, 'start') if start_raw else today.replace(day=1)
        end = _parse_date(end_raw, 'end') if end_raw else today

        limit = request.query_params.get('limit')
        limit = int(limit) if limit and limit.isdigit() else None

        return Response({
            'start': start,
            'end': end,
            'results': leaderboard(start, end, limit=limit),
        })
