"""Main API URL router for /api/v1/."""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from api.v1 import views as v1_views
from api.v1 import commission_views
from api.v1 import compliance_views
from api.v1 import directory_views
from api.v1 import draw_views
from api.v1 import training_views
from api.auth_views import (
    CookieTokenObtainPairView,
    CookieTokenRefreshView,
    LogoutAPIView,
    CSRFTokenAPIView,
    PasswordResetRequestAPIView,
    PasswordResetConfirmAPIView,
)

router = DefaultRouter()
router.register(r'users', v1_views.UserViewSet, basename='user')
router.register(r'audit-logs', v1_views.AuditLogViewSet, basename='audit-log')
router.register(r'commission-tiers', commission_views.CommissionTierViewSet, basename='commission-tier')
router.register(r'commission-documents', commission_views.CommissionDocumentViewSet, basename='commission-document')
router.register(r'commissions', commission_views.CommissionSubmissionViewSet, basename='commission')
router.register(r'manager-overrides', commission_views.ManagerOverrideViewSet, basename='manager-override')
router.register(r'draws', draw_views.DrawViewSet, basename='draw')
router.register(r'compliance/holds', compliance_views.ComplianceHoldViewSet, basename='compliance-hold')
router.register(r'compliance/violations', compliance_views.ComplianceViolationViewSet, basename='compliance-violation')
router.register(r'compliance/escalations', compliance_views.ComplianceEscalationViewSet, basename='compliance-escalation')
router.register(r'compliance/audit-log', compliance_views.ComplianceAuditLogViewSet, basename='compliance-audit-log')
router.register(r'subcontractors', directory_views.SubcontractorViewSet, basename='subcontractor')
router.register(r'vendors', directory_views.VendorViewSet, basename='vendor')
router.register(r'prospects', directory_views.ProspectViewSet, basename='prospect')
router.register(r'training/categories', training_views.TrainingCategoryViewSet, basename='training-category')
router.register(r'training/documents', training_views.TrainingDocumentViewSet, basename='training-document')


app_name = 'api'
urlpatterns = [
    # Plain views first so "draws/settings/" is not swallowed by the draw detail route.
    path('draws/settings/', draw_views.DrawSettingsView.as_view(), name='draw-settings'),

    # Compliance
    path('compliance/sop/', compliance_views.SOPStatusView.as_view(), name='compliance-sop'),
    path('compliance/sop/acknowledge/', compliance_views.SOPAcknowledgeView.as_view(), name='compliance-sop-acknowledge'),
    path('compliance/sop/master/', compliance_views.MasterSOPAcknowledgeView.as_view(), name='compliance-sop-master'),
    path('compliance/dashboard/', compliance_views.ComplianceDashboardView.as_view(), name='compliance-dashboard'),

    # Dashboard
    path('dashboard/summary/', v1_views.CommandCenterView.as_view(), name='dashboard-summary'),
    path('dashboard/leaderboard/', v1_views.LeaderboardView.as_view(), name='dashboard-leaderboard'),

    # Auth endpoints
    path('auth/csrf/', CSRFTokenAPIView.as_view(), name='auth-csrf'),
    path('auth/token/', CookieTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', CookieTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/logout/', LogoutAPIView.as_view(), name='auth-logout'),
    path('auth/signup/', v1_views.SignupView.as_view(), name='auth-signup'),
    path('auth/me/', v1_views.MeView.as_view(), name='auth-me'),
    path('auth/password/change/', v1_views.ChangePasswordView.as_view(), name='auth-password-change'),
    path('auth/password/strength/', v1_views.PasswordStrengthView.as_view(), name='auth-password-strength'),
    path('auth/password/reset/', PasswordResetRequestAPIView.as_view(), name='auth-password-reset'),
    path('auth/password/reset/confirm/', PasswordResetConfirmAPIView.as_view(), name='auth-password-reset-confirm'),

    path('', include(router.urls)),
]
