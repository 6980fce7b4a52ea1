"""Authentication API views: JWT in HttpOnly cookies, CSRF bootstrap, password reset."""

import logging
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.contrib.auth.tokens import default_token_generator
from django.core.exceptions import ImproperlyConfigured
from django.core.exceptions import ValidationError as DjangoValidationError
from django.middleware import csrf
from django.utils.decorators import method_decorator
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_decode, urlsafe_base64_encode
from django.views.decorators.csrf import ensure_csrf_cookie
from rest_framework import permissions, status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from api.v1.serializers import PortalTokenObtainPairSerializer
from core.email import build_frontend_url, send_branded_email

logger = logging.getLogger("roofpro")

RESET_REQUESTED_MESSAGE = "If an account matches that email, a reset link has been sent."


class SafeScopedRateThrottle(ScopedRateThrottle):
    """Scoped throttle with a strict fallback when the scope has no configured rate."""

    def get_rate(self):
        try:
            return super().get_rate()
        except ImproperlyConfigured:
            logger.warning("Throttle scope '%s' not configured, applying strict default 5/min.", self.scope)
            return "5/min"


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": getattr(settings, "JWT_AUTH_COOKIE_SECURE", not settings.DEBUG),
        "samesite": getattr(settings, "JWT_AUTH_COOKIE_SAMESITE", "Lax"),
        "path": getattr(settings, "JWT_AUTH_COOKIE_PATH", "/"),
        "domain": getattr(settings, "JWT_AUTH_COOKIE_DOMAIN", None),
    }


def _seconds(delta: timedelta) -> int:
    return int(delta.total_seconds())


def _set_auth_cookies(response: Response, *, access: str, refresh: str | None) -> None:
    options = _cookie_options()
    response.set_cookie(
        getattr(settings, "JWT_AUTH_COOKIE", "access_token"),
        access,
        max_age=_seconds(settings.SIMPLE_JWT["ACCESS_TOKEN_LIFETIME"]),
        **options,
    )
    if refresh:
        response.set_cookie(
            getattr(settings, "JWT_AUTH_REFRESH_COOKIE", "refresh_token"),
            refresh,
            max_age=_seconds(settings.SIMPLE_JWT["REFRESH_TOKEN_LIFETIME"]),
            **options,
        )


def _clear_auth_cookies(response: Response) -> None:
    options = _cookie_options()
    for name in (
        getattr(settings, "JWT_AUTH_COOKIE", "access_token"),
        getattr(settings, "JWT_AUTH_REFRESH_COOKIE", "refresh_token"),
    ):
        response.delete_cookie(name, path=options["path"], domain=options["domain"])


def _token_body(access: str, refresh: str | None) -> dict:
    if getattr(settings, "JWT_RETURN_TOKENS_IN_BODY", False):
        return {"access": access, "refresh": refresh}
    return {}


class CookieTokenObtainPairView(TokenObtainPairView):
    """Sign in with email/password; returns the profile and sets auth cookies."""

    serializer_class = PortalTokenObtainPairSerializer
    throttle_classes = [SafeScopedRateThrottle]
    throttle_scope = "auth_burst"
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        validated = serializer.validated_data

        body = {"user": validated["user"]}
        body.update(_token_body(validated["access"], validated["refresh"]))
        response = Response(body, status=status.HTTP_200_OK)
        _set_auth_cookies(response, access=validated["access"], refresh=validated["refresh"])
        logger.info("Login: %s", validated["user"]["email"])
        return response


class CookieTokenRefreshView(TokenRefreshView):
    """Rotate tokens using the refresh token from the body or the refresh cookie."""

    throttle_classes = [SafeScopedRateThrottle]
    throttle_scope = "auth_sustained"
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        payload = request.data.copy()
        if not payload.get("refresh"):
            cookie_token = request.COOKIES.get(getattr(settings, "JWT_AUTH_REFRESH_COOKIE", "refresh_token"))
            if cookie_token:
                payload["refresh"] = cookie_token

        serializer = self.get_serializer(data=payload)
        serializer.is_valid(raise_exception=True)
        access = serializer.validated_data["access"]
        refresh = serializer.validated_data.get("refresh", payload.get("refresh"))

        body = {"detail": "Token refreshed."}
        body.update(_token_body(access, refresh))
        response = Response(body, status=status.HTTP_200_OK)
        _set_auth_cookies(response, access=access, refresh=refresh)
        return response


class LogoutAPIView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        response = Response(status=status.HTTP_204_NO_CONTENT)
        _clear_auth_cookies(response)
        return response


@method_decorator(ensure_csrf_cookie, name="dispatch")
class CSRFTokenAPIView(APIView):
    """Hand the SPA a CSRF token (and cookie) before its first unsafe request."""

    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response({"csrfToken": csrf.get_token(request)}, status=status.HTTP_200_OK)


class PasswordResetRequestAPIView(APIView):
    """Email a reset link. Always answers the same way so emails cannot be probed."""

    permission_classes = [permissions.AllowAny]
    throttle_classes = [SafeScopedRateThrottle]
    throttle_scope = "auth_burst"

    def post(self, request):
        email = (request.data.get("email") or "").strip()
        if not email:
            raise ValidationError({"email": "This field is required."})

        User = get_user_model()
        user = User.objects.filter(email__iexact=email, is_active=True).first()
        if user:
            uid = urlsafe_base64_encode(force_bytes(user.pk))
            token = default_token_generator.make_token(user)
            reset_url = build_frontend_url(f"/reset-password?uid={uid}&token={token}")
            send_branded_email(
                subject="Reset your TSM Roof Pro Hub password",
                template_name="emails/password_reset",
                context={
                    "greeting": user.display_name,
                    "reset_url": reset_url,
                    "expires_hours": settings.PASSWORD_RESET_TIMEOUT // 3600,
                },
                recipient_list=[user.email],
                fail_silently=True,
            )
            logger.info("Password reset requested for %s", user.email)

        return Response({"detail": RESET_REQUESTED_MESSAGE}, status=status.HTTP_200_OK)


class PasswordResetConfirmAPIView(APIView):
    permission_classes = [permissions.AllowAny]
    throttle_classes = [SafeScopedRateThrottle]
    throttle_scope = "auth_burst"

    def post(self, request):
        uid = (request.data.get("uid") or "").strip()
        token = (request.data.get("token") or "").strip()
        pw1 = request.data.get("new_password1") or ""
        pw2 = request.data.get("new_password2") or ""

        errors = {}
        if not uid:
            errors["uid"] = "This field is required."
        if not token:
            errors["token"] = "This field is required."
        if not pw1:
            errors["new_password1"] = "A new password is required."
        if errors:
            raise ValidationError(errors)
        if pw1 != pw2:
            raise ValidationError({"new_password2": "The two passwords do not match."})

        User = get_user_model()
        try:
            user = User.objects.filter(pk=force_str(urlsafe_base64_decode(uid)), is_active=True).first()
        except (ValueError, TypeError, OverflowError, DjangoValidationError):
            user = None
        if user is None or not default_token_generator.check_token(user, token):
            raise ValidationError({"detail": "This reset link is invalid or has expired."})

        try:
            validate_password(pw1, user=user)
        except DjangoValidationError as exc:
            raise ValidationError({"new_password1": list(exc.messages)})

        user.set_password(pw1)
        user.save(update_fields=["password"])
        logger.info("Password reset completed for %s", user.email)
        return Response({"detail": "Password updated. You can now sign in."}, status=status.HTTP_200_OK)
