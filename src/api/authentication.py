"""API authentication: simplejwt tokens read from the header or HttpOnly cookies."""

from django.conf import settings
from django.middleware.csrf import CsrfViewMiddleware
from rest_framework import exceptions
from rest_framework.request import Request
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError


def _csrf_failure_reason(request: Request):
    django_request = request._request
    check = CsrfViewMiddleware(lambda req: None)
    check.process_request(django_request)
    return check.process_view(django_request, None, (), {})


class CookieJWTAuthentication(JWTAuthentication):
    """JWT auth for the SPA (cookie) and for scripts (``Authorization`` header).

    A bad header token is a hard 401. A bad or expired cookie token only
    leaves the request anonymous so the refresh endpoint keeps working.
    Cookie-authenticated requests must pass the CSRF check.
    """

    def authenticate(self, request: Request):
        header = self.get_header(request)
        raw_token = self.get_raw_token(header) if header is not None else None
        if raw_token is not None:
            validated_token = self.get_validated_token(raw_token)
            return self.get_user(validated_token), validated_token

        cookie_token = request.COOKIES.get(getattr(settings, "JWT_AUTH_COOKIE", "access_token"))
        if not cookie_token:
            return None
        try:
            validated_token = self.get_validated_token(cookie_token)
        except (InvalidToken, TokenError):
            return None

        reason = _csrf_failure_reason(request)
        if reason:
            raise exceptions.PermissionDenied(f"CSRF Failed: {reason}")
        return self.get_user(validated_token), validated_token
