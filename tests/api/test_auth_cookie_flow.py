import json

import pytest
from django.conf import settings
from django.contrib.auth.tokens import default_token_generator
from django.test import Client
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode

from accounts.models import User

NEW_PASSWORD = "Shingle$Roof2025"


def _login_via_api(client, email: str, password: str):
    return client.post(
        "/api/v1/auth/token/",
        data=json.dumps({"email": email, "password": password}),
        content_type="application/json",
    )


@pytest.mark.django_db
def test_auth_csrf_endpoint_returns_token(client):
    response = client.get("/api/v1/auth/csrf/")

    assert response.status_code == 200
    payload = response.json()
    assert "csrfToken" in payload
    assert payload["csrfToken"]


@pytest.mark.django_db
def test_auth_login_sets_http_only_jwt_cookies(client, admin_user):
    response = _login_via_api(client, admin_user.email, "testpass123")

    assert response.status_code == 200
    payload = response.json()
    assert payload["user"]["email"] == admin_user.email
    assert payload["user"]["role"] == "admin"
    assert "approveCommission" in payload["user"]["permissions"]
    assert "access" not in payload
    assert "refresh" not in payload

    access_cookie_name = settings.JWT_AUTH_COOKIE
    refresh_cookie_name = settings.JWT_AUTH_REFRESH_COOKIE
    assert access_cookie_name in response.cookies
    assert refresh_cookie_name in response.cookies
    assert response.cookies[access_cookie_name]["httponly"]
    assert response.cookies[refresh_cookie_name]["httponly"]


@pytest.mark.django_db
def test_login_with_wrong_password_is_rejected(client, admin_user):
    response = _login_via_api(client, admin_user.email, "not-the-password")
    assert response.status_code == 401
    assert settings.JWT_AUTH_COOKIE not in response.cookies


@pytest.mark.django_db
def test_tokens_in_body_when_enabled(client, admin_user, settings):
    settings.JWT_RETURN_TOKENS_IN_BODY = True
    payload = _login_via_api(client, admin_user.email, "testpass123").json()
    assert payload["access"]
    assert payload["refresh"]


@pytest.mark.django_db
def test_cookie_session_reaches_protected_endpoint(client, rep_user):
    _login_via_api(client, rep_user.email, "testpass123")
    response = client.get("/api/v1/auth/me/")
    assert response.status_code == 200
    assert response.json()["email"] == rep_user.email


@pytest.mark.django_db
def test_cookie_authenticated_post_requires_csrf_header(admin_user):
    strict_client = Client(enforce_csrf_checks=True)
    login_response = _login_via_api(strict_client, admin_user.email, "testpass123")
    assert login_response.status_code == 200

    # Without CSRF header -> denied for cookie-authenticated unsafe method.
    response_no_csrf = strict_client.post(
        "/api/v1/auth/password/change/",
        data=json.dumps({"old_password": "testpass123", "new_password": NEW_PASSWORD}),
        content_type="application/json",
    )
    assert response_no_csrf.status_code == 403

    csrf_response = strict_client.get("/api/v1/auth/csrf/")
    csrf_token = csrf_response.json()["csrfToken"]

    response_with_csrf = strict_client.post(
        "/api/v1/auth/password/change/",
        data=json.dumps({"old_password": "testpass123", "new_password": NEW_PASSWORD}),
        content_type="application/json",
        HTTP_X_CSRFTOKEN=csrf_token,
    )
    assert response_with_csrf.status_code == 200

    admin_user.refresh_from_db()
    assert admin_user.check_password(NEW_PASSWORD)


@pytest.mark.django_db
def test_refresh_uses_refresh_cookie_when_body_missing(client, admin_user):
    login_response = _login_via_api(client, admin_user.email, "testpass123")
    assert login_response.status_code == 200

    refresh_response = client.post(
        "/api/v1/auth/token/refresh/",
        data=json.dumps({}),
        content_type="application/json",
    )

    assert refresh_response.status_code == 200
    assert settings.JWT_AUTH_COOKIE in refresh_response.cookies


@pytest.mark.django_db
def test_logout_clears_cookies(client, admin_user):
    _login_via_api(client, admin_user.email, "testpass123")
    response = client.post("/api/v1/auth/logout/")
    assert response.status_code == 204
    assert response.cookies[settings.JWT_AUTH_COOKIE].value == ""


@pytest.mark.django_db
class TestSignup:
    def _signup(self, api_client, **overrides):
        data = {
            "email": "new.hire@test.com",
            "first_name": "New",
            "last_name": "Hire",
            "password": NEW_PASSWORD,
            "password_confirm": NEW_PASSWORD,
        }
        data.update(overrides)
        return api_client.post("/api/v1/auth/signup/", data, format="json")

    def test_signup_creates_pending_account(self, api_client):
        response = self._signup(api_client)

        assert response.status_code == 201
        assert response.data["employment_status"] == "pending"
        assert response.data["role"] == "user"
        user = User.objects.get(email="new.hire@test.com")
        assert user.check_password(NEW_PASSWORD)

    def test_signup_alerts_admins(self, api_client, admin_user, django_capture_on_commit_callbacks, mailoutbox):
        with django_capture_on_commit_callbacks(execute=True):
            response = self._signup(api_client)

        assert response.status_code == 201
        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == [admin_user.email]
        assert "new.hire@test.com" in mailoutbox[0].body

    def test_passwords_must_match(self, api_client):
        response = self._signup(api_client, password_confirm="Different$Pass99")
        assert response.status_code == 400
        assert "password_confirm" in response.data

    def test_weak_password_is_refused(self, api_client):
        response = self._signup(api_client, password="testpass123", password_confirm="testpass123")
        assert response.status_code == 400
        assert "password" in response.data

    def test_duplicate_email(self, api_client, rep_user):
        response = self._signup(api_client, email=rep_user.email)
        assert response.status_code == 400
        assert "email" in response.data

    def test_pending_account_can_sign_in_but_not_use_the_portal(self, client, pending_user):
        assert _login_via_api(client, pending_user.email, "testpass123").status_code == 200

        me = client.get("/api/v1/auth/me/")
        assert me.status_code == 200
        assert me.json()["employment_status"] == "pending"

        response = client.get("/api/v1/dashboard/summary/")
        assert response.status_code == 403
        assert response.json()["detail"] == "Your account is awaiting approval."


@pytest.mark.django_db
class TestProfileAndPasswords:
    def test_me_lists_permissions(self, rep_client):
        response = rep_client.get("/api/v1/auth/me/")
        assert response.status_code == 200
        assert response.data["display_name"] == "Rep User"
        assert "submitCommission" in response.data["permissions"]
        assert "approveCommission" not in response.data["permissions"]

    def test_patch_me_ignores_role(self, rep_client, rep_user):
        response = rep_client.patch("/api/v1/auth/me/", {"phone": "602-555-0111", "role": "admin"}, format="json")
        assert response.status_code == 200
        rep_user.refresh_from_db()
        assert rep_user.phone == "602-555-0111"
        assert rep_user.role == "user"

    def test_me_requires_authentication(self, api_client):
        assert api_client.get("/api/v1/auth/me/").status_code == 401

    def test_change_password_checks_old_password(self, rep_client):
        response = rep_client.post(
            "/api/v1/auth/password/change/",
            {"old_password": "wrong", "new_password": NEW_PASSWORD},
            format="json",
        )
        assert response.status_code == 400
        assert "old_password" in response.data

    def test_password_strength(self, api_client):
        response = api_client.post("/api/v1/auth/password/strength/", {"password": NEW_PASSWORD}, format="json")
        assert response.status_code == 200
        assert response.data["label"] == "Strong"
        assert response.data["requirements"]["has_symbol"] is True

    def test_reset_request_does_not_reveal_accounts(self, api_client, rep_user, mailoutbox):
        unknown = api_client.post("/api/v1/auth/password/reset/", {"email": "nobody@test.com"}, format="json")
        known = api_client.post("/api/v1/auth/password/reset/", {"email": rep_user.email}, format="json")

        assert unknown.status_code == known.status_code == 200
        assert unknown.data == known.data
        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == [rep_user.email]

    def test_reset_confirm(self, api_client, rep_user):
        uid = urlsafe_base64_encode(force_bytes(rep_user.pk))
        token = default_token_generator.make_token(rep_user)
        response = api_client.post(
            "/api/v1/auth/password/reset/confirm/",
            {"uid": uid, "token": token, "new_password1": NEW_PASSWORD, "new_password2": NEW_PASSWORD},
            format="json",
        )
        assert response.status_code == 200
        rep_user.refresh_from_db()
        assert rep_user.check_password(NEW_PASSWORD)

    def test_reset_confirm_with_bad_token(self, api_client, rep_user):
        uid = urlsafe_base64_encode(force_bytes(rep_user.pk))
        response = api_client.post(
            "/api/v1/auth/password/reset/confirm/",
            {"uid": uid, "token": "bad-token", "new_password1": NEW_PASSWORD, "new_password2": NEW_PASSWORD},
            format="json",
        )
        assert response.status_code == 400
