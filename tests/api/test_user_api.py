import pytest

from accounts.models import User
from core.models import AuditLog


@pytest.mark.django_db
class TestUserDirectory:
    def test_admin_lists_users(self, admin_client, rep_user, pending_user):
        response = admin_client.get("/api/v1/users/")
        assert response.status_code == 200
        emails = {row["email"] for row in response.data["results"]}
        assert {"rep@test.com", "pending@test.com", "manager@test.com"} <= emails

    def test_filter_pending(self, admin_client, rep_user, pending_user):
        response = admin_client.get("/api/v1/users/", {"employment_status": "pending"})
        assert [row["email"] for row in response.data["results"]] == ["pending@test.com"]

    def test_manager_cannot_list(self, manager_client):
        assert manager_client.get("/api/v1/users/").status_code == 403

    def test_managers_picker(self, rep_client, admin_user, manager_user):
        response = rep_client.get("/api/v1/users/managers/")
        assert response.status_code == 200
        assert {row["email"] for row in response.data} == {"admin@test.com", "manager@test.com"}


@pytest.mark.django_db
class TestOnboardingEndpoints:
    def test_approve(self, admin_client, pending_user, mailoutbox, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            response = admin_client.post(
                f"/api/v1/users/{pending_user.pk}/approve/",
                {"role": "manager", "department": "production"},
                format="json",
            )
        assert response.status_code == 200
        assert response.data["employment_status"] == "active"
        assert response.data["role"] == "manager"
        assert len(mailoutbox) == 1

    def test_approve_active_account_is_a_400(self, admin_client, rep_user):
        response = admin_client.post(f"/api/v1/users/{rep_user.pk}/approve/", {}, format="json")
        assert response.status_code == 400
        assert response.data["detail"] == "Only pending accounts can be approved."

    def test_reject(self, admin_client, pending_user):
        response = admin_client.post(
            f"/api/v1/users/{pending_user.pk}/reject/", {"reason": "Unknown applicant"}, format="json",
        )
        assert response.status_code == 200
        assert response.data["employment_status"] == "rejected"
        assert response.data["is_active"] is False

    def test_manager_cannot_approve(self, manager_client, pending_user):
        response = manager_client.post(f"/api/v1/users/{pending_user.pk}/approve/", {}, format="json")
        assert response.status_code == 403


@pytest.mark.django_db
class TestRoleEndpoints:
    def test_deactivate_and_reactivate(self, admin_client, rep_user):
        response = admin_client.post(f"/api/v1/users/{rep_user.pk}/deactivate/")
        assert response.status_code == 200
        assert response.data["is_active"] is False

        response = admin_client.post(f"/api/v1/users/{rep_user.pk}/reactivate/")
        assert response.data["is_active"] is True
        assert response.data["employment_status"] == "active"

    def test_cannot_deactivate_self(self, admin_client, admin_user):
        response = admin_client.post(f"/api/v1/users/{admin_user.pk}/deactivate/")
        assert response.status_code == 400

    def test_assign_role(self, admin_client, rep_user):
        response = admin_client.post(
            f"/api/v1/users/{rep_user.pk}/assign-role/", {"role": "manager", "department": "sales"}, format="json",
        )
        assert response.status_code == 200
        assert response.data["role"] == "manager"
        assert AuditLog.objects.filter(action="user.assign_role", entity_id=str(rep_user.pk)).exists()

    def test_assign_unknown_role(self, admin_client, rep_user):
        response = admin_client.post(f"/api/v1/users/{rep_user.pk}/assign-role/", {"role": "owner"}, format="json")
        assert response.status_code == 400
        assert "role" in response.data

    def test_assign_and_clear_manager(self, admin_client, admin_user, rep_user):
        response = admin_client.post(
            f"/api/v1/users/{rep_user.pk}/assign-manager/", {"manager": str(admin_user.pk)}, format="json",
        )
        assert response.status_code == 200
        assert response.data["manager_name"] == "Admin User"

        response = admin_client.post(f"/api/v1/users/{rep_user.pk}/assign-manager/", {"manager": None}, format="json")
        assert response.data["manager"] is None
        assert User.objects.get(pk=rep_user.pk).manager_id is None

    def test_rep_as_manager_is_a_400(self, admin_client, rep_user, other_rep):
        response = admin_client.post(
            f"/api/v1/users/{rep_user.pk}/assign-manager/", {"manager": str(other_rep.pk)}, format="json",
        )
        assert response.status_code == 400


@pytest.mark.django_db
class TestAuditLogEndpoint:
    def test_admin_reads_audit_log(self, admin_client, rep_user):
        admin_client.post(f"/api/v1/users/{rep_user.pk}/deactivate/")
        response = admin_client.get("/api/v1/audit-logs/", {"action": "user.deactivate"})
        assert response.status_code == 200
        assert response.data["count"] == 1
        assert response.data["results"][0]["actor_name"] == "Admin User"

    def test_rep_cannot_read_audit_log(self, rep_client):
        assert rep_client.get("/api/v1/audit-logs/").status_code == 403
