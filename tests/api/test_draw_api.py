from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from draws.models import Draw
from draws.services import approve_draw, mark_draw_paid, request_draw


@pytest.fixture
def pending_draw(rep_user):
    return request_draw(actor=rep_user, job_number="1234", amount="1000.00", estimated_commission="4000.00")


@pytest.fixture
def paid_draw(pending_draw, manager_user, admin_user):
    approve_draw(pending_draw, actor=manager_user)
    return mark_draw_paid(pending_draw, actor=admin_user)


@pytest.mark.django_db
class TestDrawRequests:
    def test_rep_requests_a_draw(self, rep_client):
        response = rep_client.post(
            "/api/v1/draws/",
            {"job_number": "1234", "job_name": "Smith Residence", "amount": "2000.00", "estimated_commission": "5000.00"},
            format="json",
        )
        assert response.status_code == 201
        assert response.data["status"] == "pending"
        assert response.data["amount"] == "2000.00"
        assert response.data["requires_manager_approval"] is True
        assert response.data["requested_by_name"] == "Rep User"

    def test_draw_over_the_cap_is_a_400(self, rep_client):
        response = rep_client.post(
            "/api/v1/draws/",
            {"job_number": "1234", "amount": "3000.00", "estimated_commission": "5000.00"},
            format="json",
        )
        assert response.status_code == 400
        assert "50%" in response.data["detail"]

    def test_bad_job_number(self, rep_client):
        response = rep_client.post("/api/v1/draws/", {"job_number": "99", "amount": "100.00"}, format="json")
        assert response.status_code == 400
        assert response.data["job_number"] == ["Job number must be exactly 4 digits."]

    def test_reps_only_see_their_own(self, pending_draw, other_rep):
        client = APIClient()
        client.force_authenticate(user=other_rep)
        response = client.get("/api/v1/draws/")
        assert response.status_code == 200
        assert response.data["count"] == 0

    def test_manager_sees_team_draws(self, manager_client, pending_draw):
        response = manager_client.get("/api/v1/draws/")
        assert response.data["count"] == 1
        assert response.data["results"][0]["id"] == str(pending_draw.pk)


@pytest.mark.django_db
class TestDrawReview:
    def test_manager_approves_direct_report(self, manager_client, pending_draw):
        response = manager_client.post(f"/api/v1/draws/{pending_draw.pk}/approve/")
        assert response.status_code == 200
        assert response.data["status"] == "approved"

    def test_rep_cannot_approve(self, rep_client, pending_draw):
        response = rep_client.post(f"/api/v1/draws/{pending_draw.pk}/approve/")
        assert response.status_code == 403

    def test_deny_requires_reason(self, admin_client, pending_draw):
        response = admin_client.post(f"/api/v1/draws/{pending_draw.pk}/deny/", {}, format="json")
        assert response.status_code == 400
        assert "reason" in response.data

        response = admin_client.post(f"/api/v1/draws/{pending_draw.pk}/deny/", {"reason": "Job cancelled"}, format="json")
        assert response.status_code == 200
        assert response.data["status"] == "denied"
        assert response.data["denial_reason"] == "Job cancelled"

    def test_manager_cannot_mark_paid(self, manager_user, manager_client, pending_draw):
        approve_draw(pending_draw, actor=manager_user)
        response = manager_client.post(f"/api/v1/draws/{pending_draw.pk}/mark-paid/")
        assert response.status_code == 403

    def test_admin_marks_paid(self, manager_user, admin_client, pending_draw):
        approve_draw(pending_draw, actor=manager_user)
        response = admin_client.post(f"/api/v1/draws/{pending_draw.pk}/mark-paid/")
        assert response.status_code == 200
        assert response.data["status"] == "paid"
        assert response.data["paid_at"] is not None


@pytest.mark.django_db
class TestDeductionsAndBalance:
    def test_manual_deduction(self, admin_client, paid_draw):
        response = admin_client.post(
            f"/api/v1/draws/{paid_draw.pk}/deduct/", {"amount": "400.00", "notes": "Payroll adjustment"}, format="json",
        )
        assert response.status_code == 201
        assert response.data["balance_before"] == "1000.00"
        assert response.data["balance_after"] == "600.00"

    def test_deduction_on_unpaid_draw(self, admin_client, pending_draw):
        response = admin_client.post(f"/api/v1/draws/{pending_draw.pk}/deduct/", {"amount": "10.00"}, format="json")
        assert response.status_code == 400

    def test_balance(self, rep_client, paid_draw):
        response = rep_client.get("/api/v1/draws/balance/")
        assert response.status_code == 200
        assert response.data["outstanding_balance"] == Decimal("1000.00")

    def test_detail_lists_applications(self, admin_user, rep_client, paid_draw):
        from draws.services import apply_draw_deduction

        apply_draw_deduction(paid_draw, "1000.00", actor=admin_user)
        response = rep_client.get(f"/api/v1/draws/{paid_draw.pk}/")
        assert response.data["status"] == Draw.Status.DEDUCTED
        assert len(response.data["applications"]) == 1


@pytest.mark.django_db
class TestDrawSettingsEndpoint:
    def test_any_employee_reads_settings(self, rep_client):
        response = rep_client.get("/api/v1/draws/settings/")
        assert response.status_code == 200
        assert Decimal(response.data["manager_approval_threshold"]) == Decimal("1500.00")
        assert Decimal(response.data["max_commission_ratio"]) == Decimal("0.50")

    def test_admin_updates_threshold(self, admin_client):
        response = admin_client.patch(
            "/api/v1/draws/settings/", {"key": "manager_approval_threshold", "value": "2000"}, format="json",
        )
        assert response.status_code == 200
        assert Decimal(response.data["manager_approval_threshold"]) == Decimal("2000")

    def test_rep_cannot_update(self, rep_client):
        response = rep_client.patch(
            "/api/v1/draws/settings/", {"key": "max_commission_ratio", "value": "0.9"}, format="json",
        )
        assert response.status_code == 403

    def test_ratio_above_one_is_a_400(self, admin_client):
        response = admin_client.patch(
            "/api/v1/draws/settings/", {"key": "max_commission_ratio", "value": "1.5"}, format="json",
        )
        assert response.status_code == 400
        assert "cannot exceed 1" in response.data["detail"]
