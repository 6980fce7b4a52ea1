from decimal import Decimal

import pytest

from commissions.models import CommissionSubmission, DeniedJobNumber
from commissions.services import approve_commission, submit_commission
from compliance.models import ComplianceHold
from compliance.services import place_hold

SUBMISSION_PAYLOAD = {
    "job_number": "1234",
    "job_name": "Smith Residence",
    "job_address": "100 Main St, Phoenix AZ",
    "job_type": "insurance",
    "roof_type": "shingle",
    "contract_date": "2025-01-02",
    "contract_amount": "20000.00",
    "supplements_approved": "5000.00",
    "commission_percentage": "10.00",
    "advances_paid": "500.00",
}

DOCUMENT_PAYLOAD = {
    "job_name_id": "Smith Residence #1234",
    "job_date": "2025-01-02",
    "sales_rep": "Rep User",
    "job_type": "retail",
    "roof_type": "shingle",
    "gross_contract_total": "10000.00",
    "op_percent": "0.10",
    "material_cost": "3000.00",
    "labor_cost": "2000.00",
    "neg_exp_1": "500.00",
    "pos_exp_1": "200.00",
    "rep_profit_percent": "0.40",
}


@pytest.fixture
def submission(rep_user, sop_acknowledged, make_submission):
    return submit_commission(actor=rep_user, data=make_submission())


@pytest.mark.django_db
class TestSubmissionEndpoints:
    def test_rep_submits(self, rep_client, sop_acknowledged):
        response = rep_client.post("/api/v1/commissions/", SUBMISSION_PAYLOAD, format="json")

        assert response.status_code == 201
        assert response.data["status"] == "pending_review"
        assert response.data["approval_stage"] == "pending_manager"
        assert response.data["total_job_revenue"] == "25000.00"
        assert response.data["net_commission_owed"] == "2000.00"
        assert response.data["payable_display"] == "$2,000.00"
        assert len(response.data["status_logs"]) == 1

    def test_missing_playbook_acknowledgment_is_a_403(self, rep_client):
        response = rep_client.post("/api/v1/commissions/", SUBMISSION_PAYLOAD, format="json")

        assert response.status_code == 403
        assert response.data["code"] == "SOP_REQUIRED"
        assert response.data["action"] == "commission_submission"

    def test_hold_is_a_403(self, admin_user, rep_client, sop_acknowledged):
        hold = place_hold(actor=admin_user, hold_type=ComplianceHold.HoldType.COMMISSION, reason="Audit", job_id="1234")
        response = rep_client.post("/api/v1/commissions/", SUBMISSION_PAYLOAD, format="json")

        assert response.status_code == 403
        assert response.data["code"] == "HOLD_ACTIVE"
        assert response.data["hold_id"] == str(hold.pk)

    def test_bad_job_number_is_a_400(self, rep_client, sop_acknowledged):
        response = rep_client.post("/api/v1/commissions/", {**SUBMISSION_PAYLOAD, "job_number": "12"}, format="json")
        assert response.status_code == 400
        assert "job_number" in response.data

    def test_rep_only_lists_own(self, other_rep, rep_client, submission):
        response = rep_client.get("/api/v1/commissions/")
        assert response.status_code == 200
        assert response.data["count"] == 1
        assert response.data["results"][0]["id"] == str(submission.pk)

    def test_manager_can_list_but_not_approve(self, manager_client, submission):
        assert manager_client.get("/api/v1/commissions/").data["count"] == 1
        response = manager_client.post(f"/api/v1/commissions/{submission.pk}/approve/", {}, format="json")
        assert response.status_code == 403

    def test_admin_approves_through_both_stages(self, admin_client, submission):
        url = f"/api/v1/commissions/{submission.pk}/approve/"

        first = admin_client.post(url, {}, format="json")
        assert first.status_code == 200
        assert first.data["approval_stage"] == "pending_accounting"
        assert first.data["status"] == "pending_review"

        second = admin_client.post(url, {}, format="json")
        assert second.data["approval_stage"] == "completed"
        assert second.data["status"] == "approved"
        assert second.data["commission_approved"] == "2000.00"
        assert second.data["scheduled_pay_date"] is not None
        assert second.data["override_amount"] == "200.00"

    def test_changed_amount_needs_notes(self, admin_client, submission):
        url = f"/api/v1/commissions/{submission.pk}/approve/"
        response = admin_client.post(url, {"approved_amount": "1500.00"}, format="json")
        assert response.status_code == 400
        assert "Notes are required" in response.data["detail"]

        response = admin_client.post(url, {"approved_amount": "1500.00", "notes": "Shared job"}, format="json")
        assert response.status_code == 200
        assert response.data["commission_approved"] == "1500.00"

    def test_revision_round_trip(self, admin_client, rep_client, submission):
        response = admin_client.post(
            f"/api/v1/commissions/{submission.pk}/request-revision/", {"reason": "Attach the contract"}, format="json",
        )
        assert response.status_code == 200
        assert response.data["status"] == "rejected"
        assert response.data["revision_count"] == 1

        response = rep_client.post(
            f"/api/v1/commissions/{submission.pk}/resubmit/", {"advances_paid": "0.00"}, format="json",
        )
        assert response.status_code == 200
        assert response.data["status"] == "pending_review"
        assert response.data["net_commission_owed"] == "2500.00"
        assert response.data["revision_logs"][0]["resubmitted_at"] is not None

    def test_deny_blocks_the_job_number(self, admin_client, rep_client, submission):
        response = admin_client.post(f"/api/v1/commissions/{submission.pk}/deny/", {"reason": "Duplicate"}, format="json")
        assert response.status_code == 200
        assert response.data["status"] == "denied"
        assert DeniedJobNumber.objects.filter(job_number="1234").exists()

        response = rep_client.post("/api/v1/commissions/", SUBMISSION_PAYLOAD, format="json")
        assert response.status_code == 400
        assert "1234" in response.data["detail"]

    def test_mark_paid(self, admin_user, admin_client, submission):
        approve_commission(submission, actor=admin_user)
        approve_commission(submission, actor=admin_user)

        response = admin_client.post(f"/api/v1/commissions/{submission.pk}/mark-paid/", {}, format="json")
        assert response.status_code == 200
        assert response.data["status"] == "paid"
        assert response.data["paid_at"] is not None

    def test_stale_reviews(self, admin_client, submission):
        CommissionSubmission.objects.filter(pk=submission.pk).update(updated_at="2020-01-01T00:00:00Z")
        response = admin_client.get("/api/v1/commissions/stale/")
        assert response.status_code == 200
        assert response.data["count"] == 1


@pytest.mark.django_db
class TestCalculatorEndpoints:
    def test_worksheet_preview(self, rep_client):
        response = rep_client.post(
            "/api/v1/commissions/worksheet-preview/",
            {"contract_amount": "20000", "supplements_approved": "5000", "commission_percentage": "10", "advances_paid": "500"},
            format="json",
        )
        assert response.status_code == 200
        assert response.data == {
            "total_job_revenue": Decimal("25000.00"),
            "gross_commission": Decimal("2500.00"),
            "net_commission_owed": Decimal("2000.00"),
        }

    def test_pay_date(self, rep_client):
        response = rep_client.get("/api/v1/commissions/pay-date/", {"approved_at": "2025-01-07T21:59:00Z"})
        assert response.status_code == 200
        assert response.json()["scheduled_pay_date"] == "2025-01-10"

    def test_document_preview(self, rep_client):
        response = rep_client.post("/api/v1/commission-documents/preview/", DOCUMENT_PAYLOAD, format="json")
        assert response.status_code == 200
        assert response.data["totals"]["rep_commission"] == Decimal("1480.00")
        assert response.data["below_minimum"] is False

    def test_validate(self, rep_client):
        response = rep_client.post("/api/v1/commission-documents/validate/", {"job_name_id": ""}, format="json")
        assert response.status_code == 200
        assert response.data["valid"] is False
        assert response.data["errors"]

    def test_options_without_tier(self, rep_client):
        response = rep_client.get("/api/v1/commission-documents/options/")
        assert response.status_code == 200
        assert response.data["tier"] is None
        assert len(response.data["op_percentages"]) == 3
        assert response.data["profit_splits"]


@pytest.mark.django_db
class TestDocumentEndpoints:
    def test_create_and_submit(self, rep_client):
        response = rep_client.post("/api/v1/commission-documents/", DOCUMENT_PAYLOAD, format="json")
        assert response.status_code == 201
        assert response.data["net_profit"] == "3700.00"
        assert response.data["rep_commission"] == "1480.00"
        assert response.data["status"] == "draft"

        document_id = response.data["id"]
        response = rep_client.post(
            f"/api/v1/commission-documents/{document_id}/set-status/", {"status": "submitted"}, format="json",
        )
        assert response.status_code == 200
        assert response.data["status"] == "submitted"

        response = rep_client.patch(
            f"/api/v1/commission-documents/{document_id}/", {"labor_cost": "1.00"}, format="json",
        )
        assert response.status_code == 400

    def test_other_rep_cannot_see_document(self, rep_client, other_rep):
        from rest_framework.test import APIClient

        document_id = rep_client.post("/api/v1/commission-documents/", DOCUMENT_PAYLOAD, format="json").data["id"]
        client = APIClient()
        client.force_authenticate(user=other_rep)
        assert client.get(f"/api/v1/commission-documents/{document_id}/").status_code == 404


@pytest.mark.django_db
class TestTierEndpoints:
    def test_admin_creates_and_assigns(self, admin_client, rep_client, rep_user):
        response = admin_client.post(
            "/api/v1/commission-tiers/",
            {"name": "Senior", "allowed_profit_splits": "45, 50"},
            format="json",
        )
        assert response.status_code == 201
        tier_id = response.data["id"]

        response = admin_client.post(
            "/api/v1/commission-tiers/assign/", {"user": str(rep_user.pk), "tier": tier_id}, format="json",
        )
        assert response.status_code == 200

        mine = rep_client.get("/api/v1/commission-tiers/mine/")
        assert mine.data["tier"]["name"] == "Senior"
        assert mine.data["tier"]["allowed_profit_splits"] == ["0.45", "0.5"]

    def test_duplicate_name_is_a_400(self, admin_client):
        admin_client.post("/api/v1/commission-tiers/", {"name": "Standard"}, format="json")
        response = admin_client.post("/api/v1/commission-tiers/", {"name": "standard"}, format="json")
        assert response.status_code == 400

    def test_manager_cannot_create(self, manager_client):
        assert manager_client.post("/api/v1/commission-tiers/", {"name": "Nope"}, format="json").status_code == 403


@pytest.mark.django_db
class TestOverrideEndpoints:
    def test_manager_sees_own_overrides(self, admin_user, manager_client, submission):
        approve_commission(submission, actor=admin_user)
        approve_commission(submission, actor=admin_user)

        response = manager_client.get("/api/v1/manager-overrides/")
        assert response.status_code == 200
        assert response.data["count"] == 1
        assert response.data["results"][0]["override_amount"] == "200.00"
        assert response.data["results"][0]["job_number"] == "1234"

    def test_rep_cannot_list_overrides(self, rep_client):
        assert rep_client.get("/api/v1/manager-overrides/").status_code == 403

    def test_adjust_override(self, admin_client, rep_user):
        response = admin_client.post(
            "/api/v1/commissions/adjust-override/", {"sales_rep": str(rep_user.pk), "count": 10}, format="json",
        )
        assert response.status_code == 200
        assert response.data["approved_commission_count"] == 10
        assert response.data["override_phase_complete"] is True

        tracking = admin_client.get("/api/v1/commissions/override-tracking/")
        assert tracking.data[0]["sales_rep"] == rep_user.pk
