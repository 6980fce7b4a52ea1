import pytest

from directory.models import Prospect, Subcontractor

SUBCONTRACTOR_PAYLOAD = {
    "company_name": "Desert Tile Co",
    "primary_contact_name": "Ana Ruiz",
    "phone": "602-555-0100",
    "email": "ana@deserttile.test",
    "trade_type": "tile",
    "service_areas": ["east_valley", "prescott", "east_valley"],
}


@pytest.mark.django_db
class TestSubcontractorEndpoints:
    def test_manager_adds_a_subcontractor(self, manager_client, manager_user):
        response = manager_client.post("/api/v1/subcontractors/", SUBCONTRACTOR_PAYLOAD, format="json")

        assert response.status_code == 201
        assert response.data["service_areas"] == ["east_valley", "prescott"]
        assert response.data["missing_docs"] == ["COI", "W-9", "IC agreement"]
        assert response.data["is_approved"] is False
        assert Subcontractor.objects.get().created_by == manager_user

    def test_unknown_service_area(self, manager_client):
        response = manager_client.post(
            "/api/v1/subcontractors/", {**SUBCONTRACTOR_PAYLOAD, "service_areas": ["tucson"]}, format="json",
        )
        assert response.status_code == 400
        assert "service_areas" in response.data

    def test_rep_cannot_browse(self, rep_client):
        assert rep_client.get("/api/v1/subcontractors/").status_code == 403

    def test_filter_by_service_area(self, manager_client):
        manager_client.post("/api/v1/subcontractors/", SUBCONTRACTOR_PAYLOAD, format="json")
        manager_client.post(
            "/api/v1/subcontractors/",
            {**SUBCONTRACTOR_PAYLOAD, "company_name": "North Foam", "service_areas": ["north_valley"]},
            format="json",
        )

        response = manager_client.get("/api/v1/subcontractors/", {"service_area": "prescott"})
        assert response.data["count"] == 1
        assert response.data["results"][0]["company_name"] == "Desert Tile Co"

    def test_only_admins_approve(self, manager_client, admin_client):
        sub_id = manager_client.post("/api/v1/subcontractors/", SUBCONTRACTOR_PAYLOAD, format="json").data["id"]

        assert manager_client.post(f"/api/v1/subcontractors/{sub_id}/approve/").status_code == 403

        response = admin_client.post(f"/api/v1/subcontractors/{sub_id}/approve/")
        assert response.status_code == 200
        assert response.data["is_approved"] is True

        again = admin_client.post(f"/api/v1/subcontractors/{sub_id}/approve/")
        assert again.status_code == 400

    def test_expired_coi_list(self, manager_client):
        manager_client.post(
            "/api/v1/subcontractors/",
            {**SUBCONTRACTOR_PAYLOAD, "coi_status": "received", "coi_expiration_date": "2020-01-01"},
            format="json",
        )
        response = manager_client.get("/api/v1/subcontractors/expired-coi/")
        assert response.status_code == 200
        assert len(response.data) == 1
        assert "COI (expired)" in response.data[0]["missing_docs"]


@pytest.mark.django_db
class TestVendorEndpoints:
    def test_create_vendor(self, manager_client):
        response = manager_client.post(
            "/api/v1/vendors/",
            {
                "vendor_name": "ABC Supply",
                "vendor_type": "supplier",
                "primary_contact_name": "Lou Park",
                "phone": "602-555-0122",
                "email": "lou@abcsupply.test",
                "w9_status": "received",
            },
            format="json",
        )
        assert response.status_code == 201
        assert response.data["missing_docs"] == ["COI", "IC agreement"]


@pytest.mark.django_db
class TestProspectEndpoints:
    def _create(self, client, **overrides):
        data = {
            "company_name": "Valley Gutters",
            "contact_name": "Sam Lee",
            "phone": "480-555-0199",
            "email": "sam@valleygutters.test",
            "prospect_type": "subcontractor",
            "trade_vendor_type": "gutters",
        }
        data.update(overrides)
        return client.post("/api/v1/prospects/", data, format="json")

    def test_convert_to_subcontractor(self, manager_client):
        prospect_id = self._create(manager_client).data["id"]

        response = manager_client.post(f"/api/v1/prospects/{prospect_id}/convert/")
        assert response.status_code == 201
        assert response.data["type"] == "subcontractor"
        assert response.data["entity"]["company_name"] == "Valley Gutters"
        assert response.data["entity"]["trade_type"] == "gutters"
        assert Prospect.objects.get(pk=prospect_id).stage == Prospect.Stage.APPROVED

    def test_convert_to_vendor(self, manager_client):
        prospect_id = self._create(manager_client, prospect_type="vendor", trade_vendor_type="dump").data["id"]

        response = manager_client.post(f"/api/v1/prospects/{prospect_id}/convert/")
        assert response.data["type"] == "vendor"
        assert response.data["entity"]["vendor_type"] == "dump"

    def test_cannot_convert_twice(self, manager_client):
        prospect_id = self._create(manager_client).data["id"]
        manager_client.post(f"/api/v1/prospects/{prospect_id}/convert/")
        response = manager_client.post(f"/api/v1/prospects/{prospect_id}/convert/")
        assert response.status_code == 400
        assert response.data["detail"] == "This prospect has already been converted."

    def test_not_a_fit(self, manager_client):
        prospect_id = self._create(manager_client, stage="not_a_fit").data["id"]
        response = manager_client.post(f"/api/v1/prospects/{prospect_id}/convert/")
        assert response.status_code == 400
