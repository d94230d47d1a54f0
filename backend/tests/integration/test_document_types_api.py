"""Integration tests for document type settings"""

API = "/api/v1/settings"

INSURANCE = {
    "name": "Insurance",
    "description": "Vehicle insurance certificate",
    "fields": [
        {"name": "policyNumber", "label": "Policy Number", "type": "text", "required": True},
        {"name": "expiryDate", "label": "Expiry Date", "type": "date", "required": True},
    ],
}


class TestDocumentTypes:

    def test_list_in_position_order(self, viewer_client, document_types):
        types = viewer_client.get(f"{API}/document-types").json()["data"]
        assert [t["name"] for t in types] == ["License", "Medical"]
        assert types[0]["fields"][0]["name"] == "licenseClass"

    def test_create_appends_position(self, admin_client, document_types):
        response = admin_client.post(f"{API}/document-types", json=INSURANCE)

        assert response.status_code == 201
        created = response.json()["data"]
        assert created["position"] == 2
        assert created["isActive"] is True
        assert created["extractionMode"] == "fields"
        assert created["fields"][0]["aiExtractable"] is True

    def test_duplicate_name(self, admin_client, document_types):
        response = admin_client.post(f"{API}/document-types", json={"name": "License"})
        assert response.status_code == 409

    def test_invalid_field_definition(self, admin_client):
        response = admin_client.post(f"{API}/document-types", json={
            "name": "Permit", "fields": [{"name": "class", "label": "Class", "type": "select"}],
        })
        assert response.status_code == 422

    def test_invalid_extraction_mode(self, admin_client):
        response = admin_client.post(f"{API}/document-types", json={"name": "Permit", "extractionMode": "ocr"})
        assert response.status_code == 422

    def test_manager_cannot_create(self, manager_client):
        assert manager_client.post(f"{API}/document-types", json=INSURANCE).status_code == 403

    def test_active_types_capped_by_plan(self, admin_client, db_session, company, document_types):
        company.settings_json = {"plan": {"max_documents_per_driver": 2}}
        db_session.commit()

        response = admin_client.post(f"{API}/document-types", json=INSURANCE)
        assert response.status_code == 403
        assert response.json()["error"] == "DOCUMENT_LIMIT_REACHED"

        inactive = admin_client.post(f"{API}/document-types", json={**INSURANCE, "isActive": False})
        assert inactive.status_code == 201
        toggled = admin_client.patch(f"{API}/document-types/Insurance/toggle-active")
        assert toggled.status_code == 403

    def test_update_and_rename(self, admin_client, document_types):
        response = admin_client.put(f"{API}/document-types/Medical", json={
            "name": "Medical Certificate", "aiEnabled": False,
        })

        updated = response.json()["data"]
        assert updated["name"] == "Medical Certificate"
        assert updated["aiEnabled"] is False
        assert admin_client.put(f"{API}/document-types/Medical", json={}).status_code == 404

    def test_rename_to_existing_name(self, admin_client, document_types):
        response = admin_client.put(f"{API}/document-types/Medical", json={"name": "License"})
        assert response.status_code == 409

    def test_toggle_and_delete(self, admin_client, document_types):
        toggled = admin_client.patch(f"{API}/document-types/Medical/toggle-active").json()["data"]
        assert toggled["isActive"] is False

        deleted = admin_client.delete(f"{API}/document-types/Medical")
        assert deleted.json()["data"] == {"name": "Medical", "deleted": True}
        names = [t["name"] for t in admin_client.get(f"{API}/document-types").json()["data"]]
        assert names == ["License"]

    def test_deactivated_type_no_longer_required(self, admin_client, viewer_client, document_types, driver,
                                                 make_document, future_date):
        from models import DocumentStatus

        make_document(driver, "License", DocumentStatus.ACTIVE, future_date)
        admin_client.patch(f"{API}/document-types/Medical/toggle-active")

        row = viewer_client.get("/api/v1/drivers").json()["data"][0]
        assert row["complianceScore"] == 100
        assert row["complianceTier"] == "green"

    def test_field_types(self, viewer_client):
        catalog = viewer_client.get(f"{API}/field-types").json()["data"]
        assert {"type": "date", "widget": "input:date"} in catalog
