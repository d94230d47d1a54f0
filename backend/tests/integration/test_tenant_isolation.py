"""Integration tests for company (tenant) isolation

Every query is scoped by the company_id claim of the bearer token. A
resource owned by another company behaves exactly like a missing one.
"""

import pytest
from fastapi.testclient import TestClient

from auth.jwt import create_access_token
from models import Company, Document, DocumentStatus, DocumentType, Driver


@pytest.fixture
def other_company(db_session) -> dict:
    """A second company with one driver, one document, one type and credits"""
    company = Company(name="Southwind Logistics", settings_json={"plan": {"max_drivers": 5}})
    db_session.add(company)
    db_session.flush()
    driver = Driver(company_id=company.id, first_name="Lee", last_name="Park", email="lee@southwind.test")
    db_session.add(driver)
    db_session.flush()
    document = Document(
        driver_id=driver.id,
        company_id=company.id,
        storage_key=f"drivers/{driver.id}/aa-license.jpg",
        filename="license.jpg",
        status=DocumentStatus.PENDING,
        fields_json={},
    )
    doc_type = DocumentType(company_id=company.id, name="Hazmat Permit", fields_json=[])
    db_session.add_all([document, doc_type])
    db_session.commit()
    return {"company": company, "driver": driver, "document": document}


class TestCrossCompanyAccess:

    def test_driver_of_other_company_not_found(self, manager_client, other_company):
        driver_id = other_company["driver"].id
        assert manager_client.get(f"/api/v1/drivers/{driver_id}").status_code == 404
        assert manager_client.delete(f"/api/v1/drivers/{driver_id}").status_code == 404
        assert manager_client.get(f"/api/v1/documents/driver/{driver_id}").status_code == 404

    def test_cannot_upload_for_other_company_driver(self, manager_client, other_company):
        response = manager_client.post(
            f"/api/v1/documents/presigned-urls/{other_company['driver'].id}",
            json={"files": [{"filename": "license.jpg"}]},
        )
        assert response.status_code == 404

    def test_document_of_other_company_not_found(self, manager_client, other_company, storage):
        document = other_company["document"]
        storage.put(document.storage_key)

        assert manager_client.get(f"/api/v1/documents/{document.id}/download-url").status_code == 404
        assert manager_client.put(
            f"/api/v1/documents/{document.id}", json={"type": "License", "expiryDate": "2030-01-01"},
        ).status_code == 404
        assert manager_client.delete(f"/api/v1/documents/{document.id}").status_code == 404
        assert storage.deleted == []

    def test_scan_of_other_company_document_is_not_charged(self, manager_client, ledger, company,
                                                            other_company, extraction_provider):
        ledger.credit(company.id, 1)

        result = manager_client.post(f"/api/v1/documents/{other_company['document'].id}/ai-scan").json()["data"]

        assert result["success"] is False
        assert result["error"] == "Document not found"
        assert result["creditsRemaining"] == 1
        assert extraction_provider.requests == []

    def test_lists_only_own_company(self, manager_client, driver, make_document, other_company):
        make_document(driver)

        drivers = manager_client.get("/api/v1/drivers").json()["data"]
        documents = manager_client.get("/api/v1/documents/document-status").json()["data"]["documents"]
        types = manager_client.get("/api/v1/settings/document-types").json()["data"]

        assert [d["id"] for d in drivers] == [str(driver.id)]
        assert {d["driverId"] for d in documents} == {str(driver.id)}
        assert types == []

    def test_credits_are_per_company(self, app, ledger, company, other_company):
        ledger.credit(other_company["company"].id, 40)
        ledger.credit(company.id, 2)

        token = create_access_token("user_x", other_company["company"].id, "VIEWER", "x@southwind.test")
        client = TestClient(app)
        client.headers.update({"Authorization": f"Bearer {token}"})

        assert client.get("/api/v1/documents/credits").json()["data"]["credits"] == 40
