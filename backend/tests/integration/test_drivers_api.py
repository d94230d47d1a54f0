"""Integration tests for driver endpoints and the CSV import against the API"""

import httpx

from auth.jwt import create_access_token
from client import DriverDocsClient
from drivers.import_service import REQUIRED_COLUMNS, BulkImporter
from models import DocumentStatus

API = "/api/v1/drivers"


def new_driver(n):
    return {
        "firstName": f"Driver{n}",
        "lastName": "Tester",
        "email": f"driver{n}@example.com",
        "phone": "+1 555 0199",
        "location": "Depot South",
        "employeeId": f"EMP-1{n:02d}",
    }


class TestCreateDriver:

    def test_create(self, manager_client):
        response = manager_client.post(API, json=new_driver(1))

        assert response.status_code == 201
        driver = response.json()["data"]
        assert driver["name"] == "Driver1 Tester"
        assert driver["complianceScore"] == 0
        assert driver["complianceStatus"] == "No Documents"
        assert driver["documents"] == []

    def test_invalid_email(self, manager_client):
        response = manager_client.post(API, json={**new_driver(1), "email": "nope"})
        assert response.status_code == 422

    def test_duplicate_employee_id(self, manager_client, driver):
        response = manager_client.post(API, json={**new_driver(1), "employeeId": "EMP-001"})
        assert response.status_code == 409
        assert response.json()["error"] == "duplicate"

    def test_plan_limit(self, manager_client, db_session, company):
        company.settings_json = {"plan": {"max_drivers": 1}}
        db_session.commit()
        assert manager_client.post(API, json=new_driver(1)).status_code == 201

        response = manager_client.post(API, json=new_driver(2))

        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "DRIVER_LIMIT_REACHED"
        assert body["details"] == {"limit": 1, "current": 1}

    def test_viewer_cannot_create(self, viewer_client):
        assert viewer_client.post(API, json=new_driver(1)).status_code == 403


class TestReadDrivers:

    def test_list_with_compliance(self, viewer_client, driver, document_types, make_document, future_date):
        make_document(driver, "License", DocumentStatus.ACTIVE, future_date)

        drivers = viewer_client.get(API).json()["data"]

        assert len(drivers) == 1
        row = drivers[0]
        assert row["complianceScore"] == 50
        assert row["complianceTier"] == "red"
        assert row["documentStatuses"] == {"License": "ACTIVE", "Medical": "PENDING"}
        assert "documents" not in row

    def test_detail_includes_documents(self, viewer_client, driver, make_document):
        make_document(driver)
        detail = viewer_client.get(f"{API}/{driver.id}").json()["data"]
        assert detail["documentCount"] == 1
        assert detail["documents"][0]["effectiveStatus"] == "PENDING"

    def test_other_company_driver_not_found(self, viewer_client, db_session):
        from models import Company, Driver

        other = Company(name="Other Freight", settings_json={})
        db_session.add(other)
        db_session.flush()
        stranger = Driver(company_id=other.id, first_name="Bo", last_name="Lind", email="bo@example.com")
        db_session.add(stranger)
        db_session.commit()

        assert viewer_client.get(f"{API}/{stranger.id}").status_code == 404
        assert viewer_client.get(API).json()["data"] == []

    def test_template(self, viewer_client):
        response = viewer_client.get(f"{API}/import/template")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.text.splitlines()[0] == ",".join(REQUIRED_COLUMNS)


class TestDeleteDriver:

    def test_delete_removes_documents_and_objects(self, manager_client, driver, make_document, storage):
        docs = [make_document(driver), make_document(driver)]

        response = manager_client.delete(f"{API}/{driver.id}")

        assert response.json()["data"] == {"id": str(driver.id), "deleted": True, "documentsDeleted": 2}
        assert sorted(storage.deleted) == sorted(d.storage_key for d in docs)
        assert manager_client.get(f"{API}/{driver.id}").status_code == 404


class TestCsvImportThroughApi:

    async def test_import_stops_at_plan_limit(self, app, db_session, company):
        company.settings_json = {"plan": {"max_drivers": 2}}
        db_session.commit()
        token = create_access_token("user_manager", company.id, "MANAGER", "manager@northwind.test")
        rows = [",".join(new_driver(n)[c] for c in REQUIRED_COLUMNS) for n in range(1, 5)]
        content = "\n".join([",".join(REQUIRED_COLUMNS), *rows])

        transport = httpx.ASGITransport(app=app)
        async with DriverDocsClient("http://testserver/api/v1", token, transport=transport) as api:
            result = await BulkImporter().run(content, api.create_driver)
            listed = await api.list_drivers()

        assert [d["email"] for d in result.successful] == ["driver1@example.com", "driver2@example.com"]
        assert result.limit_reached is True
        assert [(f.row_number, f.reason) for f in result.failed] == [(4, "LIMIT_REACHED"), (5, "LIMIT_REACHED")]
        assert len(listed) == 2
