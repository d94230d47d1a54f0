"""End-to-end compliance: upload, review and score a driver through the API"""

from models import DocumentStatus


def upload(client, storage, driver, filename):
    grant = client.post(
        f"/api/v1/documents/presigned-urls/{driver.id}",
        json={"files": [{"filename": filename, "contentType": "image/jpeg"}]},
    ).json()["data"][0]
    storage.put(grant["key"])
    return client.post(
        f"/api/v1/documents/{driver.id}",
        json={"key": grant["key"], "filename": filename, "contentType": "image/jpeg"},
    ).json()["data"]


def test_two_license_documents_count_once(manager_client, storage, driver, document_types, future_date):
    for filename in ("license-front.jpg", "license-back.jpg"):
        document = upload(manager_client, storage, driver, filename)
        response = manager_client.put(f"/api/v1/documents/{document['id']}", json={
            "type": "License", "licenseClass": "C", "expiryDate": future_date.isoformat(),
        })
        assert response.status_code == 200

    row = manager_client.get("/api/v1/drivers").json()["data"][0]

    assert row["complianceScore"] == 50
    assert row["complianceTier"] == "red"
    assert row["documentStatuses"] == {"License": "ACTIVE", "Medical": "PENDING"}
    assert row["complianceStatus"] == "Compliant"

    detail = manager_client.get(f"/api/v1/drivers/{driver.id}").json()["data"]
    assert {d["statusLabel"] for d in detail["documents"]} == {"Verified"}


def test_full_compliance(manager_client, driver, document_types, make_document, future_date):
    make_document(driver, "License", DocumentStatus.ACTIVE, future_date)
    make_document(driver, "Medical", DocumentStatus.ACTIVE, future_date)

    row = manager_client.get("/api/v1/drivers").json()["data"][0]

    assert row["complianceScore"] == 100
    assert row["complianceTier"] == "green"


def test_pending_upload_is_a_warning(manager_client, storage, driver, document_types):
    upload(manager_client, storage, driver, "unknown.jpg")

    row = manager_client.get("/api/v1/drivers").json()["data"][0]

    assert row["complianceScore"] == 0
    assert row["complianceStatus"] == "Warning"
