"""Unit tests for the server side of the three-phase upload protocol"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from config import get_settings
from documents.upload_service import ObjectUploadCoordinator, build_storage_key
from domain.errors import (
    DocumentLimitReachedError,
    DuplicateError,
    FileValidationError,
    NotFoundError,
    UploadNotStoredError,
)
from models import DocumentStatus


@pytest.fixture
def coordinator(db_session, company, storage):
    return ObjectUploadCoordinator(db_session, company.id, storage, get_settings())


def jpeg(name="license.jpg", size=2048):
    return {"filename": name, "contentType": "image/jpeg", "size": size}


class TestRequestUploadGrants:

    async def test_one_grant_per_file_in_order(self, coordinator, driver, storage):
        grants = await coordinator.request_upload_grants(driver.id, [jpeg("front.jpg"), jpeg("back side.png")])

        assert [g.filename for g in grants] == ["front.jpg", "back side.png"]
        assert grants[0].key.startswith(f"drivers/{driver.id}/")
        assert grants[1].key.endswith("-back_side.png")
        assert grants[0].key != grants[1].key
        assert storage.signed_uploads == [g.key for g in grants]
        assert grants[0].expires_at > datetime.now(timezone.utc)
        assert grants[0].to_dict()["uploadUrl"].startswith("https://storage.test/")

    async def test_content_type_guessed_when_missing(self, coordinator, driver):
        grants = await coordinator.request_upload_grants(driver.id, [{"filename": "scan.PNG"}])
        assert grants[0].content_type == "image/png"

    async def test_invalid_file_rejects_batch(self, coordinator, driver, storage):
        with pytest.raises(FileValidationError) as exc_info:
            await coordinator.request_upload_grants(driver.id, [jpeg(), jpeg("contract.pdf")])

        assert exc_info.value.details["files"][0]["filename"] == "contract.pdf"
        assert storage.signed_uploads == []

    async def test_oversized_file_rejected(self, coordinator, driver):
        with pytest.raises(FileValidationError):
            await coordinator.request_upload_grants(driver.id, [jpeg(size=50 * 1024 * 1024)])

    async def test_too_many_files(self, coordinator, driver):
        files = [jpeg(f"scan-{i}.jpg") for i in range(get_settings().MAX_UPLOAD_BATCH_FILES + 1)]
        with pytest.raises(FileValidationError, match="at most"):
            await coordinator.request_upload_grants(driver.id, files)

    async def test_unknown_driver(self, coordinator):
        with pytest.raises(NotFoundError):
            await coordinator.request_upload_grants(uuid4(), [jpeg()])

    async def test_document_types_bound_upload_count(self, coordinator, driver, document_types, make_document):
        make_document(driver)
        with pytest.raises(DocumentLimitReachedError) as exc_info:
            await coordinator.request_upload_grants(driver.id, [jpeg("a.jpg"), jpeg("b.jpg")])
        assert exc_info.value.details["reason"] == "document-types"

    async def test_plan_limit(self, coordinator, db_session, company, driver, make_document):
        company.settings_json = {"plan": {"max_documents_per_driver": 1}}
        db_session.commit()
        make_document(driver)

        with pytest.raises(DocumentLimitReachedError) as exc_info:
            await coordinator.request_upload_grants(driver.id, [jpeg()])
        assert exc_info.value.details["reason"] == "plan-limit"


class TestCreateDocumentRecord:

    async def test_records_stored_object_as_pending(self, coordinator, driver, storage):
        key = build_storage_key(driver.id, "license.jpg")
        storage.put(key, b"12345678", "image/jpeg")

        document = await coordinator.create_document_record(driver.id, key, "license.jpg")

        assert document.status == DocumentStatus.PENDING
        assert document.storage_key == key
        assert document.size_bytes == 8
        assert document.content_type == "image/jpeg"
        assert document.type is None

    async def test_missing_object_creates_nothing(self, coordinator, db_session, driver):
        key = build_storage_key(driver.id, "license.jpg")

        with pytest.raises(UploadNotStoredError):
            await coordinator.create_document_record(driver.id, key, "license.jpg")

        db_session.refresh(driver)
        assert driver.documents == []

    async def test_key_of_other_driver_rejected(self, coordinator, driver, storage):
        key = build_storage_key(uuid4(), "license.jpg")
        storage.put(key)
        with pytest.raises(FileValidationError):
            await coordinator.create_document_record(driver.id, key, "license.jpg")

    async def test_same_key_recorded_once(self, coordinator, driver, storage):
        key = build_storage_key(driver.id, "license.jpg")
        storage.put(key)
        await coordinator.create_document_record(driver.id, key, "license.jpg")

        with pytest.raises(DuplicateError):
            await coordinator.create_document_record(driver.id, key, "license.jpg")
