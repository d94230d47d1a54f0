"""Unit tests for ExtractionOrchestrator credit settlement"""

from uuid import uuid4

import pytest

from domain.errors import ExtractionUnavailableError, InsufficientCreditsError, StorageError
from domain.extraction import (
    ExtractedDocument,
    ExtractionFailed,
    ExtractionOrchestrator,
    ExtractionServiceUnavailable,
)
from models import DocumentType


@pytest.fixture
def provider(extraction_provider):
    return extraction_provider


@pytest.fixture
def orchestrator(session_factory, ledger, provider, storage):
    return ExtractionOrchestrator(session_factory, ledger, provider, storage)


@pytest.fixture
def three_documents(driver, make_document, document_types):
    return [make_document(driver) for _ in range(3)]


class TestScanMany:

    async def test_partial_failure_debits_only_successes(
        self, orchestrator, provider, ledger, company, three_documents
    ):
        a, b, c = (str(d.id) for d in three_documents)
        provider.outcomes = {
            a: ExtractedDocument(document_type="License", fields={"licenseClass": "B", "expiryDate": "2030-01-01"}),
            b: ExtractionFailed("Image unreadable"),
            c: ExtractedDocument(document_type="Medical"),
        }
        ledger.credit(company.id, 10)

        bulk = await orchestrator.scan_many(company.id, [c, b, a])

        assert [r.document_id for r in bulk.results] == [c, b, a]
        assert [r.success for r in bulk.results] == [True, False, True]
        assert bulk.results[1].error == "Image unreadable"
        assert bulk.results[2].extracted_data == {"licenseClass": "B", "expiryDate": "2030-01-01"}
        assert bulk.total_credits_used == 2
        assert bulk.credits_remaining == 8
        assert ledger.get_balance(company.id) == 8

    async def test_insufficient_credits_calls_nothing(
        self, orchestrator, provider, ledger, company, three_documents
    ):
        ledger.credit(company.id, 2)

        with pytest.raises(InsufficientCreditsError) as exc_info:
            await orchestrator.scan_many(company.id, [str(d.id) for d in three_documents])

        assert exc_info.value.required == 3
        assert exc_info.value.available == 2
        assert provider.requests == []
        assert ledger.get_balance(company.id) == 2

    async def test_service_unavailable_for_all_refunds_everything(
        self, orchestrator, provider, ledger, company, three_documents
    ):
        provider.outcomes = {
            str(d.id): ExtractionServiceUnavailable("timeout") for d in three_documents
        }
        ledger.credit(company.id, 5)

        with pytest.raises(ExtractionUnavailableError):
            await orchestrator.scan_many(company.id, [str(d.id) for d in three_documents])

        assert len(provider.requests) == 3
        assert ledger.get_balance(company.id) == 5

    async def test_unknown_document_is_reported_not_charged(
        self, orchestrator, ledger, company, three_documents
    ):
        ledger.credit(company.id, 5)
        missing = str(uuid4())

        bulk = await orchestrator.scan_many(company.id, [str(three_documents[0].id), missing, "not-a-uuid"])

        assert [r.document_id for r in bulk.results][1:] == [missing, "not-a-uuid"]
        assert bulk.results[1].error == "Document not found"
        assert bulk.results[2].success is False
        assert bulk.total_credits_used == 1
        assert ledger.get_balance(company.id) == 4

    async def test_document_of_other_company_is_not_found(
        self, orchestrator, ledger, company, db_session, driver, make_document
    ):
        from models import Company

        other = Company(name="Other Freight", settings_json={})
        db_session.add(other)
        db_session.commit()
        document = make_document(driver)
        ledger.credit(other.id, 1)

        bulk = await orchestrator.scan_many(other.id, [str(document.id)])

        assert bulk.results[0].error == "Document not found"
        assert ledger.get_balance(other.id) == 1

    async def test_unexpected_error_refunds_reservation(
        self, orchestrator, provider, ledger, company, three_documents
    ):
        provider.outcomes = {str(three_documents[0].id): RuntimeError("boom")}
        ledger.credit(company.id, 3)

        with pytest.raises(RuntimeError):
            await orchestrator.scan_many(company.id, [str(d.id) for d in three_documents])

        assert len(provider.requests) == 3
        assert ledger.get_balance(company.id) == 3

    async def test_storage_error_fails_only_that_document(
        self, orchestrator, provider, storage, ledger, company, three_documents, monkeypatch
    ):
        a, b, c = three_documents
        provider.outcomes = {
            str(a.id): ExtractedDocument(document_type="License"),
            str(c.id): ExtractedDocument(document_type="Medical"),
        }
        signed = storage.generate_presigned_download_url

        async def flaky_download_url(storage_key, expires_in_seconds=3600):
            if storage_key == b.storage_key:
                raise StorageError("S3 timeout")
            return await signed(storage_key, expires_in_seconds)

        monkeypatch.setattr(storage, "generate_presigned_download_url", flaky_download_url)
        ledger.credit(company.id, 3)

        bulk = await orchestrator.scan_many(company.id, [str(d.id) for d in three_documents])

        assert [r.success for r in bulk.results] == [True, False, True]
        assert bulk.results[1].error == "S3 timeout"
        assert bulk.total_credits_used == 2
        assert ledger.get_balance(company.id) == 1

    async def test_storage_down_for_all_is_unavailable(
        self, orchestrator, provider, storage, ledger, company, three_documents, monkeypatch
    ):
        async def bucket_unreachable(storage_key, expires_in_seconds=3600):
            raise StorageError("Connection refused")

        monkeypatch.setattr(storage, "generate_presigned_download_url", bucket_unreachable)
        ledger.credit(company.id, 3)

        with pytest.raises(ExtractionUnavailableError):
            await orchestrator.scan_many(company.id, [str(d.id) for d in three_documents])

        assert provider.requests == []
        assert ledger.get_balance(company.id) == 3

    async def test_missing_stored_object_is_a_failed_result(
        self, orchestrator, ledger, company, driver, make_document
    ):
        document = make_document(driver, stored=False)
        ledger.credit(company.id, 1)

        bulk = await orchestrator.scan_many(company.id, [str(document.id)])

        assert bulk.results[0].success is False
        assert bulk.total_credits_used == 0
        assert ledger.get_balance(company.id) == 1

    async def test_empty_request(self, orchestrator, ledger, company):
        ledger.credit(company.id, 4)
        bulk = await orchestrator.scan_many(company.id, [])
        assert bulk.results == []
        assert bulk.credits_remaining == 4

    async def test_hints_include_only_active_ai_enabled_types(
        self, orchestrator, provider, ledger, company, db_session, document_types, driver, make_document
    ):
        db_session.add_all([
            DocumentType(company_id=company.id, name="Archived", is_active=False, position=2),
            DocumentType(company_id=company.id, name="Handwritten", ai_enabled=False, position=3),
            DocumentType(company_id=company.id, name="Insurance", extraction_mode="classification-only", position=4),
        ])
        db_session.commit()
        document = make_document(driver)
        ledger.credit(company.id, 1)

        await orchestrator.scan_many(company.id, [str(document.id)])

        hints = provider.requests[0].document_types
        assert [h.name for h in hints] == ["License", "Medical", "Insurance"]
        assert hints[2].classification_only is True
        assert provider.requests[0].image_url.startswith("https://storage.test/")


class TestScanOne:

    async def test_returns_result_and_remaining_balance(
        self, orchestrator, provider, ledger, company, driver, make_document
    ):
        document = make_document(driver)
        provider.outcomes = {str(document.id): ExtractedDocument(document_type="License")}
        ledger.credit(company.id, 3)

        result, remaining = await orchestrator.scan_one(company.id, str(document.id))

        assert result.success is True
        assert result.document_type == "License"
        assert remaining == 2
