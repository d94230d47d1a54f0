"""Document API endpoints.

Upload protocol, document metadata, AI scans and status views. Every
response is wrapped as {"success": true, "data": ...}; domain errors are
rendered by the handlers registered in main.py.
"""

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from auth.dependencies import IdentityContext, require_manager, require_viewer
from config import Settings, get_settings
from database import get_db
from dependencies import get_credit_ledger, get_extraction_orchestrator, get_storage
from domain.credits.ledger import CreditLedger
from domain.documents.document_status import utc_today
from domain.documents.ports.object_storage_port import ObjectStoragePort
from domain.extraction.orchestrator import ExtractionOrchestrator
from .schemas import BulkScanRequest, CreateDocumentRequest, PresignedUrlRequest
from .service import DocumentService
from .upload_service import ObjectUploadCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


def ok(data: Any) -> dict:
    return {"success": True, "data": data}


@router.get("/credits")
async def get_credits(
    identity: IdentityContext = Depends(require_viewer),
    ledger: CreditLedger = Depends(get_credit_ledger),
):
    """Current AI-scan credit balance"""
    return ok({"credits": ledger.get_balance(identity.company_id)})


@router.get("/document-status")
async def document_status(
    status_filter: str = Query("all", alias="status", pattern="^(all|expired|expiring|active|pending)$"),
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_viewer),
):
    """Company-wide documents filtered by effective status, with counts"""
    service = DocumentService(db, identity.company_id)
    return ok(service.document_status_view(status_filter, utc_today()))


@router.get("/driver/{driver_id}")
async def list_driver_documents(
    driver_id: UUID,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_viewer),
):
    service = DocumentService(db, identity.company_id)
    return ok(service.list_driver_documents(driver_id, utc_today()))


@router.post("/presigned-urls/{driver_id}")
async def request_upload_grants(
    driver_id: UUID,
    request: PresignedUrlRequest,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_manager),
    storage: ObjectStoragePort = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """
    Phase 1 of the upload protocol: one presigned PUT URL per file.

    Returns:
        [{filename, key, uploadUrl, contentType, expiresAt}]
    """
    coordinator = ObjectUploadCoordinator(db, identity.company_id, storage, settings)
    grants = await coordinator.request_upload_grants(
        driver_id,
        [f.model_dump(by_alias=True) for f in request.files],
    )
    return ok([g.to_dict() for g in grants])


@router.post("/bulk-ai-scan")
async def bulk_ai_scan(
    request: BulkScanRequest,
    identity: IdentityContext = Depends(require_manager),
    orchestrator: ExtractionOrchestrator = Depends(get_extraction_orchestrator),
):
    """
    Scan several documents. Credits are charged only for successful results.

    Returns:
        {results: [{documentId, success, documentType, extractedData, error}],
         totalCreditsUsed, creditsRemaining}
    """
    bulk = await orchestrator.scan_many(identity.company_id, request.document_ids)
    return ok(bulk.to_dict())


@router.post("/{driver_id}", status_code=status.HTTP_201_CREATED)
async def create_document_record(
    driver_id: UUID,
    request: CreateDocumentRequest,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_manager),
    storage: ObjectStoragePort = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """Phase 3 of the upload protocol: record a stored upload as a PENDING document"""
    coordinator = ObjectUploadCoordinator(db, identity.company_id, storage, settings)
    document = await coordinator.create_document_record(
        driver_id,
        key=request.key,
        filename=request.filename,
        content_type=request.content_type,
        size=request.size,
    )
    service = DocumentService(db, identity.company_id)
    return ok(service.describe(document, utc_today(), service.reminder_window))


@router.post("/{document_id}/ai-scan")
async def ai_scan(
    document_id: UUID,
    identity: IdentityContext = Depends(require_manager),
    orchestrator: ExtractionOrchestrator = Depends(get_extraction_orchestrator),
):
    """
    Scan one document (1 credit on success).

    Returns:
        {documentId, success, documentType, extractedData, error, creditsUsed, creditsRemaining}
    """
    result, remaining = await orchestrator.scan_one(identity.company_id, str(document_id))
    data = result.to_dict()
    data["creditsUsed"] = 1 if result.success else 0
    data["creditsRemaining"] = remaining
    return ok(data)


@router.get("/{document_id}/download-url")
async def get_download_url(
    document_id: UUID,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_viewer),
    storage: ObjectStoragePort = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    service = DocumentService(db, identity.company_id)
    expires_in = settings.DOWNLOAD_URL_EXPIRE_SECONDS
    url = await service.download_url(document_id, storage, expires_in)
    return ok({"url": url, "expiresIn": expires_in})


@router.put("/{document_id}")
async def update_document(
    document_id: UUID,
    details: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_manager),
):
    """
    Save reviewed document details.

    Body is a field map: type, documentNumber, issuedDate, expiryDate, notes
    plus the document type's own fields. type and expiryDate are required.
    """
    service = DocumentService(db, identity.company_id)
    today = utc_today()
    document = service.update_document(document_id, details, today)
    return ok(service.describe(document, today, service.reminder_window))


@router.delete("/{document_id}")
async def delete_document(
    document_id: UUID,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_manager),
    storage: ObjectStoragePort = Depends(get_storage),
):
    service = DocumentService(db, identity.company_id)
    await service.delete_document(document_id, storage)
    return ok({"id": str(document_id), "deleted": True})
