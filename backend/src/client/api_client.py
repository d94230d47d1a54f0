"""
DriverDocs API client.

Wraps the REST endpoints with an httpx.AsyncClient and turns error
responses back into domain exceptions:

    402               -> InsufficientCreditsError
    403               -> DriverLimitReachedError / DocumentLimitReachedError by code
    404               -> NotFoundError
    422               -> ValidationError (DocumentValidationError for missing fields)
    other 4xx         -> PersistenceError
    5xx / network     -> TransportError

Usage:
    async with DriverDocsClient("https://api.example.com", token) as api:
        grants = await api.request_upload_grants(driver_id, [{"filename": "a.jpg"}])
"""

import logging
from typing import Any, Optional

import httpx

from domain.errors import (
    QUOTA_ERRORS_BY_CODE,
    CsvImportError,
    DocumentValidationError,
    DomainError,
    ExtractionUnavailableError,
    FileValidationError,
    InsufficientCreditsError,
    NotFoundError,
    PersistenceError,
    StorageError,
    TransportError,
    ValidationError,
)
from domain.extraction.orchestrator import BulkScanResult, ScanResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

VALIDATION_ERRORS_BY_CODE = {
    cls.error: cls for cls in (CsvImportError, FileValidationError)
}

TRANSPORT_ERRORS_BY_CODE = {
    cls.error: cls for cls in (StorageError, ExtractionUnavailableError)
}


def _error_body(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {"message": response.text[:300] or response.reason_phrase}
    if not isinstance(body, dict):
        return {"message": str(body)}
    # FastAPI's default shape is {"detail": ...}
    if "message" not in body and "detail" in body:
        body["message"] = body["detail"] if isinstance(body["detail"], str) else "Request failed"
    return body


def error_from_response(response: httpx.Response) -> DomainError:
    """Map a non-2xx response to the matching domain exception"""
    body = _error_body(response)
    code = body.get("error")
    message = body.get("message") or body.get("error") or f"HTTP {response.status_code}"
    details = body.get("details")
    status_code = response.status_code

    if status_code == 402:
        details = details or {}
        return InsufficientCreditsError(
            required=int(details.get("required", 0)),
            available=int(details.get("available", 0)),
        )
    if status_code == 403 and code in QUOTA_ERRORS_BY_CODE:
        return QUOTA_ERRORS_BY_CODE[code](message, details=details)
    if status_code == 404:
        return NotFoundError(message, details=details)
    if status_code == 422:
        if code == DocumentValidationError.error:
            return DocumentValidationError(message, missing_fields=(details or {}).get("missingFields"))
        return VALIDATION_ERRORS_BY_CODE.get(code, ValidationError)(message, details=details)
    if 400 <= status_code < 500:
        return PersistenceError(message, details=details)
    return TRANSPORT_ERRORS_BY_CODE.get(code, TransportError)(message, details=details)


class DriverDocsClient:
    """Async client for the DriverDocs REST API"""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "DriverDocsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return the unwrapped `data` payload.

        Raises:
            DomainError: Mapped from the error response, or TransportError on network
                failure or an unreadable success body
        """
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"DriverDocs API unreachable: {method} {path}: {e}")
            raise TransportError(f"Could not reach the DriverDocs API: {e}")

        if response.is_success:
            try:
                body = response.json()
            except ValueError:
                logger.warning(f"DriverDocs API returned a non-JSON body: {method} {path} status={response.status_code}")
                raise TransportError(
                    "The DriverDocs API returned an unreadable response",
                    details={"status": response.status_code},
                )
            if isinstance(body, dict) and "data" in body:
                return body["data"]
            return body

        error = error_from_response(response)
        logger.warning(
            f"DriverDocs API error: {method} {path} status={response.status_code} error={error.error}"
        )
        raise error

    # --- documents ------------------------------------------------------------

    async def request_upload_grants(self, driver_id: str, files: list[dict]) -> list[dict]:
        """Phase 1: [{filename, contentType?, size?}] -> [{filename, key, uploadUrl, contentType, expiresAt}]"""
        return await self._request("POST", f"/documents/presigned-urls/{driver_id}", json={"files": files})

    async def create_document(
        self,
        driver_id: str,
        key: str,
        filename: str,
        content_type: Optional[str],
        size: int,
    ) -> dict:
        """Phase 3: record a stored upload"""
        return await self._request(
            "POST",
            f"/documents/{driver_id}",
            json={"key": key, "filename": filename, "contentType": content_type, "size": size},
        )

    async def list_driver_documents(self, driver_id: str) -> list[dict]:
        return await self._request("GET", f"/documents/driver/{driver_id}")

    async def update_document(self, document_id: str, details: dict) -> dict:
        return await self._request("PUT", f"/documents/{document_id}", json=details)

    async def delete_document(self, document_id: str) -> dict:
        return await self._request("DELETE", f"/documents/{document_id}")

    async def get_download_url(self, document_id: str) -> str:
        data = await self._request("GET", f"/documents/{document_id}/download-url")
        return data["url"]

    async def document_status(self, status: str = "all") -> dict:
        return await self._request("GET", "/documents/document-status", params={"status": status})

    async def get_credits(self) -> int:
        data = await self._request("GET", "/documents/credits")
        return int(data["credits"])

    async def scan_document(self, document_id: str) -> dict:
        """{documentId, success, documentType, extractedData, error, creditsUsed, creditsRemaining}"""
        return await self._request("POST", f"/documents/{document_id}/ai-scan")

    async def bulk_scan(self, document_ids: list[str]) -> BulkScanResult:
        data = await self._request("POST", "/documents/bulk-ai-scan", json={"documentIds": document_ids})
        return BulkScanResult(
            results=[
                ScanResult(
                    document_id=r["documentId"],
                    success=bool(r["success"]),
                    document_type=r.get("documentType"),
                    extracted_data=r.get("extractedData"),
                    error=r.get("error"),
                )
                for r in data["results"]
            ],
            total_credits_used=int(data["totalCreditsUsed"]),
            credits_remaining=int(data["creditsRemaining"]),
        )

    # --- drivers --------------------------------------------------------------

    async def create_driver(self, fields: dict) -> dict:
        return await self._request("POST", "/drivers", json=fields)

    async def list_drivers(self) -> list[dict]:
        return await self._request("GET", "/drivers")

    async def get_driver(self, driver_id: str) -> dict:
        return await self._request("GET", f"/drivers/{driver_id}")

    async def delete_driver(self, driver_id: str) -> dict:
        return await self._request("DELETE", f"/drivers/{driver_id}")

    # --- settings -------------------------------------------------------------

    async def list_document_types(self) -> list[dict]:
        return await self._request("GET", "/settings/document-types")
