"""Error taxonomy shared by the API, the domain services and the client.

Four families, each with a different caller contract:

- ValidationError: local, detected before any network call (CSV rows,
  missing document fields, bad files). Report immediately.
- QuotaError: expected, recoverable limit conditions (credits, plan limits).
  Callers branch on it: stop a bulk import, disable AI scanning.
- TransportError: network or storage failure. Retry the failed phase or
  unit of work only; already-succeeded siblings stay untouched.
- PersistenceError: the server rejected a record create/update. Reported
  per item, never rolls back unrelated items.

Every class carries the `error` code and HTTP status used on the wire so the
FastAPI handlers and the httpx client map them symmetrically.
"""

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for DriverDocs domain errors"""

    error = "domain_error"
    status_code = 400

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.error, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


# --- Validation -------------------------------------------------------------

class ValidationError(DomainError):
    error = "validation_error"
    status_code = 422


class CsvImportError(ValidationError):
    """CSV is unreadable, misses columns, or has invalid rows"""
    error = "csv_invalid"


class DocumentValidationError(ValidationError):
    """Document details are missing required fields"""
    error = "document_invalid"

    def __init__(self, message: str, missing_fields: Optional[list[str]] = None):
        super().__init__(message, details={"missingFields": missing_fields or []})
        self.missing_fields = missing_fields or []


class FileValidationError(ValidationError):
    """Upload rejected for type, size or filename"""
    error = "file_invalid"


# --- Quota --------------------------------------------------------------------

class QuotaError(DomainError):
    error = "quota_exceeded"
    status_code = 403


class InsufficientCreditsError(QuotaError):
    error = "INSUFFICIENT_CREDITS"
    status_code = 402

    def __init__(self, required: int, available: int):
        super().__init__(
            f"Insufficient AI credits: {required} required, {available} available",
            details={"required": required, "available": available},
        )
        self.required = required
        self.available = available


class DriverLimitReachedError(QuotaError):
    error = "DRIVER_LIMIT_REACHED"


class DocumentLimitReachedError(QuotaError):
    error = "DOCUMENT_LIMIT_REACHED"


# --- Transport ----------------------------------------------------------------

class TransportError(DomainError):
    error = "transport_error"
    status_code = 502


class StorageError(TransportError):
    """Object storage unavailable or rejected the operation"""
    error = "storage_error"


class ExtractionUnavailableError(TransportError):
    """The extraction service could not be reached for any document"""
    error = "extraction_unavailable"
    status_code = 503


class UploadFailedError(TransportError):
    """Direct PUT to object storage failed (non-2xx or network)"""
    error = "upload_failed"


class UploadGrantExpiredError(TransportError):
    """Upload attempted with an expired grant; restart at grant request"""
    error = "upload_grant_expired"


class UploadCancelledError(TransportError):
    error = "upload_cancelled"


# --- Persistence -------------------------------------------------------------

class PersistenceError(DomainError):
    error = "persistence_error"
    status_code = 409


class UploadNotStoredError(PersistenceError):
    """Record creation requested for a key with no stored object"""
    error = "upload_not_stored"


class DuplicateError(PersistenceError):
    error = "duplicate"


class NotFoundError(DomainError):
    error = "not_found"
    status_code = 404


QUOTA_ERRORS_BY_CODE = {
    cls.error: cls
    for cls in (DriverLimitReachedError, DocumentLimitReachedError)
}


class WorkflowStateError(DomainError):
    """Operation not allowed in the workflow's current state"""
    error = "invalid_state"
    status_code = 409
