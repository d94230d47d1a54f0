"""Document metadata service: reads with effective status, reviewed updates, deletion."""

import logging
from datetime import date
from typing import Any, Mapping, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from domain.document_types.field_schema import (
    DEFAULT_FIELDS,
    FieldSpec,
    FieldType,
    coerce_field_value,
    parse_schema,
    validate_required_fields,
)
from domain.documents.document_status import (
    DisplayStatus,
    days_until_expiry,
    effective_status,
    status_counts,
)
from domain.documents.ports.object_storage_port import ObjectStoragePort
from domain.documents.reminders import reminder_window_days
from domain.errors import DocumentValidationError, NotFoundError, StorageError, ValidationError
from models.company import Company
from models.document import Document, DocumentStatus
from models.document_type import DocumentType
from models.driver import Driver

logger = logging.getLogger(__name__)

# Wire name -> Document column
COLUMN_FIELDS = {
    "type": "type",
    "documentNumber": "document_number",
    "issuedDate": "issued_date",
    "expiryDate": "expiry_date",
    "notes": "notes",
}

# Never writable through the update endpoint
PROTECTED_FIELDS = {
    "id", "driverId", "companyId", "key", "filename", "contentType", "size",
    "status", "createdAt", "fields", "effectiveStatus", "statusLabel", "daysUntilExpiry",
}

STATUS_FILTERS = {
    "expired": {DisplayStatus.EXPIRED},
    "expiring": {DisplayStatus.EXPIRING_SOON},
    "active": {DisplayStatus.ACTIVE},
    "pending": {DisplayStatus.PENDING, DisplayStatus.PROCESSING},
}

_COLUMN_SPECS = {spec.name: spec for spec in DEFAULT_FIELDS}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


class DocumentService:
    """Company-scoped document operations"""

    def __init__(self, db: Session, company_id: UUID):
        self.db = db
        self.company_id = company_id

    @property
    def reminder_window(self) -> Optional[int]:
        company = self.db.get(Company, self.company_id)
        return reminder_window_days(company.settings_json if company else None)

    def get_document(self, document_id: UUID) -> Document:
        document = self.db.execute(
            select(Document).where(Document.id == document_id, Document.company_id == self.company_id)
        ).scalar_one_or_none()
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    def describe(self, document: Document, today: date, window: Optional[int]) -> dict:
        """Document dict plus its computed status fields"""
        status = effective_status(document, today, window)
        data = document.to_dict()
        data["effectiveStatus"] = status.value
        data["statusLabel"] = status.label
        data["daysUntilExpiry"] = days_until_expiry(document.expiry_date, today)
        return data

    def list_driver_documents(self, driver_id: UUID, today: date) -> list[dict]:
        driver = self.db.execute(
            select(Driver).where(Driver.id == driver_id, Driver.company_id == self.company_id)
        ).scalar_one_or_none()
        if driver is None:
            raise NotFoundError(f"Driver {driver_id} not found")
        window = self.reminder_window
        return [self.describe(doc, today, window) for doc in driver.documents]

    def document_status_view(self, status_filter: str, today: date) -> dict:
        """Company-wide documents filtered by effective status, plus counts.

        Args:
            status_filter: all | expired | expiring | active | pending
        """
        window = self.reminder_window
        documents = self.db.execute(
            select(Document)
            .where(Document.company_id == self.company_id)
            .options(selectinload(Document.driver))
            .order_by(Document.expiry_date.is_(None), Document.expiry_date)
        ).scalars().all()

        wanted = STATUS_FILTERS.get(status_filter)
        rows = []
        for doc in documents:
            data = self.describe(doc, today, window)
            if wanted is not None and DisplayStatus(data["effectiveStatus"]) not in wanted:
                continue
            data["driverName"] = doc.driver.name if doc.driver else None
            rows.append(data)

        return {"documents": rows, "counts": status_counts(documents, today, window)}

    def schema_for(self, type_name: Optional[str]) -> list[FieldSpec]:
        doc_type = self.db.execute(
            select(DocumentType).where(
                DocumentType.company_id == self.company_id,
                DocumentType.name == type_name,
            )
        ).scalar_one_or_none() if type_name else None
        return parse_schema(doc_type.fields_json if doc_type else None)

    def update_document(self, document_id: UUID, details: Mapping[str, Any], today: date) -> Document:
        """
        Persist reviewed details (manual entry or confirmed AI output).

        Known fields go to their columns; other fields are stored in
        fields_json, coerced by the document type's schema when it defines
        them. The raw status becomes ACTIVE, or EXPIRED when the expiry date
        is already past.

        Raises:
            NotFoundError: Unknown document
            DocumentValidationError: type, expiryDate or a required schema field missing
            ValidationError: A value cannot be coerced to its field type
        """
        document = self.get_document(document_id)
        schema = self.schema_for(details.get("type"))

        missing = []
        if _blank(details.get("type")):
            missing.append("Document Type")
        missing.extend(label for label in validate_required_fields(details, schema) if label not in missing)
        if _blank(details.get("expiryDate")) and "Expiry Date" not in missing:
            missing.append("Expiry Date")
        if missing:
            raise DocumentValidationError(
                f"Please fill in required fields: {', '.join(missing)}",
                missing_fields=missing,
            )

        specs = {spec.name: spec for spec in schema}
        extra = dict(document.fields_json or {})
        try:
            for name, value in details.items():
                if name in PROTECTED_FIELDS:
                    continue
                if name in COLUMN_FIELDS:
                    spec = _COLUMN_SPECS.get(name) or FieldSpec(name=name, label=name, type=FieldType.TEXT)
                    setattr(document, COLUMN_FIELDS[name], coerce_field_value(spec, value))
                elif name in specs:
                    coerced = coerce_field_value(specs[name], value)
                    extra[name] = coerced.isoformat() if isinstance(coerced, date) else coerced
                else:
                    extra[name] = value
        except ValueError as e:
            raise ValidationError(str(e))

        document.fields_json = extra
        document.status = (
            DocumentStatus.EXPIRED if document.expiry_date < today else DocumentStatus.ACTIVE
        )
        self.db.commit()
        self.db.refresh(document)

        logger.info(
            f"Document updated: company_id={self.company_id}, document_id={document.id}, "
            f"type={document.type}, status={document.status.value}"
        )
        return document

    async def delete_document(self, document_id: UUID, storage: ObjectStoragePort) -> None:
        """Delete the record, then the stored object.

        A failed object deletion leaves an orphaned object and is logged.
        """
        document = self.get_document(document_id)
        key = document.storage_key
        self.db.delete(document)
        self.db.commit()
        logger.info(f"Document deleted: company_id={self.company_id}, document_id={document_id}")

        try:
            await storage.delete_file(key)
        except StorageError as e:
            logger.warning(f"Stored object left behind: key={key}, error={e.message}")

    async def download_url(self, document_id: UUID, storage: ObjectStoragePort, expires_in: int) -> str:
        """
        Raises:
            NotFoundError: Unknown document or object missing from storage
        """
        document = self.get_document(document_id)
        try:
            return await storage.generate_presigned_download_url(document.storage_key, expires_in)
        except FileNotFoundError:
            raise NotFoundError(f"File for document {document_id} is missing from storage")
