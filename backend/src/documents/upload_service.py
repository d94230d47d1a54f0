"""Object Upload Coordinator - server side of the three-phase upload protocol.

1. request_upload_grants: validate files and plan limits, issue presigned PUT
   URLs under keys drivers/{driver_id}/{random}-{filename}.
2. The client PUTs bytes straight to storage (client.uploader.perform_upload).
3. create_document_record: confirm the object exists with HEAD, then create
   the Document with status PENDING.

A Document row is only ever created for bytes confirmed in storage. Objects
whose record creation never happens are left in the bucket.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from config import Settings
from domain.documents.ports.object_storage_port import ObjectStoragePort
from domain.documents.validation import (
    can_upload_more_documents,
    get_plan_limit,
    guess_content_type,
    sanitize_filename,
    validate_upload,
)
from domain.errors import (
    DocumentLimitReachedError,
    DuplicateError,
    FileValidationError,
    NotFoundError,
    UploadNotStoredError,
)
from models.company import Company
from models.document import Document, DocumentStatus
from models.document_type import DocumentType
from models.driver import Driver
from observability.metrics import documents_created_total, upload_grants_total

logger = logging.getLogger(__name__)


@dataclass
class UploadGrant:
    """Presigned permission for one PUT"""
    filename: str
    key: str
    upload_url: str
    content_type: Optional[str]
    expires_at: datetime

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "key": self.key,
            "uploadUrl": self.upload_url,
            "contentType": self.content_type,
            "expiresAt": self.expires_at.isoformat(),
        }


def driver_key_prefix(driver_id: UUID) -> str:
    return f"drivers/{driver_id}/"


def build_storage_key(driver_id: UUID, filename: str) -> str:
    """drivers/{driver_id}/{uuid hex}-{sanitized filename}"""
    return f"{driver_key_prefix(driver_id)}{uuid4().hex}-{sanitize_filename(filename)}"


class ObjectUploadCoordinator:
    """Issues upload grants and records confirmed uploads for one company"""

    def __init__(self, db: Session, company_id: UUID, storage: ObjectStoragePort, settings: Settings):
        self.db = db
        self.company_id = company_id
        self.storage = storage
        self.settings = settings

    async def request_upload_grants(self, driver_id: UUID, files: list[dict]) -> list[UploadGrant]:
        """
        Phase 1: validate and sign one PUT per file.

        Args:
            driver_id: Driver the files belong to
            files: [{"filename", "contentType"?, "size"?}]

        Returns:
            One UploadGrant per file, in request order

        Raises:
            FileValidationError: Batch too large or any file invalid
            NotFoundError: Unknown driver
            DocumentLimitReachedError: Plan or document type limit exceeded
        """
        max_files = self.settings.MAX_UPLOAD_BATCH_FILES
        if len(files) > max_files:
            raise FileValidationError(f"You can upload at most {max_files} files at once")

        problems = []
        for item in files:
            errors = validate_upload(
                item.get("filename", ""),
                item.get("contentType"),
                item.get("size"),
                self.settings.MAX_UPLOAD_SIZE_BYTES,
            )
            if errors:
                problems.append({"filename": item.get("filename"), "errors": errors})
        if problems:
            raise FileValidationError(
                f"{len(problems)} file(s) cannot be uploaded",
                details={"files": problems},
            )

        driver = self._get_driver(driver_id)
        self._check_document_limit(driver, adding=len(files))

        ttl = self.settings.UPLOAD_URL_EXPIRE_SECONDS
        grants = []
        for item in files:
            filename = item["filename"]
            content_type = guess_content_type(filename, item.get("contentType"))
            key = build_storage_key(driver.id, filename)
            # Never later than the signed URL's own expiry
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
            url = await self.storage.generate_presigned_upload_url(key, content_type, ttl)
            grants.append(UploadGrant(
                filename=filename,
                key=key,
                upload_url=url,
                content_type=content_type,
                expires_at=expires_at,
            ))

        upload_grants_total.inc(len(grants))
        logger.info(
            f"Issued upload grants: company_id={self.company_id}, driver_id={driver_id}, "
            f"count={len(grants)}, ttl={ttl}s"
        )
        return grants

    async def create_document_record(
        self,
        driver_id: UUID,
        key: str,
        filename: str,
        content_type: Optional[str] = None,
        size: int = 0,
    ) -> Document:
        """
        Phase 3: record a stored upload as a PENDING Document.

        Raises:
            NotFoundError: Unknown driver
            FileValidationError: Key outside the driver's prefix
            DuplicateError: Key already recorded
            UploadNotStoredError: Nothing stored under the key
            DocumentLimitReachedError: Plan or document type limit exceeded
        """
        driver = self._get_driver(driver_id)

        if not key.startswith(driver_key_prefix(driver.id)):
            raise FileValidationError("Storage key does not belong to this driver")

        existing = self.db.execute(
            select(Document.id).where(Document.storage_key == key)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateError(f"A document is already recorded for key {key}")

        stored = await self.storage.head_object(key)
        if stored is None:
            logger.warning(f"Record requested for missing object: driver_id={driver_id}, key={key}")
            raise UploadNotStoredError("The file was not found in storage. Upload it again.")

        self._check_document_limit(driver, adding=1)

        document = Document(
            driver_id=driver.id,
            company_id=self.company_id,
            storage_key=key,
            filename=filename,
            content_type=content_type or stored.content_type or guess_content_type(filename),
            size_bytes=stored.size_bytes or size,
            status=DocumentStatus.PENDING,
            fields_json={},
        )
        self.db.add(document)
        self.db.commit()
        self.db.refresh(document)

        documents_created_total.inc()
        logger.info(
            f"Document recorded: company_id={self.company_id}, driver_id={driver_id}, "
            f"document_id={document.id}, size={document.size_bytes}"
        )
        return document

    def _get_driver(self, driver_id: UUID) -> Driver:
        driver = self.db.execute(
            select(Driver).where(Driver.id == driver_id, Driver.company_id == self.company_id)
        ).scalar_one_or_none()
        if driver is None:
            raise NotFoundError(f"Driver {driver_id} not found")
        return driver

    def _check_document_limit(self, driver: Driver, adding: int) -> None:
        company = self.db.get(Company, self.company_id)
        current = self.db.execute(
            select(func.count(Document.id)).where(Document.driver_id == driver.id)
        ).scalar_one()
        active_types = self.db.execute(
            select(func.count(DocumentType.id)).where(
                DocumentType.company_id == self.company_id,
                DocumentType.is_active.is_(True),
            )
        ).scalar_one()
        plan_limit = get_plan_limit(company.settings_json if company else None, "max_documents_per_driver")

        ok, reason, message = can_upload_more_documents(current + adding, plan_limit, active_types)
        if not ok:
            raise DocumentLimitReachedError(
                message,
                details={"reason": reason, "current": current, "adding": adding},
            )
