"""Document type catalogue service.

Active document types are the company's required types for compliance
scoring, so the number of active types is capped by the plan's
max_documents_per_driver.
"""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from domain.documents.validation import UNLIMITED, get_plan_limit
from domain.errors import DocumentLimitReachedError, DuplicateError, NotFoundError
from models.company import Company
from models.document_type import DocumentType
from .schemas import DocumentTypeCreate, DocumentTypeUpdate

logger = logging.getLogger(__name__)


class DocumentTypeService:
    """Company-scoped document type settings"""

    def __init__(self, db: Session, company_id: UUID):
        self.db = db
        self.company_id = company_id

    def list_types(self) -> list[DocumentType]:
        return list(self.db.execute(
            select(DocumentType)
            .where(DocumentType.company_id == self.company_id)
            .order_by(DocumentType.position, DocumentType.name)
        ).scalars().all())

    def get_type(self, name: str) -> DocumentType:
        doc_type = self._find(name)
        if doc_type is None:
            raise NotFoundError(f"Document type '{name}' not found")
        return doc_type

    def create_type(self, data: DocumentTypeCreate) -> DocumentType:
        """
        Raises:
            DuplicateError: Name already used in this company
            DocumentLimitReachedError: Creating an active type would exceed the plan
        """
        if self._find(data.name) is not None:
            raise DuplicateError(f"Document type '{data.name}' already exists")
        if data.is_active:
            self._check_active_limit()

        position = self.db.execute(
            select(func.coalesce(func.max(DocumentType.position) + 1, 0))
            .where(DocumentType.company_id == self.company_id)
        ).scalar_one()

        doc_type = DocumentType(
            company_id=self.company_id,
            name=data.name,
            description=data.description,
            fields_json=data.fields or [],
            is_active=data.is_active,
            ai_enabled=data.ai_enabled,
            extraction_mode=data.extraction_mode,
            position=position,
        )
        self.db.add(doc_type)
        self.db.commit()
        self.db.refresh(doc_type)
        logger.info(f"Document type created: company_id={self.company_id}, name={doc_type.name}")
        return doc_type

    def update_type(self, name: str, data: DocumentTypeUpdate) -> DocumentType:
        """Update a type. Renaming does not touch existing documents."""
        doc_type = self.get_type(name)
        updates = data.model_dump(exclude_unset=True)

        new_name = updates.pop("name", None)
        if new_name and new_name != doc_type.name:
            if self._find(new_name) is not None:
                raise DuplicateError(f"Document type '{new_name}' already exists")
            doc_type.name = new_name
        if "fields" in updates:
            doc_type.fields_json = updates.pop("fields") or []
        for attr, value in updates.items():
            if value is not None:
                setattr(doc_type, attr, value)

        self.db.commit()
        self.db.refresh(doc_type)
        logger.info(f"Document type updated: company_id={self.company_id}, name={doc_type.name}")
        return doc_type

    def delete_type(self, name: str) -> None:
        doc_type = self.get_type(name)
        self.db.delete(doc_type)
        self.db.commit()
        logger.info(f"Document type deleted: company_id={self.company_id}, name={name}")

    def toggle_active(self, name: str) -> DocumentType:
        """
        Flip is_active.

        Raises:
            DocumentLimitReachedError: Activating would exceed the plan limit
        """
        doc_type = self.get_type(name)
        if not doc_type.is_active:
            self._check_active_limit()
        doc_type.is_active = not doc_type.is_active
        self.db.commit()
        self.db.refresh(doc_type)
        logger.info(
            f"Document type toggled: company_id={self.company_id}, name={name}, active={doc_type.is_active}"
        )
        return doc_type

    def _find(self, name: str):
        return self.db.execute(
            select(DocumentType).where(
                DocumentType.company_id == self.company_id,
                DocumentType.name == name,
            )
        ).scalar_one_or_none()

    def _check_active_limit(self) -> None:
        company = self.db.get(Company, self.company_id)
        limit = get_plan_limit(company.settings_json if company else None, "max_documents_per_driver")
        if limit == UNLIMITED:
            return
        active = self.db.execute(
            select(func.count(DocumentType.id)).where(
                DocumentType.company_id == self.company_id,
                DocumentType.is_active.is_(True),
            )
        ).scalar_one()
        if active >= limit:
            plural = "s" if limit != 1 else ""
            raise DocumentLimitReachedError(
                f"Your plan allows only {limit} active document type{plural}. "
                f"Deactivate another type or upgrade your plan.",
                details={"reason": "plan-limit", "limit": limit, "current": active},
            )
