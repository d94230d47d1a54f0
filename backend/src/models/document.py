"""Document SQLAlchemy model

Document represents one uploaded compliance file (license, certificate)
belonging to a driver, plus the metadata entered manually or confirmed
after AI extraction.
"""

from uuid import uuid4

from sqlalchemy import Column, Text, ForeignKey, BigInteger, Date, DateTime, Uuid, Enum as SQLEnum, Index
from sqlalchemy.orm import relationship
import enum

from .base import Base, PortableJSONB, utcnow


class DocumentStatus(str, enum.Enum):
    """Persisted document status (the "raw" status).

    PENDING is set when the upload record is created. Reviewing and saving
    the document's details moves it to ACTIVE (or EXPIRED when the entered
    expiry date is already past). The effective, display status is computed
    by domain.documents.document_status.effective_status and never stored.
    """
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    ACTIVE = "ACTIVE"
    EXPIRING_SOON = "EXPIRING_SOON"
    EXPIRED = "EXPIRED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"


class Document(Base):
    """Document model representing a stored driver document.

    A row exists only for bytes confirmed in object storage. `type` is a
    free string expected to match a DocumentType name; it is not enforced.
    Dynamic DocumentType fields that have no dedicated column are kept in
    fields_json.
    """
    __tablename__ = "document"
    __table_args__ = (
        Index("ix_document_driver_id", "driver_id"),
        Index("ix_document_company_id", "company_id"),
        Index("uq_document_storage_key", "storage_key", unique=True),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    driver_id = Column(Uuid, ForeignKey("driver.id", ondelete="CASCADE"), nullable=False)
    company_id = Column(Uuid, ForeignKey("company.id", ondelete="CASCADE"), nullable=False)
    type = Column(Text, nullable=True)
    storage_key = Column(Text, nullable=False)
    filename = Column(Text, nullable=False)
    content_type = Column(Text, nullable=True)
    size_bytes = Column(BigInteger, nullable=False, default=0)
    document_number = Column(Text, nullable=True)
    issued_date = Column(Date, nullable=True)
    expiry_date = Column(Date, nullable=True)
    status = Column(
        SQLEnum(DocumentStatus, name="documentstatus"),
        nullable=False,
        default=DocumentStatus.PENDING,
    )
    notes = Column(Text, nullable=True)
    fields_json = Column(PortableJSONB, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    driver = relationship("Driver", back_populates="documents")

    def to_dict(self):
        """Convert document to dictionary representation"""
        return {
            "id": str(self.id),
            "driverId": str(self.driver_id),
            "type": self.type,
            "key": self.storage_key,
            "filename": self.filename,
            "contentType": self.content_type,
            "size": self.size_bytes,
            "documentNumber": self.document_number,
            "issuedDate": self.issued_date.isoformat() if self.issued_date else None,
            "expiryDate": self.expiry_date.isoformat() if self.expiry_date else None,
            "status": self.status.value if isinstance(self.status, enum.Enum) else self.status,
            "notes": self.notes,
            "fields": dict(self.fields_json or {}),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
