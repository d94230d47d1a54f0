"""DocumentType model - company-defined document category"""

from uuid import uuid4

from sqlalchemy import Column, Text, ForeignKey, DateTime, Uuid, Boolean, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, utcnow


class DocumentType(Base):
    """A required document category such as "License" or "Medical".

    fields_json holds the optional field schema used by edit forms, a list of
    {"name", "label", "type", "required", "options"} objects (see
    domain.document_types.field_schema). Deleting a type never rewrites the
    free-text `type` of existing documents.
    """
    __tablename__ = "document_type"
    __table_args__ = (
        UniqueConstraint("company_id", "name", name="uq_document_type_company_name"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, ForeignKey("company.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    fields_json = Column(PortableJSONB, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    ai_enabled = Column(Boolean, nullable=False, default=True)
    extraction_mode = Column(Text, nullable=False, default="fields")  # fields | classification-only
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    company = relationship("Company", back_populates="document_types")

    def __repr__(self):
        return f"<DocumentType(name='{self.name}', active={self.is_active})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "fields": list(self.fields_json or []),
            "isActive": bool(self.is_active),
            "aiEnabled": bool(self.ai_enabled),
            "extractionMode": self.extraction_mode,
            "position": self.position,
        }
