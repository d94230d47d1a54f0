"""Company model - Root entity for multi-tenant isolation"""

from uuid import uuid4

from sqlalchemy import Column, Text, DateTime, Uuid
from sqlalchemy.orm import validates, relationship

from .base import Base, PortableJSONB, utcnow


class Company(Base):
    """
    Company model - the tenant that employs drivers.

    Each company owns its drivers, its document type catalogue and one
    credit ledger. Plan limits and reminder thresholds live in settings_json:

        {
            "plan": {"max_drivers": 25, "max_documents_per_driver": 10},
            "reminders": {"days": ["30d", "14d", "7d"]}
        }

    A limit of -1 means unlimited.
    """
    __tablename__ = "company"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(Text, nullable=False)
    settings_json = Column(PortableJSONB, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    drivers = relationship("Driver", back_populates="company", cascade="all, delete-orphan")
    document_types = relationship(
        "DocumentType",
        back_populates="company",
        cascade="all, delete-orphan",
        order_by="DocumentType.position",
    )
    credit_account = relationship(
        "CreditAccount", back_populates="company", uselist=False, cascade="all, delete-orphan"
    )

    @validates('name')
    def validate_name(self, key, value):
        """
        Ensure company name is not empty and within length limits.

        Raises:
            ValueError: If name is empty/whitespace or exceeds 200 characters
        """
        if not value or len(value.strip()) == 0:
            raise ValueError("Company name cannot be empty")
        if len(value) > 200:
            raise ValueError("Company name cannot exceed 200 characters")
        return value.strip()

    @property
    def required_document_type_names(self) -> list[str]:
        """Names of active document types, in catalogue order."""
        return [dt.name for dt in self.document_types if dt.is_active]

    def __repr__(self):
        return f"<Company(id={self.id}, name='{self.name}')>"
