"""Driver model - an employee whose compliance documents are tracked"""

from uuid import uuid4

from sqlalchemy import Column, Text, ForeignKey, DateTime, Uuid, Index, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class Driver(Base):
    """Driver owned by a company.

    Documents are owned, not shared: deleting a driver deletes its documents
    (ORM cascade plus ON DELETE CASCADE on the foreign key).
    """
    __tablename__ = "driver"
    __table_args__ = (
        Index("ix_driver_company_id", "company_id"),
        UniqueConstraint("company_id", "employee_id", name="uq_driver_company_employee"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, ForeignKey("company.id", ondelete="CASCADE"), nullable=False)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    phone = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    employee_id = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    company = relationship("Company", back_populates="drivers")
    documents = relationship(
        "Document",
        back_populates="driver",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Document.created_at",
    )

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<Driver(id={self.id}, name='{self.name}')>"
