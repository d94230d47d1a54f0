"""Credit ledger models

One CreditAccount per company holds the AI-scan credit balance. Every
balance change writes a CreditTransaction in the same database transaction.
"""

import enum
from uuid import uuid4

from sqlalchemy import Column, Integer, Text, ForeignKey, DateTime, Uuid, CheckConstraint, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class CreditTransactionReason(str, enum.Enum):
    """Why a balance changed"""
    AI_SCAN = "AI_SCAN"          # Reservation for an extraction call
    AI_SCAN_REFUND = "AI_SCAN_REFUND"  # Unused part of a reservation returned
    PURCHASE = "PURCHASE"


class CreditAccount(Base):
    """Per-company AI-scan credit balance.

    The CHECK constraint is the storage-level floor; the ledger's conditional
    UPDATE never attempts to cross it.
    """
    __tablename__ = "credit_ledger"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_credit_ledger_balance_non_negative"),
    )

    company_id = Column(Uuid, ForeignKey("company.id", ondelete="CASCADE"), primary_key=True)
    balance = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    company = relationship("Company", back_populates="credit_account")

    def __repr__(self):
        return f"<CreditAccount(company_id={self.company_id}, balance={self.balance})>"


class CreditTransaction(Base):
    """Append-only record of credit balance changes"""
    __tablename__ = "credit_transaction"
    __table_args__ = (
        Index("ix_credit_transaction_company_id", "company_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, ForeignKey("company.id", ondelete="CASCADE"), nullable=False)
    delta = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)
    reason = Column(SQLEnum(CreditTransactionReason, name="credittransactionreason"), nullable=False)
    reference = Column(Text, nullable=True)  # e.g. comma-separated document ids
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
