"""SQLAlchemy Models for DriverDocs"""

from .base import Base
from .company import Company
from .driver import Driver
from .document_type import DocumentType
from .document import Document, DocumentStatus
from .credit import CreditAccount, CreditTransaction, CreditTransactionReason

__all__ = [
    "Base",
    "Company",
    "Driver",
    "DocumentType",
    "Document",
    "DocumentStatus",
    "CreditAccount",
    "CreditTransaction",
    "CreditTransactionReason",
]
