"""Compliance scoring for a driver's documents.

A required document type is satisfied when the driver has at least one
document of that type whose persisted status is ACTIVE and which has an
expiry date. The scorer trusts the stored ACTIVE status and does not
re-derive it from the expiry date.
"""

from typing import Any, Iterable, Optional

from models.document import DocumentStatus
from domain.documents.document_status import (
    DisplayStatus,
    DateLike,
    effective_status,
    as_date,
)


def _field(document: Any, attr: str, key: str) -> Any:
    if isinstance(document, dict):
        return document.get(attr, document.get(key))
    return getattr(document, attr, None)


def _unique(names: Iterable[str]) -> list[str]:
    seen = []
    for name in names:
        if name not in seen:
            seen.append(name)
    return seen


def counts_as_active(document: Any) -> bool:
    """True if the document can satisfy a required type.

    A document without an expiry date never counts, whatever its status.
    """
    raw = _field(document, "status", "status")
    raw_value = raw.value if isinstance(raw, DocumentStatus) else str(raw or "").upper()
    expiry = as_date(_field(document, "expiry_date", "expiryDate"))
    return raw_value == DocumentStatus.ACTIVE.value and expiry is not None


def satisfied_types(documents: Iterable[Any], required_types: Iterable[str]) -> list[str]:
    """Required type names that have at least one active document"""
    active_types = {
        _field(doc, "type", "type") for doc in documents if counts_as_active(doc)
    }
    return [name for name in _unique(required_types) if name in active_types]


def round_half_up_percent(numerator: int, denominator: int) -> int:
    """round(100 * numerator / denominator) with halves rounded up.

    Integer arithmetic, so 1/8 = 12.5% becomes 13 without float error.
    """
    return (200 * numerator + denominator) // (2 * denominator)


def compliance_score(documents: Iterable[Any], required_types: Iterable[str]) -> int:
    """Percentage (0-100) of required document types satisfied.

    Zero required types or zero documents score 0.

    Example:
        >>> docs = [{"type": "License", "status": "ACTIVE", "expiryDate": "2099-01-01"}]
        >>> compliance_score(docs, ["License", "Medical"])
        50
    """
    documents = list(documents)
    required = _unique(required_types)
    if not required or not documents:
        return 0
    return round_half_up_percent(len(satisfied_types(documents, required)), len(required))


def compliance_tier(score: int) -> str:
    """Badge colour for a score: green (81-100), yellow (51-80), red (0-50)"""
    if score >= 81:
        return "green"
    if score >= 51:
        return "yellow"
    return "red"


def type_column_statuses(
    documents: Iterable[Any],
    required_types: Iterable[str],
    now: DateLike,
    reminder_window_days: Optional[int] = None,
) -> dict[str, DisplayStatus]:
    """Effective status per required type, for driver table columns.

    Uses the first document of each type; a type with no document is PENDING.
    """
    documents = list(documents)
    columns = {}
    for name in _unique(required_types):
        doc = next((d for d in documents if _field(d, "type", "type") == name), None)
        columns[name] = (
            effective_status(doc, now, reminder_window_days) if doc is not None else DisplayStatus.PENDING
        )
    return columns


def driver_compliance_status(
    documents: Iterable[Any],
    now: DateLike,
    reminder_window_days: Optional[int] = None,
) -> str:
    """Overall driver state: No Documents, Critical, Warning or Compliant.

    Any expired document is Critical; any expiring, pending or processing
    document is Warning.
    """
    statuses = [effective_status(doc, now, reminder_window_days) for doc in documents]
    if not statuses:
        return "No Documents"
    if DisplayStatus.EXPIRED in statuses:
        return "Critical"
    if any(s is not DisplayStatus.ACTIVE for s in statuses):
        return "Warning"
    return "Compliant"
