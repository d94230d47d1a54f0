"""Effective document status, computed from stored fields and the clock.

The persisted DocumentStatus is only an input here. effective_status never
writes anything back, so callers may run it on every render or poll.
"""

from collections import Counter
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, Optional, Union

from models.document import DocumentStatus

DateLike = Union[date, datetime, str, None]


class DisplayStatus(str, Enum):
    """Status shown to end users"""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    ACTIVE = "ACTIVE"
    EXPIRING_SOON = "EXPIRING_SOON"
    EXPIRED = "EXPIRED"

    @property
    def label(self) -> str:
        return DISPLAY_LABELS[self]


DISPLAY_LABELS = {
    DisplayStatus.PENDING: "Pending",
    DisplayStatus.PROCESSING: "Processing",
    DisplayStatus.ACTIVE: "Verified",
    DisplayStatus.EXPIRING_SOON: "Expiring Soon",
    DisplayStatus.EXPIRED: "Expired",
}

# Raw statuses that bypass expiry evaluation. REJECTED and FAILED both
# surface as Expired.
FIXED_DISPLAY_STATUS = {
    DocumentStatus.PROCESSING: DisplayStatus.PROCESSING,
    DocumentStatus.REJECTED: DisplayStatus.EXPIRED,
    DocumentStatus.FAILED: DisplayStatus.EXPIRED,
}


def as_date(value: DateLike) -> Optional[date]:
    """Normalize a date, datetime or ISO string to a date.

    Aware datetimes are converted to UTC first; naive ones are taken as UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return as_date(datetime.fromisoformat(text.replace("Z", "+00:00")))


def _raw_status(document: Any) -> Optional[DocumentStatus]:
    raw = document.get("status") if isinstance(document, dict) else getattr(document, "status", None)
    if raw is None or isinstance(raw, DocumentStatus):
        return raw
    try:
        return DocumentStatus(str(raw).upper())
    except ValueError:
        return None


def _expiry(document: Any) -> Optional[date]:
    if isinstance(document, dict):
        return as_date(document.get("expiry_date", document.get("expiryDate")))
    return as_date(getattr(document, "expiry_date", None))


def days_until_expiry(expiry_date: DateLike, today: DateLike) -> Optional[int]:
    """Whole days from today until expiry (negative once expired)"""
    expiry = as_date(expiry_date)
    if expiry is None:
        return None
    return (expiry - as_date(today)).days


def effective_status(
    document: Any,
    now: DateLike,
    reminder_window_days: Optional[int] = None,
) -> DisplayStatus:
    """Compute the display status of a document.

    Rules, first match wins:
    1. PROCESSING / REJECTED / FAILED map to a fixed display status.
    2. No expiry date: PENDING.
    3. Expiry before today: EXPIRED.
    4. Expiry within reminder_window_days: EXPIRING_SOON. With no window
       (the default) this rule never applies.
    5. Otherwise ACTIVE.

    Args:
        document: Document model, or a mapping with "status" and
            "expiry_date"/"expiryDate"
        now: Current time (date, datetime or ISO string)
        reminder_window_days: Size of the expiring-soon window in days

    Example:
        >>> effective_status({"status": "ACTIVE", "expiryDate": "2020-01-01"}, date(2024, 1, 1))
        <DisplayStatus.EXPIRED: 'EXPIRED'>
    """
    raw = _raw_status(document)
    if raw in FIXED_DISPLAY_STATUS:
        return FIXED_DISPLAY_STATUS[raw]

    expiry = _expiry(document)
    if expiry is None:
        return DisplayStatus.PENDING

    remaining = days_until_expiry(expiry, now)
    if remaining < 0:
        return DisplayStatus.EXPIRED
    if reminder_window_days is not None and remaining <= reminder_window_days:
        return DisplayStatus.EXPIRING_SOON
    return DisplayStatus.ACTIVE


def status_counts(
    documents: Iterable[Any],
    now: DateLike,
    reminder_window_days: Optional[int] = None,
) -> dict[str, int]:
    """Count documents per effective status.

    Returns:
        {"pending", "processing", "active", "expiring_soon", "expired", "total"}
    """
    counts = Counter(
        effective_status(doc, now, reminder_window_days) for doc in documents
    )
    result = {status.value.lower(): counts.get(status, 0) for status in DisplayStatus}
    result["total"] = sum(counts.values())
    return result


def utc_today() -> date:
    return datetime.now(timezone.utc).date()
