"""Reminder thresholds and the expiring-soon window.

Companies configure reminder thresholds such as ["30d", "14d", "7d"]. The
expiring-soon window is the largest threshold: a document enters
EXPIRING_SOON when it crosses the first reminder it will receive.
"""

import re
from typing import Any, Iterable, Optional

_THRESHOLD_RE = re.compile(r"^\s*(\d+)\s*([dw]?)\s*$", re.IGNORECASE)


def parse_threshold(value: Any) -> Optional[int]:
    """Parse a threshold into days.

    Example:
        >>> parse_threshold("30d")
        30
        >>> parse_threshold("2w")
        14
        >>> parse_threshold(7)
        7
        >>> parse_threshold("soon") is None
        True
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    match = _THRESHOLD_RE.match(str(value))
    if not match:
        return None
    days = int(match.group(1))
    return days * 7 if match.group(2).lower() == "w" else days


def parse_thresholds(values: Iterable[Any]) -> list[int]:
    """Parse and de-duplicate thresholds, largest first. Invalid entries are skipped."""
    parsed = {days for days in (parse_threshold(v) for v in values or []) if days is not None}
    return sorted(parsed, reverse=True)


def reminder_window_days(settings_json: Optional[dict]) -> Optional[int]:
    """Expiring-soon window for a company, or None when no reminders are set.

    Read from settings_json["reminders"]["days"].
    """
    try:
        thresholds = parse_thresholds((settings_json or {}).get("reminders", {}).get("days", []))
    except (AttributeError, TypeError):
        return None
    return thresholds[0] if thresholds else None


def next_reminder_threshold(days_left: Optional[int], thresholds: Iterable[Any]) -> Optional[int]:
    """Nearest upcoming threshold for a document with days_left until expiry.

    This is the smallest threshold that is still >= days_left, i.e. the
    reminder the document is currently inside. None when the document has
    not reached any threshold yet, is already expired, or has no expiry.
    """
    if days_left is None or days_left < 0:
        return None
    reached = [t for t in parse_thresholds(thresholds) if t >= days_left]
    return min(reached) if reached else None
