"""Documents domain module - effective status, reminders, upload validation
"""

from .document_status import (
    DisplayStatus,
    DISPLAY_LABELS,
    effective_status,
    status_counts,
    days_until_expiry,
    as_date,
)
from .reminders import (
    parse_threshold,
    parse_thresholds,
    reminder_window_days,
    next_reminder_threshold,
)
from .validation import (
    SUPPORTED_MIME_TYPES,
    UNLIMITED,
    is_supported_file,
    guess_content_type,
    validate_file_size,
    validate_filename,
    sanitize_filename,
    validate_upload,
    get_plan_limit,
    can_upload_more_documents,
)

__all__ = [
    "DisplayStatus",
    "DISPLAY_LABELS",
    "effective_status",
    "status_counts",
    "days_until_expiry",
    "as_date",
    "parse_threshold",
    "parse_thresholds",
    "reminder_window_days",
    "next_reminder_threshold",
    "SUPPORTED_MIME_TYPES",
    "UNLIMITED",
    "is_supported_file",
    "guess_content_type",
    "validate_file_size",
    "validate_filename",
    "sanitize_filename",
    "validate_upload",
    "get_plan_limit",
    "can_upload_more_documents",
]
