"""File validation utilities for document uploads
"""

import os
import re
from typing import Optional, Tuple


# Supported MIME types: driver documents are photographed or scanned images
SUPPORTED_MIME_TYPES = {
    'image/jpeg',
    'image/jpg',
    'image/png',
}

SUPPORTED_EXTENSIONS = {'.jpg', '.jpeg', '.png'}

EXTENSION_MIME_TYPES = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
}

UNLIMITED = -1


def is_supported_file(filename: str, mime_type: Optional[str]) -> bool:
    """Check if a file is accepted by MIME type or, failing that, extension

    Browsers do not always report a MIME type, so the extension is the
    fallback.

    Example:
        >>> is_supported_file('license.png', 'image/png')
        True
        >>> is_supported_file('license.JPG', '')
        True
        >>> is_supported_file('license.pdf', 'application/pdf')
        False
    """
    if mime_type and mime_type.lower() in SUPPORTED_MIME_TYPES:
        return True
    ext = os.path.splitext(filename or '')[1].lower()
    return ext in SUPPORTED_EXTENSIONS


def guess_content_type(filename: str, mime_type: Optional[str] = None) -> Optional[str]:
    """Return the given MIME type, or one derived from the extension, or None"""
    if mime_type:
        return mime_type
    return EXTENSION_MIME_TYPES.get(os.path.splitext(filename or '')[1].lower())


def validate_file_size(size_bytes: int, max_size: int) -> Tuple[bool, Optional[str]]:
    """Validate file size is within limits

    Args:
        size_bytes: File size in bytes
        max_size: Maximum allowed size

    Returns:
        Tuple of (is_valid, error_message)

    Example:
        >>> validate_file_size(1024, 10 * 1024 * 1024)
        (True, None)
        >>> validate_file_size(0, 1024)
        (False, 'File is empty (0 bytes)')
    """
    if size_bytes == 0:
        return False, "File is empty (0 bytes)"

    if size_bytes > max_size:
        size_mb = size_bytes / (1024 * 1024)
        max_mb = max_size / (1024 * 1024)
        return False, f"File size ({size_mb:.2f}MB) exceeds the maximum limit of {max_mb:.0f}MB"

    return True, None


def validate_filename(filename: str) -> Tuple[bool, Optional[str]]:
    """Validate filename

    Validation rules:
    - Not empty
    - Max 255 characters
    - No path traversal (../, ..\\)
    - No null bytes or control characters

    Example:
        >>> validate_filename('license.jpg')
        (True, None)
        >>> validate_filename('../../etc/passwd')
        (False, 'Filename contains path traversal or directory separators')
    """
    if not filename or len(filename.strip()) == 0:
        return False, "Filename cannot be empty"

    if len(filename) > 255:
        return False, f"Filename exceeds 255 characters (got {len(filename)})"

    if '..' in filename or '/' in filename or '\\' in filename:
        return False, "Filename contains path traversal or directory separators"

    if any(ord(c) < 32 for c in filename):
        return False, "Filename contains control characters"

    return True, None


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for use inside a storage key

    Example:
        >>> sanitize_filename('../../license.jpg')
        'license.jpg'
        >>> sanitize_filename('front side (1).png')
        'front_side_1_.png'
    """
    filename = os.path.basename(filename.replace('\\', '/'))
    filename = re.sub(r'[^\w\s.-]', '_', filename)
    filename = re.sub(r'[\s_]+', '_', filename)

    if len(filename) > 255:
        name, ext = os.path.splitext(filename)
        filename = name[:255 - len(ext)] + ext

    return filename or 'file'


def validate_upload(filename: str, mime_type: Optional[str], size_bytes: Optional[int], max_size: int) -> list[str]:
    """Collect every validation error for one file (empty list when valid)"""
    errors = []
    ok, message = validate_filename(filename)
    if not ok:
        errors.append(message)
    if not is_supported_file(filename, mime_type):
        errors.append("Invalid file type. Only JPG, JPEG, and PNG images are allowed.")
    if size_bytes is not None:
        ok, message = validate_file_size(size_bytes, max_size)
        if not ok:
            errors.append(message)
    return errors


def get_plan_limit(settings_json: Optional[dict], key: str) -> int:
    """Read a plan limit from company settings (-1 = unlimited).

    Read from settings_json["plan"][key]; a missing or unparsable value means unlimited.
    """
    try:
        value = (settings_json or {}).get("plan", {}).get(key, UNLIMITED)
        return int(value) if value is not None else UNLIMITED
    except (AttributeError, TypeError, ValueError):
        return UNLIMITED


def can_upload_more_documents(
    new_document_count: int,
    plan_limit: int,
    configured_type_count: int = 0,
) -> Tuple[bool, str, str]:
    """Check a driver's document count after an upload against limits

    Args:
        new_document_count: Documents the driver would have after the upload
        plan_limit: max_documents_per_driver from the plan (-1 = unlimited)
        configured_type_count: Number of active document types

    Returns:
        Tuple of (can_upload, reason, message); reason is one of
        'success', 'plan-limit', 'document-types'
    """
    if plan_limit != UNLIMITED and new_document_count > plan_limit:
        plural = 's' if plan_limit != 1 else ''
        return (
            False,
            'plan-limit',
            f"Your plan allows only {plan_limit} document{plural} per driver. "
            f"Please upgrade to be able to manage more documents.",
        )

    if configured_type_count > 0 and new_document_count > configured_type_count:
        plural = 's' if configured_type_count != 1 else ''
        return (
            False,
            'document-types',
            f"You have only configured {configured_type_count} document type{plural} in settings. "
            f"Please add more document types in Settings to upload more documents.",
        )

    return True, 'success', ''
