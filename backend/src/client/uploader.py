"""Phase 2 of the upload protocol: PUT the bytes straight to object storage.

The presigned URL carries the authorization, so no bearer token is sent.
The body is streamed in chunks; the progress callback runs after each chunk
and the cancel event is checked before each one.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Optional, Union

import httpx

from domain.errors import UploadCancelledError, UploadFailedError, UploadGrantExpiredError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 256 * 1024

ProgressFn = Callable[[int, int], None]


def parse_expires_at(value: Union[str, datetime, None]) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


async def _body(
    content: bytes,
    chunk_size: int,
    on_progress: Optional[ProgressFn],
    cancel_event: Optional[asyncio.Event],
) -> AsyncIterator[bytes]:
    total = len(content)
    sent = 0
    while sent < total:
        if cancel_event is not None and cancel_event.is_set():
            raise UploadCancelledError("Upload cancelled")
        chunk = content[sent:sent + chunk_size]
        yield chunk
        sent += len(chunk)
        if on_progress is not None:
            on_progress(sent, total)


async def perform_upload(
    http: httpx.AsyncClient,
    upload_url: str,
    content: bytes,
    content_type: Optional[str] = None,
    expires_at: Union[str, datetime, None] = None,
    on_progress: Optional[ProgressFn] = None,
    cancel_event: Optional[asyncio.Event] = None,
    chunk_size: int = CHUNK_SIZE,
) -> None:
    """
    Upload one file to its presigned URL.

    Args:
        http: Client without API credentials
        upload_url: Presigned PUT URL from the grant
        content: File bytes
        content_type: Sent as Content-Type only when known
        expires_at: Grant expiry; an expired grant fails before any bytes are sent
        on_progress: Called with (bytes_sent, total_bytes)
        cancel_event: Set it to abort the upload

    Raises:
        UploadGrantExpiredError: Grant already expired; request a new one
        UploadCancelledError: cancel_event was set
        UploadFailedError: Non-2xx response or network failure
    """
    deadline = parse_expires_at(expires_at)
    if deadline is not None and datetime.now(timezone.utc) >= deadline:
        raise UploadGrantExpiredError("Upload URL has expired. Request a new one.")
    if cancel_event is not None and cancel_event.is_set():
        raise UploadCancelledError("Upload cancelled")

    # Presigned S3 PUTs reject chunked transfer encoding
    headers = {"Content-Length": str(len(content))}
    if content_type:
        headers["Content-Type"] = content_type

    if not content and on_progress is not None:
        on_progress(0, 0)

    try:
        response = await http.put(
            upload_url,
            content=_body(content, chunk_size, on_progress, cancel_event),
            headers=headers,
        )
    except httpx.HTTPError as e:
        logger.warning(f"Direct upload failed: {e}")
        raise UploadFailedError(f"Upload failed: {e}")

    if not response.is_success:
        logger.warning(f"Direct upload rejected: status={response.status_code}")
        raise UploadFailedError(
            f"Storage rejected the upload (HTTP {response.status_code})",
            details={"status": response.status_code},
        )
