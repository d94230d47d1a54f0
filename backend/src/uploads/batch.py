"""Batch upload of driver documents through the three-phase protocol.

Each file moves through

    pending -> uploading -> uploaded | error

Grants for all pending files are requested in one call. Files then upload
and get recorded concurrently; a failure only affects its own file. A
failed file is retried alone from the grant request, since its grant may
have expired.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol
from uuid import uuid4

import httpx

from client.uploader import perform_upload
from domain.errors import DomainError, ValidationError, QuotaError, WorkflowStateError

logger = logging.getLogger(__name__)


class UploadState(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    ERROR = "error"


class UploadApi(Protocol):
    async def request_upload_grants(self, driver_id: str, files: list[dict]) -> list[dict]: ...

    async def create_document(
        self, driver_id: str, key: str, filename: str, content_type: Optional[str], size: int
    ) -> dict: ...


@dataclass
class UploadItem:
    """One file in the batch"""
    filename: str
    content: bytes = field(repr=False)
    content_type: Optional[str] = None
    id: str = field(default_factory=lambda: uuid4().hex)
    state: UploadState = UploadState.PENDING
    progress: int = 0
    error: Optional[str] = None
    document: Optional[dict] = None
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def size(self) -> int:
        return len(self.content)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "filename": self.filename,
            "state": self.state.value,
            "progress": self.progress,
            "error": self.error,
            "documentId": self.document.get("id") if self.document else None,
        }


class BatchUploader:
    """
    Uploads a batch of files for one driver.

    Args:
        api: DriverDocsClient (or anything with the same two methods)
        driver_id: Driver receiving the documents
        storage_http: Plain httpx client used for the presigned PUTs
    """

    def __init__(self, api: UploadApi, driver_id: str, storage_http: httpx.AsyncClient):
        self.api = api
        self.driver_id = driver_id
        self.storage_http = storage_http
        self.items: list[UploadItem] = []

    def add(self, filename: str, content: bytes, content_type: Optional[str] = None) -> UploadItem:
        item = UploadItem(filename=filename, content=content, content_type=content_type)
        self.items.append(item)
        return item

    def remove(self, item_id: str) -> None:
        """Drop a file that has not started uploading.

        Raises:
            WorkflowStateError: The file is no longer pending
        """
        item = self._get(item_id)
        if item.state != UploadState.PENDING:
            raise WorkflowStateError(f"Only pending files can be removed ({item.filename} is {item.state.value})")
        self.items.remove(item)

    def cancel(self, item_id: str) -> None:
        """Abort an in-flight upload"""
        self._get(item_id).cancel_event.set()

    @property
    def uploaded(self) -> list[UploadItem]:
        return [i for i in self.items if i.state == UploadState.UPLOADED]

    @property
    def failed(self) -> list[UploadItem]:
        return [i for i in self.items if i.state == UploadState.ERROR]

    async def upload_pending(self) -> list[UploadItem]:
        """Run all pending files through the protocol.

        Returns:
            The files that were attempted, with their final state

        Raises:
            ValidationError: Files rejected at grant time (marked error first)
            QuotaError: Document limit reached at grant time (marked error first)
        """
        batch = [i for i in self.items if i.state == UploadState.PENDING]
        if not batch:
            return []
        await self._run(batch)
        return batch

    async def retry(self, item_id: str) -> UploadItem:
        """Restart a failed file at the grant request.

        Only this file is granted and uploaded; other pending files stay pending.
        """
        item = self._get(item_id)
        if item.state != UploadState.ERROR:
            raise WorkflowStateError(f"Only failed files can be retried ({item.filename} is {item.state.value})")
        item.state = UploadState.PENDING
        item.error = None
        item.progress = 0
        item.cancel_event = asyncio.Event()
        await self._run([item])
        return item

    async def _run(self, batch: list[UploadItem]) -> None:
        try:
            grants = await self.api.request_upload_grants(
                self.driver_id,
                [{"filename": i.filename, "contentType": i.content_type, "size": i.size} for i in batch],
            )
        except (ValidationError, QuotaError) as e:
            for item in batch:
                self._fail(item, e.message)
            raise
        except DomainError as e:
            for item in batch:
                self._fail(item, e.message)
            return

        await asyncio.gather(*(self._upload_one(item, grant) for item, grant in zip(batch, grants)))
        logger.info(
            f"Upload batch finished: driver_id={self.driver_id}, "
            f"uploaded={sum(1 for i in batch if i.state == UploadState.UPLOADED)}, "
            f"failed={sum(1 for i in batch if i.state == UploadState.ERROR)}"
        )

    async def _upload_one(self, item: UploadItem, grant: dict[str, Any]) -> None:
        item.state = UploadState.UPLOADING

        def on_progress(sent: int, total: int) -> None:
            item.progress = 100 if total == 0 else int(sent * 100 / total)

        try:
            await perform_upload(
                self.storage_http,
                grant["uploadUrl"],
                item.content,
                content_type=grant.get("contentType") or item.content_type,
                expires_at=grant.get("expiresAt"),
                on_progress=on_progress,
                cancel_event=item.cancel_event,
            )
            item.document = await self.api.create_document(
                self.driver_id,
                key=grant["key"],
                filename=item.filename,
                content_type=grant.get("contentType") or item.content_type,
                size=item.size,
            )
        except DomainError as e:
            self._fail(item, e.message)
            return

        item.state = UploadState.UPLOADED
        item.progress = 100

    def _fail(self, item: UploadItem, message: str) -> None:
        item.state = UploadState.ERROR
        item.error = message
        logger.warning(f"Upload failed: driver_id={self.driver_id}, filename={item.filename}, error={message}")

    def _get(self, item_id: str) -> UploadItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise KeyError(item_id)
