"""Object Storage Port - Domain interface for S3-compatible storage.

Document bytes never pass through the API: clients PUT them straight to
object storage with a presigned URL, and the API only confirms they landed
before recording a Document.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class StoredObject:
    """Metadata for an object found in storage.

    Attributes:
        storage_key: Object key
        size_bytes: Object size in bytes
        content_type: MIME type recorded by storage, if any
    """
    storage_key: str
    size_bytes: int
    content_type: Optional[str] = None


class ObjectStoragePort(ABC):
    """Port interface for S3-compatible object storage operations.

    Example Usage:
        storage = S3StorageAdapter(...)

        url = await storage.generate_presigned_upload_url(
            storage_key="drivers/<driver_id>/<uuid>-license.jpg",
            content_type="image/jpeg",
            expires_in_seconds=900,
        )
        # client PUTs the bytes to `url`
        stored = await storage.head_object("drivers/<driver_id>/<uuid>-license.jpg")
    """

    @abstractmethod
    async def generate_presigned_upload_url(
        self,
        storage_key: str,
        content_type: Optional[str],
        expires_in_seconds: int,
    ) -> str:
        """Generate a presigned URL allowing one direct PUT of storage_key.

        When content_type is given the signature binds it, so the client must
        send the same Content-Type header.

        Raises:
            StorageError: If URL generation fails
        """
        pass

    @abstractmethod
    async def generate_presigned_download_url(
        self,
        storage_key: str,
        expires_in_seconds: int = 3600,
    ) -> str:
        """Generate a presigned URL for direct download.

        Raises:
            FileNotFoundError: If the object doesn't exist
            StorageError: If URL generation fails
        """
        pass

    @abstractmethod
    async def head_object(self, storage_key: str) -> Optional[StoredObject]:
        """Return object metadata, or None if no object is stored at the key.

        Raises:
            StorageError: If storage cannot be reached
        """
        pass

    @abstractmethod
    async def delete_file(self, storage_key: str) -> bool:
        """Delete an object.

        Returns:
            bool: True if the object was deleted, False if it didn't exist

        Raises:
            StorageError: If deletion fails
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True if the bucket is reachable."""
        pass
