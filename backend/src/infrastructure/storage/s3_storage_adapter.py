"""S3 Storage Adapter - Implementation of ObjectStoragePort using boto3.

Works against AWS S3, MinIO and other S3-compatible services. Uploads and
downloads go directly between client and bucket through presigned URLs;
the adapter only signs URLs, inspects and deletes objects.

Architecture: Hexagonal - Adapter implementation in infrastructure layer
"""

import logging
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError, NoCredentialsError

from domain.documents.ports.object_storage_port import (
    ObjectStoragePort,
    StoredObject,
)
from domain.errors import StorageError

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class S3StorageAdapter(ObjectStoragePort):
    """S3-compatible storage adapter using boto3.

    Example:
        config = load_storage_config(get_settings())
        storage = S3StorageAdapter(
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            bucket_name=config.bucket_name,
            region=config.region,
        )

        url = await storage.generate_presigned_upload_url(
            "drivers/<driver_id>/<uuid>-license.jpg", "image/jpeg", 900
        )
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: str,
        secret_key: str,
        bucket_name: str,
        region: str = "us-east-1",
    ):
        """Initialize S3 storage adapter.

        Args:
            endpoint_url: S3 endpoint URL (None for AWS S3, URL for MinIO)
            access_key: S3 access key ID
            secret_key: S3 secret access key
            bucket_name: S3 bucket name
            region: AWS region (default: 'us-east-1')

        Raises:
            StorageError: If S3 client initialization fails
        """
        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
                config=Config(signature_version="s3v4"),
            )
            self.bucket_name = bucket_name
            self.region = region

            logger.info(
                f"Initialized S3 storage adapter: bucket={bucket_name}, "
                f"endpoint={endpoint_url or 'AWS S3'}, region={region}"
            )
        except NoCredentialsError as e:
            raise StorageError(f"Invalid S3 credentials: {e}")
        except Exception as e:
            raise StorageError(f"Failed to initialize S3 client: {e}")

    async def generate_presigned_upload_url(
        self,
        storage_key: str,
        content_type: Optional[str],
        expires_in_seconds: int,
    ) -> str:
        """Sign a PUT for storage_key.

        Raises:
            StorageError: If signing fails
        """
        params = {"Bucket": self.bucket_name, "Key": storage_key}
        if content_type:
            params["ContentType"] = content_type

        try:
            url = self.s3_client.generate_presigned_url(
                "put_object",
                Params=params,
                ExpiresIn=expires_in_seconds,
                HttpMethod="PUT",
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error(f"Presigned upload URL failed: storage_key={storage_key}, error={error_code}")
            raise StorageError(f"Failed to generate upload URL: {error_code}")

        logger.debug(f"Signed upload URL: storage_key={storage_key}, expires_in={expires_in_seconds}s")
        return url

    async def generate_presigned_download_url(
        self,
        storage_key: str,
        expires_in_seconds: int = 3600,
    ) -> str:
        """Generate a presigned URL for direct download.

        Raises:
            FileNotFoundError: If file doesn't exist
            StorageError: If URL generation fails
        """
        if await self.head_object(storage_key) is None:
            raise FileNotFoundError(f"File not found: {storage_key}")

        try:
            url = self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": storage_key},
                ExpiresIn=expires_in_seconds,
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error(
                f"Presigned URL generation failed: storage_key={storage_key}, "
                f"error={error_code}"
            )
            raise StorageError(f"Failed to generate presigned URL: {error_code}")

        return url

    async def head_object(self, storage_key: str) -> Optional[StoredObject]:
        """Look up object metadata with a HEAD request.

        Returns:
            StoredObject, or None if nothing is stored at the key

        Raises:
            StorageError: For any error other than not-found
        """
        try:
            response = self.s3_client.head_object(Bucket=self.bucket_name, Key=storage_key)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in NOT_FOUND_CODES:
                return None
            logger.error(f"S3 head_object failed: storage_key={storage_key}, error={error_code}")
            raise StorageError(f"Failed to inspect object: {error_code}")

        return StoredObject(
            storage_key=storage_key,
            size_bytes=int(response.get("ContentLength", 0)),
            content_type=response.get("ContentType"),
        )

    async def delete_file(self, storage_key: str) -> bool:
        """Delete a file from S3.

        Returns:
            bool: True if deleted, False if didn't exist

        Raises:
            StorageError: If deletion fails
        """
        if await self.head_object(storage_key) is None:
            logger.info(f"File not found for deletion: storage_key={storage_key}")
            return False

        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=storage_key)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error(f"S3 deletion failed: storage_key={storage_key}, error={error_code}")
            raise StorageError(f"Failed to delete file: {error_code}")

        logger.info(f"Deleted file: storage_key={storage_key}")
        return True

    async def health_check(self) -> bool:
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            return True
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.warning(f"Bucket check failed: bucket={self.bucket_name}, error={error_code}")
            return False
