"""Unit tests for S3 Storage Adapter using moto

Covers presigned upload/download URLs, object inspection, deletion and
the bucket health check against a mocked S3.
"""

from urllib.parse import parse_qs, urlparse

import boto3
import pytest
from moto import mock_aws

from domain.documents.ports.object_storage_port import StoredObject
from infrastructure.storage.s3_storage_adapter import S3StorageAdapter

TEST_BUCKET = "test-driverdocs-bucket"
TEST_REGION = "us-east-1"
TEST_ACCESS_KEY = "test-access-key"
TEST_SECRET_KEY = "test-secret-key"
TEST_KEY = "drivers/5b1f0c9e-2a4d-4a47-9d0e-1f6a1b7c2d3e/0f9e8d7c-license.jpg"


def make_adapter(bucket_name: str = TEST_BUCKET) -> S3StorageAdapter:
    return S3StorageAdapter(
        endpoint_url=None,  # AWS S3 (moto mocks this)
        access_key=TEST_ACCESS_KEY,
        secret_key=TEST_SECRET_KEY,
        bucket_name=bucket_name,
        region=TEST_REGION,
    )


@pytest.fixture
def storage_adapter():
    """S3StorageAdapter bound to a mocked bucket"""
    with mock_aws():
        s3_client = boto3.client(
            "s3",
            region_name=TEST_REGION,
            aws_access_key_id=TEST_ACCESS_KEY,
            aws_secret_access_key=TEST_SECRET_KEY,
        )
        s3_client.create_bucket(Bucket=TEST_BUCKET)
        yield make_adapter()


def put_object(adapter: S3StorageAdapter, key: str = TEST_KEY, body: bytes = b"\xff\xd8\xff\xe0jpeg"):
    adapter.s3_client.put_object(Bucket=TEST_BUCKET, Key=key, Body=body, ContentType="image/jpeg")


class TestS3AdapterInitialization:

    def test_adapter_creation_success(self):
        with mock_aws():
            adapter = make_adapter()
            assert adapter.bucket_name == TEST_BUCKET
            assert adapter.region == TEST_REGION

    def test_adapter_with_minio_endpoint(self):
        with mock_aws():
            adapter = S3StorageAdapter(
                endpoint_url="http://localhost:9000",
                access_key=TEST_ACCESS_KEY,
                secret_key=TEST_SECRET_KEY,
                bucket_name=TEST_BUCKET,
            )
            assert adapter.s3_client.meta.endpoint_url == "http://localhost:9000"


class TestPresignedUpload:

    async def test_signs_put_for_key(self, storage_adapter):
        url = await storage_adapter.generate_presigned_upload_url(TEST_KEY, "image/jpeg", 900)

        parsed = urlparse(url)
        assert parsed.path.endswith(TEST_KEY)
        assert parse_qs(parsed.query)["X-Amz-Expires"] == ["900"]

    async def test_signs_without_content_type(self, storage_adapter):
        url = await storage_adapter.generate_presigned_upload_url(TEST_KEY, None, 60)
        assert TEST_BUCKET in url

    async def test_signing_does_not_create_object(self, storage_adapter):
        await storage_adapter.generate_presigned_upload_url(TEST_KEY, "image/jpeg", 900)
        assert await storage_adapter.head_object(TEST_KEY) is None


class TestHeadObject:

    async def test_existing_object(self, storage_adapter):
        put_object(storage_adapter, body=b"12345")

        stored = await storage_adapter.head_object(TEST_KEY)

        assert stored == StoredObject(storage_key=TEST_KEY, size_bytes=5, content_type="image/jpeg")

    async def test_missing_object_returns_none(self, storage_adapter):
        assert await storage_adapter.head_object("drivers/none/missing.jpg") is None


class TestPresignedDownload:

    async def test_existing_object(self, storage_adapter):
        put_object(storage_adapter)

        url = await storage_adapter.generate_presigned_download_url(TEST_KEY, expires_in_seconds=120)

        assert parse_qs(urlparse(url).query)["X-Amz-Expires"] == ["120"]

    async def test_missing_object_raises(self, storage_adapter):
        with pytest.raises(FileNotFoundError):
            await storage_adapter.generate_presigned_download_url("drivers/none/missing.jpg")


class TestDeleteFile:

    async def test_delete_existing(self, storage_adapter):
        put_object(storage_adapter)

        assert await storage_adapter.delete_file(TEST_KEY) is True
        assert await storage_adapter.head_object(TEST_KEY) is None

    async def test_delete_missing_returns_false(self, storage_adapter):
        assert await storage_adapter.delete_file("drivers/none/missing.jpg") is False

    async def test_delete_twice(self, storage_adapter):
        put_object(storage_adapter)
        assert await storage_adapter.delete_file(TEST_KEY) is True
        assert await storage_adapter.delete_file(TEST_KEY) is False


class TestHealthCheck:

    async def test_bucket_exists(self, storage_adapter):
        assert await storage_adapter.health_check() is True

    async def test_missing_bucket(self):
        with mock_aws():
            adapter = make_adapter("no-such-bucket")
            assert await adapter.health_check() is False
