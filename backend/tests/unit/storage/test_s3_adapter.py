"""Unit tests for S3 Storage Adapter using moto

Tests cover store, delete (idempotent), exists, listing and presigned URLs
against a mocked S3 bucket.
"""

from unittest.mock import MagicMock
from uuid import UUID

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from notehub.domain.storage.ports.object_storage_port import StorageError, StoredFile
from notehub.infrastructure.storage.s3_storage_adapter import S3StorageAdapter
from notehub.infrastructure.storage.storage_config import StorageConfig, load_storage_config_from_env
from notehub.intake.service import build_storage_path

# Test constants
TEST_BUCKET = "test-notehub-bucket"
TEST_REGION = "us-east-1"
TEST_ACCESS_KEY = "test-access-key"
TEST_SECRET_KEY = "test-secret-key"
TEST_OWNER_ID = UUID("a1b2c3d4-e5f6-7890-abcd-ef1234567890")

PDF_CONTENT = b"%PDF-1.4\nlecture notes\n%%EOF\n"


@pytest.fixture
def storage_adapter():
    """S3StorageAdapter against a mocked bucket"""
    with mock_aws():
        s3_client = boto3.client(
            "s3",
            region_name=TEST_REGION,
            aws_access_key_id=TEST_ACCESS_KEY,
            aws_secret_access_key=TEST_SECRET_KEY,
        )
        s3_client.create_bucket(Bucket=TEST_BUCKET)

        adapter = S3StorageAdapter(
            endpoint_url=None,
            access_key=TEST_ACCESS_KEY,
            secret_key=TEST_SECRET_KEY,
            bucket_name=TEST_BUCKET,
            region=TEST_REGION,
        )

        yield adapter


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestStorageConfig:
    def test_minio_endpoint_from_env(self, monkeypatch):
        monkeypatch.setenv("MINIO_ENDPOINT", "minio:9000")
        monkeypatch.setenv("MINIO_USE_SSL", "true")
        monkeypatch.setenv("STORAGE_READ_TIMEOUT", "12")
        monkeypatch.delenv("MINIO_BUCKET", raising=False)

        config = load_storage_config_from_env()

        assert config.endpoint_url == "https://minio:9000"
        assert config.bucket_name == "notehub-files"
        assert config.read_timeout == 12

    def test_aws_when_no_endpoint(self, monkeypatch):
        monkeypatch.delenv("MINIO_ENDPOINT", raising=False)
        assert load_storage_config_from_env().endpoint_url is None

    def test_missing_credentials(self, monkeypatch):
        monkeypatch.delenv("MINIO_ROOT_PASSWORD", raising=False)

        with pytest.raises(ValueError, match="MINIO_ROOT_PASSWORD"):
            load_storage_config_from_env()

    def test_adapter_from_config(self):
        config = StorageConfig(
            endpoint_url=None,
            access_key=TEST_ACCESS_KEY,
            secret_key=TEST_SECRET_KEY,
            bucket_name=TEST_BUCKET,
            connect_timeout=7,
        )
        with mock_aws():
            adapter = S3StorageAdapter.from_config(config)

        assert adapter.bucket_name == TEST_BUCKET
        assert adapter.s3_client.meta.config.connect_timeout == 7


class TestS3AdapterInitialization:
    def test_adapter_with_minio_endpoint(self):
        with mock_aws():
            adapter = S3StorageAdapter(
                endpoint_url="http://localhost:9000",
                access_key=TEST_ACCESS_KEY,
                secret_key=TEST_SECRET_KEY,
                bucket_name=TEST_BUCKET,
                region=TEST_REGION,
            )
            assert adapter.bucket_name == TEST_BUCKET
            assert adapter.region == TEST_REGION

    @pytest.mark.asyncio
    async def test_verify_bucket_exists(self, storage_adapter):
        assert await storage_adapter.verify_bucket_exists() is True

    @pytest.mark.asyncio
    async def test_verify_missing_bucket(self, storage_adapter):
        storage_adapter.bucket_name = "no-such-bucket"
        with pytest.raises(StorageError, match="does not exist"):
            await storage_adapter.verify_bucket_exists()


class TestStoreFile:
    @pytest.mark.asyncio
    async def test_store_file_success(self, storage_adapter):
        path = build_storage_path(TEST_OWNER_ID)

        stored = await storage_adapter.store_file(path, PDF_CONTENT, "application/pdf")

        assert isinstance(stored, StoredFile)
        assert stored.storage_path == path
        assert stored.size_bytes == len(PDF_CONTENT)
        assert stored.mime_type == "application/pdf"

        body = storage_adapter.s3_client.get_object(Bucket=TEST_BUCKET, Key=path)["Body"].read()
        assert body == PDF_CONTENT

    @pytest.mark.asyncio
    async def test_storage_path_partitioned_by_owner(self, storage_adapter):
        path = build_storage_path(TEST_OWNER_ID)
        assert path.startswith(f"pending/{TEST_OWNER_ID}/")
        assert path.endswith(".pdf")

    @pytest.mark.asyncio
    async def test_store_failure_raises_storage_error(self, storage_adapter):
        storage_adapter.s3_client = MagicMock()
        storage_adapter.s3_client.put_object.side_effect = _client_error("InternalError", "PutObject")

        with pytest.raises(StorageError, match="InternalError"):
            await storage_adapter.store_file("pending/x/y.pdf", PDF_CONTENT, "application/pdf")


class TestDeleteFile:
    @pytest.mark.asyncio
    async def test_delete_existing_file(self, storage_adapter):
        path = build_storage_path(TEST_OWNER_ID)
        await storage_adapter.store_file(path, PDF_CONTENT, "application/pdf")

        assert await storage_adapter.delete_file(path) is True
        assert await storage_adapter.file_exists(path) is False

    @pytest.mark.asyncio
    async def test_delete_missing_file_is_noop(self, storage_adapter):
        assert await storage_adapter.delete_file("pending/nobody/missing.pdf") is False

    @pytest.mark.asyncio
    async def test_delete_failure_raises_storage_error(self, storage_adapter):
        storage_adapter.s3_client = MagicMock()
        storage_adapter.s3_client.delete_object.side_effect = _client_error("AccessDenied", "DeleteObject")

        with pytest.raises(StorageError, match="AccessDenied"):
            await storage_adapter.delete_file("pending/x/y.pdf")


class TestFileExists:
    @pytest.mark.asyncio
    async def test_exists(self, storage_adapter):
        path = build_storage_path(TEST_OWNER_ID)
        await storage_adapter.store_file(path, PDF_CONTENT, "application/pdf")
        assert await storage_adapter.file_exists(path) is True

    @pytest.mark.asyncio
    async def test_not_exists(self, storage_adapter):
        assert await storage_adapter.file_exists("pending/nobody/missing.pdf") is False

    @pytest.mark.asyncio
    async def test_non_404_error_is_not_treated_as_missing(self, storage_adapter):
        storage_adapter.s3_client = MagicMock()
        storage_adapter.s3_client.head_object.side_effect = _client_error("503", "HeadObject")

        with pytest.raises(StorageError):
            await storage_adapter.file_exists("pending/x/y.pdf")


class TestListFiles:
    @pytest.mark.asyncio
    async def test_list_by_prefix(self, storage_adapter):
        first = build_storage_path(TEST_OWNER_ID)
        second = build_storage_path(TEST_OWNER_ID)
        await storage_adapter.store_file(first, PDF_CONTENT, "application/pdf")
        await storage_adapter.store_file(second, PDF_CONTENT + b"2", "application/pdf")
        await storage_adapter.store_file("other/readme.pdf", PDF_CONTENT, "application/pdf")

        files = await storage_adapter.list_files("pending/")

        assert sorted(f.storage_path for f in files) == sorted([first, second])
        assert all(f.last_modified is not None for f in files)

    @pytest.mark.asyncio
    async def test_empty_listing(self, storage_adapter):
        assert await storage_adapter.list_files("pending/") == []


class TestPresignedUrl:
    @pytest.mark.asyncio
    async def test_generate_presigned_url(self, storage_adapter):
        path = build_storage_path(TEST_OWNER_ID)
        await storage_adapter.store_file(path, PDF_CONTENT, "application/pdf")

        url = await storage_adapter.generate_presigned_url(path, expires_in_seconds=900)

        assert TEST_BUCKET in url
        assert str(TEST_OWNER_ID) in url

    @pytest.mark.asyncio
    async def test_presigned_url_for_missing_file(self, storage_adapter):
        with pytest.raises(FileNotFoundError):
            await storage_adapter.generate_presigned_url("pending/nobody/missing.pdf")
