"""S3 Storage Adapter - Implementation of ObjectStoragePort using boto3.

Works against AWS S3 and MinIO. The boto3 client is synchronous; timeouts
and retries are owned by its botocore config.

Architecture: Hexagonal - Adapter implementation in infrastructure layer
"""

import logging
from io import BytesIO
from typing import List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from ...domain.storage.ports.object_storage_port import (
    ObjectStoragePort,
    StorageError,
    StoredFile,
)
from .storage_config import StorageConfig

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


class S3StorageAdapter(ObjectStoragePort):
    """S3-compatible storage adapter using boto3.

    Example:
        storage = S3StorageAdapter.from_config(load_storage_config_from_env())
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: str,
        secret_key: str,
        bucket_name: str,
        region: str = "us-east-1",
        connect_timeout: int = 5,
        read_timeout: int = 30,
        max_attempts: int = 3,
    ):
        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
                config=Config(
                    connect_timeout=connect_timeout,
                    read_timeout=read_timeout,
                    retries={"max_attempts": max_attempts, "mode": "standard"},
                ),
            )
            self.bucket_name = bucket_name
            self.region = region

            logger.info(
                f"Initialized S3 storage adapter: bucket={bucket_name}, "
                f"endpoint={endpoint_url or 'AWS S3'}, region={region}"
            )
        except NoCredentialsError as e:
            raise StorageError(f"Invalid S3 credentials: {e}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to initialize S3 client: {e}")

    @classmethod
    def from_config(cls, config: StorageConfig) -> "S3StorageAdapter":
        return cls(
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            bucket_name=config.bucket_name,
            region=config.region,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
            max_attempts=config.max_attempts,
        )

    async def store_file(self, storage_path: str, content: bytes, mime_type: str) -> StoredFile:
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=storage_path,
                Body=BytesIO(content),
                ContentType=mime_type,
            )
        except ClientError as e:
            logger.error(f"S3 upload failed: storage_path={storage_path}, error={_error_code(e)}")
            raise StorageError(f"Failed to upload file: {_error_code(e)}")
        except BotoCoreError as e:
            logger.error(f"S3 upload failed: storage_path={storage_path}, error={e}")
            raise StorageError(f"Failed to upload file: {e}")

        logger.info(f"Uploaded file: storage_path={storage_path}, size={len(content)}")
        return StoredFile(storage_path=storage_path, size_bytes=len(content), mime_type=mime_type)

    async def delete_file(self, storage_path: str) -> bool:
        if not await self.file_exists(storage_path):
            logger.info(f"File not found for deletion: storage_path={storage_path}")
            return False

        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=storage_path)
        except ClientError as e:
            logger.error(f"S3 deletion failed: storage_path={storage_path}, error={_error_code(e)}")
            raise StorageError(f"Failed to delete file: {_error_code(e)}")
        except BotoCoreError as e:
            logger.error(f"S3 deletion failed: storage_path={storage_path}, error={e}")
            raise StorageError(f"Failed to delete file: {e}")

        logger.info(f"Deleted file: storage_path={storage_path}")
        return True

    async def file_exists(self, storage_path: str) -> bool:
        """HEAD the blob.

        Raises:
            StorageError: For failures other than "not found", so a flaky
                store is never mistaken for a missing blob
        """
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=storage_path)
            return True
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return False
            logger.warning(f"Error checking file existence: storage_path={storage_path}, error={_error_code(e)}")
            raise StorageError(f"Failed to check file: {_error_code(e)}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to check file: {e}")

    async def list_files(self, prefix: str = "") -> List[StoredFile]:
        files: List[StoredFile] = []
        try:
            paginator = self.s3_client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                for obj in page.get("Contents", []):
                    files.append(StoredFile(
                        storage_path=obj["Key"],
                        size_bytes=obj.get("Size", 0),
                        last_modified=obj.get("LastModified"),
                    ))
        except ClientError as e:
            logger.error(f"S3 listing failed: prefix={prefix}, error={_error_code(e)}")
            raise StorageError(f"Failed to list files: {_error_code(e)}")
        except BotoCoreError as e:
            logger.error(f"S3 listing failed: prefix={prefix}, error={e}")
            raise StorageError(f"Failed to list files: {e}")

        return files

    async def generate_presigned_url(self, storage_path: str, expires_in_seconds: int = 3600) -> str:
        if not await self.file_exists(storage_path):
            raise FileNotFoundError(f"File not found: {storage_path}")

        try:
            url = self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": storage_path},
                ExpiresIn=expires_in_seconds,
            )
        except ClientError as e:
            logger.error(f"Presigned URL generation failed: storage_path={storage_path}, error={_error_code(e)}")
            raise StorageError(f"Failed to generate presigned URL: {_error_code(e)}")

        logger.info(f"Generated presigned URL: storage_path={storage_path}, expires_in={expires_in_seconds}s")
        return url

    async def verify_bucket_exists(self) -> bool:
        """Check the configured bucket exists.

        Raises:
            StorageError: If the bucket check fails or the bucket doesn't exist
        """
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise StorageError(
                    f"Bucket '{self.bucket_name}' does not exist. "
                    f"Create it first or update MINIO_BUCKET environment variable."
                )
            raise StorageError(f"Failed to verify bucket: {_error_code(e)}")

        logger.info(f"Verified bucket exists: {self.bucket_name}")
        return True
