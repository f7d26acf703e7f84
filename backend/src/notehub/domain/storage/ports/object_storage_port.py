"""Object Storage Port - Domain interface for S3-compatible storage.

Blobs are addressed by path only. Paths for uploads follow
``pending/{owner_id}/{uuid}.pdf`` and never change after the write, even
when the resource is approved.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional


class StorageError(Exception):
    """Raised by adapters when the object store rejects or fails an operation."""
    pass


@dataclass
class StoredFile:
    """Metadata for a blob in object storage.

    Attributes:
        storage_path: Path of the blob inside the bucket
        size_bytes: Blob size in bytes
        mime_type: Content type recorded at upload, if known
        last_modified: Time the object store last wrote the blob
    """
    storage_path: str
    size_bytes: int
    mime_type: Optional[str] = None
    last_modified: Optional[datetime] = None


class ObjectStoragePort(ABC):
    """Port interface for S3-compatible object storage operations.

    Implementations must make ``delete_file`` idempotent: deleting a blob
    that does not exist is not an error.

    Example Usage:
        storage = S3StorageAdapter(...)
        stored = await storage.store_file(
            storage_path="pending/<owner>/<uuid>.pdf",
            content=pdf_bytes,
            mime_type="application/pdf",
        )
        url = await storage.generate_presigned_url(stored.storage_path, 3600)
    """

    @abstractmethod
    async def store_file(self, storage_path: str, content: bytes, mime_type: str) -> StoredFile:
        """Write ``content`` at ``storage_path``.

        Raises:
            StorageError: If the upload fails or storage is unavailable
        """

    @abstractmethod
    async def delete_file(self, storage_path: str) -> bool:
        """Delete a blob.

        Returns:
            bool: True if the blob was deleted, False if it did not exist

        Raises:
            StorageError: If deletion fails
        """

    @abstractmethod
    async def file_exists(self, storage_path: str) -> bool:
        """Check if a blob exists (HEAD only)."""

    @abstractmethod
    async def list_files(self, prefix: str = "") -> List[StoredFile]:
        """List every blob whose path starts with ``prefix``.

        Raises:
            StorageError: If listing fails
        """

    @abstractmethod
    async def generate_presigned_url(self, storage_path: str, expires_in_seconds: int = 3600) -> str:
        """Generate a time-limited download URL.

        Raises:
            FileNotFoundError: If the blob doesn't exist
            StorageError: If URL generation fails
        """
