"""Object storage domain interfaces"""

from .ports import ObjectStoragePort, StoredFile, StorageError

__all__ = ["ObjectStoragePort", "StoredFile", "StorageError"]
