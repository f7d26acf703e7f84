"""Shared FastAPI dependencies for external collaborators.

Tests override these through ``app.dependency_overrides``.
"""

from functools import lru_cache

from .domain.storage.ports.object_storage_port import ObjectStoragePort
from .infrastructure.cache.view_cache import ViewCache, get_view_cache as _get_view_cache
from .infrastructure.storage.s3_storage_adapter import S3StorageAdapter
from .infrastructure.storage.storage_config import load_storage_config_from_env


@lru_cache()
def get_storage() -> ObjectStoragePort:
    """Object storage adapter configured from MINIO_* environment variables."""
    return S3StorageAdapter.from_config(load_storage_config_from_env())


def get_view_cache() -> ViewCache:
    return _get_view_cache()
