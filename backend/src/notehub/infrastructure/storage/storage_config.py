"""Object storage settings read from the environment.

MinIO in development, AWS S3 in production. Leaving MINIO_ENDPOINT unset
selects the AWS regional endpoint.
"""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BUCKET = "notehub-files"


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class StorageConfig:
    """Connection and client limits for the uploads bucket.

    Timeouts and retries are handed to botocore; the portal itself never
    retries a storage call.
    """
    endpoint_url: Optional[str]
    access_key: str
    secret_key: str
    bucket_name: str = DEFAULT_BUCKET
    region: str = "us-east-1"
    connect_timeout: int = 5
    read_timeout: int = 30
    max_attempts: int = 3


def load_storage_config_from_env() -> StorageConfig:
    """Build a StorageConfig from MINIO_* / AWS_* / STORAGE_* variables.

    Raises:
        ValueError: If MINIO_ROOT_USER or MINIO_ROOT_PASSWORD is missing
    """
    access_key = os.getenv("MINIO_ROOT_USER")
    secret_key = os.getenv("MINIO_ROOT_PASSWORD")
    missing = [name for name, value in (("MINIO_ROOT_USER", access_key), ("MINIO_ROOT_PASSWORD", secret_key)) if not value]
    if missing:
        raise ValueError(f"Missing storage credentials: {', '.join(missing)}")

    endpoint = os.getenv("MINIO_ENDPOINT")
    endpoint_url = None
    if endpoint:
        scheme = "https" if _flag("MINIO_USE_SSL") else "http"
        endpoint_url = endpoint if "://" in endpoint else f"{scheme}://{endpoint}"

    return StorageConfig(
        endpoint_url=endpoint_url,
        access_key=access_key,
        secret_key=secret_key,
        bucket_name=os.getenv("MINIO_BUCKET", DEFAULT_BUCKET),
        region=os.getenv("AWS_REGION", "us-east-1"),
        connect_timeout=int(os.getenv("STORAGE_CONNECT_TIMEOUT", "5")),
        read_timeout=int(os.getenv("STORAGE_READ_TIMEOUT", "30")),
        max_attempts=int(os.getenv("STORAGE_MAX_ATTEMPTS", "3")),
    )
