"""Readiness checks for the portal's three collaborators.

The database is required: without it nothing can be listed, moderated or
uploaded. Object storage and the view cache only degrade the portal:
search keeps working without storage, and everything keeps working
(slower) without Redis.
"""

import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.storage.ports.object_storage_port import ObjectStoragePort, StorageError
from ..infrastructure.cache.view_cache import ViewCache
from .logging_config import get_logger

logger = get_logger(__name__)

# HEAD on a key that never exists; any answer proves the bucket is reachable
STORAGE_PROBE_PATH = "pending/.health"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def check_database_health(db: Session) -> ComponentHealth:
    started = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return ComponentHealth(HealthStatus.UNHEALTHY, f"Database error: {e}")
    return ComponentHealth(HealthStatus.HEALTHY, "Database connection OK", _elapsed_ms(started))


async def check_storage_health(storage: ObjectStoragePort) -> ComponentHealth:
    started = time.perf_counter()
    try:
        await storage.file_exists(STORAGE_PROBE_PATH)
    except StorageError as e:
        logger.warning(f"Object storage health check failed: {e}")
        return ComponentHealth(HealthStatus.DEGRADED, "Object storage unreachable, uploads and downloads unavailable")
    return ComponentHealth(HealthStatus.HEALTHY, "Object storage reachable", _elapsed_ms(started))


def check_cache_health(cache: ViewCache) -> ComponentHealth:
    if cache.available:
        return ComponentHealth(HealthStatus.HEALTHY, "Redis connection OK")
    return ComponentHealth(HealthStatus.DEGRADED, "Redis unavailable, view cache disabled")


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    statuses = {component.status for component in components.values()}
    for status in (HealthStatus.UNHEALTHY, HealthStatus.DEGRADED):
        if status in statuses:
            return status
    return HealthStatus.HEALTHY
