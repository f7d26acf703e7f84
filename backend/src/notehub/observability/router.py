"""Health and Prometheus endpoints."""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_storage, get_view_cache
from ..domain.storage.ports.object_storage_port import ObjectStoragePort
from ..infrastructure.cache.view_cache import ViewCache
from .health import (
    HealthStatus,
    check_cache_health,
    check_database_health,
    check_storage_health,
    get_overall_health,
)

router = APIRouter(tags=["Observability"])


@router.get("/metrics", include_in_schema=False)
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/health")
async def health_check(
    db: Session = Depends(get_db),
    storage: ObjectStoragePort = Depends(get_storage),
    cache: ViewCache = Depends(get_view_cache),
):
    """200 while the database answers (possibly degraded), 503 otherwise."""
    components = {
        "database": check_database_health(db),
        "storage": await check_storage_health(storage),
        "cache": check_cache_health(cache),
    }
    overall = get_overall_health(components)

    return JSONResponse(
        status_code=503 if overall == HealthStatus.UNHEALTHY else 200,
        content={
            "status": overall.value,
            "components": {name: component.to_dict() for name, component in components.items()},
        },
    )
