"""Admin moderation endpoints: queue, approve, reject, preview, stats."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.dependencies import AdminContext
from ..config import get_settings
from ..database import get_db
from ..dependencies import get_storage, get_view_cache
from ..domain.results import OperationResult
from ..domain.storage.ports.object_storage_port import ObjectStoragePort
from ..infrastructure.cache.view_cache import ViewCache
from ..publication.router import get_publication_index
from ..publication.service import PublicationIndex
from .curation import CurationEngine
from .queue import ModerationQueue
from .schemas import CuratedFields

router = APIRouter(prefix="/admin", tags=["Moderation"])


def get_moderation_queue(
    db: Session = Depends(get_db),
    cache: ViewCache = Depends(get_view_cache),
) -> ModerationQueue:
    return ModerationQueue(db, cache)


def get_curation_engine(
    db: Session = Depends(get_db),
    storage: ObjectStoragePort = Depends(get_storage),
    cache: ViewCache = Depends(get_view_cache),
) -> CurationEngine:
    return CurationEngine(db, storage, cache)


@router.get("/moderation")
def list_pending(context: AdminContext, queue: Annotated[ModerationQueue, Depends(get_moderation_queue)]):
    return OperationResult.success(queue.list_pending(context))


@router.post("/moderation/{resource_id}/approve")
def approve_resource(
    resource_id: UUID,
    payload: CuratedFields,
    context: AdminContext,
    engine: Annotated[CurationEngine, Depends(get_curation_engine)],
):
    resource = engine.approve(context, resource_id, payload.curated(), expected_version=payload.expected_version)
    return OperationResult.success(resource)


@router.post("/moderation/{resource_id}/reject")
async def reject_resource(
    resource_id: UUID,
    context: AdminContext,
    engine: Annotated[CurationEngine, Depends(get_curation_engine)],
):
    outcome = await engine.reject(context, resource_id)
    return OperationResult.success(outcome.to_dict())


@router.get("/moderation/{resource_id}/preview")
async def preview_resource(
    resource_id: UUID,
    context: AdminContext,
    index: Annotated[PublicationIndex, Depends(get_publication_index)],
):
    """Signed URL for any resource, pending or approved."""
    url = await index.download_url(
        context, resource_id, get_settings().SIGNED_URL_TTL_SECONDS, include_unpublished=True
    )
    return OperationResult.success({"url": url})


@router.get("/stats")
def dashboard_stats(context: AdminContext, queue: Annotated[ModerationQueue, Depends(get_moderation_queue)]):
    return OperationResult.success(queue.stats(context))
