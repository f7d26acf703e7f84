"""Public search and download endpoints."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth.dependencies import OptionalContext
from ..config import get_settings
from ..database import get_db
from ..dependencies import get_storage, get_view_cache
from ..domain.results import OperationResult
from ..domain.storage.ports.object_storage_port import ObjectStoragePort
from ..infrastructure.cache.view_cache import ViewCache
from .service import PublicationIndex, SearchFilters

router = APIRouter(prefix="/resources", tags=["Publication"])


def get_publication_index(
    db: Session = Depends(get_db),
    storage: ObjectStoragePort = Depends(get_storage),
    cache: ViewCache = Depends(get_view_cache),
) -> PublicationIndex:
    return PublicationIndex(db, storage, cache)


@router.get("/search")
def search_resources(
    context: OptionalContext,
    index: Annotated[PublicationIndex, Depends(get_publication_index)],
    kind: str = Query(..., description="notes or pyq"),
    branch: Optional[str] = None,
    semester: Optional[str] = None,
    subject: Optional[str] = Query(None, description="Case-insensitive substring"),
):
    """Search published resources. Open to anonymous visitors; banned callers are refused."""
    filters = SearchFilters(branch=branch, semester=semester, subject=subject)
    return OperationResult.success(index.search(kind, filters))


@router.get("/{resource_id}/download")
async def download_resource(
    resource_id: UUID,
    context: OptionalContext,
    index: Annotated[PublicationIndex, Depends(get_publication_index)],
):
    url = await index.download_url(context, resource_id, get_settings().SIGNED_URL_TTL_SECONDS)
    return OperationResult.success({"url": url})
