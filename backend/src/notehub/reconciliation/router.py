"""Admin file manager and reconciliation endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from ..auth.dependencies import AdminContext
from ..database import get_db
from ..dependencies import get_storage, get_view_cache
from ..domain.results import OperationResult
from ..domain.storage.ports.object_storage_port import ObjectStoragePort
from ..infrastructure.cache.view_cache import ViewCache
from ..moderation.curation import CurationEngine
from ..moderation.router import get_curation_engine
from ..moderation.schemas import CuratedFields
from .service import FileManager

router = APIRouter(prefix="/admin", tags=["File Manager"])


def get_file_manager(
    db: Session = Depends(get_db),
    storage: ObjectStoragePort = Depends(get_storage),
    cache: ViewCache = Depends(get_view_cache),
) -> FileManager:
    return FileManager(db, storage, cache)


FileManagerDep = Annotated[FileManager, Depends(get_file_manager)]


@router.get("/files")
async def list_files(context: AdminContext, manager: FileManagerDep):
    return OperationResult.success(await manager.list_files(context))


@router.delete("/files")
async def delete_file(
    context: AdminContext,
    manager: FileManagerDep,
    storage_path: str = Query(..., description="pending/{owner_id}/{uuid}.pdf"),
):
    return OperationResult.success(await manager.delete_file(context, storage_path))


@router.put("/files/{resource_id}")
async def replace_file(
    resource_id: UUID,
    context: AdminContext,
    manager: FileManagerDep,
    file: Annotated[UploadFile, File(...)],
):
    """Upload a corrected PDF over an existing resource's file.

    Example:
        curl -X PUT /admin/files/$RESOURCE_ID -H "Authorization: Bearer $TOKEN" \\
             -F "file=@dbms-unit-2-fixed.pdf;type=application/pdf"
    """
    resource = await manager.replace_file(
        context, resource_id, file.file, filename=file.filename, content_type=file.content_type
    )
    return OperationResult.success(resource)


@router.patch("/files/{resource_id}")
def update_metadata(
    resource_id: UUID,
    payload: CuratedFields,
    context: AdminContext,
    engine: Annotated[CurationEngine, Depends(get_curation_engine)],
):
    resource = engine.update_metadata(
        context, resource_id, payload.curated(only_set=True), expected_version=payload.expected_version
    )
    return OperationResult.success(resource)


@router.post("/reconcile")
async def reconcile(context: AdminContext, manager: FileManagerDep, purge_orphans: bool = False):
    return OperationResult.success(await manager.reconcile(context, purge_orphans=purge_orphans))
