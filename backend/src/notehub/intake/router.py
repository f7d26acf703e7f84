"""Upload endpoint for notes and question papers."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from ..auth.dependencies import CurrentContext
from ..database import get_db
from ..dependencies import get_storage, get_view_cache
from ..domain.results import OperationResult
from ..domain.storage.ports.object_storage_port import ObjectStoragePort
from ..infrastructure.cache.view_cache import ViewCache
from .service import SubmissionIntake

router = APIRouter(prefix="/resources", tags=["Submissions"])


def get_submission_intake(
    db: Session = Depends(get_db),
    storage: ObjectStoragePort = Depends(get_storage),
    cache: ViewCache = Depends(get_view_cache),
) -> SubmissionIntake:
    return SubmissionIntake(db, storage, cache)


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_resource(
    context: CurrentContext,
    intake: Annotated[SubmissionIntake, Depends(get_submission_intake)],
    file: Annotated[UploadFile, File(...)],
    kind: Annotated[str, Form(...)],
    title: Annotated[Optional[str], Form()] = None,
):
    """Submit a PDF for review.

    Example:
        curl -X POST /resources -H "Authorization: Bearer $TOKEN" \\
             -F "file=@dbms-unit-2.pdf;type=application/pdf" -F "kind=notes"
    """
    resource = await intake.submit(
        context,
        file.file,
        kind=kind,
        filename=file.filename,
        content_type=file.content_type,
        title=title,
    )
    return OperationResult.success(resource)
