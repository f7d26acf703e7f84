"""SubmissionIntake and DuplicateGuard.

Submit pipeline (first failure wins):
    validate → fingerprint → duplicate check → blob write → row insert

Storage is written before the database so that a row never points at a
blob that was never written. The reverse failure (blob written, insert
failed) leaves an orphan blob, logged at ERROR and picked up by
reconciliation.
"""

import logging
from typing import BinaryIO, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth.roles import AuthContext, require_identity
from ..config import get_settings
from ..domain.errors import (
    DuplicateContent,
    FieldValidationError,
    MetadataWriteFailed,
    StorageWriteFailed,
)
from ..domain.resources import (
    ContentTooLarge,
    PDF_MIME_TYPE,
    ResourceKind,
    ResourceStatus,
    SENTINEL_SUBJECT,
    content_problem,
    filename_problem,
    fingerprint_stream,
    is_supported_mime_type,
    sanitize_filename,
)
from ..domain.storage.ports.object_storage_port import ObjectStoragePort, StorageError
from ..infrastructure.cache.view_cache import MODERATION_NAMESPACE, ViewCache
from ..models.resource import Resource
from ..observability.metrics import uploads_total

logger = logging.getLogger(__name__)

UPLOAD_PREFIX = "pending"


def build_storage_path(owner_id: UUID, object_id: Optional[UUID] = None) -> str:
    """Object path for a new upload, partitioned by owner.

    Example:
        >>> build_storage_path(UUID(int=1), UUID(int=2))
        'pending/00000000-0000-0000-0000-000000000001/00000000-0000-0000-0000-000000000002.pdf'
    """
    return f"{UPLOAD_PREFIX}/{owner_id}/{object_id or uuid4()}.pdf"


class DuplicateGuard:
    """Content-level duplicate detection across every status.

    Rejected resources are physically deleted, so their fingerprints are
    gone and the same file can be submitted again.
    """

    def __init__(self, db: Session):
        self.db = db

    def check_duplicate(self, fingerprint: str) -> bool:
        return (
            self.db.query(Resource.id)
            .filter(Resource.content_fingerprint == fingerprint)
            .first()
        ) is not None


class SubmissionIntake:
    def __init__(
        self,
        db: Session,
        storage: ObjectStoragePort,
        cache: Optional[ViewCache] = None,
        max_size_bytes: Optional[int] = None,
    ):
        self.db = db
        self.storage = storage
        self.cache = cache
        self.max_size_bytes = max_size_bytes or get_settings().MAX_UPLOAD_SIZE_BYTES
        self.duplicates = DuplicateGuard(db)

    def _validate_request(self, kind: str, filename: Optional[str], content_type: Optional[str]) -> ResourceKind:
        problems: Dict[str, str] = {}

        try:
            parsed_kind = ResourceKind((kind or "").strip().lower())
        except ValueError:
            parsed_kind = None
            problems["kind"] = f"must be one of {[k.value for k in ResourceKind]}"

        error = filename_problem(filename)
        if error:
            problems["filename"] = error

        if not is_supported_mime_type(content_type):
            problems["content_type"] = "Only PDF files are accepted"

        if problems:
            raise FieldValidationError("Upload rejected", fields=problems)
        return parsed_kind

    async def submit(
        self,
        context: AuthContext,
        stream: BinaryIO,
        kind: str,
        filename: Optional[str],
        content_type: Optional[str],
        title: Optional[str] = None,
    ) -> Dict:
        """Accept an upload into the review queue.

        Returns:
            The created resource (status pending, subject "Pending Review")

        Raises:
            Unauthenticated: No caller
            FieldValidationError: Bad kind, filename, type, size or content
            DuplicateContent: Identical bytes already submitted
            StorageWriteFailed: Blob write failed (no row created)
            MetadataWriteFailed: Row insert failed (blob left for reconciliation)
        """
        owner = require_identity(context).identity

        try:
            parsed_kind = self._validate_request(kind, filename, content_type)
            try:
                content = fingerprint_stream(stream, max_bytes=self.max_size_bytes)
            except ContentTooLarge as e:
                raise FieldValidationError("Upload rejected", fields={"file": str(e)})

            error = content_problem(content.content, self.max_size_bytes)
            if error:
                raise FieldValidationError("Upload rejected", fields={"file": error})
        except FieldValidationError:
            kind_label = kind if kind in {k.value for k in ResourceKind} else "unknown"
            uploads_total.labels(kind=kind_label, outcome="invalid").inc()
            raise

        if self.duplicates.check_duplicate(content.fingerprint):
            uploads_total.labels(kind=parsed_kind.value, outcome="duplicate").inc()
            logger.info("Duplicate upload refused", extra={"fingerprint": content.fingerprint})
            raise DuplicateContent()

        storage_path = build_storage_path(owner.id)
        try:
            await self.storage.store_file(storage_path, content.content, PDF_MIME_TYPE)
        except StorageError as e:
            uploads_total.labels(kind=parsed_kind.value, outcome="storage_error").inc()
            logger.error(f"Blob write failed: storage_path={storage_path}, error={e}", extra={"storage_path": storage_path})
            raise StorageWriteFailed("Upload failed: the file could not be stored. Please try again.")

        resource = Resource(
            id=uuid4(),
            kind=parsed_kind,
            title=(title or "").strip() or None,
            subject=SENTINEL_SUBJECT,
            storage_path=storage_path,
            content_fingerprint=content.fingerprint,
            owner_id=owner.id,
            original_filename=sanitize_filename(filename),
            size_bytes=content.size_bytes,
            mime_type=PDF_MIME_TYPE,
            status=ResourceStatus.PENDING,
            version=1,
        )

        try:
            self.db.add(resource)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if self.duplicates.check_duplicate(content.fingerprint):
                # Lost a race with an identical concurrent upload
                await self._discard_blob(storage_path)
                uploads_total.labels(kind=parsed_kind.value, outcome="duplicate").inc()
                raise DuplicateContent()
            uploads_total.labels(kind=parsed_kind.value, outcome="metadata_error").inc()
            logger.error(
                f"Row insert failed, orphan blob left: storage_path={storage_path}, error={e}",
                extra={"storage_path": storage_path},
            )
            raise MetadataWriteFailed("Upload failed: the file could not be recorded. Please try again.")
        except SQLAlchemyError as e:
            self.db.rollback()
            uploads_total.labels(kind=parsed_kind.value, outcome="metadata_error").inc()
            logger.error(
                f"Row insert failed, orphan blob left: storage_path={storage_path}, error={e}",
                extra={"storage_path": storage_path},
            )
            raise MetadataWriteFailed("Upload failed: the file could not be recorded. Please try again.")

        if self.cache:
            self.cache.invalidate(MODERATION_NAMESPACE)

        uploads_total.labels(kind=parsed_kind.value, outcome="accepted").inc()
        logger.info(
            f"Accepted upload {resource.id} from {owner.id}",
            extra={"resource_id": str(resource.id), "storage_path": storage_path},
        )
        return resource.to_dict()

    async def _discard_blob(self, storage_path: str) -> None:
        try:
            await self.storage.delete_file(storage_path)
        except StorageError as e:
            logger.error(
                f"Could not remove blob of duplicate upload, orphan left: storage_path={storage_path}, error={e}",
                extra={"storage_path": storage_path},
            )
