"""File manager and storage/database reconciliation.

Blob and row are written and deleted in separate steps, so a crash or a
partial failure can leave:
- an orphan blob: a blob under ``pending/`` with no resource row
  (submit wrote the blob, the insert failed)
- a dangling row: a resource row whose blob is gone
  (reject or delete removed the blob, the row delete failed)

``sweep`` reports both. Orphans older than the grace period can be purged;
dangling rows are only reported and left for an admin to reject or delete.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, BinaryIO, Dict, List, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..audit.service import AuditAction, log_audit_event
from ..auth.roles import AuthContext, require_admin
from ..config import get_settings
from ..domain.errors import (
    Conflict,
    DuplicateContent,
    FieldValidationError,
    MetadataDeleteFailed,
    MetadataWriteFailed,
    NotFound,
    StorageDeleteFailed,
    StorageReadFailed,
    StorageWriteFailed,
)
from ..domain.resources import (
    ContentTooLarge,
    PDF_MIME_TYPE,
    content_problem,
    filename_problem,
    fingerprint_stream,
    is_supported_mime_type,
    sanitize_filename,
)
from ..domain.storage.ports.object_storage_port import ObjectStoragePort, StorageError, StoredFile
from ..infrastructure.cache.view_cache import MODERATION_NAMESPACE, SEARCH_NAMESPACE, ViewCache
from ..intake.service import UPLOAD_PREFIX
from ..models.resource import Resource
from ..observability.metrics import reconciliation_dangling_rows, reconciliation_orphan_blobs

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    orphan_blobs: List[str] = field(default_factory=list)
    dangling_rows: List[Dict[str, Any]] = field(default_factory=list)
    purged_blobs: List[str] = field(default_factory=list)
    purge_errors: List[Dict[str, str]] = field(default_factory=list)
    checked_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _is_upload_path(storage_path: str) -> bool:
    parts = storage_path.split("/")
    return (
        len(parts) == 3
        and parts[0] == UPLOAD_PREFIX
        and all(parts)
        and ".." not in parts
        and storage_path.lower().endswith(".pdf")
    )


def _as_aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class FileManager:
    """Admin file listing, hard delete, replacement and reconciliation."""

    def __init__(
        self,
        db: Session,
        storage: ObjectStoragePort,
        cache: Optional[ViewCache] = None,
        orphan_grace_seconds: Optional[int] = None,
    ):
        self.db = db
        self.storage = storage
        self.cache = cache
        self.orphan_grace_seconds = (
            orphan_grace_seconds if orphan_grace_seconds is not None else get_settings().ORPHAN_GRACE_SECONDS
        )

    async def _list_blobs(self) -> List[StoredFile]:
        try:
            blobs = await self.storage.list_files(f"{UPLOAD_PREFIX}/")
        except StorageError as e:
            logger.error(f"Blob listing failed: {e}")
            raise StorageReadFailed("Storage listing is temporarily unavailable")
        return [blob for blob in blobs if _is_upload_path(blob.storage_path)]

    async def list_files(self, context: AuthContext) -> List[Dict]:
        """Every uploaded blob, merged with its resource row where one exists."""
        require_admin(context)
        blobs = await self._list_blobs()

        paths = [blob.storage_path for blob in blobs]
        rows = {
            resource.storage_path: resource
            for resource in self.db.query(Resource).filter(Resource.storage_path.in_(paths)).all()
        } if paths else {}

        files = []
        for blob in sorted(blobs, key=lambda b: b.storage_path):
            resource = rows.get(blob.storage_path)
            files.append({
                "storage_path": blob.storage_path,
                "size_bytes": blob.size_bytes,
                "last_modified": blob.last_modified.isoformat() if blob.last_modified else None,
                "resource_id": str(resource.id) if resource else None,
                "title": resource.title if resource else None,
                "subject": resource.subject if resource else None,
                "status": resource.status.value if resource else None,
            })
        return files

    async def delete_file(self, context: AuthContext, storage_path: str) -> Dict:
        """Hard delete a blob and any resource row pointing at it.

        Works on published content. The blob is removed first; if that
        fails nothing is changed.

        Raises:
            Unauthorized, FieldValidationError, StorageDeleteFailed,
            MetadataDeleteFailed
        """
        admin = require_admin(context)
        if not _is_upload_path(storage_path or ""):
            raise FieldValidationError("Invalid storage path", fields={"storage_path": "not an uploaded file"})

        try:
            blob_existed = await self.storage.delete_file(storage_path)
        except StorageError as e:
            logger.error(f"Blob delete failed: storage_path={storage_path}, error={e}")
            raise StorageDeleteFailed("The file could not be deleted from storage. Please try again.")

        try:
            resource = self.db.query(Resource).filter(Resource.storage_path == storage_path).first()
            resource_id = resource.id if resource else None
            if resource is not None:
                self.db.delete(resource)
            log_audit_event(
                db=self.db,
                action=AuditAction.FILE_DELETED,
                actor_id=admin.id,
                entity_type="resource",
                entity_id=resource_id,
                metadata={"storage_path": storage_path, "blob_existed": blob_existed},
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Row delete failed after blob removal, dangling row left: storage_path={storage_path}, error={e}",
                extra={"storage_path": storage_path},
            )
            raise MetadataDeleteFailed("The file was removed but its record could not be deleted.")

        if self.cache:
            self.cache.invalidate(SEARCH_NAMESPACE, MODERATION_NAMESPACE)

        logger.info(f"File deleted by {admin.id}: {storage_path}", extra={"storage_path": storage_path})
        return {
            "storage_path": storage_path,
            "blob_deleted": blob_existed,
            "resource_id": str(resource_id) if resource_id else None,
        }

    async def replace_file(
        self,
        context: AuthContext,
        resource_id: UUID,
        stream: BinaryIO,
        filename: Optional[str],
        content_type: Optional[str],
    ) -> Dict:
        """Swap the PDF behind a resource, keeping its id, path and metadata.

        The new bytes get the same checks as a fresh upload and are written
        over the existing blob. The row then takes the new size and
        fingerprint. If that row update fails the blob has already been
        replaced, which is logged at ERROR.

        Raises:
            Unauthorized, NotFound, FieldValidationError, DuplicateContent,
            StorageWriteFailed, Conflict, MetadataWriteFailed
        """
        admin = require_admin(context)
        resource = self.db.get(Resource, resource_id)
        if resource is None:
            raise NotFound(f"Resource {resource_id} not found")

        problems: Dict[str, str] = {}
        name_error = filename_problem(filename) if filename is not None else None
        if name_error:
            problems["filename"] = name_error
        if not is_supported_mime_type(content_type):
            problems["content_type"] = "Only PDF files are accepted"
        if problems:
            raise FieldValidationError("Replacement rejected", fields=problems)

        max_size = get_settings().MAX_UPLOAD_SIZE_BYTES
        try:
            content = fingerprint_stream(stream, max_bytes=max_size)
        except ContentTooLarge as e:
            raise FieldValidationError("Replacement rejected", fields={"file": str(e)})
        error = content_problem(content.content, max_size)
        if error:
            raise FieldValidationError("Replacement rejected", fields={"file": error})

        duplicate = (
            self.db.query(Resource.id)
            .filter(Resource.content_fingerprint == content.fingerprint, Resource.id != resource.id)
            .first()
        )
        if duplicate is not None:
            raise DuplicateContent()

        storage_path = resource.storage_path
        previous = {"size_bytes": resource.size_bytes, "fingerprint": resource.content_fingerprint}
        try:
            await self.storage.store_file(storage_path, content.content, PDF_MIME_TYPE)
        except StorageError as e:
            logger.error(f"Blob replace failed: storage_path={storage_path}, error={e}", extra={"storage_path": storage_path})
            raise StorageWriteFailed("The file could not be replaced. Please try again.")

        values = {
            "content_fingerprint": content.fingerprint,
            "size_bytes": content.size_bytes,
            "updated_at": datetime.now(timezone.utc),
            "version": Resource.version + 1,
        }
        if filename is not None:
            values["original_filename"] = sanitize_filename(filename)
        stmt = (
            update(Resource)
            .where(Resource.id == resource.id, Resource.version == resource.version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        try:
            if self.db.execute(stmt).rowcount == 0:
                self.db.rollback()
                logger.error(
                    f"Resource {resource_id} changed while its blob was replaced, row size and fingerprint are stale",
                    extra={"resource_id": str(resource_id), "storage_path": storage_path},
                )
                raise Conflict(f"Resource {resource_id} was modified concurrently")
            log_audit_event(
                db=self.db,
                action=AuditAction.FILE_REPLACED,
                actor_id=admin.id,
                entity_type="resource",
                entity_id=resource.id,
                metadata={
                    "storage_path": storage_path,
                    "previous_size_bytes": previous["size_bytes"],
                    "size_bytes": content.size_bytes,
                    "previous_fingerprint": previous["fingerprint"],
                    "fingerprint": content.fingerprint,
                },
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Row update failed after blob replace, row size and fingerprint are stale: "
                f"storage_path={storage_path}, error={e}",
                extra={"resource_id": str(resource_id), "storage_path": storage_path},
            )
            raise MetadataWriteFailed("The file was replaced but its record could not be updated.")

        if self.cache:
            self.cache.invalidate(SEARCH_NAMESPACE, MODERATION_NAMESPACE)

        logger.info(
            f"File replaced by {admin.id}: {storage_path}",
            extra={"resource_id": str(resource_id), "storage_path": storage_path},
        )
        self.db.refresh(resource)
        return resource.to_dict()

    async def reconcile(self, context: AuthContext, purge_orphans: bool = False) -> Dict:
        admin = require_admin(context)
        report = await self.sweep(purge_orphans=purge_orphans)

        if report.purged_blobs:
            log_audit_event(
                db=self.db,
                action=AuditAction.ORPHANS_PURGED,
                actor_id=admin.id,
                metadata={"purged": report.purged_blobs},
            )
            self.db.commit()
        return report.to_dict()

    async def sweep(self, purge_orphans: bool = False) -> ReconciliationReport:
        """Compare the blob listing with resource rows.

        Runs without a caller so the scheduled task can use it.
        """
        now = datetime.now(timezone.utc)
        blobs = await self._list_blobs()
        blob_paths = {blob.storage_path for blob in blobs}

        rows = self.db.query(Resource.id, Resource.storage_path, Resource.status).all()
        row_paths = {row.storage_path for row in rows}

        report = ReconciliationReport(checked_at=now.isoformat())
        report.orphan_blobs = sorted(blob_paths - row_paths)
        report.dangling_rows = [
            {"resource_id": str(row.id), "storage_path": row.storage_path, "status": row.status.value}
            for row in rows
            if row.storage_path not in blob_paths
        ]

        if purge_orphans:
            cutoff = now - timedelta(seconds=self.orphan_grace_seconds)
            by_path = {blob.storage_path: blob for blob in blobs}
            for path in report.orphan_blobs:
                last_modified = _as_aware(by_path[path].last_modified)
                if last_modified is not None and last_modified > cutoff:
                    # May belong to an upload whose row insert is still in flight
                    continue
                try:
                    await self.storage.delete_file(path)
                    report.purged_blobs.append(path)
                except StorageError as e:
                    logger.warning(f"Orphan purge failed: storage_path={path}, error={e}")
                    report.purge_errors.append({"storage_path": path, "error": str(e)})

        reconciliation_orphan_blobs.set(len(report.orphan_blobs) - len(report.purged_blobs))
        reconciliation_dangling_rows.set(len(report.dangling_rows))

        for path in report.orphan_blobs:
            if path not in report.purged_blobs:
                logger.warning(f"Orphan blob: {path}", extra={"storage_path": path})
        for row in report.dangling_rows:
            logger.warning(
                f"Dangling resource row {row['resource_id']}: blob {row['storage_path']} is missing",
                extra={"resource_id": row["resource_id"], "storage_path": row["storage_path"]},
            )

        logger.info(
            f"Reconciliation finished: {len(report.orphan_blobs)} orphan blob(s), "
            f"{len(report.dangling_rows)} dangling row(s), {len(report.purged_blobs)} purged"
        )
        return report
