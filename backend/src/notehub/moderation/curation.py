"""CurationEngine: the only code that changes a resource's status.

    approve: pending → approved, with admin-corrected metadata
    reject:  pending → deleted (blob first, then row)

Both are terminal. Approved content is removed through the file manager's
hard delete, never through reject.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..audit.service import AuditAction, log_audit_event
from ..auth.roles import AuthContext, require_admin
from ..domain.errors import (
    Conflict,
    FieldValidationError,
    InvalidTransition,
    MetadataDeleteFailed,
    MetadataWriteFailed,
    NotFound,
)
from ..domain.resources import (
    ExamType,
    ModerationAction,
    ResourceKind,
    ResourceStatus,
    SemesterType,
    find_curation_problems,
    validate_action,
)
from ..domain.storage.ports.object_storage_port import ObjectStoragePort, StorageError
from ..infrastructure.cache.view_cache import MODERATION_NAMESPACE, SEARCH_NAMESPACE, ViewCache
from ..models.resource import Resource
from ..observability.metrics import moderation_decisions_total, storage_soft_failures_total

logger = logging.getLogger(__name__)

DESCRIPTIVE_FIELDS = ("title", "subject", "course", "branch", "semester")
PYQ_VALUE_FIELDS = ("exam_type", "academic_year", "semester_type")


@dataclass
class RejectionOutcome:
    """What a reject actually did.

    ``blob_deleted`` is False when the storage delete failed; the row is
    gone regardless and ``storage_error`` says why the blob may linger.
    """
    resource_id: str
    storage_path: str
    blob_deleted: bool
    storage_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _clean(fields: Mapping[str, Any]) -> Dict[str, Optional[str]]:
    cleaned = {}
    for name in DESCRIPTIVE_FIELDS + PYQ_VALUE_FIELDS:
        value = fields.get(name)
        if value is None:
            cleaned[name] = None
            continue
        value = str(value.value if hasattr(value, "value") else value).strip()
        cleaned[name] = value or None
    for name in ("exam_type", "semester_type"):
        if cleaned[name]:
            cleaned[name] = cleaned[name].lower()
    return cleaned


def _column_values(kind: ResourceKind, cleaned: Dict[str, Optional[str]]) -> Dict[str, Any]:
    values: Dict[str, Any] = {name: cleaned[name] for name in DESCRIPTIVE_FIELDS}
    if kind == ResourceKind.PYQ:
        values["exam_type"] = ExamType(cleaned["exam_type"])
        values["academic_year"] = cleaned["academic_year"]
        values["semester_type"] = SemesterType(cleaned["semester_type"])
    else:
        values["exam_type"] = None
        values["academic_year"] = None
        values["semester_type"] = None
    return values


class CurationEngine:
    def __init__(self, db: Session, storage: ObjectStoragePort, cache: Optional[ViewCache] = None):
        self.db = db
        self.storage = storage
        self.cache = cache

    def _get(self, resource_id: UUID, lock: bool = False) -> Resource:
        resource = self.db.get(Resource, resource_id, with_for_update=lock)
        if resource is None:
            raise NotFound(f"Resource {resource_id} not found")
        return resource

    def _validated_values(self, kind: ResourceKind, fields: Mapping[str, Any]) -> Dict[str, Any]:
        cleaned = _clean(fields)
        problems = find_curation_problems(kind, cleaned)
        if problems:
            raise FieldValidationError("Missing or invalid curated fields", fields=problems)
        return _column_values(ResourceKind(kind), cleaned)

    def _invalidate_views(self) -> None:
        if self.cache:
            self.cache.invalidate(SEARCH_NAMESPACE, MODERATION_NAMESPACE)

    def approve(
        self,
        context: AuthContext,
        resource_id: UUID,
        corrected_fields: Mapping[str, Any],
        expected_version: Optional[int] = None,
    ) -> Dict:
        """Publish a pending resource with admin-corrected metadata.

        The write is a compare-and-swap on ``status='pending'`` (and on
        ``version`` when ``expected_version`` is given), so of two
        concurrent approvals exactly one succeeds.

        Raises:
            Unauthorized, NotFound, InvalidTransition, FieldValidationError,
            Conflict, MetadataWriteFailed
        """
        admin = require_admin(context)
        resource = self._get(resource_id)

        try:
            validate_action(resource.status, ModerationAction.APPROVE)
        except InvalidTransition:
            moderation_decisions_total.labels(action="approve", outcome="invalid").inc()
            raise

        values = self._validated_values(resource.kind, corrected_fields)

        now = datetime.now(timezone.utc)
        stmt = (
            update(Resource)
            .where(Resource.id == resource.id, Resource.status == ResourceStatus.PENDING)
            .values(
                status=ResourceStatus.APPROVED,
                approved_by=admin.id,
                approved_at=now,
                updated_at=now,
                version=Resource.version + 1,
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        if expected_version is not None:
            stmt = stmt.where(Resource.version == expected_version)

        try:
            result = self.db.execute(stmt)
            if result.rowcount == 0:
                self.db.rollback()
                moderation_decisions_total.labels(action="approve", outcome="conflict").inc()
                raise Conflict(f"Resource {resource_id} was modified by another reviewer")

            log_audit_event(
                db=self.db,
                action=AuditAction.RESOURCE_APPROVED,
                actor_id=admin.id,
                entity_type="resource",
                entity_id=resource.id,
                metadata={"title": values["title"], "subject": values["subject"], "kind": resource.kind.value},
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            moderation_decisions_total.labels(action="approve", outcome="error").inc()
            logger.error(f"Approve failed for {resource_id}: {e}", extra={"resource_id": str(resource_id)})
            raise MetadataWriteFailed("Approval could not be saved. Please try again.")

        self._invalidate_views()
        moderation_decisions_total.labels(action="approve", outcome="success").inc()
        logger.info(f"Resource {resource_id} approved by {admin.id}", extra={"resource_id": str(resource_id)})

        self.db.refresh(resource)
        return resource.to_dict()

    async def reject(self, context: AuthContext, resource_id: UUID) -> RejectionOutcome:
        """Delete a pending resource: blob first, then row.

        A failed blob delete is logged and reported in the outcome but does
        not stop the row delete. A failed row delete is surfaced.

        Raises:
            Unauthorized, NotFound, InvalidTransition, Conflict,
            MetadataDeleteFailed
        """
        admin = require_admin(context)
        # Row lock held across the blob delete so a concurrent approve waits
        resource = self._get(resource_id, lock=True)

        try:
            validate_action(resource.status, ModerationAction.REJECT)
        except InvalidTransition:
            moderation_decisions_total.labels(action="reject", outcome="invalid").inc()
            raise

        storage_path = resource.storage_path
        snapshot = {"title": resource.title, "owner_id": str(resource.owner_id), "storage_path": storage_path}

        outcome = RejectionOutcome(resource_id=str(resource.id), storage_path=storage_path, blob_deleted=False)
        try:
            await self.storage.delete_file(storage_path)
            outcome.blob_deleted = True
        except StorageError as e:
            outcome.storage_error = str(e)
            storage_soft_failures_total.labels(operation="reject").inc()
            logger.warning(
                f"StorageDeleteFailed while rejecting {resource_id}, continuing with row delete: {e}",
                extra={"resource_id": str(resource_id), "storage_path": storage_path},
            )

        try:
            deleted = (
                self.db.query(Resource)
                .filter(Resource.id == resource.id, Resource.status == ResourceStatus.PENDING)
                .delete(synchronize_session=False)
            )
            if deleted == 0:
                self.db.rollback()
                moderation_decisions_total.labels(action="reject", outcome="conflict").inc()
                if outcome.blob_deleted:
                    logger.error(
                        f"Resource {resource_id} changed state after its blob was deleted, row now has no file",
                        extra={"resource_id": str(resource_id), "storage_path": storage_path},
                    )
                    self._invalidate_views()
                raise Conflict(f"Resource {resource_id} was approved or removed by another reviewer")

            log_audit_event(
                db=self.db,
                action=AuditAction.RESOURCE_REJECTED,
                actor_id=admin.id,
                entity_type="resource",
                entity_id=resource_id,
                metadata={**snapshot, "blob_deleted": outcome.blob_deleted},
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            moderation_decisions_total.labels(action="reject", outcome="error").inc()
            logger.error(
                f"Row delete failed while rejecting {resource_id}: {e}",
                extra={"resource_id": str(resource_id), "storage_path": storage_path},
            )
            raise MetadataDeleteFailed("The resource could not be removed. Please try again.")

        self._invalidate_views()
        moderation_decisions_total.labels(action="reject", outcome="success").inc()
        logger.info(f"Resource {resource_id} rejected by {admin.id}", extra={"resource_id": str(resource_id)})
        return outcome

    def update_metadata(
        self,
        context: AuthContext,
        resource_id: UUID,
        fields: Mapping[str, Any],
        expected_version: Optional[int] = None,
    ) -> Dict:
        """Edit descriptive fields of a published resource.

        Fields not given keep their current value. The merged result must
        pass the same completeness rules as approve. Status is untouched.

        Raises:
            Unauthorized, NotFound, InvalidTransition (still pending),
            FieldValidationError, Conflict, MetadataWriteFailed
        """
        admin = require_admin(context)
        resource = self._get(resource_id)

        if resource.status != ResourceStatus.APPROVED:
            raise InvalidTransition("Pending resources are curated through approve")

        current = resource.to_dict()
        merged = {name: fields[name] if name in fields else current[name] for name in DESCRIPTIVE_FIELDS + PYQ_VALUE_FIELDS}
        values = self._validated_values(resource.kind, merged)

        stmt = (
            update(Resource)
            .where(Resource.id == resource.id, Resource.status == ResourceStatus.APPROVED)
            .values(updated_at=datetime.now(timezone.utc), version=Resource.version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        if expected_version is not None:
            stmt = stmt.where(Resource.version == expected_version)

        try:
            result = self.db.execute(stmt)
            if result.rowcount == 0:
                self.db.rollback()
                raise Conflict(f"Resource {resource_id} was modified concurrently")

            changed = {name: values[name] for name in values if name in fields}
            log_audit_event(
                db=self.db,
                action=AuditAction.RESOURCE_METADATA_UPDATED,
                actor_id=admin.id,
                entity_type="resource",
                entity_id=resource.id,
                metadata={"changed": {k: getattr(v, "value", v) for k, v in changed.items()}},
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Metadata update failed for {resource_id}: {e}", extra={"resource_id": str(resource_id)})
            raise MetadataWriteFailed("Metadata could not be saved. Please try again.")

        self._invalidate_views()
        self.db.refresh(resource)
        return resource.to_dict()
