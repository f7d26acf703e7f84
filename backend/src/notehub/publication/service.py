"""PublicationIndex: public search and downloads over approved resources.

A resource is visible only when it is approved AND its subject is not the
"Pending Review" placeholder. Both conditions are applied in every query.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..auth.roles import AuthContext, require_admin
from ..config import get_settings
from ..domain.errors import FieldValidationError, NotFound, StorageReadFailed
from ..domain.resources import ResourceKind, ResourceStatus, SENTINEL_SUBJECT
from ..domain.storage.ports.object_storage_port import ObjectStoragePort, StorageError
from ..infrastructure.cache.view_cache import SEARCH_NAMESPACE, ViewCache
from ..models.resource import Resource

logger = logging.getLogger(__name__)


@dataclass
class SearchFilters:
    """Optional narrowing filters. Empty strings count as absent."""
    branch: Optional[str] = None
    semester: Optional[str] = None
    subject: Optional[str] = None

    def normalized(self) -> Dict[str, Optional[str]]:
        return {key: (value.strip() or None) if value else None for key, value in asdict(self).items()}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PublicationIndex:
    def __init__(self, db: Session, storage: Optional[ObjectStoragePort] = None, cache: Optional[ViewCache] = None):
        self.db = db
        self.storage = storage
        self.cache = cache

    def search(self, kind: str, filters: Optional[SearchFilters] = None) -> List[Dict]:
        """Published resources of one kind, newest first.

        ``branch`` and ``semester`` match exactly. ``subject`` is a
        case-insensitive substring match.

        Raises:
            FieldValidationError: Unknown kind
        """
        try:
            parsed_kind = ResourceKind((kind or "").strip().lower())
        except ValueError:
            raise FieldValidationError(
                "Unknown resource kind",
                fields={"kind": f"must be one of {[k.value for k in ResourceKind]}"},
            )

        criteria = (filters or SearchFilters()).normalized()
        cache_key = {"kind": parsed_kind.value, **criteria}
        if self.cache:
            cached = self.cache.get(SEARCH_NAMESPACE, cache_key)
            if cached is not None:
                return cached

        query = self.db.query(Resource).filter(
            Resource.kind == parsed_kind,
            Resource.status == ResourceStatus.APPROVED,
            Resource.subject != SENTINEL_SUBJECT,
        )
        if criteria["branch"]:
            query = query.filter(Resource.branch == criteria["branch"])
        if criteria["semester"]:
            query = query.filter(Resource.semester == criteria["semester"])
        if criteria["subject"]:
            query = query.filter(Resource.subject.ilike(f"%{_escape_like(criteria['subject'])}%", escape="\\"))

        results = [resource.to_public_dict() for resource in query.order_by(Resource.created_at.desc(), Resource.id)]

        if self.cache:
            self.cache.set(SEARCH_NAMESPACE, cache_key, results)
        return results

    async def download_url(
        self,
        context: Optional[AuthContext],
        resource_id: UUID,
        ttl_seconds: Optional[int] = None,
        include_unpublished: bool = False,
    ) -> str:
        """Signed, time-limited URL for a resource's PDF.

        Unpublished resources are only reachable with ``include_unpublished``
        (admin preview) and report NotFound otherwise, so their existence is
        not revealed.

        Raises:
            Unauthorized: include_unpublished without an admin caller
            NotFound: Unknown, unpublished, or blob missing from storage
            StorageReadFailed: URL could not be generated
        """
        if include_unpublished:
            require_admin(context)

        resource = self.db.get(Resource, resource_id)
        if resource is None or (not include_unpublished and not resource.is_published):
            raise NotFound(f"Resource {resource_id} not found")

        ttl_seconds = ttl_seconds or get_settings().SIGNED_URL_TTL_SECONDS
        try:
            return await self.storage.generate_presigned_url(resource.storage_path, ttl_seconds)
        except FileNotFoundError:
            logger.warning(
                f"Blob missing for resource {resource_id}",
                extra={"resource_id": str(resource_id), "storage_path": resource.storage_path},
            )
            raise NotFound(f"File for resource {resource_id} is missing from storage")
        except StorageError as e:
            logger.error(f"Signed URL generation failed for {resource_id}: {e}")
            raise StorageReadFailed("The file is temporarily unavailable. Please try again.")
