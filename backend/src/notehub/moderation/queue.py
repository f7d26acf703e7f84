"""ModerationQueue: the admin's view of resources awaiting review.

The queue is query driven. Nothing is pushed to it: every pending row is in
it until approved or rejected.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth.roles import AuthContext, require_admin
from ..domain.resources import ResourceStatus
from ..infrastructure.cache.view_cache import MODERATION_NAMESPACE, ViewCache
from ..models.identity import Identity
from ..models.resource import Resource

logger = logging.getLogger(__name__)


def _pending_entry(resource: Resource, full_name: Optional[str], email: Optional[str]) -> Dict:
    entry = resource.to_dict()
    entry["uploader_name"] = full_name
    entry["uploader_email"] = email
    return entry


class ModerationQueue:
    def __init__(self, db: Session, cache: Optional[ViewCache] = None):
        self.db = db
        self.cache = cache

    def _pending_query(self, *columns):
        return (
            self.db.query(*columns)
            .filter(Resource.status == ResourceStatus.PENDING)
            .order_by(Resource.created_at.desc(), Resource.id)
        )

    def _list_enriched(self) -> List[Dict]:
        rows = (
            self._pending_query(Resource, Identity.full_name, Identity.email)
            .outerjoin(Identity, Identity.id == Resource.owner_id)
            .all()
        )
        return [_pending_entry(resource, full_name, email) for resource, full_name, email in rows]

    def _list_plain(self) -> List[Dict]:
        return [_pending_entry(resource, None, None) for resource in self._pending_query(Resource).all()]

    def list_pending(self, context: AuthContext) -> List[Dict]:
        """Pending resources, newest first, with uploader name and email.

        An uploader whose identity no longer exists shows null uploader
        fields. If the uploader lookup fails the plain listing is returned
        instead of an error.
        """
        require_admin(context)

        try:
            return self._list_enriched()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Uploader enrichment failed, listing without uploader details: {e}")
            return self._list_plain()

    def stats(self, context: AuthContext) -> Dict[str, int]:
        """Dashboard counters (cached)."""
        require_admin(context)

        if self.cache:
            cached = self.cache.get(MODERATION_NAMESPACE, "stats")
            if cached is not None:
                return cached

        status_counts = dict(
            self.db.query(Resource.status, func.count(Resource.id)).group_by(Resource.status).all()
        )
        result = {
            "total_resources": sum(status_counts.values()),
            "pending_resources": status_counts.get(ResourceStatus.PENDING, 0),
            "approved_resources": status_counts.get(ResourceStatus.APPROVED, 0),
            "total_identities": self.db.query(func.count(Identity.id)).scalar() or 0,
            "banned_identities": (
                self.db.query(func.count(Identity.id)).filter(Identity.is_banned.is_(True)).scalar() or 0
            ),
        }

        if self.cache:
            self.cache.set(MODERATION_NAMESPACE, "stats", result)
        return result
