"""BanEnforcement: admin ban and unban operations.

Two independent mechanisms:
- identity ban: ``identity.is_banned``; blocks an existing account
- email ban: a ``banned_email`` row; survives account deletion and can be
  placed on an address that never signed up

Enforcement itself happens in IdentityGate on every session validation.
"""

import logging
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..audit.service import AuditAction, log_audit_event
from ..auth.roles import AuthContext, require_admin
from ..domain.errors import FieldValidationError, NotFound
from ..domain.identity.ports.identity_provider_port import IdentityProviderPort
from ..infrastructure.cache.view_cache import MODERATION_NAMESPACE, ViewCache
from ..models.banned_email import BannedEmail, DEFAULT_BAN_REASON
from ..models.identity import Identity
from ..observability.metrics import ban_events_total
from .registry import normalize_email

logger = logging.getLogger(__name__)


class BanService:
    def __init__(self, db: Session, provider: IdentityProviderPort, cache: Optional[ViewCache] = None):
        self.db = db
        self.provider = provider
        self.cache = cache

    def _get_identity(self, identity_id: UUID) -> Identity:
        identity = self.db.get(Identity, identity_id)
        if identity is None:
            raise NotFound(f"Identity {identity_id} not found")
        return identity

    def _invalidate_stats(self) -> None:
        # Queue stats count banned identities
        if self.cache:
            self.cache.invalidate(MODERATION_NAMESPACE)

    def ban(self, context: AuthContext, identity_id: UUID, reason: Optional[str] = None) -> Dict:
        """Ban an identity and revoke all its sessions.

        Idempotent: banning an already banned identity succeeds and keeps
        the original reason unless a new one is given.
        """
        admin = require_admin(context)
        identity = self._get_identity(identity_id)

        already_banned = identity.is_banned
        identity.is_banned = True
        if reason or not identity.ban_reason:
            identity.ban_reason = reason or DEFAULT_BAN_REASON
        revoked = self.provider.invalidate_session(identity.id)

        log_audit_event(
            db=self.db,
            action=AuditAction.IDENTITY_BANNED,
            actor_id=admin.id,
            entity_type="identity",
            entity_id=identity.id,
            metadata={"reason": identity.ban_reason, "already_banned": already_banned, "sessions_revoked": revoked},
        )
        self.db.commit()
        self._invalidate_stats()

        ban_events_total.labels(action="ban").inc()
        logger.info(f"Identity {identity.id} banned by {admin.id}", extra={"target_identity_id": str(identity.id)})
        return identity.to_dict()

    def unban(self, context: AuthContext, identity_id: UUID) -> Dict:
        admin = require_admin(context)
        identity = self._get_identity(identity_id)

        identity.is_banned = False
        identity.ban_reason = None
        log_audit_event(
            db=self.db,
            action=AuditAction.IDENTITY_UNBANNED,
            actor_id=admin.id,
            entity_type="identity",
            entity_id=identity.id,
        )
        self.db.commit()
        self._invalidate_stats()

        ban_events_total.labels(action="unban").inc()
        logger.info(f"Identity {identity.id} unbanned by {admin.id}", extra={"target_identity_id": str(identity.id)})
        return identity.to_dict()

    def ban_email(self, context: AuthContext, email: str, reason: Optional[str] = None) -> Dict:
        """Add an email to the ban list.

        An already banned email is a success. Live sessions of any identity
        holding the email are revoked.
        """
        admin = require_admin(context)
        normalized = normalize_email(email)
        if not normalized or "@" not in normalized:
            raise FieldValidationError("A valid email is required", fields={"email": "invalid"})

        record = self.db.get(BannedEmail, normalized)
        if record is None:
            record = BannedEmail(email=normalized, banned_by=admin.id, reason=reason or DEFAULT_BAN_REASON)
            self.db.add(record)
            try:
                self.db.flush()
            except IntegrityError:
                # Concurrent ban of the same address
                self.db.rollback()
                record = self.db.get(BannedEmail, normalized)
                logger.info(f"Email already banned: {normalized}")
                return record.to_dict()

        holder = self.db.query(Identity).filter(Identity.email == normalized).first()
        revoked = self.provider.invalidate_session(holder.id) if holder else 0

        log_audit_event(
            db=self.db,
            action=AuditAction.EMAIL_BANNED,
            actor_id=admin.id,
            entity_type="banned_email",
            entity_id=normalized,
            metadata={"reason": record.reason, "sessions_revoked": revoked},
        )
        self.db.commit()

        ban_events_total.labels(action="ban_email").inc()
        logger.info(f"Email {normalized} banned by {admin.id}")
        return record.to_dict()

    def unban_email(self, context: AuthContext, email: str) -> Dict:
        admin = require_admin(context)
        normalized = normalize_email(email)

        deleted = self.db.query(BannedEmail).filter(BannedEmail.email == normalized).delete()
        log_audit_event(
            db=self.db,
            action=AuditAction.EMAIL_UNBANNED,
            actor_id=admin.id,
            entity_type="banned_email",
            entity_id=normalized,
            metadata={"was_banned": bool(deleted)},
        )
        self.db.commit()

        ban_events_total.labels(action="unban_email").inc()
        return {"email": normalized, "removed": bool(deleted)}

    def list_banned_emails(self, context: AuthContext) -> List[Dict]:
        require_admin(context)
        records = self.db.query(BannedEmail).order_by(BannedEmail.banned_at.desc()).all()
        return [record.to_dict() for record in records]

    def list_identities(self, context: AuthContext) -> List[Dict]:
        """Every registered identity, newest first, with role and ban state."""
        require_admin(context)
        identities = self.db.query(Identity).order_by(Identity.created_at.desc()).all()
        return [identity.to_dict() for identity in identities]
