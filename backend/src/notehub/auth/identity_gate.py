"""IdentityGate: the single guard every entry point goes through.

Order of checks on each request:
    1. resolve the session token through the identity provider
    2. ban check (identity flag, then email ban list); a hit revokes all of
       the identity's sessions and fails with Banned
    3. role check (only for admin operations)

Bans are checked before roles, so a banned admin is still banned.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session

from ..audit.service import AuditAction, client_details, log_audit_event
from ..bans.registry import is_email_banned, normalize_email
from ..config import Settings, get_settings
from ..domain.errors import Banned, Unauthenticated
from ..domain.identity.ports.identity_provider_port import IdentityProviderPort
from ..models.identity import Identity
from ..observability.context import set_identity_id
from ..observability.metrics import ban_events_total
from .password import hash_password, needs_rehash, verify_password
from .roles import AuthContext, require_admin, require_identity

logger = logging.getLogger(__name__)


class IdentityGate:
    """Session validation, ban enforcement and role checks.

    Example:
        gate = IdentityGate(db, JWTSessionProvider(db))
        context = gate.authorize(token)       # Unauthenticated / Banned
        admin = gate.require_admin(token)     # ... / Unauthorized
    """

    def __init__(self, db: Session, provider: IdentityProviderPort, settings: Optional[Settings] = None):
        self.db = db
        self.provider = provider
        self.settings = settings or get_settings()

    def _banned(self, message: str = "This account has been banned") -> Banned:
        return Banned(message, redirect_to=self.settings.BANNED_REDIRECT_PATH)

    def enforce_bans(self, identity: Identity) -> None:
        """Raise Banned if the identity or its email is banned.

        All of the identity's sessions are revoked and committed before the
        error propagates.
        """
        if not (identity.is_banned or is_email_banned(self.db, identity.email)):
            return

        revoked = self.provider.invalidate_session(identity.id)
        self.db.commit()
        ban_events_total.labels(action="session_blocked").inc()
        logger.warning(
            f"Blocked banned identity {identity.id}, revoked {revoked} session(s)",
            extra={"target_identity_id": str(identity.id)},
        )
        raise self._banned()

    def validate_session(self, token: Optional[str]) -> Optional[AuthContext]:
        """Resolve a token to an AuthContext.

        Returns None when there is no usable session (missing, expired,
        revoked, identity deleted). Raises Banned for banned callers, even
        when the ban already revoked the session behind their token.
        """
        identity = self.provider.current_session(token)
        if identity is None:
            claimant = self.provider.token_identity(token)
            if claimant is not None:
                self.enforce_bans(claimant)
            return None

        self.enforce_bans(identity)
        set_identity_id(identity.id)
        return AuthContext.for_identity(identity, token=token)

    def authorize(self, token: Optional[str]) -> AuthContext:
        """Raises Unauthenticated or Banned."""
        context = self.validate_session(token)
        if context is None:
            raise Unauthenticated(redirect_to=self.settings.LOGIN_REDIRECT_PATH)
        return require_identity(context)

    def require_admin(self, token: Optional[str]) -> Identity:
        """Raises Unauthenticated, Banned or Unauthorized."""
        return require_admin(self.authorize(token))

    def sign_in(self, email: str, password: str, request: Optional[Request] = None) -> str:
        """Verify credentials and issue a session token.

        The email ban list is checked before the credential, so a banned
        address never receives a session.

        Raises:
            Banned: Email or identity is banned
            Unauthenticated: Unknown email or wrong password
        """
        normalized = normalize_email(email)
        client = client_details(request)

        if is_email_banned(self.db, normalized):
            log_audit_event(
                db=self.db,
                action=AuditAction.LOGIN_BLOCKED_BANNED,
                metadata={"email": normalized},
                **client,
            )
            self.db.commit()
            ban_events_total.labels(action="session_blocked").inc()
            raise self._banned()

        identity = self.db.query(Identity).filter(Identity.email == normalized).first()
        if identity is None or not verify_password(password, identity.password_hash):
            log_audit_event(
                db=self.db,
                action=AuditAction.LOGIN_FAILED,
                actor_id=identity.id if identity else None,
                metadata={"email": normalized, "reason": "invalid_credentials"},
                **client,
            )
            self.db.commit()
            raise Unauthenticated("Invalid email or password", redirect_to=self.settings.LOGIN_REDIRECT_PATH)

        if identity.is_banned:
            log_audit_event(
                db=self.db,
                action=AuditAction.LOGIN_BLOCKED_BANNED,
                actor_id=identity.id,
                metadata={"email": normalized},
                **client,
            )
            self.db.commit()
            ban_events_total.labels(action="session_blocked").inc()
            raise self._banned()

        if needs_rehash(identity.password_hash):
            identity.password_hash = hash_password(password)
        identity.last_login_at = datetime.now(timezone.utc)
        token = self.provider.issue_session(identity)
        log_audit_event(
            db=self.db,
            action=AuditAction.LOGIN_SUCCESS,
            actor_id=identity.id,
            metadata={"email": normalized},
            **client,
        )
        self.db.commit()

        logger.info(f"Identity {identity.id} signed in")
        return token

    def sign_out(self, context: AuthContext) -> bool:
        ended = self.provider.end_session(context.token)
        self.db.commit()
        return ended
