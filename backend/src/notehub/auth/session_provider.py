"""Bundled identity provider: JWT access tokens backed by auth_session rows."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from uuid import UUID, uuid4

import jwt
from sqlalchemy import update
from sqlalchemy.orm import Session

from ..domain.identity.ports.identity_provider_port import IdentityProviderPort
from ..models.auth_session import AuthSession
from ..models.identity import Identity
from .jwt import create_access_token, decode_token, get_jwt_expiry_minutes

logger = logging.getLogger(__name__)


class JWTSessionProvider(IdentityProviderPort):
    """IdentityProviderPort implementation over PyJWT and the auth_session table.

    Writes are flushed into the caller's transaction. The caller commits.
    """

    def __init__(self, db: Session):
        self.db = db

    def issue_session(self, identity: Identity) -> str:
        now = datetime.now(timezone.utc)
        session = AuthSession(
            id=uuid4(),
            identity_id=identity.id,
            created_at=now,
            expires_at=now + timedelta(minutes=get_jwt_expiry_minutes()),
        )
        self.db.add(session)
        self.db.flush()

        return create_access_token(
            identity_id=identity.id,
            session_id=session.id,
            email=identity.email,
            is_admin=identity.is_admin,
            issued_at=now,
        )

    def _claims(self, token: Optional[str], verify_exp: bool = True) -> Optional[Tuple[UUID, UUID]]:
        """(identity_id, session_id) from a correctly signed token, else None."""
        if not token:
            return None

        try:
            payload = decode_token(token, verify_exp=verify_exp)
            return UUID(payload["sub"]), UUID(payload["sid"])
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected session token: {e}")
        except (KeyError, ValueError) as e:
            logger.debug(f"Malformed session token claims: {e}")
        return None

    def _load_session(self, token: Optional[str]) -> Optional[AuthSession]:
        claims = self._claims(token)
        if claims is None:
            return None

        identity_id, session_id = claims
        session = self.db.get(AuthSession, session_id)
        if session is None or session.revoked_at is not None or session.identity_id != identity_id:
            return None
        return session

    def current_session(self, token: Optional[str]) -> Optional[Identity]:
        session = self._load_session(token)
        if session is None:
            return None
        # None when the identity was deleted after the session was issued
        return self.db.get(Identity, session.identity_id)

    def token_identity(self, token: Optional[str]) -> Optional[Identity]:
        # Revocation and expiry are ignored here, the signature is not
        claims = self._claims(token, verify_exp=False)
        if claims is None:
            return None
        return self.db.get(Identity, claims[0])

    def invalidate_session(self, identity_id: UUID) -> int:
        result = self.db.execute(
            update(AuthSession)
            .where(AuthSession.identity_id == identity_id, AuthSession.revoked_at.is_(None))
            .values(revoked_at=datetime.now(timezone.utc))
        )
        self.db.flush()
        return result.rowcount or 0

    def end_session(self, token: Optional[str]) -> bool:
        session = self._load_session(token)
        if session is None:
            return False
        session.revoked_at = datetime.now(timezone.utc)
        self.db.flush()
        return True
