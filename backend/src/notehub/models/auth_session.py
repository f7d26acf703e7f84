"""AuthSession SQLAlchemy model"""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, Uuid

from .base import Base, utcnow


class AuthSession(Base):
    """Server-side record of an issued access token.

    The token's ``sid`` claim is this row's id. Setting ``revoked_at``
    invalidates the token before its expiry.
    """
    __tablename__ = "auth_session"
    __table_args__ = (
        Index("ix_auth_session_identity_id", "identity_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    identity_id = Column(Uuid, ForeignKey("identity.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
