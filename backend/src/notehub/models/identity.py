"""Identity SQLAlchemy model"""

import re
import uuid

from sqlalchemy import Boolean, Column, DateTime, Text, Uuid
from sqlalchemy.orm import validates

from .base import Base, utcnow


class Identity(Base):
    """A registered portal user.

    ``is_admin`` is only ever set by operators (seed scripts, migrations).
    No end-user operation edits it. ``password_hash`` is nullable because
    identities created through an external provider carry no local
    credential.
    """
    __tablename__ = "identity"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(Text, nullable=False, unique=True)
    full_name = Column(Text, nullable=True)
    password_hash = Column(Text, nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    is_banned = Column(Boolean, nullable=False, default=False)
    ban_reason = Column(Text, nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @validates('email')
    def validate_email(self, key, value):
        """Basic email format validation"""
        if not re.match(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', value or ""):
            raise ValueError("Invalid email format")
        return value.lower()

    @property
    def role(self) -> str:
        return "admin" if self.is_admin else "member"

    def to_dict(self):
        """Convert identity to dictionary representation (excludes password_hash)"""
        return {
            "id": str(self.id),
            "email": self.email,
            "full_name": self.full_name,
            "is_admin": self.is_admin,
            "is_banned": self.is_banned,
            "ban_reason": self.ban_reason,
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
