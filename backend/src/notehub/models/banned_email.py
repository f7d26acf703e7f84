"""BannedEmail SQLAlchemy model"""

from sqlalchemy import Column, DateTime, Text, Uuid

from .base import Base, utcnow

DEFAULT_BAN_REASON = "Banned by administrator"


class BannedEmail(Base):
    """Email-level ban record.

    Independent of the identity table so a ban survives account deletion
    and can be placed on an address that has never signed up.
    """
    __tablename__ = "banned_email"

    email = Column(Text, primary_key=True)  # lower-cased
    banned_by = Column(Uuid, nullable=True)
    reason = Column(Text, nullable=False, default=DEFAULT_BAN_REASON)
    banned_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "email": self.email,
            "banned_by": str(self.banned_by) if self.banned_by else None,
            "reason": self.reason,
            "banned_at": self.banned_at.isoformat() if self.banned_at else None,
        }
