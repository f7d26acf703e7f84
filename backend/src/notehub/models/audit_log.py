"""AuditLog SQLAlchemy model"""

import uuid

from sqlalchemy import Column, DateTime, Index, Text, Uuid

from .base import Base, PortableJSONB, utcnow


class AuditLog(Base):
    """Append-only record of admin mutations and ban events.

    ``actor_id`` and ``entity_id`` carry no foreign keys so entries outlive
    the identities and resources they mention.
    """
    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_log_created_at", "created_at"),
        Index("ix_audit_log_entity", "entity_type", "entity_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    actor_id = Column(Uuid, nullable=True)
    action = Column(Text, nullable=False)
    entity_type = Column(Text, nullable=True)
    entity_id = Column(Text, nullable=True)
    metadata_json = Column(PortableJSONB, nullable=True)
    ip_address = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
