"""Resource SQLAlchemy model

A Resource is one uploaded PDF (lecture notes or a previous year question
paper). The blob lives in object storage at ``storage_path``; this row holds
its metadata and review status.
"""

import enum
import uuid

from sqlalchemy import BigInteger, Column, DateTime, Enum as SQLEnum, Index, Integer, Text, Uuid

from .base import Base, utcnow
from ..domain.resources.resource_status import ResourceStatus
from ..domain.resources.taxonomy import ExamType, ResourceKind, SemesterType, SENTINEL_SUBJECT


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Resource(Base):
    """Uploaded file awaiting review or published.

    ``owner_id`` deliberately has no foreign key: deleting an identity leaves
    its uploads in place, listed as uploaded by an unknown user.
    ``kind``, ``storage_path``, ``content_fingerprint`` and ``owner_id`` never
    change after insert.
    """
    __tablename__ = "resource"
    __table_args__ = (
        Index("ix_resource_status_created_at", "status", "created_at"),
        Index("ix_resource_owner_id", "owner_id"),
        Index("ix_resource_kind_status", "kind", "status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(Text, nullable=True)
    subject = Column(Text, nullable=True)
    course = Column(Text, nullable=True)
    branch = Column(Text, nullable=True)
    semester = Column(Text, nullable=True)
    kind = Column(
        SQLEnum(ResourceKind, name="resourcekind", values_callable=_enum_values),
        nullable=False,
    )
    exam_type = Column(
        SQLEnum(ExamType, name="examtype", values_callable=_enum_values),
        nullable=True,
    )
    academic_year = Column(Text, nullable=True)  # e.g. "2023-2024"
    semester_type = Column(
        SQLEnum(SemesterType, name="semestertype", values_callable=_enum_values),
        nullable=True,
    )
    storage_path = Column(Text, nullable=False, unique=True)
    content_fingerprint = Column(Text, nullable=False, unique=True)  # SHA256 hex
    owner_id = Column(Uuid, nullable=False)
    original_filename = Column(Text, nullable=True)
    size_bytes = Column(BigInteger, nullable=True)
    mime_type = Column(Text, nullable=True)
    status = Column(
        SQLEnum(ResourceStatus, name="resourcestatus", values_callable=_enum_values),
        nullable=False,
        default=ResourceStatus.PENDING,
    )
    version = Column(Integer, nullable=False, default=1)
    approved_by = Column(Uuid, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_published(self) -> bool:
        return self.status == ResourceStatus.APPROVED and self.subject != SENTINEL_SUBJECT

    def to_dict(self):
        """Full representation for admin views"""
        return {
            "id": str(self.id),
            "title": self.title,
            "subject": self.subject,
            "course": self.course,
            "branch": self.branch,
            "semester": self.semester,
            "kind": _value(self.kind),
            "exam_type": _value(self.exam_type),
            "academic_year": self.academic_year,
            "semester_type": _value(self.semester_type),
            "storage_path": self.storage_path,
            "content_fingerprint": self.content_fingerprint,
            "owner_id": str(self.owner_id),
            "original_filename": self.original_filename,
            "size_bytes": self.size_bytes,
            "mime_type": self.mime_type,
            "status": _value(self.status),
            "version": self.version,
            "approved_by": str(self.approved_by) if self.approved_by else None,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_public_dict(self):
        """Representation served to anonymous visitors (no storage or owner details)"""
        return {
            "id": str(self.id),
            "title": self.title,
            "subject": self.subject,
            "course": self.course,
            "branch": self.branch,
            "semester": self.semester,
            "kind": _value(self.kind),
            "exam_type": _value(self.exam_type),
            "academic_year": self.academic_year,
            "semester_type": _value(self.semester_type),
            "size_bytes": self.size_bytes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


def _value(member):
    return member.value if isinstance(member, enum.Enum) else member
