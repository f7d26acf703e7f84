"""SQLAlchemy Models for NoteHub"""

from .base import Base
from .identity import Identity
from .banned_email import BannedEmail, DEFAULT_BAN_REASON
from .auth_session import AuthSession
from .audit_log import AuditLog
from .resource import Resource

__all__ = [
    "Base",
    "Identity",
    "BannedEmail",
    "DEFAULT_BAN_REASON",
    "AuthSession",
    "AuditLog",
    "Resource",
]
