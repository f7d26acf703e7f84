"""Append-only audit trail for sign-ins, moderation decisions and bans.

Entries are added to the caller's transaction and flushed, never
committed here: an entry lands together with the change it describes, or
not at all.
"""

from enum import Enum
from typing import Any, Dict, Optional, Union
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from ..models.audit_log import AuditLog


class AuditAction(str, Enum):
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGIN_BLOCKED_BANNED = "LOGIN_BLOCKED_BANNED"
    RESOURCE_APPROVED = "RESOURCE_APPROVED"
    RESOURCE_REJECTED = "RESOURCE_REJECTED"
    RESOURCE_METADATA_UPDATED = "RESOURCE_METADATA_UPDATED"
    FILE_DELETED = "FILE_DELETED"
    FILE_REPLACED = "FILE_REPLACED"
    ORPHANS_PURGED = "ORPHANS_PURGED"
    IDENTITY_BANNED = "IDENTITY_BANNED"
    IDENTITY_UNBANNED = "IDENTITY_UNBANNED"
    EMAIL_BANNED = "EMAIL_BANNED"
    EMAIL_UNBANNED = "EMAIL_UNBANNED"


def log_audit_event(
    db: Session,
    action: Union[AuditAction, str],
    actor_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[Any] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditLog:
    """Record one event.

    Args:
        action: An AuditAction (or its name); unknown names raise ValueError
        actor_id: Identity that acted, None for scheduled jobs and anonymous sign-in attempts
        entity_type: "resource", "identity" or "banned_email"
        entity_id: Resource or identity UUID, or the banned email

    Example:
        log_audit_event(
            db=db,
            action=AuditAction.RESOURCE_APPROVED,
            actor_id=admin.id,
            entity_type="resource",
            entity_id=resource.id,
            metadata={"title": resource.title},
        )
    """
    entry = AuditLog(
        actor_id=actor_id,
        action=AuditAction(action).value,
        entity_type=entity_type,
        entity_id=None if entity_id is None else str(entity_id),
        metadata_json=metadata,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(entry)
    db.flush()
    return entry


def client_details(request: Optional[Request]) -> Dict[str, Optional[str]]:
    """Client IP and User-Agent for sign-in events.

    Behind the campus proxy the first X-Forwarded-For hop is the client.
    """
    if request is None:
        return {"ip_address": None, "user_agent": None}

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        ip_address = forwarded_for.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None

    return {"ip_address": ip_address, "user_agent": request.headers.get("User-Agent")}
