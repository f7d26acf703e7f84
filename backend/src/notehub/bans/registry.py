"""Email ban lookups shared by session validation and the ban service."""

from typing import Optional

from sqlalchemy.orm import Session

from ..models.banned_email import BannedEmail


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def is_email_banned(db: Session, email: Optional[str]) -> bool:
    normalized = normalize_email(email)
    if not normalized:
        return False
    return db.get(BannedEmail, normalized) is not None
