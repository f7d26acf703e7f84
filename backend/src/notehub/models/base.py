"""Declarative base and column helpers shared by every NoteHub table.

Column types are chosen so the same models run on PostgreSQL in
production and on in-memory SQLite in the test suite.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, TypeDecorator
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class PortableJSONB(TypeDecorator):
    """JSONB on PostgreSQL, plain JSON elsewhere."""
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
