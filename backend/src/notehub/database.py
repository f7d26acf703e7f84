"""Engine and session factory.

Services own their commit points: each moderation, ban or upload
operation commits (or rolls back) before it returns, so the request
session is only closed here.
"""

from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Settings, get_settings

_IN_MEMORY_SQLITE = ("sqlite://", "sqlite:///:memory:")


def engine_options(settings: Settings) -> Dict[str, Any]:
    """Pool settings for server databases; one shared connection for in-memory SQLite."""
    url = settings.DATABASE_URL
    if not url.startswith("sqlite"):
        return {
            "pool_pre_ping": True,
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
        }

    options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url in _IN_MEMORY_SQLITE:
        options["poolclass"] = StaticPool
    return options


_settings = get_settings()
engine = create_engine(_settings.DATABASE_URL, **engine_options(_settings))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session.

    Usage:
        @router.get("/resources/search")
        def search(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
