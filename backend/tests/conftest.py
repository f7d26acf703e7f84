"""Pytest fixtures for the NoteHub backend.

Provides reusable test fixtures for:
- In-memory SQLite database session (fresh schema per test)
- Identities (admin, member) and their auth contexts
- In-memory object storage fake with injectable failures
- FastAPI TestClient wired to the test database and storage

Usage:
    def test_admin_endpoint(client, admin_token):
        response = client.get("/admin/moderation", headers=auth_header(admin_token))
        assert response.status_code == 200
"""

import os

# Set environment variables BEFORE any application imports
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("REDIS_URL", "redis://127.0.0.1:1/0")  # unreachable: view cache disabled
os.environ.setdefault("PASSWORD_PEPPER", "test-pepper-secret-key-32-chars-long")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("MINIO_ROOT_USER", "minioadmin")
os.environ.setdefault("MINIO_ROOT_PASSWORD", "minioadmin")
os.environ.setdefault("LOG_JSON", "false")

from datetime import datetime, timedelta, timezone
from typing import Dict, Generator, List, Optional
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from redis import RedisError
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from notehub.auth.password import hash_password
from notehub.auth.roles import AuthContext
from notehub.auth.session_provider import JWTSessionProvider
from notehub.database import get_db as database_get_db
from notehub.dependencies import get_storage, get_view_cache
from notehub.domain.storage.ports.object_storage_port import ObjectStoragePort, StorageError, StoredFile
from notehub.infrastructure.cache.view_cache import ViewCache
from notehub.models import Base, Identity, Resource
from notehub.domain.resources import ResourceKind, ResourceStatus, SENTINEL_SUBJECT

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

ADMIN_PASSWORD = "AdminP@ss123"
MEMBER_PASSWORD = "MemberP@ss123"


class InMemoryObjectStorage(ObjectStoragePort):
    """Object storage fake.

    Set any of the ``fail_*`` flags to make the matching operation raise
    StorageError.
    """

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.modified: Dict[str, datetime] = {}
        self.calls: List[str] = []
        self.fail_store = False
        self.fail_delete = False
        self.fail_exists = False
        self.fail_list = False
        self.fail_url = False

    async def store_file(self, storage_path: str, content: bytes, mime_type: str) -> StoredFile:
        self.calls.append(f"store:{storage_path}")
        if self.fail_store:
            raise StorageError("simulated upload failure")
        self.blobs[storage_path] = content
        self.modified[storage_path] = datetime.now(timezone.utc)
        return StoredFile(storage_path=storage_path, size_bytes=len(content), mime_type=mime_type)

    async def delete_file(self, storage_path: str) -> bool:
        self.calls.append(f"delete:{storage_path}")
        if self.fail_delete:
            raise StorageError("simulated delete failure")
        self.modified.pop(storage_path, None)
        return self.blobs.pop(storage_path, None) is not None

    async def file_exists(self, storage_path: str) -> bool:
        if self.fail_exists:
            raise StorageError("simulated head failure")
        return storage_path in self.blobs

    async def list_files(self, prefix: str = "") -> List[StoredFile]:
        if self.fail_list:
            raise StorageError("simulated listing failure")
        return [
            StoredFile(storage_path=path, size_bytes=len(data), last_modified=self.modified.get(path))
            for path, data in self.blobs.items()
            if path.startswith(prefix)
        ]

    async def generate_presigned_url(self, storage_path: str, expires_in_seconds: int = 3600) -> str:
        if self.fail_url:
            raise StorageError("simulated signing failure")
        if storage_path not in self.blobs:
            raise FileNotFoundError(storage_path)
        return f"https://storage.test/{storage_path}?expires={expires_in_seconds}"

    def put_blob(self, storage_path: str, content: bytes = b"%PDF-1.4 orphan", age_seconds: int = 0) -> None:
        self.blobs[storage_path] = content
        self.modified[storage_path] = datetime.now(timezone.utc) - timedelta(seconds=age_seconds)


class FakeRedis:
    """In-memory stand-in for the redis commands the view cache uses."""

    def __init__(self, fail: bool = False):
        self.store = {}
        self.ttls = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise RedisError("connection lost")

    def get(self, key):
        self._check()
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self._check()
        self.store[key] = value
        self.ttls[key] = ttl

    def incr(self, key):
        self._check()
        self.store[key] = str(int(self.store.get(key, "0")) + 1)
        return int(self.store[key])


def make_pdf(label: str = "") -> bytes:
    """Minimal PDF-looking bytes, unique per label."""
    return b"%PDF-1.4\n% notehub test document\n" + (label or str(uuid4())).encode() + b"\n%%EOF\n"


def auth_header(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Fresh schema per test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def storage() -> InMemoryObjectStorage:
    return InMemoryObjectStorage()


@pytest.fixture
def make_identity(db_session: Session):
    """Factory creating identities."""
    def _make(
        email: str,
        is_admin: bool = False,
        password: Optional[str] = None,
        full_name: Optional[str] = None,
        is_banned: bool = False,
    ) -> Identity:
        identity = Identity(
            email=email,
            full_name=full_name or email.split("@")[0].title(),
            password_hash=hash_password(password) if password else None,
            is_admin=is_admin,
            is_banned=is_banned,
        )
        db_session.add(identity)
        db_session.commit()
        db_session.refresh(identity)
        return identity
    return _make


@pytest.fixture
def admin(make_identity) -> Identity:
    return make_identity("admin@college.edu", is_admin=True, password=ADMIN_PASSWORD, full_name="Site Admin")


@pytest.fixture
def member(make_identity) -> Identity:
    return make_identity("student@college.edu", password=MEMBER_PASSWORD, full_name="Asha Student")


@pytest.fixture
def admin_context(admin: Identity) -> AuthContext:
    return AuthContext.for_identity(admin)


@pytest.fixture
def member_context(member: Identity) -> AuthContext:
    return AuthContext.for_identity(member)


@pytest.fixture
def issue_token(db_session: Session):
    def _issue(identity: Identity) -> str:
        token = JWTSessionProvider(db_session).issue_session(identity)
        db_session.commit()
        return token
    return _issue


@pytest.fixture
def admin_token(admin: Identity, issue_token) -> str:
    return issue_token(admin)


@pytest.fixture
def member_token(member: Identity, issue_token) -> str:
    return issue_token(member)


@pytest.fixture
def make_resource(db_session: Session, storage: InMemoryObjectStorage):
    """Factory inserting a resource row (and its blob unless with_blob=False)."""
    def _make(
        owner: Identity,
        kind: ResourceKind = ResourceKind.NOTES,
        status: ResourceStatus = ResourceStatus.PENDING,
        created_at: Optional[datetime] = None,
        with_blob: bool = True,
        **fields,
    ) -> Resource:
        resource_id = uuid4()
        storage_path = f"pending/{owner.id}/{resource_id}.pdf"
        content = make_pdf(str(resource_id))
        defaults = {"subject": SENTINEL_SUBJECT}
        if status == ResourceStatus.APPROVED:
            defaults = {"title": "Unit notes", "subject": "Databases", "branch": "CSE", "semester": "5"}
        defaults.update(fields)

        resource = Resource(
            id=resource_id,
            kind=kind,
            status=status,
            storage_path=storage_path,
            content_fingerprint=f"fp-{resource_id.hex}",
            owner_id=owner.id,
            original_filename="notes.pdf",
            size_bytes=len(content),
            mime_type="application/pdf",
            created_at=created_at or datetime.now(timezone.utc),
            **defaults,
        )
        db_session.add(resource)
        db_session.commit()
        db_session.refresh(resource)
        if with_blob:
            storage.put_blob(storage_path, content, age_seconds=7200)
        return resource
    return _make


@pytest.fixture
def client(db_session: Session, storage: InMemoryObjectStorage) -> Generator[TestClient, None, None]:
    """TestClient using the test database, fake storage and a disabled view cache."""
    from notehub.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[database_get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_view_cache] = lambda: ViewCache(None)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
