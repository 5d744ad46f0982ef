"""
CampusNotes Backend: Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   A fresh in-memory SQLite database (aiosqlite) per test, an in-memory
       object store implementing ObjectStoreGateway, and an httpx
       MockTransport that serves the stored blobs to the archive engine.

Fixture Hierarchy:
    ├── db_engine:      in-memory SQLite engine with the full schema
    ├── db_session:     AsyncSession bound to db_engine
    ├── object_store:   InMemoryObjectStore (records deletes, can fail keys)
    ├── blob_transport: httpx.MockTransport reading from object_store
    ├── seed:           helpers that insert taxonomy, faculty and notes
    └── test_client:    HTTPX AsyncClient against the app, services wired to
                        the fakes above
"""

import os

# Override settings BEFORE any campusnotes import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["S3_BUCKET_NAME"] = "campusnotes-test"
os.environ["JWT_SECRET"] = "test-secret-not-real"
os.environ["LOG_LEVEL"] = "WARNING"

import uuid
from datetime import datetime
from typing import Dict, List, Optional, Set
from urllib.parse import unquote

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from campusnotes.database import Base
from campusnotes.exceptions import ObjectStoreError
from campusnotes.models import Branch, Faculty, FacultyUpload, Note, Regulation, Subject
from campusnotes.security import Role, create_access_token, hash_password
from campusnotes.services.object_store import ObjectStoreGateway

BLOB_HOST = "https://blobs.test"


# ══════════════════════════════════════════════════════════════════════════
# Fakes
# ══════════════════════════════════════════════════════════════════════════

class InMemoryObjectStore(ObjectStoreGateway):
    """Dict-backed object store; URLs point at BLOB_HOST."""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.deleted: List[str] = []
        self.fail_keys: Set[str] = set()
        self.healthy = True

    async def issue_upload_location(self, key: str, content_type: str) -> str:
        return f"{BLOB_HOST}/{key}?method=PUT&type={content_type}"

    async def issue_download_location(self, key: str) -> str:
        return f"{BLOB_HOST}/{key}"

    async def delete_object(self, key: str) -> None:
        if key in self.fail_keys:
            raise ObjectStoreError(key=key, context={"operation": "delete_object"})
        self.blobs.pop(key, None)
        self.deleted.append(key)

    async def health_check(self) -> bool:
        return self.healthy


def blob_transport_for(store: InMemoryObjectStore) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        key = unquote(request.url.path.lstrip("/"))
        if key not in store.blobs:
            return httpx.Response(404, content=b"NoSuchKey")
        return httpx.Response(200, content=store.blobs[key])

    return httpx.MockTransport(handler)


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # SQLite leaves foreign keys unchecked unless asked
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Object Store
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def object_store():
    return InMemoryObjectStore()


@pytest.fixture
def blob_transport(object_store):
    return blob_transport_for(object_store)


# ══════════════════════════════════════════════════════════════════════════
# Seed Data
# ══════════════════════════════════════════════════════════════════════════

class Seeder:
    """Inserts rows through one session and commits after each helper."""

    def __init__(self, session, store: InMemoryObjectStore):
        self.session = session
        self.store = store

    async def regulation(self, name: str = "R20", semesters: int = 8) -> Regulation:
        reg = Regulation(name=name, number_of_semesters=semesters)
        self.session.add(reg)
        await self.session.commit()
        return reg

    async def branch(self, regulation: Regulation, name: str = "Computer Science", code: str = "CSE") -> Branch:
        branch = Branch(name=name, code=code, regulation_id=regulation.id)
        self.session.add(branch)
        await self.session.commit()
        return branch

    async def subject(
        self, branch: Branch, name: str = "Data Structures", code: str = "CS201", semester: str = "3"
    ) -> Subject:
        subject = Subject(name=name, code=code, branch_id=branch.id, semester=semester)
        self.session.add(subject)
        await self.session.commit()
        return subject

    async def faculty(
        self,
        name: str = "Asha Rao",
        email: Optional[str] = None,
        employee_id: Optional[str] = None,
    ) -> Faculty:
        suffix = uuid.uuid4().hex[:6]
        faculty = Faculty(
            name=name,
            email=email or f"faculty-{suffix}@college.edu",
            employee_id=employee_id or f"EMP-{suffix}",
            designation="Assistant Professor",
            password_hash=hash_password("secret123"),
        )
        self.session.add(faculty)
        await self.session.commit()
        return faculty

    async def note(
        self,
        subject: Subject,
        branch: Branch,
        regulation: Regulation,
        faculty: Faculty,
        title: str = "Unit 1",
        content: bytes = b"%PDF-1.4 unit 1",
        file_key: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Note:
        """Note row, ledger row and blob, as a completed upload would leave them."""
        key = file_key or f"uploads/{uuid.uuid4().hex[:10]}_{title.replace(' ', '_')}.pdf"
        note = Note(
            title=title,
            regulation_id=regulation.id,
            branch_id=branch.id,
            subject_id=subject.id,
            semester=subject.semester,
            file_key=key,
            uploaded_by=faculty.id,
        )
        if created_at is not None:
            note.created_at = created_at
        self.session.add(note)
        await self.session.flush()
        self.session.add(FacultyUpload(faculty_id=faculty.id, note_id=note.id))
        await self.session.commit()
        self.store.blobs[key] = content
        return note


@pytest.fixture
def seed(db_session, object_store):
    return Seeder(db_session, object_store)


# ══════════════════════════════════════════════════════════════════════════
# Auth
# ══════════════════════════════════════════════════════════════════════════

def auth_header(user_id: uuid.UUID, role: Role) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


@pytest.fixture
def admin_headers():
    return auth_header(uuid.uuid4(), Role.ADMIN)


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(db_engine, session_factory, object_store, blob_transport, monkeypatch):
    """
    AsyncClient against the real app.

    The request session comes from the test database; every service
    singleton talks to the in-memory object store.
    """
    from campusnotes.database import get_db_session
    from campusnotes.main import app
    from campusnotes.routes import health
    from campusnotes.services.archive_service import archive_engine
    from campusnotes.services.cascade_service import cascade_engine
    from campusnotes.services.note_service import note_service

    monkeypatch.setattr(note_service, "object_store", object_store)
    monkeypatch.setattr(cascade_engine, "object_store", object_store)
    monkeypatch.setattr(archive_engine, "object_store", object_store)
    monkeypatch.setattr(archive_engine, "_transport", blob_transport)
    monkeypatch.setattr(health, "object_store", object_store)
    monkeypatch.setattr(health, "engine", db_engine)

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
