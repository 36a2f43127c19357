"""
Client Records Backend — Test Configuration (conftest.py)
===========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Services run against an in-memory SQLite database (aiosqlite);
       route tests talk to the FastAPI app through httpx's ASGITransport
       with the session and file-service dependencies overridden.

Fixture Hierarchy (all function-scoped):
    ├── async_engine:  fresh in-memory database with all tables
    ├── db_session:    AsyncSession on that engine
    ├── file_service:  FileService bound to a temp uploads directory
    ├── auth_headers:  Authorization header with a valid bearer token
    └── test_client:   HTTPX AsyncClient for API endpoint testing
"""

import os
import tempfile
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

# Settings are read at import time: configure before importing the package
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["ORG_ID"] = "org1"
os.environ["AUTH_ENABLED"] = "true"
os.environ["JWT_SECRET"] = "test-secret-not-real"
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="clientrecords_test_")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from clientrecords.database import Base
from clientrecords.models.client import Client, ClientOrg  # noqa: F401
from clientrecords.models.event import Event, EventAttendee
from clientrecords.schemas.client import Address, ClientCreate, PhoneNumber
from clientrecords.scope import OrgScope
from clientrecords.services.client_service import client_service
from clientrecords.services.file_service import FileService

TEST_JWT_SECRET = "test-secret-not-real"


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def async_engine():
    """Isolated in-memory SQLite engine per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _foreign_keys_on(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(async_engine):
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Scopes & Data Builders
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def org1() -> OrgScope:
    return OrgScope(org_id="org1")


@pytest.fixture
def org2() -> OrgScope:
    return OrgScope(org_id="org2")


async def create_client(
    db,
    scope: OrgScope,
    first_name: str = "Ada",
    last_name: str = "Lovelace",
    primary: str = "555-0100",
    zip_code: Optional[str] = None,
):
    """Create a client through the service and return its id."""
    payload = ClientCreate(
        first_name=first_name,
        last_name=last_name,
        phone_number=PhoneNumber(primary=primary),
        address=Address(city="Denton", zip=zip_code),
    )
    return await client_service.create_client(db, scope, payload)


async def create_event(
    db,
    org: str,
    name: str = "Food Drive",
    attendees: Iterable = (),
    event_date: Optional[date] = None,
) -> Event:
    """Insert an event directly; events are owned by another service."""
    event = Event(
        org=org,
        event_name=name,
        event_date=event_date or date(2024, 7, 1),
        attendee_links=[EventAttendee(client_id=client_id) for client_id in attendees],
    )
    db.add(event)
    await db.flush()
    return event


# ══════════════════════════════════════════════════════════════════════════
# Files
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_uploads(tmp_path):
    uploads = tmp_path / "uploads"
    uploads.mkdir()
    return str(uploads)


@pytest.fixture
def file_service(temp_uploads) -> FileService:
    return FileService(uploads_dir=temp_uploads)


@pytest.fixture
def sample_image_bytes():
    """Minimal JPEG: SOI + JFIF header + EOI."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

def make_token(secret: str = TEST_JWT_SECRET, expires_in: timedelta = timedelta(hours=1)) -> str:
    claims = {
        "sub": "staff@example.org",
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest_asyncio.fixture
async def test_client(session_factory, file_service, monkeypatch):
    """
    HTTPX AsyncClient wired to the app.

    Each request gets its own session on the test engine, committed on
    success like the production dependency.
    """
    from clientrecords.database import get_db_session
    from clientrecords.main import app
    from clientrecords.services.file_service import get_file_service
    from clientrecords.services.photo_service import photo_service

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_file_service] = lambda: file_service
    monkeypatch.setattr(photo_service, "_files", file_service)

    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
