"""
EventHub Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the whole suite.
How:   Every test gets its own SQLite file database (aiosqlite) with the
       full schema, including the partial unique index on bookings, so the
       double-booking guard is exercised for real rather than mocked.

Fixture Hierarchy (all function-scoped):
    ├── db_engine → session_factory → db_session
    ├── notifier: RecordingNotifier (keeps every message it was asked to send)
    ├── failing_notifier: raises NotificationError on every send
    ├── user_factory / service_factory: insert and commit rows
    ├── temp_storage / file_service: storage root under tmp_path
    ├── sample_image_bytes: minimal JPEG
    └── test_client: httpx AsyncClient wired to a fresh app with overrides
"""

import os
import tempfile

# Settings are read at import time: configure the environment first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.mkdtemp(prefix="eventhub_test_db_"), "unused.db"
)
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="eventhub_test_storage_")
os.environ["SMTP_HOST"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Any, Dict, List  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from eventhub.database import create_schema, get_db_session  # noqa: E402
from eventhub.exceptions import NotificationError  # noqa: E402
from eventhub.models import Service, User  # noqa: E402
from eventhub.services.credential_service import hash_password  # noqa: E402
from eventhub.services.file_service import FileService  # noqa: E402
from eventhub.services.notifier import Notifier  # noqa: E402

TEST_PASSWORD = "s3cret-pass"


# ══════════════════════════════════════════════════════════════════════════
# Notifier doubles
# ══════════════════════════════════════════════════════════════════════════

class RecordingNotifier(Notifier):
    """Collects notifications in memory instead of sending them."""

    def __init__(self):
        self.email_confirmations: List[Dict[str, Any]] = []
        self.booking_confirmations: List[Dict[str, Any]] = []

    async def send_email_confirmation(self, *, email, name, confirm_url):
        self.email_confirmations.append({"email": email, "name": name, "confirm_url": confirm_url})

    async def send_booking_confirmation(self, *, email, name, service_name, booking_id, date_label, price):
        self.booking_confirmations.append(
            {
                "email": email,
                "name": name,
                "service_name": service_name,
                "booking_id": booking_id,
                "date_label": date_label,
                "price": price,
            }
        )


class FailingNotifier(Notifier):
    """Every send fails, like an unreachable SMTP relay."""

    def __init__(self):
        self.attempts = 0

    async def send_email_confirmation(self, *, email, name, confirm_url):
        self.attempts += 1
        raise NotificationError(message="SMTP relay unreachable")

    async def send_booking_confirmation(self, *, email, name, service_name, booking_id, date_label, price):
        self.attempts += 1
        raise NotificationError(message="SMTP relay unreachable")


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'eventhub_test.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """A session for service-level tests; the test decides when to commit."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def user_factory(session_factory):
    """
    Insert a user and commit it.

    Usage:
        user = await user_factory(email="ann@example.com", confirmed=False)
    """
    counter = {"n": 0}

    async def create(
        name: str = "Test User",
        email: str = "",
        password: str = TEST_PASSWORD,
        role: str = "user",
        confirmed: bool = True,
    ) -> User:
        counter["n"] += 1
        user = User(
            name=name,
            email=email or f"user{counter['n']}@example.com",
            password_hash=hash_password(password),
            role=role,
            email_confirmed=confirmed,
            email_confirm_token=None if confirmed else f"token-{counter['n']}",
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
        return user

    return create


@pytest_asyncio.fixture
async def service_factory(session_factory):
    """Insert a service (price 25000 unless given) and commit it."""

    async def create(name: str = "Grand Ballroom", category: str = "venue", price: int = 25000, **extra) -> Service:
        service = Service(
            name=name,
            category=category,
            description=f"{name} for weddings and corporate events",
            price=price,
            **extra,
        )
        async with session_factory() as session:
            session.add(service)
            await session.commit()
        return service

    return create


# ══════════════════════════════════════════════════════════════════════════
# Collaborators
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return FailingNotifier()


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def file_service(temp_storage):
    return FileService(storage_root=temp_storage)


@pytest.fixture
def sample_image_bytes():
    """Smallest valid JPEG: SOI + JFIF APP0 header + EOI."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


# ══════════════════════════════════════════════════════════════════════════
# API client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory, notifier, file_service):
    """
    HTTPX AsyncClient talking to a freshly built app.

    The app's session, notifier and file store are replaced with the
    per-test ones. ASGITransport does not run the lifespan, so the real
    engine is never touched.
    """
    from eventhub.dependencies import get_file_service, get_notifier
    from eventhub.main import create_app

    app = create_app()

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_file_service] = lambda: file_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def auth_headers(test_client, user_factory):
    """Bearer header for a confirmed user, obtained through POST /api/login."""
    user = await user_factory(email="booker@example.com")
    response = await test_client.post(
        "/api/login", json={"email": user.email, "password": TEST_PASSWORD}
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}
