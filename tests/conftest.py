"""Shared fixtures and utilities for tests."""

import os

# Settings are read at import time, so the environment is prepared before
# any application module is imported.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("REALTIME_ENABLED", "false")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JSON_LOGS", "false")
os.environ.setdefault("SCHEDULING_TIMEZONE", "UTC")

from datetime import datetime, timedelta, timezone
from typing import List, Tuple

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.events import InMemoryNotifier
from core.notifications import NotificationDispatcher
from core.security import create_access_token, hash_password
from database.engine import Base, get_db
import database.models  # noqa: F401
from database.models.events import Event, EventParticipant
from database.models.users import User, UserRole

TEST_PASSWORD = "Passw0rdOK"


class RecordingSender:
    """Email sender that keeps (to, subject, body, attachments) tuples."""

    def __init__(self):
        self.sent: List[Tuple] = []

    def __call__(self, to, subject, body, attachments=None):
        self.sent.append((to, subject, body, attachments))

    def subjects(self) -> List[str]:
        return [subject for _, subject, _, _ in self.sent]

    def recipients(self, subject: str) -> List[str]:
        return [to for to, s, _, _ in self.sent if s == subject]


@pytest.fixture
async def engine():
    """In-memory SQLite database shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier():
    return InMemoryNotifier()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def dispatcher(sender):
    return NotificationDispatcher(sender=sender, tz_name="UTC")


@pytest.fixture
def make_user(session):
    """Factory inserting a user with TEST_PASSWORD."""
    counter = {"n": 0}

    async def _make_user(role: UserRole = UserRole.STUDENT, **fields) -> User:
        counter["n"] += 1
        n = counter["n"]
        defaults = {
            "name": f"{role.value.title()} {n}",
            "email": f"{role.value}{n}@example.com",
        }
        if role == UserRole.STUDENT:
            defaults["student_id"] = f"S{n:04d}"
            defaults["college"] = "Engineering College"
        if role == UserRole.COORDINATOR:
            defaults["coordinator_id"] = f"C{n:03d}"
        defaults.update(fields)

        user = User(role=role, password_hash=hash_password(TEST_PASSWORD), **defaults)
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    return _make_user


@pytest.fixture
async def admin(make_user):
    return await make_user(UserRole.ADMIN, name="Admin")


@pytest.fixture
async def coordinator(make_user):
    return await make_user(UserRole.COORDINATOR, name="Coordinator")


@pytest.fixture
async def students(make_user):
    return [await make_user(UserRole.STUDENT, semester=4) for _ in range(4)]


@pytest.fixture
def make_event(session):
    """Factory inserting an event that spans the next two weeks by default."""

    async def _make_event(participants=(), **fields) -> Event:
        start = datetime.now(timezone.utc) - timedelta(days=1)
        defaults = {
            "name": "Mock Interview Drive",
            "start_date": start,
            "end_date": start + timedelta(days=15),
        }
        defaults.update(fields)
        event = Event(**defaults)
        session.add(event)
        await session.flush()
        for user in participants:
            session.add(EventParticipant(event_id=event.id, user_id=user.id))
        await session.commit()
        await session.refresh(event)
        return event

    return _make_event


def auth_headers(user: User) -> dict:
    token = create_access_token(user.id, user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(session_factory, notifier, dispatcher):
    """HTTP client bound to the app with the test database and buses."""
    from api.dependencies import get_dispatcher, get_notifier
    from api.main import app

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def headers():
    """Callable returning Bearer headers for a user."""
    return auth_headers


@pytest.fixture
def password():
    return TEST_PASSWORD
