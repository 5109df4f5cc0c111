"""Shared fixtures: a throwaway SQLite database, a recording push sender and an API client."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

import ukmband.models  # noqa: F401
from ukmband.database import Base, enable_sqlite_foreign_keys, get_db
from ukmband.models.event import Event, EventStatus
from ukmband.models.event_personnel import EventPersonnel, PersonnelStatus
from ukmband.models.fcm_subscription import FCMSubscription
from ukmband.models.user import OrganizationLevel, User
from ukmband.routers.auth import COOKIE_KEY, create_access_token
from ukmband.services.activity import ActivityScanner
from ukmband.services.dispatcher import NotificationDispatcher
from ukmband.services.events import dashboard_cache
from ukmband.services.push import PushSender
from ukmband.services.reminders import ReminderScanner

NOW = datetime(2030, 3, 9, 12, 0, tzinfo=timezone.utc)


def fcm_token(tag: str) -> str:
    """A realistic-length registration token."""
    return f"{tag}:" + "x" * 150


class RecordingPushSender(PushSender):
    """Keeps every message; raises for tokens listed in ``failing``."""

    def __init__(self, failing: Iterable[str] = ()):
        self.failing = set(failing)
        self.messages: List[Dict[str, Any]] = []

    async def send(self, message: Dict[str, Any]) -> str:
        if message["token"] in self.failing:
            raise RuntimeError("Requested entity was not found.")
        self.messages.append(message)
        return f"projects/test/messages/{len(self.messages)}"

    def tokens(self) -> List[str]:
        return [m["token"] for m in self.messages]


# ── Database ──

@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = enable_sqlite_foreign_keys(
        create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ukmband-test.db'}")
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def _clear_dashboard_cache():
    dashboard_cache.clear()
    yield
    dashboard_cache.clear()


# ── Services ──

@pytest.fixture
def push_sender():
    return RecordingPushSender()


@pytest.fixture
def dispatcher(session_factory, push_sender):
    return NotificationDispatcher(session_factory, push_sender, max_concurrency=5)


@pytest.fixture
def scanner(session_factory, dispatcher):
    return ReminderScanner(
        session_factory,
        dispatcher,
        activity_scanner=ActivityScanner(session_factory, dispatcher),
        dedup_enabled=False,
    )


# ── Factories ──

@pytest.fixture
def make_user(db):
    async def _make(
        name: str,
        level: OrganizationLevel = OrganizationLevel.TALENT,
        instruments: Optional[List[str]] = None,
        tokens: Iterable[str] = (),
    ) -> User:
        user = User(
            name=name,
            email=f"{name.lower().replace(' ', '.')}@example.com",
            organization_lvl=level,
        )
        user.instruments = instruments or []
        db.add(user)
        await db.flush()
        for token in tokens:
            db.add(FCMSubscription(user_id=user.id, token=token, is_active=True))
        await db.commit()
        return user

    return _make


@pytest.fixture
def make_event(db):
    async def _make(
        title: str,
        date: datetime,
        status: EventStatus = EventStatus.PUBLISHED,
        approved: Iterable[User] = (),
        open_roles: Iterable[str] = (),
        location: str = "Aula BINUS Bekasi",
        created_at: Optional[datetime] = None,
    ) -> Event:
        stamp = date - timedelta(days=30)
        event = Event(
            title=title,
            date=date,
            location=location,
            status=status,
            created_at=created_at or stamp,
        )
        db.add(event)
        await db.flush()
        for user in approved:
            db.add(
                EventPersonnel(
                    event_id=event.id,
                    user_id=user.id,
                    role="Vokal",
                    status=PersonnelStatus.APPROVED,
                    created_at=stamp,
                    approved_at=stamp,
                )
            )
        for role in open_roles:
            db.add(EventPersonnel(event_id=event.id, role=role, created_at=stamp))
        await db.commit()
        return event

    return _make


# ── API ──

@pytest.fixture
def app(session_factory, dispatcher, scanner):
    from ukmband.main import app
    from ukmband.routers.reminders import get_dispatcher, get_reminder_scanner

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_reminder_scanner] = lambda: scanner
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def auth_headers(user: User) -> Dict[str, str]:
    """Session cookie for ``user``, sent as a raw header."""
    return {"Cookie": f"{COOKIE_KEY}={create_access_token({'sub': str(user.id)})}"}
