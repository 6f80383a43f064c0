import asyncio
import json
import os
from datetime import datetime, timezone
from decimal import Decimal

# Settings are read at import time; point them at throwaway backends first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-0123456789-abcdefghijklmnop"
os.environ["APP_ENV"] = "test"
os.environ["SENTRY_DSN"] = ""
os.environ["ALERT_EMAIL"] = ""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core import redis as redis_module
from app.core.database import Base, get_db
from app.core.security import create_access_token, hash_password
from app.models.analytics import AnalyticsEvent  # noqa: F401
from app.models.user import User
from app.schemas.analytics import AnalyticsEventCreate
from app.services.analytics_service import AnalyticsService

TEST_PASSWORD = "correct-horse-battery"


# ── Fake Redis ───────────────────────────────────────────────────────────────
class FakePubSub:
    def __init__(self, messages):
        self.messages = list(messages)
        self.channels: list[str] = []
        self.closed = False

    async def subscribe(self, *channels):
        self.channels.extend(channels)

    async def unsubscribe(self, *channels):
        for channel in channels:
            if channel in self.channels:
                self.channels.remove(channel)

    async def listen(self):
        for channel in list(self.channels):
            yield {"type": "subscribe", "channel": channel, "data": 1}
        for message in self.messages:
            yield {"type": "message", "channel": self.channels[0], "data": message}
        # Real subscriptions block until the next publish
        await asyncio.Event().wait()

    async def aclose(self):
        self.closed = True


class FakePipeline:
    def __init__(self, redis):
        self.redis = redis
        self.ops = []

    def incr(self, key):
        self.ops.append(("incr", (key,)))
        return self

    def expire(self, key, ttl):
        self.ops.append(("expire", (key, ttl)))
        return self

    async def execute(self):
        results = []
        for name, args in self.ops:
            results.append(await getattr(self.redis, name)(*args))
        self.ops = []
        return results


class FakeRedis:
    """In-memory stand-in for the handful of redis.asyncio calls the app makes."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.published: list[tuple[str, str]] = []
        self.pubsub_messages: list[str] = []
        self.pubsubs: list[FakePubSub] = []

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value
        return True

    async def delete(self, *keys):
        return sum(1 for key in keys if self.store.pop(key, None) is not None)

    async def incr(self, key):
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    async def expire(self, key, ttl):
        return key in self.store

    def pipeline(self):
        return FakePipeline(self)

    async def publish(self, channel, message):
        self.published.append((channel, message))
        return 1

    async def ping(self):
        return True

    def pubsub(self):
        pubsub = FakePubSub(self.pubsub_messages)
        self.pubsubs.append(pubsub)
        return pubsub

    async def aclose(self):
        pass

    def events(self, event_type: str) -> list[dict]:
        decoded = [json.loads(message) for _, message in self.published]
        return [message for message in decoded if message["type"] == event_type]


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(redis_module, "redis_client", fake)
    return fake


# ── Database ─────────────────────────────────────────────────────────────────
@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ── Sample data ──────────────────────────────────────────────────────────────
def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def make_event():
    def _make(**overrides) -> AnalyticsEventCreate:
        fields = {
            "timestamp": utc(2024, 1, 1, 12, 0, 0),
            "revenue": Decimal("100.00"),
            "users": 10,
            "sessions": 20,
            "bounce_rate": Decimal("40.00"),
            "conversion": Decimal("2.00"),
            "region": "North America",
            "category": "Electronics",
            "source": "Direct",
        }
        fields.update(overrides)
        return AnalyticsEventCreate(**fields)

    return _make


@pytest.fixture
def sample_events(make_event):
    """Four events over three UTC days, touching both ends of 2024-01-01."""
    return [
        make_event(
            timestamp=utc(2024, 1, 1, 0, 0, 0), revenue=Decimal("100.25"),
            users=10, sessions=20, bounce_rate=Decimal("40"), conversion=Decimal("2"),
            region="North America", category="Electronics", source="Direct",
        ),
        make_event(
            timestamp=utc(2024, 1, 1, 23, 59, 59), revenue=Decimal("200.50"),
            users=20, sessions=30, bounce_rate=Decimal("60"), conversion=Decimal("4"),
            region="Europe", category="Books", source="Email",
        ),
        make_event(
            timestamp=utc(2024, 1, 2, 10, 30, 0), revenue=Decimal("300.25"),
            users=5, sessions=10, bounce_rate=Decimal("50"), conversion=Decimal("3"),
            region="North America", category="Books", source="Direct",
        ),
        make_event(
            timestamp=utc(2024, 1, 3, 8, 0, 0), revenue=Decimal("50.00"),
            users=1, sessions=2, bounce_rate=Decimal("30"), conversion=Decimal("1"),
            region="Asia", category="Toys", source="Paid Ads",
        ),
    ]


@pytest_asyncio.fixture
async def seeded(session_factory, sample_events):
    async with session_factory() as session:
        await AnalyticsService(session).ingest_events(sample_events)
        await session.commit()
    return sample_events


# ── Users & HTTP client ──────────────────────────────────────────────────────
@pytest_asyncio.fixture
async def user(session_factory):
    async with session_factory() as session:
        account = User(
            email="analyst@example.com",
            hashed_password=hash_password(TEST_PASSWORD),
            name="Analyst",
        )
        session.add(account)
        await session.commit()
        await session.refresh(account)
    return account


@pytest.fixture
def auth_headers(user):
    token = create_access_token({"sub": str(user.id), "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def fastapi_app():
    from app.main import app

    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(fastapi_app, session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac
