"""
Test fixtures for the InvestBridge decision engine.

Provides:
- In-memory SQLite store and identity provider, fresh per test
- Recording push transport with switchable failures
- Wired platform (all engine components) and a user factory
- Authenticated FastAPI test client
"""

from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import investbridge.db.models  # noqa: F401  register tables
from investbridge.api.deps import Platform, build_platform, get_platform
from investbridge.config import settings
from investbridge.db.engine import Base
from investbridge.errors import DeliveryFailure
from investbridge.push.transport import PushMessage
from investbridge.store.base import Collections, Filter, new_document_id

# In-memory SQLite; StaticPool keeps one connection so every session sees the same tables
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


# ── Store ────────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        TEST_DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# ── Push ─────────────────────────────────────────────────────────────────


class RecordingPushTransport:
    """Records every send; tokens listed in ``failing`` raise DeliveryFailure."""

    enabled = True

    def __init__(self):
        self.sent: list[tuple[str, PushMessage]] = []
        self.failing: set[str] = set()

    async def send(self, device_token: str, message: PushMessage) -> bool:
        if device_token in self.failing:
            raise DeliveryFailure(f"HTTP 500 for {device_token}", status=500)
        self.sent.append((device_token, message))
        return True


@pytest.fixture
def push() -> RecordingPushTransport:
    return RecordingPushTransport()


# ── Platform ─────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def platform(session_factory, push) -> Platform:
    return build_platform(session_factory, push=push)


@pytest_asyncio.fixture
async def store(platform):
    return platform.store


@pytest.fixture
def make_user(platform):
    """Factory: store a user record and its identity claim, return the id."""

    async def _make_user(
        role: Optional[str] = "user",
        user_id: Optional[str] = None,
        claim_role: Optional[str] = None,
        **fields,
    ) -> str:
        uid = user_id or f"user-{new_document_id()[:8]}"
        record = {"email": f"{uid}@example.com", "name": f"Test {uid}", **fields}
        if role is not None:
            record["role"] = role
        await platform.store.set(Collections.USERS, uid, record)
        await platform.identity.set_claims(uid, {"role": claim_role or role or "user"})
        return uid

    return _make_user


@pytest.fixture
def token_for(platform):
    """Factory: mint a bearer token for an identity with the given role claim."""

    def _token_for(user_id: str, role: str = "user") -> str:
        return platform.identity.encode(user_id, {"role": role})

    return _token_for


@pytest.fixture
def caller_for(platform, token_for):
    """Factory: verified Caller for an identity, as the API layer would build it."""

    def _caller_for(user_id: str, role: str = "user"):
        return platform.identity.verify_caller(token_for(user_id, role))

    return _caller_for


@pytest.fixture
def audit_entries(store):
    """Factory: audit log entries, optionally narrowed to one action."""

    async def _entries(action: Optional[str] = None) -> list:
        filters = [Filter("action", "==", action)] if action else []
        return await store.query(Collections.LOGS, filters)

    return _entries


# ── API Client ───────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(platform) -> AsyncGenerator[AsyncClient, None]:
    from investbridge.main import app

    app.dependency_overrides[get_platform] = lambda: platform
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def trigger_headers() -> dict:
    return {"X-Trigger-Key": settings.trigger_api_key}


@pytest.fixture
def auth_headers(token_for):
    """Factory: Authorization header for an identity and role claim."""

    def _auth_headers(user_id: str, role: str = "user") -> dict:
        return {"Authorization": f"Bearer {token_for(user_id, role)}"}

    return _auth_headers
