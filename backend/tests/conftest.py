"""Pytest configuration and fixtures for CupTrace tests.

Each test gets its own SQLite database (file-backed, in tmp_path) and an
in-memory stand-in for Redis, so no external services are needed.
"""

import fnmatch
import os
import time
from typing import AsyncGenerator, Callable, Generator

# Must be set before cuptrace.main is imported (middleware reads it at import)
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import cuptrace.models  # noqa: F401
from cuptrace.auth.jwt import create_access_token
from cuptrace.auth.password import hash_password
from cuptrace.auth.permissions import resolve_permissions
from cuptrace.database import Base, get_db
from cuptrace.main import app
from cuptrace.models.cooperative import Cooperative
from cuptrace.models.user import User, UserRole
from cuptrace.utils import cache as cache_module
from cuptrace.utils.cache import discard_pending_invalidations, run_pending_invalidations
from cuptrace.utils.hashing import generate_farmer_public_hash

TEST_PASSWORD = "testpassword123"


# ── Fake Redis ───────────────────────────────────────────────

class FakeRedis:
    """Just enough of redis.asyncio.Redis for caching, revocation and rate limiting."""

    def __init__(self):
        self.store: dict[str, tuple[str, float | None]] = {}
        self.zsets: dict[str, dict[str, float]] = {}

    def _alive(self, key: str) -> bool:
        entry = self.store.get(key)
        if entry is None:
            return False
        expires_at = entry[1]
        if expires_at is not None and expires_at <= time.time():
            del self.store[key]
            return False
        return True

    async def get(self, key):
        return self.store[key][0] if self._alive(key) else None

    async def set(self, key, value, ex=None):
        self.store[key] = (str(value), time.time() + ex if ex else None)
        return True

    async def setex(self, key, ttl, value):
        return await self.set(key, value, ex=ttl)

    async def exists(self, *keys):
        return sum(1 for k in keys if self._alive(k))

    async def delete(self, *keys):
        removed = 0
        for k in keys:
            if self.store.pop(k, None) is not None:
                removed += 1
        return removed

    async def scan_iter(self, match="*"):
        for key in list(self.store):
            if self._alive(key) and fnmatch.fnmatch(key, match):
                yield key

    # Sorted sets (rate limiter)

    async def zadd(self, key, mapping):
        self.zsets.setdefault(key, {}).update(mapping)
        return len(mapping)

    async def zremrangebyscore(self, key, min_score, max_score):
        members = self.zsets.get(key, {})
        doomed = [m for m, s in members.items() if min_score <= s <= max_score]
        for m in doomed:
            del members[m]
        return len(doomed)

    async def zcard(self, key):
        return len(self.zsets.get(key, {}))

    async def zrange(self, key, start, end, withscores=False):
        ordered = sorted(self.zsets.get(key, {}).items(), key=lambda item: item[1])
        end = len(ordered) if end == -1 else end + 1
        selected = ordered[start:end]
        return selected if withscores else [m for m, _ in selected]

    async def expire(self, key, ttl):
        return True

    async def flushdb(self):
        self.store.clear()
        self.zsets.clear()
        return True

    async def ping(self):
        return True

    async def aclose(self):
        return None


@pytest.fixture(autouse=True)
def fake_redis() -> Generator[FakeRedis, None, None]:
    """Install a fresh FakeRedis as the shared client for every test."""
    client = FakeRedis()
    cache_module._redis_client = client
    yield client
    cache_module._redis_client = None


# ── Test Database Setup ──────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'cuptrace_test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Test client whose requests each get a fresh committed-on-success session."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                discard_pending_invalidations(session)
                await session.rollback()
                raise
            await run_pending_invalidations(session)

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Test Data Fixtures ───────────────────────────────────────

@pytest.fixture
def make_user(session_factory) -> Callable:
    """Factory: ``await make_user(UserRole.FARMER, cooperative_id=...)``."""
    counter = {"n": 0}

    async def _make(
        role: UserRole = UserRole.FARMER,
        email: str | None = None,
        cooperative_id: str | None = None,
        is_active: bool = True,
        full_name: str | None = None,
    ) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"{role.value}{counter['n']}@cuptrace.rw",
            hashed_password=hash_password(TEST_PASSWORD),
            full_name=full_name or f"Test {role.value.replace('_', ' ').title()}",
            phone="+250788123456",
            role=role,
            is_active=is_active,
            cooperative_id=cooperative_id,
        )
        async with session_factory() as session:
            session.add(user)
            await session.flush()
            if role == UserRole.FARMER:
                user.public_hash = generate_farmer_public_hash(user.id)
            await session.commit()
        return user

    return _make


@pytest.fixture
def auth_headers() -> Callable[[User], dict]:
    """Factory: bearer headers carrying the user's role permissions."""

    def _headers(user: User) -> dict:
        token = create_access_token(
            user_id=user.id,
            role=user.role.value,
            permissions=resolve_permissions(user.role.value),
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def cooperative(session_factory) -> Cooperative:
    coop = Cooperative(name="Abakundakawa", location="Gakenke, Northern Province")
    async with session_factory() as session:
        session.add(coop)
        await session.commit()
    return coop


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user(UserRole.ADMIN, email="admin@cuptrace.rw")


@pytest_asyncio.fixture
async def qc(make_user) -> User:
    return await make_user(UserRole.QC, email="qc@cuptrace.rw")


@pytest_asyncio.fixture
async def farmer(make_user, cooperative) -> User:
    return await make_user(
        UserRole.FARMER, email="farmer@cuptrace.rw", cooperative_id=cooperative.id
    )


@pytest_asyncio.fixture
async def washing_station(make_user) -> User:
    return await make_user(UserRole.WASHING_STATION, email="station@cuptrace.rw")


@pytest_asyncio.fixture
async def factory(make_user) -> User:
    return await make_user(UserRole.FACTORY, email="factory@cuptrace.rw")


@pytest_asyncio.fixture
async def exporter(make_user) -> User:
    return await make_user(UserRole.EXPORTER, email="exporter@cuptrace.rw")


@pytest_asyncio.fixture
async def create_batch(client, farmer, auth_headers) -> Callable:
    """Factory: register a batch as ``farmer`` (or ``as_user``) and return its JSON."""

    async def _create(as_user: User | None = None, **fields) -> dict:
        payload = {
            "type": "coffee",
            "origin_location": "Gakenke, Northern Province",
            "quantity": 500.0,
            "quality": "AA",
            "grade": "Specialty",
            "moisture": 11.5,
            **fields,
        }
        response = await client.post(
            "/api/batches/", json=payload, headers=auth_headers(as_user or farmer)
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest_asyncio.fixture
async def approved_batch(client, create_batch, qc, auth_headers) -> dict:
    """A coffee batch approved by QC, still at the farmer stage."""
    batch = await create_batch()
    response = await client.post(
        f"/api/batches/{batch['id']}/approve", headers=auth_headers(qc)
    )
    assert response.status_code == 200, response.text
    return response.json()


# ── Test Markers ─────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: API endpoint tests")
    config.addinivalue_line("markers", "auth: Authentication tests")
    config.addinivalue_line("markers", "cache: Cache tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
