"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from bizos.app.main import app
from bizos.app.db.session import get_db, Base
from bizos.app.core.jwt import create_access_token
from bizos.app.core.security import get_password_hash
from bizos.app.domain.ledger.chart_of_accounts import seed_chart_of_accounts, list_accounts
from bizos.app.models.enums import UserRole
from bizos.app.models.user import User
import bizos.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False

    async def ping(self):
        if self._closed:
            return False
        return True

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        return True

    async def setex(self, key, ttl, value):
        return await self.set(key, value, ex=ttl)

    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if key in self.store else 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    """Shared session for fixture data creation."""
    async with TestingSessionLocal() as session:
        yield session

@pytest.fixture
def session_factory():
    """Factory for extra sessions (concurrent-run scenarios)."""
    return TestingSessionLocal


@pytest.fixture
async def chart(db_session):
    """Standard chart of accounts, keyed by code."""
    await seed_chart_of_accounts(db_session)
    return {account.code: account for account in await list_accounts(db_session)}


@pytest.fixture
def make_user(db_session):
    """Create a user directly in the database."""
    async def _make_user(username, role=UserRole.USER, permissions=None, password="password123", is_superuser=False):
        user = User(
            email=f"{username}@bizos.com",
            username=username,
            hashed_password=get_password_hash(password),
            role=role,
            permissions=list(permissions or []),
            is_active=True,
            is_superuser=is_superuser
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


def auth_headers_for(user):
    token = create_access_token(data={"sub": user.username, "user_id": user.id, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    """Bearer headers for an existing user."""
    return auth_headers_for


@pytest.fixture
async def admin_user(make_user):
    return await make_user("admin", role=UserRole.ADMIN, password="admin123", is_superuser=True)


@pytest.fixture
async def admin_headers(admin_user):
    return auth_headers_for(admin_user)


@pytest.fixture
async def accountant_headers(make_user):
    return auth_headers_for(await make_user("accountant", role=UserRole.ACCOUNTANT))


@pytest.fixture
async def cashier_headers(make_user):
    return auth_headers_for(await make_user("cashier", role=UserRole.CASHIER))


@pytest.fixture
async def manager_headers(make_user):
    return auth_headers_for(await make_user("manager", role=UserRole.MANAGER))
