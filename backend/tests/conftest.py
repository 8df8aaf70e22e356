"""
Centralized Test Configuration.
"""

import secrets

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.pool import Pool
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.core.exceptions import UpstreamDependencyError
from backend.app.core.jwt import create_access_token
from backend.app.models.device import Device
from backend.app.models.enums import UserRole
from backend.app.models.user import User
from backend.app.services.geocoder import get_geocoder
import backend.app.core.redis_client as redis_client_module


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
    
    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0
    
    async def flushdb(self):
        if not self._closed:
            self.store = {}
        
    async def aclose(self):
        self._closed = True
        self.store = {}


class FakeGeocoder:
    """Stand-in for the Nominatim geocoder."""
    
    def __init__(self):
        self.names = {}
        self.default_name = "Testville"
        self.fail = False
        self.calls = []
    
    async def reverse(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        if self.fail:
            raise UpstreamDependencyError("geocoder unavailable")
        return self.names.get((latitude, longitude), self.default_name)


# Event handler to enable foreign keys for SQLite
@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if "sqlite" in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# File-backed SQLite so separate sessions use separate connections
@pytest.fixture
async def engine(tmp_path):
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tracker.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield test_engine
    
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_redis(monkeypatch):
    client = MockRedis()
    monkeypatch.setattr(redis_client_module, "redis_client", client)
    return client


@pytest.fixture
def fake_geocoder():
    return FakeGeocoder()


@pytest.fixture(autouse=True)
def apply_overrides(session_factory, fake_geocoder, mock_redis):
    """Route the app to the test database, cache and geocoder."""
    
    async def override_get_db():
        async with session_factory() as session:
            yield session
    
    async def override_get_geocoder():
        return fake_geocoder
    
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_geocoder] = override_get_geocoder
    yield
    
    app.dependency_overrides = {}


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def _create_user(session, name, email, role=UserRole.USER) -> User:
    user = User(
        name=name,
        email=email,
        role=role,
        unique_code=secrets.token_hex(8).upper(),
    )
    session.add(user)
    await session.commit()
    return user


def _auth_headers(user: User) -> dict:
    token = create_access_token({"sub": user.email, "user_id": user.id, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def user(db_session):
    return await _create_user(db_session, "Alice", "alice@test.com")


@pytest.fixture
async def other_user(db_session):
    return await _create_user(db_session, "Bob", "bob@test.com")


@pytest.fixture
async def admin(db_session):
    return await _create_user(db_session, "Admin", "admin@test.com", role=UserRole.ADMIN)


@pytest.fixture
async def device(db_session, user):
    device = Device(qr_code="1234567890123456", user_id=user.id)
    db_session.add(device)
    await db_session.commit()
    return device


@pytest.fixture
def fetch(session_factory):
    """Read a row through a fresh session."""
    async def _fetch(model, pk):
        async with session_factory() as session:
            return await session.get(model, pk)
    return _fetch


@pytest.fixture
def make_user(db_session):
    async def _make(name, email, role=UserRole.USER):
        return await _create_user(db_session, name, email, role)
    return _make


@pytest.fixture
def auth_headers():
    """Bearer headers for a user, as issued by the auth service."""
    return _auth_headers
