import os

os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["CACHE_ENABLED"] = "false"

from typing import AsyncGenerator, Callable, Dict, List
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from marketplace.core.security import token_manager
from marketplace.db import base  # noqa: F401
from marketplace.db.session import build_engine, build_session_factory, get_session
from marketplace.main import app
from marketplace.models.ad_model import Ad
from marketplace.models.user_model import User

# --- Test Database Setup ---
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """A fresh in-memory database per test, with every table created."""
    engine = build_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = build_session_factory(db_engine)
    async with session_factory() as session:
        yield session


async def _client_for(db_session: AsyncSession, **transport_kwargs):
    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    transport = ASGITransport(app=app, **transport_kwargs)
    return AsyncClient(transport=transport, base_url="http://testserver")


@pytest_asyncio.fixture(scope="function")
async def test_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Provides an HTTP client for API testing, overriding the DB dependency.
    """
    client = await _client_for(db_session)
    async with client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def lenient_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Like ``test_client`` but returns 500 responses instead of re-raising."""
    client = await _client_for(db_session, raise_app_exceptions=False)
    async with client:
        yield client
    app.dependency_overrides.clear()


# --- Test Data Fixtures ---


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession) -> Callable:
    """Factory that stores a user and returns it."""

    async def _make(**overrides) -> User:
        unique_id = str(uuid.uuid4())[:8]
        data = {
            "username": f"user_{unique_id}",
            "email": f"user.{unique_id}@example.com",
            "full_name": "Test User",
            "is_active": True,
        }
        data.update(overrides)
        user = User(**data)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


@pytest_asyncio.fixture
async def make_ad(db_session: AsyncSession) -> Callable:
    """Factory that stores an ad owned by ``seller``."""

    async def _make(seller: User, **overrides) -> Ad:
        data = {
            "user_id": seller.id,
            "title": "Mountain bike",
            "price": 250,
            "images": [{"url": "https://img.example.com/bike.jpg"}],
        }
        data.update(overrides)
        ad = Ad(**data)
        db_session.add(ad)
        await db_session.commit()
        await db_session.refresh(ad)
        return ad

    return _make


@pytest_asyncio.fixture
async def alice(make_user) -> User:
    return await make_user(username="alice", full_name="Alice A")


@pytest_asyncio.fixture
async def bob(make_user) -> User:
    return await make_user(username="bob", full_name="Bob B")


@pytest_asyncio.fixture
async def carol(make_user) -> User:
    return await make_user(username="carol", full_name="Carol C")


@pytest_asyncio.fixture
async def sample_ad(make_ad, carol: User) -> Ad:
    """An ad sold by carol."""
    return await make_ad(carol)


@pytest_asyncio.fixture
async def multiple_users(make_user) -> List[User]:
    """Creates several users for pagination tests."""
    return [await make_user(username=f"member{i}") for i in range(5)]


def auth_headers(user: User) -> Dict[str, str]:
    token = token_manager.create_token(subject=user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for() -> Callable[[User], Dict[str, str]]:
    return auth_headers


@pytest.fixture
def alice_headers(alice: User) -> Dict[str, str]:
    return auth_headers(alice)


@pytest.fixture
def bob_headers(bob: User) -> Dict[str, str]:
    return auth_headers(bob)
