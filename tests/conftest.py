"""
Test infrastructure for the forum.

- SQLite in-memory via aiosqlite with a StaticPool so every session shares
  the one connection that holds the database.
- ``get_db`` is overridden so requests use the test session factory.
- Tables are created before and dropped after each test.
- Redis is disabled (``cache._redis = None``) and mail delivery is off;
  tests that care about either patch the singleton methods.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("MAIL_ENABLED", "false")
os.environ.setdefault("ACCOUNT_CLEANUP_ENABLED", "false")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from forum.cache import cache
from forum.database import Base, get_db
from forum.mail import mail_service
from forum.main import app
from forum.middleware import install_query_counter
from forum.models import User
from forum.security import activation_key, hash_password

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def isolate_side_effects():
    cache._redis = None
    mail_service.enabled = False
    yield


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    async with async_session_test() as session:
        yield session


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory storing an enabled user with password ``secret``."""

    async def _make(username: str, email: str | None = None, enabled: bool = True, **fields) -> User:
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            password=hash_password("secret"),
            enabled=enabled,
            uuid=activation_key(),
            **fields,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def session_factory() -> async_sessionmaker:
    """The test session factory, for code that opens its own sessions."""
    return async_session_test
