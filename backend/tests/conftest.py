"""
Chirp Backend — Test Configuration (conftest.py)
==================================================

What:  Shared pytest fixtures for the whole suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite,
       StaticPool so all sessions share one connection) with the real
       tables created from Base.metadata. The media host is a mock.

Fixture Hierarchy (all function-scoped):
    ├── db_engine: in-memory engine with tables created
    ├── db_session: AsyncSession for service-level tests
    ├── fake_media: MagicMock(spec=MediaHost), patched into the services
    ├── make_user: factory creating committed users through AuthService
    ├── test_client: anonymous HTTPX AsyncClient over ASGITransport
    └── client_for: factory returning a client logged in as a given user
"""

import os
import tempfile

# Settings are read at import time: configure the environment first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "development"
os.environ["JWT_SECRET"] = "test-secret-that-is-long-enough-for-hs256-signing"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["MEDIA_BACKEND"] = "local"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="chirp_test_")
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator, Callable, List  # noqa: E402
from unittest.mock import MagicMock, patch  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from chirp.database import Base, get_db_session  # noqa: E402
from chirp.models.user import User  # noqa: E402
from chirp.schemas.user import SignupRequest  # noqa: E402
from chirp.services.auth_service import auth_service  # noqa: E402
from chirp.services.media_base import MediaHost  # noqa: E402
from chirp.services.post_service import post_service  # noqa: E402
from chirp.services.user_service import user_service  # noqa: E402

TEST_PASSWORD = "Secret#123"
HOSTED_URL = "https://res.cloudinary.com/demo/image/upload/v1/chirp/{name}.png"


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
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
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Session for service-level tests.

    Services only flush, so tests can inspect state without committing.
    """
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Media host
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def fake_media():
    """
    Mock media host patched into PostService and UserService.

    upload() returns a distinct Cloudinary-style URL per call.
    """
    media = MagicMock(spec=MediaHost)
    counter = {"n": 0}

    async def upload(source: str) -> str:
        counter["n"] += 1
        return HOSTED_URL.format(name=f"img{counter['n']}")

    media.upload.side_effect = upload
    media.delete.return_value = None
    media.health_status.return_value = "available"

    with patch.object(post_service, "media", media), patch.object(user_service, "media", media):
        yield media


# ══════════════════════════════════════════════════════════════════════════
# Users
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_user(session_factory) -> Callable:
    """
    Factory creating a committed user through AuthService.signup.

    Usage:
        alice = await make_user("alice")
    """

    async def _make(username: str, full_name: str = "", email: str = "") -> User:
        async with session_factory() as session:
            user, _ = await auth_service.signup(
                session,
                SignupRequest(
                    full_name=full_name or f"{username.capitalize()} Tester",
                    username=username,
                    email=email or f"{username}@chirp.dev",
                    password=TEST_PASSWORD,
                ),
            )
            await session.commit()
            return user

    return _make


# ══════════════════════════════════════════════════════════════════════════
# HTTP clients
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def app(session_factory, fake_media):
    """The FastAPI app with get_db_session bound to the test database."""
    from chirp.main import app as fastapi_app

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db_session] = override_get_db_session
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Anonymous client (no session cookie)."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def client_for(app) -> AsyncGenerator[Callable, None]:
    """
    Factory returning a client whose jwt cookie belongs to the given user.

    Usage:
        alice_client = client_for(alice)
        await alice_client.get("/api/v1/auth/me")
    """
    clients: List[AsyncClient] = []

    def _client(user: User) -> AsyncClient:
        client = AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            cookies={"jwt": auth_service.create_token(user.id)},
        )
        clients.append(client)
        return client

    yield _client

    for client in clients:
        await client.aclose()
