"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own in-memory SQLite engine (aiosqlite). StaticPool
   keeps a single connection alive so every session sees the same database.
2. The app's get_db is overridden to open a new session per request,
   exactly like production, so state written by one request (e.g. an admin
   deactivating a user) is only visible to later requests after commit.
3. Env vars are set before the package is imported: bcrypt rounds drop to
   the minimum (4) so hashing doesn't dominate the suite.
"""

import os

os.environ["LEARNERCIRCLE_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LEARNERCIRCLE_BCRYPT_ROUNDS"] = "4"
os.environ["LEARNERCIRCLE_JWT_SECRET"] = "test-secret-0123456789abcdef0123456789"
os.environ["LEARNERCIRCLE_ENVIRONMENT"] = "development"

import uuid  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from learnercircle.auth.jwt import create_access_token  # noqa: E402
from learnercircle.auth.password import hash_password  # noqa: E402
from learnercircle.auth.roles import Role  # noqa: E402
from learnercircle.db.engine import get_db  # noqa: E402
from learnercircle.db.models import Base, User  # noqa: E402
from learnercircle.main import app  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite://"
DEFAULT_PASSWORD = "password_123"


def bearer(user: User) -> dict[str, str]:
    """Authorization header carrying a valid token for `user`."""
    token = create_access_token(user.id, user.email, user.role)
    return {"Authorization": f"Bearer {token}"}


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


@pytest_asyncio.fixture()
async def session_factory():
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """A session for service-level tests that don't go through HTTP."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def create_user(session_factory):
    """Factory that inserts a committed user directly, bypassing the API."""

    async def _create(
        role: Role = Role.STUDENT,
        *,
        email: str | None = None,
        password: str = DEFAULT_PASSWORD,
        first_name: str = "Ann",
        last_name: str = "Lee",
        is_active: bool = True,
        **fields,
    ) -> User:
        async with session_factory() as session:
            user = User(
                email=email or unique_email(role.value),
                password_hash=hash_password(password),
                first_name=first_name,
                last_name=last_name,
                role=role,
                is_active=is_active,
                **fields,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _create


@pytest_asyncio.fixture()
async def set_active(session_factory):
    """Flip a user's active flag outside of any request."""

    async def _set(user_id: uuid.UUID, is_active: bool) -> None:
        async with session_factory() as session:
            user = await session.get(User, user_id)
            user.is_active = is_active
            await session.commit()

    return _set


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client running the real app, including the real auth pipeline."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def auth_for():
    """`auth_for(user)` → Authorization header with a fresh token."""
    return bearer


@pytest.fixture()
def new_email():
    return unique_email
