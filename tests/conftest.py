"""Pytest configuration and fixtures."""

import os
import tempfile
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession

# Set test environment before any app code runs
_TMP_DIR = Path(tempfile.mkdtemp(prefix="devstack-tests-"))
os.environ["ENV"] = "test"
os.environ["JWT_SECRET"] = "test-secret-key"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR / 'test.db'}"
os.environ["UPLOAD_DIR"] = str(_TMP_DIR / "uploads")
os.environ["RATE_LIMIT_ENABLED"] = "true"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ.pop("REDIS_URL", None)
os.environ.pop("SENTRY_DSN", None)

TEST_PASSWORD = "Secret123"


def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
    # ON DELETE CASCADE is only enforced with this pragma
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
async def setup_database() -> AsyncGenerator[None, None]:
    """Create all tables on a fresh engine for each test."""
    from devstack.config import get_settings

    get_settings.cache_clear()  # Use test env/DB, not stale or .env values
    from devstack import models  # noqa: F401
    from devstack.database import Base, get_engine, reset_engine

    reset_engine()
    engine = get_engine()
    event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()
    reset_engine()


@pytest.fixture
async def db_session(setup_database) -> AsyncGenerator[AsyncSession, None]:
    """Session on the same database the app uses. Commit to make rows visible."""
    from devstack.database import get_session_maker

    async with get_session_maker()() as session:
        yield session


@pytest.fixture
async def recorder(setup_database):
    """Analytics recorder attached to the app; drained after each test."""
    from devstack.database import get_session_maker
    from devstack.main import app
    from devstack.services.analytics import AnalyticsRecorder

    analytics = AnalyticsRecorder(get_session_maker())
    app.state.analytics = analytics
    yield analytics
    await analytics.drain()


@pytest.fixture
async def client(setup_database, recorder) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client with fresh rate-limit state."""
    from devstack.main import app
    from devstack.ratelimit import InMemoryRateLimitStore

    app.state.rate_limit_store = InMemoryRateLimitStore()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable]:
    """Factory for verified, active users stored directly in the database."""
    from fastapi_users.password import PasswordHelper

    from devstack.database import utcnow
    from devstack.models import User

    helper = PasswordHelper()

    async def _make(username: str = "alice", **overrides):
        fields = {
            "email": f"{username}@example.com",
            "hashed_password": helper.hash(TEST_PASSWORD),
            "username": username,
            "display_name": username.title(),
            "is_active": True,
            "is_verified": True,
            "email_verified_at": utcnow(),
            "is_public": True,
        }
        fields.update(overrides)
        user = User(**fields)
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def make_project(db_session: AsyncSession) -> Callable[..., Awaitable]:
    """Factory for projects appended to their owner's ordering."""
    from devstack.models import Project

    async def _make(user, title: str = "Project", position: int = 0, **overrides):
        fields = {
            "user_id": user.id,
            "title": title,
            "tech_stack": ["Python"],
            "status": "live",
            "is_public": True,
            "position": position,
        }
        fields.update(overrides)
        project = Project(**fields)
        db_session.add(project)
        await db_session.commit()
        return project

    return _make


@pytest.fixture
def auth_headers() -> Callable[[uuid.UUID], dict[str, str]]:
    """Build a bearer header accepted by the JWT backend."""
    from devstack.auth import create_access_token

    def _headers(user_id: uuid.UUID) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(str(user_id))}"}

    return _headers
