"""Test fixtures for BlockBot auth core tests."""

import os
import uuid

# Settings are read at import time; provide test values before importing app.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("JWT_ACCESS_SECRET", "test-access-secret-0123456789abcdef0123456789")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-fedcba9876543210fedcba98")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("APP_URL", "http://test")
# Cheap Argon2id parameters keep the suite fast; the algorithm is unchanged
os.environ.setdefault("ARGON2_MEMORY_COST", "1024")
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_PARALLELISM", "1")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.dialects.sqlite.base import SQLiteTypeCompiler  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.config import settings  # noqa: E402
from app.core.dependencies import Services, build_services  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.services.email_service import EmailSender  # noqa: E402

# Override with TEST_DATABASE_URL env var for PostgreSQL integration tests.
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

# Map PostgreSQL UUID columns to TEXT when running on SQLite
SQLiteTypeCompiler.visit_UUID = lambda self, type_, **kw: "TEXT"  # type: ignore[attr-defined]


class RecordingEmailSender(EmailSender):
    """Captures outgoing mail instead of calling Resend."""

    def __init__(self):
        super().__init__(api_key="", from_email="test@blockbot.dev", app_url="http://test")
        self.sent: list[dict] = []

    async def send_magic_link(self, email: str, token: str) -> bool:
        self.sent.append({"kind": "magic_link", "to": email, "token": token})
        return True

    async def send_invitation(self, email, token, org_name, inviter_email=None) -> bool:
        self.sent.append({"kind": "invitation", "to": email, "token": token, "org_name": org_name})
        return True

    async def send_added_to_org(self, email, org_name, inviter_email) -> bool:
        self.sent.append({"kind": "added_to_org", "to": email, "org_name": org_name})
        return True

    def last_token(self, kind: str) -> str:
        return [m for m in self.sent if m["kind"] == kind][-1]["token"]


@pytest.fixture
async def engine(tmp_path):
    """Fresh database per test. NullPool gives each session its own connection."""
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    connect_args = {"timeout": 30} if url.startswith("sqlite") else {}
    test_engine = create_async_engine(url, poolclass=NullPool, connect_args=connect_args)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncSession:
    """Get a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def outbox() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def services(outbox) -> Services:
    return build_services(settings, email_sender=outbox)


@pytest.fixture
async def client(session_factory, services: Services) -> AsyncClient:
    """HTTP client against the app, one committed session per request."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.state.services = services
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def register_user(client: AsyncClient):
    """Register a user with their own org; returns the response body."""

    async def _register(email: str | None = None, password: str = "password123") -> dict:
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "email": email or f"user-{uuid.uuid4().hex[:8]}@example.com",
                "password": password,
                "orgName": "Test Org",
            },
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest.fixture
async def auth_headers(register_user) -> dict:
    """Sign up a test user and return auth headers."""
    body = await register_user()
    return {"Authorization": f"Bearer {body['accessToken']}"}
