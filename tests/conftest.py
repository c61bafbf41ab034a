"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "test"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from scopegate.config import settings
from scopegate.database import get_session
from scopegate.main import app
from scopegate.models import AdminDirectoryEntry
from scopegate.services.credentials import hash_password
from scopegate.services.issuer import SessionIssuer
from scopegate.services.rate_limit import get_rate_limiter

ADMIN_EMAIL = "admin@example.com"
APPROVER_EMAIL = "approver@example.com"
EDITOR_EMAIL = "editor@example.com"
OUTSIDER_EMAIL = "outsider@example.com"

ADMIN_PASSWORD = "correct horse battery staple"

# Fewer iterations keep the suite fast; the encoded format is unchanged
TEST_PASSWORD_HASH = hash_password(ADMIN_PASSWORD, iterations=1_000)


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Rate limit counters are process-global; start every test clean."""
    get_rate_limiter().reset()
    yield
    get_rate_limiter().reset()


@pytest.fixture(autouse=True)
def admin_password(monkeypatch):
    """Configure the shared admin password for every test."""
    monkeypatch.setattr(settings, "admin_password_hash", TEST_PASSWORD_HASH)
    return ADMIN_PASSWORD


@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory SQLite database per test.

    StaticPool keeps the single in-memory connection alive across sessions.
    """
    engine = create_async_engine(
        settings.database_url_test,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_factory() as session:
        yield session


@pytest.fixture
async def client(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def directory(session: AsyncSession) -> dict[str, list[str]]:
    """Seed the admin directory.

    - admin@example.com: admin and coordinator
    - approver@example.com: approvals only
    - editor@example.com: updates only
    """
    entries = {
        "admin": [ADMIN_EMAIL],
        "coordinator": [ADMIN_EMAIL],
        "approvals": [APPROVER_EMAIL],
        "updates": [EDITOR_EMAIL],
    }
    for scope, emails in entries.items():
        for email in emails:
            session.add(AdminDirectoryEntry(scope=scope, email=email))
    await session.commit()
    return entries


@pytest.fixture
def issuer(session: AsyncSession) -> SessionIssuer:
    return SessionIssuer(session)


@pytest.fixture
async def admin_token(issuer: SessionIssuer, directory) -> str:
    """Bearer token for the admin (password sign-in)."""
    issued = await issuer.issue_by_password(
        ADMIN_EMAIL, ADMIN_PASSWORD, "admin", session_ttl_hours=settings.session_ttl_hours
    )
    return issued.token


@pytest.fixture
async def approver_token(issuer: SessionIssuer, directory) -> str:
    """Bearer token for the approvals-only admin."""
    issued = await issuer.issue_by_password(
        APPROVER_EMAIL, ADMIN_PASSWORD, "approvals", session_ttl_hours=settings.session_ttl_hours
    )
    return issued.token


def bearer(token: str) -> dict[str, str]:
    """Authorization header for a token."""
    return {"Authorization": f"Bearer {token}"}
