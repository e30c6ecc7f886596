"""Pytest fixtures for the integrations service tests."""

import uuid
from typing import Any, Callable, List, Optional
from unittest.mock import patch

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from auth.jwt import create_token
from config.settings import Settings
from connectors.base import BaseConnector
from connectors.encryption import TokenCipher
from database.models import Base

TEST_KEY = "8f1c3a5e7b9d0f2a4c6e8a0b2d4f6a8c0e2a4c6e8b0d2f4a6c8e0a2b4d6f8a0c"

# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        encryption_key=TEST_KEY,
        github_client_id="gh-client",
        github_client_secret="gh-secret",
        google_client_id="google-client",
        google_client_secret="google-secret",
        notion_client_id="notion-client",
        notion_client_secret="notion-secret",
        public_url="http://testserver",
        session_secret="test-session-secret",
        database_url=TEST_DATABASE_URL,
    )


@pytest.fixture
def cipher(settings) -> TokenCipher:
    return TokenCipher(settings.encryption_key)


@pytest.fixture
def user_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def auth_headers(settings) -> Callable[[str], dict]:
    """Build an Authorization header for a given user id."""

    def _headers(uid: str) -> dict:
        token = create_token(uid, settings.session_secret, 3600)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def session_factory():
    """Fresh in-memory database per test."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


class FakeTokenEndpoint:
    """Stands in for every provider's token endpoint."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.status_code = 200
        self.body: Any = {"access_token": "access-123", "refresh_token": "refresh-456", "expires_in": 3600}
        self.raw: Optional[bytes] = None
        self.exc: Optional[Exception] = None

    def respond(self, status_code: int = 200, body: Any = None, raw: Optional[bytes] = None) -> None:
        self.status_code = status_code
        self.body = body
        self.raw = raw

    def fail_with(self, exc: Exception) -> None:
        self.exc = exc

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        if self.raw is not None:
            return httpx.Response(self.status_code, content=self.raw)
        return httpx.Response(self.status_code, json=self.body)


@pytest.fixture
def token_endpoint():
    endpoint = FakeTokenEndpoint()
    with patch.object(
        BaseConnector,
        "http_client",
        lambda self: httpx.AsyncClient(transport=httpx.MockTransport(endpoint.handler)),
    ):
        yield endpoint


@pytest.fixture
def app(settings, session_factory):
    """Application wired to the test database."""
    from main import create_app

    application = create_app(settings)
    application.state.session_factory = session_factory
    return application


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
