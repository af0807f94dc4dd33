# tests/conftest.py
import os

# Set up test environment variables BEFORE any other imports
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("FLOWISE_API_URL", "")
os.environ.setdefault("OPENAI_API_KEY", "")

import uuid

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings
from app.core.dependencies import get_current_user, validate_token
from app.database import build_engine, build_session_factory
from app.domains.threads.repository import ChatRepository
from app.main import create_app
from app.schemas.user import CurrentUser
from models import Base
from tests.factories import FLOWISE_URL, OPENAI_URL


class UpstreamStub:
    """Programmable stand-in for Flowise and OpenAI behind ``httpx.MockTransport``."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.handler = lambda request: httpx.Response(404, json={"error": "no handler"})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing at a per-test SQLite file and stub upstream URLs."""
    return Settings(
        environment="testing",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}",
        auth_jwt_secret="test-secret-key-with-enough-length-for-hs256",
        flowise_api_url=FLOWISE_URL,
        openai_api_key="sk-test",
        openai_api_url=OPENAI_URL,
        log_format="simple",
    )


@pytest_asyncio.fixture
async def session_factory(test_settings):
    """Create a fresh database per test."""
    engine = build_engine(test_settings, url=test_settings.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_factory(engine)

    await engine.dispose()


@pytest.fixture
def repository(session_factory):
    return ChatRepository(session_factory)


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def other_user_id():
    return uuid.uuid4()


@pytest_asyncio.fixture
async def thread(repository, user_id):
    """A thread owned by ``user_id``."""
    return await repository.create_thread(user_id)


@pytest.fixture
def upstream():
    return UpstreamStub()


@pytest_asyncio.fixture
async def upstream_client(upstream):
    """httpx client whose requests are answered by ``upstream``."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        yield client


@pytest.fixture
def test_app(test_settings, session_factory, upstream_client):
    """Application with state prepared the way the lifespan would prepare it."""
    app = create_app(test_settings)
    app.state.session_factory = session_factory
    app.state.http_client = upstream_client
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(test_app):
    """Unauthenticated test client."""
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def authenticated_client(test_app, user_id):
    """Create an authenticated test client."""

    def override_get_current_user():
        return CurrentUser(id=user_id, email="agent@example.com")

    def override_validate_token():
        return {"sub": str(user_id), "email": "agent@example.com"}

    test_app.dependency_overrides[get_current_user] = override_get_current_user
    test_app.dependency_overrides[validate_token] = override_validate_token

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as ac:
        yield ac
