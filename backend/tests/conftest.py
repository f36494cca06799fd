"""
NoteMark Backend - Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the test suite.
How:   Real SQLAlchemy sessions on in-memory SQLite (aiosqlite), fake grammar
       engines, and a mocked Gemini client. No network, no Java, no Postgres.

Fixture Hierarchy:
    ├── db_engine / db_session: Fresh in-memory database per test
    ├── gemini_reply: Builds "prose + JSON + prose" Gemini replies
    ├── fake_local_engine: Scriptable stand-in for LanguageTool
    ├── gemini_client: MagicMock shaped like genai.Client
    ├── gemini_service: GeminiService around gemini_client, no retry waits
    ├── note_service: NoteService wired to the fakes above
    └── test_client: HTTPX AsyncClient against an app using note_service
"""

import os

# Settings are read at import time; set test values before any app import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["LOG_LEVEL"] = "WARNING"

import json
from types import SimpleNamespace
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from tenacity import wait_none

from app.database import Base, get_db_session
from app.models.note import Note  # noqa: F401  registers the notes table
from app.schemas.grammar import GrammarIssue
from app.services.gemini_service import CircuitBreaker, GeminiService
from app.services.grammar_base import GrammarEngine
from app.services.note_service import NoteService


class FakeGrammarEngine(GrammarEngine):
    """Local engine double: returns preset issues or raises a preset error."""

    name = "fake"

    def __init__(self, issues: Optional[List[GrammarIssue]] = None):
        self.issues = issues or []
        self.error: Optional[Exception] = None
        self.checked: List[str] = []
        self.closed = False

    async def check(self, text: str) -> List[GrammarIssue]:
        self.checked.append(text)
        if self.error is not None:
            raise self.error
        return list(self.issues)

    async def health_check(self) -> Optional[bool]:
        return True if self.checked else None

    async def close(self) -> None:
        self.closed = True


def build_gemini_reply(corrected_text: str, issues: List[dict], prefix: str = "", suffix: str = "") -> str:
    """Build a Gemini-style reply: optional prose around the JSON object."""
    body = json.dumps({"correctedText": corrected_text, "issues": issues})
    return f"{prefix}{body}{suffix}"


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite shared by every session of one test (StaticPool)."""
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
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Grammar engines
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch):
    """Retries still happen, without the exponential backoff sleeps."""
    monkeypatch.setattr(GeminiService._generate_with_retry.retry, "wait", wait_none())


@pytest.fixture
def gemini_reply():
    """The build_gemini_reply helper, for test modules."""
    return build_gemini_reply


@pytest.fixture
def fake_local_engine():
    return FakeGrammarEngine()


@pytest.fixture
def gemini_client():
    """
    MagicMock shaped like genai.Client.

    Usage:
        gemini_client.aio.models.generate_content.return_value = SimpleNamespace(text="...")
    """
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=SimpleNamespace(text=build_gemini_reply("", []))
    )
    client.aio.models.get = AsyncMock(return_value=SimpleNamespace(name="models/test"))
    client.aio.aclose = AsyncMock()
    return client


@pytest.fixture
def gemini_service(gemini_client):
    return GeminiService(
        client=gemini_client,
        model="gemini-test",
        timeout=5.0,
        circuit_breaker=CircuitBreaker(failure_threshold=5, recovery_timeout=60),
    )


@pytest.fixture
def note_service(gemini_service, fake_local_engine):
    return NoteService(remote_engine=gemini_service, local_engine=fake_local_engine)


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(note_service, session_factory):
    """
    HTTPX AsyncClient talking to a fresh app through ASGITransport.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    from app.main import create_app

    app = create_app(note_service=note_service)

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
