"""
Pytest fixtures for TechPulse tests.
"""

import asyncio
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from techpulse.config import AppState, state
from techpulse.database import Database
from techpulse.providers.base import LLMProvider, LLMResponse, ModelTier, ProviderCapabilities
from techpulse.rate_limit import limiter
from techpulse.server import app, init_state

STATE_FIELDS = [name for name in vars(AppState) if not name.startswith("_")]


class MockProvider(LLMProvider):
    """
    Mock LLM provider that returns pre-configured responses.

    Queued items are returned in order; an Exception instance is raised
    instead of returned. With nothing queued, the reply echoes the last user
    message. `delay` makes each call take that many seconds.
    """

    TIER_MODELS = {
        ModelTier.FAST: "mock-fast",
        ModelTier.STANDARD: "mock-standard",
        ModelTier.ADVANCED: "mock-advanced",
    }

    def __init__(self, delay: float = 0.0):
        self.calls: list[dict] = []
        self.responses: list = []
        self.delay = delay

    @property
    def name(self) -> str:
        return "mock"

    @property
    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities()

    def queue_response(self, text: str):
        """Queue a response to be returned on the next call."""
        self.responses.append(text)

    def queue_error(self, error: Exception):
        """Queue an exception to be raised on the next call."""
        self.responses.append(error)

    def complete_chat(
        self,
        messages: list[dict],
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.0,
        use_cache: bool = False,
    ) -> LLMResponse:
        self.calls.append({
            "messages": [dict(m) for m in messages],
            "system_prompt": system_prompt,
            "model": model,
            "max_tokens": max_tokens,
        })
        if self.responses:
            item = self.responses.pop(0)
            if isinstance(item, Exception):
                raise item
            return LLMResponse(text=item, model=model or "mock-fast")
        last_user = next((m["content"] for m in reversed(messages) if m["role"] == "user"), "")
        return LLMResponse(text=f"Reply to: {last_user}", model=model or "mock-fast")

    async def complete_chat_async(
        self,
        messages: list[dict],
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.0,
        use_cache: bool = False,
    ) -> LLMResponse:
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.complete_chat(messages, system_prompt, model, max_tokens, temperature, use_cache)


def add_article(
    db: Database,
    url: str,
    title: str = "Test Article",
    content: str = "This is the content of a test article. It has enough text to be meaningful.",
    category: str = "others",
    published_at: datetime | None = None,
    source_id: int | None = None,
) -> int:
    """Insert an article directly through the repository boundary."""
    _, article_id = db.upsert_article(
        url=url,
        title=title,
        content=content,
        snippet=content[:300],
        content_hash=f"hash-{url}-{title}",
        source_id=source_id,
        published_at=published_at or datetime.now(timezone.utc),
        category=category,
        sentiment="neutral",
        sentiment_score=0.0,
    )
    return article_id


@pytest.fixture
def temp_db_path():
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        yield Path(f.name)
    # Cleanup
    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(f.name + suffix):
            os.unlink(f.name + suffix)


@pytest.fixture
def test_db(temp_db_path):
    """Create a test database instance."""
    db = Database(temp_db_path)
    yield db


@pytest.fixture
def mock_provider():
    return MockProvider()


def _make_client(temp_db_path, provider):
    original = {name: getattr(state, name) for name in STATE_FIELDS}
    init_state(temp_db_path, provider)
    limiter.reset()
    return original


def _restore(original):
    for name, value in original.items():
        setattr(state, name, value)


@pytest.fixture
def client(temp_db_path):
    """Create a test client with an isolated database and no LLM provider."""
    original = _make_client(temp_db_path, provider=None)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    _restore(original)


@pytest.fixture
def client_with_data(temp_db_path, mock_provider):
    """Test client with a mock provider and some sample data pre-populated."""
    original = _make_client(temp_db_path, provider=mock_provider)
    db = state.db

    source_id = db.add_source(
        name="Test Source",
        url="https://example.com",
        feed_url="https://example.com/feed.xml",
    )
    article1_id = add_article(
        db,
        "https://example.com/article1",
        title="Acme raises $10M for AI startup",
        category="startups",
        source_id=source_id,
    )
    article2_id = add_article(
        db,
        "https://example.com/article2",
        title="Ransomware gang hits hospital network",
        content="A ransomware attack disrupted systems. The breach is under investigation.",
        category="cybersecurity",
        source_id=source_id,
    )

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client, {
            "source_id": source_id,
            "article_ids": [article1_id, article2_id],
            "provider": mock_provider,
        }

    _restore(original)

