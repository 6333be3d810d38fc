"""
Database models - dataclasses for database entities.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass
class DBSource:
    id: int
    name: str
    url: str  # Site origin
    feed_url: str
    is_active: bool
    fetch_interval_minutes: int
    last_fetched: datetime | None
    fetch_error: str | None = None
    created_at: datetime | None = None


@dataclass
class DBArticle:
    id: int
    title: str
    url: str  # Canonical URL, unique across the corpus
    content: str | None
    snippet: str | None
    content_hash: str | None
    source_id: int | None
    published_at: datetime | None
    fetched_at: datetime
    category: str
    sentiment: str | None
    sentiment_score: float | None
    view_count: int
    created_at: datetime
    updated_at: datetime


@dataclass
class DBBookmark:
    user_id: str
    article_id: int
    created_at: datetime


@dataclass
class DBTrendingTopic:
    id: int
    window: str  # today, week, month
    date: str  # YYYY-MM-DD bucket the window ends in
    topic: str
    mention_count: int
    category: str | None
    growth_rate: float | None
    created_at: datetime


@dataclass
class DBChatMessage:
    id: int
    user_id: str
    article_id: int
    role: str  # user, assistant, system
    content: str
    created_at: datetime
    kind: str = "chat"  # chat or summary
    model_used: str | None = None
    metadata: dict = field(default_factory=dict)


class UpsertStatus(str, Enum):
    """Outcome of writing a fetched article."""
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
