"""
Database facade - provides unified access to all repositories.

The method names here form the repository boundary the rest of the core
depends on; each call is a single-row (or single-window) transaction.
"""

from datetime import datetime
from pathlib import Path

from .connection import DatabaseConnection
from .article_repository import ArticleRepository
from .bookmark_repository import BookmarkRepository
from .chat_repository import ChatRepository
from .source_repository import SourceRepository
from .trending_repository import TrendingRepository, TrendingTopicRecord
from .models import (
    DBArticle,
    DBBookmark,
    DBChatMessage,
    DBSource,
    DBTrendingTopic,
    UpsertStatus,
)


class Database:
    """
    Unified database access facade.

    Repositories are also exposed directly (db.articles, db.chat, ...).
    """

    def __init__(self, db_path: Path):
        self._connection = DatabaseConnection(db_path)

        # Initialize repositories
        self.sources = SourceRepository(self._connection)
        self.articles = ArticleRepository(self._connection)
        self.bookmarks = BookmarkRepository(self._connection)
        self.trending = TrendingRepository(self._connection)
        self.chat = ChatRepository(self._connection)

    # ─────────────────────────────────────────────────────────────
    # Source operations (delegated to SourceRepository)
    # ─────────────────────────────────────────────────────────────

    def add_source(
        self,
        name: str,
        url: str,
        feed_url: str,
        fetch_interval_minutes: int = 30,
    ) -> int:
        return self.sources.add(name, url, feed_url, fetch_interval_minutes)

    def get_source(self, source_id: int) -> DBSource | None:
        return self.sources.get(source_id)

    def get_sources(self, active_only: bool = False) -> list[DBSource]:
        return self.sources.get_all(active_only)

    def update_source_fetched(self, source_id: int, error: str | None = None):
        return self.sources.update_fetched(source_id, error)

    def set_source_active(self, source_id: int, is_active: bool) -> bool:
        return self.sources.set_active(source_id, is_active)

    # ─────────────────────────────────────────────────────────────
    # Article operations (delegated to ArticleRepository)
    # ─────────────────────────────────────────────────────────────

    def upsert_article(
        self,
        url: str,
        title: str,
        content: str | None,
        snippet: str | None,
        content_hash: str,
        source_id: int | None,
        published_at: datetime | None,
        category: str,
        sentiment: str | None = None,
        sentiment_score: float | None = None,
    ) -> tuple[UpsertStatus, int]:
        return self.articles.upsert(
            url, title, content, snippet, content_hash, source_id,
            published_at, category, sentiment, sentiment_score,
        )

    def find_article_by_url(self, url: str) -> DBArticle | None:
        return self.articles.get_by_url(url)

    def get_article(self, article_id: int) -> DBArticle | None:
        return self.articles.get(article_id)

    def list_articles(
        self,
        category: str | None = None,
        since: datetime | None = None,
        search: str | None = None,
        source_id: int | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[DBArticle]:
        return self.articles.get_many(category, since, search, source_id, limit, offset)

    def list_articles_in_range(self, start: datetime, end: datetime) -> list[DBArticle]:
        return self.articles.get_in_range(start, end)

    def increment_view_count(self, article_id: int) -> int | None:
        return self.articles.increment_view_count(article_id)

    def search(self, query: str, limit: int = 20) -> list[DBArticle]:
        return self.articles.search(query, limit)

    # ─────────────────────────────────────────────────────────────
    # Bookmark operations (delegated to BookmarkRepository)
    # ─────────────────────────────────────────────────────────────

    def create_bookmark(self, user_id: str, article_id: int) -> DBBookmark:
        return self.bookmarks.create(user_id, article_id)

    def delete_bookmark(self, user_id: str, article_id: int) -> bool:
        return self.bookmarks.delete(user_id, article_id)

    def is_bookmarked(self, user_id: str, article_id: int) -> bool:
        return self.bookmarks.exists(user_id, article_id)

    def list_bookmarked_articles(self, user_id: str, limit: int = 100) -> list[DBArticle]:
        return self.bookmarks.get_articles(user_id, limit)

    # ─────────────────────────────────────────────────────────────
    # Trending operations (delegated to TrendingRepository)
    # ─────────────────────────────────────────────────────────────

    def list_trending_topics(self, window: str, limit: int = 50) -> list[DBTrendingTopic]:
        return self.trending.get(window, limit)

    def replace_trending_topics(
        self,
        window: str,
        date: str,
        topics: list[TrendingTopicRecord],
    ) -> int:
        return self.trending.replace(window, date, topics)

    # ─────────────────────────────────────────────────────────────
    # Conversation operations (delegated to ChatRepository)
    # ─────────────────────────────────────────────────────────────

    def append_conversation_entry(
        self,
        user_id: str,
        article_id: int,
        role: str,
        content: str,
        kind: str = "chat",
        model_used: str | None = None,
        metadata: dict | None = None,
    ) -> DBChatMessage:
        return self.chat.add_message(user_id, article_id, role, content, kind, model_used, metadata)

    def list_conversation_history(
        self,
        user_id: str,
        article_id: int,
        limit: int | None = None,
    ) -> list[DBChatMessage]:
        return self.chat.get_messages(user_id, article_id, limit)
