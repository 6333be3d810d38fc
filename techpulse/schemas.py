"""
Pydantic models for API request/response validation.
"""

from typing import Literal

from pydantic import BaseModel, Field

from .database import DBArticle, DBChatMessage, DBSource, DBTrendingTopic


# ─────────────────────────────────────────────────────────────
# Article Schemas
# ─────────────────────────────────────────────────────────────

class ArticleResponse(BaseModel):
    """Article for list view."""
    id: int
    url: str
    title: str
    snippet: str | None
    source_id: int | None
    category: str
    sentiment: str | None
    sentiment_score: float | None
    view_count: int
    published_at: str | None
    created_at: str

    @classmethod
    def from_db(cls, article: DBArticle) -> "ArticleResponse":
        return cls(
            id=article.id,
            url=article.url,
            title=article.title,
            snippet=article.snippet,
            source_id=article.source_id,
            category=article.category,
            sentiment=article.sentiment,
            sentiment_score=article.sentiment_score,
            view_count=article.view_count,
            published_at=article.published_at.isoformat() if article.published_at else None,
            created_at=article.created_at.isoformat(),
        )


class ArticleDetailResponse(ArticleResponse):
    """Article with content, source and related articles for detail view."""
    content: str | None
    source: "SourceResponse | None" = None
    is_bookmarked: bool = False
    related_articles: list[ArticleResponse] = []
    updated_at: str

    @classmethod
    def from_detail(
        cls,
        article: DBArticle,
        source: DBSource | None,
        is_bookmarked: bool,
        related: list[DBArticle],
    ) -> "ArticleDetailResponse":
        base = ArticleResponse.from_db(article).model_dump()
        return cls(
            **base,
            content=article.content,
            source=SourceResponse.from_db(source) if source else None,
            is_bookmarked=is_bookmarked,
            related_articles=[ArticleResponse.from_db(a) for a in related],
            updated_at=article.updated_at.isoformat(),
        )


class ArticleListResponse(BaseModel):
    """One page of articles."""
    articles: list[ArticleResponse]
    page: int
    limit: int


# ─────────────────────────────────────────────────────────────
# Bookmark Schemas
# ─────────────────────────────────────────────────────────────

class BookmarkRequest(BaseModel):
    article_id: int = Field(gt=0)


class BookmarkResponse(BaseModel):
    article_id: int
    is_bookmarked: bool
    created_at: str | None = None


# ─────────────────────────────────────────────────────────────
# Chat Schemas
# ─────────────────────────────────────────────────────────────

class ChatMessageResponse(BaseModel):
    """A single conversation entry."""
    id: int
    role: str
    content: str
    kind: str
    model_used: str | None
    created_at: str

    @classmethod
    def from_db(cls, message: DBChatMessage) -> "ChatMessageResponse":
        return cls(
            id=message.id,
            role=message.role,
            content=message.content,
            kind=message.kind,
            model_used=message.model_used,
            created_at=message.created_at.isoformat(),
        )


class ChatHistoryResponse(BaseModel):
    article_id: int
    messages: list[ChatMessageResponse]


class ChatMessageRequest(BaseModel):
    article_id: int = Field(gt=0)
    message: str


class SummarizeRequest(BaseModel):
    article_id: int = Field(gt=0)
    mode: Literal["short", "medium", "long"] = "medium"


class CompareRequest(BaseModel):
    article_ids: list[int] = Field(min_length=2)


class CompareResponse(BaseModel):
    article_ids: list[int]
    comparison: str
    model_used: str


# ─────────────────────────────────────────────────────────────
# Trending Schemas
# ─────────────────────────────────────────────────────────────

class TrendingTopicResponse(BaseModel):
    topic: str
    mention_count: int
    category: str | None
    growth_rate: float | None
    date: str

    @classmethod
    def from_db(cls, topic: DBTrendingTopic) -> "TrendingTopicResponse":
        return cls(
            topic=topic.topic,
            mention_count=topic.mention_count,
            category=topic.category,
            growth_rate=topic.growth_rate,
            date=topic.date,
        )


class TrendingResponse(BaseModel):
    range: str
    topics: list[TrendingTopicResponse]


# ─────────────────────────────────────────────────────────────
# Source Schemas
# ─────────────────────────────────────────────────────────────

class SourceResponse(BaseModel):
    id: int
    name: str
    url: str
    feed_url: str
    is_active: bool
    fetch_interval_minutes: int
    last_fetched: str | None
    fetch_error: str | None = None

    @classmethod
    def from_db(cls, source: DBSource) -> "SourceResponse":
        return cls(
            id=source.id,
            name=source.name,
            url=source.url,
            feed_url=source.feed_url,
            is_active=source.is_active,
            fetch_interval_minutes=source.fetch_interval_minutes,
            last_fetched=source.last_fetched.isoformat() if source.last_fetched else None,
            fetch_error=source.fetch_error,
        )


class AddSourceRequest(BaseModel):
    """Register a source. name and url are derived from the feed when omitted."""
    feed_url: str
    name: str | None = None
    url: str | None = None
    fetch_interval_minutes: int | None = Field(default=None, ge=1, le=1440)


class UpdateSourceRequest(BaseModel):
    name: str | None = None
    fetch_interval_minutes: int | None = Field(default=None, ge=1, le=1440)


class ImportOPMLRequest(BaseModel):
    opml_content: str


# ─────────────────────────────────────────────────────────────
# Refresh Schemas
# ─────────────────────────────────────────────────────────────

class RefreshRequest(BaseModel):
    source_id: int | None = None


class RefreshResponse(BaseModel):
    ran: list[int]
    skipped: list[int]
    failed: dict[int, str]
    created: int


ArticleDetailResponse.model_rebuild()
