"""
Article service: deduplicated persistence, reading and bookmarks.

Writes for one canonical URL go through a per-URL lock and a single
IMMEDIATE transaction in the repository, so concurrent fetches of the same
article never produce two rows or lose an update.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..classifier import Classification
from ..database import Database, DBArticle, DBBookmark, DBSource, UpsertStatus
from ..database.converters import utcnow
from ..exceptions import InvalidInput, NotFound, require_article
from ..feeds import FeedCandidate
from ..locks import KeyedLocks

logger = logging.getLogger(__name__)

TIME_RANGES = ("today", "week", "month", "all")


@dataclass
class UpsertResult:
    status: UpsertStatus
    article_id: int
    url: str

    @property
    def created(self) -> bool:
        return self.status == UpsertStatus.CREATED


@dataclass
class ArticleFilter:
    """Listing filter. page is 1-based."""
    category: str | None = None
    time_range: str | None = None
    search: str | None = None
    source_id: int | None = None
    page: int = 1
    limit: int = 20


@dataclass
class ArticleDetail:
    article: DBArticle
    source: DBSource | None
    is_bookmarked: bool
    related: list[DBArticle] = field(default_factory=list)


def content_hash(title: str, body: str | None) -> str:
    """SHA-256 over whitespace-normalized title and body."""
    normalized = " ".join((title or "").split()) + "\n" + " ".join((body or "").split())
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def since_for_time_range(time_range: str | None, now: datetime | None = None) -> datetime | None:
    """Lower bound for a listing time range; None means no bound."""
    if time_range in (None, "", "all"):
        return None
    now = now or utcnow()
    if time_range == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if time_range == "week":
        return now - timedelta(days=7)
    if time_range == "month":
        return now - timedelta(days=30)
    raise InvalidInput(f"Unknown time range: {time_range}; expected one of {TIME_RANGES}")


def validate_user_id(user_id: str) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise InvalidInput("User identifier must be a non-empty string")
    return user_id.strip()


def validate_article_id(article_id: int) -> int:
    if isinstance(article_id, bool) or not isinstance(article_id, int) or article_id <= 0:
        raise InvalidInput("Article identifier must be a positive integer")
    return article_id


class ArticleService:
    """Service for article-related business logic."""

    def __init__(self, db: Database, related_limit: int = 5):
        self.db = db
        self.related_limit = related_limit
        self._url_locks = KeyedLocks()

    # ─────────────────────────────────────────────────────────────
    # Persistence
    # ─────────────────────────────────────────────────────────────

    async def persist(
        self,
        candidate: FeedCandidate,
        classification: Classification,
        source_id: int | None,
    ) -> UpsertResult:
        """
        Store a classified candidate, keyed by its canonical URL.

        Returns CREATED for a new URL, UPDATED when the stored copy differed,
        UNCHANGED when the content hash already matched (nothing written).
        """
        digest = content_hash(candidate.title, candidate.content or candidate.snippet)

        async with self._url_locks.hold(candidate.url):
            status, article_id = self.db.upsert_article(
                url=candidate.url,
                title=candidate.title,
                content=candidate.content,
                snippet=candidate.snippet,
                content_hash=digest,
                source_id=source_id,
                published_at=candidate.published,
                category=classification.category.value,
                sentiment=classification.sentiment.value,
                sentiment_score=classification.sentiment_score,
            )

        if status != UpsertStatus.UNCHANGED:
            logger.debug(f"Article {article_id} {status.value}: {candidate.url}")
        return UpsertResult(status=status, article_id=article_id, url=candidate.url)

    # ─────────────────────────────────────────────────────────────
    # Reading
    # ─────────────────────────────────────────────────────────────

    def list_articles(self, filters: ArticleFilter | None = None) -> list[DBArticle]:
        filters = filters or ArticleFilter()
        page = max(filters.page, 1)
        limit = max(min(filters.limit, 100), 1)
        return self.db.list_articles(
            category=filters.category,
            since=since_for_time_range(filters.time_range),
            search=filters.search,
            source_id=filters.source_id,
            limit=limit,
            offset=(page - 1) * limit,
        )

    def search(self, query: str, limit: int = 20) -> list[DBArticle]:
        return self.db.search(query, limit)

    def get_article(self, article_id: int) -> DBArticle:
        validate_article_id(article_id)
        return require_article(self.db.get_article(article_id))

    def get_article_detail(self, article_id: int, user_id: str | None = None) -> ArticleDetail:
        """
        Read an article for display.

        Counts as a view: the article's view counter is incremented first.
        """
        validate_article_id(article_id)
        if self.db.increment_view_count(article_id) is None:
            raise NotFound("Article not found")
        article = require_article(self.db.get_article(article_id))

        source = self.db.get_source(article.source_id) if article.source_id else None
        bookmarked = bool(user_id) and self.db.is_bookmarked(user_id, article_id)

        return ArticleDetail(
            article=article,
            source=source,
            is_bookmarked=bookmarked,
            related=self.db.articles.get_related(article, self.related_limit),
        )

    # ─────────────────────────────────────────────────────────────
    # Bookmarks
    # ─────────────────────────────────────────────────────────────

    def add_bookmark(self, user_id: str, article_id: int) -> DBBookmark:
        """
        Bookmark an article.

        Raises:
            NotFound: unknown article
            DuplicateBookmark: already bookmarked by this user
        """
        user_id = validate_user_id(user_id)
        self.get_article(article_id)
        return self.db.create_bookmark(user_id, article_id)

    def remove_bookmark(self, user_id: str, article_id: int) -> None:
        user_id = validate_user_id(user_id)
        validate_article_id(article_id)
        if not self.db.delete_bookmark(user_id, article_id):
            raise NotFound("Bookmark not found")

    def is_bookmarked(self, user_id: str, article_id: int) -> bool:
        return self.db.is_bookmarked(validate_user_id(user_id), validate_article_id(article_id))

    def list_bookmarks(self, user_id: str, limit: int = 100) -> list[DBArticle]:
        return self.db.list_bookmarked_articles(validate_user_id(user_id), limit)
