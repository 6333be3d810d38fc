"""
Tests for deduplicated persistence, reading and bookmarks.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from techpulse.classifier import Category, Classifier
from techpulse.database import UpsertStatus
from techpulse.exceptions import DuplicateBookmark, InvalidInput, NotFound, RepositoryUnavailable
from techpulse.feeds import FeedCandidate
from techpulse.services.article_service import (
    ArticleFilter,
    ArticleService,
    content_hash,
    since_for_time_range,
)

from .conftest import add_article


def _candidate(url="https://x.com/a1", title="Acme raises $10M", content="Acme closed a seed round."):
    return FeedCandidate(
        url=url,
        title=title,
        content=content,
        snippet=content[:300],
        published=datetime(2025, 10, 14, 9, 30, tzinfo=timezone.utc),
    )


@pytest.fixture
def service(test_db):
    return ArticleService(test_db)


class TestPersist:
    """Create / update / unchanged outcomes keyed by canonical URL."""

    @pytest.mark.asyncio
    async def test_fetch_twice_same_content_is_unchanged(self, service, test_db):
        classifier = Classifier()
        candidate = _candidate()
        classification = classifier.classify(candidate.title, candidate.content)
        assert classification.category == Category.STARTUPS

        first = await service.persist(candidate, classification, None)
        second = await service.persist(candidate, classification, None)

        assert first.status == UpsertStatus.CREATED
        assert second.status == UpsertStatus.UNCHANGED
        assert first.article_id == second.article_id
        stored = test_db.find_article_by_url("https://x.com/a1")
        assert stored.category == "startups"

    @pytest.mark.asyncio
    async def test_changed_content_is_updated_in_place(self, service, test_db):
        classification = Classifier().classify("Acme raises $10M", "")
        created = await service.persist(_candidate(), classification, None)
        test_db.increment_view_count(created.article_id)
        original = test_db.get_article(created.article_id)

        updated = await service.persist(
            _candidate(content="Acme closed a larger seed round."), classification, None
        )

        assert updated.status == UpsertStatus.UPDATED
        assert updated.article_id == created.article_id
        stored = test_db.get_article(created.article_id)
        assert stored.content == "Acme closed a larger seed round."
        assert stored.view_count == 1
        assert stored.created_at == original.created_at
        assert stored.fetched_at == original.fetched_at

    @pytest.mark.asyncio
    async def test_concurrent_persists_of_one_url_make_one_row(self, service, test_db):
        classification = Classifier().classify("Acme raises $10M", "")
        results = await asyncio.gather(*(
            service.persist(_candidate(content=f"version {i}"), classification, None)
            for i in range(10)
        ))

        assert len({r.article_id for r in results}) == 1
        assert sum(1 for r in results if r.status == UpsertStatus.CREATED) == 1
        assert test_db.articles.count() == 1

    def test_content_hash_ignores_whitespace_differences(self):
        assert content_hash("Title", "a  b\n c") == content_hash(" Title ", "a b c")
        assert content_hash("Title", "a b c") != content_hash("Title", "a b d")


class TestReading:
    """Listing, detail and search."""

    def test_detail_increments_views_and_returns_related(self, service, test_db):
        source_id = test_db.add_source("Src", "https://src.com", "https://src.com/feed")
        main_id = add_article(test_db, "https://src.com/1", category="ai_ml", source_id=source_id)
        related_id = add_article(test_db, "https://src.com/2", category="ai_ml")
        add_article(test_db, "https://src.com/3", category="mobile")

        detail = service.get_article_detail(main_id, "u1")
        detail = service.get_article_detail(main_id, "u1")

        assert detail.article.view_count == 2
        assert detail.source.name == "Src"
        assert detail.is_bookmarked is False
        assert [a.id for a in detail.related] == [related_id]

    def test_detail_unknown_article(self, service):
        with pytest.raises(NotFound):
            service.get_article_detail(999, "u1")

    def test_invalid_article_id(self, service):
        with pytest.raises(InvalidInput):
            service.get_article(0)
        with pytest.raises(ValueError):
            service.get_article(-5)

    def test_list_filters_by_category_and_time_range(self, service, test_db):
        now = datetime.now(timezone.utc)
        add_article(test_db, "https://a.com/new-ai", category="ai_ml", published_at=now)
        add_article(test_db, "https://a.com/old-ai", category="ai_ml",
                    published_at=now - timedelta(days=20))
        add_article(test_db, "https://a.com/new-mobile", category="mobile", published_at=now)

        week_ai = service.list_articles(ArticleFilter(category="ai_ml", time_range="week"))
        assert [a.url for a in week_ai] == ["https://a.com/new-ai"]

        month_ai = service.list_articles(ArticleFilter(category="ai_ml", time_range="month"))
        assert len(month_ai) == 2

        everything = service.list_articles(ArticleFilter(time_range="all"))
        assert len(everything) == 3

    def test_list_pagination(self, service, test_db):
        now = datetime.now(timezone.utc)
        for i in range(5):
            add_article(test_db, f"https://a.com/{i}", published_at=now - timedelta(minutes=i))

        page1 = service.list_articles(ArticleFilter(page=1, limit=2))
        page3 = service.list_articles(ArticleFilter(page=3, limit=2))
        assert [a.url for a in page1] == ["https://a.com/0", "https://a.com/1"]
        assert [a.url for a in page3] == ["https://a.com/4"]

    def test_search(self, service, test_db):
        add_article(test_db, "https://a.com/q", title="Quantum chips arrive")
        add_article(test_db, "https://a.com/other", title="Something else")
        results = service.search("quantum")
        assert [a.url for a in results] == ["https://a.com/q"]

    def test_storage_failure_is_retryable(self, service, test_db, tmp_path, monkeypatch):
        monkeypatch.setattr(test_db._connection, "db_path", tmp_path)
        with pytest.raises(RepositoryUnavailable) as exc_info:
            service.list_articles()
        assert exc_info.value.retryable is True

    def test_unknown_time_range(self):
        with pytest.raises(InvalidInput):
            since_for_time_range("decade")

    def test_today_starts_at_midnight(self):
        now = datetime(2025, 10, 14, 15, 45, tzinfo=timezone.utc)
        assert since_for_time_range("today", now) == datetime(2025, 10, 14, tzinfo=timezone.utc)


class TestBookmarks:
    """Bookmark create / conflict / delete."""

    def test_second_bookmark_conflicts(self, service, test_db):
        article_id = add_article(test_db, "https://x.com/a1")

        service.add_bookmark("u1", article_id)
        assert service.is_bookmarked("u1", article_id)

        with pytest.raises(DuplicateBookmark):
            service.add_bookmark("u1", article_id)
        assert service.is_bookmarked("u1", article_id)

    def test_bookmarks_are_per_user(self, service, test_db):
        article_id = add_article(test_db, "https://x.com/a1")
        service.add_bookmark("u1", article_id)
        assert not service.is_bookmarked("u2", article_id)
        service.add_bookmark("u2", article_id)

    def test_bookmark_unknown_article(self, service):
        with pytest.raises(NotFound):
            service.add_bookmark("u1", 12345)

    def test_remove_missing_bookmark(self, service, test_db):
        article_id = add_article(test_db, "https://x.com/a1")
        with pytest.raises(NotFound):
            service.remove_bookmark("u1", article_id)

    def test_remove_then_list(self, service, test_db):
        a1 = add_article(test_db, "https://x.com/a1")
        a2 = add_article(test_db, "https://x.com/a2")
        service.add_bookmark("u1", a1)
        service.add_bookmark("u1", a2)
        service.remove_bookmark("u1", a1)

        assert [a.id for a in service.list_bookmarks("u1")] == [a2]
        assert not service.is_bookmarked("u1", a1)

    def test_empty_user_rejected(self, service, test_db):
        article_id = add_article(test_db, "https://x.com/a1")
        with pytest.raises(InvalidInput):
            service.add_bookmark("  ", article_id)
