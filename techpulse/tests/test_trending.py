"""
Tests for trending topic aggregation.
"""

from datetime import datetime, timedelta, timezone

import pytest

from techpulse.database.models import DBArticle
from techpulse.trending import (
    KeywordTopicExtractor,
    TimeWindow,
    TrendingAggregator,
    growth_rate,
    window_bounds,
)

from .conftest import add_article

NOW = datetime(2025, 10, 14, 12, 0, tzinfo=timezone.utc)
TODAY_MORNING = datetime(2025, 10, 14, 8, 0, tzinfo=timezone.utc)
YESTERDAY_MORNING = datetime(2025, 10, 13, 8, 0, tzinfo=timezone.utc)


def _article(title, snippet=None, category="others"):
    return DBArticle(
        id=1,
        title=title,
        url="https://example.com/x",
        content=None,
        snippet=snippet,
        content_hash=None,
        source_id=None,
        published_at=NOW,
        fetched_at=NOW,
        category=category,
        sentiment=None,
        sentiment_score=None,
        view_count=0,
        created_at=NOW,
        updated_at=NOW,
    )


class TestWindowBounds:
    def test_today_is_utc_calendar_day(self):
        bounds = window_bounds(TimeWindow.TODAY, NOW)
        assert bounds.start == datetime(2025, 10, 14, tzinfo=timezone.utc)
        assert bounds.end == datetime(2025, 10, 15, tzinfo=timezone.utc)
        assert bounds.previous_start == datetime(2025, 10, 13, tzinfo=timezone.utc)
        assert bounds.previous_end == bounds.start

    def test_week_is_trailing_seven_days(self):
        bounds = window_bounds(TimeWindow.WEEK, NOW)
        assert bounds.end == NOW
        assert bounds.start == NOW - timedelta(days=7)
        assert bounds.previous_start == NOW - timedelta(days=14)

    def test_month_is_trailing_thirty_days(self):
        bounds = window_bounds(TimeWindow.MONTH, NOW)
        assert bounds.end - bounds.start == timedelta(days=30)

    def test_naive_now_treated_as_utc(self):
        naive = datetime(2025, 10, 14, 12, 0)
        assert window_bounds(TimeWindow.TODAY, naive) == window_bounds(TimeWindow.TODAY, NOW)


class TestGrowthRate:
    def test_doubling(self):
        assert growth_rate(12, 6) == 100.0

    def test_decline(self):
        assert growth_rate(3, 4) == -25.0

    def test_no_baseline(self):
        assert growth_rate(5, 0) is None


class TestKeywordTopicExtractor:
    def test_watch_terms_case_insensitive_whole_word(self):
        extractor = KeywordTopicExtractor(watch_terms=["AI", "Nvidia"], extract_phrases=False)
        topics = extractor.extract(_article("nvidia ships new ai chips", "Said the chair."))
        assert topics == {"AI", "Nvidia"}

    def test_one_mention_per_article(self):
        extractor = KeywordTopicExtractor(watch_terms=["AI"], extract_phrases=False)
        topics = extractor.extract(_article("AI, AI and more AI", "AI everywhere"))
        assert topics == {"AI"}

    def test_capitalized_title_phrases(self):
        extractor = KeywordTopicExtractor(watch_terms=[])
        topics = extractor.extract(_article("Apple unveils Vision Pro at the Federal Trade Commission"))
        assert "Vision Pro" in topics
        assert "Federal Trade Commission" in topics
        assert "Apple" not in topics

    def test_phrases_use_watch_list_spelling(self):
        extractor = KeywordTopicExtractor(watch_terms=["Data Breach"])
        topics = extractor.extract(_article("DATA BREACH hits retailer"))
        assert topics == {"Data Breach"}


class TestAggregator:
    """Window tallies and stored rows."""

    def test_growth_against_previous_day(self, test_db):
        for i in range(12):
            add_article(test_db, f"https://a.com/today-{i}", title=f"AI update {i}",
                        published_at=TODAY_MORNING)
        for i in range(6):
            add_article(test_db, f"https://a.com/yesterday-{i}", title=f"AI update {i}",
                        published_at=YESTERDAY_MORNING)

        aggregator = TrendingAggregator(test_db)
        records = aggregator.run(TimeWindow.TODAY, NOW)

        assert len(records) == 1
        assert records[0].topic == "AI"
        assert records[0].mention_count == 12
        assert records[0].growth_rate == 100.0

        stored = test_db.list_trending_topics("today")
        assert [(t.topic, t.mention_count, t.growth_rate) for t in stored] == [("AI", 12, 100.0)]
        assert stored[0].date == "2025-10-14"

    def test_rerun_is_idempotent(self, test_db):
        for i in range(3):
            add_article(test_db, f"https://a.com/{i}", title=f"Ransomware wave {i}",
                        published_at=TODAY_MORNING)

        aggregator = TrendingAggregator(test_db)
        aggregator.run(TimeWindow.TODAY, NOW)
        first = [(t.topic, t.mention_count) for t in test_db.list_trending_topics("today")]
        aggregator.run(TimeWindow.TODAY, NOW)
        second = [(t.topic, t.mention_count) for t in test_db.list_trending_topics("today")]

        assert first == second == [("Ransomware", 3)]

    def test_min_mentions_filter(self, test_db):
        add_article(test_db, "https://a.com/1", title="Bitcoin rallies", published_at=TODAY_MORNING)
        add_article(test_db, "https://a.com/2", title="Nvidia earnings", published_at=TODAY_MORNING)
        add_article(test_db, "https://a.com/3", title="Nvidia supply", published_at=TODAY_MORNING)

        records = TrendingAggregator(test_db).compute(TimeWindow.TODAY, NOW)
        assert [r.topic for r in records] == ["Nvidia"]
        assert records[0].growth_rate is None

    def test_order_by_count_then_name(self, test_db):
        titles = ["Tesla recall", "Tesla deliveries", "Google search", "Google cloud",
                  "Apple store", "Apple watch", "Apple music"]
        for i, title in enumerate(titles):
            add_article(test_db, f"https://a.com/{i}", title=title, published_at=TODAY_MORNING)

        records = TrendingAggregator(test_db).compute(TimeWindow.TODAY, NOW)
        assert [r.topic for r in records] == ["Apple", "Google", "Tesla"]

    def test_dominant_category(self, test_db):
        add_article(test_db, "https://a.com/1", title="AI chips", category="hardware",
                    published_at=TODAY_MORNING)
        add_article(test_db, "https://a.com/2", title="AI models", category="ai_ml",
                    published_at=TODAY_MORNING)
        add_article(test_db, "https://a.com/3", title="AI agents", category="ai_ml",
                    published_at=TODAY_MORNING)

        records = TrendingAggregator(test_db).compute(TimeWindow.TODAY, NOW)
        assert records[0].category == "ai_ml"

    def test_articles_outside_window_ignored(self, test_db):
        old = NOW - timedelta(days=40)
        for i in range(4):
            add_article(test_db, f"https://a.com/{i}", title="Crypto winter", published_at=old)

        aggregator = TrendingAggregator(test_db)
        assert aggregator.run_all(NOW) == {"today": 0, "week": 0, "month": 0}

    def test_unknown_window_rejected(self, test_db):
        with pytest.raises(ValueError):
            TrendingAggregator(test_db).compute("decade", NOW)
