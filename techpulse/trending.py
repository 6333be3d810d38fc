"""
Trending - topic mention tallies and growth rates per time window.

Each run recomputes a window wholesale from persisted articles and replaces
the stored rows for that window, so running it twice on unchanged data
yields the same topic set.

Windows:
    today - the current UTC calendar day, compared with the previous day
    week  - the 7 days ending now, compared with the 7 days before
    month - the 30 days ending now, compared with the 30 days before
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, Protocol

from .classifier import Category
from .database import Database, DBArticle, TrendingTopicRecord
from .database.converters import utcnow

logger = logging.getLogger(__name__)


class TimeWindow(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class WindowBounds:
    """Current range and the same-length range immediately before it, both [start, end)."""
    start: datetime
    end: datetime
    previous_start: datetime
    previous_end: datetime


def window_bounds(window: TimeWindow, now: datetime | None = None) -> WindowBounds:
    now = now or utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)

    if window == TimeWindow.TODAY:
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        end = start + timedelta(days=1)
    else:
        days = 7 if window == TimeWindow.WEEK else 30
        end = now
        start = now - timedelta(days=days)

    length = end - start
    return WindowBounds(
        start=start,
        end=end,
        previous_start=start - length,
        previous_end=start,
    )


def growth_rate(current: int, previous: int) -> float | None:
    """Percentage change versus the previous window, None when there is no baseline."""
    if previous == 0:
        return None
    return round((current - previous) / previous * 100, 2)


# ─────────────────────────────────────────────────────────────
# Topic extraction
# ─────────────────────────────────────────────────────────────

class TopicExtractor(Protocol):
    def extract(self, article: DBArticle) -> set[str]:
        ...


DEFAULT_WATCH_TERMS = [
    "AI", "OpenAI", "Anthropic", "ChatGPT", "Gemini", "LLM", "Nvidia",
    "Apple", "Google", "Microsoft", "Meta", "Amazon", "Tesla", "Samsung",
    "iPhone", "Android", "Ransomware", "Malware", "Data Breach", "Zero-Day",
    "Bitcoin", "Ethereum", "Crypto", "Blockchain", "Startup", "IPO",
    "Funding", "Acquisition", "Layoffs", "Regulation", "Antitrust",
]

# Words that break a run of capitalized words when collecting title phrases
PHRASE_STOPWORDS = {
    "a", "an", "and", "as", "at", "but", "by", "for", "from", "how", "in",
    "into", "is", "it", "its", "new", "of", "on", "or", "the", "this", "to",
    "what", "when", "why", "with", "you", "your", "will", "can", "after",
}

_TOKEN_PATTERN = re.compile(r"[A-Za-z0-9][\w'&.+-]*")


class KeywordTopicExtractor:
    """
    Watch-list matching plus capitalized title phrases.

    Watch terms match case-insensitively on word boundaries in the title and
    snippet and are reported with their watch-list spelling. Runs of two to
    four capitalized words in the title (e.g. "Vision Pro", "Federal Trade
    Commission") become topics as written. An article mentions each topic at
    most once.
    """

    def __init__(
        self,
        watch_terms: Iterable[str] | None = None,
        extract_phrases: bool = True,
        max_phrase_words: int = 4,
    ):
        self.watch_terms = list(watch_terms) if watch_terms is not None else list(DEFAULT_WATCH_TERMS)
        self.extract_phrases = extract_phrases
        self.max_phrase_words = max_phrase_words
        self._patterns = [
            (term, re.compile(r"(?<!\w)" + re.escape(term) + r"(?!\w)", re.IGNORECASE))
            for term in self.watch_terms
        ]
        self._canonical = {term.lower(): term for term in self.watch_terms}

    def extract(self, article: DBArticle) -> set[str]:
        text = " ".join(part for part in (article.title, article.snippet) if part)
        topics = {term for term, pattern in self._patterns if pattern.search(text)}

        if self.extract_phrases and article.title:
            for phrase in self._title_phrases(article.title):
                topics.add(self._canonical.get(phrase.lower(), phrase))
        return topics

    def _title_phrases(self, title: str) -> list[str]:
        phrases = []
        run: list[str] = []
        for token in _TOKEN_PATTERN.findall(title) + [""]:
            token = token.rstrip(".")
            if token and token[0].isupper() and token.lower() not in PHRASE_STOPWORDS:
                run.append(token)
                continue
            if 2 <= len(run) <= self.max_phrase_words:
                phrases.append(" ".join(run))
            run = []
        return phrases


# ─────────────────────────────────────────────────────────────
# Aggregation
# ─────────────────────────────────────────────────────────────

_CATEGORY_ORDER = {c.value: i for i, c in enumerate(Category)}


def _dominant_category(counts: Counter) -> str | None:
    if not counts:
        return None
    return min(
        counts,
        key=lambda c: (-counts[c], _CATEGORY_ORDER.get(c, len(_CATEGORY_ORDER)), c),
    )


class TrendingAggregator:
    """Computes and stores trending topics for a window."""

    def __init__(
        self,
        db: Database,
        extractor: TopicExtractor | None = None,
        min_mentions: int = 2,
        max_topics: int = 25,
    ):
        self.db = db
        self.extractor = extractor or KeywordTopicExtractor()
        self.min_mentions = min_mentions
        self.max_topics = max_topics

    def _tally(self, articles: list[DBArticle]) -> tuple[Counter, dict[str, Counter]]:
        mentions: Counter = Counter()
        categories: dict[str, Counter] = {}
        for article in articles:
            for topic in self.extractor.extract(article):
                mentions[topic] += 1
                categories.setdefault(topic, Counter())[article.category] += 1
        return mentions, categories

    def compute(
        self,
        window: TimeWindow,
        now: datetime | None = None,
    ) -> list[TrendingTopicRecord]:
        """
        Tally topic mentions for the window and compare with the previous one.

        Topics below min_mentions are dropped. Order is mention count
        descending, then topic name ascending; at most max_topics are kept.
        """
        window = TimeWindow(window)
        bounds = window_bounds(window, now)

        current, categories = self._tally(
            self.db.list_articles_in_range(bounds.start, bounds.end)
        )
        previous, _ = self._tally(
            self.db.list_articles_in_range(bounds.previous_start, bounds.previous_end)
        )

        records = [
            TrendingTopicRecord(
                topic=topic,
                mention_count=count,
                category=_dominant_category(categories[topic]),
                growth_rate=growth_rate(count, previous.get(topic, 0)),
            )
            for topic, count in current.items()
            if count >= self.min_mentions
        ]
        records.sort(key=lambda r: (-r.mention_count, r.topic))
        return records[:self.max_topics]

    def run(
        self,
        window: TimeWindow,
        now: datetime | None = None,
    ) -> list[TrendingTopicRecord]:
        """Recompute a window and replace its stored rows."""
        window = TimeWindow(window)
        now = now or utcnow()
        records = self.compute(window, now)
        # Every window ends on the current UTC day
        bucket = now.astimezone(timezone.utc).date().isoformat()
        self.db.replace_trending_topics(window.value, bucket, records)
        logger.info(f"Trending [{window.value}]: stored {len(records)} topics")
        return records

    def run_all(self, now: datetime | None = None) -> dict[str, int]:
        """Recompute every window. Returns topic counts keyed by window."""
        now = now or utcnow()
        return {w.value: len(self.run(w, now)) for w in TimeWindow}
