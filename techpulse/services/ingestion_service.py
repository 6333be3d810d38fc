"""
Ingestion service: one fetch -> classify -> persist cycle for one source.

The scheduler decides when a cycle runs; this module only knows how.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from ..classifier import Classifier
from ..database import Database, DBSource, UpsertStatus
from ..feeds import FeedParser
from ..notifier import EventType, LiveNotifier
from .article_service import ArticleService

logger = logging.getLogger(__name__)


class SourceState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    CLASSIFYING = "classifying"
    PERSISTING = "persisting"


@dataclass
class CycleResult:
    source_id: int
    fetched: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    new_article_ids: list[int] = field(default_factory=list)


StateCallback = Callable[[int, SourceState], None]


class IngestionService:
    """Runs ingestion cycles against the shared article store."""

    def __init__(
        self,
        db: Database,
        feed_parser: FeedParser,
        classifier: Classifier,
        article_service: ArticleService,
        notifier: LiveNotifier | None = None,
    ):
        self.db = db
        self.feed_parser = feed_parser
        self.classifier = classifier
        self.article_service = article_service
        self.notifier = notifier

    async def run_source_cycle(
        self,
        source: DBSource,
        on_state: StateCallback | None = None,
    ) -> CycleResult:
        """
        Fetch, classify and persist one source's feed.

        The source's fetch status is recorded either way. Failures
        (SourceUnreachable, MalformedFeed, RepositoryUnavailable) are
        re-raised after being recorded so the caller can log them.
        """
        def enter(stage: SourceState):
            if on_state:
                on_state(source.id, stage)

        result = CycleResult(source_id=source.id)
        try:
            enter(SourceState.FETCHING)
            candidates = await self.feed_parser.fetch(source)
            result.fetched = len(candidates)

            enter(SourceState.CLASSIFYING)
            classified = [
                (c, self.classifier.classify(c.title, c.content or c.snippet))
                for c in candidates
            ]

            enter(SourceState.PERSISTING)
            for candidate, classification in classified:
                upsert = await self.article_service.persist(candidate, classification, source.id)
                if upsert.status == UpsertStatus.CREATED:
                    result.created += 1
                    result.new_article_ids.append(upsert.article_id)
                    self._announce(upsert.article_id, candidate.title, candidate.url,
                                   classification.category.value, source)
                elif upsert.status == UpsertStatus.UPDATED:
                    result.updated += 1
                else:
                    result.unchanged += 1
        except Exception as e:
            self._record_failure(source, e)
            raise
        finally:
            enter(SourceState.IDLE)

        self.db.update_source_fetched(source.id)
        logger.info(
            f"{source.name}: {result.fetched} entries, {result.created} new, "
            f"{result.updated} updated, {result.unchanged} unchanged"
        )
        return result

    def _record_failure(self, source: DBSource, error: Exception):
        try:
            self.db.update_source_fetched(source.id, error=f"{error.__class__.__name__}: {error}")
        except Exception:
            logger.exception(f"Could not record fetch error for source {source.id}")

    def _announce(self, article_id: int, title: str, url: str, category: str, source: DBSource):
        if not self.notifier:
            return
        self.notifier.publish(EventType.NEW_ARTICLE, {
            "id": article_id,
            "title": title,
            "url": url,
            "category": category,
            "source_id": source.id,
            "source": source.name,
        })
