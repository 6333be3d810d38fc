"""
Trending repository - wholesale replacement of per-window topic rows.
"""

from dataclasses import dataclass

from .connection import DatabaseConnection
from .converters import row_to_trending_topic, to_db_timestamp, utcnow
from .models import DBTrendingTopic


@dataclass(frozen=True)
class TrendingTopicRecord:
    """A computed trending topic, ready to be stored."""
    topic: str
    mention_count: int
    category: str | None
    growth_rate: float | None


class TrendingRepository:
    """Repository for trending topic operations."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def replace(
        self,
        window: str,
        date: str,
        topics: list[TrendingTopicRecord],
    ) -> int:
        """
        Replace all stored topics for a window in one transaction.

        Returns the number of rows written.
        """
        now = to_db_timestamp(utcnow())
        with self._db.conn(immediate=True) as conn:
            conn.execute("DELETE FROM trending_topics WHERE time_window = ?", (window,))
            conn.executemany(
                """INSERT INTO trending_topics
                   (time_window, date, topic, mention_count, category, growth_rate, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                [
                    (window, date, t.topic, t.mention_count, t.category, t.growth_rate, now)
                    for t in topics
                ]
            )
        return len(topics)

    def get(self, window: str, limit: int = 50) -> list[DBTrendingTopic]:
        """Get stored topics for a window, highest mention count first."""
        with self._db.conn() as conn:
            rows = conn.execute(
                """SELECT * FROM trending_topics
                   WHERE time_window = ?
                   ORDER BY mention_count DESC, topic ASC
                   LIMIT ?""",
                (window, limit)
            ).fetchall()
            return [row_to_trending_topic(row) for row in rows]
