"""
Database row converters - convert SQLite rows to dataclasses.

Timestamps are stored as fixed-width UTC ISO strings so that lexical ordering
in SQL matches chronological ordering.
"""

import json
import sqlite3
from datetime import datetime, timezone

from .models import DBArticle, DBChatMessage, DBSource, DBTrendingTopic


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_db_timestamp(value: datetime | None) -> str | None:
    """Serialize a datetime for storage. Naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp, tolerating legacy naive values."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def row_to_source(row: sqlite3.Row) -> DBSource:
    """Convert a database row to a DBSource."""
    return DBSource(
        id=row["id"],
        name=row["name"],
        url=row["url"],
        feed_url=row["feed_url"],
        is_active=bool(row["is_active"]),
        fetch_interval_minutes=row["fetch_interval_minutes"],
        last_fetched=from_db_timestamp(row["last_fetched"]),
        fetch_error=row["fetch_error"],
        created_at=from_db_timestamp(row["created_at"]),
    )


def row_to_article(row: sqlite3.Row) -> DBArticle:
    """Convert a database row to a DBArticle."""
    fetched_at = from_db_timestamp(row["fetched_at"]) or utcnow()
    score = row["sentiment_score"]

    return DBArticle(
        id=row["id"],
        title=row["title"],
        url=row["url"],
        content=row["content"],
        snippet=row["snippet"],
        content_hash=row["content_hash"],
        source_id=row["source_id"],
        published_at=from_db_timestamp(row["published_at"]),
        fetched_at=fetched_at,
        category=row["category"] or "others",
        sentiment=row["sentiment"],
        sentiment_score=float(score) if score is not None else None,
        view_count=row["view_count"] or 0,
        created_at=from_db_timestamp(row["created_at"]) or fetched_at,
        updated_at=from_db_timestamp(row["updated_at"]) or fetched_at,
    )


def row_to_trending_topic(row: sqlite3.Row) -> DBTrendingTopic:
    """Convert a database row to a DBTrendingTopic."""
    growth = row["growth_rate"]
    return DBTrendingTopic(
        id=row["id"],
        window=row["time_window"],
        date=row["date"],
        topic=row["topic"],
        mention_count=row["mention_count"],
        category=row["category"],
        growth_rate=float(growth) if growth is not None else None,
        created_at=from_db_timestamp(row["created_at"]) or utcnow(),
    )


def row_to_chat_message(row: sqlite3.Row) -> DBChatMessage:
    """Convert a database row to a DBChatMessage."""
    metadata = {}
    if row["metadata"]:
        try:
            metadata = json.loads(row["metadata"])
        except json.JSONDecodeError:
            pass

    return DBChatMessage(
        id=row["id"],
        user_id=row["user_id"],
        article_id=row["article_id"],
        role=row["role"],
        content=row["content"],
        created_at=from_db_timestamp(row["created_at"]) or utcnow(),
        kind=row["kind"] or "chat",
        model_used=row["model_used"],
        metadata=metadata,
    )
