"""
Bookmark repository - per-user bookmarks keyed by (user, article).
"""

import sqlite3

from ..exceptions import DuplicateBookmark
from .connection import DatabaseConnection
from .converters import row_to_article, to_db_timestamp, utcnow
from .models import DBArticle, DBBookmark


class BookmarkRepository:
    """Repository for bookmark operations."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def create(self, user_id: str, article_id: int) -> DBBookmark:
        """
        Create a bookmark.

        Raises:
            DuplicateBookmark: if the pair is already bookmarked
        """
        try:
            with self._db.conn() as conn:
                now = utcnow()
                conn.execute(
                    "INSERT INTO bookmarks (user_id, article_id, created_at) VALUES (?, ?, ?)",
                    (user_id, article_id, to_db_timestamp(now))
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateBookmark("Article already bookmarked") from e
        return DBBookmark(user_id=user_id, article_id=article_id, created_at=now)

    def delete(self, user_id: str, article_id: int) -> bool:
        """Delete a bookmark. Returns True if it existed."""
        with self._db.conn() as conn:
            cursor = conn.execute(
                "DELETE FROM bookmarks WHERE user_id = ? AND article_id = ?",
                (user_id, article_id)
            )
            return cursor.rowcount > 0

    def exists(self, user_id: str, article_id: int) -> bool:
        """Check whether the pair is bookmarked."""
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT 1 FROM bookmarks WHERE user_id = ? AND article_id = ?",
                (user_id, article_id)
            ).fetchone()
            return row is not None

    def get_articles(self, user_id: str, limit: int = 100) -> list[DBArticle]:
        """Get a user's bookmarked articles, most recently bookmarked first."""
        with self._db.conn() as conn:
            rows = conn.execute(
                """SELECT a.* FROM articles a
                   JOIN bookmarks b ON a.id = b.article_id
                   WHERE b.user_id = ?
                   ORDER BY b.created_at DESC
                   LIMIT ?""",
                (user_id, limit)
            ).fetchall()
            return [row_to_article(row) for row in rows]
