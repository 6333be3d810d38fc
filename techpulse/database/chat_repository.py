"""
Chat repository - append-only conversation entries per (user, article).
"""

import json
from datetime import timedelta

from .connection import DatabaseConnection
from .converters import from_db_timestamp, row_to_chat_message, to_db_timestamp, utcnow
from .models import DBChatMessage


class ChatRepository:
    """Repository for conversation entries."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def add_message(
        self,
        user_id: str,
        article_id: int,
        role: str,
        content: str,
        kind: str = "chat",
        model_used: str | None = None,
        metadata: dict | None = None,
    ) -> DBChatMessage:
        """
        Append a message to a conversation.

        Timestamps within a conversation are strictly increasing: if the clock
        hasn't advanced past the newest entry, the new entry is stamped one
        microsecond after it.
        """
        with self._db.conn(immediate=True) as conn:
            now = utcnow()
            last = conn.execute(
                """SELECT MAX(created_at) as last FROM chat_messages
                   WHERE user_id = ? AND article_id = ?""",
                (user_id, article_id)
            ).fetchone()["last"]
            last_at = from_db_timestamp(last)
            if last_at and now <= last_at:
                now = last_at + timedelta(microseconds=1)

            cursor = conn.execute(
                """INSERT INTO chat_messages
                   (user_id, article_id, role, content, kind, model_used, metadata, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (user_id, article_id, role, content, kind, model_used,
                 json.dumps(metadata) if metadata else None, to_db_timestamp(now))
            )
            message_id = cursor.lastrowid

            row = conn.execute(
                "SELECT * FROM chat_messages WHERE id = ?",
                (message_id,)
            ).fetchone()
            return row_to_chat_message(row)

    def get_messages(
        self,
        user_id: str,
        article_id: int,
        limit: int | None = None,
    ) -> list[DBChatMessage]:
        """
        Get messages for a conversation, oldest first.

        With a limit, the most recent `limit` messages are returned (still
        oldest first).
        """
        with self._db.conn() as conn:
            if limit is None:
                rows = conn.execute(
                    """SELECT * FROM chat_messages
                       WHERE user_id = ? AND article_id = ?
                       ORDER BY created_at ASC, id ASC""",
                    (user_id, article_id)
                ).fetchall()
            else:
                rows = conn.execute(
                    """SELECT * FROM (
                           SELECT * FROM chat_messages
                           WHERE user_id = ? AND article_id = ?
                           ORDER BY created_at DESC, id DESC
                           LIMIT ?
                       ) ORDER BY created_at ASC, id ASC""",
                    (user_id, article_id, limit)
                ).fetchall()
            return [row_to_chat_message(row) for row in rows]

    def get_message_count(self, user_id: str, article_id: int) -> int:
        """Get total number of messages in a conversation."""
        with self._db.conn() as conn:
            result = conn.execute(
                "SELECT COUNT(*) as cnt FROM chat_messages WHERE user_id = ? AND article_id = ?",
                (user_id, article_id)
            ).fetchone()
            return result["cnt"]
