"""
Database connection management and schema initialization.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ..exceptions import RepositoryUnavailable


class DatabaseConnection:
    """Manages database connection and schema."""

    def __init__(self, db_path: Path, timeout: float = 10.0):
        self.db_path = db_path
        self.timeout = timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def conn(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """
        Get database connection with row factory.

        With immediate=True the write lock is taken up front (BEGIN IMMEDIATE),
        so a read-then-write sequence on one row cannot interleave with
        another writer.

        Raises:
            RepositoryUnavailable: if SQLite fails for reasons other than a
                constraint violation (locked, disk I/O, corrupt file)
        """
        try:
            connection = sqlite3.connect(self.db_path, timeout=self.timeout)
        except sqlite3.Error as e:
            raise RepositoryUnavailable(f"Cannot open database: {e}") from e

        connection.row_factory = sqlite3.Row
        try:
            connection.execute("PRAGMA foreign_keys = ON")
            if immediate:
                connection.execute("BEGIN IMMEDIATE")
            yield connection
            connection.commit()
        except sqlite3.IntegrityError:
            connection.rollback()
            raise
        except sqlite3.Error as e:
            connection.rollback()
            raise RepositoryUnavailable(f"Database error: {e}") from e
        finally:
            connection.close()

    def _init_schema(self):
        """Initialize database schema."""
        with self.conn() as connection:
            connection.executescript("""
                CREATE TABLE IF NOT EXISTS sources (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    url TEXT NOT NULL,
                    feed_url TEXT UNIQUE NOT NULL,
                    is_active BOOLEAN DEFAULT TRUE,
                    fetch_interval_minutes INTEGER NOT NULL DEFAULT 30,
                    last_fetched TIMESTAMP,
                    fetch_error TEXT,
                    created_at TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS articles (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    source_id INTEGER REFERENCES sources(id) ON DELETE SET NULL,
                    url TEXT UNIQUE NOT NULL,
                    title TEXT NOT NULL,
                    content TEXT,
                    snippet TEXT,
                    content_hash TEXT,
                    category TEXT NOT NULL DEFAULT 'others',
                    sentiment TEXT,
                    sentiment_score REAL,
                    view_count INTEGER NOT NULL DEFAULT 0,
                    published_at TIMESTAMP,
                    fetched_at TIMESTAMP NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                );

                CREATE TABLE IF NOT EXISTS bookmarks (
                    user_id TEXT NOT NULL,
                    article_id INTEGER NOT NULL REFERENCES articles(id) ON DELETE CASCADE,
                    created_at TIMESTAMP NOT NULL,
                    PRIMARY KEY (user_id, article_id)
                );

                CREATE TABLE IF NOT EXISTS trending_topics (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    time_window TEXT NOT NULL CHECK(time_window IN ('today', 'week', 'month')),
                    date TEXT NOT NULL,
                    topic TEXT NOT NULL,
                    mention_count INTEGER NOT NULL,
                    category TEXT,
                    growth_rate REAL,
                    created_at TIMESTAMP NOT NULL,
                    UNIQUE (time_window, topic)
                );

                CREATE TABLE IF NOT EXISTS chat_messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    article_id INTEGER NOT NULL REFERENCES articles(id) ON DELETE CASCADE,
                    role TEXT NOT NULL CHECK(role IN ('user', 'assistant', 'system')),
                    content TEXT NOT NULL,
                    kind TEXT NOT NULL DEFAULT 'chat',
                    model_used TEXT,
                    metadata TEXT,
                    created_at TIMESTAMP NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_articles_source ON articles(source_id);
                CREATE INDEX IF NOT EXISTS idx_articles_published ON articles(published_at DESC);
                CREATE INDEX IF NOT EXISTS idx_articles_category ON articles(category, published_at DESC);
                CREATE INDEX IF NOT EXISTS idx_bookmarks_user ON bookmarks(user_id, created_at DESC);
                CREATE INDEX IF NOT EXISTS idx_trending_window ON trending_topics(time_window, mention_count DESC);
                CREATE INDEX IF NOT EXISTS idx_chat_pair ON chat_messages(user_id, article_id, created_at);
            """)

            # Create FTS5 virtual table if it doesn't exist
            result = connection.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='articles_fts'"
            ).fetchone()

            if not result:
                connection.executescript("""
                    CREATE VIRTUAL TABLE articles_fts USING fts5(
                        title,
                        snippet,
                        content,
                        content='articles',
                        content_rowid='id'
                    );

                    CREATE TRIGGER articles_ai AFTER INSERT ON articles BEGIN
                        INSERT INTO articles_fts(rowid, title, snippet, content)
                        VALUES (new.id, new.title, new.snippet, new.content);
                    END;

                    CREATE TRIGGER articles_au AFTER UPDATE OF title, snippet, content ON articles BEGIN
                        INSERT INTO articles_fts(articles_fts, rowid, title, snippet, content)
                        VALUES ('delete', old.id, old.title, old.snippet, old.content);
                        INSERT INTO articles_fts(rowid, title, snippet, content)
                        VALUES (new.id, new.title, new.snippet, new.content);
                    END;

                    CREATE TRIGGER articles_ad AFTER DELETE ON articles BEGIN
                        INSERT INTO articles_fts(articles_fts, rowid, title, snippet, content)
                        VALUES ('delete', old.id, old.title, old.snippet, old.content);
                    END;
                """)
