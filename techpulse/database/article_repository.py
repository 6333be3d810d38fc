"""
Article repository - CRUD operations for articles.
"""

from datetime import datetime

from .connection import DatabaseConnection
from .converters import row_to_article, to_db_timestamp, utcnow
from .models import DBArticle, UpsertStatus


def _fts_query(query: str) -> str:
    """Quote each term so user input can't break FTS5 query syntax."""
    terms = [t.replace('"', '""') for t in query.split() if t.strip()]
    return " ".join(f'"{t}"' for t in terms)


class ArticleRepository:
    """Repository for article operations."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def upsert(
        self,
        url: str,
        title: str,
        content: str | None,
        snippet: str | None,
        content_hash: str,
        source_id: int | None,
        published_at: datetime | None,
        category: str,
        sentiment: str | None,
        sentiment_score: float | None,
    ) -> tuple[UpsertStatus, int]:
        """
        Insert an article or refresh the stored copy of the same URL.

        The lookup and write share one IMMEDIATE transaction and the URL column
        is UNIQUE, so concurrent writers can never produce two rows for one URL.
        On update, created_at, fetched_at and view_count are left untouched.

        Returns:
            (status, article_id); status is UNCHANGED when the stored content
            hash already matches and nothing was written.
        """
        now = to_db_timestamp(utcnow())
        with self._db.conn(immediate=True) as conn:
            existing = conn.execute(
                "SELECT id, content_hash FROM articles WHERE url = ?", (url,)
            ).fetchone()

            if existing and existing["content_hash"] == content_hash:
                return UpsertStatus.UNCHANGED, existing["id"]

            conn.execute(
                """INSERT INTO articles
                   (url, title, content, snippet, content_hash, source_id, published_at,
                    category, sentiment, sentiment_score, view_count,
                    fetched_at, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?, ?)
                   ON CONFLICT(url) DO UPDATE SET
                       title = excluded.title,
                       content = excluded.content,
                       snippet = excluded.snippet,
                       content_hash = excluded.content_hash,
                       source_id = COALESCE(excluded.source_id, articles.source_id),
                       published_at = COALESCE(excluded.published_at, articles.published_at),
                       category = excluded.category,
                       sentiment = excluded.sentiment,
                       sentiment_score = excluded.sentiment_score,
                       updated_at = excluded.updated_at""",
                (url, title, content, snippet, content_hash, source_id,
                 to_db_timestamp(published_at), category, sentiment, sentiment_score,
                 now, now, now)
            )

            if existing:
                return UpsertStatus.UPDATED, existing["id"]

            row = conn.execute(
                "SELECT id FROM articles WHERE url = ?", (url,)
            ).fetchone()
            return UpsertStatus.CREATED, row["id"]

    def get(self, article_id: int) -> DBArticle | None:
        """Get single article by ID."""
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM articles WHERE id = ?", (article_id,)
            ).fetchone()
            return row_to_article(row) if row else None

    def get_by_url(self, url: str) -> DBArticle | None:
        """Get article by canonical URL."""
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM articles WHERE url = ?", (url,)
            ).fetchone()
            return row_to_article(row) if row else None

    def get_many(
        self,
        category: str | None = None,
        since: datetime | None = None,
        search: str | None = None,
        source_id: int | None = None,
        limit: int = 20,
        offset: int = 0
    ) -> list[DBArticle]:
        """Get articles with optional filters, newest first."""
        query = "SELECT a.* FROM articles a"
        params: list = []

        fts = _fts_query(search) if search else ""
        if fts:
            query += " JOIN articles_fts fts ON a.id = fts.rowid WHERE articles_fts MATCH ?"
            params.append(fts)
        else:
            query += " WHERE 1=1"

        if category is not None:
            query += " AND a.category = ?"
            params.append(category)
        if since is not None:
            query += " AND COALESCE(a.published_at, a.fetched_at) >= ?"
            params.append(to_db_timestamp(since))
        if source_id is not None:
            query += " AND a.source_id = ?"
            params.append(source_id)

        query += " ORDER BY COALESCE(a.published_at, a.fetched_at) DESC, a.id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with self._db.conn() as conn:
            rows = conn.execute(query, params).fetchall()
            return [row_to_article(row) for row in rows]

    def get_in_range(self, start: datetime, end: datetime) -> list[DBArticle]:
        """Get articles published (or fetched, if no publish time) in [start, end)."""
        with self._db.conn() as conn:
            rows = conn.execute(
                """SELECT * FROM articles
                   WHERE COALESCE(published_at, fetched_at) >= ?
                     AND COALESCE(published_at, fetched_at) < ?
                   ORDER BY id""",
                (to_db_timestamp(start), to_db_timestamp(end))
            ).fetchall()
            return [row_to_article(row) for row in rows]

    def get_related(self, article: DBArticle, limit: int = 5) -> list[DBArticle]:
        """Get the most recent other articles in the same category."""
        with self._db.conn() as conn:
            rows = conn.execute(
                """SELECT * FROM articles
                   WHERE category = ? AND id != ?
                   ORDER BY COALESCE(published_at, fetched_at) DESC, id DESC
                   LIMIT ?""",
                (article.category, article.id, limit)
            ).fetchall()
            return [row_to_article(row) for row in rows]

    def increment_view_count(self, article_id: int) -> int | None:
        """Bump the view counter. Returns the new count, or None if article is missing."""
        with self._db.conn() as conn:
            cursor = conn.execute(
                "UPDATE articles SET view_count = view_count + 1 WHERE id = ?",
                (article_id,)
            )
            if cursor.rowcount == 0:
                return None
            row = conn.execute(
                "SELECT view_count FROM articles WHERE id = ?", (article_id,)
            ).fetchone()
            return row["view_count"]

    def search(self, query: str, limit: int = 20) -> list[DBArticle]:
        """Full-text search across title, snippet and content."""
        fts = _fts_query(query)
        if not fts:
            return []
        with self._db.conn() as conn:
            rows = conn.execute("""
                SELECT a.* FROM articles a
                JOIN articles_fts fts ON a.id = fts.rowid
                WHERE articles_fts MATCH ?
                ORDER BY rank
                LIMIT ?
            """, (fts, limit)).fetchall()
            return [row_to_article(row) for row in rows]

    def get_category_counts(self, since: datetime | None = None) -> dict[str, int]:
        """Count articles per category, optionally since a point in time."""
        query = "SELECT category, COUNT(*) as cnt FROM articles"
        params: list = []
        if since is not None:
            query += " WHERE COALESCE(published_at, fetched_at) >= ?"
            params.append(to_db_timestamp(since))
        query += " GROUP BY category"

        with self._db.conn() as conn:
            rows = conn.execute(query, params).fetchall()
            return {row["category"]: row["cnt"] for row in rows}

    def count(self) -> int:
        """Total number of stored articles."""
        with self._db.conn() as conn:
            return conn.execute("SELECT COUNT(*) as cnt FROM articles").fetchone()["cnt"]
