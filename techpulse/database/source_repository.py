"""
Source repository - CRUD operations for feed sources.

Sources are never hard-deleted while articles reference them; removal from
the registry is a soft deactivation.
"""

from .connection import DatabaseConnection
from .converters import row_to_source, to_db_timestamp, utcnow
from .models import DBSource


class SourceRepository:
    """Repository for source operations."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def add(
        self,
        name: str,
        url: str,
        feed_url: str,
        fetch_interval_minutes: int = 30,
        is_active: bool = True,
    ) -> int:
        """Add a new source. Returns source ID (existing ID if feed URL is known)."""
        with self._db.conn(immediate=True) as conn:
            row = conn.execute(
                "SELECT id FROM sources WHERE feed_url = ?", (feed_url,)
            ).fetchone()
            if row:
                return row["id"]

            cursor = conn.execute(
                """INSERT INTO sources
                   (name, url, feed_url, is_active, fetch_interval_minutes, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (name, url, feed_url, is_active, fetch_interval_minutes,
                 to_db_timestamp(utcnow()))
            )
            return cursor.lastrowid

    def get(self, source_id: int) -> DBSource | None:
        """Get single source by ID."""
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM sources WHERE id = ?", (source_id,)
            ).fetchone()
            return row_to_source(row) if row else None

    def get_by_feed_url(self, feed_url: str) -> DBSource | None:
        """Get source by its feed URL."""
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM sources WHERE feed_url = ?", (feed_url,)
            ).fetchone()
            return row_to_source(row) if row else None

    def get_all(self, active_only: bool = False) -> list[DBSource]:
        """Get all sources ordered by name."""
        query = "SELECT * FROM sources"
        if active_only:
            query += " WHERE is_active = 1"
        query += " ORDER BY name COLLATE NOCASE"

        with self._db.conn() as conn:
            rows = conn.execute(query).fetchall()
            return [row_to_source(row) for row in rows]

    def count(self) -> int:
        """Count registered sources, active or not."""
        with self._db.conn() as conn:
            return conn.execute("SELECT COUNT(*) as cnt FROM sources").fetchone()["cnt"]

    def update_fetched(self, source_id: int, error: str | None = None):
        """Record a fetch attempt. The last-fetch time only moves on success."""
        with self._db.conn() as conn:
            if error:
                conn.execute(
                    "UPDATE sources SET fetch_error = ? WHERE id = ?",
                    (error, source_id)
                )
            else:
                conn.execute(
                    "UPDATE sources SET last_fetched = ?, fetch_error = NULL WHERE id = ?",
                    (to_db_timestamp(utcnow()), source_id)
                )

    def set_active(self, source_id: int, is_active: bool) -> bool:
        """Activate or deactivate a source. Returns False if the source doesn't exist."""
        with self._db.conn() as conn:
            cursor = conn.execute(
                "UPDATE sources SET is_active = ? WHERE id = ?",
                (is_active, source_id)
            )
            return cursor.rowcount > 0

    def update(
        self,
        source_id: int,
        name: str | None = None,
        fetch_interval_minutes: int | None = None,
    ):
        """Update source name and/or fetch interval."""
        updates = []
        params: list = []
        if name is not None:
            updates.append("name = ?")
            params.append(name)
        if fetch_interval_minutes is not None:
            updates.append("fetch_interval_minutes = ?")
            params.append(fetch_interval_minutes)
        if not updates:
            return

        params.append(source_id)
        with self._db.conn() as conn:
            conn.execute(
                f"UPDATE sources SET {', '.join(updates)} WHERE id = ?",
                params
            )
