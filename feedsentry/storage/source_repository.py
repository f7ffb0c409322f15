"""
Source Repository
=================

SQLite implementation of the SourceRegistry contract.
"""

import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import FeedSource
from ..utils.exceptions import DatabaseError, ErrorCode
from ..utils.logging import get_logger_for_component
from .interfaces import SourceRegistry


class SourceRepository(SourceRegistry):
    """Repository for feed sources."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("source_repository")

    def list_enabled_sources(self) -> List[FeedSource]:
        rows = self._query("SELECT * FROM sources WHERE enabled = 1 ORDER BY created_at, rowid")
        return [self._row_to_source(row) for row in rows]

    def list_sources(self) -> List[FeedSource]:
        rows = self._query("SELECT * FROM sources ORDER BY created_at, rowid")
        return [self._row_to_source(row) for row in rows]

    def get_source(self, source_id: str) -> Optional[FeedSource]:
        rows = self._query("SELECT * FROM sources WHERE id = ?", (source_id,))
        return self._row_to_source(rows[0]) if rows else None

    def add_source(self, source: FeedSource) -> FeedSource:
        try:
            self.db.execute_update(
                """
                INSERT INTO sources (id, name, url, feed_url, enabled, language,
                                     last_crawled_at, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    url = excluded.url,
                    feed_url = excluded.feed_url,
                    enabled = excluded.enabled,
                    language = excluded.language
                """,
                (
                    source.id, source.name, source.url, source.feed_url,
                    source.enabled, source.language,
                    source.last_crawled_at.isoformat() if source.last_crawled_at else None,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to save source {source.id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR
            ) from e

        self.logger.info(f"Saved source {source.id} ({source.name})")
        return source

    def set_enabled(self, source_id: str, enabled: bool) -> bool:
        try:
            updated = self.db.execute_update(
                "UPDATE sources SET enabled = ? WHERE id = ?", (enabled, source_id)
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to update source {source_id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR
            ) from e
        return updated > 0

    def mark_crawled(self, source_id: str, crawled_at: datetime) -> None:
        try:
            self.db.execute_update(
                "UPDATE sources SET last_crawled_at = ? WHERE id = ?",
                (crawled_at.isoformat(), source_id),
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to record crawl for {source_id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def _query(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        try:
            return self.db.execute_query(query, params)
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Source query failed: {e}",
                query=query,
                error_code=ErrorCode.DATABASE_ERROR
            ) from e

    @staticmethod
    def _row_to_source(row: sqlite3.Row) -> FeedSource:
        return FeedSource(
            id=row["id"],
            name=row["name"],
            url=row["url"],
            feed_url=row["feed_url"],
            enabled=bool(row["enabled"]),
            language=row["language"],
            last_crawled_at=row["last_crawled_at"],
        )
