"""
FeedSentry Database Schema
==========================

SQLite schema for the collector's own storage:
- sources: feed source registry with last successful crawl time
- articles: accepted articles, unique by canonical link
"""

import sqlite3
import logging
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)


class DatabaseSchema:
    """Database schema manager for the FeedSentry SQLite database."""

    TABLES = ("sources", "articles")

    def __init__(self, db_path: str = "data/feedsentry.db"):
        """Initialize database schema manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all tables and indexes."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("PRAGMA foreign_keys = ON")

            self._create_sources_table(conn)
            self._create_articles_table(conn)
            self._create_indexes(conn)

            conn.commit()
            logger.info("Database schema created successfully")

    def _create_sources_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sources (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                url TEXT NOT NULL,
                feed_url TEXT,
                enabled BOOLEAN DEFAULT TRUE,
                language TEXT,
                last_crawled_at TEXT,
                created_at TEXT NOT NULL
            )
        """
        )

    def _create_articles_table(self, conn: sqlite3.Connection) -> None:
        # Timestamps are ISO-8601 UTC strings so they order lexically
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS articles (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                link TEXT NOT NULL,
                description TEXT,
                content TEXT,
                author TEXT,
                category TEXT NOT NULL,
                category_hint TEXT,
                source_id TEXT NOT NULL,
                published_at TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        """
        )

    def _create_indexes(self, conn: sqlite3.Connection) -> None:
        conn.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_articles_link ON articles(link)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_articles_created_at ON articles(created_at)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_articles_source ON articles(source_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_sources_enabled ON sources(enabled)")

    def verify_schema(self) -> bool:
        """Check that every table exists."""
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            ).fetchall()

        existing: List[str] = [row[0] for row in rows]
        missing = [table for table in self.TABLES if table not in existing]
        if missing:
            logger.error(f"Missing tables: {missing}")
            return False
        return True
