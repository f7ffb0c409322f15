"""
Article Repository
==================

SQLite implementation of the ArticleStore contract. The unique index on
``articles.link`` is the final guard against duplicates; a violation surfaces
as DuplicateKeyError.
"""

import sqlite3
from datetime import datetime
from typing import List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import AcceptedArticle
from ..utils.exceptions import DatabaseError, DuplicateKeyError, ErrorCode
from ..utils.logging import get_logger_for_component
from .interfaces import ArticleStore


def _to_db_time(value: datetime) -> str:
    return value.isoformat()


class ArticleRepository(ArticleStore):
    """Repository for accepted articles."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize article repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("article_repository")

    def create_article(self, article: AcceptedArticle) -> str:
        """Create a new article.

        Args:
            article: Article to store

        Returns:
            Created article ID

        Raises:
            DuplicateKeyError: If the link is already stored
            DatabaseError: If creation fails for any other reason
        """
        try:
            with self.db.get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO articles (id, title, link, description, content, author,
                                          category, category_hint, source_id,
                                          published_at, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        article.id, article.title, article.link, article.description,
                        article.content, article.author, article.category,
                        article.category_hint, article.source_id,
                        _to_db_time(article.published_at), _to_db_time(article.created_at),
                    )
                )
                conn.commit()

        except sqlite3.IntegrityError as e:
            raise DuplicateKeyError(
                f"Article already stored: {e}", link=article.link
            ) from e
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to create article: {e}",
                error_code=ErrorCode.DATABASE_ERROR
            ) from e

        self.logger.debug(f"Created article: {article.id}")
        return article.id

    def exists_by_link(self, link: str) -> bool:
        row = self._query_one("SELECT 1 FROM articles WHERE link = ? LIMIT 1", (link,))
        return row is not None

    def recent_titles(self, since: datetime, limit: int) -> List[str]:
        try:
            rows = self.db.execute_query(
                """
                SELECT title FROM articles
                WHERE created_at >= ?
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (_to_db_time(since), limit),
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to load recent titles: {e}",
                error_code=ErrorCode.DATABASE_ERROR
            ) from e
        return [row["title"] for row in rows]

    def count(self) -> int:
        row = self._query_one("SELECT COUNT(*) AS total FROM articles")
        return row["total"] if row else 0

    def get_article_by_link(self, link: str) -> Optional[AcceptedArticle]:
        row = self._query_one("SELECT * FROM articles WHERE link = ?", (link,))
        if row is None:
            return None
        data = dict(row)
        return AcceptedArticle(**data)

    def _query_one(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        try:
            return self.db.execute_one(query, params)
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Article query failed: {e}",
                query=query,
                error_code=ErrorCode.DATABASE_ERROR
            ) from e
