"""
Storage Contracts
=================

Collaborators the pipeline consumes but does not own: the article store, the
source registry, and the enrichment queue that receives accepted articles.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from ..database.models import AcceptedArticle, FeedSource


class ArticleStore(ABC):
    """Persistent article storage with a unique canonical link."""

    @abstractmethod
    def create_article(self, article: AcceptedArticle) -> str:
        """Store an article and return its id.

        Raises:
            DuplicateKeyError: If an article with the same link exists
            DatabaseError: For any other storage failure
        """

    @abstractmethod
    def exists_by_link(self, link: str) -> bool:
        """True if an article with exactly this canonical link is stored."""

    @abstractmethod
    def recent_titles(self, since: datetime, limit: int) -> List[str]:
        """Titles of articles stored at or after ``since``, newest first."""

    @abstractmethod
    def count(self) -> int:
        """Number of stored articles."""


class SourceRegistry(ABC):
    """Catalogue of feed sources."""

    @abstractmethod
    def list_enabled_sources(self) -> List[FeedSource]:
        """Sources to collect this round."""

    @abstractmethod
    def get_source(self, source_id: str) -> Optional[FeedSource]:
        """Look up one source."""

    @abstractmethod
    def add_source(self, source: FeedSource) -> FeedSource:
        """Register a source, replacing one with the same id."""

    @abstractmethod
    def mark_crawled(self, source_id: str, crawled_at: datetime) -> None:
        """Record a successful fetch for one source."""

    def seed_defaults(self, sources: List[dict]) -> int:
        """Register catalogue entries missing from the registry."""
        added = 0
        for entry in sources:
            if self.get_source(entry["id"]) is None:
                self.add_source(FeedSource(**entry))
                added += 1
        return added


class EnrichmentQueue(ABC):
    """Fire-and-forget handoff for downstream enrichment."""

    @abstractmethod
    def submit(self, article: AcceptedArticle) -> bool:
        """Queue an article without blocking. Returns False if dropped."""
