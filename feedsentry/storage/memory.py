"""
In-Memory Storage
=================

Process-local implementations of the storage contracts, used when the
collector is embedded without a database and throughout the tests.
"""

import asyncio
from datetime import datetime
from typing import Dict, List, Optional

from ..database.models import AcceptedArticle, FeedSource
from ..utils.exceptions import DuplicateKeyError
from ..utils.logging import get_logger_for_component
from .interfaces import ArticleStore, EnrichmentQueue, SourceRegistry


class MemoryArticleStore(ArticleStore):
    """Dict-backed article store keyed by canonical link."""

    def __init__(self):
        self._by_link: Dict[str, AcceptedArticle] = {}

    def create_article(self, article: AcceptedArticle) -> str:
        if article.link in self._by_link:
            raise DuplicateKeyError(
                f"Article already stored for link {article.link}", link=article.link
            )
        self._by_link[article.link] = article
        return article.id

    def exists_by_link(self, link: str) -> bool:
        return link in self._by_link

    def recent_titles(self, since: datetime, limit: int) -> List[str]:
        recent = [a for a in self._by_link.values() if a.created_at >= since]
        recent.sort(key=lambda a: a.created_at, reverse=True)
        return [a.title for a in recent[:limit]]

    def count(self) -> int:
        return len(self._by_link)

    @property
    def articles(self) -> List[AcceptedArticle]:
        return list(self._by_link.values())


class MemorySourceRegistry(SourceRegistry):
    """Registry holding sources in insertion order."""

    def __init__(self, sources: Optional[List[FeedSource]] = None):
        self._sources: Dict[str, FeedSource] = {}
        for source in sources or []:
            self.add_source(source)

    def list_enabled_sources(self) -> List[FeedSource]:
        return [s.model_copy() for s in self._sources.values() if s.enabled]

    def get_source(self, source_id: str) -> Optional[FeedSource]:
        source = self._sources.get(source_id)
        return source.model_copy() if source else None

    def add_source(self, source: FeedSource) -> FeedSource:
        self._sources[source.id] = source.model_copy()
        return source

    def mark_crawled(self, source_id: str, crawled_at: datetime) -> None:
        source = self._sources.get(source_id)
        if source is not None:
            source.last_crawled_at = crawled_at


class AsyncEnrichmentQueue(EnrichmentQueue):
    """Bounded asyncio queue; drops articles with a warning when full."""

    def __init__(self, maxsize: int = 1000):
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
        self.logger = get_logger_for_component("enrichment_queue")

    def submit(self, article: AcceptedArticle) -> bool:
        try:
            self.queue.put_nowait(article)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            self.logger.warning(
                f"Enrichment queue full, dropping article {article.id}",
                extra={"dropped_total": self.dropped},
            )
            return False
