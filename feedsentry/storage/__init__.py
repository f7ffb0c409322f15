"""
FeedSentry Storage Layer
========================

Contracts for the collaborators the pipeline consumes, plus SQLite and
in-memory implementations.
"""

from .interfaces import ArticleStore, EnrichmentQueue, SourceRegistry
from .article_repository import ArticleRepository
from .source_repository import SourceRepository
from .memory import AsyncEnrichmentQueue, MemoryArticleStore, MemorySourceRegistry

__all__ = [
    "ArticleStore",
    "EnrichmentQueue",
    "SourceRegistry",
    "ArticleRepository",
    "SourceRepository",
    "AsyncEnrichmentQueue",
    "MemoryArticleStore",
    "MemorySourceRegistry",
]
