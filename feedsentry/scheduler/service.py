"""
Collection Service
==================

Wires the collector from settings: registry and store (SQLite unless
supplied), fetcher, parser, deduplicator, categorizer, orchestrator and
health monitor. This is the surface the CLI and embedding applications use
for start/stop/restart, one-off rounds and health snapshots.
"""

from typing import Optional

from ..config.settings import FeedSentrySettings, get_settings
from ..config.sources import DEFAULT_SOURCES
from ..database.connection import DatabaseConnection
from ..database.models import HealthSnapshot, RoundResult
from ..database.schema import DatabaseSchema
from ..ingestion.feed_fetcher import SourceFetcher
from ..ingestion.feed_parser import FeedParser
from ..monitoring.health_monitor import HealthMonitor
from ..processing.categorizer import Categorizer
from ..processing.deduplicator import DeduplicationEngine
from ..processing.pipeline import SourcePipeline
from ..storage.article_repository import ArticleRepository
from ..storage.interfaces import ArticleStore, EnrichmentQueue, SourceRegistry
from ..storage.source_repository import SourceRepository
from ..utils.clock import Clock, SystemClock
from ..utils.logging import get_logger_for_component
from .collector import CollectionOrchestrator


class CollectionService:
    """Composition root for the ingestion pipeline."""

    def __init__(
        self,
        settings: Optional[FeedSentrySettings] = None,
        registry: Optional[SourceRegistry] = None,
        store: Optional[ArticleStore] = None,
        enrichment: Optional[EnrichmentQueue] = None,
        fetcher: Optional[SourceFetcher] = None,
        clock: Optional[Clock] = None,
    ):
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()
        self.logger = get_logger_for_component("service")
        self.db: Optional[DatabaseConnection] = None

        if registry is None or store is None:
            self.db = self._open_database()
        self.registry = registry or SourceRepository(self.db)
        self.store = store or ArticleRepository(self.db)
        self.enrichment = enrichment

        self.fetcher = fetcher or SourceFetcher(
            self.settings.fetch,
            max_connections=self.settings.collection.max_concurrent_sources,
            clock=self.clock,
        )
        self.parser = FeedParser(self.settings.parsing, clock=self.clock)
        self.deduplicator = DeduplicationEngine(
            self.store, self.settings.deduplication, clock=self.clock
        )
        self.categorizer = Categorizer(self.settings.categorization)
        self.pipeline = SourcePipeline(
            store=self.store,
            registry=self.registry,
            parser=self.parser,
            deduplicator=self.deduplicator,
            categorizer=self.categorizer,
            enrichment=self.enrichment,
            clock=self.clock,
        )
        self.orchestrator = CollectionOrchestrator(
            registry=self.registry,
            pipeline=self.pipeline,
            fetcher=self.fetcher,
            settings=self.settings.collection,
            clock=self.clock,
        )
        self.monitor = HealthMonitor(self.orchestrator, self.settings.health, clock=self.clock)

    def _open_database(self) -> DatabaseConnection:
        DatabaseSchema(self.settings.database.path).create_tables()
        return DatabaseConnection(
            self.settings.database.path, pool_size=self.settings.database.pool_size
        )

    def seed_default_sources(self) -> int:
        """Register catalogue sources missing from the registry."""
        added = self.registry.seed_defaults(DEFAULT_SOURCES)
        if added:
            self.logger.info(f"Seeded {added} default sources")
        return added

    async def start(self) -> None:
        await self.orchestrator.start()
        await self.monitor.start()

    async def stop(self) -> None:
        await self.monitor.stop()
        await self.orchestrator.stop()

    async def restart(self) -> None:
        await self.orchestrator.restart()

    async def collect_once(self) -> Optional[RoundResult]:
        return await self.orchestrator.run_round()

    def get_health(self) -> HealthSnapshot:
        return self.monitor.snapshot()

    def close(self) -> None:
        if self.db is not None:
            self.db.close_all_connections()
