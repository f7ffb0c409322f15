"""
Source Pipeline
===============

Fetch, parse, deduplicate, categorize and hand off the items of one source.

Each run reports a SourceOutcome. Failures are confined to the source (fetch
or parse) or to the single item (store errors), so a pipeline never affects
its siblings in the same round.
"""

from typing import Optional

from ..database.models import AcceptedArticle, CandidateItem, FeedSource, SourceOutcome
from ..ingestion.feed_fetcher import SourceFetcher
from ..ingestion.feed_parser import FeedParser
from ..storage.interfaces import ArticleStore, EnrichmentQueue, SourceRegistry
from ..utils.clock import Clock, SystemClock
from ..utils.exceptions import (
    DatabaseError,
    DuplicateKeyError,
    EmptyFeedError,
    SourceUnavailableError,
)
from ..utils.logging import ComponentLogger, get_logger_for_component
from .categorizer import Categorizer
from .deduplicator import DeduplicationEngine


class SourcePipeline:
    """Per-source collection steps shared by every task of a round."""

    def __init__(
        self,
        store: ArticleStore,
        registry: SourceRegistry,
        parser: FeedParser,
        deduplicator: DeduplicationEngine,
        categorizer: Categorizer,
        enrichment: Optional[EnrichmentQueue] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.registry = registry
        self.parser = parser
        self.deduplicator = deduplicator
        self.categorizer = categorizer
        self.enrichment = enrichment
        self.clock = clock or SystemClock()

    async def run(self, source: FeedSource, fetcher: SourceFetcher) -> SourceOutcome:
        """Collect one source.

        Args:
            source: Source to collect
            fetcher: Open fetcher shared by the round

        Returns:
            Outcome with accepted/duplicate/skipped counts, or the error
            that stopped the source
        """
        logger = get_logger_for_component("pipeline", source_id=source.id)
        outcome = SourceOutcome(source_id=source.id, source_name=source.name, success=True)

        if not source.feed_url:
            logger.debug(f"{source.name} has no feed URL, nothing to collect")
            return outcome

        try:
            raw = await fetcher.fetch(source.feed_url)
        except SourceUnavailableError as e:
            logger.warning(f"{source.name} unavailable: {e}", extra=e.to_dict())
            outcome.success = False
            outcome.error = str(e)
            return outcome

        try:
            parsed = self.parser.parse(raw, source_name=source.name, feed_url=source.feed_url)
        except EmptyFeedError as e:
            logger.warning(f"{source.name} returned no items: {e}")
            parsed = None

        if parsed is not None:
            outcome.parsed = parsed.item_count
            outcome.skipped = parsed.skipped
            for item in parsed.items:
                self._process_item(item, source, outcome, logger)

        try:
            self.registry.mark_crawled(source.id, self.clock.now())
        except DatabaseError as e:
            logger.error(f"Could not record crawl time for {source.name}: {e}")

        logger.info(
            f"{source.name}: {outcome.accepted} accepted, {outcome.duplicates} duplicates, "
            f"{outcome.skipped} skipped",
            extra={
                "accepted": outcome.accepted,
                "duplicates": outcome.duplicates,
                "skipped": outcome.skipped,
            },
        )
        return outcome

    def _process_item(
        self,
        item: CandidateItem,
        source: FeedSource,
        outcome: SourceOutcome,
        logger: ComponentLogger,
    ) -> None:
        try:
            if self.deduplicator.is_duplicate(item):
                outcome.duplicates += 1
                return
        except DatabaseError as e:
            logger.error(f"Duplicate check failed for {item.link}: {e}")
            outcome.skipped += 1
            return

        category = self.categorizer.categorize(item.title, item.description)
        article = AcceptedArticle.from_candidate(
            item, category, source, created_at=self.clock.now()
        )

        try:
            self.store.create_article(article)
        except DuplicateKeyError:
            outcome.duplicates += 1
            return
        except DatabaseError as e:
            logger.error(f"Failed to store {item.link}: {e}", extra=e.to_dict())
            outcome.skipped += 1
            return

        outcome.accepted += 1
        self._hand_off(article, logger)

    def _hand_off(self, article: AcceptedArticle, logger: ComponentLogger) -> None:
        if self.enrichment is None:
            return
        try:
            self.enrichment.submit(article)
        except Exception as e:
            logger.warning(f"Enrichment handoff failed for {article.id}: {e}", exc_info=True)
