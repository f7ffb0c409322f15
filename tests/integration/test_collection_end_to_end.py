"""
End-to-End Collection Tests
===========================

Runs the composed collection service against a temporary SQLite database
with scripted feeds: several sources, mixed dialects, a failing source,
repeated rounds and a service restart on the same database.
"""

import asyncio

import pytest

from feedsentry.config.sources import DEFAULT_SOURCES
from feedsentry.database.models import CollectorState, HealthStatus
from feedsentry.scheduler.service import CollectionService
from feedsentry.utils.exceptions import SourceUnavailableError
from tests.helpers import (
    SAMPLE_ATOM_FEED,
    SAMPLE_RSS_FEED,
    FakeClock,
    FakeFetcher,
    build_rss,
    make_source,
)

pytestmark = pytest.mark.integration

RSS_URL = "https://news.example.com/rss"
ATOM_URL = "https://science.example.org/atom"
MIRROR_URL = "https://mirror.example.net/rss"
DOWN_URL = "https://down.example.com/rss"


def _fetcher():
    return FakeFetcher({
        RSS_URL: SAMPLE_RSS_FEED,
        ATOM_URL: SAMPLE_ATOM_FEED,
        # Same stories republished with different links
        MIRROR_URL: build_rss(
            [
                "OpenAI releases new model for software developers",
                "Bitcoin price rallies as crypto markets recover",
                "Local council approves new cycling lanes",
            ],
            base="https://mirror.example.net/story",
        ),
        DOWN_URL: SourceUnavailableError("HTTP 503", feed_url=DOWN_URL, attempts=3),
    })


def _service(settings, fetcher, clock):
    service = CollectionService(settings, fetcher=fetcher, clock=clock)
    for source_id, url in (
        ("example-news", RSS_URL),
        ("example-science", ATOM_URL),
        ("mirror", MIRROR_URL),
        ("down", DOWN_URL),
    ):
        service.registry.add_source(make_source(source_id, url))
    service.registry.add_source(make_source("newsletter", None))
    return service


@pytest.fixture
def service(test_settings, clock):
    service = _service(test_settings, _fetcher(), clock)
    yield service
    service.close()


class TestCollectionEndToEnd:
    """Full rounds through fetch, parse, dedup, categorize and store."""

    @pytest.mark.asyncio
    async def test_first_round(self, service):
        result = await service.collect_once()

        assert result.success
        assert result.sources_total == 5
        assert result.failed_source_ids == ["down"]
        # 2 RSS + 1 Atom + 1 new mirror story; the mirror repeats are title duplicates
        assert result.accepted_count == 4
        assert result.duplicate_count == 2
        assert service.store.count() == 4

    @pytest.mark.asyncio
    async def test_stored_articles_are_categorized(self, service):
        await service.collect_once()

        ai_story = service.store.get_article_by_link("https://example.com/news/openai-model")
        vaccine_story = service.store.get_article_by_link("https://example.org/atom/vaccine-study")
        council_story = service.store.get_article_by_link("https://mirror.example.net/story/2")

        assert ai_story.category == "AI & Technology"
        assert vaccine_story.category == "Health & Medicine"
        assert council_story.category == "General"
        assert council_story.author == "Mirror"

    @pytest.mark.asyncio
    async def test_repeated_round_is_idempotent(self, service, clock):
        await service.collect_once()
        clock.advance(300)

        second = await service.collect_once()

        assert second.success
        assert second.accepted_count == 0
        assert second.duplicate_count == 6
        assert service.store.count() == 4

    @pytest.mark.asyncio
    async def test_crawl_times_recorded_for_successful_sources(self, service, clock):
        await service.collect_once()

        assert service.registry.get_source("example-news").last_crawled_at == clock.now()
        assert service.registry.get_source("down").last_crawled_at is None

    @pytest.mark.asyncio
    async def test_health_after_rounds(self, service):
        await service.collect_once()
        health = service.get_health()

        assert health.state == CollectorState.IDLE
        assert health.error_count == 0
        assert health.last_round["failed_source_ids"] == ["down"]
        assert health.last_round["accepted_count"] == 4

    @pytest.mark.asyncio
    async def test_new_service_on_same_database_sees_history(self, test_settings, service, clock):
        await service.collect_once()
        service.close()

        reopened = CollectionService(test_settings, fetcher=_fetcher(), clock=clock)
        try:
            result = await reopened.collect_once()
        finally:
            reopened.close()

        assert result.accepted_count == 0
        assert result.duplicate_count == 6


class TestServiceLifecycle:
    """Start, restart and stop of the timer-driven service."""

    @pytest.mark.asyncio
    async def test_start_collects_then_stops(self, test_settings):
        clock = FakeClock(park_at=60)
        service = _service(test_settings, _fetcher(), clock)
        try:
            await service.start()
            for _ in range(50):
                if service.get_health().last_round is not None:
                    break
                await asyncio.sleep(0.01)

            health = service.get_health()
            assert service.monitor.is_running
            assert health.last_round["accepted_count"] == 4
            assert health.status == HealthStatus.DEGRADED

            await service.restart()
            assert service.get_health().restart_count == 1
            assert service.orchestrator.is_running

            await service.stop()
            assert not service.orchestrator.is_running
            assert not service.monitor.is_running
            assert service.get_health().status == HealthStatus.STOPPED
        finally:
            await service.stop()
            service.close()

    def test_seed_default_sources(self, test_settings, clock):
        service = CollectionService(test_settings, fetcher=FakeFetcher(), clock=clock)
        try:
            assert service.seed_default_sources() == len(DEFAULT_SOURCES)
            assert service.seed_default_sources() == 0
            assert len(service.registry.list_enabled_sources()) == len(DEFAULT_SOURCES)
        finally:
            service.close()
