"""
Unit Tests for Storage
======================

Tests for the SQLite repositories, the in-memory backends and the
enrichment queue.
"""

from datetime import datetime, timedelta, timezone

import pytest

from feedsentry.config.sources import DEFAULT_SOURCES
from feedsentry.database.schema import DatabaseSchema
from feedsentry.storage.article_repository import ArticleRepository
from feedsentry.storage.memory import (
    AsyncEnrichmentQueue,
    MemoryArticleStore,
    MemorySourceRegistry,
)
from feedsentry.storage.source_repository import SourceRepository
from feedsentry.utils.exceptions import DuplicateKeyError, ErrorCode
from tests.helpers import make_article, make_source

NOW = datetime(2024, 9, 7, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def article_repo(db_connection):
    return ArticleRepository(db_connection)


@pytest.fixture
def source_repo(db_connection):
    return SourceRepository(db_connection)


class TestSchema:
    """Test schema creation."""

    def test_tables_created(self, temp_db_path):
        assert DatabaseSchema(temp_db_path).verify_schema()

    def test_create_tables_is_idempotent(self, temp_db_path):
        schema = DatabaseSchema(temp_db_path)
        schema.create_tables()
        assert schema.verify_schema()

    def test_missing_tables_detected(self, tmp_path):
        assert not DatabaseSchema(str(tmp_path / "empty.db")).verify_schema()

    def test_database_info(self, db_connection, article_repo):
        article_repo.create_article(make_article("Stored", "https://example.com/1", NOW))

        info = db_connection.get_database_info()

        assert info["table_counts"] == {"sources": 0, "articles": 1}
        assert info["database_size_mb"] > 0


class TestArticleRepository:
    """Test SQLite article storage."""

    def test_create_and_read_back(self, article_repo):
        article = make_article(
            "Stored headline", "https://example.com/stored", NOW,
            description="Summary", author="Jane Doe", category="Science & Research",
        )

        assert article_repo.create_article(article) == article.id

        stored = article_repo.get_article_by_link("https://example.com/stored")
        assert stored.id == article.id
        assert stored.title == "Stored headline"
        assert stored.author == "Jane Doe"
        assert stored.category == "Science & Research"
        assert stored.created_at == NOW

    def test_unknown_link(self, article_repo):
        assert article_repo.get_article_by_link("https://example.com/missing") is None
        assert not article_repo.exists_by_link("https://example.com/missing")

    def test_duplicate_link_rejected(self, article_repo):
        article_repo.create_article(make_article("First", "https://example.com/same", NOW))

        with pytest.raises(DuplicateKeyError) as exc_info:
            article_repo.create_article(make_article("Second", "https://example.com/same", NOW))

        assert exc_info.value.error_code == ErrorCode.DATABASE_CONSTRAINT
        assert exc_info.value.context["link"] == "https://example.com/same"
        assert article_repo.count() == 1

    def test_exists_by_link(self, article_repo):
        article_repo.create_article(make_article("Present", "https://example.com/present", NOW))
        assert article_repo.exists_by_link("https://example.com/present")

    def test_recent_titles_window_and_order(self, article_repo):
        article_repo.create_article(make_article("Old", "https://example.com/old", NOW - timedelta(hours=30)))
        article_repo.create_article(make_article("Older recent", "https://example.com/r1", NOW - timedelta(hours=2)))
        article_repo.create_article(make_article("Newest", "https://example.com/r2", NOW - timedelta(hours=1)))

        since = NOW - timedelta(hours=24)

        assert article_repo.recent_titles(since, 10) == ["Newest", "Older recent"]
        assert article_repo.recent_titles(since, 1) == ["Newest"]


class TestSourceRepository:
    """Test SQLite source registry."""

    def test_add_and_get(self, source_repo):
        source_repo.add_source(make_source("bbc", "https://feeds.bbci.co.uk/news/rss.xml", name="BBC"))

        source = source_repo.get_source("bbc")
        assert source.name == "BBC"
        assert source.enabled
        assert source.last_crawled_at is None

    def test_add_existing_id_updates(self, source_repo):
        source_repo.add_source(make_source("bbc", "https://old.example.com/rss", name="Old name"))
        source_repo.add_source(make_source("bbc", "https://new.example.com/rss", name="New name"))

        sources = source_repo.list_sources()
        assert len(sources) == 1
        assert sources[0].name == "New name"
        assert sources[0].feed_url == "https://new.example.com/rss"

    def test_disabled_sources_not_listed(self, source_repo):
        source_repo.add_source(make_source("on", "https://on.example.com/rss"))
        source_repo.add_source(make_source("off", "https://off.example.com/rss"))

        assert source_repo.set_enabled("off", False)
        assert not source_repo.set_enabled("missing", False)

        assert [s.id for s in source_repo.list_enabled_sources()] == ["on"]
        assert len(source_repo.list_sources()) == 2

    def test_feedless_source(self, source_repo):
        source_repo.add_source(make_source("newsletter", "   "))
        assert source_repo.get_source("newsletter").feed_url is None

    def test_mark_crawled(self, source_repo):
        source_repo.add_source(make_source("bbc", "https://feeds.bbci.co.uk/news/rss.xml"))

        source_repo.mark_crawled("bbc", NOW)

        assert source_repo.get_source("bbc").last_crawled_at == NOW

    def test_seed_defaults_only_adds_missing(self, source_repo):
        source_repo.add_source(make_source(DEFAULT_SOURCES[0]["id"], "https://custom.example.com/rss", name="Custom"))

        added = source_repo.seed_defaults(DEFAULT_SOURCES)

        assert added == len(DEFAULT_SOURCES) - 1
        assert source_repo.get_source(DEFAULT_SOURCES[0]["id"]).name == "Custom"
        assert source_repo.seed_defaults(DEFAULT_SOURCES) == 0


class TestMemoryBackends:
    """Test in-memory store and registry."""

    def test_store_rejects_duplicate_link(self):
        store = MemoryArticleStore()
        store.create_article(make_article("One", "https://example.com/x", NOW))

        with pytest.raises(DuplicateKeyError):
            store.create_article(make_article("Two", "https://example.com/x", NOW))
        assert store.count() == 1

    def test_store_recent_titles(self):
        store = MemoryArticleStore()
        store.create_article(make_article("Old", "https://example.com/1", NOW - timedelta(days=2)))
        store.create_article(make_article("Mid", "https://example.com/2", NOW - timedelta(hours=3)))
        store.create_article(make_article("New", "https://example.com/3", NOW))

        assert store.recent_titles(NOW - timedelta(hours=24), 5) == ["New", "Mid"]

    def test_registry_returns_copies(self):
        registry = MemorySourceRegistry([make_source("a", "https://a.example.com/rss")])

        registry.get_source("a").name = "Changed"

        assert registry.get_source("a").name == "A"

    def test_registry_mark_crawled_and_enabled_filter(self):
        registry = MemorySourceRegistry([
            make_source("a", "https://a.example.com/rss"),
            make_source("b", "https://b.example.com/rss", enabled=False),
        ])

        registry.mark_crawled("a", NOW)
        registry.mark_crawled("unknown", NOW)

        assert [s.id for s in registry.list_enabled_sources()] == ["a"]
        assert registry.get_source("a").last_crawled_at == NOW


class TestEnrichmentQueue:
    """Test the non-blocking enrichment handoff."""

    @pytest.mark.asyncio
    async def test_submit_and_consume(self):
        queue = AsyncEnrichmentQueue(maxsize=5)
        article = make_article("Queued", "https://example.com/q", NOW)

        assert queue.submit(article)
        assert await queue.queue.get() is article

    def test_full_queue_drops(self):
        queue = AsyncEnrichmentQueue(maxsize=1)

        assert queue.submit(make_article("First", "https://example.com/1", NOW))
        assert not queue.submit(make_article("Second", "https://example.com/2", NOW))
        assert queue.dropped == 1
