"""
Unit Tests for Deduplication Engine
===================================

Tests for exact-link and fuzzy-title duplicate detection.
"""

from datetime import timedelta

import pytest

from feedsentry.config.settings import DeduplicationSettings
from feedsentry.database.models import CandidateItem
from feedsentry.processing.deduplicator import (
    DeduplicationEngine,
    DuplicateReason,
    title_similarity,
)
from tests.helpers import make_article


def _candidate(title, link="https://example.com/new-story"):
    return CandidateItem(title=title, link=link)


@pytest.fixture
def engine(memory_store, clock):
    return DeduplicationEngine(memory_store, DeduplicationSettings(), clock=clock)


class TestTitleSimilarity:
    """Test the word-overlap ratio."""

    def test_identical_titles(self):
        assert title_similarity("Markets rally today", "Markets rally today") == 1.0

    def test_case_and_punctuation_ignored(self):
        assert title_similarity("Markets rally, today!", "markets RALLY today") == 1.0

    def test_partial_overlap(self):
        similarity = title_similarity(
            "Apple unveils new iPhone with faster chip today",
            "Apple unveils new iPhone with faster chip",
        )
        assert similarity == pytest.approx(0.875)

    def test_disjoint_titles(self):
        assert title_similarity("Rain expected tomorrow", "Markets rally") == 0.0

    def test_empty_titles(self):
        assert title_similarity("", "") == 0.0
        assert title_similarity("", "Something") == 0.0

    def test_symmetric(self):
        a, b = "Central bank raises rates", "Bank raises interest rates again"
        assert title_similarity(a, b) == title_similarity(b, a)


class TestDuplicateDetection:
    """Test checks against the store's recent window."""

    def test_new_item_not_duplicate(self, engine):
        result = engine.check(_candidate("Completely fresh headline"))

        assert not result
        assert result.reason is None

    def test_duplicate_by_exact_link(self, engine, memory_store, clock):
        memory_store.create_article(
            make_article("Original wording", "https://example.com/story", clock.now())
        )

        result = engine.check(_candidate("Entirely different words", link="https://example.com/story"))

        assert result.is_duplicate
        assert result.reason == DuplicateReason.LINK

    def test_duplicate_by_similar_title(self, engine, memory_store, clock):
        memory_store.create_article(
            make_article(
                "Apple unveils new iPhone with faster chip",
                "https://other.example.com/iphone",
                clock.now() - timedelta(hours=1),
            )
        )

        result = engine.check(_candidate("Apple unveils new iPhone with faster chip today"))

        assert result.is_duplicate
        assert result.reason == DuplicateReason.TITLE
        assert result.similarity == pytest.approx(0.875)
        assert result.matched_title == "Apple unveils new iPhone with faster chip"

    def test_similarity_exactly_at_threshold_is_duplicate(self, engine, memory_store, clock):
        memory_store.create_article(
            make_article("alpha beta gamma delta", "https://example.com/a", clock.now())
        )

        assert engine.is_duplicate(_candidate("alpha beta gamma delta epsilon"))

    def test_similarity_below_threshold_is_new(self, engine, memory_store, clock):
        memory_store.create_article(
            make_article("alpha beta gamma", "https://example.com/a", clock.now())
        )

        assert not engine.is_duplicate(_candidate("alpha beta gamma delta"))

    def test_title_outside_recent_window_ignored(self, engine, memory_store, clock):
        memory_store.create_article(
            make_article(
                "Markets rally as inflation cools",
                "https://example.com/old",
                clock.now() - timedelta(hours=25),
            )
        )

        assert not engine.is_duplicate(_candidate("Markets rally as inflation cools"))

    def test_link_match_ignores_recent_window(self, engine, memory_store, clock):
        memory_store.create_article(
            make_article("Old story", "https://example.com/old", clock.now() - timedelta(days=30))
        )

        assert engine.is_duplicate(_candidate("Old story", link="https://example.com/old"))

    def test_window_size_bounds_comparisons(self, memory_store, clock):
        engine = DeduplicationEngine(
            memory_store, DeduplicationSettings(recent_window_size=1), clock=clock
        )
        memory_store.create_article(
            make_article("Markets rally as inflation cools", "https://example.com/1",
                         clock.now() - timedelta(hours=2))
        )
        memory_store.create_article(
            make_article("Unrelated weather report", "https://example.com/2",
                         clock.now() - timedelta(hours=1))
        )

        assert not engine.is_duplicate(_candidate("Markets rally as inflation cools"))

    def test_configurable_threshold(self, memory_store, clock):
        engine = DeduplicationEngine(
            memory_store, DeduplicationSettings(similarity_threshold=0.9), clock=clock
        )
        memory_store.create_article(
            make_article("Apple unveils new iPhone with faster chip", "https://example.com/a", clock.now())
        )

        assert not engine.is_duplicate(_candidate("Apple unveils new iPhone with faster chip today"))

    def test_stats_track_reasons(self, engine, memory_store, clock):
        memory_store.create_article(
            make_article("Known headline here", "https://example.com/known", clock.now())
        )

        engine.check(_candidate("Something new", link="https://example.com/known"))
        engine.check(_candidate("Known headline here"))
        engine.check(_candidate("Nothing alike at all"))

        assert engine.stats.checked == 3
        assert engine.stats.duplicates_by_link == 1
        assert engine.stats.duplicates_by_title == 1
        assert engine.stats.deduplication_rate == pytest.approx(200 / 3)
