"""
Deduplication Engine
====================

Decides whether a candidate item is already known. Two checks run in order
and stop at the first match:

1. exact canonical-link match against the article store
2. fuzzy title match against titles stored within the recent window,
   using word overlap ``|common| / |union|``

Only the recent window is consulted, so per-item cost does not grow with the
size of the corpus.
"""

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from functools import lru_cache
from typing import FrozenSet, Iterable, Optional

from ..config.settings import DeduplicationSettings
from ..database.models import CandidateItem
from ..ingestion.content_cleaner import tokenize_words
from ..storage.interfaces import ArticleStore
from ..utils.clock import Clock, SystemClock
from ..utils.logging import get_logger_for_component


class DuplicateReason(str, Enum):
    LINK = "link"
    TITLE = "title"


@dataclass
class DuplicateCheck:
    """Outcome of checking one candidate."""
    is_duplicate: bool
    reason: Optional[DuplicateReason] = None
    similarity: float = 0.0
    matched_title: Optional[str] = None

    def __bool__(self) -> bool:
        return self.is_duplicate


@dataclass
class DeduplicationStats:
    """Running counters for one engine instance."""
    checked: int = 0
    duplicates_by_link: int = 0
    duplicates_by_title: int = 0

    @property
    def duplicates_found(self) -> int:
        return self.duplicates_by_link + self.duplicates_by_title

    @property
    def deduplication_rate(self) -> float:
        """Percentage of checked items that were duplicates."""
        if self.checked == 0:
            return 0.0
        return (self.duplicates_found / self.checked) * 100


@lru_cache(maxsize=8192)
def _title_words(title: str) -> FrozenSet[str]:
    return frozenset(tokenize_words(title))


def title_similarity(first: str, second: str) -> float:
    """Word-overlap ratio of two titles, 0.0 when both are empty."""
    words1 = _title_words(first)
    words2 = _title_words(second)

    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


class DeduplicationEngine:
    """Exact-link and fuzzy-title duplicate detection."""

    def __init__(
        self,
        store: ArticleStore,
        settings: Optional[DeduplicationSettings] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize engine.

        Args:
            store: Article store queried for known links and recent titles
            settings: Similarity threshold and recent-window bounds
            clock: Anchors the recent window
        """
        self.store = store
        self.settings = settings or DeduplicationSettings()
        self.clock = clock or SystemClock()
        self.stats = DeduplicationStats()
        self.logger = get_logger_for_component("deduplicator")

    @property
    def similarity_threshold(self) -> float:
        return self.settings.similarity_threshold

    def is_duplicate(self, item: CandidateItem) -> bool:
        return self.check(item).is_duplicate

    def check(self, item: CandidateItem) -> DuplicateCheck:
        """Run both checks against the store's recent window."""
        self.stats.checked += 1

        if self.store.exists_by_link(item.link):
            self.stats.duplicates_by_link += 1
            self.logger.debug(f"Duplicate by link: {item.link}")
            return DuplicateCheck(True, DuplicateReason.LINK, similarity=1.0)

        since = self.clock.now() - timedelta(hours=self.settings.recent_window_hours)
        recent = self.store.recent_titles(since, self.settings.recent_window_size)

        match = self.find_similar_title(item.title, recent)
        if match is not None:
            self.stats.duplicates_by_title += 1
            self.logger.debug(
                f"Duplicate by title ({match.similarity:.2f}): "
                f"{item.title!r} ~ {match.matched_title!r}"
            )
            return match

        return DuplicateCheck(False)

    def find_similar_title(
        self, title: str, known_titles: Iterable[str]
    ) -> Optional[DuplicateCheck]:
        """First known title at or above the similarity threshold."""
        for known in known_titles:
            similarity = title_similarity(title, known)
            if similarity >= self.similarity_threshold:
                return DuplicateCheck(
                    True, DuplicateReason.TITLE, similarity=similarity, matched_title=known
                )
        return None
