"""
Feed Parser
===========

Turns raw feed documents into normalized candidate items.

Both syndication dialects are accepted without the caller naming one:
``<item>`` documents (RSS 0.9x/1.0/2.0) and ``<entry>`` documents (Atom).
feedparser recognizes the dialect; this module maps its entries onto
CandidateItem, isolating failures per item so one broken item never costs
the rest of the feed.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

import feedparser
from pydantic import ValidationError as ModelValidationError

from ..config.settings import ParsingSettings
from ..database.models import CandidateItem
from ..utils.clock import Clock, SystemClock
from ..utils.exceptions import EmptyFeedError, MalformedItemError, ValidationError
from ..utils.logging import get_logger_for_component
from ..utils.validators import URLValidator
from .content_cleaner import ContentCleaner, truncate_title

ITEM_DIALECT = "item"
ENTRY_DIALECT = "entry"


@dataclass
class ParseResult:
    """Items recovered from one document."""

    items: List[CandidateItem] = field(default_factory=list)
    dialect: Optional[str] = None
    feed_title: Optional[str] = None
    total_entries: int = 0
    skipped: int = 0
    truncated: bool = False

    @property
    def item_count(self) -> int:
        return len(self.items)


class FeedParser:
    """Defensive RSS/Atom parser producing CandidateItem objects."""

    def __init__(
        self,
        settings: Optional[ParsingSettings] = None,
        cleaner: Optional[ContentCleaner] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize parser.

        Args:
            settings: Parsing limits (defaults apply when omitted)
            cleaner: Text normalizer shared by all fields
            clock: Source of the ingestion time used for undated items
        """
        self.settings = settings or ParsingSettings()
        self.cleaner = cleaner or ContentCleaner()
        self.clock = clock or SystemClock()
        self.logger = get_logger_for_component("feed_parser")

    def parse(
        self,
        raw: bytes,
        source_name: Optional[str] = None,
        feed_url: Optional[str] = None,
    ) -> ParseResult:
        """Parse a raw feed document.

        Args:
            raw: Document bytes as fetched
            source_name: Used as the author of items without a byline
            feed_url: Base for relative item links; also used in log and error context

        Returns:
            ParseResult holding at most ``max_items_per_feed`` items in
            document order

        Raises:
            EmptyFeedError: If the document holds neither items nor entries
        """
        # Relative hrefs and xml:base resolve against the feed URL
        response_headers = {"content-location": feed_url} if feed_url else None
        parsed = feedparser.parse(raw, response_headers=response_headers)
        entries = parsed.get("entries") or []

        if not entries:
            reason = "no <item> or <entry> elements found"
            if parsed.get("bozo"):
                reason = f"{reason} ({parsed.get('bozo_exception')})"
            raise EmptyFeedError(f"Not a recognizable feed: {reason}", feed_url=feed_url)

        if parsed.get("bozo"):
            self.logger.info(
                f"Feed has parse warnings but contains entries: {feed_url}",
                extra={"bozo_exception": str(parsed.get("bozo_exception"))},
            )

        result = ParseResult(
            dialect=self._detect_dialect(parsed),
            feed_title=self.cleaner.clean(parsed.get("feed", {}).get("title")) or None,
            total_entries=len(entries),
        )
        ingested_at = self.clock.now()
        limit = self.settings.max_items_per_feed

        for index, entry in enumerate(entries):
            if len(result.items) >= limit:
                result.truncated = True
                break

            try:
                item = self._extract_item(entry, source_name, ingested_at)
            except MalformedItemError as e:
                result.skipped += 1
                self.logger.debug(f"Skipping {result.dialect} #{index} in {feed_url}: {e}")
                continue
            except Exception as e:
                result.skipped += 1
                self.logger.warning(
                    f"Failed to parse {result.dialect} #{index} in {feed_url}: {e}",
                    extra={"entry_title": entry.get("title", "Unknown")},
                )
                continue

            result.items.append(item)

        self.logger.debug(
            f"Parsed {result.item_count}/{result.total_entries} {result.dialect}s "
            f"from {feed_url} ({result.skipped} skipped)"
        )
        return result

    def _detect_dialect(self, parsed: Any) -> str:
        version = parsed.get("version") or ""
        if version.startswith("atom"):
            return ENTRY_DIALECT
        return ITEM_DIALECT

    def _extract_item(
        self, entry: Any, source_name: Optional[str], ingested_at: datetime
    ) -> CandidateItem:
        """Map one feedparser entry onto a CandidateItem.

        Raises:
            MalformedItemError: If title or link is missing or unusable
        """
        title = self.cleaner.clean(entry.get("title"))
        if not title:
            raise MalformedItemError("item has no title", field_name="title")

        link = self._extract_link(entry)
        if not link:
            raise MalformedItemError("item has no link", field_name="link")

        try:
            link = URLValidator.canonicalize_link(link)
        except ValidationError as e:
            raise MalformedItemError(f"unusable link {link!r}: {e}", field_name="link")

        author = self.cleaner.clean(
            entry.get("author") or entry.get("author_detail", {}).get("name")
        )

        try:
            return CandidateItem(
                title=truncate_title(title, self.settings.max_title_length),
                link=link,
                description=self.cleaner.clean(entry.get("summary")) or None,
                published_at=self._parse_date(entry) or ingested_at,
                author=author or source_name or None,
                content=self._extract_content(entry),
                category_hint=self._extract_category(entry),
            )
        except ModelValidationError as e:
            raise MalformedItemError(f"item failed validation: {e}")

    def _extract_link(self, entry: Any) -> Optional[str]:
        links = entry.get("links") or []
        # feedparser copies a permalink <guid> into entry.link but not entry.links
        if entry.get("guidislink") and not any(l.get("href") for l in links):
            return None

        link = entry.get("link")
        if link and link.strip():
            return link.strip()

        # Atom entries may only carry <link href="..."> variants
        for candidate in links:
            href = candidate.get("href")
            if href and candidate.get("rel", "alternate") == "alternate":
                return href.strip()

        return None

    def _extract_content(self, entry: Any) -> Optional[str]:
        contents = entry.get("content") or []
        for block in contents:
            value = self.cleaner.clean(block.get("value"))
            if value:
                return value
        return None

    def _extract_category(self, entry: Any) -> Optional[str]:
        for tag in entry.get("tags") or []:
            term = self.cleaner.clean(tag.get("term") or tag.get("label"))
            if term:
                return term
        return None

    def _parse_date(self, entry: Any) -> Optional[datetime]:
        """Publication date in UTC, or None if absent or unparsable."""
        for field_name in ("published_parsed", "updated_parsed", "created_parsed"):
            date_tuple = entry.get(field_name)
            if not date_tuple:
                continue
            try:
                # feedparser normalizes struct_time values to UTC
                return datetime(*date_tuple[:6], tzinfo=timezone.utc)
            except (TypeError, ValueError, OverflowError):
                continue
        return None
