"""
Content Cleaner
===============

Text normalization for feed fields.

Every text value taken from a feed passes through ``normalize_text`` before it
becomes part of a candidate item: CDATA wrappers and markup are stripped,
HTML entities and non-breaking spaces are decoded, and whitespace runs are
collapsed. The functions here are pure and deterministic.
"""

import re
import html
from typing import Optional

from bs4 import BeautifulSoup

CDATA_PATTERN = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)
TAG_HINT_PATTERN = re.compile(r"<[a-zA-Z/!?]")
WHITESPACE_PATTERN = re.compile(r"\s+", re.MULTILINE)
WORD_PATTERN = re.compile(r"\w+", re.UNICODE)

ELLIPSIS = "..."


class ContentCleaner:
    """Strips markup and entities from feed text."""

    def __init__(self, parser: str = "html.parser"):
        # Built-in parser, no external deps
        self.parser = parser

    def clean(self, text: Optional[str]) -> str:
        """Normalize a raw text value.

        Args:
            text: Raw value as found in the feed (may contain markup)

        Returns:
            Plain single-line text, empty string for empty input
        """
        if not text:
            return ""

        text = CDATA_PATTERN.sub(r"\1", text)

        if TAG_HINT_PATTERN.search(text):
            text = self._strip_markup(text)

        text = html.unescape(text)
        text = text.replace("\xa0", " ")
        return WHITESPACE_PATTERN.sub(" ", text).strip()

    def _strip_markup(self, text: str) -> str:
        soup = BeautifulSoup(text, self.parser)

        # Non-content elements keep their text in get_text()
        for element in soup(["script", "style"]):
            element.decompose()

        return soup.get_text(separator=" ")


_default_cleaner = ContentCleaner()


def normalize_text(text: Optional[str]) -> str:
    """Normalize feed text with the shared cleaner."""
    return _default_cleaner.clean(text)


def truncate_title(title: str, max_length: int = 200) -> str:
    """Cap a title at ``max_length`` characters, ending in an ellipsis."""
    if len(title) <= max_length:
        return title
    return title[: max_length - len(ELLIPSIS)].rstrip() + ELLIPSIS


def tokenize_words(text: Optional[str]) -> set:
    """Lower-cased word set of normalized text."""
    return set(WORD_PATTERN.findall(normalize_text(text).lower()))
