"""
Categorizer
===========

Keyword-rule taxonomy assignment.

Rules are evaluated in table order. A rule qualifies when at least
``min_keyword_matches`` distinct triggers occur as whole words (or whole
phrases) in the title plus description. The first qualifying rule wins, even
if a later rule has more matches. Nothing qualifies: the default label.
"""

import re
from typing import List, Optional, Pattern, Tuple

from ..config.settings import CategorizationSettings, CategoryRule
from ..ingestion.content_cleaner import normalize_text


class Categorizer:
    """Maps item text to one label of a fixed, ordered taxonomy."""

    def __init__(self, settings: Optional[CategorizationSettings] = None):
        self.settings = settings or CategorizationSettings()
        self._compiled: List[Tuple[str, List[Pattern]]] = [
            (rule.label, [self._compile(keyword) for keyword in rule.keywords])
            for rule in self.settings.rules
        ]

    @property
    def default_category(self) -> str:
        return self.settings.default_category

    @property
    def rules(self) -> List[CategoryRule]:
        return list(self.settings.rules)

    @staticmethod
    def _compile(keyword: str) -> Pattern:
        # Phrases tolerate any run of whitespace between their words
        words = [re.escape(word) for word in keyword.split()]
        return re.compile(r"(?<!\w)" + r"\s+".join(words) + r"(?!\w)", re.IGNORECASE)

    def count_matches(self, text: str, label: str) -> int:
        """Distinct triggers of ``label`` found in already-normalized text."""
        for rule_label, patterns in self._compiled:
            if rule_label == label:
                return sum(1 for pattern in patterns if pattern.search(text))
        return 0

    def categorize(self, title: str, description: Optional[str] = None) -> str:
        """Category label for an item. Never raises."""
        text = normalize_text(f"{title or ''} {description or ''}")
        if not text:
            return self.default_category

        threshold = self.settings.min_keyword_matches
        for label, patterns in self._compiled:
            matched = 0
            for pattern in patterns:
                if pattern.search(text):
                    matched += 1
                    if matched >= threshold:
                        return label

        return self.default_category
