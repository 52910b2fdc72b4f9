"""Keyword Pool — admin-managed generation keywords with used-keyword tracking.

Both lists live in the settings store as JSON arrays. Once every keyword
has been used the used list is cleared and the pool starts over.
"""

from __future__ import annotations

import random
from typing import Optional

from src.common.errors import ValidationError
from src.common.logging import setup_logging
from src.common.settings_store import SettingsStore

logger = setup_logging(module_name="keyword_pool")

KEYWORDS_KEY = "BLOG_KEYWORDS"
USED_KEYWORDS_KEY = "BLOG_USED_KEYWORDS"

DEFAULT_KEYWORDS = [
    "how to make him obsessed with you",
    "how to trigger attraction in men",
    "signs he is secretly attracted to you",
    "how to make him chase you",
    "psychological triggers that make men fall in love",
]


class KeywordPool:
    """Keywords for scheduled generation."""

    def __init__(self, store: SettingsStore):
        self.store = store

    def keywords(self) -> list[str]:
        value = self.store.get_json(KEYWORDS_KEY)
        if value is None:
            return list(DEFAULT_KEYWORDS)
        return [str(k) for k in value]

    def used(self) -> list[str]:
        return [str(k) for k in self.store.get_json(USED_KEYWORDS_KEY, [])]

    def unused(self) -> list[str]:
        used = {k.lower() for k in self.used()}
        return [k for k in self.keywords() if k.lower() not in used]

    def add(self, keyword: str) -> bool:
        """Add a keyword. Returns False if it is already in the pool."""
        keyword = keyword.strip()
        if not keyword:
            raise ValidationError("Keyword is required")
        keywords = self.keywords()
        if keyword.lower() in {k.lower() for k in keywords}:
            return False
        keywords.append(keyword)
        self.store.set(KEYWORDS_KEY, keywords)
        return True

    def remove(self, keyword: str) -> bool:
        """Remove a keyword. Returns True if removed."""
        keywords = self.keywords()
        remaining = [k for k in keywords if k.lower() != keyword.strip().lower()]
        if len(remaining) == len(keywords):
            return False
        self.store.set(KEYWORDS_KEY, remaining)
        return True

    def mark_used(self, keyword: str) -> None:
        used = self.used()
        if keyword.lower() not in {k.lower() for k in used}:
            used.append(keyword)
            self.store.set(USED_KEYWORDS_KEY, used)

    def reset(self) -> None:
        self.store.set(USED_KEYWORDS_KEY, [])

    def pick(self, rng: Optional[random.Random] = None) -> str:
        """Pick a pseudo-random unused keyword.

        Raises:
            ValidationError: If the pool is empty
        """
        if not self.keywords():
            raise ValidationError("Keyword pool is empty")

        available = self.unused()
        if not available:
            logger.info("All keywords used, resetting keyword pool")
            self.reset()
            available = self.keywords()

        return (rng or random).choice(available)
