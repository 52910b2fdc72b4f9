"""Data models for the content writer module."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class WriterConfig:
    """Configuration for the content writer."""
    model: str = ""  # Empty = use default from settings
    temperature: float = 0.7
    max_tokens: int = 4000
    min_words: int = 700
    max_words: int = 900


@dataclass
class GeneratedPost:
    """A generated post, before enhancement and persistence."""
    keyword: str
    title: str
    slug: str
    content_html: str
    meta_description: str = ""
    tags: list[str] = field(default_factory=list)
    image_keywords: list[str] = field(default_factory=list)
    used_fallback: bool = False  # True when template content replaced the AI output
    error: str = ""  # Why the fallback was used
    model: str = ""
