"""Data models for the content enhancer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ImageAsset:
    """A pre-fetched image to embed in a post."""
    url: str
    alt: str = ""
    width: int = 0
    height: int = 0
    photographer: str = ""
    attribution: str = ""  # e.g. "Photo by Jane Doe on Pexels"
    source_url: str = ""  # Page on the stock photo site

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "alt": self.alt,
            "width": self.width,
            "height": self.height,
            "photographer": self.photographer,
            "attribution": self.attribution,
            "source_url": self.source_url,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ImageAsset:
        return cls(
            url=data.get("url", ""),
            alt=data.get("alt", ""),
            width=data.get("width", 0),
            height=data.get("height", 0),
            photographer=data.get("photographer", ""),
            attribution=data.get("attribution", ""),
            source_url=data.get("source_url", ""),
        )


@dataclass(frozen=True)
class LeadMagnetOffer:
    """A free download offered inside a post."""
    slug: str
    title: str
    description: str
    button_text: str
    triggers: tuple[str, ...] = ()  # keyword substrings that select this offer


@dataclass
class EnhancementConfig:
    """Which enhancement steps run, and the URLs they link to."""
    site_url: str = "https://obsession-trigger.com"
    quiz_url: str = "https://obsession-trigger.com/quiz"
    lead_magnet_url: str = "https://obsession-trigger.com/lead-magnet"
    affiliate_url: str = ""
    blog_title: str = "Obsession Trigger Blog"
    blog_author: str = "Relationship Expert"
    add_quiz_callout: bool = True
    add_lead_magnet: bool = True
    add_citation: bool = True
    add_affiliate_link: bool = True
    embed_images: bool = True
    add_structured_data: bool = True


@dataclass
class EnhancementResult:
    """Enhanced HTML plus the structured data describing it."""
    content: str
    structured_data: dict[str, Any] = field(default_factory=dict)
    insertions: list[str] = field(default_factory=list)  # step names that changed content

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "structured_data": self.structured_data,
            "insertions": list(self.insertions),
        }
