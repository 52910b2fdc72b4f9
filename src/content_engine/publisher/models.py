"""Data models for the publisher module."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.content_engine.enhancer.models import ImageAsset


class PostStatus(str, Enum):
    """Publication status of a blog post."""
    DRAFT = "draft"
    PUBLISHED = "published"


class PostSource(str, Enum):
    """How a post was created."""
    AI = "ai"
    TEMPLATE = "template"  # AI generation failed, fallback content
    MANUAL = "manual"


@dataclass
class BlogPost:
    """A persisted blog post."""
    slug: str
    title: str
    content: str  # Enhanced HTML
    meta_description: str = ""
    keyword: str = ""
    tags: list[str] = field(default_factory=list)
    images: list[ImageAsset] = field(default_factory=list)
    structured_data: dict[str, Any] = field(default_factory=dict)
    status: PostStatus = PostStatus.PUBLISHED
    source: PostSource = PostSource.AI
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return {
            "slug": self.slug,
            "title": self.title,
            "content": self.content,
            "meta_description": self.meta_description,
            "keyword": self.keyword,
            "tags": list(self.tags),
            "images": [img.to_dict() for img in self.images],
            "structured_data": self.structured_data,
            "status": self.status.value,
            "source": self.source.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> BlogPost:
        return cls(
            slug=data["slug"],
            title=data.get("title", ""),
            content=data.get("content", ""),
            meta_description=data.get("meta_description", ""),
            keyword=data.get("keyword", ""),
            tags=list(data.get("tags", [])),
            images=[ImageAsset.from_dict(img) for img in data.get("images", [])],
            structured_data=data.get("structured_data", {}),
            status=PostStatus(data.get("status", PostStatus.PUBLISHED.value)),
            source=PostSource(data.get("source", PostSource.AI.value)),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )
