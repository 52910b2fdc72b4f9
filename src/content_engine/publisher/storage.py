"""Blog Post Store — JSON-file persistence for generated posts, keyed by slug."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from src.common.config import settings
from src.common.errors import NotFoundError
from src.common.logging import setup_logging
from src.common.text import slugify

from .models import BlogPost

logger = setup_logging(module_name="post_store")


class BlogPostStore:
    """Blog posts backed by a local JSON file."""

    def __init__(self, path: Path | None = None):
        """Initialize the store.

        Args:
            path: Path to the JSON posts file.
                  Defaults to settings.storage.posts_path.
        """
        self.path = path or Path(settings.storage.posts_path)
        self._posts: dict[str, BlogPost] = {}

        if self.path.exists():
            self._load()

    def __contains__(self, slug: str) -> bool:
        return slug in self._posts

    def __len__(self) -> int:
        return len(self._posts)

    def save(self, post: BlogPost) -> BlogPost:
        """Insert or update a post.

        Sets created_at on first save and updated_at on every save.
        """
        now = datetime.now().isoformat()
        existing = self._posts.get(post.slug)
        if existing is not None and not post.created_at:
            post.created_at = existing.created_at
        if not post.created_at:
            post.created_at = now
        post.updated_at = now

        self._posts[post.slug] = post
        self._save()
        logger.info("Saved post: %s", post.slug)
        return post

    def get(self, slug: str) -> BlogPost | None:
        return self._posts.get(slug)

    def require(self, slug: str) -> BlogPost:
        """Get a post.

        Raises:
            NotFoundError: If no post has the slug
        """
        post = self._posts.get(slug)
        if post is None:
            raise NotFoundError(f"Post not found: {slug}")
        return post

    def list_posts(self) -> list[BlogPost]:
        """All posts, newest first."""
        return sorted(self._posts.values(), key=lambda p: p.created_at, reverse=True)

    def delete(self, slug: str) -> bool:
        """Delete a post. Returns True if deleted."""
        if self._posts.pop(slug, None) is None:
            return False
        self._save()
        return True

    def unique_slug(self, text: str) -> str:
        """Slugify text and add a numeric suffix until it is unused."""
        base = slugify(text) or "post"
        slug = base
        counter = 2
        while slug in self._posts:
            slug = f"{base}-{counter}"
            counter += 1
        return slug

    # --- Local Persistence ---

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "posts": [p.to_dict() for p in self._posts.values()],
            "last_updated": datetime.now().isoformat(),
        }
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def _load(self) -> None:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            posts = [BlogPost.from_dict(p) for p in data.get("posts", [])]
            self._posts = {p.slug: p for p in posts}
            logger.info("Loaded %d posts from %s", len(self._posts), self.path)
        except (json.JSONDecodeError, FileNotFoundError, KeyError) as e:
            logger.warning("Could not load posts from %s: %s", self.path, e)
            self._posts = {}
