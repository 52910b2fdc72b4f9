"""Pexels Image Search — stock photos for generated posts.

Searches the Pexels API for landscape photos matching the post's image
keywords. Failures never propagate: a post without images is still a
valid post, so every error is logged and an empty list returned.

Usage:
    search = PexelsImageSearch()
    images = search.find_images(["couple walking", "coffee date"], count=2)
"""

from __future__ import annotations

from typing import Iterable, Optional

import httpx

from src.common.config import get_pexels_api_key, settings
from src.common.logging import setup_logging
from src.content_engine.enhancer.models import ImageAsset

logger = setup_logging(module_name="image_search")

PEXELS_SEARCH_URL = "https://api.pexels.com/v1/search"


class PexelsImageSearch:
    """Thin client for the Pexels photo search endpoint."""

    def __init__(self, api_key: Optional[str] = None, client: Optional[httpx.Client] = None):
        self._api_key = api_key
        self._client = client or httpx.Client(timeout=settings.http.timeout_seconds)

    def _get_api_key(self) -> str:
        if self._api_key is None:
            self._api_key = get_pexels_api_key()
        return self._api_key

    def search(self, query: str, per_page: int = 1) -> list[ImageAsset]:
        """Search Pexels for photos.

        Args:
            query: Search phrase
            per_page: Maximum number of photos to return

        Returns:
            Matching images, or an empty list on any failure
        """
        try:
            response = self._client.get(
                PEXELS_SEARCH_URL,
                headers={"Authorization": self._get_api_key()},
                params={
                    "query": query,
                    "per_page": per_page,
                    "orientation": settings.images.orientation,
                },
            )
            response.raise_for_status()
            photos = response.json().get("photos", [])
            return [self._to_asset(photo, query) for photo in photos]
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning("Pexels search failed for '%s': %s", query, e)
            return []

    def find_images(self, queries: Iterable[str], count: Optional[int] = None) -> list[ImageAsset]:
        """Collect up to count distinct images, one search per query.

        Falls back to settings.images.fallback_query when the queries
        yield nothing.
        """
        count = settings.images.images_per_post if count is None else count
        if count <= 0:
            return []

        images: list[ImageAsset] = []
        seen: set[str] = set()

        def collect(found: list[ImageAsset]) -> None:
            for image in found:
                if len(images) < count and image.url not in seen:
                    seen.add(image.url)
                    images.append(image)

        for query in queries:
            if len(images) >= count:
                break
            if query.strip():
                collect(self.search(query.strip(), per_page=1))

        if not images:
            collect(self.search(settings.images.fallback_query, per_page=count))

        logger.info("Found %d/%d images", len(images), count)
        return images

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _to_asset(photo: dict, query: str) -> ImageAsset:
        photographer = photo.get("photographer", "")
        return ImageAsset(
            url=photo["src"]["large"],
            alt=photo.get("alt") or query,
            width=photo.get("width", 0),
            height=photo.get("height", 0),
            photographer=photographer,
            attribution=f"Photo by {photographer} on Pexels" if photographer else "Photo from Pexels",
            source_url=photo.get("url", ""),
        )
