# Image Search — stock photos for generated posts
"""
Image search module: finds landscape stock photos on Pexels and returns
them as ImageAsset records ready for embedding.
"""

from .pexels import PEXELS_SEARCH_URL, PexelsImageSearch

__all__ = [
    "PEXELS_SEARCH_URL",
    "PexelsImageSearch",
]
