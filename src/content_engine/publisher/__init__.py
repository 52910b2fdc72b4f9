# Publisher — post persistence and the generation pipeline
"""
Publisher module: stores blog posts as local JSON and runs the
keyword → writer → images → enhancer → store pipeline.
"""

from .models import BlogPost, PostSource, PostStatus
from .pipeline import GenerationPipeline
from .storage import BlogPostStore

__all__ = [
    "BlogPost",
    "BlogPostStore",
    "GenerationPipeline",
    "PostSource",
    "PostStatus",
]
