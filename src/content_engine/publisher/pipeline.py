"""Generation pipeline — keyword to persisted, enhanced blog post.

Orchestrates the complete flow:
keyword → BlogWriter → PexelsImageSearch → ContentEnhancer → BlogPostStore

Usage:
    pipeline = GenerationPipeline()
    post = pipeline.run("how to make him miss you")
"""

from __future__ import annotations

from datetime import datetime

from src.common.logging import setup_logging
from src.content_engine.content_writer.writer import BlogWriter
from src.content_engine.enhancer.enhancer import ContentEnhancer
from src.content_engine.image_search.pexels import PexelsImageSearch

from .models import BlogPost, PostSource, PostStatus
from .storage import BlogPostStore

logger = setup_logging(module_name="publisher.pipeline")


class GenerationPipeline:
    """End-to-end pipeline from a keyword to a stored post.

    Steps:
    1. Generate title and body (BlogWriter, template fallback on failure)
    2. Find stock photos for the image keywords (PexelsImageSearch)
    3. Enhance: CTAs, images, citation, structured data (ContentEnhancer)
    4. Persist under a unique slug (BlogPostStore)
    """

    def __init__(
        self,
        writer: BlogWriter | None = None,
        image_search: PexelsImageSearch | None = None,
        enhancer: ContentEnhancer | None = None,
        store: BlogPostStore | None = None,
    ):
        self.writer = writer or BlogWriter()
        self.image_search = image_search or PexelsImageSearch()
        self.enhancer = enhancer or ContentEnhancer()
        self.store = store or BlogPostStore()

    def run(self, keyword: str) -> BlogPost:
        """Generate, enhance and store a post for a keyword.

        Returns:
            The stored BlogPost
        """
        logger.info("Step 1: Generating content for '%s'...", keyword)
        generated = self.writer.generate(keyword)

        logger.info("Step 2: Searching images...")
        images = self.image_search.find_images(generated.image_keywords or [keyword])

        slug = self.store.unique_slug(generated.slug or generated.title)
        published_at = datetime.now().isoformat()

        logger.info("Step 3: Enhancing content...")
        result = self.enhancer.enhance(
            generated.content_html,
            keyword=keyword,
            slug=slug,
            title=generated.title,
            description=generated.meta_description,
            images=images,
            tags=generated.tags,
            published_at=published_at,
        )

        post = BlogPost(
            slug=slug,
            title=generated.title,
            content=result.content,
            meta_description=generated.meta_description,
            keyword=keyword,
            tags=generated.tags,
            images=images,
            structured_data=result.structured_data,
            status=PostStatus.PUBLISHED,
            source=PostSource.TEMPLATE if generated.used_fallback else PostSource.AI,
            created_at=published_at,
        )

        logger.info("Step 4: Saving post...")
        self.store.save(post)
        logger.info("Pipeline complete: %s (%s)", post.slug, post.source.value)
        return post

    def refresh_post(self, slug: str, content: str) -> BlogPost:
        """Replace a post's body and re-run the enhancer over it.

        Enhancement steps are idempotent, so already-inserted blocks are
        not duplicated.

        Raises:
            NotFoundError: If no post has the slug
        """
        post = self.store.require(slug)
        result = self.enhancer.enhance(
            content,
            keyword=post.keyword,
            slug=post.slug,
            title=post.title,
            description=post.meta_description,
            images=post.images,
            tags=post.tags,
            published_at=post.created_at,
        )
        post.content = result.content
        post.structured_data = result.structured_data
        return self.store.save(post)
