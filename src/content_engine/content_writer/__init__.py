# Content Writer — LLM blog post generation
"""
Content writer module: generates a blog post for a target keyword with
the OpenAI chat-completion API, falling back to template content when
generation fails.
"""

from .models import GeneratedPost, WriterConfig
from .writer import BlogWriter, markdown_to_html

__all__ = [
    "BlogWriter",
    "GeneratedPost",
    "WriterConfig",
    "markdown_to_html",
]
