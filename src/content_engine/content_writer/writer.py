"""Blog Writer — LLM-powered blog post generation from a target keyword.

The writer asks the chat-completion API for a JSON object holding the
title, meta description, tags, image keywords and markdown body, and
converts the body to HTML. When the API call or the response parsing
fails, a Jinja2 template post is used instead so scheduled generation
still produces content.

Usage:
    writer = BlogWriter()
    post = writer.generate("why men pull away")
    post.content_html  # ready for the content enhancer
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import markdown as md
from jinja2 import Environment, FileSystemLoader, select_autoescape

from src.common.config import Settings, get_openai_api_key
from src.common.errors import UpstreamServiceError
from src.common.logging import setup_logging
from src.common.text import slugify

from .models import GeneratedPost, WriterConfig
from .prompts import SYSTEM_PROMPT, build_post_prompt

logger = setup_logging(module_name="content_writer")

TEMPLATES_DIR = Path(__file__).parent / "templates"
FALLBACK_TEMPLATE = "fallback_post.md.jinja2"

MARKDOWN_EXTENSIONS = ["tables", "fenced_code", "sane_lists"]


def markdown_to_html(text: str) -> str:
    """Convert markdown post content to HTML."""
    return md.markdown(text, extensions=MARKDOWN_EXTENSIONS)


class BlogWriter:
    """Generates blog posts with the OpenAI chat-completion API."""

    def __init__(self, config: WriterConfig | None = None):
        self.config = config or WriterConfig()
        self.settings = Settings.load()
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(["html", "xml", "md.jinja2"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    @property
    def model(self) -> str:
        return self.config.model or self.settings.llm.openai_model

    def generate(self, keyword: str) -> GeneratedPost:
        """Generate a post for a keyword.

        Never raises on upstream failure; returns template content with
        used_fallback=True instead.

        Args:
            keyword: Target keyword/topic

        Returns:
            GeneratedPost with HTML content
        """
        keyword = keyword.strip()
        if not keyword:
            raise ValueError("Keyword is required")

        prompt = build_post_prompt(keyword, self.config.min_words, self.config.max_words)
        try:
            response_text = self._call_llm(SYSTEM_PROMPT, prompt)
            data = self._parse_response(response_text)
        except (UpstreamServiceError, ValueError) as e:
            logger.warning("AI generation failed for '%s', using template: %s", keyword, e)
            return self._fallback_post(keyword, str(e))

        title = str(data.get("title") or keyword.title()).strip().strip('"')
        post = GeneratedPost(
            keyword=keyword,
            title=title,
            slug=slugify(title),
            content_html=markdown_to_html(data["content"]),
            meta_description=str(data.get("metaDescription", "")),
            tags=[str(t) for t in data.get("tags", [])],
            image_keywords=[str(k) for k in data.get("imageKeywords", [])],
            model=self.model,
        )
        logger.info("Generated post '%s' for keyword '%s'", post.title, keyword)
        return post

    # --- LLM Integration ---

    def _call_llm(self, system_prompt: str, user_prompt: str) -> str:
        """Call the chat-completion API and return the response text.

        Raises:
            UpstreamServiceError: If the API call fails
            ValueError: If no API key is configured
        """
        import openai

        api_key = get_openai_api_key()
        client = openai.OpenAI(api_key=api_key)

        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as e:
            raise UpstreamServiceError(f"OpenAI request failed: {e}") from e

        return response.choices[0].message.content or ""

    def _parse_response(self, response_text: str) -> dict[str, Any]:
        """Parse the LLM JSON response.

        Raises:
            ValueError: If the response is not JSON or has no content
        """
        # Extract JSON from response (may be wrapped in ```json ... ```)
        json_str = response_text
        if "```json" in json_str:
            json_str = json_str.split("```json")[1].split("```")[0]
        elif "```" in json_str:
            json_str = json_str.split("```")[1].split("```")[0]

        data = json.loads(json_str.strip())
        if not isinstance(data, dict):
            raise ValueError("AI response is not a JSON object")
        if not str(data.get("content", "")).strip():
            raise ValueError("AI response has no content")
        return data

    # --- Fallback ---

    def _fallback_post(self, keyword: str, reason: str) -> GeneratedPost:
        """Build a template post for a keyword."""
        keyword_title = keyword[:1].upper() + keyword[1:]
        template = self.env.get_template(FALLBACK_TEMPLATE)
        body = template.render(keyword=keyword, keyword_title=keyword_title)
        title = f"{keyword_title}: What You Need to Know"

        return GeneratedPost(
            keyword=keyword,
            title=title,
            slug=slugify(title),
            content_html=markdown_to_html(body),
            meta_description=f"Practical, honest advice on {keyword}.",
            tags=[keyword, "relationships", "dating advice"],
            image_keywords=[keyword],
            used_fallback=True,
            error=reason,
        )
