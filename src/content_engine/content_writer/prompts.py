"""System and user prompts for LLM-based blog post generation."""

SYSTEM_PROMPT = """\
You are an expert relationship blogger and copywriter who writes engaging,
genuinely helpful content for women seeking relationship advice.

## Rules
1. Conversational, empathetic tone. Avoid cliches and generic advice.
2. Psychology-backed insights where they fit; never invent statistics or quotes.
3. Markdown only: ## for section headings, no raw HTML.
4. Always answer with a single valid JSON object and nothing else.
"""


def build_post_prompt(keyword: str, min_words: int = 700, max_words: int = 900) -> str:
    """Build the user prompt for one blog post.

    Args:
        keyword: Target keyword/topic
        min_words: Lower bound for body length
        max_words: Upper bound for body length

    Returns:
        Prompt string asking for a JSON object with title, metaDescription,
        tags, imageKeywords and content
    """
    return f"""\
Write a comprehensive, SEO-optimized blog post about "{keyword}".

The post should:
1. Be {min_words}-{max_words} words long
2. Open with an attention-grabbing introduction
3. Have 3-5 main sections with descriptive ## subheadings
4. Give actionable advice
5. End with a "## Frequently Asked Questions" section (3 questions)
6. Close with a short conclusion

Also generate:
1. An SEO title (60 characters max)
2. A meta description (160 characters max)
3. 5 relevant tags
4. 2 stock photo search keywords

Respond with JSON in exactly this shape:
{{
  "title": "SEO title",
  "metaDescription": "Meta description",
  "tags": ["tag1", "tag2", "tag3", "tag4", "tag5"],
  "imageKeywords": ["keyword1", "keyword2"],
  "content": "Full post body in markdown"
}}
"""
