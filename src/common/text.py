"""Text helpers shared by the content engine."""

from __future__ import annotations

import re
import unicodedata

_STRIP_RE = re.compile(r"[^\w\s-]", re.UNICODE)
_MULTI_DASH_RE = re.compile(r"[-\s_]+")

MAX_SLUG_LENGTH = 80


def slugify(text: str) -> str:
    """Convert a title or keyword to a URL-friendly slug.

    Examples:
        "Why Men Pull Away (And What to Do)" → "why-men-pull-away-and-what-to-do"
        "Texting: 5 Rules!" → "texting-5-rules"
    """
    text = unicodedata.normalize("NFKD", text.strip().lower())
    text = text.encode("ascii", "ignore").decode("ascii")
    text = _STRIP_RE.sub("", text)
    text = _MULTI_DASH_RE.sub("-", text)
    return text.strip("-")[:MAX_SLUG_LENGTH].rstrip("-")
