"""Content Enhancer — deterministic HTML insertions for generated posts.

Every insertion is idempotent: it checks for its own marker first and
returns the input unchanged when the marker is present, so the same
functions run safely on every edit of a post, not just on creation.
No function here does any I/O; images and links are supplied by the caller.

Insertions:
- Quiz call-to-action after a section heading
- Lead magnet offer before the FAQ (or at the end)
- Inline citation on the first research/psychology claim
- Affiliate recommendation after the third paragraph
- Stock images after headings
- schema.org BlogPosting JSON-LD

Usage:
    enhancer = ContentEnhancer()
    result = enhancer.enhance(html, keyword="why men pull away", slug="why-men-pull-away")
    result.content  # enhanced HTML
"""

from __future__ import annotations

import json
import re
from html import escape
from typing import Optional, Sequence
from urllib.parse import urlencode

from src.common.config import settings
from src.common.logging import setup_logging

from .models import EnhancementConfig, EnhancementResult, ImageAsset, LeadMagnetOffer

logger = setup_logging(module_name="content_enhancer")

SECTION_HEADING = re.compile(r"<h2\b[^>]*>.*?</h2\s*>", re.IGNORECASE | re.DOTALL)
ANY_HEADING = re.compile(r"<h[1-6]\b[^>]*>.*?</h[1-6]\s*>", re.IGNORECASE | re.DOTALL)
PARAGRAPH = re.compile(r"<p\b[^>]*>.*?</p\s*>", re.IGNORECASE | re.DOTALL)
FAQ_HEADING = re.compile(
    r"<h[2-4]\b[^>]*>\s*(?:faqs?\b|frequently asked questions)",
    re.IGNORECASE,
)
# First claim in text content, never inside a tag
CITATION_TRIGGER = re.compile(
    r"(?:\b(?:research|studies)\s+shows?\b|\bpsycholog(?:y|ical)\b)(?![^<]*>)",
    re.IGNORECASE,
)

QUIZ_MARKERS = ("/quiz", "relationship assessment")
LEAD_MAGNET_MARKER = 'data-lead-magnet="offer"'
CITATION_MARKER = "doi.org"
AFFILIATE_MARKER = 'class="affiliate-cta"'
STRUCTURED_DATA_MARKER = "application/ld+json"

# Hazan & Shaver (1987), "Romantic love conceptualized as an attachment process"
CITATION_URL = "https://doi.org/10.1037/0022-3514.52.3.511"
CITATION_LABEL = "Hazan &amp; Shaver, 1987"

LEAD_MAGNET_OFFERS: tuple[LeadMagnetOffer, ...] = (
    LeadMagnetOffer(
        slug="attraction-triggers-guide",
        title="The 7 Attraction Triggers Guide",
        description="What keeps attraction alive, in seven short lessons.",
        button_text="Get the Free Guide",
        triggers=("obsess", "attract", "want you", "miss you"),
    ),
    LeadMagnetOffer(
        slug="texting-playbook",
        title="The Texting Playbook",
        description="Word-for-word messages that spark real conversation.",
        button_text="Download the Playbook",
        triggers=("text", "message", "call"),
    ),
    LeadMagnetOffer(
        slug="commitment-checklist",
        title="The Commitment Checklist",
        description="Twelve signs he is ready for something serious, and what to do if he is not.",
        button_text="Get the Checklist",
        triggers=("commit", "pull away", "distant", "relationship"),
    ),
)


def default_config() -> EnhancementConfig:
    """Enhancement config built from the site settings."""
    site = settings.site
    base = site.site_url.rstrip("/")
    return EnhancementConfig(
        site_url=base,
        quiz_url=f"{base}{site.quiz_path}",
        lead_magnet_url=f"{base}{site.lead_magnet_path}",
        affiliate_url=site.affiliate_url,
        blog_title=site.blog_title,
        blog_author=site.blog_author,
    )


def add_utm_params(url: str, source: str, medium: str, campaign: str) -> str:
    """Append UTM parameters to a URL.

    Always appends; the caller must not pass a URL that already has them.

    >>> add_utm_params("https://x/y", "blog", "cta", "s1")
    'https://x/y?utm_source=blog&utm_medium=cta&utm_campaign=s1'
    """
    query = urlencode(
        {"utm_source": source, "utm_medium": medium, "utm_campaign": campaign}
    )
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{query}"


# === Quiz Callout ===


def insert_quiz_callout(
    html: str,
    keyword: str,
    slug: str,
    quiz_url: Optional[str] = None,
) -> str:
    """Insert the quiz call-to-action after a section heading.

    Goes after the second <h2>, or after the last one when there are
    fewer than three. Content without <h2> headings is returned unchanged.
    """
    lowered = html.lower()
    if any(marker in lowered for marker in QUIZ_MARKERS):
        return html

    headings = list(SECTION_HEADING.finditer(html))
    if not headings:
        logger.debug("No section headings in %s, skipping quiz callout", slug)
        return html

    anchor = headings[1] if len(headings) >= 3 else headings[-1]
    url = add_utm_params(quiz_url or default_config().quiz_url, "blog", "quiz_callout", slug)
    block = (
        '\n<div class="quiz-callout">\n'
        f"<p>Want advice on <strong>{escape(keyword)}</strong> that fits your situation? "
        "Take our free relationship assessment and get answers in under 3 minutes.</p>\n"
        f'<a href="{escape(url)}" class="cta-button">Take the Free Quiz</a>\n'
        "</div>\n"
    )
    return html[:anchor.end()] + block + html[anchor.end():]


# === Lead Magnet Offer ===


def select_lead_magnet(keyword: str) -> LeadMagnetOffer:
    """Pick the first offer whose trigger occurs in the keyword (default: first offer)."""
    lowered = keyword.lower()
    for offer in LEAD_MAGNET_OFFERS:
        if any(trigger in lowered for trigger in offer.triggers):
            return offer
    return LEAD_MAGNET_OFFERS[0]


def insert_lead_magnet_offer(
    html: str,
    keyword: str,
    slug: str,
    lead_magnet_url: Optional[str] = None,
) -> str:
    """Insert a lead magnet offer before the FAQ heading, or append it."""
    if LEAD_MAGNET_MARKER in html:
        return html

    offer = select_lead_magnet(keyword)
    base = (lead_magnet_url or default_config().lead_magnet_url).rstrip("/")
    url = add_utm_params(f"{base}/{offer.slug}", "blog", "lead_magnet", slug)
    block = (
        f'\n<div class="lead-magnet-offer" {LEAD_MAGNET_MARKER}>\n'
        f"<h3>Free: {escape(offer.title)}</h3>\n"
        f"<p>{escape(offer.description)}</p>\n"
        f'<a href="{escape(url)}" class="cta-button">{escape(offer.button_text)}</a>\n'
        "</div>\n"
    )

    faq = FAQ_HEADING.search(html)
    if faq:
        return html[:faq.start()] + block + html[faq.start():]
    return html + block


# === Citation ===


def insert_authoritative_citation(html: str) -> str:
    """Add an inline citation to the first research or psychology claim."""
    if CITATION_MARKER in html:
        return html

    citation = (
        f' (<a href="{CITATION_URL}" class="citation" target="_blank" '
        f'rel="noopener">{CITATION_LABEL}</a>)'
    )
    # Leave script blocks (JSON-LD) untouched
    cut = html.find("<script")
    body, tail = (html, "") if cut == -1 else (html[:cut], html[cut:])
    return CITATION_TRIGGER.sub(lambda m: m.group(0) + citation, body, count=1) + tail


# === Affiliate Link ===


def insert_affiliate_link(html: str, affiliate_url: str) -> str:
    """Insert the affiliate recommendation after the third paragraph.

    Falls back to the last paragraph in shorter posts; posts without
    paragraphs, or calls without a URL, are returned unchanged.
    """
    if not affiliate_url or AFFILIATE_MARKER in html:
        return html

    paragraphs = list(PARAGRAPH.finditer(html))
    if not paragraphs:
        return html

    anchor = paragraphs[2] if len(paragraphs) >= 3 else paragraphs[-1]
    block = (
        f"\n<div {AFFILIATE_MARKER}>\n"
        "<p>Looking for more relationship resources? Check out our "
        f'<a href="{escape(affiliate_url)}" target="_blank" rel="nofollow sponsored">'
        "recommended relationship program</a>.</p>\n"
        "</div>\n"
    )
    return html[:anchor.end()] + block + html[anchor.end():]


# === Images ===


def _image_present(html: str, url: str) -> bool:
    return url in html or escape(url) in html


def _image_block(image: ImageAsset) -> str:
    size = ""
    if image.width and image.height:
        size = f' width="{image.width}" height="{image.height}"'
    caption = ""
    if image.attribution:
        caption = f'<figcaption class="image-attribution">{escape(image.attribution)}</figcaption>\n'
    return (
        '\n<figure class="post-image">\n'
        f'<img src="{escape(image.url)}" alt="{escape(image.alt)}"{size} loading="lazy" />\n'
        f"{caption}"
        "</figure>\n"
    )


def embed_images(html: str, images: Sequence[ImageAsset]) -> str:
    """Embed images after headings.

    The first image goes after the first heading, else after the first
    paragraph, else at the top. The rest go after successive <h2>
    headings, one each, until images or headings run out. Images whose
    URL already occurs in the content are skipped.
    """
    pending: list[ImageAsset] = []
    seen: set[str] = set()
    for image in images:
        if not image.url or image.url in seen or _image_present(html, image.url):
            continue
        seen.add(image.url)
        pending.append(image)

    if not pending:
        return html

    first_anchor = ANY_HEADING.search(html) or PARAGRAPH.search(html)
    first_pos = first_anchor.end() if first_anchor else 0
    insertions = [(first_pos, _image_block(pending[0]))]

    later_positions = [
        m.end() for m in SECTION_HEADING.finditer(html) if m.end() > first_pos
    ]
    for pos, image in zip(later_positions, pending[1:]):
        insertions.append((pos, _image_block(image)))

    for pos, block in sorted(insertions, key=lambda item: item[0], reverse=True):
        html = html[:pos] + block + html[pos:]
    return html


# === Structured Data ===


def build_structured_data(
    title: str,
    slug: str,
    description: str = "",
    images: Sequence[ImageAsset] = (),
    keywords: Sequence[str] = (),
    published_at: str = "",
    config: Optional[EnhancementConfig] = None,
) -> dict:
    """Build a schema.org BlogPosting object describing the post and its images."""
    config = config or default_config()
    post_url = f"{config.site_url.rstrip('/')}{settings.site.blog_path}/{slug}"

    data: dict = {
        "@context": "https://schema.org",
        "@type": "BlogPosting",
        "mainEntityOfPage": {"@type": "WebPage", "@id": post_url},
        "headline": title,
        "description": description,
        "author": {"@type": "Person", "name": config.blog_author},
        "publisher": {
            "@type": "Organization",
            "name": config.blog_title,
            "logo": {"@type": "ImageObject", "url": f"{config.site_url}/logo.png"},
        },
        "image": [
            {
                "@type": "ImageObject",
                "url": image.url,
                "width": image.width,
                "height": image.height,
                "caption": image.alt,
                "creditText": image.attribution,
                "creator": {"@type": "Person", "name": image.photographer},
            }
            for image in images
        ],
        "keywords": ", ".join(keywords),
    }
    if published_at:
        data["datePublished"] = published_at
        data["dateModified"] = published_at
    return data


def insert_structured_data(html: str, data: dict) -> str:
    """Append the structured data as a JSON-LD script block."""
    if STRUCTURED_DATA_MARKER in html:
        return html
    payload = json.dumps(data, ensure_ascii=False).replace("</", "<\\/")
    return f'{html}\n<script type="application/ld+json">{payload}</script>\n'


# === Pipeline ===


class ContentEnhancer:
    """Runs the configured enhancement steps over a post.

    Steps run in a fixed order: affiliate link, images, quiz callout,
    lead magnet, citation, structured data. The citation runs after the blocks
    that add text so a second pass finds nothing new to cite.
    """

    def __init__(self, config: EnhancementConfig | None = None):
        self.config = config or default_config()

    def enhance(
        self,
        html: str,
        keyword: str,
        slug: str,
        title: str = "",
        description: str = "",
        images: Sequence[ImageAsset] | None = None,
        tags: Sequence[str] = (),
        published_at: str = "",
    ) -> EnhancementResult:
        """Apply every enabled step and build the post's structured data.

        Args:
            html: Post body HTML
            keyword: Target keyword the post was written for
            slug: Post slug, used as the UTM campaign
            title: Post title for structured data
            description: Meta description for structured data
            images: Pre-fetched images to embed
            tags: Post tags for structured data keywords
            published_at: ISO publish date for structured data

        Returns:
            EnhancementResult with the content and structured data
        """
        images = list(images or [])
        cfg = self.config
        insertions: list[str] = []

        steps = [
            (
                "affiliate_link",
                cfg.add_affiliate_link,
                lambda c: insert_affiliate_link(c, cfg.affiliate_url),
            ),
            ("images", cfg.embed_images, lambda c: embed_images(c, images)),
            (
                "quiz_callout",
                cfg.add_quiz_callout,
                lambda c: insert_quiz_callout(c, keyword, slug, cfg.quiz_url),
            ),
            (
                "lead_magnet",
                cfg.add_lead_magnet,
                lambda c: insert_lead_magnet_offer(c, keyword, slug, cfg.lead_magnet_url),
            ),
            ("citation", cfg.add_citation, insert_authoritative_citation),
        ]

        content = html
        for name, enabled, step in steps:
            if not enabled:
                continue
            updated = step(content)
            if updated != content:
                insertions.append(name)
            content = updated

        structured_data = build_structured_data(
            title=title or keyword,
            slug=slug,
            description=description,
            images=images,
            keywords=tags or [keyword],
            published_at=published_at,
            config=cfg,
        )
        if cfg.add_structured_data:
            updated = insert_structured_data(content, structured_data)
            if updated != content:
                insertions.append("structured_data")
            content = updated

        logger.info(
            "Enhanced %s: %s",
            slug,
            ", ".join(insertions) if insertions else "no changes",
        )
        return EnhancementResult(
            content=content,
            structured_data=structured_data,
            insertions=insertions,
        )
