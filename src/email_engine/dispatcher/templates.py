"""Email Templates — render admin-authored emails for one subscriber.

Templates are Jinja2 strings rendered in a sandbox, since their source
comes from the admin panel. The HTML body is autoescaped; subject and
text are plain. Every rendered HTML body carries an unsubscribe link:
when the template does not place {{ unsubscribe_url }} itself, a footer
is appended.
"""

from __future__ import annotations

import html as html_lib
import re
from typing import Any, Optional
from urllib.parse import urlencode

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from src.common.config import settings
from src.common.errors import ValidationError
from src.common.logging import setup_logging

from .models import EmailTemplate, RenderedEmail, SubscriberRecord

logger = setup_logging(module_name="email_templates")

UNSUBSCRIBE_FOOTER = (
    '<div style="margin-top: 20px; padding-top: 20px; border-top: 1px solid #eee; '
    'font-size: 12px; color: #666;">'
    '<p>If you no longer wish to receive these emails, '
    '<a href="{url}">unsubscribe here</a>.</p>'
    "</div>"
)

TAG_PATTERN = re.compile(r"<[^>]*>")
WHITESPACE_PATTERN = re.compile(r"\s+")
UNSUBSCRIBE_PLACEHOLDER = re.compile(r"\bunsubscribe(_url|Url)\b")

_html_env = SandboxedEnvironment(autoescape=True, undefined=StrictUndefined)
_text_env = SandboxedEnvironment(autoescape=False, undefined=StrictUndefined)


def strip_html(html: str) -> str:
    """Plain-text version of an HTML body: tags dropped, entities decoded."""
    text = TAG_PATTERN.sub(" ", html)
    text = html_lib.unescape(text)
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def unsubscribe_url(token: str) -> str:
    """Public unsubscribe link for a subscriber token."""
    if not token:
        return ""
    base = settings.site.site_url.rstrip("/")
    return f"{base}{settings.site.unsubscribe_path}?{urlencode({'token': token})}"


def template_variables(
    record: SubscriberRecord,
    extra: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Variables available to a template for one subscriber.

    Older templates use camelCase names, so both spellings are provided.
    Extras override the subscriber fields.
    """
    url = unsubscribe_url(record.unsubscribe_token)
    variables: dict[str, Any] = {
        "email": record.email,
        "first_name": record.first_name,
        "last_name": record.last_name,
        "unsubscribe_url": url,
        "firstName": record.first_name,
        "lastName": record.last_name,
        "unsubscribeUrl": url,
    }
    variables.update(extra or {})
    return variables


def render_email_template(
    template: EmailTemplate,
    variables: dict[str, Any],
) -> RenderedEmail:
    """Substitute variables into a template's subject, HTML and text.

    The text part is derived from the rendered HTML when the template
    has none.

    Raises:
        ValidationError: If the template does not parse or uses an
                         undefined variable
    """
    try:
        subject = _text_env.from_string(template.subject).render(variables)
        html = _html_env.from_string(template.html).render(variables)
        text = (
            _text_env.from_string(template.text).render(variables)
            if template.text
            else ""
        )
    except TemplateError as e:
        raise ValidationError(f"Email template {template.name!r} failed to render: {e}") from e

    url = variables.get("unsubscribe_url") or variables.get("unsubscribeUrl") or ""
    if url and not UNSUBSCRIBE_PLACEHOLDER.search(template.html):
        html += UNSUBSCRIBE_FOOTER.format(url=html_lib.escape(url))
        if template.text:
            text += f"\n\nUnsubscribe: {url}"

    if not text:
        text = strip_html(html)

    logger.debug("Rendered email template %s", template.name)
    return RenderedEmail(subject=subject.strip(), html=html, text=text)
