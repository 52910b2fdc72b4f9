"""Data models for lead capture and dispatch."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from src.email_engine.providers.models import ProviderResult


@dataclass
class SubscriberRecord:
    """A lead captured in the local subscriber store."""
    email: str
    first_name: str = ""
    last_name: str = ""
    source: str = ""
    tags: list[str] = field(default_factory=list)
    unsubscribe_token: str = ""
    provider: str = ""  # ESP the lead was forwarded to, if any
    provider_synced: bool = False
    provider_error: str = ""
    unsubscribed: bool = False
    created_at: str = ""  # ISO datetime
    last_email_sent: str = ""  # ISO datetime of the last templated email

    def to_dict(self) -> dict:
        return {
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "source": self.source,
            "tags": list(self.tags),
            "unsubscribe_token": self.unsubscribe_token,
            "provider": self.provider,
            "provider_synced": self.provider_synced,
            "provider_error": self.provider_error,
            "unsubscribed": self.unsubscribed,
            "created_at": self.created_at or datetime.now().isoformat(),
            "last_email_sent": self.last_email_sent,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SubscriberRecord:
        return cls(
            email=data.get("email", ""),
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            source=data.get("source", ""),
            tags=list(data.get("tags", [])),
            unsubscribe_token=data.get("unsubscribe_token", ""),
            provider=data.get("provider", ""),
            provider_synced=data.get("provider_synced", False),
            provider_error=data.get("provider_error", ""),
            unsubscribed=data.get("unsubscribed", False),
            created_at=data.get("created_at", ""),
            last_email_sent=data.get("last_email_sent", ""),
        )


@dataclass
class LeadCaptureResult:
    """Outcome of capturing a lead: local storage plus the ESP call."""
    record: SubscriberRecord
    provider_result: Optional[ProviderResult] = None
    welcome_result: Optional[ProviderResult] = None  # Set when a welcome email was attempted

    @property
    def synced(self) -> bool:
        return bool(self.provider_result and self.provider_result.success)

    def to_dict(self) -> dict:
        result = {
            "success": True,
            "email": self.record.email,
            "synced": self.synced,
        }
        if self.provider_result is not None:
            result["provider"] = self.provider_result.to_dict()
        if self.welcome_result is not None:
            result["welcome_email"] = self.welcome_result.to_dict()
        return result


@dataclass
class EmailTemplate:
    """An admin-authored email with Jinja2 placeholders.

    Placeholders use the subscriber variables: {{ first_name }},
    {{ last_name }}, {{ email }}, {{ unsubscribe_url }}, plus any extras
    passed at send time. The camelCase names of older templates
    ({{firstName}}, {{unsubscribeUrl}}) are accepted too.
    """
    name: str
    subject: str
    html: str
    text: str = ""  # Derived from the HTML when empty
    email_type: str = ""  # e.g. "welcome"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "subject": self.subject,
            "html": self.html,
            "text": self.text,
            "email_type": self.email_type,
        }

    @classmethod
    def from_dict(cls, data: dict) -> EmailTemplate:
        return cls(
            name=data.get("name", ""),
            subject=data.get("subject", ""),
            html=data.get("html", data.get("content", "")),
            text=data.get("text", ""),
            email_type=data.get("email_type", data.get("emailType", "")),
        )


@dataclass
class RenderedEmail:
    """A template with its variables substituted, ready to send."""
    subject: str
    html: str
    text: str
