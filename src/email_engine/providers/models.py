"""Data models for email providers and the provider registry."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class FieldType(str, Enum):
    """Admin form field types for provider configuration."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"


@dataclass(frozen=True)
class ConfigField:
    """A single configuration field shown in the admin settings form."""
    key: str
    label: str
    required: bool = False
    secret: bool = False
    field_type: FieldType = FieldType.STRING
    description: str = ""
    default: str = ""
    options: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "label": self.label,
            "required": self.required,
            "secret": self.secret,
            "type": self.field_type.value,
            "description": self.description,
            "default": self.default,
            "options": list(self.options),
        }


@dataclass(frozen=True)
class ProviderDescriptor:
    """Immutable identity and admin metadata of a provider."""
    name: str
    display_name: str
    description: str = ""
    icon_url: str = ""
    config_fields: tuple[ConfigField, ...] = ()

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
            "icon_url": self.icon_url,
            "config_fields": [f.to_dict() for f in self.config_fields],
        }


# Fields shared by every provider's config form
API_KEY_FIELD = ConfigField(
    key="api_key", label="API Key", required=True, secret=True,
)
SENDER_EMAIL_FIELD = ConfigField(
    key="default_sender_email", label="Default Sender Email", required=True,
)
SENDER_NAME_FIELD = ConfigField(
    key="default_sender_name", label="Default Sender Name", required=True,
)
REPLY_TO_FIELD = ConfigField(key="reply_to", label="Reply-To Email")


def to_snake_case(key: str) -> str:
    """Normalize a camelCase config key (e.g. "apiKey") to snake_case."""
    return _CAMEL_BOUNDARY.sub("_", key.strip()).lower()


def normalize_config_keys(partial: dict[str, Any]) -> dict[str, Any]:
    return {to_snake_case(k): v for k, v in partial.items()}


class ProviderConfig(BaseModel):
    """Mutable per-provider configuration.

    Provider-specific settings (e.g. Mailchimp's server_prefix or a custom
    provider's endpoints) are kept as extra fields.
    """
    model_config = ConfigDict(extra="allow")

    api_key: str = ""
    default_sender_email: str = ""
    default_sender_name: str = ""
    reply_to: str = ""
    default_list_id: str = ""

    def get(self, key: str, default: Any = "") -> Any:
        """Get a field or extra value by name."""
        value = self.model_dump().get(key)
        return default if value in (None, "") else value

    def merged(self, partial: dict[str, Any]) -> ProviderConfig:
        """Return a new config with the given fields merged in."""
        data = self.model_dump()
        data.update(normalize_config_keys(partial))
        return ProviderConfig(**data)

    def public_dict(self, secret_keys: set[str]) -> dict:
        """Dump the config with secret values masked."""
        data = self.model_dump()
        for key in secret_keys:
            if data.get(key):
                data[key] = "********"
        return data


@dataclass
class SubscriberInput:
    """Normalized lead accepted by every provider's add-subscriber call."""
    email: str
    name: str = ""
    first_name: str = ""
    last_name: str = ""
    source: str = ""
    tags: list[str] = field(default_factory=list)
    list_id: str = ""

    def normalized(self) -> SubscriberInput:
        """Return a copy with a trimmed email and split first/last name.

        When only a full name is given, it is split on the first space.
        """
        first, last = self.first_name.strip(), self.last_name.strip()
        name = self.name.strip()
        if not first and not last and name:
            first, _, last = name.partition(" ")
            last = last.strip()
        return replace(
            self,
            email=self.email.strip(),
            name=name,
            first_name=first,
            last_name=last,
            tags=list(self.tags),
        )

    @classmethod
    def from_dict(cls, data: dict) -> SubscriberInput:
        return cls(
            email=data.get("email", ""),
            name=data.get("name", ""),
            first_name=data.get("first_name", data.get("firstName", "")),
            last_name=data.get("last_name", data.get("lastName", "")),
            source=data.get("source", ""),
            tags=list(data.get("tags", [])),
            list_id=data.get("list_id", data.get("listId", "")),
        )


@dataclass
class EmailAttachment:
    """An email attachment. Text content is encoded as UTF-8."""
    filename: str
    content: Union[bytes, str]
    content_type: str = "application/octet-stream"

    def content_bytes(self) -> bytes:
        if isinstance(self.content, bytes):
            return self.content
        return self.content.encode("utf-8")


@dataclass
class SendOptions:
    """Optional overrides for a transactional send."""
    from_email: str = ""
    from_name: str = ""
    reply_to: str = ""
    attachments: list[EmailAttachment] = field(default_factory=list)
    custom_vars: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderResult:
    """Uniform result of every provider capability call."""
    success: bool
    message: str = ""
    error: str = ""
    email_id: str = ""
    subscriber_id: str = ""
    data: Optional[Any] = None

    def to_dict(self) -> dict:
        """Serialize, omitting empty optional fields."""
        result: dict[str, Any] = {"success": self.success}
        for key in ("message", "error", "email_id", "subscriber_id"):
            value = getattr(self, key)
            if value:
                result[key] = value
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass
class ListInfo:
    """A mailing list, group, or audience on the provider side."""
    id: str
    name: str
    subscriber_count: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "subscriber_count": self.subscriber_count,
        }
