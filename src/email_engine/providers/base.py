"""Email provider base class — the capability interface every ESP implements.

Public capability methods never raise. Network errors, non-2xx responses
and malformed JSON all come back as ``ProviderResult(success=False)``
with a human-readable error string. Subclasses implement the underscored
hooks and may raise ``httpx.HTTPError`` or parse errors freely.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Union

import httpx

from src.common.config import settings
from src.common.logging import setup_logging

from .models import (
    ConfigField,
    ListInfo,
    ProviderConfig,
    ProviderDescriptor,
    ProviderResult,
    SendOptions,
    SubscriberInput,
)

logger = setup_logging(module_name="email_providers")

Recipients = Union[str, list[str]]


class EmailProvider(ABC):
    """Base class for email service provider adapters."""

    name: str = ""
    display_name: str = ""
    description: str = ""
    icon_url: str = ""
    config_fields: tuple[ConfigField, ...] = ()
    min_api_key_length: int = 20

    def __init__(
        self,
        config: ProviderConfig | None = None,
        client: httpx.Client | None = None,
    ):
        """Initialize the provider.

        Args:
            config: Initial configuration (empty if omitted)
            client: HTTP client to use. Defaults to a new httpx.Client
                    with the configured timeout.
        """
        self._config = config.model_copy() if config else ProviderConfig()
        self._client = client or httpx.Client(timeout=settings.http.timeout_seconds)

    @property
    def descriptor(self) -> ProviderDescriptor:
        return ProviderDescriptor(
            name=self.name,
            display_name=self.display_name,
            description=self.description,
            icon_url=self.icon_url or f"/images/email-providers/{self.name}.svg",
            config_fields=self.config_fields,
        )

    @property
    def api_base_url(self) -> str:
        raise NotImplementedError

    # --- Configuration ---

    def get_config(self) -> ProviderConfig:
        """Get a copy of the current config."""
        return self._config.model_copy()

    def set_config(self, config: ProviderConfig) -> None:
        """Replace the config wholesale."""
        self._config = config.model_copy()

    def update_config(self, partial: dict[str, Any]) -> ProviderConfig:
        """Merge fields into the current config and return the result."""
        self._config = self._config.merged(partial)
        return self.get_config()

    def public_config(self) -> dict:
        """Config with secret fields masked, for admin display."""
        secrets = {f.key for f in self.config_fields if f.secret}
        return self._config.public_dict(secrets)

    def validate_api_key(self) -> bool:
        """Check the API key format without calling the service."""
        return len(self._config.api_key) >= self.min_api_key_length

    def close(self) -> None:
        self._client.close()

    # --- Capabilities ---

    def test_connection(self) -> ProviderResult:
        """Make a read-only call to check that the API key authenticates."""
        if not self.validate_api_key():
            return ProviderResult(
                success=False,
                message=f"Invalid {self.display_name} API key format",
                error=f"Invalid {self.display_name} API key format",
            )
        return self._guard("connect", self._test_connection)

    def add_subscriber(
        self,
        subscriber: SubscriberInput,
        list_id: str | None = None,
    ) -> ProviderResult:
        """Add a contact to a list (or the default list)."""
        if not self.validate_api_key():
            return self._not_configured("add subscriber")
        subscriber = subscriber.normalized()
        target = list_id or subscriber.list_id or self._config.default_list_id
        return self._guard("add subscriber", self._add_subscriber, subscriber, target)

    def remove_subscriber(
        self,
        email: str,
        list_id: str | None = None,
    ) -> ProviderResult:
        """Remove a contact from a list, or delete it when no list is given."""
        if not self.validate_api_key():
            return self._not_configured("remove subscriber")
        target = list_id or self._config.default_list_id
        return self._guard("remove subscriber", self._remove_subscriber, email, target)

    def get_lists(self) -> ProviderResult:
        """Fetch the provider's lists. ``data`` holds a list of ListInfo dicts."""
        if not self.validate_api_key():
            return self._not_configured("get lists")
        return self._guard("get lists", self._get_lists)

    def send_email(
        self,
        to: Recipients,
        subject: str,
        html: str,
        text: str = "",
        options: SendOptions | None = None,
    ) -> ProviderResult:
        """Send a transactional email."""
        if not self.validate_api_key():
            return self._not_configured("send email")
        recipients = [to] if isinstance(to, str) else list(to)
        if not recipients:
            return ProviderResult(
                success=False,
                message="Failed to send email",
                error="No recipients given",
            )
        return self._guard(
            "send email",
            self._send_email,
            recipients,
            subject,
            html,
            text,
            options or SendOptions(),
        )

    # --- Adapter hooks ---

    @abstractmethod
    def _auth_headers(self) -> dict[str, str]:
        ...

    @abstractmethod
    def _test_connection(self) -> ProviderResult:
        ...

    @abstractmethod
    def _add_subscriber(self, subscriber: SubscriberInput, list_id: str) -> ProviderResult:
        ...

    @abstractmethod
    def _remove_subscriber(self, email: str, list_id: str) -> ProviderResult:
        ...

    @abstractmethod
    def _get_lists(self) -> ProviderResult:
        ...

    @abstractmethod
    def _send_email(
        self,
        recipients: list[str],
        subject: str,
        html: str,
        text: str,
        options: SendOptions,
    ) -> ProviderResult:
        ...

    def _extract_error(self, payload: dict) -> str:
        """Pull the error detail out of this service's error envelope."""
        return str(payload.get("message", ""))

    # --- HTTP Helpers ---

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request relative to the provider's base URL."""
        url = path if path.startswith("http") else f"{self.api_base_url}{path}"
        headers = {
            "Accept": "application/json",
            **self._auth_headers(),
            **kwargs.pop("headers", {}),
        }
        response = self._client.request(method, url, headers=headers, **kwargs)
        logger.debug("%s %s %s -> %d", self.name, method, url, response.status_code)
        return response

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        """Parse a response body that must be a JSON object.

        Raises:
            ValueError: If the body is not JSON or not an object
        """
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
        return payload

    def describe_error(self, response: httpx.Response) -> str:
        """Build "<Display Name> error: <status> - <detail>" for a response."""
        detail = ""
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            detail = self._extract_error(payload)
        reason = detail or response.reason_phrase or "Unknown error"
        return f"{self.display_name} error: {response.status_code} - {reason}"

    def _failure(self, response: httpx.Response, message: str) -> ProviderResult:
        error = self.describe_error(response)
        logger.warning("%s: %s", message, error)
        return ProviderResult(success=False, message=message, error=error)

    def _not_configured(self, action: str) -> ProviderResult:
        return ProviderResult(
            success=False,
            message=f"Failed to {action}",
            error=f"{self.display_name} API key is not configured",
        )

    def _guard(
        self,
        action: str,
        func: Callable[..., ProviderResult],
        *args: Any,
    ) -> ProviderResult:
        """Run an adapter hook, converting transport and parse errors."""
        try:
            return func(*args)
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", self.display_name, action, e)
            return ProviderResult(
                success=False,
                message=f"Failed to {action}",
                error=f"{self.display_name} exception: {e}",
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error("%s returned malformed data on %s: %s", self.display_name, action, e)
            return ProviderResult(
                success=False,
                message=f"Failed to {action}",
                error=f"{self.display_name} exception: invalid response ({e})",
            )

    # --- Shared helpers for adapters ---

    def _sender(self, options: SendOptions) -> tuple[str, str]:
        """Resolve the (email, name) sender from options, config, then settings."""
        email = (
            options.from_email
            or self._config.default_sender_email
            or settings.email.default_from_email
        )
        name = (
            options.from_name
            or self._config.default_sender_name
            or settings.email.default_from_name
        )
        return email, name

    def _reply_to(self, options: SendOptions) -> str:
        return options.reply_to or self._config.reply_to

    @staticmethod
    def _lists_result(lists: list[ListInfo], label: str) -> ProviderResult:
        return ProviderResult(
            success=True,
            message=f"Found {len(lists)} {label}",
            data=[item.to_dict() for item in lists],
        )
