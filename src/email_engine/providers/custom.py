"""Custom provider — a generic REST adapter defined from the admin panel.

The admin supplies a name and display name; everything else lives in the
provider config: base URL, how the API key is sent, and one endpoint per
capability. Capabilities whose endpoint is not configured fail cleanly.
"""

from __future__ import annotations

import base64
from enum import Enum
from typing import Any

import httpx

from src.common.errors import ValidationError

from .base import EmailProvider
from .models import (
    API_KEY_FIELD,
    REPLY_TO_FIELD,
    SENDER_EMAIL_FIELD,
    SENDER_NAME_FIELD,
    ConfigField,
    FieldType,
    ListInfo,
    ProviderConfig,
    ProviderResult,
    SendOptions,
    SubscriberInput,
)


class AuthMethod(str, Enum):
    """How the API key is attached to each request."""
    BEARER = "bearer"
    BASIC = "basic"
    API_KEY = "api_key"  # raw key in a named header
    QUERY_PARAM = "query_param"


CUSTOM_CONFIG_FIELDS = (
    API_KEY_FIELD,
    ConfigField(key="api_base_url", label="API Base URL", required=True),
    ConfigField(
        key="auth_method",
        label="Auth Method",
        required=True,
        field_type=FieldType.SELECT,
        default=AuthMethod.BEARER.value,
        options=tuple(m.value for m in AuthMethod),
    ),
    ConfigField(
        key="auth_header",
        label="Auth Header",
        default="Authorization",
        description="Header carrying the key for bearer, basic and api_key auth",
    ),
    ConfigField(
        key="api_key_field",
        label="API Key Query Parameter",
        default="api_key",
        description="Query parameter name for query_param auth",
    ),
    ConfigField(key="subscribe_endpoint", label="Subscribe Endpoint"),
    ConfigField(key="unsubscribe_endpoint", label="Unsubscribe Endpoint"),
    ConfigField(key="get_lists_endpoint", label="Get Lists Endpoint"),
    ConfigField(key="send_email_endpoint", label="Send Email Endpoint"),
    SENDER_EMAIL_FIELD,
    SENDER_NAME_FIELD,
    REPLY_TO_FIELD,
)


class CustomEmailProvider(EmailProvider):
    """Admin-defined provider speaking a generic JSON REST API."""

    min_api_key_length = 1
    config_fields = CUSTOM_CONFIG_FIELDS

    def __init__(
        self,
        name: str,
        display_name: str,
        description: str = "",
        icon_url: str = "",
        config: ProviderConfig | None = None,
        client: httpx.Client | None = None,
    ):
        if not name or not name.strip():
            raise ValidationError("Custom provider name is required")
        self.name = name.strip().lower()
        self.display_name = display_name or name
        self.description = description or f"Custom provider: {self.display_name}"
        self.icon_url = icon_url
        super().__init__(config=config, client=client)

    @classmethod
    def from_definition(
        cls,
        definition: dict[str, Any],
        client: httpx.Client | None = None,
    ) -> CustomEmailProvider:
        """Build a provider from a stored or admin-submitted definition."""
        return cls(
            name=definition.get("name", ""),
            display_name=definition.get("display_name", definition.get("displayName", "")),
            description=definition.get("description", ""),
            icon_url=definition.get("icon_url", definition.get("iconUrl", "")),
            client=client,
        )

    def to_definition(self) -> dict[str, str]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
            "icon_url": self.icon_url,
        }

    @property
    def api_base_url(self) -> str:
        return str(self._config.get("api_base_url")).rstrip("/")

    @property
    def auth_method(self) -> AuthMethod:
        return AuthMethod(self._config.get("auth_method", AuthMethod.BEARER.value))

    def _auth_headers(self) -> dict[str, str]:
        key = self._config.api_key
        header = self._config.get("auth_header", "Authorization")
        method = self.auth_method
        headers = dict(self._config.get("custom_headers", {}) or {})
        if method == AuthMethod.BEARER:
            headers[header] = f"Bearer {key}"
        elif method == AuthMethod.BASIC:
            token = base64.b64encode(f"{key}:".encode("utf-8")).decode("ascii")
            headers[header] = f"Basic {token}"
        elif method == AuthMethod.API_KEY:
            headers[header] = key
        return headers

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        if self.auth_method == AuthMethod.QUERY_PARAM:
            params = dict(kwargs.pop("params", {}) or {})
            params[self._config.get("api_key_field", "api_key")] = self._config.api_key
            kwargs["params"] = params
        return super()._request(method, path, **kwargs)

    def _extract_error(self, payload: dict) -> str:
        error = payload.get("error")
        if isinstance(error, dict):
            return str(error.get("message", ""))
        return str(payload.get("message") or error or payload.get("detail") or "")

    def _endpoint(self, key: str) -> str:
        endpoint = self._config.get(key)
        if not endpoint:
            return ""
        return endpoint if endpoint.startswith("/") else f"/{endpoint}"

    def _missing_endpoint(self, key: str, action: str) -> ProviderResult:
        return ProviderResult(
            success=False,
            message=f"Failed to {action}",
            error=f"{self.display_name}: {key} is not configured",
        )

    def _test_connection(self) -> ProviderResult:
        if not self.api_base_url:
            return self._missing_endpoint("api_base_url", "connect")
        endpoint = self._endpoint("get_lists_endpoint")
        response = self._request("GET", endpoint or "/")
        if not response.is_success:
            return self._failure(response, f"Failed to connect to {self.display_name}")
        return ProviderResult(
            success=True,
            message=f"Successfully connected to {self.display_name}",
        )

    def _add_subscriber(self, subscriber: SubscriberInput, list_id: str) -> ProviderResult:
        endpoint = self._endpoint("subscribe_endpoint")
        if not endpoint:
            return self._missing_endpoint("subscribe_endpoint", "add subscriber")
        body = {
            "email": subscriber.email,
            "first_name": subscriber.first_name,
            "last_name": subscriber.last_name,
            "source": subscriber.source,
            "tags": subscriber.tags,
        }
        if list_id:
            body["list_id"] = list_id
        response = self._request("POST", endpoint, json=body)
        if not response.is_success:
            return self._failure(response, f"Failed to add subscriber to {self.display_name}")

        subscriber_id = ""
        if response.content:
            payload = response.json()
            if isinstance(payload, dict):
                subscriber_id = str(payload.get("id", ""))
        return ProviderResult(
            success=True,
            message=f"Subscriber successfully added to {self.display_name}: {subscriber.email}",
            subscriber_id=subscriber_id,
        )

    def _remove_subscriber(self, email: str, list_id: str) -> ProviderResult:
        endpoint = self._endpoint("unsubscribe_endpoint")
        if not endpoint:
            return self._missing_endpoint("unsubscribe_endpoint", "remove subscriber")
        body = {"email": email}
        if list_id:
            body["list_id"] = list_id
        response = self._request("POST", endpoint, json=body)
        if not response.is_success:
            return self._failure(response, f"Failed to remove subscriber from {self.display_name}")
        return ProviderResult(
            success=True,
            message=f"Subscriber removed from {self.display_name}: {email}",
        )

    def _get_lists(self) -> ProviderResult:
        endpoint = self._endpoint("get_lists_endpoint")
        if not endpoint:
            return self._missing_endpoint("get_lists_endpoint", "get lists")
        response = self._request("GET", endpoint)
        if not response.is_success:
            return self._failure(response, f"Failed to get {self.display_name} lists")

        payload = response.json()
        if isinstance(payload, dict):
            payload = payload.get("lists") or payload.get("data") or []
        lists = [
            ListInfo(
                id=str(item.get("id", "")),
                name=str(item.get("name", "")),
                subscriber_count=int(item.get("subscriber_count", 0) or 0),
            )
            for item in payload
            if isinstance(item, dict)
        ]
        return self._lists_result(lists, "lists")

    def _send_email(
        self,
        recipients: list[str],
        subject: str,
        html: str,
        text: str,
        options: SendOptions,
    ) -> ProviderResult:
        endpoint = self._endpoint("send_email_endpoint")
        if not endpoint:
            return self._missing_endpoint("send_email_endpoint", "send email")
        from_email, from_name = self._sender(options)
        body: dict = {
            "to": recipients,
            "subject": subject,
            "html": html,
            "text": text,
            "from": {"email": from_email, "name": from_name},
        }
        reply_to = self._reply_to(options)
        if reply_to:
            body["reply_to"] = reply_to
        if options.custom_vars:
            body["variables"] = options.custom_vars

        response = self._request("POST", endpoint, json=body)
        if not response.is_success:
            return self._failure(response, "Failed to send email")

        email_id = ""
        if response.content:
            payload = response.json()
            if isinstance(payload, dict):
                email_id = str(payload.get("id") or payload.get("message_id") or "")
        return ProviderResult(
            success=True,
            message=f"Email sent successfully to {len(recipients)} recipient(s)",
            email_id=email_id,
        )
