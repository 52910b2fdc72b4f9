"""Mailchimp adapter — Marketing API 3.0.

The data center prefix ("us21") comes from config.server_prefix or the
suffix of the API key. Auth is HTTP Basic with any username. Transactional
email needs a separate Mandrill account, so send_email always fails.
"""

from __future__ import annotations

import hashlib
from typing import Any

import httpx

from .base import EmailProvider
from .models import (
    API_KEY_FIELD,
    REPLY_TO_FIELD,
    SENDER_EMAIL_FIELD,
    SENDER_NAME_FIELD,
    ConfigField,
    ListInfo,
    ProviderResult,
    SendOptions,
    SubscriberInput,
)

DEFAULT_SERVER_PREFIX = "us1"


def subscriber_hash(email: str) -> str:
    """Mailchimp identifies list members by the MD5 of the lowercased email."""
    return hashlib.md5(email.strip().lower().encode("utf-8")).hexdigest()


class MailchimpProvider(EmailProvider):
    """Mailchimp audiences (lists) and members."""

    name = "mailchimp"
    display_name = "Mailchimp"
    description = "Mailchimp audiences and list members"
    min_api_key_length = 10
    config_fields = (
        API_KEY_FIELD,
        ConfigField(
            key="server_prefix",
            label="Server Prefix",
            description="Data center prefix, e.g. us21 (read from the API key if empty)",
        ),
        ConfigField(
            key="default_list_id",
            label="Audience ID",
            required=True,
            description="Audience new members are added to",
        ),
        SENDER_EMAIL_FIELD,
        SENDER_NAME_FIELD,
        REPLY_TO_FIELD,
    )

    @property
    def server_prefix(self) -> str:
        prefix = self._config.get("server_prefix")
        if prefix:
            return prefix
        key = self._config.api_key
        if "-" in key:
            return key.rsplit("-", 1)[1]
        return DEFAULT_SERVER_PREFIX

    @property
    def api_base_url(self) -> str:
        return f"https://{self.server_prefix}.api.mailchimp.com/3.0"

    def validate_api_key(self) -> bool:
        key = self._config.api_key
        return len(key) >= self.min_api_key_length and "-" in key

    def _auth_headers(self) -> dict[str, str]:
        return {}

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        kwargs.setdefault("auth", ("anystring", self._config.api_key))
        return super()._request(method, path, **kwargs)

    def _extract_error(self, payload: dict) -> str:
        return str(payload.get("detail") or payload.get("title") or "")

    def _test_connection(self) -> ProviderResult:
        response = self._request("GET", "/ping")
        if not response.is_success:
            return self._failure(response, "Failed to connect to Mailchimp")
        status = self._json(response).get("health_status", "OK")
        return ProviderResult(
            success=True,
            message=f"Successfully connected to Mailchimp: {status}",
        )

    def _add_subscriber(self, subscriber: SubscriberInput, list_id: str) -> ProviderResult:
        if not list_id:
            return ProviderResult(
                success=False,
                message="Failed to add subscriber to Mailchimp",
                error="No Mailchimp audience ID provided or configured",
            )

        tags = list(subscriber.tags)
        if subscriber.source:
            tags.append(subscriber.source)
        body = {
            "email_address": subscriber.email,
            "status": "subscribed",
            "merge_fields": {
                "FNAME": subscriber.first_name,
                "LNAME": subscriber.last_name,
            },
            "tags": tags,
        }
        response = self._request("POST", f"/lists/{list_id}/members", json=body)

        if response.status_code == 400:
            try:
                title = self._json(response).get("title")
            except ValueError:
                title = ""
            if title == "Member Exists":
                return ProviderResult(
                    success=True,
                    message=f"Subscriber already exists in Mailchimp: {subscriber.email}",
                )
        if not response.is_success:
            return self._failure(response, "Failed to add subscriber to Mailchimp")

        return ProviderResult(
            success=True,
            message=f"Subscriber successfully added to Mailchimp: {subscriber.email}",
            subscriber_id=str(self._json(response).get("id", "")),
        )

    def _remove_subscriber(self, email: str, list_id: str) -> ProviderResult:
        if not list_id:
            return ProviderResult(
                success=False,
                message="Failed to remove subscriber from Mailchimp",
                error="No Mailchimp audience ID provided or configured",
            )
        response = self._request(
            "DELETE", f"/lists/{list_id}/members/{subscriber_hash(email)}"
        )
        if not response.is_success:
            return self._failure(response, "Failed to remove subscriber from Mailchimp")
        return ProviderResult(success=True, message=f"Subscriber removed from Mailchimp: {email}")

    def _get_lists(self) -> ProviderResult:
        response = self._request("GET", "/lists", params={"count": 100})
        if not response.is_success:
            return self._failure(response, "Failed to get Mailchimp audiences")
        lists = [
            ListInfo(
                id=str(item.get("id", "")),
                name=item.get("name", ""),
                subscriber_count=item.get("stats", {}).get("member_count", 0),
            )
            for item in self._json(response).get("lists", [])
        ]
        return self._lists_result(lists, "audiences")

    def _send_email(
        self,
        recipients: list[str],
        subject: str,
        html: str,
        text: str,
        options: SendOptions,
    ) -> ProviderResult:
        return ProviderResult(
            success=False,
            message="Failed to send email",
            error="Mailchimp transactional email requires a Mandrill account",
        )
