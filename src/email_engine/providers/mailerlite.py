"""MailerLite adapter — connect.mailerlite.com API.

Auth is a bearer token, lists are "groups". MailerLite has no transactional
send, so send_email is refused rather than mailing a whole group.
"""

from __future__ import annotations

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

MAILERLITE_API_URL = "https://connect.mailerlite.com/api"


class MailerLiteProvider(EmailProvider):
    """MailerLite subscribers and groups."""

    name = "mailerlite"
    display_name = "MailerLite"
    description = "MailerLite subscriber groups and campaigns"
    min_api_key_length = 50
    config_fields = (
        API_KEY_FIELD,
        SENDER_EMAIL_FIELD,
        SENDER_NAME_FIELD,
        REPLY_TO_FIELD,
        ConfigField(
            key="default_list_id",
            label="Default Group ID",
            description="Group new subscribers are added to",
        ),
    )

    @property
    def api_base_url(self) -> str:
        return MAILERLITE_API_URL

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._config.api_key}"}

    def _extract_error(self, payload: dict) -> str:
        message = str(payload.get("message", ""))
        errors = payload.get("errors")
        if isinstance(errors, dict) and errors:
            field_name, field_errors = next(iter(errors.items()))
            first = field_errors[0] if isinstance(field_errors, list) and field_errors else field_errors
            detail = f"{field_name}: {first}"
            return f"{message} ({detail})" if message else detail
        if not message and isinstance(payload.get("error"), dict):
            # Classic v2 API envelope
            return str(payload["error"].get("message", ""))
        return message

    def _test_connection(self) -> ProviderResult:
        response = self._request("GET", "/groups", params={"limit": 1})
        if not response.is_success:
            return self._failure(response, "Failed to connect to MailerLite")
        total = self._json(response).get("meta", {}).get("total")
        found = f" Found {total} groups." if total is not None else ""
        return ProviderResult(
            success=True,
            message=f"Successfully connected to MailerLite.{found}",
        )

    def _add_subscriber(self, subscriber: SubscriberInput, list_id: str) -> ProviderResult:
        fields = {
            "name": subscriber.first_name,
            "last_name": subscriber.last_name,
        }
        if subscriber.source:
            fields["source"] = subscriber.source
        body: dict = {"email": subscriber.email, "fields": fields}
        if list_id:
            body["groups"] = [list_id]

        response = self._request("POST", "/subscribers", json=body)
        if not response.is_success:
            return self._failure(response, "Failed to add subscriber to MailerLite")

        data = self._json(response).get("data", {})
        return ProviderResult(
            success=True,
            message=f"Subscriber successfully added to MailerLite: {subscriber.email}",
            subscriber_id=str(data.get("id", "")),
        )

    def _remove_subscriber(self, email: str, list_id: str) -> ProviderResult:
        lookup = self._request("GET", f"/subscribers/{email}")
        if not lookup.is_success:
            return self._failure(lookup, "Failed to remove subscriber from MailerLite")
        subscriber_id = str(self._json(lookup)["data"]["id"])

        if list_id:
            response = self._request(
                "DELETE", f"/subscribers/{subscriber_id}/groups/{list_id}"
            )
        else:
            response = self._request("DELETE", f"/subscribers/{subscriber_id}")
        if not response.is_success:
            return self._failure(response, "Failed to remove subscriber from MailerLite")
        return ProviderResult(
            success=True,
            message=f"Subscriber removed from MailerLite: {email}",
            subscriber_id=subscriber_id,
        )

    def _get_lists(self) -> ProviderResult:
        response = self._request("GET", "/groups", params={"limit": 100})
        if not response.is_success:
            return self._failure(response, "Failed to get MailerLite groups")
        lists = [
            ListInfo(
                id=str(group.get("id", "")),
                name=group.get("name", ""),
                subscriber_count=group.get("active_count", 0),
            )
            for group in self._json(response).get("data", [])
        ]
        return self._lists_result(lists, "groups")

    def _send_email(
        self,
        recipients: list[str],
        subject: str,
        html: str,
        text: str,
        options: SendOptions,
    ) -> ProviderResult:
        # Campaigns go to whole groups; single-recipient mail needs MailerSend
        return ProviderResult(
            success=False,
            message="Failed to send email",
            error="MailerLite has no transactional send; use MailerSend for single-recipient email",
        )

