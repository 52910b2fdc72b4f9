"""SendGrid adapter — Marketing Contacts API and v3 Mail Send.

Auth is a bearer token. Contacts are upserted with PUT /marketing/contacts,
which SendGrid processes asynchronously and answers with 202 + job_id.
"""

from __future__ import annotations

import base64

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

SENDGRID_API_URL = "https://api.sendgrid.com/v3"


class SendGridProvider(EmailProvider):
    """SendGrid email marketing and transactional email."""

    name = "sendgrid"
    display_name = "SendGrid"
    description = "SendGrid marketing contacts and transactional email"
    config_fields = (
        API_KEY_FIELD,
        SENDER_EMAIL_FIELD,
        SENDER_NAME_FIELD,
        REPLY_TO_FIELD,
        ConfigField(
            key="default_list_id",
            label="Default List ID",
            description="Marketing list new contacts are added to",
        ),
    )

    @property
    def api_base_url(self) -> str:
        return SENDGRID_API_URL

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._config.api_key}"}

    def _extract_error(self, payload: dict) -> str:
        if payload.get("message"):
            return str(payload["message"])
        errors = payload.get("errors") or []
        if errors and isinstance(errors[0], dict):
            return str(errors[0].get("message", ""))
        return ""

    def _test_connection(self) -> ProviderResult:
        response = self._request("GET", "/marketing/lists")
        if not response.is_success:
            return self._failure(response, "Failed to connect to SendGrid")
        lists = self._json(response).get("result", [])
        return ProviderResult(
            success=True,
            message=f"Successfully connected to SendGrid. Found {len(lists)} lists.",
        )

    def _add_subscriber(self, subscriber: SubscriberInput, list_id: str) -> ProviderResult:
        contact = {
            "email": subscriber.email,
            "first_name": subscriber.first_name,
            "last_name": subscriber.last_name,
        }
        body: dict = {"contacts": [contact]}
        if list_id:
            body["list_ids"] = [list_id]

        response = self._request("PUT", "/marketing/contacts", json=body)
        if not response.is_success:
            return self._failure(response, "Failed to add subscriber to SendGrid")

        job_id = self._json(response).get("job_id", "") if response.content else ""
        return ProviderResult(
            success=True,
            message=f"Subscriber successfully added to SendGrid: {subscriber.email}",
            subscriber_id=job_id,
        )

    def _remove_subscriber(self, email: str, list_id: str) -> ProviderResult:
        search = self._request(
            "POST",
            "/marketing/contacts/search/emails",
            json={"emails": [email]},
        )
        if search.status_code == 404:
            return ProviderResult(
                success=False,
                message="Failed to remove subscriber from SendGrid",
                error=f"SendGrid error: 404 - Contact not found: {email}",
            )
        if not search.is_success:
            return self._failure(search, "Failed to remove subscriber from SendGrid")

        contact_id = self._json(search)["result"][email]["contact"]["id"]
        if list_id:
            response = self._request(
                "DELETE",
                f"/marketing/lists/{list_id}/contacts",
                params={"contact_ids": contact_id},
            )
        else:
            response = self._request(
                "DELETE",
                "/marketing/contacts",
                params={"ids": contact_id},
            )
        if not response.is_success:
            return self._failure(response, "Failed to remove subscriber from SendGrid")
        return ProviderResult(
            success=True,
            message=f"Subscriber removed from SendGrid: {email}",
            subscriber_id=contact_id,
        )

    def _get_lists(self) -> ProviderResult:
        response = self._request("GET", "/marketing/lists", params={"page_size": 100})
        if not response.is_success:
            return self._failure(response, "Failed to get SendGrid lists")
        lists = [
            ListInfo(
                id=str(item.get("id", "")),
                name=item.get("name", ""),
                subscriber_count=item.get("contact_count", 0),
            )
            for item in self._json(response).get("result", [])
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
        from_email, from_name = self._sender(options)

        content = [{"type": "text/html", "value": html}]
        if text:
            # SendGrid requires text/plain before text/html
            content.insert(0, {"type": "text/plain", "value": text})

        personalization: dict = {"to": [{"email": r} for r in recipients]}
        if options.custom_vars:
            personalization["custom_args"] = {
                k: str(v) for k, v in options.custom_vars.items()
            }

        body: dict = {
            "personalizations": [personalization],
            "from": {"email": from_email, "name": from_name},
            "subject": subject,
            "content": content,
        }
        reply_to = self._reply_to(options)
        if reply_to:
            body["reply_to"] = {"email": reply_to}
        if options.attachments:
            body["attachments"] = [
                {
                    "content": base64.b64encode(a.content_bytes()).decode("ascii"),
                    "filename": a.filename,
                    "type": a.content_type,
                    "disposition": "attachment",
                }
                for a in options.attachments
            ]

        response = self._request("POST", "/mail/send", json=body)
        if not response.is_success:
            return self._failure(response, "Failed to send email")
        return ProviderResult(
            success=True,
            message=f"Email sent successfully to {len(recipients)} recipient(s)",
            email_id=response.headers.get("X-Message-Id", ""),
        )
