"""Brevo (formerly Sendinblue) adapter.

Auth is an ``api-key`` header, lists are numeric "lists". Creating a
contact that already exists comes back as 400 "Contact already exist",
which is treated as success.
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
    FieldType,
    ListInfo,
    ProviderResult,
    SendOptions,
    SubscriberInput,
)

BREVO_API_URL = "https://api.brevo.com/v3"

CONTACT_EXISTS_MESSAGE = "Contact already exist"


class BrevoProvider(EmailProvider):
    """Brevo contacts, lists and transactional email."""

    name = "brevo"
    display_name = "Brevo"
    description = "Brevo (Sendinblue) contact lists and SMTP email"
    config_fields = (
        API_KEY_FIELD,
        SENDER_EMAIL_FIELD,
        SENDER_NAME_FIELD,
        REPLY_TO_FIELD,
        ConfigField(
            key="default_list_id",
            label="Default List ID",
            field_type=FieldType.NUMBER,
            description="Numeric ID of the list new contacts are added to",
        ),
    )

    @property
    def api_base_url(self) -> str:
        return BREVO_API_URL

    def _auth_headers(self) -> dict[str, str]:
        return {"api-key": self._config.api_key}

    def _extract_error(self, payload: dict) -> str:
        message = str(payload.get("message", ""))
        code = payload.get("code")
        if message and code:
            return f"{message} ({code})"
        return message or str(code or "")

    def _test_connection(self) -> ProviderResult:
        response = self._request("GET", "/account")
        if not response.is_success:
            return self._failure(response, "Failed to connect to Brevo")
        plans = self._json(response).get("plan") or [{}]
        plan = plans[0]
        return ProviderResult(
            success=True,
            message=(
                "Successfully connected to Brevo. "
                f"Plan: {plan.get('type', 'unknown')}, "
                f"credits: {plan.get('credits', 'unknown')}"
            ),
        )

    def _add_subscriber(self, subscriber: SubscriberInput, list_id: str) -> ProviderResult:
        attributes = {
            "FIRSTNAME": subscriber.first_name,
            "LASTNAME": subscriber.last_name,
        }
        if subscriber.source:
            attributes["SOURCE"] = subscriber.source
        body: dict = {
            "email": subscriber.email,
            "attributes": attributes,
            "updateEnabled": True,
        }
        if list_id:
            body["listIds"] = [int(list_id)]

        response = self._request("POST", "/contacts", json=body)

        if response.status_code == 400 and CONTACT_EXISTS_MESSAGE in response.text:
            return ProviderResult(
                success=True,
                message=f"Subscriber already exists in Brevo: {subscriber.email}",
            )
        if not response.is_success:
            return self._failure(response, "Failed to add subscriber to Brevo")

        # 204 when an existing contact was updated
        contact_id = ""
        if response.content:
            contact_id = str(self._json(response).get("id", ""))
        return ProviderResult(
            success=True,
            message=f"Subscriber successfully added to Brevo: {subscriber.email}",
            subscriber_id=contact_id,
        )

    def _remove_subscriber(self, email: str, list_id: str) -> ProviderResult:
        if list_id:
            response = self._request(
                "POST",
                f"/contacts/lists/{list_id}/contacts/remove",
                json={"emails": [email]},
            )
        else:
            response = self._request("DELETE", f"/contacts/{email}")
        if not response.is_success:
            return self._failure(response, "Failed to remove subscriber from Brevo")
        return ProviderResult(success=True, message=f"Subscriber removed from Brevo: {email}")

    def _get_lists(self) -> ProviderResult:
        response = self._request("GET", "/contacts/lists", params={"limit": 50})
        if not response.is_success:
            return self._failure(response, "Failed to get Brevo lists")
        lists = [
            ListInfo(
                id=str(item.get("id", "")),
                name=item.get("name", ""),
                subscriber_count=item.get("totalSubscribers", 0),
            )
            for item in self._json(response).get("lists", [])
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
        body: dict = {
            "sender": {"email": from_email, "name": from_name},
            "to": [{"email": r} for r in recipients],
            "subject": subject,
            "htmlContent": html,
        }
        if text:
            body["textContent"] = text
        reply_to = self._reply_to(options)
        if reply_to:
            body["replyTo"] = {"email": reply_to}
        if options.attachments:
            body["attachment"] = [
                {
                    "name": a.filename,
                    "content": base64.b64encode(a.content_bytes()).decode("ascii"),
                }
                for a in options.attachments
            ]
        if options.custom_vars:
            body["params"] = options.custom_vars

        response = self._request("POST", "/smtp/email", json=body)
        if not response.is_success:
            return self._failure(response, "Failed to send email")
        return ProviderResult(
            success=True,
            message=f"Email sent successfully to {len(recipients)} recipient(s)",
            email_id=str(self._json(response).get("messageId", "")),
        )
