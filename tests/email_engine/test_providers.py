"""Tests for the email provider adapters.

Tests cover:
- Request shape (URL, auth header, body) per provider
- Service quirks (Brevo/Mailchimp "already exists", SendGrid message id)
- Error envelope parsing into "<Display Name> error: <status> - <detail>"
- Network errors and malformed JSON never raise
- API key validation
- Custom provider auth methods and missing endpoints

All HTTP is answered by httpx.MockTransport handlers.
"""

import base64
import json

import httpx
import pytest

from src.email_engine.providers import (
    BrevoProvider,
    CustomEmailProvider,
    EmailAttachment,
    MailchimpProvider,
    MailerLiteProvider,
    ProviderConfig,
    SendGridProvider,
    SendOptions,
    SubscriberInput,
)
from src.email_engine.providers.mailchimp import subscriber_hash

SENDGRID_KEY = "SG.test-key-0123456789abcdef"
MAILERLITE_KEY = "ml-" + "x" * 60
BREVO_KEY = "xkeysib-0123456789abcdef0123"
MAILCHIMP_KEY = "0123456789abcdef-us21"


def body_of(request: httpx.Request) -> dict:
    return json.loads(request.content.decode("utf-8"))


# === Fixtures ===


@pytest.fixture
def jane() -> SubscriberInput:
    return SubscriberInput(email=" jane@example.com ", name="Jane Doe", source="quiz")


# === Test: Subscriber Input ===


class TestSubscriberInput:
    def test_name_split_on_first_space(self):
        sub = SubscriberInput(email="a@b.com", name="Mary Ann Smith").normalized()
        assert sub.first_name == "Mary"
        assert sub.last_name == "Ann Smith"

    def test_single_name(self):
        sub = SubscriberInput(email="a@b.com", name="Cher").normalized()
        assert sub.first_name == "Cher"
        assert sub.last_name == ""

    def test_explicit_names_win(self):
        sub = SubscriberInput(email="a@b.com", name="X Y", first_name="Jane").normalized()
        assert (sub.first_name, sub.last_name) == ("Jane", "")

    def test_from_dict_camel_case(self):
        sub = SubscriberInput.from_dict({"email": "a@b.com", "firstName": "Jo", "listId": "9"})
        assert sub.first_name == "Jo"
        assert sub.list_id == "9"


# === Test: SendGrid ===


class TestSendGrid:
    def test_add_subscriber(self, mock_client, jane):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(202, json={"job_id": "job-1"})

        provider = SendGridProvider(
            config=ProviderConfig(api_key=SENDGRID_KEY, default_list_id="list-a"),
            client=mock_client(handler),
        )
        result = provider.add_subscriber(jane)

        assert result.success is True
        assert result.subscriber_id == "job-1"
        request = seen[0]
        assert request.method == "PUT"
        assert str(request.url) == "https://api.sendgrid.com/v3/marketing/contacts"
        assert request.headers["Authorization"] == f"Bearer {SENDGRID_KEY}"
        assert body_of(request) == {
            "contacts": [{"email": "jane@example.com", "first_name": "Jane", "last_name": "Doe"}],
            "list_ids": ["list-a"],
        }

    def test_explicit_list_overrides_default(self, mock_client, jane):
        seen = []

        def handler(request):
            seen.append(body_of(request))
            return httpx.Response(202, json={"job_id": "j"})

        provider = SendGridProvider(
            config=ProviderConfig(api_key=SENDGRID_KEY, default_list_id="list-a"),
            client=mock_client(handler),
        )
        provider.add_subscriber(jane, list_id="list-b")
        assert seen[0]["list_ids"] == ["list-b"]

    def test_add_subscriber_error(self, mock_client, jane):
        handler = lambda request: httpx.Response(
            401, json={"errors": [{"field": None, "message": "authorization required"}]}
        )
        provider = SendGridProvider(
            config=ProviderConfig(api_key=SENDGRID_KEY), client=mock_client(handler)
        )
        result = provider.add_subscriber(jane)
        assert result.success is False
        assert result.error == "SendGrid error: 401 - authorization required"

    def test_error_without_body_uses_reason_phrase(self, mock_client, jane):
        provider = SendGridProvider(
            config=ProviderConfig(api_key=SENDGRID_KEY),
            client=mock_client(lambda request: httpx.Response(503)),
        )
        result = provider.add_subscriber(jane)
        assert result.error == "SendGrid error: 503 - Service Unavailable"

    def test_send_email(self, mock_client):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(202, headers={"X-Message-Id": "msg-123"})

        provider = SendGridProvider(
            config=ProviderConfig(api_key=SENDGRID_KEY, default_sender_email="team@x.com"),
            client=mock_client(handler),
        )
        options = SendOptions(
            reply_to="reply@x.com",
            attachments=[EmailAttachment("guide.txt", "hello", "text/plain")],
            custom_vars={"lead_id": 5},
        )
        result = provider.send_email("a@b.com", "Hi", "<p>Hi</p>", text="Hi", options=options)

        assert result.success is True
        assert result.email_id == "msg-123"
        body = body_of(seen[0])
        assert [c["type"] for c in body["content"]] == ["text/plain", "text/html"]
        assert body["from"]["email"] == "team@x.com"
        assert body["reply_to"] == {"email": "reply@x.com"}
        assert body["personalizations"][0]["custom_args"] == {"lead_id": "5"}
        assert base64.b64decode(body["attachments"][0]["content"]) == b"hello"

    def test_network_error_never_raises(self, mock_client, jane):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        provider = SendGridProvider(
            config=ProviderConfig(api_key=SENDGRID_KEY), client=mock_client(handler)
        )
        result = provider.add_subscriber(jane)
        assert result.success is False
        assert result.error.startswith("SendGrid exception:")

    def test_malformed_json_never_raises(self, mock_client):
        provider = SendGridProvider(
            config=ProviderConfig(api_key=SENDGRID_KEY),
            client=mock_client(lambda request: httpx.Response(200, content=b"<html>")),
        )
        result = provider.get_lists()
        assert result.success is False
        assert "invalid response" in result.error

    def test_invalid_key_makes_no_request(self, mock_client):
        def handler(request):
            raise AssertionError("no request expected")

        provider = SendGridProvider(
            config=ProviderConfig(api_key="short"), client=mock_client(handler)
        )
        result = provider.test_connection()
        assert result.success is False
        assert "Invalid SendGrid API key format" in result.error

    def test_get_lists(self, mock_client):
        handler = lambda request: httpx.Response(
            200, json={"result": [{"id": "l1", "name": "Leads", "contact_count": 12}]}
        )
        provider = SendGridProvider(
            config=ProviderConfig(api_key=SENDGRID_KEY), client=mock_client(handler)
        )
        result = provider.get_lists()
        assert result.success is True
        assert result.data == [{"id": "l1", "name": "Leads", "subscriber_count": 12}]


# === Test: MailerLite ===


class TestMailerLite:
    def test_add_subscriber(self, mock_client, jane):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(201, json={"data": {"id": "987"}})

        provider = MailerLiteProvider(
            config=ProviderConfig(api_key=MAILERLITE_KEY, default_list_id="g1"),
            client=mock_client(handler),
        )
        result = provider.add_subscriber(jane)

        assert result.success is True
        assert result.subscriber_id == "987"
        assert str(seen[0].url) == "https://connect.mailerlite.com/api/subscribers"
        assert body_of(seen[0]) == {
            "email": "jane@example.com",
            "fields": {"name": "Jane", "last_name": "Doe", "source": "quiz"},
            "groups": ["g1"],
        }

    def test_validation_error_detail(self, mock_client, jane):
        handler = lambda request: httpx.Response(422, json={
            "message": "The given data was invalid.",
            "errors": {"email": ["The email must be a valid email address."]},
        })
        provider = MailerLiteProvider(
            config=ProviderConfig(api_key=MAILERLITE_KEY), client=mock_client(handler)
        )
        result = provider.add_subscriber(jane)
        assert result.success is False
        assert result.error == (
            "MailerLite error: 422 - The given data was invalid. "
            "(email: The email must be a valid email address.)"
        )

    def test_short_key_rejected(self, mock_client):
        provider = MailerLiteProvider(
            config=ProviderConfig(api_key=SENDGRID_KEY),
            client=mock_client(lambda request: httpx.Response(200, json={})),
        )
        assert provider.validate_api_key() is False

    def test_send_refused_without_mailing_group(self, mock_client):
        def handler(request):
            raise AssertionError("no request expected")

        provider = MailerLiteProvider(
            config=ProviderConfig(api_key=MAILERLITE_KEY, default_list_id="g1"),
            client=mock_client(handler),
        )
        result = provider.send_email("only-me@example.com", "Hi", "<p>Hi</p>")

        assert result.success is False
        assert "MailerSend" in result.error


# === Test: Brevo ===


class TestBrevo:
    def _provider(self, mock_client, handler, **config):
        return BrevoProvider(
            config=ProviderConfig(api_key=BREVO_KEY, **config),
            client=mock_client(handler),
        )

    def test_add_subscriber(self, mock_client, jane):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(201, json={"id": 42})

        result = self._provider(mock_client, handler, default_list_id="7").add_subscriber(jane)

        assert result.success is True
        assert result.subscriber_id == "42"
        assert seen[0].headers["api-key"] == BREVO_KEY
        assert body_of(seen[0]) == {
            "email": "jane@example.com",
            "attributes": {"FIRSTNAME": "Jane", "LASTNAME": "Doe", "SOURCE": "quiz"},
            "updateEnabled": True,
            "listIds": [7],
        }

    def test_existing_contact_is_success(self, mock_client, jane):
        handler = lambda request: httpx.Response(
            400, json={"code": "duplicate_parameter", "message": "Contact already exist"}
        )
        result = self._provider(mock_client, handler).add_subscriber(jane)
        assert result.success is True
        assert "already exists" in result.message

    def test_updated_contact_no_content(self, mock_client, jane):
        result = self._provider(
            mock_client, lambda request: httpx.Response(204)
        ).add_subscriber(jane)
        assert result.success is True
        assert result.subscriber_id == ""

    def test_non_2xx_returns_error(self, mock_client, jane):
        handler = lambda request: httpx.Response(
            401, json={"code": "unauthorized", "message": "Key not found"}
        )
        result = self._provider(mock_client, handler).add_subscriber(jane)
        assert result.success is False
        assert result.error == "Brevo error: 401 - Key not found (unauthorized)"

    def test_test_connection(self, mock_client):
        handler = lambda request: httpx.Response(
            200, json={"plan": [{"type": "free", "credits": 300}]}
        )
        result = self._provider(mock_client, handler).test_connection()
        assert result.success is True
        assert "Plan: free" in result.message

    def test_send_email(self, mock_client):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(201, json={"messageId": "<abc@smtp-relay>"})

        result = self._provider(mock_client, handler).send_email(
            ["a@b.com", "c@d.com"], "Hi", "<p>Hi</p>"
        )
        assert result.success is True
        assert result.email_id == "<abc@smtp-relay>"
        body = body_of(seen[0])
        assert body["to"] == [{"email": "a@b.com"}, {"email": "c@d.com"}]
        assert body["htmlContent"] == "<p>Hi</p>"

    def test_remove_from_list(self, mock_client):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(201, json={"contacts": {"success": ["a@b.com"]}})

        result = self._provider(mock_client, handler).remove_subscriber("a@b.com", list_id="7")
        assert result.success is True
        assert seen[0].url.path == "/v3/contacts/lists/7/contacts/remove"

    def test_empty_recipients(self, mock_client):
        result = self._provider(
            mock_client, lambda request: httpx.Response(201, json={})
        ).send_email([], "Hi", "<p>Hi</p>")
        assert result.success is False


# === Test: Mailchimp ===


class TestMailchimp:
    def test_server_prefix_from_key(self, mock_client):
        provider = MailchimpProvider(
            config=ProviderConfig(api_key=MAILCHIMP_KEY),
            client=mock_client(lambda request: httpx.Response(200, json={})),
        )
        assert provider.api_base_url == "https://us21.api.mailchimp.com/3.0"

    def test_server_prefix_from_config(self, mock_client):
        provider = MailchimpProvider(
            config=ProviderConfig(api_key=MAILCHIMP_KEY, server_prefix="us5"),
            client=mock_client(lambda request: httpx.Response(200, json={})),
        )
        assert provider.api_base_url == "https://us5.api.mailchimp.com/3.0"

    def test_add_subscriber_basic_auth(self, mock_client, jane):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": "hash-1"})

        provider = MailchimpProvider(
            config=ProviderConfig(api_key=MAILCHIMP_KEY, default_list_id="aud1"),
            client=mock_client(handler),
        )
        result = provider.add_subscriber(jane)

        assert result.success is True
        expected = base64.b64encode(f"anystring:{MAILCHIMP_KEY}".encode()).decode()
        assert seen[0].headers["Authorization"] == f"Basic {expected}"
        assert seen[0].url.path == "/3.0/lists/aud1/members"
        assert body_of(seen[0])["merge_fields"] == {"FNAME": "Jane", "LNAME": "Doe"}

    def test_member_exists_is_success(self, mock_client, jane):
        handler = lambda request: httpx.Response(
            400, json={"title": "Member Exists", "detail": "jane@example.com is already a list member."}
        )
        provider = MailchimpProvider(
            config=ProviderConfig(api_key=MAILCHIMP_KEY, default_list_id="aud1"),
            client=mock_client(handler),
        )
        assert provider.add_subscriber(jane).success is True

    def test_missing_audience(self, mock_client, jane):
        provider = MailchimpProvider(
            config=ProviderConfig(api_key=MAILCHIMP_KEY),
            client=mock_client(lambda request: httpx.Response(200, json={})),
        )
        result = provider.add_subscriber(jane)
        assert result.success is False
        assert "audience" in result.error

    def test_error_detail(self, mock_client, jane):
        handler = lambda request: httpx.Response(
            404, json={"title": "Resource Not Found", "detail": "The requested resource could not be found."}
        )
        provider = MailchimpProvider(
            config=ProviderConfig(api_key=MAILCHIMP_KEY, default_list_id="aud1"),
            client=mock_client(handler),
        )
        result = provider.add_subscriber(jane)
        assert result.error == "Mailchimp error: 404 - The requested resource could not be found."

    def test_remove_uses_subscriber_hash(self, mock_client):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(204)

        provider = MailchimpProvider(
            config=ProviderConfig(api_key=MAILCHIMP_KEY, default_list_id="aud1"),
            client=mock_client(handler),
        )
        assert provider.remove_subscriber("Jane@Example.com").success is True
        assert seen[0].url.path == f"/3.0/lists/aud1/members/{subscriber_hash('jane@example.com')}"

    def test_send_unsupported(self, mock_client):
        provider = MailchimpProvider(
            config=ProviderConfig(api_key=MAILCHIMP_KEY),
            client=mock_client(lambda request: httpx.Response(200, json={})),
        )
        result = provider.send_email("a@b.com", "Hi", "<p>Hi</p>")
        assert result.success is False
        assert "Mandrill" in result.error

    def test_key_without_data_center_invalid(self, mock_client):
        provider = MailchimpProvider(
            config=ProviderConfig(api_key="0123456789abcdef"),
            client=mock_client(lambda request: httpx.Response(200, json={})),
        )
        assert provider.validate_api_key() is False


# === Test: Custom Provider ===


class TestCustomProvider:
    def _provider(self, mock_client, handler, **config):
        base = {
            "api_key": "secret",
            "api_base_url": "https://esp.example.com/v1/",
            "subscribe_endpoint": "subscribers",
        }
        base.update(config)
        return CustomEmailProvider(
            "acme",
            "Acme Mail",
            config=ProviderConfig(**base),
            client=mock_client(handler),
        )

    def test_bearer_auth(self, mock_client, jane):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": "s1"})

        result = self._provider(mock_client, handler).add_subscriber(jane)
        assert result.success is True
        assert result.subscriber_id == "s1"
        assert str(seen[0].url) == "https://esp.example.com/v1/subscribers"
        assert seen[0].headers["Authorization"] == "Bearer secret"

    def test_api_key_header(self, mock_client, jane):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        self._provider(
            mock_client, handler, auth_method="api_key", auth_header="X-Api-Key"
        ).add_subscriber(jane)
        assert seen[0].headers["X-Api-Key"] == "secret"

    def test_query_param_auth(self, mock_client, jane):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        self._provider(
            mock_client, handler, auth_method="query_param", api_key_field="key"
        ).add_subscriber(jane)
        assert seen[0].url.params["key"] == "secret"
        assert "Authorization" not in seen[0].headers

    def test_missing_endpoint(self, mock_client):
        result = self._provider(
            mock_client, lambda request: httpx.Response(200, json={})
        ).send_email("a@b.com", "Hi", "<p>Hi</p>")
        assert result.success is False
        assert result.error == "Acme Mail: send_email_endpoint is not configured"

    def test_nested_error_message(self, mock_client, jane):
        handler = lambda request: httpx.Response(
            400, json={"error": {"message": "email is invalid"}}
        )
        result = self._provider(mock_client, handler).add_subscriber(jane)
        assert result.error == "Acme Mail error: 400 - email is invalid"

    def test_definition_round_trip(self, mock_client):
        provider = CustomEmailProvider.from_definition(
            {"name": "Acme", "displayName": "Acme Mail"},
            client=mock_client(lambda request: httpx.Response(200)),
        )
        assert provider.name == "acme"
        assert provider.to_definition()["display_name"] == "Acme Mail"

    def test_secret_fields_masked(self, mock_client):
        provider = self._provider(mock_client, lambda request: httpx.Response(200))
        assert provider.public_config()["api_key"] == "********"


# === Test: Non-object JSON bodies ===


PROVIDER_FACTORIES = {
    "sendgrid": lambda client: SendGridProvider(config=ProviderConfig(api_key=SENDGRID_KEY), client=client),
    "mailerlite": lambda client: MailerLiteProvider(config=ProviderConfig(api_key=MAILERLITE_KEY), client=client),
    "brevo": lambda client: BrevoProvider(config=ProviderConfig(api_key=BREVO_KEY), client=client),
    "mailchimp": lambda client: MailchimpProvider(config=ProviderConfig(api_key=MAILCHIMP_KEY), client=client),
}


class TestNonObjectJson:
    @pytest.mark.parametrize("name", sorted(PROVIDER_FACTORIES))
    @pytest.mark.parametrize("payload", [[], "ok", 3])
    def test_test_connection(self, mock_client, name, payload):
        client = mock_client(lambda request: httpx.Response(200, json=payload))
        result = PROVIDER_FACTORIES[name](client).test_connection()
        assert result.success is False
        assert "invalid response" in result.error

    @pytest.mark.parametrize("name", sorted(PROVIDER_FACTORIES))
    def test_get_lists(self, mock_client, name):
        client = mock_client(lambda request: httpx.Response(200, json=[]))
        result = PROVIDER_FACTORIES[name](client).get_lists()
        assert result.success is False

    def test_null_nested_field(self, mock_client):
        client = mock_client(lambda request: httpx.Response(200, json={"data": None}))
        result = PROVIDER_FACTORIES["mailerlite"](client).get_lists()
        assert result.success is False
        assert "invalid response" in result.error

    def test_add_subscriber_list_body(self, mock_client, jane):
        client = mock_client(lambda request: httpx.Response(201, json=[]))
        result = PROVIDER_FACTORIES["brevo"](client).add_subscriber(jane)
        assert result.success is False
