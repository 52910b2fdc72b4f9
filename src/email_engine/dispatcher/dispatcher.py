"""Email Dispatcher — lead capture and admin actions over the provider registry.

Leads are always stored locally first; the ESP call comes second and its
failure is logged and reported, never raised. Admin actions update the
in-memory registry and then write the settings store. The two writes are
not transactional: if the settings write fails, the registry keeps the new
value until the next restart.

Settings keys (canonical UPPER_SNAKE_CASE):
    EMAIL_SERVICE             active provider name
    EMAIL_FROM                global default sender email
    EMAIL_FROM_NAME           global default sender name
    EMAIL_REPLY_TO            global default reply-to
    <PROVIDER>_<FIELD>        per-provider config, e.g. BREVO_API_KEY,
                              MAILCHIMP_SERVER_PREFIX, SENDGRID_DEFAULT_LIST_ID
    CUSTOM_EMAIL_PROVIDERS    JSON list of custom provider definitions

Usage:
    store = SettingsStore()
    registry = build_registry(store)
    dispatcher = EmailDispatcher(registry, store, SubscriberStore())
    dispatcher.capture_lead(SubscriberInput(email="jane@example.com", name="Jane Doe"))
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any, Iterable, Optional

import httpx

from src.common.errors import DuplicateProviderError, NotFoundError, ValidationError
from src.common.logging import setup_logging
from src.common.settings_store import SettingsStore
from src.email_engine.providers import (
    BUILTIN_PROVIDERS,
    CustomEmailProvider,
    ProviderConfig,
    ProviderDescriptor,
    ProviderRegistry,
    ProviderResult,
    SendOptions,
    SubscriberInput,
)
from src.email_engine.providers.models import normalize_config_keys

from .models import EmailTemplate, LeadCaptureResult, SubscriberRecord
from .subscribers import SubscriberStore
from .templates import render_email_template, template_variables

logger = setup_logging(module_name="email_dispatcher")

ACTIVE_PROVIDER_KEY = "EMAIL_SERVICE"
CUSTOM_PROVIDERS_KEY = "CUSTOM_EMAIL_PROVIDERS"

# Global sender identity → provider config field
GLOBAL_SENDER_KEYS = {
    "EMAIL_FROM": "default_sender_email",
    "EMAIL_FROM_NAME": "default_sender_name",
    "EMAIL_REPLY_TO": "reply_to",
}

# Custom provider names that would collide with global settings prefixes
RESERVED_NAMES = {"email", "custom", "auto", "blog"}

# Config fields stored as JSON documents
JSON_FIELDS = {"custom_headers"}

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def provider_setting_key(name: str, field_name: str) -> str:
    """Settings key for one provider config field (BREVO_API_KEY)."""
    return f"{name}_{field_name}".upper()


def load_provider_config(
    store: SettingsStore,
    name: str,
    known_names: Iterable[str] = (),
) -> dict[str, Any]:
    """Collect a provider's persisted config fields from the settings store.

    Keys owned by a longer registered name sharing the prefix (BREVO_EU_*
    for a provider "brevo_eu") are not read as this provider's fields.
    """
    prefix = f"{name.upper()}_"
    shadowing = [
        f"{other.upper()}_"
        for other in known_names
        if len(other) > len(name) and f"{other.upper()}_".startswith(prefix)
    ]
    config: dict[str, Any] = {}

    for setting, field_name in GLOBAL_SENDER_KEYS.items():
        value = store.get(setting)
        if value:
            config[field_name] = value

    for key, value in store.all().items():
        if not key.startswith(prefix) or not value:
            continue
        if any(key.startswith(other) for other in shadowing):
            continue
        field_name = key[len(prefix):].lower()
        if field_name in JSON_FIELDS:
            try:
                config[field_name] = json.loads(value)
            except json.JSONDecodeError:
                logger.warning("Ignoring invalid JSON in setting %s", key)
            continue
        config[field_name] = value
    return config


def build_registry(
    store: SettingsStore,
    client: httpx.Client | None = None,
) -> ProviderRegistry:
    """Create the registry from persisted settings.

    Registers every built-in provider and each stored custom provider,
    applies their stored config, and restores the active provider.

    Args:
        store: Settings store to read from
        client: Optional shared HTTP client for all providers
    """
    registry = ProviderRegistry()

    for cls in BUILTIN_PROVIDERS:
        registry.register(cls(client=client))
    for definition in store.get_json(CUSTOM_PROVIDERS_KEY, default=[]):
        try:
            registry.register(CustomEmailProvider.from_definition(definition, client=client))
        except (ValidationError, DuplicateProviderError) as e:
            logger.warning("Skipping stored custom provider %r: %s", definition, e)

    names = registry.names()
    for name in names:
        stored = load_provider_config(store, name, known_names=names)
        if stored:
            registry.configure(name, stored)

    active = store.get(ACTIVE_PROVIDER_KEY).strip().lower()
    if active and active in registry:
        registry.set_active(active)
    elif active:
        logger.warning("Stored active provider %s is not registered", active)

    logger.info(
        "Email registry ready: %d providers, active=%s",
        len(registry),
        registry.active_name or "none",
    )
    return registry


class EmailDispatcher:
    """Routes lead capture and email sends to the active provider."""

    def __init__(
        self,
        registry: ProviderRegistry,
        settings_store: SettingsStore,
        subscriber_store: SubscriberStore,
        welcome_template: Optional[EmailTemplate] = None,
    ):
        """Initialize the dispatcher.

        Args:
            welcome_template: Sent to each new lead once the provider
                              accepts it. No welcome email when omitted.
        """
        self.registry = registry
        self.settings_store = settings_store
        self.subscriber_store = subscriber_store
        self.welcome_template = welcome_template

    # --- Lead Capture ---

    def capture_lead(self, subscriber: SubscriberInput) -> LeadCaptureResult:
        """Store a lead locally, then forward it to the active provider.

        Raises:
            ValidationError: If the email is missing or malformed
        """
        subscriber = subscriber.normalized()
        if not subscriber.email:
            raise ValidationError("Missing required field: email")
        if not EMAIL_PATTERN.match(subscriber.email):
            raise ValidationError(f"Invalid email address: {subscriber.email}")

        record = self.subscriber_store.save(
            SubscriberRecord(
                email=subscriber.email,
                first_name=subscriber.first_name,
                last_name=subscriber.last_name,
                source=subscriber.source,
                tags=list(subscriber.tags),
            )
        )

        provider = self.registry.get_active()
        if provider is None:
            logger.warning("No active email provider; %s stored locally only", subscriber.email)
            result = ProviderResult(
                success=False,
                message="Subscriber stored locally",
                error="No active email provider configured",
            )
        else:
            result = provider.add_subscriber(subscriber, subscriber.list_id or None)
            record.provider = provider.name
            if result.success:
                logger.info("Lead %s sent to %s", subscriber.email, provider.name)
            else:
                logger.error(
                    "Lead %s stored locally but %s failed: %s",
                    subscriber.email,
                    provider.name,
                    result.error,
                )

        record.provider_synced = result.success
        record.provider_error = result.error
        self.subscriber_store.save(record)

        welcome = None
        if result.success and self.welcome_template is not None:
            try:
                welcome = self.send_template(record, self.welcome_template)
            except ValidationError as e:
                welcome = ProviderResult(
                    success=False,
                    message="Failed to send email",
                    error=str(e),
                )
            if not welcome.success:
                logger.warning("Welcome email to %s failed: %s", record.email, welcome.error)
        return LeadCaptureResult(record=record, provider_result=result, welcome_result=welcome)

    def send_email(
        self,
        to: str | list[str],
        subject: str,
        html: str,
        text: str = "",
        options: SendOptions | None = None,
    ) -> ProviderResult:
        """Send a transactional email through the active provider."""
        provider = self.registry.get_active()
        if provider is None:
            logger.warning("Cannot send '%s': no active email provider", subject)
            return ProviderResult(
                success=False,
                message="Failed to send email",
                error="No active email provider configured",
            )
        return provider.send_email(to, subject, html, text, options)

    def send_template(
        self,
        record: SubscriberRecord,
        template: EmailTemplate,
        extra: Optional[dict[str, Any]] = None,
    ) -> ProviderResult:
        """Render a template for one subscriber and send it.

        The rendered email always carries the subscriber's unsubscribe
        link. Unsubscribed records are never mailed.

        Raises:
            ValidationError: If the template fails to render
        """
        if record.unsubscribed:
            logger.info("Skipping '%s' for unsubscribed %s", template.name, record.email)
            return ProviderResult(
                success=False,
                message="Failed to send email",
                error=f"{record.email} has unsubscribed",
            )

        rendered = render_email_template(template, template_variables(record, extra))
        result = self.send_email(record.email, rendered.subject, rendered.html, rendered.text)
        if result.success:
            record.last_email_sent = datetime.now().isoformat()
            self.subscriber_store.save(record)
            logger.info("Sent '%s' to %s", template.name, record.email)
        return result

    # --- Admin Actions ---

    def test_connection(self, name: Optional[str] = None) -> ProviderResult:
        """Test a provider's credentials (the active one by default).

        Raises:
            NotFoundError: If a named provider is not registered
            NoActiveProviderError: If no name is given and none is active
        """
        if name:
            provider = self.registry.get(name)
            if provider is None:
                raise NotFoundError(f"Email provider not found: {name}")
        else:
            provider = self.registry.require_active()
        result = provider.test_connection()
        logger.info(
            "Connection test for %s: %s",
            provider.name,
            "ok" if result.success else result.error,
        )
        return result

    def configure_provider(self, name: str, fields: dict[str, Any]) -> ProviderConfig:
        """Update a provider's config in the registry, then persist it.

        Raises:
            NotFoundError: If the provider is not registered
        """
        fields = normalize_config_keys(fields)
        config = self.registry.configure(name, fields)
        key_name = name.strip().lower()
        try:
            self.settings_store.set_many(
                {provider_setting_key(key_name, k): v for k, v in fields.items()}
            )
        except OSError as e:
            logger.error("Config for %s applied but not persisted: %s", key_name, e)
        return config

    def activate_provider(self, name: str) -> bool:
        """Make a provider active, then persist the choice.

        Raises:
            NotFoundError: If the provider is not registered
        """
        self.registry.set_active(name)
        try:
            self.settings_store.set(ACTIVE_PROVIDER_KEY, self.registry.active_name)
        except OSError as e:
            logger.error(
                "Active provider set to %s but not persisted: %s",
                self.registry.active_name,
                e,
            )
        return True

    def add_custom_provider(
        self,
        definition: dict[str, Any],
        config: dict[str, Any] | None = None,
    ) -> ProviderDescriptor:
        """Register and persist an admin-defined provider.

        Raises:
            ValidationError: If the name is missing or reserved
            DuplicateProviderError: If the name is already registered
        """
        provider = CustomEmailProvider.from_definition(definition)
        if provider.name in RESERVED_NAMES:
            raise ValidationError(f"Provider name is reserved: {provider.name}")

        descriptor = self.registry.register(provider)

        definitions = self.settings_store.get_json(CUSTOM_PROVIDERS_KEY, default=[])
        definitions.append(provider.to_definition())
        self.settings_store.set(CUSTOM_PROVIDERS_KEY, definitions)

        if config:
            self.configure_provider(provider.name, config)
        return descriptor

    def provider_summaries(self) -> list[dict]:
        """Descriptor, masked config, and active flag for every provider."""
        summaries = []
        for name in self.registry.names():
            provider = self.registry.get(name)
            summary = provider.descriptor.to_dict()
            summary["config"] = provider.public_config()
            summary["active"] = name == self.registry.active_name
            summaries.append(summary)
        return summaries
