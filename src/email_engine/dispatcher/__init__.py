# Dispatcher — lead capture and provider administration
"""
Dispatcher module: stores leads locally, forwards them to the active
email provider, renders templated emails for subscribers,
and applies admin provider settings to the registry
and the settings store.
"""

from .dispatcher import (
    ACTIVE_PROVIDER_KEY,
    CUSTOM_PROVIDERS_KEY,
    EmailDispatcher,
    build_registry,
    load_provider_config,
    provider_setting_key,
)
from .models import EmailTemplate, LeadCaptureResult, RenderedEmail, SubscriberRecord
from .subscribers import SubscriberStore, make_unsubscribe_token
from .templates import render_email_template, strip_html, template_variables, unsubscribe_url

__all__ = [
    "ACTIVE_PROVIDER_KEY",
    "CUSTOM_PROVIDERS_KEY",
    "EmailDispatcher",
    "build_registry",
    "load_provider_config",
    "provider_setting_key",
    "EmailTemplate",
    "LeadCaptureResult",
    "RenderedEmail",
    "SubscriberRecord",
    "SubscriberStore",
    "make_unsubscribe_token",
    "render_email_template",
    "strip_html",
    "template_variables",
    "unsubscribe_url",
]
