# Email Providers — ESP adapters and the provider registry
"""
Email provider module: one adapter per email service provider behind a
shared capability interface, plus the registry that selects the active one.

Every capability returns a ProviderResult; upstream failures never raise.
"""

from .base import EmailProvider
from .brevo import BrevoProvider
from .custom import AuthMethod, CustomEmailProvider
from .mailchimp import MailchimpProvider
from .mailerlite import MailerLiteProvider
from .models import (
    ConfigField,
    EmailAttachment,
    FieldType,
    ListInfo,
    ProviderConfig,
    ProviderDescriptor,
    ProviderResult,
    SendOptions,
    SubscriberInput,
)
from .registry import ProviderRegistry
from .sendgrid import SendGridProvider

BUILTIN_PROVIDERS: tuple[type[EmailProvider], ...] = (
    SendGridProvider,
    MailerLiteProvider,
    BrevoProvider,
    MailchimpProvider,
)

__all__ = [
    "EmailProvider",
    "BrevoProvider",
    "AuthMethod",
    "CustomEmailProvider",
    "MailchimpProvider",
    "MailerLiteProvider",
    "SendGridProvider",
    "BUILTIN_PROVIDERS",
    "ConfigField",
    "EmailAttachment",
    "FieldType",
    "ListInfo",
    "ProviderConfig",
    "ProviderDescriptor",
    "ProviderResult",
    "SendOptions",
    "SubscriberInput",
    "ProviderRegistry",
]
