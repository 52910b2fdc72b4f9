"""Provider Registry — name → provider table with an active-provider pointer.

Call sites that need to send or subscribe ask the registry for the active
provider instead of knowing which ESP is configured. One registry instance
is created at startup (see ``src.email_engine.dispatcher.build_registry``)
and closed at shutdown.

Usage:
    registry = ProviderRegistry()
    registry.register(BrevoProvider())
    registry.configure("brevo", {"api_key": "xkeysib-..."})
    registry.set_active("brevo")
    registry.get_active().add_subscriber(SubscriberInput(email="a@b.com"))
"""

from __future__ import annotations

from typing import Any, Optional

from src.common.errors import (
    DuplicateProviderError,
    NoActiveProviderError,
    NotFoundError,
    ValidationError,
)
from src.common.logging import setup_logging

from .base import EmailProvider
from .models import ProviderConfig, ProviderDescriptor

logger = setup_logging(module_name="provider_registry")


class ProviderRegistry:
    """Process-wide table of email providers keyed by lowercase name."""

    def __init__(self):
        self._providers: dict[str, EmailProvider] = {}
        self._active_name: Optional[str] = None

    def __contains__(self, name: str) -> bool:
        return self._key(name) in self._providers

    def __len__(self) -> int:
        return len(self._providers)

    @staticmethod
    def _key(name: str) -> str:
        return (name or "").strip().lower()

    @property
    def active_name(self) -> Optional[str]:
        return self._active_name

    # --- Registration ---

    def register(self, provider: EmailProvider) -> ProviderDescriptor:
        """Register a provider under its descriptor name.

        Raises:
            DuplicateProviderError: If the name is already registered
        """
        key = self._key(provider.name)
        if not key:
            raise ValidationError("Provider name is required")
        if key in self._providers:
            raise DuplicateProviderError(f"Provider already registered: {key}")
        self._providers[key] = provider
        logger.info("Registered email provider %s", key)
        return provider.descriptor

    def unregister(self, name: str) -> bool:
        """Remove a provider. Returns True if removed.

        Removing the active provider clears the active pointer.
        """
        key = self._key(name)
        provider = self._providers.pop(key, None)
        if provider is None:
            return False
        if self._active_name == key:
            self._active_name = None
            logger.warning("Unregistered the active provider %s", key)
        return True

    # --- Lookup ---

    def get(self, name: str) -> Optional[EmailProvider]:
        """Get a provider, or None if it is not registered."""
        return self._providers.get(self._key(name))

    def names(self) -> list[str]:
        return list(self._providers)

    def descriptors(self) -> list[ProviderDescriptor]:
        return [p.descriptor for p in self._providers.values()]

    # --- Configuration ---

    def configure(self, name: str, partial_config: dict[str, Any]) -> ProviderConfig:
        """Merge fields into a provider's config.

        Raises:
            NotFoundError: If the provider is not registered
        """
        provider = self._require(name)
        config = provider.update_config(partial_config)
        logger.info(
            "Updated %s config fields: %s",
            provider.name,
            ", ".join(sorted(partial_config)),
        )
        return config

    # --- Active Provider ---

    def set_active(self, name: str) -> bool:
        """Point dispatch at a provider.

        Raises:
            NotFoundError: If the provider is not registered; the previous
                active provider is kept
        """
        provider = self._require(name)
        self._active_name = self._key(provider.name)
        logger.info("Active email provider set to %s", self._active_name)
        return True

    def get_active(self) -> Optional[EmailProvider]:
        """Get the active provider, or None if none is set."""
        if self._active_name is None:
            return None
        return self._providers.get(self._active_name)

    def require_active(self) -> EmailProvider:
        """Get the active provider.

        Raises:
            NoActiveProviderError: If no provider is active
        """
        provider = self.get_active()
        if provider is None:
            raise NoActiveProviderError()
        return provider

    # --- Teardown ---

    def close(self) -> None:
        """Close every provider's HTTP client and clear the table."""
        for provider in self._providers.values():
            provider.close()
        self._providers.clear()
        self._active_name = None

    def _require(self, name: str) -> EmailProvider:
        provider = self.get(name)
        if provider is None:
            raise NotFoundError(f"Email provider not found: {self._key(name)}")
        return provider
