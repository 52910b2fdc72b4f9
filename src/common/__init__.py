# Common utilities and shared modules
"""
Shared components used by the email and content engines:
- Project configuration
- Logging configuration
- Typed errors and result envelopes
- Key/value settings store
- Admin token helpers
"""

from .config import settings, PROJECT_ROOT, DATA_DIR
from .errors import (
    AuthenticationError,
    DuplicateProviderError,
    EngineError,
    NoActiveProviderError,
    NotFoundError,
    UpstreamServiceError,
    ValidationError,
    error_envelope,
    success_envelope,
)
from .logging import setup_logging
from .settings_store import SettingsStore

__all__ = [
    "settings",
    "PROJECT_ROOT",
    "DATA_DIR",
    "AuthenticationError",
    "DuplicateProviderError",
    "EngineError",
    "NoActiveProviderError",
    "NotFoundError",
    "UpstreamServiceError",
    "ValidationError",
    "error_envelope",
    "success_envelope",
    "setup_logging",
    "SettingsStore",
]
