"""Settings Store — flat string key/value settings persisted as JSON.

All keys use one canonical UPPER_SNAKE_CASE schema. Older settings files
stored some keys in camelCase (e.g. ``emailService``, ``brevoApiKey``);
those are migrated on load, and the canonical value wins when both exist.

Usage:
    store = SettingsStore()
    store.set("EMAIL_SERVICE", "brevo")
    store.get("EMAIL_SERVICE")  # "brevo"
    store.get("emailService")   # same key after canonicalization
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any

from src.common.config import settings
from src.common.errors import NotFoundError
from src.common.logging import setup_logging

logger = setup_logging(module_name="settings_store")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

TRUE_VALUES = {"true", "1", "yes", "on"}


def canonical_key(key: str) -> str:
    """Convert a settings key to UPPER_SNAKE_CASE.

    >>> canonical_key("sendgridApiKey")
    'SENDGRID_API_KEY'
    """
    key = key.strip()
    if key.isupper() or "_" in key:
        return key.upper()
    return _CAMEL_BOUNDARY.sub("_", key).upper()


class SettingsStore:
    """String-typed key/value settings backed by a local JSON file."""

    def __init__(self, path: Path | None = None):
        """Initialize the store.

        Args:
            path: Path to the JSON settings file.
                  Defaults to settings.storage.settings_path.
        """
        self.path = path or Path(settings.storage.settings_path)
        self._values: dict[str, str] = {}

        if self.path.exists():
            self._load()

    def __contains__(self, key: str) -> bool:
        return canonical_key(key) in self._values

    def __len__(self) -> int:
        return len(self._values)

    # --- Reads ---

    def get(self, key: str, default: str = "") -> str:
        """Get a setting value, or default if unset."""
        return self._values.get(canonical_key(key), default)

    def require(self, key: str) -> str:
        """Get a setting value.

        Raises:
            NotFoundError: If the setting does not exist
        """
        canonical = canonical_key(key)
        if canonical not in self._values:
            raise NotFoundError(f"Setting not found: {canonical}")
        return self._values[canonical]

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key)
        if not value:
            return default
        return value.strip().lower() in TRUE_VALUES

    def get_json(self, key: str, default: Any = None) -> Any:
        """Get a setting holding a JSON document."""
        value = self.get(key)
        if not value:
            return default
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning("Setting %s does not hold valid JSON", canonical_key(key))
            return default

    def all(self) -> dict[str, str]:
        """Get a copy of every setting."""
        return dict(self._values)

    # --- Writes ---

    def set(self, key: str, value: Any) -> None:
        """Set a setting and persist the store.

        Booleans are stored as "true"/"false", lists and dicts as JSON,
        everything else with str().
        """
        self._values[canonical_key(key)] = self._to_string(value)
        self._save()

    def set_many(self, values: dict[str, Any]) -> None:
        """Set several settings with a single write."""
        for key, value in values.items():
            self._values[canonical_key(key)] = self._to_string(value)
        self._save()

    def delete(self, key: str) -> bool:
        """Delete a setting. Returns True if deleted."""
        canonical = canonical_key(key)
        if canonical not in self._values:
            return False
        del self._values[canonical]
        self._save()
        return True

    @staticmethod
    def _to_string(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (list, dict)):
            return json.dumps(value, ensure_ascii=False)
        if value is None:
            return ""
        return str(value)

    # --- Local Persistence ---

    def _save(self) -> None:
        """Save settings to the local JSON file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "settings": self._values,
            "last_updated": datetime.now().isoformat(),
        }
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def _load(self) -> None:
        """Load settings from the local JSON file, migrating legacy keys."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, FileNotFoundError):
            logger.warning("Could not load settings from %s", self.path)
            self._values = {}
            return

        raw = data.get("settings", {})
        migrated = migrate_legacy_keys(raw)
        self._values = migrated
        if migrated != raw:
            logger.info("Migrated legacy settings keys in %s", self.path)
            self._save()
        logger.info("Loaded %d settings from %s", len(self._values), self.path)


def migrate_legacy_keys(values: dict[str, Any]) -> dict[str, str]:
    """Rewrite a raw settings mapping onto canonical keys.

    Canonical keys are applied first so they win over their legacy
    camelCase duplicates.
    """
    canonical: dict[str, str] = {}
    legacy: dict[str, str] = {}

    for key, value in values.items():
        text = SettingsStore._to_string(value)
        target = canonical_key(key)
        if target == key:
            canonical[target] = text
        else:
            legacy[target] = text

    for key, value in legacy.items():
        canonical.setdefault(key, value)
    return canonical
