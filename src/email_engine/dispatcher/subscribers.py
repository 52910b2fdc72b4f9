"""Subscriber Store — local JSON record of every captured lead.

Leads are written here before any ESP call so that a provider outage never
loses a signup.
"""

from __future__ import annotations

import base64
import json
import secrets
import time
from datetime import datetime
from pathlib import Path

from src.common.config import settings
from src.common.errors import NotFoundError
from src.common.logging import setup_logging

from .models import SubscriberRecord

logger = setup_logging(module_name="subscriber_store")


def make_unsubscribe_token(email: str) -> str:
    """Build base64("email:timestamp_ms:random")."""
    raw = f"{email}:{int(time.time() * 1000)}:{secrets.token_hex(8)}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


class SubscriberStore:
    """Local subscriber records keyed by lowercased email."""

    def __init__(self, path: Path | None = None):
        self.path = path or Path(settings.storage.subscribers_path)
        self._records: dict[str, SubscriberRecord] = {}

        if self.path.exists():
            self._load()

    @property
    def count(self) -> int:
        return len(self._records)

    @staticmethod
    def _key(email: str) -> str:
        return email.strip().lower()

    def save(self, record: SubscriberRecord) -> SubscriberRecord:
        """Insert or update a record.

        An existing record keeps its unsubscribe token and creation time.
        """
        key = self._key(record.email)
        existing = self._records.get(key)
        if existing is not None:
            record.unsubscribe_token = existing.unsubscribe_token
            record.created_at = existing.created_at
        if not record.unsubscribe_token:
            record.unsubscribe_token = make_unsubscribe_token(record.email)
        if not record.created_at:
            record.created_at = datetime.now().isoformat()

        self._records[key] = record
        self._save()
        return record

    def get(self, email: str) -> SubscriberRecord | None:
        return self._records.get(self._key(email))

    def list_records(self) -> list[SubscriberRecord]:
        return list(self._records.values())

    def delete(self, email: str) -> bool:
        """Delete a record. Returns True if deleted."""
        if self._records.pop(self._key(email), None) is None:
            return False
        self._save()
        return True

    def unsubscribe(self, token: str) -> SubscriberRecord:
        """Mark the record owning an unsubscribe token as unsubscribed.

        Raises:
            NotFoundError: If no record has the token
        """
        record = next(
            (r for r in self._records.values() if r.unsubscribe_token == token),
            None,
        )
        if record is None:
            raise NotFoundError("Unknown unsubscribe token")
        record.unsubscribed = True
        self._save()
        logger.info("Unsubscribed %s", record.email)
        return record

    # --- Local Persistence ---

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "subscribers": [r.to_dict() for r in self._records.values()],
            "last_updated": datetime.now().isoformat(),
        }
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def _load(self) -> None:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            records = [SubscriberRecord.from_dict(r) for r in data.get("subscribers", [])]
            self._records = {self._key(r.email): r for r in records}
            logger.info("Loaded %d subscribers from %s", len(self._records), self.path)
        except (json.JSONDecodeError, FileNotFoundError):
            logger.warning("Could not load subscribers from %s", self.path)
            self._records = {}
