"""Data models for the generation scheduler."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from src.common.config import settings
from src.common.errors import ValidationError
from src.common.settings_store import SettingsStore

# Settings keys
ENABLED_KEY = "AUTO_BLOG_ENABLED"
FREQUENCY_KEY = "AUTO_BLOG_FREQUENCY"
TIME_KEY = "AUTO_BLOG_TIME"
LAST_RUN_KEY = "AUTO_BLOG_LAST_RUN"
LAST_KEYWORD_KEY = "AUTO_BLOG_LAST_KEYWORD"
LAST_SLUG_KEY = "AUTO_BLOG_LAST_SLUG"
LAST_ERROR_KEY = "AUTO_BLOG_LAST_ERROR"

_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


class Frequency(str, Enum):
    """How often scheduled generation fires."""
    TWICE_DAILY = "twice-daily"
    DAILY = "daily"
    EVERY_OTHER_DAY = "every-other-day"
    WEEKLY = "weekly"  # Mondays
    TESTING = "testing"  # Every 5 minutes


class RunTrigger(str, Enum):
    """What started a generation run."""
    SCHEDULED = "scheduled"
    MANUAL = "manual"


def parse_time_of_day(value: str) -> tuple[int, int]:
    """Parse "HH:MM" into (hour, minute).

    Raises:
        ValidationError: If the value is not a valid 24-hour time
    """
    match = _TIME_RE.match(value.strip())
    if not match:
        raise ValidationError(f"Invalid time of day: {value!r} (expected HH:MM)")
    return int(match.group(1)), int(match.group(2))


@dataclass
class ScheduleConfig:
    """Scheduler state as stored in settings."""
    enabled: bool = False
    frequency: Frequency = Frequency.DAILY
    time_of_day: str = "08:00"
    timezone: str = "America/New_York"

    def __post_init__(self):
        try:
            self.frequency = Frequency(self.frequency)
        except ValueError as e:
            raise ValidationError(f"Invalid frequency: {self.frequency!r}") from e
        parse_time_of_day(self.time_of_day)

    @property
    def hour(self) -> int:
        return parse_time_of_day(self.time_of_day)[0]

    @property
    def minute(self) -> int:
        return parse_time_of_day(self.time_of_day)[1]

    @property
    def hours(self) -> list[int]:
        """Hours of the day the schedule fires on a matching day."""
        if self.frequency == Frequency.TWICE_DAILY:
            return sorted({self.hour, (self.hour + 12) % 24})
        return [self.hour]

    @property
    def cron_expression(self) -> str:
        """Cron-style description of the schedule."""
        m = self.minute
        hours = ",".join(str(h) for h in self.hours)
        if self.frequency == Frequency.TESTING:
            return "*/5 * * * *"
        if self.frequency == Frequency.EVERY_OTHER_DAY:
            return f"{m} {hours} */2 * *"
        if self.frequency == Frequency.WEEKLY:
            return f"{m} {hours} * * 1"
        return f"{m} {hours} * * *"

    @classmethod
    def from_settings(cls, store: SettingsStore) -> ScheduleConfig:
        """Read the schedule from the settings store, with YAML defaults."""
        defaults = settings.scheduler
        return cls(
            enabled=store.get_bool(ENABLED_KEY, defaults.enabled),
            frequency=store.get(FREQUENCY_KEY) or defaults.frequency,
            time_of_day=store.get(TIME_KEY) or defaults.time_of_day,
            timezone=defaults.timezone,
        )

    def save(self, store: SettingsStore) -> None:
        store.set_many({
            ENABLED_KEY: self.enabled,
            FREQUENCY_KEY: self.frequency.value,
            TIME_KEY: self.time_of_day,
        })

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "frequency": self.frequency.value,
            "time_of_day": self.time_of_day,
            "timezone": self.timezone,
            "cron_expression": self.cron_expression,
        }


@dataclass
class GenerationRun:
    """Outcome of one generation attempt."""
    trigger: RunTrigger
    started_at: str
    finished_at: str = ""
    keyword: str = ""
    slug: str = ""
    success: bool = False
    skipped: bool = False  # Another run was already in progress
    error: str = ""
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "trigger": self.trigger.value,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "keyword": self.keyword,
            "slug": self.slug,
            "success": self.success,
            "skipped": self.skipped,
            "error": self.error,
            "warnings": list(self.warnings),
        }
