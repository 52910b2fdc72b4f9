"""Generation Scheduler — fires the generation pipeline on a schedule.

The schedule (enabled flag, frequency, time of day) lives in the settings
store. A single threading.Timer is armed for the next fire time; each
fire runs one generation and re-arms. Runs never overlap: a run that
starts while another is in progress is skipped.

Usage:
    scheduler = GenerationScheduler(pipeline, settings_store)
    scheduler.start()
    ...
    scheduler.generate_now()  # manual admin action
"""

from __future__ import annotations

import random
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from src.common.logging import setup_logging
from src.common.settings_store import SettingsStore
from src.content_engine.publisher.models import PostSource
from src.content_engine.publisher.pipeline import GenerationPipeline

from .keywords import KeywordPool
from .models import (
    LAST_ERROR_KEY,
    LAST_KEYWORD_KEY,
    LAST_RUN_KEY,
    LAST_SLUG_KEY,
    Frequency,
    GenerationRun,
    RunTrigger,
    ScheduleConfig,
)

logger = setup_logging(module_name="scheduler")

TESTING_INTERVAL_MINUTES = 5


def utc_now() -> datetime:
    """Aware current time; the host timezone never enters the schedule."""
    return datetime.now(timezone.utc)


def next_run_after(config: ScheduleConfig, now: datetime) -> datetime:
    """Next fire time strictly after now, in the schedule's timezone.

    A naive now is taken to be in the schedule's timezone.
    """
    tz = ZoneInfo(config.timezone)
    now = now.replace(tzinfo=tz) if now.tzinfo is None else now.astimezone(tz)

    if config.frequency == Frequency.TESTING:
        base = now.replace(second=0, microsecond=0)
        step = TESTING_INTERVAL_MINUTES - base.minute % TESTING_INTERVAL_MINUTES
        return base + timedelta(minutes=step)

    def day_matches(day: datetime) -> bool:
        if config.frequency == Frequency.EVERY_OTHER_DAY:
            return day.day % 2 == 1  # */2 on day-of-month fires on 1, 3, 5, ...
        if config.frequency == Frequency.WEEKLY:
            return day.weekday() == 0
        return True

    for offset in range(0, 9):
        day = now + timedelta(days=offset)
        if not day_matches(day):
            continue
        for hour in config.hours:
            candidate = day.replace(hour=hour, minute=config.minute, second=0, microsecond=0)
            if candidate > now:
                return candidate

    raise RuntimeError(f"No fire time found for schedule {config.cron_expression}")


class GenerationScheduler:
    """Timer-driven scheduled generation with manual triggering."""

    def __init__(
        self,
        pipeline: GenerationPipeline,
        store: SettingsStore,
        keyword_pool: KeywordPool | None = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the scheduler.

        Args:
            clock: Returns the current time. Defaults to aware UTC; a
                   naive value is read as the schedule's local time.
        """
        self.pipeline = pipeline
        self.store = store
        self.keyword_pool = keyword_pool or KeywordPool(store)
        self.rng = rng
        self.clock = clock or utc_now
        self._run_lock = threading.Lock()
        self._timer_lock = threading.Lock()
        self._timer: threading.Timer | None = None

    @property
    def config(self) -> ScheduleConfig:
        return ScheduleConfig.from_settings(self.store)

    @property
    def running(self) -> bool:
        return self._timer is not None

    def next_run(self) -> datetime:
        return next_run_after(self.config, self.clock())

    # --- Timer control ---

    def start(self) -> bool:
        """Arm the timer if scheduling is enabled. Returns True if armed."""
        config = self.config
        if not config.enabled:
            logger.info("Scheduled generation is disabled")
            self.stop()
            return False
        logger.info("Starting scheduler with schedule: %s", config.cron_expression)
        self._arm(config)
        return True

    def stop(self) -> None:
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
                logger.info("Scheduler stopped")

    def reschedule(self, config: ScheduleConfig) -> bool:
        """Persist a new schedule and restart the timer."""
        config.save(self.store)
        self.stop()
        return self.start()

    def _arm(self, config: ScheduleConfig) -> None:
        now = self.clock()
        fire_at = next_run_after(config, now)
        tz = ZoneInfo(config.timezone)
        local_now = now.replace(tzinfo=tz) if now.tzinfo is None else now.astimezone(tz)
        delay = max((fire_at - local_now).total_seconds(), 0.0)

        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(delay, self._on_timer)
            self._timer.daemon = True
            self._timer.start()
        logger.info("Next scheduled generation at %s", fire_at.isoformat())

    def _on_timer(self) -> None:
        self.run_once(RunTrigger.SCHEDULED)
        config = self.config
        if config.enabled and self._timer is not None:
            self._arm(config)
        else:
            with self._timer_lock:
                self._timer = None

    # --- Runs ---

    def generate_now(self, keyword: str | None = None) -> GenerationRun:
        """Run one generation immediately (manual admin action)."""
        return self.run_once(RunTrigger.MANUAL, keyword=keyword)

    def run_once(
        self,
        trigger: RunTrigger = RunTrigger.SCHEDULED,
        keyword: str | None = None,
    ) -> GenerationRun:
        """Run one generation, recording the outcome in settings.

        Never raises. Skips without side effects when a run is already in
        progress.
        """
        run = GenerationRun(trigger=RunTrigger(trigger), started_at=self.clock().isoformat())

        if not self._run_lock.acquire(blocking=False):
            logger.warning("Generation already in progress, skipping %s run", run.trigger.value)
            run.skipped = True
            run.error = "Generation already in progress"
            run.finished_at = self.clock().isoformat()
            return run

        try:
            run.keyword = keyword.strip() if keyword and keyword.strip() else self.keyword_pool.pick(self.rng)
            logger.info("Starting %s generation for '%s'", run.trigger.value, run.keyword)

            post = self.pipeline.run(run.keyword)
            run.slug = post.slug
            run.success = True
            self.keyword_pool.mark_used(run.keyword)
            if post.source == PostSource.TEMPLATE:
                run.warnings.append("AI generation failed, template content used")
            logger.info("Generation complete: %s", post.slug)
        except Exception as e:
            logger.error("Generation failed for '%s': %s", run.keyword, e, exc_info=True)
            run.error = str(e) or e.__class__.__name__
        finally:
            run.finished_at = self.clock().isoformat()
            self._record(run)
            self._run_lock.release()

        return run

    def _record(self, run: GenerationRun) -> None:
        values = {
            LAST_RUN_KEY: run.finished_at,
            LAST_KEYWORD_KEY: run.keyword,
            LAST_ERROR_KEY: run.error,
        }
        if run.success:
            values[LAST_SLUG_KEY] = run.slug
        try:
            self.store.set_many(values)
        except OSError as e:
            logger.error("Could not record generation run: %s", e)

    def status(self) -> dict:
        """Schedule, timer state and last-run details."""
        config = self.config
        return {
            **config.to_dict(),
            "running": self.running,
            "next_run": next_run_after(config, self.clock()).isoformat() if config.enabled else "",
            "last_run": self.store.get(LAST_RUN_KEY),
            "last_keyword": self.store.get(LAST_KEYWORD_KEY),
            "last_slug": self.store.get(LAST_SLUG_KEY),
            "last_error": self.store.get(LAST_ERROR_KEY),
            "unused_keywords": len(self.keyword_pool.unused()),
        }
