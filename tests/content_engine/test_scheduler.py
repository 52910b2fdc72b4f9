"""Tests for the generation scheduler.

Tests cover:
- Schedule config validation and cron strings
- Next fire time for every frequency
- Keyword pool management and exhaustion reset
- Run recording, failure handling and overlap protection
- Timer start/stop and the delay computed from an aware clock
- CLI keyword management
"""

import random
import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest

import src.content_engine.scheduler.main as cli
import src.content_engine.scheduler.scheduler as scheduler_module
from src.common.errors import ValidationError
from src.content_engine.publisher import BlogPost, PostSource
from src.content_engine.scheduler import (
    DEFAULT_KEYWORDS,
    Frequency,
    GenerationScheduler,
    KeywordPool,
    RunTrigger,
    ScheduleConfig,
    next_run_after,
)
from src.content_engine.scheduler.keywords import KEYWORDS_KEY
from src.content_engine.scheduler.models import (
    LAST_ERROR_KEY,
    LAST_KEYWORD_KEY,
    LAST_RUN_KEY,
    LAST_SLUG_KEY,
)

NEW_YORK = ZoneInfo("America/New_York")
# Wednesday
NOW = datetime(2026, 3, 4, 10, 0)


def at(month: int, day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2026, month, day, hour, minute, tzinfo=NEW_YORK)


# === Fixtures ===


@pytest.fixture
def post() -> BlogPost:
    return BlogPost(slug="why-men-pull-away", title="Why Men Pull Away", content="<p>x</p>")


@pytest.fixture
def pipeline(post) -> MagicMock:
    mock = MagicMock()
    mock.run.return_value = post
    return mock


@pytest.fixture
def scheduler(pipeline, settings_store) -> GenerationScheduler:
    settings_store.set(KEYWORDS_KEY, ["why men pull away", "signs he likes you"])
    return GenerationScheduler(
        pipeline,
        settings_store,
        rng=random.Random(0),
        clock=lambda: NOW,
    )


# === Test: Schedule Config ===


class TestScheduleConfig:
    @pytest.mark.parametrize(
        "frequency,time_of_day,expected",
        [
            ("daily", "08:00", "0 8 * * *"),
            ("twice-daily", "08:30", "30 8,20 * * *"),
            ("twice-daily", "14:00", "0 2,14 * * *"),
            ("every-other-day", "09:15", "15 9 */2 * *"),
            ("weekly", "07:00", "0 7 * * 1"),
            ("testing", "08:00", "*/5 * * * *"),
        ],
    )
    def test_cron_expression(self, frequency, time_of_day, expected):
        config = ScheduleConfig(frequency=frequency, time_of_day=time_of_day)
        assert config.cron_expression == expected

    @pytest.mark.parametrize("time_of_day", ["25:00", "8am", "12:60", ""])
    def test_invalid_time(self, time_of_day):
        with pytest.raises(ValidationError):
            ScheduleConfig(time_of_day=time_of_day)

    def test_invalid_frequency(self):
        with pytest.raises(ValidationError):
            ScheduleConfig(frequency="hourly")

    def test_defaults_from_settings(self, settings_store):
        config = ScheduleConfig.from_settings(settings_store)
        assert config.enabled is False
        assert config.frequency == Frequency.DAILY
        assert config.time_of_day == "08:00"

    def test_save_and_reload(self, settings_store):
        ScheduleConfig(enabled=True, frequency="weekly", time_of_day="06:45").save(settings_store)
        config = ScheduleConfig.from_settings(settings_store)
        assert config.enabled is True
        assert config.frequency == Frequency.WEEKLY
        assert (config.hour, config.minute) == (6, 45)


# === Test: Next Fire Time ===


class TestNextRunAfter:
    @pytest.mark.parametrize(
        "frequency,now,expected",
        [
            ("daily", datetime(2026, 3, 4, 7, 0), at(3, 4, 8)),
            ("daily", datetime(2026, 3, 4, 8, 0), at(3, 5, 8)),
            ("twice-daily", datetime(2026, 3, 4, 10, 0), at(3, 4, 20)),
            ("twice-daily", datetime(2026, 3, 4, 21, 0), at(3, 5, 8)),
            ("weekly", datetime(2026, 3, 4, 10, 0), at(3, 9, 8)),
            ("weekly", datetime(2026, 3, 9, 7, 0), at(3, 9, 8)),
            ("every-other-day", datetime(2026, 3, 4, 7, 0), at(3, 5, 8)),
            ("every-other-day", datetime(2026, 3, 5, 9, 0), at(3, 7, 8)),
            ("testing", datetime(2026, 3, 4, 10, 7, 30), at(3, 4, 10, 10)),
            ("testing", datetime(2026, 3, 4, 10, 10), at(3, 4, 10, 15)),
        ],
    )
    def test_next_run(self, frequency, now, expected):
        config = ScheduleConfig(frequency=frequency, time_of_day="08:00")
        assert next_run_after(config, now) == expected

    def test_month_rollover_every_other_day(self):
        # Mar 31 is odd, Apr 1 is odd: both fire
        config = ScheduleConfig(frequency="every-other-day", time_of_day="08:00")
        assert next_run_after(config, datetime(2026, 3, 31, 9, 0)) == at(4, 1, 8)

    def test_aware_now_is_converted(self):
        config = ScheduleConfig(frequency="daily", time_of_day="08:00")
        now = datetime(2026, 3, 4, 12, 0, tzinfo=ZoneInfo("UTC"))  # 07:00 in New York
        assert next_run_after(config, now) == at(3, 4, 8)


# === Test: Keyword Pool ===


class TestKeywordPool:
    def test_defaults(self, settings_store):
        assert KeywordPool(settings_store).keywords() == DEFAULT_KEYWORDS

    def test_add_and_remove(self, settings_store):
        pool = KeywordPool(settings_store)
        assert pool.add("how to make him miss you") is True
        assert pool.add("How To Make Him Miss You") is False
        assert "how to make him miss you" in pool.keywords()
        assert pool.remove("how to make him miss you") is True
        assert pool.remove("how to make him miss you") is False

    def test_add_empty(self, settings_store):
        with pytest.raises(ValidationError):
            KeywordPool(settings_store).add("  ")

    def test_pick_prefers_unused(self, settings_store):
        settings_store.set(KEYWORDS_KEY, ["a", "b"])
        pool = KeywordPool(settings_store)
        pool.mark_used("a")
        assert pool.pick(random.Random(1)) == "b"

    def test_pick_resets_when_exhausted(self, settings_store):
        settings_store.set(KEYWORDS_KEY, ["a", "b"])
        pool = KeywordPool(settings_store)
        pool.mark_used("a")
        pool.mark_used("b")
        assert pool.pick(random.Random(1)) in {"a", "b"}
        assert pool.used() == []

    def test_pick_empty_pool(self, settings_store):
        settings_store.set(KEYWORDS_KEY, [])
        with pytest.raises(ValidationError, match="empty"):
            KeywordPool(settings_store).pick()


# === Test: Runs ===


class TestRunOnce:
    def test_success_is_recorded(self, scheduler, settings_store):
        run = scheduler.run_once()

        assert run.success is True
        assert run.trigger == RunTrigger.SCHEDULED
        assert run.slug == "why-men-pull-away"
        assert settings_store.get(LAST_SLUG_KEY) == "why-men-pull-away"
        assert settings_store.get(LAST_KEYWORD_KEY) == run.keyword
        assert settings_store.get(LAST_RUN_KEY) == NOW.isoformat()
        assert settings_store.get(LAST_ERROR_KEY) == ""
        assert scheduler.keyword_pool.used() == [run.keyword]

    def test_failure_is_recorded_and_next_run_works(self, scheduler, pipeline, post, settings_store):
        pipeline.run.side_effect = [RuntimeError("boom"), post]

        first = scheduler.run_once()
        assert first.success is False
        assert first.error == "boom"
        assert settings_store.get(LAST_ERROR_KEY) == "boom"
        assert LAST_SLUG_KEY not in settings_store
        assert scheduler.keyword_pool.used() == []

        second = scheduler.run_once()
        assert second.success is True
        assert settings_store.get(LAST_ERROR_KEY) == ""

    def test_template_source_warns(self, scheduler, post):
        post.source = PostSource.TEMPLATE
        run = scheduler.run_once()
        assert run.success is True
        assert run.warnings

    def test_generate_now_with_keyword(self, scheduler, pipeline):
        run = scheduler.generate_now("  texting after a first date ")
        assert run.trigger == RunTrigger.MANUAL
        pipeline.run.assert_called_once_with("texting after a first date")

    def test_overlap_is_skipped(self, scheduler, pipeline, settings_store):
        scheduler._run_lock.acquire()
        try:
            run = scheduler.run_once()
        finally:
            scheduler._run_lock.release()

        assert run.skipped is True
        assert run.success is False
        pipeline.run.assert_not_called()
        assert LAST_RUN_KEY not in settings_store

    def test_concurrent_runs(self, scheduler, pipeline, post):
        started = threading.Event()
        release = threading.Event()

        def slow_run(keyword):
            started.set()
            release.wait(5)
            return post

        pipeline.run.side_effect = slow_run
        results = []
        worker = threading.Thread(target=lambda: results.append(scheduler.generate_now("a")))
        worker.start()
        assert started.wait(5)

        second = scheduler.generate_now("b")
        release.set()
        worker.join(5)

        assert second.skipped is True
        assert results[0].success is True
        assert pipeline.run.call_count == 1


# === Test: Timer ===


class TestTimer:
    def test_start_disabled(self, scheduler):
        assert scheduler.start() is False
        assert scheduler.running is False

    def test_start_and_stop(self, scheduler, settings_store):
        ScheduleConfig(enabled=True).save(settings_store)
        try:
            assert scheduler.start() is True
            assert scheduler.running is True
        finally:
            scheduler.stop()
        assert scheduler.running is False

    def test_status(self, scheduler, settings_store):
        ScheduleConfig(enabled=True, frequency="weekly").save(settings_store)
        status = scheduler.status()
        assert status["cron_expression"] == "0 8 * * 1"
        assert status["next_run"] == at(3, 9, 8).isoformat()
        assert status["unused_keywords"] == 2

    def test_delay_from_aware_utc_clock(self, pipeline, settings_store, monkeypatch):
        armed = []

        class FakeTimer:
            def __init__(self, interval, function):
                self.interval = interval
                self.daemon = False
                armed.append(self)

            def start(self):
                pass

            def cancel(self):
                pass

        monkeypatch.setattr(threading, "Timer", FakeTimer)
        ScheduleConfig(enabled=True, time_of_day="08:00").save(settings_store)
        # 12:00 UTC is 07:00 in New York
        scheduler = GenerationScheduler(
            pipeline,
            settings_store,
            clock=lambda: datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc),
        )

        assert scheduler.start() is True
        assert armed[0].interval == 3600
        assert armed[0].daemon is True

    def test_default_clock_is_aware(self, pipeline, settings_store):
        scheduler = GenerationScheduler(pipeline, settings_store)
        assert scheduler.clock is scheduler_module.utc_now
        assert scheduler.clock().utcoffset() == timedelta(0)


# === Test: CLI ===


class TestCli:
    def test_keywords_add(self, settings_store, monkeypatch, capsys):
        monkeypatch.setattr(cli, "SettingsStore", lambda: settings_store)

        assert cli.main(["keywords", "--add", "how to make him miss you"]) == 0

        assert "Added: how to make him miss you" in capsys.readouterr().out
        assert "how to make him miss you" in KeywordPool(settings_store).keywords()
