# Scheduler — timed blog generation
"""
Scheduler module: keyword pool, schedule state stored in settings, and a
timer-driven trigger that runs the generation pipeline.
"""

from .keywords import DEFAULT_KEYWORDS, KeywordPool
from .models import Frequency, GenerationRun, RunTrigger, ScheduleConfig
from .scheduler import GenerationScheduler, next_run_after

__all__ = [
    "DEFAULT_KEYWORDS",
    "Frequency",
    "GenerationRun",
    "GenerationScheduler",
    "KeywordPool",
    "RunTrigger",
    "ScheduleConfig",
    "next_run_after",
]
