"""Scheduling layer - independent timers with skip-if-busy jobs."""

from crypto_market_notifier.scheduler.job import (
    JobState,
    JobStats,
    RunOutcome,
    ScheduledJob,
)
from crypto_market_notifier.scheduler.scheduler import Scheduler, SchedulerError
from crypto_market_notifier.scheduler.triggers import DailyTrigger, IntervalTrigger, Trigger

__all__ = [
    "DailyTrigger",
    "IntervalTrigger",
    "JobState",
    "JobStats",
    "RunOutcome",
    "ScheduledJob",
    "Scheduler",
    "SchedulerError",
    "Trigger",
]
