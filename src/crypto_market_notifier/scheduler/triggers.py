"""Timer triggers for scheduled jobs.

All times are timezone-aware UTC datetimes.
"""

from __future__ import annotations

from datetime import UTC, datetime, time, timedelta
from typing import Protocol


class Trigger(Protocol):
    """Computes when a job fires next."""

    def next_fire_time(self, now: datetime, last_fire: datetime | None) -> datetime:
        """Return the next fire time.

        Args:
            now: Current time.
            last_fire: Scheduled time of the previous firing, if any.
        """
        ...


class IntervalTrigger:
    """Fires every ``interval``, anchored on the previous fire time."""

    def __init__(self, interval: timedelta, *, run_immediately: bool = False) -> None:
        """Initialize the trigger.

        Args:
            interval: Time between firings; must be positive.
            run_immediately: Fire at start instead of one interval after it.
        """
        if interval <= timedelta(0):
            raise ValueError("interval must be positive")
        self.interval = interval
        self.run_immediately = run_immediately

    @classmethod
    def every_minutes(cls, minutes: float, *, run_immediately: bool = False) -> IntervalTrigger:
        return cls(timedelta(minutes=minutes), run_immediately=run_immediately)

    def next_fire_time(self, now: datetime, last_fire: datetime | None) -> datetime:
        if last_fire is None:
            return now if self.run_immediately else now + self.interval
        candidate = last_fire + self.interval
        if candidate >= now:
            return candidate
        # Missed ticks (e.g. the loop was suspended) collapse into one.
        missed = (now - last_fire) // self.interval
        return last_fire + self.interval * (missed + 1)

    def __repr__(self) -> str:
        return f"IntervalTrigger(every {self.interval})"


class DailyTrigger:
    """Fires once a day at a fixed UTC time of day."""

    def __init__(self, at: time) -> None:
        self.at = at.replace(tzinfo=None)

    def next_fire_time(self, now: datetime, last_fire: datetime | None) -> datetime:
        candidate = datetime.combine(now.date(), self.at, tzinfo=UTC)
        if candidate <= now:
            candidate += timedelta(days=1)
        # Guard against an early timer wake-up firing the same slot twice.
        if last_fire is not None and candidate <= last_fire:
            candidate = last_fire + timedelta(days=1)
        return candidate

    def __repr__(self) -> str:
        return f"DailyTrigger(at {self.at.strftime('%H:%M')} UTC)"
