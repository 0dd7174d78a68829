"""A single scheduled job with skip-if-busy semantics.

Each job cycles ``IDLE -> RUNNING -> IDLE``. A trigger that arrives while
the previous run is still in flight is skipped and logged, never queued,
so slow upstreams cannot build an unbounded backlog.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from crypto_market_notifier.scheduler.triggers import Trigger

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    """Lifecycle state of a scheduled job."""

    IDLE = "idle"
    RUNNING = "running"


class RunOutcome(str, Enum):
    """Result of one trigger of a job."""

    SUCCESS = "success"
    FETCH_FAILED = "fetch_failed"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass
class JobStats:
    """Counters for a scheduled job."""

    runs: int = 0
    skipped: int = 0
    failures: int = 0
    last_outcome: RunOutcome | None = None
    last_started: datetime | None = None
    last_finished: datetime | None = None
    last_duration_seconds: float = 0.0
    last_error: str | None = None


# Type aliases
JobRunner = Callable[[], Awaitable[RunOutcome]]
OutcomeCallback = Callable[[str, RunOutcome, float, str | None], None]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class ScheduledJob:
    """Runs a coroutine function on a trigger, one run at a time.

    Example:
        ```python
        job = ScheduledJob("prices", pipeline.run, IntervalTrigger.every_minutes(5))
        stop = asyncio.Event()
        timer = asyncio.create_task(job.run_forever(stop))
        ```
    """

    def __init__(
        self,
        name: str,
        run: JobRunner,
        trigger: Trigger,
        *,
        on_outcome: OutcomeCallback | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the job.

        Args:
            name: Unique job name (used in logs and metrics).
            run: Coroutine function performing one run.
            trigger: Decides when the job fires.
            on_outcome: Called with (name, outcome, duration, error) after
                every run and every skipped trigger.
            clock: Source of the current UTC time.
        """
        self.name = name
        self.trigger = trigger
        self._run = run
        self._on_outcome = on_outcome
        self._clock = clock

        self._state = JobState.IDLE
        self._stats = JobStats()
        self._task: asyncio.Task[RunOutcome] | None = None
        self._last_fire: datetime | None = None

    @property
    def state(self) -> JobState:
        """Current job state."""
        return self._state

    @property
    def stats(self) -> JobStats:
        """Current job statistics."""
        return self._stats

    @property
    def is_running(self) -> bool:
        return self._state is JobState.RUNNING

    def fire(self) -> asyncio.Task[RunOutcome] | None:
        """Start a run now unless one is already in flight.

        Returns:
            The task executing the run, or None if the trigger was skipped.
        """
        if self._state is JobState.RUNNING:
            self._stats.skipped += 1
            logger.warning("Skipping %s: previous run still in progress", self.name)
            self._notify(RunOutcome.SKIPPED, 0.0, None)
            return None

        self._state = JobState.RUNNING
        self._task = asyncio.create_task(self._execute(), name=f"job:{self.name}")
        return self._task

    async def _execute(self) -> RunOutcome:
        started = time.monotonic()
        self._stats.runs += 1
        self._stats.last_started = self._clock()
        error: str | None = None

        try:
            outcome = await self._run()
        except Exception as e:
            logger.exception("Job %s failed: %s", self.name, e)
            outcome = RunOutcome.ERROR
            error = str(e)
        finally:
            self._state = JobState.IDLE

        duration = time.monotonic() - started
        self._stats.last_outcome = outcome
        self._stats.last_finished = self._clock()
        self._stats.last_duration_seconds = duration
        if outcome in (RunOutcome.ERROR, RunOutcome.FETCH_FAILED):
            self._stats.failures += 1
            self._stats.last_error = error or outcome.value
        else:
            self._stats.last_error = None

        logger.debug("Job %s finished: %s in %.2fs", self.name, outcome.value, duration)
        self._notify(outcome, duration, error)
        return outcome

    def _notify(self, outcome: RunOutcome, duration: float, error: str | None) -> None:
        if self._on_outcome is None:
            return
        try:
            self._on_outcome(self.name, outcome, duration, error)
        except Exception as e:
            logger.warning("Outcome callback failed for %s: %s", self.name, e)

    async def run_forever(self, stop_event: asyncio.Event) -> None:
        """Fire on every trigger until ``stop_event`` is set.

        Firing never awaits the run itself, so a slow run cannot delay the
        timer; it only causes the next trigger to be skipped.
        """
        logger.info("Scheduled %s: %r", self.name, self.trigger)
        while not stop_event.is_set():
            now = self._clock()
            next_fire = self.trigger.next_fire_time(now, self._last_fire)
            delay = max((next_fire - now).total_seconds(), 0.0)

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=delay)
                break
            except TimeoutError:
                pass

            self._last_fire = next_fire
            self.fire()

    async def wait_idle(self) -> RunOutcome | None:
        """Wait for the in-flight run, if any, and return its outcome."""
        if self._task is None:
            return None
        return await self._task

    async def cancel(self) -> None:
        """Cancel the in-flight run, if any."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
