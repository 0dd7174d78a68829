"""Scheduler running every job on its own independent timer."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from crypto_market_notifier.scheduler.job import RunOutcome, ScheduledJob

logger = logging.getLogger(__name__)


class SchedulerError(Exception):
    """Raised for invalid scheduler operations."""


class Scheduler:
    """Owns the timer task of every scheduled job.

    Jobs share the event loop but never wait on one another; there is no
    global ordering between them.
    """

    def __init__(self, jobs: list[ScheduledJob] | None = None) -> None:
        self._jobs: dict[str, ScheduledJob] = {}
        self._timers: list[asyncio.Task[None]] = []
        self._stop_event = asyncio.Event()
        self._running = False
        for job in jobs or []:
            self.add_job(job)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def jobs(self) -> list[ScheduledJob]:
        return list(self._jobs.values())

    def add_job(self, job: ScheduledJob) -> None:
        """Register a job. Names must be unique."""
        if job.name in self._jobs:
            raise SchedulerError(f"Duplicate job name: {job.name}")
        self._jobs[job.name] = job
        if self._running:
            self._timers.append(self._start_timer(job))

    def get_job(self, name: str) -> ScheduledJob:
        try:
            return self._jobs[name]
        except KeyError:
            raise SchedulerError(f"Unknown job: {name}") from None

    def _start_timer(self, job: ScheduledJob) -> asyncio.Task[None]:
        return asyncio.create_task(job.run_forever(self._stop_event), name=f"timer:{job.name}")

    async def start(self) -> None:
        """Start one timer task per job."""
        if self._running:
            logger.warning("Scheduler already running")
            return

        self._stop_event.clear()
        self._timers = [self._start_timer(job) for job in self._jobs.values()]
        self._running = True
        logger.info("Scheduler started with %d job(s)", len(self._jobs))

    async def stop(self) -> None:
        """Stop all timers and cancel in-flight runs."""
        if not self._running:
            return

        self._stop_event.set()
        for timer in self._timers:
            timer.cancel()
        for timer in self._timers:
            with contextlib.suppress(asyncio.CancelledError):
                await timer
        self._timers = []

        for job in self._jobs.values():
            await job.cancel()

        self._running = False
        logger.info("Scheduler stopped")

    async def run_now(self, name: str) -> RunOutcome:
        """Trigger a job immediately and wait for its outcome."""
        job = self.get_job(name)
        task = job.fire()
        if task is None:
            return RunOutcome.SKIPPED
        return await task
