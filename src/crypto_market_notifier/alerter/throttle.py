"""Send pacing primitives used by the dispatcher and channels."""

from __future__ import annotations

import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class SendThrottle:
    """Enforces a minimum spacing between consecutive sends to one target."""

    def __init__(self, min_interval: float) -> None:
        """Initialize the throttle.

        Args:
            min_interval: Minimum seconds between two sends (0 disables).
        """
        self.min_interval = max(min_interval, 0.0)
        self._last_send: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until the next send slot is available."""
        async with self._lock:
            if self._last_send is not None:
                wait_time = self.min_interval - (time.monotonic() - self._last_send)
                if wait_time > 0:
                    await asyncio.sleep(wait_time)
            self._last_send = time.monotonic()


class RateWindow:
    """Sliding one-minute window capping requests per minute."""

    def __init__(self, max_per_minute: int, *, label: str = "channel") -> None:
        self.max_per_minute = max_per_minute
        self.label = label
        self._request_times: list[float] = []
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if the per-minute budget is exhausted."""
        async with self._lock:
            now = time.monotonic()
            # Remove requests older than 1 minute
            self._request_times = [t for t in self._request_times if now - t < 60]

            if len(self._request_times) >= self.max_per_minute:
                # Wait until the oldest request expires
                wait_time = 60 - (now - self._request_times[0])
                if wait_time > 0:
                    logger.debug("%s rate limit hit, waiting %.2fs", self.label, wait_time)
                    await asyncio.sleep(wait_time)

            self._request_times.append(time.monotonic())
