"""Deduplication state shared by the detectors.

Tracks which news ids have already been announced and, per instrument,
the price tier of the last alert. Membership only grows during a process
lifetime; there is no eviction.

Two backends share one async interface:

- ``InMemoryDedupStore``: process-local, reset on restart (default).
- ``RedisDedupStore``: survives restarts and can be shared by replicas.

Read-modify-write sequences (``check_and_mark``, ``swap_tier``) are atomic:
in memory against other coroutines, in Redis against other processes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

DEFAULT_REDIS_KEY_PREFIX = "crypto-notifier:"


class DedupStore(Protocol):
    """Interface implemented by all dedup backends."""

    async def has_seen(self, item_id: str) -> bool: ...

    async def mark_seen(self, item_id: str) -> bool: ...

    async def check_and_mark(self, item_id: str) -> bool: ...

    async def current_tier(self, instrument_id: str) -> str | None: ...

    async def set_tier(self, instrument_id: str, tier: str | None) -> None: ...

    async def swap_tier(self, instrument_id: str, tier: str | None) -> str | None: ...


class InMemoryDedupStore:
    """Process-local dedup store guarded by an asyncio lock."""

    def __init__(self) -> None:
        self._seen: set[str] = set()
        self._tiers: dict[str, str] = {}
        self._lock = asyncio.Lock()

    @property
    def seen_count(self) -> int:
        """Number of ids recorded so far."""
        return len(self._seen)

    async def has_seen(self, item_id: str) -> bool:
        """Return True if the id was already recorded."""
        return item_id in self._seen

    async def mark_seen(self, item_id: str) -> bool:
        """Record an id. Returns True if it was not recorded before."""
        async with self._lock:
            if item_id in self._seen:
                return False
            self._seen.add(item_id)
            return True

    async def check_and_mark(self, item_id: str) -> bool:
        """Atomically test-and-insert an id.

        Returns:
            True if the id is new (caller should notify), False if seen.
        """
        return await self.mark_seen(item_id)

    async def current_tier(self, instrument_id: str) -> str | None:
        """Return the tier of the last alert for an instrument."""
        return self._tiers.get(instrument_id)

    async def set_tier(self, instrument_id: str, tier: str | None) -> None:
        """Record (or clear, with None) the last alerted tier."""
        async with self._lock:
            self._store_tier(instrument_id, tier)

    async def swap_tier(self, instrument_id: str, tier: str | None) -> str | None:
        """Atomically replace the recorded tier and return the previous one."""
        async with self._lock:
            previous = self._tiers.get(instrument_id)
            self._store_tier(instrument_id, tier)
            return previous

    def _store_tier(self, instrument_id: str, tier: str | None) -> None:
        if tier is None:
            self._tiers.pop(instrument_id, None)
        else:
            self._tiers[instrument_id] = tier


def _decode(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode()
    return str(value)


# Swap the tier of one hash field in a single server-side step; an empty
# new value clears the field. Returns the previous value (nil if unset).
_SWAP_TIER_SCRIPT = """
local previous = redis.call('HGET', KEYS[1], ARGV[1])
if ARGV[2] == '' then
    redis.call('HDEL', KEYS[1], ARGV[1])
else
    redis.call('HSET', KEYS[1], ARGV[1], ARGV[2])
end
return previous
"""


class RedisDedupStore:
    """Redis-backed dedup store, safe to share between processes.

    News ids live in a set (``SADD`` gives an atomic check-and-insert);
    tiers live in a hash keyed by instrument id and are swapped by a Lua
    script, so two replicas can never both observe the same old tier.

    Example:
        ```python
        redis = Redis.from_url("redis://localhost:6379")
        store = RedisDedupStore(redis)
        if await store.check_and_mark("article-42"):
            await announce(article)
        ```
    """

    def __init__(self, redis: Any, *, key_prefix: str = DEFAULT_REDIS_KEY_PREFIX) -> None:
        """Initialize the store.

        Args:
            redis: Redis async client.
            key_prefix: Prefix for the set and hash keys.
        """
        self.redis = redis
        self._seen_key = f"{key_prefix}seen"
        self._tiers_key = f"{key_prefix}tiers"

    async def has_seen(self, item_id: str) -> bool:
        return bool(await self.redis.sismember(self._seen_key, item_id))

    async def mark_seen(self, item_id: str) -> bool:
        added = await self.redis.sadd(self._seen_key, item_id)
        return int(added) == 1

    async def check_and_mark(self, item_id: str) -> bool:
        return await self.mark_seen(item_id)

    async def current_tier(self, instrument_id: str) -> str | None:
        return _decode(await self.redis.hget(self._tiers_key, instrument_id))

    async def set_tier(self, instrument_id: str, tier: str | None) -> None:
        if tier is None:
            await self.redis.hdel(self._tiers_key, instrument_id)
        else:
            await self.redis.hset(self._tiers_key, instrument_id, tier)

    async def swap_tier(self, instrument_id: str, tier: str | None) -> str | None:
        previous = await self.redis.eval(
            _SWAP_TIER_SCRIPT, 1, self._tiers_key, instrument_id, tier or ""
        )
        return _decode(previous)

    async def close(self) -> None:
        """Close the underlying Redis connection."""
        await self.redis.aclose()
        logger.debug("Redis dedup store closed")
