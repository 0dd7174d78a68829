"""Storage layer - notification deduplication state."""

from crypto_market_notifier.storage.dedup import (
    DedupStore,
    InMemoryDedupStore,
    RedisDedupStore,
)

__all__ = [
    "DedupStore",
    "InMemoryDedupStore",
    "RedisDedupStore",
]
