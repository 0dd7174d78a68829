"""Price move detector.

Compares a fresh price snapshot against the previous one and emits a
PRICE_MOVE event when an instrument's 24h change enters a new tier.

Rules:
    - No previous snapshot (first poll): nothing is emitted and no tier
      state is written; the poll only establishes a baseline.
    - Only instruments present in both snapshots are compared.
    - event iff abs(change) >= threshold and tier != last alerted tier.
    - Falling below the threshold clears the recorded tier, so re-entering
      the same tier later alerts again.
    - Events follow the order of the current snapshot.
"""

from __future__ import annotations

import logging

from crypto_market_notifier.detector.models import AlertEvent, AlertKind
from crypto_market_notifier.detector.tiers import TierLadder
from crypto_market_notifier.sources.models import Snapshot
from crypto_market_notifier.storage.dedup import DedupStore

logger = logging.getLogger(__name__)


class PriceMoveDetector:
    """Detects tier crossings of the 24h percent change.

    Example:
        ```python
        detector = PriceMoveDetector(store, TierLadder.build(5.0, [5, 10, 20]))
        events = await detector.detect(current, previous)
        ```
    """

    def __init__(self, store: DedupStore, ladder: TierLadder | None = None) -> None:
        """Initialize the detector.

        Args:
            store: Shared dedup store holding the last alerted tier per instrument.
            ladder: Tier boundaries; defaults to 5% / 10% / 20%.
        """
        self._store = store
        self._ladder = ladder or TierLadder.build()

    @property
    def ladder(self) -> TierLadder:
        return self._ladder

    async def detect(self, current: Snapshot, previous: Snapshot | None) -> list[AlertEvent]:
        """Return PRICE_MOVE events for instruments that entered a new tier."""
        if previous is None:
            logger.debug("No previous snapshot; recording baseline of %d quotes", len(current))
            return []

        events: list[AlertEvent] = []
        for instrument_id, quote in current.items():
            prior = previous.get(instrument_id)
            if prior is None:
                continue

            tier = self._ladder.tier_for(quote.percent_change_24h)
            last_tier = await self._store.swap_tier(instrument_id, tier)
            if tier is None or tier == last_tier:
                continue

            logger.info(
                "Price move: %s %+.2f%% (tier %s, was %s)",
                instrument_id,
                quote.percent_change_24h,
                tier,
                last_tier or "none",
            )
            events.append(
                AlertEvent(
                    instrument_id=instrument_id,
                    kind=AlertKind.PRICE_MOVE,
                    payload={
                        "quote": quote,
                        "previous_quote": prior,
                        "tier": tier,
                        "previous_tier": last_tier,
                        "threshold": self._ladder.threshold,
                    },
                    detected_at=quote.fetched_at,
                )
            )
        return events
