"""News detector - announce each article id once per process lifetime."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from crypto_market_notifier.detector.models import AlertEvent, AlertKind
from crypto_market_notifier.sources.models import NewsItem
from crypto_market_notifier.storage.dedup import DedupStore

logger = logging.getLogger(__name__)


class NewsDetector:
    """Emits a NEWS_ITEM event for every article id not seen before.

    The id is marked seen as part of the same atomic step, so two
    pipelines polling overlapping feeds cannot both announce one article.
    """

    def __init__(self, store: DedupStore) -> None:
        self._store = store

    async def detect(self, items: Iterable[NewsItem]) -> list[AlertEvent]:
        """Return events for unseen items, in feed order."""
        events: list[AlertEvent] = []
        for item in items:
            if not await self._store.check_and_mark(item.id):
                continue
            events.append(
                AlertEvent(
                    instrument_id=item.id,
                    kind=AlertKind.NEWS_ITEM,
                    payload={"item": item},
                )
            )
        if events:
            logger.info("Found %d new news item(s)", len(events))
        return events
