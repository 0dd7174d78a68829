"""Trending list change detector."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from crypto_market_notifier.detector.models import AlertEvent, AlertKind
from crypto_market_notifier.sources.models import TrendingItem

logger = logging.getLogger(__name__)


class TrendingChangeDetector:
    """Emits one TRENDING_CHANGE event when new entries join a list.

    Reordering of existing entries or entries dropping out is not an
    event. The first list seen is a baseline only.
    """

    def __init__(self, list_name: str) -> None:
        """Initialize the detector.

        Args:
            list_name: Subject of the events, e.g. ``trending-coins``.
        """
        self.list_name = list_name

    def detect(
        self,
        current: Sequence[TrendingItem],
        previous: Sequence[TrendingItem] | None,
    ) -> list[AlertEvent]:
        if previous is None:
            return []

        previous_ids = {item.id for item in previous}
        entrants = tuple(item for item in current if item.id not in previous_ids)
        if not entrants:
            return []

        logger.info(
            "%s: %d new entr%s (%s)",
            self.list_name,
            len(entrants),
            "y" if len(entrants) == 1 else "ies",
            ", ".join(item.id for item in entrants),
        )
        return [
            AlertEvent(
                instrument_id=self.list_name,
                kind=AlertKind.TRENDING_CHANGE,
                payload={"entrants": entrants, "ranking": tuple(current)},
            )
        ]
