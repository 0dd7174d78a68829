"""Sentiment shift detector for the Fear & Greed index."""

from __future__ import annotations

import logging

from crypto_market_notifier.detector.models import AlertEvent, AlertKind
from crypto_market_notifier.sources.models import SentimentReading

logger = logging.getLogger(__name__)

FEAR_GREED_INSTRUMENT = "fear-greed-index"


class SentimentShiftDetector:
    """Emits SENTIMENT_SHIFT when the index classification changes.

    A change of value inside the same classification ("Fear" 30 -> 35) is
    not an event. The first reading is a baseline only.
    """

    def detect(
        self, current: SentimentReading, previous: SentimentReading | None
    ) -> list[AlertEvent]:
        if previous is None or current.classification == previous.classification:
            return []

        logger.info(
            "Sentiment shift: %s (%d) -> %s (%d)",
            previous.classification,
            previous.value,
            current.classification,
            current.value,
        )
        return [
            AlertEvent(
                instrument_id=FEAR_GREED_INSTRUMENT,
                kind=AlertKind.SENTIMENT_SHIFT,
                payload={"reading": current, "previous_reading": previous},
            )
        ]
