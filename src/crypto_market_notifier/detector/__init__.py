"""Change detection layer - turning snapshots into notable events."""

from crypto_market_notifier.detector.models import AlertEvent, AlertKind
from crypto_market_notifier.detector.news import NewsDetector
from crypto_market_notifier.detector.price import PriceMoveDetector
from crypto_market_notifier.detector.sentiment import (
    FEAR_GREED_INSTRUMENT,
    SentimentShiftDetector,
)
from crypto_market_notifier.detector.summary import rank_top_movers
from crypto_market_notifier.detector.tiers import TierLadder
from crypto_market_notifier.detector.trending import TrendingChangeDetector

__all__ = [
    "FEAR_GREED_INSTRUMENT",
    "AlertEvent",
    "AlertKind",
    "NewsDetector",
    "PriceMoveDetector",
    "SentimentShiftDetector",
    "TierLadder",
    "TrendingChangeDetector",
    "rank_top_movers",
]
