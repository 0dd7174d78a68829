"""Data models for the detector module."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class AlertKind(str, Enum):
    """What an AlertEvent is about."""

    PRICE_MOVE = "price_move"
    NEWS_ITEM = "news_item"
    SENTIMENT_SHIFT = "sentiment_shift"
    TRENDING_CHANGE = "trending_change"
    MARKET_REPORT = "market_report"
    EXTERNAL_SIGNAL = "external_signal"
    ORDER_FILL = "order_fill"


@dataclass(frozen=True)
class AlertEvent:
    """A notable event ready for dispatch.

    Created by a detector (or an inbound webhook), consumed once by the
    dispatcher and never persisted.

    Attributes:
        instrument_id: Instrument or subject the event refers to.
        kind: Event category, used to pick the message layout.
        payload: Kind-specific data (quotes, news item, readings...).
        detected_at: When the event was produced.
    """

    instrument_id: str
    kind: AlertKind
    payload: dict[str, Any] = field(default_factory=dict)
    detected_at: datetime = field(default_factory=lambda: datetime.now(UTC))
