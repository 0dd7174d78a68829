"""Tests for the news, sentiment and trending detectors and top mover ranking."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from crypto_market_notifier.detector import (
    FEAR_GREED_INSTRUMENT,
    AlertKind,
    NewsDetector,
    SentimentShiftDetector,
    TrendingChangeDetector,
    rank_top_movers,
)
from crypto_market_notifier.sources.models import (
    NewsItem,
    Quote,
    SentimentReading,
    Snapshot,
    TrendingItem,
)
from crypto_market_notifier.storage.dedup import InMemoryDedupStore


def news(item_id: str) -> NewsItem:
    return NewsItem(id=item_id, title=f"Story {item_id}", url=f"https://n.example/{item_id}")


def trending(*ids: str) -> list[TrendingItem]:
    return [TrendingItem(id=i, name=i.title(), symbol=i[:3].upper()) for i in ids]


class TestNewsDetector:
    """Tests for news deduplication."""

    async def test_new_ids_are_announced_once(self) -> None:
        """Poll [A, B] announces both; poll [A, B, C] announces only C."""
        store = InMemoryDedupStore()
        detector = NewsDetector(store)

        first = await detector.detect([news("A"), news("B")])
        assert [e.instrument_id for e in first] == ["A", "B"]
        assert all(e.kind is AlertKind.NEWS_ITEM for e in first)
        assert await store.has_seen("A")
        assert await store.has_seen("B")

        second = await detector.detect([news("A"), news("B"), news("C")])
        assert [e.instrument_id for e in second] == ["C"]
        assert second[0].payload["item"].title == "Story C"

    async def test_duplicates_within_one_poll(self) -> None:
        detector = NewsDetector(InMemoryDedupStore())
        events = await detector.detect([news("A"), news("A")])
        assert len(events) == 1

    async def test_shared_store_across_detectors(self) -> None:
        store = InMemoryDedupStore()
        await NewsDetector(store).detect([news("A")])
        assert await NewsDetector(store).detect([news("A")]) == []


class TestSentimentShiftDetector:
    """Tests for Fear & Greed classification changes."""

    def test_first_reading_is_baseline(self) -> None:
        detector = SentimentShiftDetector()
        assert detector.detect(SentimentReading(40, "Fear"), None) == []

    def test_same_classification_is_silent(self) -> None:
        detector = SentimentShiftDetector()
        events = detector.detect(SentimentReading(35, "Fear"), SentimentReading(30, "Fear"))
        assert events == []

    def test_classification_change(self) -> None:
        detector = SentimentShiftDetector()
        previous = SentimentReading(45, "Fear")
        current = SentimentReading(55, "Greed")

        events = detector.detect(current, previous)

        assert len(events) == 1
        assert events[0].kind is AlertKind.SENTIMENT_SHIFT
        assert events[0].instrument_id == FEAR_GREED_INSTRUMENT
        assert events[0].payload == {"reading": current, "previous_reading": previous}


class TestTrendingChangeDetector:
    """Tests for trending list entrants."""

    def test_first_list_is_baseline(self) -> None:
        detector = TrendingChangeDetector("trending-coins")
        assert detector.detect(trending("pepe", "bonk"), None) == []

    def test_reorder_and_drop_out_are_silent(self) -> None:
        detector = TrendingChangeDetector("trending-coins")
        events = detector.detect(trending("bonk"), trending("pepe", "bonk"))
        assert events == []

    def test_new_entrants_in_one_event(self) -> None:
        detector = TrendingChangeDetector("nft-collections")
        current = trending("pudgy", "azuki", "milady")

        events = detector.detect(current, trending("azuki"))

        assert len(events) == 1
        event = events[0]
        assert event.kind is AlertKind.TRENDING_CHANGE
        assert event.instrument_id == "nft-collections"
        assert [item.id for item in event.payload["entrants"]] == ["pudgy", "milady"]
        assert event.payload["ranking"] == tuple(current)


class TestRankTopMovers:
    """Tests for top mover ranking."""

    @pytest.fixture
    def market(self) -> Snapshot:
        now = datetime(2024, 5, 1, tzinfo=UTC)
        changes = {"bitcoin": 2.0, "solana": -9.0, "dogecoin": 9.0, "cardano": 0.5, "sui": 4.0}
        return Snapshot.from_quotes(
            [Quote(i, 1.0, change, 0.0, 0.0, now) for i, change in changes.items()]
        )

    def test_ranks_by_absolute_change(self, market) -> None:
        ranked = rank_top_movers(market)
        assert [q.instrument_id for q in ranked] == ["dogecoin", "solana", "sui"]

    def test_limit(self, market) -> None:
        assert len(rank_top_movers(market, limit=10)) == 5
        assert rank_top_movers(Snapshot.from_quotes([])) == []
