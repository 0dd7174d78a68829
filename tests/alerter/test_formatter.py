"""Tests for the alert formatter."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from crypto_market_notifier.alerter.formatter import (
    COLOR_DOWN,
    COLOR_EXTERNAL,
    COLOR_NEUTRAL,
    COLOR_NEWS,
    COLOR_ONCHAIN,
    COLOR_SUMMARY,
    COLOR_TRENDING,
    COLOR_UP,
    AlertFormatter,
    escape_markdown,
    escape_markdown_url,
    format_compact_usd,
    format_percent,
    format_usd,
    get_sentiment_color,
    truncate,
)
from crypto_market_notifier.detector.models import AlertEvent, AlertKind
from crypto_market_notifier.sources.models import (
    ChainStats,
    GasReading,
    NewsItem,
    Quote,
    SentimentReading,
    TrendingItem,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def formatter() -> AlertFormatter:
    return AlertFormatter()


def quote(instrument_id: str, change: float, value: float = 65000.0) -> Quote:
    return Quote(
        instrument_id=instrument_id,
        value=value,
        percent_change_24h=change,
        volume_24h=3.2e10,
        market_cap=1.28e12,
        fetched_at=NOW,
    )


def price_event(change: float) -> AlertEvent:
    return AlertEvent(
        instrument_id="bitcoin",
        kind=AlertKind.PRICE_MOVE,
        payload={"quote": quote("bitcoin", change), "tier": "10-20%"},
        detected_at=NOW,
    )


def field_map(embed: dict) -> dict[str, str]:
    return {f["name"]: f["value"] for f in embed.get("fields", [])}


# ============================================================================
# Helper Tests
# ============================================================================


class TestHelpers:
    """Tests for formatting helpers."""

    def test_format_usd(self) -> None:
        assert format_usd(65000) == "$65,000.00"
        assert format_usd(0.00012345678) == "$0.000123457"

    def test_format_compact_usd(self) -> None:
        assert format_compact_usd(1.28e12) == "$1,280.00B"
        assert format_compact_usd(3.5e6) == "$3.50M"
        assert format_compact_usd(950) == "$950"

    def test_format_percent(self) -> None:
        assert format_percent(12) == "+12.00%"
        assert format_percent(-6.234) == "-6.23%"

    def test_escape_markdown(self) -> None:
        assert escape_markdown("BTC +5.2% (up!)") == "BTC \\+5\\.2% \\(up\\!\\)"

    def test_truncate(self) -> None:
        assert truncate("short", 10) == "short"
        assert truncate("a" * 20, 10) == "aaaaaaa..."

    def test_sentiment_color(self) -> None:
        assert get_sentiment_color(10) == COLOR_DOWN
        assert get_sentiment_color(25) == COLOR_NEUTRAL
        assert get_sentiment_color(75) == COLOR_NEUTRAL
        assert get_sentiment_color(90) == COLOR_UP


# ============================================================================
# Event Tests
# ============================================================================


class TestPriceMove:
    """Tests for PRICE_MOVE messages."""

    def test_upward_move(self, formatter) -> None:
        alert = formatter.format(price_event(12.0))

        assert alert.title == "🚨 Price Alert: BITCOIN"
        assert alert.color == COLOR_UP
        fields = field_map(alert.discord_embed)
        assert fields["Current Price"] == "$65,000.00"
        assert fields["24h Change"] == "+12.00%"
        assert fields["Tier"] == "10-20%"
        assert alert.discord_embed["timestamp"] == NOW.isoformat()

    def test_downward_move_is_red(self, formatter) -> None:
        assert formatter.format(price_event(-12.0)).color == COLOR_DOWN

    def test_channel_renderings(self, formatter) -> None:
        alert = formatter.format(price_event(12.0))

        assert alert.telegram_markdown.startswith("*🚨 Price Alert: BITCOIN*")
        assert "\\+12\\.00%" in alert.telegram_markdown
        assert alert.plain_text.startswith("🚨 PRICE ALERT: BITCOIN")
        assert "Tier: 10-20%" in alert.plain_text


class TestNewsItem:
    """Tests for NEWS_ITEM messages."""

    def test_news_embed(self, formatter) -> None:
        item = NewsItem(
            id="42",
            title="ETF approved",
            url="https://news.example/42",
            published_at=NOW,
            description="x" * 500,
            thumbnail_url="https://img.example/42.png",
        )
        alert = formatter.format(
            AlertEvent(instrument_id="42", kind=AlertKind.NEWS_ITEM, payload={"item": item})
        )

        assert alert.title == "📰 ETF approved"
        assert alert.color == COLOR_NEWS
        assert len(alert.body) == 200
        assert alert.discord_embed["url"] == "https://news.example/42"
        assert alert.discord_embed["thumbnail"] == {"url": "https://img.example/42.png"}
        assert alert.links == {"url": "https://news.example/42"}
        assert alert.timestamp == NOW

    def test_missing_description(self, formatter) -> None:
        item = NewsItem(id="1", title="Hi", url="https://news.example/1")
        alert = formatter.format(
            AlertEvent(instrument_id="1", kind=AlertKind.NEWS_ITEM, payload={"item": item})
        )
        assert alert.body == "No description available"


class TestSentimentShift:
    """Tests for SENTIMENT_SHIFT messages."""

    def test_sentiment_embed(self, formatter) -> None:
        event = AlertEvent(
            instrument_id="fear-greed-index",
            kind=AlertKind.SENTIMENT_SHIFT,
            payload={
                "reading": SentimentReading(80, "Extreme Greed"),
                "previous_reading": SentimentReading(60, "Greed"),
            },
        )
        alert = formatter.format(event)

        assert alert.color == COLOR_UP
        fields = field_map(alert.discord_embed)
        assert fields["Current Value"] == "80/100"
        assert fields["Previously"] == "60/100 - Greed"


class TestTrendingChange:
    """Tests for TRENDING_CHANGE messages."""

    def test_marks_new_entries(self, formatter) -> None:
        pepe = TrendingItem(id="pepe", name="Pepe", symbol="pepe", market_cap_rank=30)
        bonk = TrendingItem(id="bonk", name="Bonk", symbol="bonk")
        event = AlertEvent(
            instrument_id="trending-coins",
            kind=AlertKind.TRENDING_CHANGE,
            payload={"entrants": (bonk,), "ranking": (pepe, bonk)},
        )
        alert = formatter.format(event)

        assert alert.title == "🔥 Trending Cryptocurrencies"
        assert alert.color == COLOR_TRENDING
        assert alert.body.splitlines() == ["1. Pepe (PEPE) - Rank #30", "2. Bonk (BONK) 🆕"]
        assert field_map(alert.discord_embed)["New Entries"] == "Bonk"

    def test_nft_title(self, formatter) -> None:
        item = TrendingItem(id="azuki", name="Azuki")
        event = AlertEvent(
            instrument_id="nft-collections",
            kind=AlertKind.TRENDING_CHANGE,
            payload={"entrants": (item,), "ranking": (item,)},
        )
        assert formatter.format(event).title == "🖼️ Trending NFT Collections"


class TestMarketReport:
    """Tests for MARKET_REPORT messages."""

    def test_onchain_with_gas(self, formatter) -> None:
        event = AlertEvent(
            instrument_id="bitcoin-network",
            kind=AlertKind.MARKET_REPORT,
            payload={
                "report": "onchain",
                "chain_stats": ChainStats(6.0e20, 8.3e13, 450_000, 19_680_000),
                "gas": GasReading(12, 14, 20.5),
            },
        )
        alert = formatter.format(event)

        assert alert.title == "⛓️ On-Chain Metrics"
        assert alert.color == COLOR_ONCHAIN
        fields = field_map(alert.discord_embed)
        assert "Hash Rate: 600.00 EH/s" in fields["Bitcoin Network"]
        assert "Difficulty: 83.00T" in fields["Bitcoin Network"]
        assert "Transactions (24h): 450,000" in fields["Market Activity"]
        assert "Fast: 20.5 gwei" in fields["Ethereum Gas"]

    def test_onchain_without_gas(self, formatter) -> None:
        event = AlertEvent(
            instrument_id="bitcoin-network",
            kind=AlertKind.MARKET_REPORT,
            payload={"report": "onchain", "chain_stats": ChainStats(1, 1, 1, 1), "gas": None},
        )
        assert "Ethereum Gas" not in field_map(formatter.format(event).discord_embed)

    def test_daily_summary_with_partial_data(self, formatter) -> None:
        event = AlertEvent(
            instrument_id="market",
            kind=AlertKind.MARKET_REPORT,
            payload={
                "report": "daily_summary",
                "sentiment": None,
                "top_movers": (quote("solana", -9.5), quote("bitcoin", 4.0)),
                "trending": (TrendingItem(id="pepe", name="Pepe", symbol="PEPE"),),
            },
        )
        alert = formatter.format(event)

        assert alert.title == "📊 Daily Market Summary"
        assert alert.color == COLOR_SUMMARY
        fields = field_map(alert.discord_embed)
        assert "😱 Fear & Greed Index" not in fields
        assert fields["🚀 Top Movers (24h)"] == "SOLANA: -9.50%\nBITCOIN: +4.00%"
        assert fields["🔥 Trending"] == "1. Pepe (PEPE)"


class TestInboundSignals:
    """Tests for EXTERNAL_SIGNAL and ORDER_FILL messages."""

    def test_tradingview(self, formatter) -> None:
        event = AlertEvent(
            instrument_id="BTCUSDT",
            kind=AlertKind.EXTERNAL_SIGNAL,
            payload={"symbol": "BTCUSDT", "message": "RSI oversold", "action": "buy", "price": 64000},
        )
        alert = formatter.format(event)

        assert alert.title == "📈 TradingView Alert"
        assert alert.color == COLOR_EXTERNAL
        assert alert.body == "BTCUSDT - RSI oversold"
        assert field_map(alert.discord_embed) == {"Action": "buy", "Price": "64000"}

    def test_order_fill_with_missing_fields(self, formatter) -> None:
        event = AlertEvent(
            instrument_id="ETHUSDT",
            kind=AlertKind.ORDER_FILL,
            payload={"symbol": "ETHUSDT", "side": "sell", "amount": 2, "price": None},
        )
        alert = formatter.format(event)

        assert alert.title == "✅ Order Filled"
        fields = field_map(alert.discord_embed)
        assert fields["Side"] == "sell"
        assert fields["Amount"] == "2"
        assert fields["Price"] == "N/A"

    def test_zero_values_are_shown(self, formatter) -> None:
        event = AlertEvent(
            instrument_id="ETHUSDT",
            kind=AlertKind.ORDER_FILL,
            payload={"symbol": "ETHUSDT", "side": "buy", "amount": 0, "price": 0.0},
        )
        fields = field_map(formatter.format(event).discord_embed)

        assert fields["Amount"] == "0"
        assert fields["Price"] == "0.0"


class TestTelegramLinks:
    """Tests for MarkdownV2 link targets."""

    def test_escape_markdown_url(self) -> None:
        assert escape_markdown_url("https://x.example/a_(b)\\c") == (
            "https://x.example/a_(b\\)\\\\c"
        )

    def test_news_link_is_escaped(self, formatter) -> None:
        item = NewsItem(id="7", title="Fork", url="https://news.example/fork_(2024)")
        alert = formatter.format(
            AlertEvent(instrument_id="7", kind=AlertKind.NEWS_ITEM, payload={"item": item})
        )

        assert alert.telegram_markdown.endswith(
            "[Read more](https://news.example/fork_(2024\\))"
        )
