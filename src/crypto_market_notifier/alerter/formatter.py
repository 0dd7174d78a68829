"""Alert message formatter for multi-channel delivery.

This module transforms AlertEvent objects into human-readable messages
optimized for Discord embeds, Telegram MarkdownV2 and plain text.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from crypto_market_notifier.alerter.models import AlertField, FormattedAlert
from crypto_market_notifier.detector.models import AlertEvent, AlertKind
from crypto_market_notifier.sources.models import (
    ChainStats,
    GasReading,
    NewsItem,
    Quote,
    SentimentReading,
    TrendingItem,
)

# Embed colors
COLOR_UP = 0x00FF00
COLOR_DOWN = 0xFF0000
COLOR_NEWS = 0x1DA1F2
COLOR_SUMMARY = 0x9932CC
COLOR_TRENDING = 0xFF6B35
COLOR_ONCHAIN = 0xF7931A
COLOR_EXTERNAL = 0x00D4AA
COLOR_NEUTRAL = 0xFFFF00

# Discord embed limits
MAX_TITLE = 256
MAX_DESCRIPTION = 4096
MAX_FIELD_VALUE = 1024
NEWS_DESCRIPTION_CHARS = 200

TRENDING_TITLES = {
    "trending-coins": "🔥 Trending Cryptocurrencies",
    "nft-collections": "🖼️ Trending NFT Collections",
}

_MARKDOWN_V2_SPECIAL = re.compile(r"([_*\[\]()~`>#+\-=|{}.!\\])")


def escape_markdown(text: str) -> str:
    """Escape text for Telegram MarkdownV2."""
    return _MARKDOWN_V2_SPECIAL.sub(r"\\\1", text)


def escape_markdown_url(url: str) -> str:
    """Escape a link target for Telegram MarkdownV2 (only ``)`` and ``\\``)."""
    return url.replace("\\", "\\\\").replace(")", "\\)")


def truncate(text: str, limit: int) -> str:
    """Cut text to ``limit`` characters, ending with an ellipsis if cut."""
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def format_usd(value: float) -> str:
    """Format a price: 2 decimals above $1, 6 significant digits below."""
    if abs(value) >= 1:
        return f"${value:,.2f}"
    return f"${value:.6g}"


def format_compact_usd(value: float) -> str:
    """Format large USD amounts as $1.23B / $4.56M."""
    if abs(value) >= 1e9:
        return f"${value / 1e9:,.2f}B"
    if abs(value) >= 1e6:
        return f"${value / 1e6:,.2f}M"
    return f"${value:,.0f}"


def format_percent(value: float) -> str:
    return f"{value:+.2f}%"


def get_change_color(percent_change: float) -> int:
    return COLOR_UP if percent_change > 0 else COLOR_DOWN


def get_sentiment_color(value: int) -> int:
    """Red for fear (< 25), green for greed (> 75), yellow otherwise."""
    if value < 25:
        return COLOR_DOWN
    if value > 75:
        return COLOR_UP
    return COLOR_NEUTRAL


def display_symbol(instrument_id: str) -> str:
    return instrument_id.upper()


@dataclass
class _Message:
    """Channel-neutral message parts built for one event."""

    title: str
    color: int
    description: str = ""
    fields: list[AlertField] = field(default_factory=list)
    url: str | None = None
    thumbnail_url: str | None = None
    timestamp: datetime | None = None


class AlertFormatter:
    """Formats AlertEvents into multi-channel alert messages."""

    def __init__(self) -> None:
        self._builders: dict[AlertKind, Callable[[AlertEvent], _Message]] = {
            AlertKind.PRICE_MOVE: self._price_move,
            AlertKind.NEWS_ITEM: self._news_item,
            AlertKind.SENTIMENT_SHIFT: self._sentiment_shift,
            AlertKind.TRENDING_CHANGE: self._trending_change,
            AlertKind.MARKET_REPORT: self._market_report,
            AlertKind.EXTERNAL_SIGNAL: self._external_signal,
            AlertKind.ORDER_FILL: self._order_fill,
        }

    def format(self, event: AlertEvent) -> FormattedAlert:
        """Format an event into a multi-channel alert.

        Args:
            event: The event to format.

        Returns:
            FormattedAlert with all channel formats.
        """
        message = self._builders[event.kind](event)
        timestamp = message.timestamp or event.detected_at
        title = truncate(message.title, MAX_TITLE)
        body = truncate(message.description, MAX_DESCRIPTION)
        links = {"url": message.url} if message.url else {}

        return FormattedAlert(
            title=title,
            body=body,
            color=message.color,
            fields=tuple(message.fields),
            discord_embed=self._build_discord_embed(message, title, body, timestamp),
            telegram_markdown=self._build_telegram_markdown(message, title, body),
            plain_text=self._build_plain_text(message, title, body),
            links=links,
            timestamp=timestamp,
        )

    # Channel renderers

    def _build_discord_embed(
        self, message: _Message, title: str, body: str, timestamp: datetime
    ) -> dict[str, object]:
        embed: dict[str, object] = {
            "title": title,
            "color": message.color,
            "timestamp": timestamp.isoformat(),
        }
        if body:
            embed["description"] = body
        if message.fields:
            embed["fields"] = [
                {
                    "name": f.name,
                    "value": truncate(f.value, MAX_FIELD_VALUE) or "N/A",
                    "inline": f.inline,
                }
                for f in message.fields
            ]
        if message.url:
            embed["url"] = message.url
        if message.thumbnail_url:
            embed["thumbnail"] = {"url": message.thumbnail_url}
        return embed

    def _build_telegram_markdown(self, message: _Message, title: str, body: str) -> str:
        lines = [f"*{escape_markdown(title)}*"]
        if body:
            lines += ["", escape_markdown(body)]
        if message.fields:
            lines.append("")
            for f in message.fields:
                lines.append(f"*{escape_markdown(f.name)}:* {escape_markdown(f.value)}")
        if message.url:
            lines += ["", f"[Read more]({escape_markdown_url(message.url)})"]
        return "\n".join(lines)

    def _build_plain_text(self, message: _Message, title: str, body: str) -> str:
        lines = [title.upper()]
        if body:
            lines.append(body)
        lines += [f"{f.name}: {f.value}" for f in message.fields]
        if message.url:
            lines.append(message.url)
        return "\n".join(lines)

    # Event builders

    def _price_move(self, event: AlertEvent) -> _Message:
        quote: Quote = event.payload["quote"]
        symbol = display_symbol(event.instrument_id)
        change = quote.percent_change_24h
        return _Message(
            title=f"🚨 Price Alert: {symbol}",
            color=get_change_color(change),
            description=(
                f"{symbol} has moved {format_percent(change)} in the last 24 hours!"
            ),
            fields=[
                AlertField("Current Price", format_usd(quote.value)),
                AlertField("24h Change", format_percent(change)),
                AlertField("Volume", format_compact_usd(quote.volume_24h)),
                AlertField("Market Cap", format_compact_usd(quote.market_cap)),
                AlertField("Tier", str(event.payload.get("tier", "N/A"))),
            ],
        )

    def _news_item(self, event: AlertEvent) -> _Message:
        item: NewsItem = event.payload["item"]
        description = (
            truncate(item.description, NEWS_DESCRIPTION_CHARS)
            if item.description
            else "No description available"
        )
        return _Message(
            title=f"📰 {item.title}",
            color=COLOR_NEWS,
            description=description,
            url=item.url or None,
            thumbnail_url=item.thumbnail_url,
            timestamp=item.published_at,
        )

    def _sentiment_shift(self, event: AlertEvent) -> _Message:
        reading: SentimentReading = event.payload["reading"]
        previous: SentimentReading | None = event.payload.get("previous_reading")
        description = (
            "The Fear & Greed Index ranges from 0 (Extreme Fear) to 100 (Extreme Greed).\n"
            f"Current sentiment: {reading.classification}"
        )
        fields = [
            AlertField("Current Value", f"{reading.value}/100"),
            AlertField("Classification", reading.classification),
        ]
        if previous is not None:
            fields.append(
                AlertField("Previously", f"{previous.value}/100 - {previous.classification}")
            )
        return _Message(
            title="😱 Crypto Fear & Greed Index",
            color=get_sentiment_color(reading.value),
            description=description,
            fields=fields,
            timestamp=reading.timestamp,
        )

    def _trending_change(self, event: AlertEvent) -> _Message:
        entrants: Sequence[TrendingItem] = event.payload.get("entrants", ())
        ranking: Sequence[TrendingItem] = event.payload.get("ranking", ())
        new_ids = {item.id for item in entrants}
        lines = [
            f"{i}. {_trending_label(item)}{' 🆕' if item.id in new_ids else ''}"
            for i, item in enumerate(ranking, start=1)
        ]
        title = TRENDING_TITLES.get(event.instrument_id, f"🔥 Trending: {event.instrument_id}")
        return _Message(
            title=title,
            color=COLOR_TRENDING,
            description="\n".join(lines),
            fields=[
                AlertField(
                    "New Entries",
                    ", ".join(item.name for item in entrants) or "None",
                    inline=False,
                )
            ],
        )

    def _market_report(self, event: AlertEvent) -> _Message:
        if event.payload.get("report") == "daily_summary":
            return self._daily_summary(event.payload)
        return self._onchain_report(event.payload)

    def _onchain_report(self, payload: dict[str, Any]) -> _Message:
        stats: ChainStats = payload["chain_stats"]
        gas: GasReading | None = payload.get("gas")
        fields = [
            AlertField(
                "Bitcoin Network",
                f"Hash Rate: {stats.hash_rate / 1e18:.2f} EH/s\n"
                f"Difficulty: {stats.difficulty / 1e12:.2f}T",
            ),
            AlertField(
                "Market Activity",
                f"Transactions (24h): {stats.transactions_24h:,}\n"
                f"Total BTC: {stats.total_btc:,.0f}",
            ),
        ]
        if gas is not None:
            fields.append(
                AlertField(
                    "Ethereum Gas",
                    f"Safe: {gas.safe:g} gwei\n"
                    f"Standard: {gas.standard:g} gwei\n"
                    f"Fast: {gas.fast:g} gwei",
                )
            )
        return _Message(title="⛓️ On-Chain Metrics", color=COLOR_ONCHAIN, fields=fields)

    def _daily_summary(self, payload: dict[str, Any]) -> _Message:
        fields: list[AlertField] = []
        sentiment: SentimentReading | None = payload.get("sentiment")
        if sentiment is not None:
            fields.append(
                AlertField(
                    "😱 Fear & Greed Index",
                    f"{sentiment.value}/100 - {sentiment.classification}",
                    inline=False,
                )
            )
        movers: Sequence[Quote] = payload.get("top_movers", ())
        if movers:
            fields.append(
                AlertField(
                    "🚀 Top Movers (24h)",
                    "\n".join(
                        f"{display_symbol(q.instrument_id)}: {format_percent(q.percent_change_24h)}"
                        for q in movers
                    ),
                )
            )
        trending: Sequence[TrendingItem] = payload.get("trending", ())
        if trending:
            fields.append(
                AlertField(
                    "🔥 Trending",
                    "\n".join(
                        f"{i}. {item.name} ({item.symbol})"
                        for i, item in enumerate(trending, start=1)
                    ),
                )
            )
        return _Message(title="📊 Daily Market Summary", color=COLOR_SUMMARY, fields=fields)

    def _external_signal(self, event: AlertEvent) -> _Message:
        payload = event.payload
        description = str(payload.get("symbol") or event.instrument_id)
        if payload.get("message"):
            description += f" - {payload['message']}"
        return _Message(
            title="📈 TradingView Alert",
            color=COLOR_EXTERNAL,
            description=description,
            fields=[
                AlertField("Action", _or_na(payload.get("action"))),
                AlertField("Price", _or_na(payload.get("price"))),
            ],
        )

    def _order_fill(self, event: AlertEvent) -> _Message:
        payload = event.payload
        return _Message(
            title="✅ Order Filled",
            color=COLOR_UP,
            fields=[
                AlertField("Symbol", _or_na(payload.get("symbol"))),
                AlertField("Side", _or_na(payload.get("side"))),
                AlertField("Amount", _or_na(payload.get("amount"))),
                AlertField("Price", _or_na(payload.get("price"))),
            ],
        )


def _or_na(value: Any) -> str:
    # 0 is a real price or amount
    if value is None or value == "":
        return "N/A"
    return str(value)


def _trending_label(item: TrendingItem) -> str:
    label = item.name
    if item.symbol:
        label += f" ({item.symbol.upper()})"
    if item.market_cap_rank is not None:
        label += f" - Rank #{item.market_cap_rank}"
    elif item.description:
        label += f" - {truncate(item.description, 50)}"
    return label
