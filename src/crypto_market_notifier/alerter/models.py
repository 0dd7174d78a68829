"""Data models for the alerter module."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True)
class AlertField:
    """A name/value pair shown in a message (an embed field on Discord)."""

    name: str
    value: str
    inline: bool = True


@dataclass(frozen=True)
class FormattedAlert:
    """A formatted alert message ready for delivery across multiple channels.

    Attributes:
        title: Short alert title/headline.
        body: Main alert body text.
        color: Severity color as a 24-bit RGB integer.
        fields: Structured name/value pairs.
        discord_embed: Discord-optimized embed dictionary.
        telegram_markdown: Telegram MarkdownV2 string.
        plain_text: Plain text fallback (logs, dry runs).
        links: Relevant links (article, chart...).
        timestamp: Time the message refers to.
    """

    title: str
    body: str
    color: int
    discord_embed: dict[str, object]
    telegram_markdown: str
    plain_text: str
    fields: tuple[AlertField, ...] = ()
    links: dict[str, str] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
