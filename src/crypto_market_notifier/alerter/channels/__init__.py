"""Alert channel implementations for various platforms."""

from crypto_market_notifier.alerter.channels.discord import DiscordChannel
from crypto_market_notifier.alerter.channels.log import LogChannel
from crypto_market_notifier.alerter.channels.telegram import TelegramChannel

__all__ = [
    "DiscordChannel",
    "LogChannel",
    "TelegramChannel",
]
