"""Alerting layer - Message formatting and best-effort delivery."""

from crypto_market_notifier.alerter.channels.discord import DiscordChannel
from crypto_market_notifier.alerter.channels.log import LogChannel
from crypto_market_notifier.alerter.channels.telegram import TelegramChannel
from crypto_market_notifier.alerter.dispatcher import (
    GENERAL_TRADING,
    NEWS,
    NFT,
    ONCHAIN,
    PRICE_ALERTS,
    TARGET_NAMES,
    AlertChannel,
    Dispatcher,
    resolve_channel,
    resolve_targets,
)
from crypto_market_notifier.alerter.errors import ConfigurationError, DeliveryError
from crypto_market_notifier.alerter.formatter import AlertFormatter
from crypto_market_notifier.alerter.models import AlertField, FormattedAlert

__all__ = [
    "GENERAL_TRADING",
    "NEWS",
    "NFT",
    "ONCHAIN",
    "PRICE_ALERTS",
    "TARGET_NAMES",
    "AlertChannel",
    "AlertField",
    "AlertFormatter",
    "ConfigurationError",
    "DeliveryError",
    "DiscordChannel",
    "Dispatcher",
    "FormattedAlert",
    "LogChannel",
    "TelegramChannel",
    "resolve_channel",
    "resolve_targets",
]
