"""Configuration management service with Pydantic Settings.

This module provides centralized configuration management for the
crypto market notifier, loading and validating environment variables
at startup.
"""

from __future__ import annotations

import logging
from datetime import time
from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_TRACKED_SYMBOLS = [
    "bitcoin",
    "ethereum",
    "binancecoin",
    "cardano",
    "solana",
    "polkadot",
    "dogecoin",
    "avalanche-2",
    "chainlink",
    "polygon",
]

# Nested groups are built by default_factory, outside the parent's sources,
# so each one must read .env itself.
_ENV_FILE_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    extra="ignore",
)


def _split_csv(v: Any) -> Any:
    if isinstance(v, str):
        return [part.strip() for part in v.split(",") if part.strip()]
    return v


class DiscordSettings(BaseSettings):
    """Discord webhook per delivery target."""

    model_config = SettingsConfigDict(env_prefix="DISCORD_", **_ENV_FILE_CONFIG)

    price_alerts_webhook_url: SecretStr | None = Field(
        default=None,
        alias="DISCORD_PRICE_ALERTS_WEBHOOK_URL",
        description="Webhook for price tier alerts",
    )
    news_webhook_url: SecretStr | None = Field(
        default=None,
        alias="DISCORD_NEWS_WEBHOOK_URL",
        description="Webhook for news posts",
    )
    nft_webhook_url: SecretStr | None = Field(
        default=None,
        alias="DISCORD_NFT_WEBHOOK_URL",
        description="Webhook for NFT collection digests",
    )
    onchain_webhook_url: SecretStr | None = Field(
        default=None,
        alias="DISCORD_ONCHAIN_WEBHOOK_URL",
        description="Webhook for on-chain metrics",
    )
    general_trading_webhook_url: SecretStr | None = Field(
        default=None,
        alias="DISCORD_GENERAL_TRADING_WEBHOOK_URL",
        description="Webhook for summaries, sentiment, trending and inbound signals",
    )

    @field_validator(
        "price_alerts_webhook_url",
        "news_webhook_url",
        "nft_webhook_url",
        "onchain_webhook_url",
        "general_trading_webhook_url",
    )
    @classmethod
    def validate_webhook_url(cls, v: SecretStr | None) -> SecretStr | None:
        """Validate webhook URL format."""
        if v is None:
            return v
        if not v.get_secret_value().startswith("https://"):
            raise ValueError("Discord webhook URL must start with https://")
        return v

    def webhook_for(self, target: str) -> str | None:
        """Return the webhook URL configured for a target, if any."""
        value = getattr(self, f"{target.replace('-', '_')}_webhook_url", None)
        if value is None:
            return None
        return value.get_secret_value()

    @property
    def enabled(self) -> bool:
        """Check if any Discord webhook is configured."""
        return any(
            getattr(self, name) is not None
            for name in type(self).model_fields
            if name.endswith("_webhook_url")
        )


class TelegramSettings(BaseSettings):
    """Telegram notification settings."""

    model_config = SettingsConfigDict(env_prefix="TELEGRAM_", **_ENV_FILE_CONFIG)

    bot_token: SecretStr | None = Field(
        default=None,
        alias="TELEGRAM_BOT_TOKEN",
        description="Telegram bot token",
    )
    chat_ids: dict[str, str] = Field(
        default_factory=dict,
        alias="TELEGRAM_CHAT_IDS",
        description='JSON map of target to chat id, e.g. {"news": "-100123"}',
    )

    @field_validator("chat_ids", mode="before")
    @classmethod
    def stringify_chat_ids(cls, v: Any) -> Any:
        """Accept numeric chat ids."""
        if isinstance(v, dict):
            return {str(k): str(chat) for k, chat in v.items()}
        return v

    def chat_for(self, target: str) -> str | None:
        return self.chat_ids.get(target)

    @property
    def enabled(self) -> bool:
        """Check if Telegram notifications are enabled."""
        return self.bot_token is not None and bool(self.chat_ids)


class SourceSettings(BaseSettings):
    """Upstream data source settings."""

    model_config = SettingsConfigDict(env_prefix="", **_ENV_FILE_CONFIG)

    coingecko_api_key: SecretStr | None = Field(
        default=None,
        alias="COINGECKO_API_KEY",
        description="Optional CoinGecko demo API key",
    )
    etherscan_api_key: SecretStr | None = Field(
        default=None,
        alias="ETHERSCAN_API_KEY",
        description="Etherscan API key; gas prices are skipped without it",
    )
    http_timeout_seconds: float = Field(
        default=10.0,
        alias="HTTP_TIMEOUT_SECONDS",
        description="Per-request timeout for outbound HTTP calls",
        gt=0,
    )


class RedisSettings(BaseSettings):
    """Redis connection settings."""

    model_config = SettingsConfigDict(env_prefix="", **_ENV_FILE_CONFIG)

    url: str | None = Field(
        default=None,
        alias="REDIS_URL",
        description="Redis connection string for a shared dedup store",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Validate Redis URL format."""
        if v is None:
            return v
        if not v.startswith(("redis://", "rediss://")):
            raise ValueError("REDIS_URL must start with redis:// or rediss://")
        return v

    @property
    def enabled(self) -> bool:
        return self.url is not None


class MonitorSettings(BaseSettings):
    """What to watch and how often."""

    model_config = SettingsConfigDict(env_prefix="", **_ENV_FILE_CONFIG)

    tracked_symbols: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_TRACKED_SYMBOLS),
        alias="TRACKED_SYMBOLS",
        description="Comma-separated CoinGecko coin ids",
    )
    price_alert_threshold: float = Field(
        default=5.0,
        alias="PRICE_ALERT_THRESHOLD",
        description="Minimum absolute 24h change (percent) that alerts",
        gt=0,
    )
    price_alert_tiers: Annotated[tuple[float, ...], NoDecode] = Field(
        default=(5.0, 10.0, 20.0),
        alias="PRICE_ALERT_TIERS",
        description="Comma-separated tier boundaries in percent",
    )

    price_interval_minutes: float = Field(default=5, alias="PRICE_INTERVAL_MINUTES", gt=0)
    news_interval_minutes: float = Field(default=30, alias="NEWS_INTERVAL_MINUTES", gt=0)
    nft_interval_minutes: float = Field(default=60, alias="NFT_INTERVAL_MINUTES", gt=0)
    onchain_interval_minutes: float = Field(default=120, alias="ONCHAIN_INTERVAL_MINUTES", gt=0)
    sentiment_interval_minutes: float = Field(
        default=60, alias="SENTIMENT_INTERVAL_MINUTES", gt=0
    )
    trending_interval_minutes: float = Field(default=60, alias="TRENDING_INTERVAL_MINUTES", gt=0)
    daily_summary_time: time = Field(
        default=time(9, 0),
        alias="DAILY_SUMMARY_TIME",
        description="UTC time of day for the daily summary (HH:MM)",
    )

    news_limit: int = Field(default=5, alias="NEWS_LIMIT", ge=1)
    news_post_delay_seconds: float = Field(
        default=2.0,
        alias="NEWS_POST_DELAY_SECONDS",
        description="Pause between consecutive news posts",
        ge=0,
    )
    min_send_interval_seconds: float = Field(
        default=1.0,
        alias="MIN_SEND_INTERVAL_SECONDS",
        description="Minimum spacing between two sends to the same target",
        ge=0,
    )

    @field_validator("tracked_symbols", mode="before")
    @classmethod
    def split_symbols(cls, v: Any) -> Any:
        return _split_csv(v)

    @field_validator("tracked_symbols")
    @classmethod
    def validate_symbols(cls, v: list[str]) -> list[str]:
        """Require at least one symbol."""
        if not v:
            raise ValueError("TRACKED_SYMBOLS must name at least one coin")
        return v

    @field_validator("price_alert_tiers", mode="before")
    @classmethod
    def split_tiers(cls, v: Any) -> Any:
        return _split_csv(v)

    @field_validator("price_alert_tiers")
    @classmethod
    def validate_tiers(cls, v: tuple[float, ...]) -> tuple[float, ...]:
        """Tier boundaries must be positive and strictly increasing."""
        if not v:
            raise ValueError("PRICE_ALERT_TIERS must list at least one boundary")
        if any(b <= 0 for b in v):
            raise ValueError("PRICE_ALERT_TIERS must be positive")
        if any(a >= b for a, b in zip(v, v[1:], strict=False)):
            raise ValueError("PRICE_ALERT_TIERS must be strictly increasing")
        return v


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from crypto_market_notifier.config import get_settings

        settings = get_settings()
        print(settings.monitor.tracked_symbols)
        print(settings.log_level)
        ```
    """

    model_config = _ENV_FILE_CONFIG

    # Nested configuration groups
    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    sources: SourceSettings = Field(default_factory=SourceSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)

    # Application settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    http_port: int = Field(
        default=3000,
        validation_alias=AliasChoices("HTTP_PORT", "PORT"),
        description="HTTP port for inbound webhooks and health endpoints",
        ge=1,
        le=65535,
    )
    dry_run: bool = Field(
        default=False,
        alias="DRY_RUN",
        description="Log alerts instead of sending them",
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a summary of settings with secrets redacted.

        Returns:
            Dictionary of settings with sensitive values masked.
        """
        from crypto_market_notifier.alerter.dispatcher import TARGET_NAMES

        return {
            "redis_url": self._redact_url(self.redis.url) if self.redis.url else "(not set)",
            "targets": {
                target: self._describe_target(target) for target in TARGET_NAMES
            },
            "sources": {
                "coingecko_api_key": _set_or_not(self.sources.coingecko_api_key),
                "etherscan_api_key": _set_or_not(self.sources.etherscan_api_key),
                "http_timeout_seconds": str(self.sources.http_timeout_seconds),
            },
            "tracked_symbols": ",".join(self.monitor.tracked_symbols),
            "price_alert_tiers": ",".join(f"{t:g}" for t in self.monitor.price_alert_tiers),
            "daily_summary_time": self.monitor.daily_summary_time.strftime("%H:%M"),
            "log_level": self.log_level,
            "http_port": str(self.http_port),
            "dry_run": str(self.dry_run),
        }

    def _describe_target(self, target: str) -> str:
        if self.discord.webhook_for(target):
            return "discord"
        if self.telegram.bot_token is not None and self.telegram.chat_for(target):
            return "telegram"
        return "(not set)"

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact password from URL if present."""
        if "@" in url and "://" in url:
            protocol_end = url.index("://") + 3
            at_pos = url.rindex("@")
            creds_part = url[protocol_end:at_pos]
            username = creds_part.split(":")[0]
            return f"{url[:protocol_end]}{username}:***@{url[at_pos + 1 :]}"
        return url


def _set_or_not(value: SecretStr | None) -> str:
    return "(set)" if value is not None else "(not set)"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
