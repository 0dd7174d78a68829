"""Telegram Bot API channel implementation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from crypto_market_notifier.alerter.errors import DeliveryError
from crypto_market_notifier.alerter.throttle import RateWindow

if TYPE_CHECKING:
    from crypto_market_notifier.alerter.models import FormattedAlert

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org/bot{token}/sendMessage"


class TelegramChannel:
    """Telegram Bot API channel for sending alerts."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        *,
        name: str = "telegram",
        rate_limit_per_minute: int = 20,
        timeout: float = 10.0,
    ) -> None:
        """Initialize Telegram channel.

        Args:
            bot_token: Telegram bot token.
            chat_id: Target chat/channel ID.
            name: Channel name used in logs.
            rate_limit_per_minute: Maximum messages per minute.
            timeout: HTTP request timeout in seconds.
        """
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.name = name
        self.rate_limit_per_minute = rate_limit_per_minute
        self.timeout = timeout

        self._api_url = TELEGRAM_API_BASE.format(token=bot_token)
        self._rate_window = RateWindow(rate_limit_per_minute, label=name)

    async def send(self, alert: FormattedAlert) -> None:
        """Send alert to the Telegram chat.

        Raises:
            DeliveryError: On timeout, transport error or an API error reply.
        """
        await self._rate_window.acquire()

        payload = {
            "chat_id": self.chat_id,
            "text": alert.telegram_markdown,
            "parse_mode": "MarkdownV2",
            "disable_web_page_preview": False,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self._api_url, json=payload)
                result = response.json()
        except httpx.TimeoutException as e:
            raise DeliveryError(self.name, "API timeout") from e
        except httpx.HTTPError as e:
            raise DeliveryError(self.name, f"API error: {e}") from e
        except ValueError as e:
            raise DeliveryError(self.name, "API returned a non-JSON reply") from e

        if result.get("ok"):
            logger.debug("Telegram alert delivered to %s", self.name)
            return

        error_code = result.get("error_code", 0)
        description = result.get("description", "Unknown error")
        raise DeliveryError(self.name, f"API error {error_code}: {description}")
