"""Discord webhook channel implementation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from crypto_market_notifier.alerter.errors import DeliveryError
from crypto_market_notifier.alerter.throttle import RateWindow

if TYPE_CHECKING:
    from crypto_market_notifier.alerter.models import FormattedAlert

logger = logging.getLogger(__name__)


class DiscordChannel:
    """Discord webhook channel for sending alerts.

    Posts one embed per alert. Delivery is best effort: a failed post
    raises DeliveryError and is not retried.
    """

    def __init__(
        self,
        webhook_url: str,
        *,
        name: str = "discord",
        rate_limit_per_minute: int = 30,
        timeout: float = 10.0,
    ) -> None:
        """Initialize Discord channel.

        Args:
            webhook_url: Discord webhook URL.
            name: Channel name used in logs.
            rate_limit_per_minute: Maximum messages per minute (Discord limit is 30).
            timeout: HTTP request timeout in seconds.
        """
        self.webhook_url = webhook_url
        self.name = name
        self.rate_limit_per_minute = rate_limit_per_minute
        self.timeout = timeout
        self._rate_window = RateWindow(rate_limit_per_minute, label=name)

    async def send(self, alert: FormattedAlert) -> None:
        """Send alert to the Discord webhook.

        Raises:
            DeliveryError: On timeout, transport error or a non-2xx answer.
        """
        await self._rate_window.acquire()

        payload = {"embeds": [alert.discord_embed]}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.webhook_url, json=payload)
        except httpx.TimeoutException as e:
            raise DeliveryError(self.name, "webhook timeout") from e
        except httpx.HTTPError as e:
            raise DeliveryError(self.name, f"webhook error: {e}") from e

        if response.status_code in (200, 204):
            logger.debug("Discord alert delivered to %s", self.name)
            return

        if response.status_code == 429:
            retry_after = response.json().get("retry_after", "?")
            raise DeliveryError(self.name, f"rate limited, retry after {retry_after}s")

        raise DeliveryError(
            self.name, f"webhook failed: {response.status_code} {response.text[:200]}"
        )
