"""Alert dispatcher routing events to named delivery targets."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Protocol

from crypto_market_notifier.alerter.channels import DiscordChannel, LogChannel, TelegramChannel
from crypto_market_notifier.alerter.errors import ConfigurationError, DeliveryError
from crypto_market_notifier.alerter.formatter import AlertFormatter
from crypto_market_notifier.alerter.throttle import SendThrottle

if TYPE_CHECKING:
    from crypto_market_notifier.alerter.models import FormattedAlert
    from crypto_market_notifier.config import Settings
    from crypto_market_notifier.detector.models import AlertEvent

logger = logging.getLogger(__name__)

# Logical delivery targets
PRICE_ALERTS = "price-alerts"
NEWS = "news"
NFT = "nft"
ONCHAIN = "onchain"
GENERAL_TRADING = "general-trading"

TARGET_NAMES = (PRICE_ALERTS, NEWS, NFT, ONCHAIN, GENERAL_TRADING)

DispatchCallback = Callable[[str, bool], None]


class AlertChannel(Protocol):
    """Protocol for alert delivery channels."""

    name: str

    async def send(self, alert: FormattedAlert) -> None:
        """Send alert to channel. Raises DeliveryError on failure."""
        ...


class Dispatcher:
    """Delivers events to logical targets, best effort.

    A target that resolves to no channel is a silent no-op. Sends to the
    same target are spaced by ``min_send_interval``; failures are logged
    and never retried.

    Example:
        ```python
        dispatcher = Dispatcher({"news": DiscordChannel(url), "nft": None})
        await dispatcher.dispatch("news", event)
        ```
    """

    def __init__(
        self,
        targets: Mapping[str, AlertChannel | None],
        *,
        formatter: AlertFormatter | None = None,
        min_send_interval: float = 1.0,
        on_result: DispatchCallback | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            targets: Channel (or None when unconfigured) per target name.
            formatter: Event formatter; a default one is created if omitted.
            min_send_interval: Minimum seconds between sends to one target.
            on_result: Called with (target, delivered) after every attempt.
        """
        self._targets = dict(targets)
        self._formatter = formatter or AlertFormatter()
        self._throttles = {
            name: SendThrottle(min_send_interval)
            for name, channel in self._targets.items()
            if channel is not None
        }
        self._on_result = on_result
        self._pending: set[asyncio.Task[bool]] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def resolve(self, target: str) -> AlertChannel | None:
        """Return the channel for a target, or None if unconfigured."""
        return self._targets.get(target)

    async def dispatch(self, target: str, event: AlertEvent) -> bool:
        """Format and deliver one event.

        Args:
            target: Logical target name.
            event: Event to deliver.

        Returns:
            True if the message was delivered, False otherwise.
        """
        channel = self.resolve(target)
        if channel is None:
            logger.debug("No channel for target %s, dropping %s", target, event.kind.value)
            return False

        delivered = False
        try:
            alert = self._formatter.format(event)
            await self._throttles[target].acquire()
            await channel.send(alert)
            delivered = True
            logger.info(
                "Delivered %s for %s to %s", event.kind.value, event.instrument_id, target
            )
        except DeliveryError as e:
            logger.error("Delivery to %s failed: %s", target, e)
        except Exception as e:
            logger.exception("Unexpected error delivering to %s: %s", target, e)

        self._report(target, delivered)
        return delivered

    def submit(self, target: str, event: AlertEvent) -> asyncio.Task[bool]:
        """Schedule a dispatch without waiting for it."""
        task = asyncio.create_task(self.dispatch(target, event), name=f"dispatch:{target}")
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[bool]) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Dispatch task failed: %s", task.exception())

    async def drain(self) -> None:
        """Wait for every submitted dispatch to finish."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def cancel_pending(self) -> None:
        for task in list(self._pending):
            task.cancel()

    def _report(self, target: str, delivered: bool) -> None:
        if self._on_result is None:
            return
        try:
            self._on_result(target, delivered)
        except Exception as e:
            logger.warning("Dispatch callback failed for %s: %s", target, e)


def resolve_channel(target: str, settings: Settings, *, dry_run: bool = False) -> AlertChannel:
    """Build the channel configured for a target.

    Discord webhooks take precedence over Telegram chats.

    Raises:
        ConfigurationError: If the target has no configured channel.
    """
    if dry_run:
        return LogChannel(name=target)

    timeout = settings.sources.http_timeout_seconds
    webhook_url = settings.discord.webhook_for(target)
    if webhook_url:
        return DiscordChannel(webhook_url, name=target, timeout=timeout)

    chat_id = settings.telegram.chat_for(target)
    if chat_id and settings.telegram.bot_token is not None:
        return TelegramChannel(
            settings.telegram.bot_token.get_secret_value(),
            chat_id,
            name=target,
            timeout=timeout,
        )

    raise ConfigurationError(f"No delivery channel configured for target '{target}'")


def resolve_targets(
    settings: Settings, *, dry_run: bool = False
) -> dict[str, AlertChannel | None]:
    """Resolve every known target; unconfigured ones map to None."""
    targets: dict[str, AlertChannel | None] = {}
    for target in TARGET_NAMES:
        try:
            targets[target] = resolve_channel(target, settings, dry_run=dry_run)
        except ConfigurationError as e:
            logger.warning("%s; alerts for it will be dropped", e)
            targets[target] = None
    return targets
