"""Tests for the alert dispatcher."""

from __future__ import annotations

import asyncio
import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from crypto_market_notifier.alerter.channels import DiscordChannel, LogChannel, TelegramChannel
from crypto_market_notifier.alerter.dispatcher import (
    GENERAL_TRADING,
    NEWS,
    NFT,
    PRICE_ALERTS,
    TARGET_NAMES,
    Dispatcher,
    resolve_channel,
    resolve_targets,
)
from crypto_market_notifier.alerter.errors import ConfigurationError, DeliveryError
from crypto_market_notifier.config import Settings
from crypto_market_notifier.detector.models import AlertEvent, AlertKind

WEBHOOK = "https://discord.com/api/webhooks/123/abc"

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def event() -> AlertEvent:
    return AlertEvent(
        instrument_id="BTCUSDT",
        kind=AlertKind.EXTERNAL_SIGNAL,
        payload={"symbol": "BTCUSDT", "message": "breakout", "action": "buy", "price": 64000},
    )


def make_channel(name: str = "mock") -> MagicMock:
    channel = MagicMock()
    channel.name = name
    channel.send = AsyncMock()
    return channel


def make_settings(env: dict[str, str]) -> Settings:
    with patch.dict(os.environ, env, clear=True):
        return Settings(_env_file=None)


# ============================================================================
# Dispatcher Tests
# ============================================================================


class TestDispatcher:
    """Tests for Dispatcher."""

    async def test_delivers_formatted_alert(self, event) -> None:
        channel = make_channel()
        dispatcher = Dispatcher({GENERAL_TRADING: channel}, min_send_interval=0)

        assert await dispatcher.dispatch(GENERAL_TRADING, event) is True

        alert = channel.send.await_args.args[0]
        assert alert.title == "📈 TradingView Alert"
        assert alert.body == "BTCUSDT - breakout"

    async def test_unresolved_target_is_noop(self, event) -> None:
        on_result = MagicMock()
        dispatcher = Dispatcher({NFT: None}, on_result=on_result)

        assert await dispatcher.dispatch(NFT, event) is False
        assert await dispatcher.dispatch("unknown", event) is False
        on_result.assert_not_called()

    async def test_delivery_error_is_not_raised(self, event) -> None:
        channel = make_channel()
        channel.send.side_effect = DeliveryError(channel="news", message="HTTP 500: boom")
        on_result = MagicMock()
        dispatcher = Dispatcher({NEWS: channel}, min_send_interval=0, on_result=on_result)

        assert await dispatcher.dispatch(NEWS, event) is False

        channel.send.assert_awaited_once()
        on_result.assert_called_once_with(NEWS, False)

    async def test_unexpected_error_is_contained(self, event) -> None:
        channel = make_channel()
        channel.send.side_effect = RuntimeError("socket closed")
        dispatcher = Dispatcher({NEWS: channel}, min_send_interval=0)

        assert await dispatcher.dispatch(NEWS, event) is False

    async def test_result_callback_on_success(self, event) -> None:
        on_result = MagicMock()
        dispatcher = Dispatcher(
            {PRICE_ALERTS: make_channel()}, min_send_interval=0, on_result=on_result
        )

        await dispatcher.dispatch(PRICE_ALERTS, event)

        on_result.assert_called_once_with(PRICE_ALERTS, True)

    async def test_failing_callback_is_ignored(self, event) -> None:
        dispatcher = Dispatcher(
            {NEWS: make_channel()},
            min_send_interval=0,
            on_result=MagicMock(side_effect=ValueError("bad metric")),
        )

        assert await dispatcher.dispatch(NEWS, event) is True

    async def test_sends_to_one_target_are_spaced(self, event) -> None:
        send_times: list[float] = []
        loop = asyncio.get_running_loop()
        channel = make_channel()
        channel.send.side_effect = lambda alert: send_times.append(loop.time())
        dispatcher = Dispatcher({NEWS: channel}, min_send_interval=0.05)

        await asyncio.gather(dispatcher.dispatch(NEWS, event), dispatcher.dispatch(NEWS, event))

        assert len(send_times) == 2
        assert send_times[1] - send_times[0] >= 0.04

    async def test_submit_and_drain(self, event) -> None:
        channel = make_channel()
        dispatcher = Dispatcher({GENERAL_TRADING: channel}, min_send_interval=0)

        task = dispatcher.submit(GENERAL_TRADING, event)
        assert dispatcher.pending_count == 1

        await dispatcher.drain()

        assert task.result() is True
        assert dispatcher.pending_count == 0
        channel.send.assert_awaited_once()

    async def test_cancel_pending(self, event) -> None:
        release = asyncio.Event()

        async def hang(alert: object) -> None:
            await release.wait()

        channel = make_channel()
        channel.send.side_effect = hang
        dispatcher = Dispatcher({NEWS: channel}, min_send_interval=0)

        task = dispatcher.submit(NEWS, event)
        await asyncio.sleep(0)
        dispatcher.cancel_pending()
        await asyncio.gather(task, return_exceptions=True)

        assert task.cancelled()
        assert dispatcher.pending_count == 0


# ============================================================================
# Channel Resolution Tests
# ============================================================================


class TestResolveChannel:
    """Tests for resolve_channel and resolve_targets."""

    def test_dry_run_logs_everything(self) -> None:
        settings = make_settings({})
        channel = resolve_channel(NEWS, settings, dry_run=True)

        assert isinstance(channel, LogChannel)
        assert channel.name == NEWS

    def test_discord_webhook(self) -> None:
        settings = make_settings({"DISCORD_NEWS_WEBHOOK_URL": WEBHOOK})
        channel = resolve_channel(NEWS, settings)

        assert isinstance(channel, DiscordChannel)
        assert channel.webhook_url == WEBHOOK
        assert channel.name == NEWS

    def test_telegram_chat(self) -> None:
        settings = make_settings(
            {
                "TELEGRAM_BOT_TOKEN": "123456:ABC",
                "TELEGRAM_CHAT_IDS": '{"general-trading": -100123}',
            }
        )
        channel = resolve_channel(GENERAL_TRADING, settings)

        assert isinstance(channel, TelegramChannel)
        assert channel.chat_id == "-100123"

    def test_discord_preferred_over_telegram(self) -> None:
        settings = make_settings(
            {
                "DISCORD_NEWS_WEBHOOK_URL": WEBHOOK,
                "TELEGRAM_BOT_TOKEN": "123456:ABC",
                "TELEGRAM_CHAT_IDS": '{"news": "-100"}',
            }
        )
        assert isinstance(resolve_channel(NEWS, settings), DiscordChannel)

    def test_unconfigured_target_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="'nft'"):
            resolve_channel(NFT, make_settings({}))

    def test_resolve_targets_maps_missing_to_none(self) -> None:
        settings = make_settings({"DISCORD_PRICE_ALERTS_WEBHOOK_URL": WEBHOOK})
        targets = resolve_targets(settings)

        assert set(targets) == set(TARGET_NAMES)
        assert isinstance(targets[PRICE_ALERTS], DiscordChannel)
        assert targets[NEWS] is None
        assert targets[NFT] is None

    def test_resolve_targets_dry_run(self) -> None:
        targets = resolve_targets(make_settings({}), dry_run=True)
        assert all(isinstance(channel, LogChannel) for channel in targets.values())
