"""Tests for service wiring."""

from __future__ import annotations

import os
from datetime import time, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from crypto_market_notifier.alerter.channels import LogChannel
from crypto_market_notifier.config import Settings
from crypto_market_notifier.detector.models import AlertEvent, AlertKind
from crypto_market_notifier.pipelines import PIPELINE_NAMES
from crypto_market_notifier.scheduler import DailyTrigger, IntervalTrigger, RunOutcome
from crypto_market_notifier.service import (
    BASELINE_PIPELINES,
    NotifierService,
    create_store,
    create_trigger,
)
from crypto_market_notifier.sources import ChainStats, FetchError
from crypto_market_notifier.storage.dedup import InMemoryDedupStore, RedisDedupStore


def make_settings(env: dict[str, str] | None = None) -> Settings:
    with patch.dict(os.environ, env or {}, clear=True):
        return Settings(_env_file=None)


@pytest.fixture
def settings() -> Settings:
    return make_settings({"PRICE_INTERVAL_MINUTES": "2", "DAILY_SUMMARY_TIME": "07:30"})


class TestCreateTrigger:
    """Tests for create_trigger."""

    def test_price_runs_immediately(self, settings) -> None:
        trigger = create_trigger("price-alerts", settings)

        assert isinstance(trigger, IntervalTrigger)
        assert trigger.interval == timedelta(minutes=2)
        assert trigger.run_immediately is True

    def test_news_waits_one_interval(self, settings) -> None:
        trigger = create_trigger("crypto-news", settings)

        assert isinstance(trigger, IntervalTrigger)
        assert trigger.interval == timedelta(minutes=30)
        assert trigger.run_immediately is False

    def test_daily_summary(self, settings) -> None:
        trigger = create_trigger("daily-summary", settings)

        assert isinstance(trigger, DailyTrigger)
        assert trigger.at == time(7, 30)

    def test_every_pipeline_has_a_trigger(self, settings) -> None:
        for name in PIPELINE_NAMES:
            create_trigger(name, settings)
        assert BASELINE_PIPELINES <= set(PIPELINE_NAMES)

    def test_unknown_pipeline(self, settings) -> None:
        with pytest.raises(ValueError, match="Unknown pipeline"):
            create_trigger("weather", settings)


class TestCreateStore:
    """Tests for create_store."""

    def test_memory_by_default(self, settings) -> None:
        assert isinstance(create_store(settings), InMemoryDedupStore)

    def test_redis_when_configured(self) -> None:
        settings = make_settings({"REDIS_URL": "redis://localhost:6379/0"})

        with patch("crypto_market_notifier.service.Redis") as mock_redis:
            store = create_store(settings)

        assert isinstance(store, RedisDedupStore)
        mock_redis.from_url.assert_called_once_with("redis://localhost:6379/0")


class TestNotifierService:
    """Tests for NotifierService."""

    def test_dry_run_wiring(self, settings) -> None:
        service = NotifierService(settings, dry_run=True)

        assert tuple(service.pipelines) == PIPELINE_NAMES
        assert [job.name for job in service.scheduler.jobs] == list(PIPELINE_NAMES)
        assert isinstance(service.dispatcher.resolve("news"), LogChannel)
        assert set(service.monitor.get_health_report().pipelines) == set(PIPELINE_NAMES)

    def test_unconfigured_targets_resolve_to_none(self, settings) -> None:
        service = NotifierService(settings)

        assert service.dispatcher.resolve("news") is None

    async def test_run_pipeline_once_delivers(self, settings) -> None:
        service = NotifierService(settings, dry_run=True, store=InMemoryDedupStore())
        event = AlertEvent(
            instrument_id="bitcoin-network",
            kind=AlertKind.MARKET_REPORT,
            payload={"report": "onchain", "chain_stats": ChainStats(1, 1, 1, 1), "gas": None},
        )
        service.pipelines["onchain-metrics"].collect = AsyncMock(return_value=[event])

        outcome = await service.run_pipeline_once("onchain-metrics")

        assert outcome is RunOutcome.SUCCESS
        report = service.monitor.get_health_report()
        assert report.pipelines["onchain-metrics"].runs == 1
        assert report.alerts_delivered == 1

    async def test_run_pipeline_once_fetch_failure(self, settings) -> None:
        service = NotifierService(settings, dry_run=True)
        service.pipelines["crypto-news"].collect = AsyncMock(
            side_effect=FetchError("coingecko", "HTTP 503")
        )

        outcome = await service.run_pipeline_once("crypto-news")

        assert outcome is RunOutcome.FETCH_FAILED
        assert service.monitor.get_health_report().pipelines["crypto-news"].failures == 1

    async def test_start_and_stop(self, settings) -> None:
        service = NotifierService(settings, dry_run=True)
        service.server = MagicMock(start=AsyncMock(), stop=AsyncMock())
        service.scheduler = MagicMock(start=AsyncMock(), stop=AsyncMock())

        await service.start()
        service.server.start.assert_awaited_once_with(port=settings.http_port)
        service.scheduler.start.assert_awaited_once()

        await service.stop()
        service.scheduler.stop.assert_awaited_once()
        service.server.stop.assert_awaited_once()

    async def test_stop_closes_redis_store(self, settings) -> None:
        redis = AsyncMock()
        service = NotifierService(settings, dry_run=True, store=RedisDedupStore(redis))

        await service.stop()

        redis.aclose.assert_awaited_once()
