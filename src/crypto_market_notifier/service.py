"""Service wiring: store, dispatcher, pipelines, scheduler and HTTP server."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from redis.asyncio import Redis

from crypto_market_notifier.alerter.dispatcher import Dispatcher, resolve_targets
from crypto_market_notifier.health import PipelineHealthMonitor
from crypto_market_notifier.pipelines import (
    DAILY_SUMMARY_PIPELINE,
    NEWS_PIPELINE,
    NFT_PIPELINE,
    ONCHAIN_PIPELINE,
    PRICE_PIPELINE,
    SENTIMENT_PIPELINE,
    TRENDING_PIPELINE,
    Pipeline,
    create_pipelines,
)
from crypto_market_notifier.scheduler import (
    DailyTrigger,
    IntervalTrigger,
    RunOutcome,
    ScheduledJob,
    Scheduler,
    Trigger,
)
from crypto_market_notifier.storage.dedup import DedupStore, InMemoryDedupStore, RedisDedupStore
from crypto_market_notifier.webhooks import WebhookServer

if TYPE_CHECKING:
    from crypto_market_notifier.config import Settings

logger = logging.getLogger(__name__)

# Pipelines whose first run only records a baseline start right away
BASELINE_PIPELINES = frozenset(
    {PRICE_PIPELINE, SENTIMENT_PIPELINE, TRENDING_PIPELINE, NFT_PIPELINE}
)


def create_trigger(name: str, settings: Settings) -> Trigger:
    """Build the trigger configured for a pipeline.

    Raises:
        ValueError: For an unknown pipeline name.
    """
    monitor = settings.monitor
    if name == DAILY_SUMMARY_PIPELINE:
        return DailyTrigger(monitor.daily_summary_time)

    minutes = {
        PRICE_PIPELINE: monitor.price_interval_minutes,
        NEWS_PIPELINE: monitor.news_interval_minutes,
        SENTIMENT_PIPELINE: monitor.sentiment_interval_minutes,
        TRENDING_PIPELINE: monitor.trending_interval_minutes,
        NFT_PIPELINE: monitor.nft_interval_minutes,
        ONCHAIN_PIPELINE: monitor.onchain_interval_minutes,
    }
    if name not in minutes:
        raise ValueError(f"Unknown pipeline: {name}")
    return IntervalTrigger.every_minutes(
        minutes[name], run_immediately=name in BASELINE_PIPELINES
    )


def create_store(settings: Settings) -> DedupStore:
    """Use Redis when REDIS_URL is set, memory otherwise."""
    if settings.redis.url:
        logger.info("Using Redis dedup store")
        return RedisDedupStore(Redis.from_url(settings.redis.url))
    return InMemoryDedupStore()


class NotifierService:
    """The running notifier: scheduled pipelines plus the webhook server.

    Example:
        ```python
        service = NotifierService(get_settings(), dry_run=True)
        await service.start()
        ...
        await service.stop()
        ```
    """

    def __init__(
        self,
        settings: Settings,
        *,
        dry_run: bool = False,
        store: DedupStore | None = None,
    ) -> None:
        """Wire every component.

        Args:
            settings: Application settings.
            dry_run: Log alerts instead of sending them.
            store: Dedup store override; built from settings if omitted.
        """
        self.settings = settings
        self.dry_run = dry_run
        self.store = store if store is not None else create_store(settings)
        self.monitor = PipelineHealthMonitor()
        self.dispatcher = Dispatcher(
            resolve_targets(settings, dry_run=dry_run),
            min_send_interval=settings.monitor.min_send_interval_seconds,
            on_result=self.monitor.record_dispatch,
        )
        self.pipelines: dict[str, Pipeline] = {
            p.name: p for p in create_pipelines(settings, self.dispatcher, self.store)
        }
        self.scheduler = Scheduler(
            [
                ScheduledJob(
                    name,
                    pipeline.run,
                    create_trigger(name, settings),
                    on_outcome=self.monitor.record_run,
                )
                for name, pipeline in self.pipelines.items()
            ]
        )
        self.server = WebhookServer(self.dispatcher, self.monitor)
        for name in self.pipelines:
            self.monitor.register_pipeline(name)

    @property
    def is_running(self) -> bool:
        return self.scheduler.is_running

    async def start(self) -> None:
        """Start the HTTP server and every pipeline timer."""
        await self.server.start(port=self.settings.http_port)
        await self.scheduler.start()
        logger.info(
            "Notifier running: %d pipeline(s)%s",
            len(self.pipelines),
            " (dry run)" if self.dry_run else "",
        )

    async def stop(self) -> None:
        """Stop timers, in-flight deliveries and the HTTP server."""
        await self.scheduler.stop()
        self.dispatcher.cancel_pending()
        await self.server.stop()
        if isinstance(self.store, RedisDedupStore):
            await self.store.close()
        logger.info("Notifier stopped")

    async def run_pipeline_once(self, name: str) -> RunOutcome:
        """Run one pipeline immediately and wait for its deliveries."""
        outcome = await self.scheduler.run_now(name)
        await self.dispatcher.drain()
        return outcome
