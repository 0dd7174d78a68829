"""Fetch -> detect -> dispatch pipelines, one per schedule.

Each pipeline owns the state it compares against (the previous snapshot,
reading or list) and is run by exactly one scheduled job, so that state
is never touched concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any

from crypto_market_notifier.alerter.dispatcher import (
    GENERAL_TRADING,
    NEWS,
    NFT,
    ONCHAIN,
    PRICE_ALERTS,
    Dispatcher,
)
from crypto_market_notifier.detector import (
    AlertEvent,
    AlertKind,
    NewsDetector,
    PriceMoveDetector,
    SentimentShiftDetector,
    TierLadder,
    TrendingChangeDetector,
    rank_top_movers,
)
from crypto_market_notifier.scheduler.job import RunOutcome
from crypto_market_notifier.sources import (
    BlockchainInfoClient,
    CoinGeckoClient,
    EtherscanClient,
    FearGreedClient,
    FetchError,
    GasReading,
    SentimentReading,
    Snapshot,
    TrendingItem,
)

if TYPE_CHECKING:
    from crypto_market_notifier.config import Settings
    from crypto_market_notifier.storage.dedup import DedupStore

logger = logging.getLogger(__name__)

# Pipeline names (also the scheduled job names)
PRICE_PIPELINE = "price-alerts"
NEWS_PIPELINE = "crypto-news"
SENTIMENT_PIPELINE = "sentiment"
TRENDING_PIPELINE = "trending-coins"
NFT_PIPELINE = "nft-trending"
ONCHAIN_PIPELINE = "onchain-metrics"
DAILY_SUMMARY_PIPELINE = "daily-summary"

PIPELINE_NAMES = (
    PRICE_PIPELINE,
    NEWS_PIPELINE,
    SENTIMENT_PIPELINE,
    TRENDING_PIPELINE,
    NFT_PIPELINE,
    ONCHAIN_PIPELINE,
    DAILY_SUMMARY_PIPELINE,
)

BITCOIN_NETWORK = "bitcoin-network"
DAILY_SUMMARY_SUBJECT = "market"
DAILY_TRENDING_LIMIT = 5

TrendingFetcher = Callable[[], Awaitable[list[TrendingItem]]]


class Pipeline(ABC):
    """One fetch -> detect -> dispatch cycle per run.

    A FetchError skips the whole cycle: nothing is dispatched and the
    pipeline's comparison state is left untouched.
    """

    def __init__(self, dispatcher: Dispatcher, *, name: str, target: str) -> None:
        self.name = name
        self.target = target
        self._dispatcher = dispatcher

    async def run(self) -> RunOutcome:
        """Run one cycle and report its outcome."""
        try:
            events = await self.collect()
        except FetchError as e:
            logger.warning("%s: fetch failed, skipping cycle: %s", self.name, e)
            return RunOutcome.FETCH_FAILED

        if events:
            logger.info("%s: dispatching %d event(s) to %s", self.name, len(events), self.target)
            await self.publish(events)
        return RunOutcome.SUCCESS

    @abstractmethod
    async def collect(self) -> list[AlertEvent]:
        """Fetch fresh data and return the events worth announcing.

        Raises:
            FetchError: If the upstream data could not be obtained.
        """

    async def publish(self, events: Sequence[AlertEvent]) -> None:
        for event in events:
            await self._dispatcher.dispatch(self.target, event)


class PriceAlertPipeline(Pipeline):
    """Polls quotes and announces tier crossings."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        source: CoinGeckoClient,
        detector: PriceMoveDetector,
        symbols: Sequence[str],
        *,
        name: str = PRICE_PIPELINE,
        target: str = PRICE_ALERTS,
    ) -> None:
        super().__init__(dispatcher, name=name, target=target)
        self._source = source
        self._detector = detector
        self.symbols = list(symbols)
        self._previous: Snapshot | None = None

    @property
    def previous(self) -> Snapshot | None:
        """Snapshot from the last successful poll."""
        return self._previous

    async def collect(self) -> list[AlertEvent]:
        current = await self._source.get_prices(self.symbols)
        events = await self._detector.detect(current, self._previous)
        self._previous = current
        return events


class NewsPipeline(Pipeline):
    """Announces unseen news articles, one post at a time."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        source: CoinGeckoClient,
        detector: NewsDetector,
        *,
        limit: int = 5,
        post_delay: float = 2.0,
        name: str = NEWS_PIPELINE,
        target: str = NEWS,
    ) -> None:
        super().__init__(dispatcher, name=name, target=target)
        self._source = source
        self._detector = detector
        self.limit = limit
        self.post_delay = post_delay

    async def collect(self) -> list[AlertEvent]:
        items = await self._source.get_news(limit=self.limit)
        return await self._detector.detect(items)

    async def publish(self, events: Sequence[AlertEvent]) -> None:
        for i, event in enumerate(events):
            if i and self.post_delay > 0:
                await asyncio.sleep(self.post_delay)
            await self._dispatcher.dispatch(self.target, event)


class SentimentPipeline(Pipeline):
    """Announces Fear & Greed classification changes."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        source: FearGreedClient,
        detector: SentimentShiftDetector | None = None,
        *,
        name: str = SENTIMENT_PIPELINE,
        target: str = GENERAL_TRADING,
    ) -> None:
        super().__init__(dispatcher, name=name, target=target)
        self._source = source
        self._detector = detector or SentimentShiftDetector()
        self._previous: SentimentReading | None = None

    async def collect(self) -> list[AlertEvent]:
        current = await self._source.get_index()
        events = self._detector.detect(current, self._previous)
        self._previous = current
        return events


class TrendingPipeline(Pipeline):
    """Announces new entrants to a trending list (coins or NFT collections)."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        fetch: TrendingFetcher,
        detector: TrendingChangeDetector,
        *,
        name: str,
        target: str,
    ) -> None:
        super().__init__(dispatcher, name=name, target=target)
        self._fetch = fetch
        self._detector = detector
        self._previous: list[TrendingItem] | None = None

    async def collect(self) -> list[AlertEvent]:
        current = await self._fetch()
        events = self._detector.detect(current, self._previous)
        self._previous = current
        return events


class OnChainReportPipeline(Pipeline):
    """Posts Bitcoin network stats, plus Ethereum gas when available."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        chain: BlockchainInfoClient,
        gas: EtherscanClient | None = None,
        *,
        name: str = ONCHAIN_PIPELINE,
        target: str = ONCHAIN,
    ) -> None:
        super().__init__(dispatcher, name=name, target=target)
        self._chain = chain
        self._gas = gas

    async def collect(self) -> list[AlertEvent]:
        stats = await self._chain.get_stats()
        gas: GasReading | None = None
        if self._gas is not None:
            try:
                gas = await self._gas.get_gas_oracle()
            except FetchError as e:
                logger.warning("%s: gas oracle unavailable: %s", self.name, e)

        return [
            AlertEvent(
                instrument_id=BITCOIN_NETWORK,
                kind=AlertKind.MARKET_REPORT,
                payload={"report": "onchain", "chain_stats": stats, "gas": gas},
            )
        ]


class DailySummaryPipeline(Pipeline):
    """Posts the daily market summary.

    Prices, sentiment and trending are fetched concurrently and may fail
    independently. The report goes out with whatever parts succeeded and
    is skipped only when all of them failed.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        coingecko: CoinGeckoClient,
        fear_greed: FearGreedClient,
        symbols: Sequence[str],
        *,
        top_movers: int = 3,
        name: str = DAILY_SUMMARY_PIPELINE,
        target: str = GENERAL_TRADING,
    ) -> None:
        super().__init__(dispatcher, name=name, target=target)
        self._coingecko = coingecko
        self._fear_greed = fear_greed
        self.symbols = list(symbols)
        self.top_movers = top_movers

    async def collect(self) -> list[AlertEvent]:
        results = await asyncio.gather(
            self._coingecko.get_prices(self.symbols),
            self._fear_greed.get_index(),
            self._coingecko.get_trending(limit=DAILY_TRENDING_LIMIT),
            return_exceptions=True,
        )
        parts: list[Any] = []
        for part in results:
            if isinstance(part, FetchError):
                logger.warning("%s: part unavailable: %s", self.name, part)
                parts.append(None)
            elif isinstance(part, BaseException):
                raise part
            else:
                parts.append(part)

        snapshot, sentiment, trending = parts
        if snapshot is None and sentiment is None and trending is None:
            raise FetchError(self.name, "every summary source failed")

        return [
            AlertEvent(
                instrument_id=DAILY_SUMMARY_SUBJECT,
                kind=AlertKind.MARKET_REPORT,
                payload={
                    "report": "daily_summary",
                    "sentiment": sentiment,
                    "top_movers": (
                        tuple(rank_top_movers(snapshot, self.top_movers)) if snapshot else ()
                    ),
                    "trending": tuple(trending or ()),
                },
            )
        ]


def create_pipelines(
    settings: Settings, dispatcher: Dispatcher, store: DedupStore
) -> list[Pipeline]:
    """Build every pipeline from settings.

    Args:
        settings: Application settings.
        dispatcher: Shared dispatcher.
        store: Shared dedup store (news ids and price tiers).

    Returns:
        Pipelines in PIPELINE_NAMES order.
    """
    sources = settings.sources
    monitor = settings.monitor
    timeout = sources.http_timeout_seconds

    coingecko = CoinGeckoClient(
        api_key=(
            sources.coingecko_api_key.get_secret_value() if sources.coingecko_api_key else None
        ),
        timeout=timeout,
    )
    fear_greed = FearGreedClient(timeout=timeout)
    etherscan = (
        EtherscanClient(sources.etherscan_api_key.get_secret_value(), timeout=timeout)
        if sources.etherscan_api_key
        else None
    )
    if etherscan is None:
        logger.info("ETHERSCAN_API_KEY not set, on-chain reports will omit gas prices")

    ladder = TierLadder.build(monitor.price_alert_threshold, monitor.price_alert_tiers)

    async def fetch_trending() -> list[TrendingItem]:
        return await coingecko.get_trending()

    async def fetch_nfts() -> list[TrendingItem]:
        return await coingecko.get_nft_collections()

    return [
        PriceAlertPipeline(
            dispatcher,
            coingecko,
            PriceMoveDetector(store, ladder),
            monitor.tracked_symbols,
        ),
        NewsPipeline(
            dispatcher,
            coingecko,
            NewsDetector(store),
            limit=monitor.news_limit,
            post_delay=monitor.news_post_delay_seconds,
        ),
        SentimentPipeline(dispatcher, fear_greed),
        TrendingPipeline(
            dispatcher,
            fetch_trending,
            TrendingChangeDetector("trending-coins"),
            name=TRENDING_PIPELINE,
            target=GENERAL_TRADING,
        ),
        TrendingPipeline(
            dispatcher,
            fetch_nfts,
            TrendingChangeDetector("nft-collections"),
            name=NFT_PIPELINE,
            target=NFT,
        ),
        OnChainReportPipeline(
            dispatcher, BlockchainInfoClient(timeout=timeout), etherscan
        ),
        DailySummaryPipeline(dispatcher, coingecko, fear_greed, monitor.tracked_symbols),
    ]
