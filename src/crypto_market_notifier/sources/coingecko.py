"""CoinGecko adapter: prices, news, trending coins and NFT collections."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from crypto_market_notifier.sources.base import DEFAULT_TIMEOUT_SECONDS, FetchError, HttpSource
from crypto_market_notifier.sources.models import NewsItem, Quote, Snapshot, TrendingItem

logger = logging.getLogger(__name__)

COINGECKO_BASE = "https://api.coingecko.com/api/v3"
DEFAULT_NEWS_LIMIT = 5
DEFAULT_TRENDING_LIMIT = 10
DEFAULT_NFT_LIMIT = 5


class CoinGeckoClient(HttpSource):
    """Async client for the public CoinGecko API.

    Example:
        ```python
        client = CoinGeckoClient()
        snapshot = await client.get_prices(["bitcoin", "ethereum"])
        print(snapshot["bitcoin"].percent_change_24h)
        ```
    """

    name = "coingecko"

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str = COINGECKO_BASE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Optional demo API key (sent as ``x-cg-demo-api-key``).
            base_url: API root.
            timeout: Per-request timeout in seconds.
        """
        headers = {"accept": "application/json"}
        if api_key:
            headers["x-cg-demo-api-key"] = api_key
        super().__init__(timeout=timeout, headers=headers)
        self.base_url = base_url.rstrip("/")

    async def get_prices(self, instrument_ids: Sequence[str]) -> Snapshot:
        """Fetch USD price, 24h change, volume and market cap.

        Quotes keep the order of ``instrument_ids``; ids unknown to
        CoinGecko are left out of the snapshot.
        """
        data = await self._get_json(
            f"{self.base_url}/simple/price",
            params={
                "ids": ",".join(instrument_ids),
                "vs_currencies": "usd",
                "include_24hr_change": "true",
                "include_24hr_vol": "true",
                "include_market_cap": "true",
            },
        )
        if not isinstance(data, dict):
            raise FetchError(self.name, f"expected object, got {type(data).__name__}")

        fetched_at = datetime.now(UTC)
        ordered = [i for i in instrument_ids if i in data]
        ordered += [i for i in data if i not in ordered]
        with self._parsing("simple/price"):
            quotes = [Quote.from_coingecko(i, data[i], fetched_at) for i in ordered]

        missing = set(instrument_ids) - set(data)
        if missing:
            logger.debug("CoinGecko returned no price for: %s", ", ".join(sorted(missing)))
        return Snapshot.from_quotes(quotes, fetched_at)

    async def get_news(self, limit: int = DEFAULT_NEWS_LIMIT) -> list[NewsItem]:
        """Fetch the latest news articles, newest first."""
        data = await self._get_json(f"{self.base_url}/news")
        with self._parsing("news"):
            articles = data["data"][:limit]
            return [NewsItem.from_coingecko(article) for article in articles]

    async def get_trending(self, limit: int = DEFAULT_TRENDING_LIMIT) -> list[TrendingItem]:
        """Fetch the trending coins list in rank order."""
        data = await self._get_json(f"{self.base_url}/search/trending")
        with self._parsing("search/trending"):
            coins = data["coins"][:limit]
            return [TrendingItem.from_coingecko_coin(coin["item"]) for coin in coins]

    async def get_nft_collections(self, limit: int = DEFAULT_NFT_LIMIT) -> list[TrendingItem]:
        """Fetch the head of the NFT collections list."""
        data = await self._get_json(f"{self.base_url}/nfts/list")
        with self._parsing("nfts/list"):
            return [TrendingItem.from_coingecko_nft(nft) for nft in data[:limit]]
