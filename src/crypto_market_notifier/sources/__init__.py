"""Source adapters - market data fetching and normalization."""

from crypto_market_notifier.sources.alternative_me import FearGreedClient
from crypto_market_notifier.sources.base import FetchError, HttpSource
from crypto_market_notifier.sources.blockchain_info import BlockchainInfoClient
from crypto_market_notifier.sources.coingecko import CoinGeckoClient
from crypto_market_notifier.sources.etherscan import EtherscanClient
from crypto_market_notifier.sources.models import (
    ChainStats,
    GasReading,
    NewsItem,
    Quote,
    SentimentReading,
    Snapshot,
    TrendingItem,
)

__all__ = [
    "BlockchainInfoClient",
    "ChainStats",
    "CoinGeckoClient",
    "EtherscanClient",
    "FearGreedClient",
    "FetchError",
    "GasReading",
    "HttpSource",
    "NewsItem",
    "Quote",
    "SentimentReading",
    "Snapshot",
    "TrendingItem",
]
