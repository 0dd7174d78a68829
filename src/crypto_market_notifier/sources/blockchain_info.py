"""Bitcoin network stats adapter (blockchain.info)."""

from __future__ import annotations

from crypto_market_notifier.sources.base import DEFAULT_TIMEOUT_SECONDS, HttpSource
from crypto_market_notifier.sources.models import ChainStats

BLOCKCHAIN_STATS_URL = "https://blockchain.info/stats"


class BlockchainInfoClient(HttpSource):
    name = "blockchain-info"

    def __init__(
        self, *, url: str = BLOCKCHAIN_STATS_URL, timeout: float = DEFAULT_TIMEOUT_SECONDS
    ) -> None:
        super().__init__(timeout=timeout)
        self.url = url

    async def get_stats(self) -> ChainStats:
        data = await self._get_json(self.url, params={"format": "json"})
        with self._parsing("stats"):
            return ChainStats.from_blockchain_info(data)
