"""Etherscan gas oracle adapter."""

from __future__ import annotations

from crypto_market_notifier.sources.base import DEFAULT_TIMEOUT_SECONDS, FetchError, HttpSource
from crypto_market_notifier.sources.models import GasReading

ETHERSCAN_API_URL = "https://api.etherscan.io/api"


class EtherscanClient(HttpSource):
    """Fetches Ethereum gas prices. Requires a (free tier) API key."""

    name = "etherscan"

    def __init__(
        self,
        api_key: str,
        *,
        url: str = ETHERSCAN_API_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(timeout=timeout)
        self._api_key = api_key
        self.url = url

    async def get_gas_oracle(self) -> GasReading:
        """Return safe / standard / fast gas prices.

        Etherscan answers 200 with ``status: "0"`` on errors such as an
        invalid key; those are reported as FetchError too.
        """
        data = await self._get_json(
            self.url,
            params={"module": "gastracker", "action": "gasoracle", "apikey": self._api_key},
        )
        if isinstance(data, dict) and str(data.get("status", "1")) == "0":
            raise FetchError(self.name, f"API error: {data.get('result') or data.get('message')}")
        with self._parsing("gasoracle"):
            return GasReading.from_etherscan(data["result"])
