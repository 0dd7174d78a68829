"""Fear & Greed index adapter (alternative.me)."""

from __future__ import annotations

from crypto_market_notifier.sources.base import DEFAULT_TIMEOUT_SECONDS, HttpSource
from crypto_market_notifier.sources.models import SentimentReading

FEAR_GREED_URL = "https://api.alternative.me/fng/"


class FearGreedClient(HttpSource):
    """Fetches the current crypto Fear & Greed index."""

    name = "fear-greed"

    def __init__(
        self, *, url: str = FEAR_GREED_URL, timeout: float = DEFAULT_TIMEOUT_SECONDS
    ) -> None:
        super().__init__(timeout=timeout)
        self.url = url

    async def get_index(self) -> SentimentReading:
        """Return the latest reading."""
        data = await self._get_json(self.url)
        with self._parsing("fng"):
            return SentimentReading.from_alternative_me(data["data"][0])
