"""Data models for the sources module."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any


def _as_float(value: Any) -> float:
    """Coerce an optional numeric API value to float (None -> 0.0)."""
    if value is None:
        return 0.0
    return float(value)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a unix timestamp (seconds or milliseconds) or ISO string."""
    if value is None or value == "":
        return None
    if isinstance(value, int | float) or (isinstance(value, str) and value.isdigit()):
        ts = float(value)
        if ts > 1e12:
            ts /= 1000.0
        return datetime.fromtimestamp(ts, UTC)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


@dataclass(frozen=True)
class Quote:
    """Market data for a single instrument at fetch time.

    Attributes:
        instrument_id: Source identifier (e.g. CoinGecko id ``bitcoin``).
        value: Price in USD.
        percent_change_24h: Signed 24h change in percent.
        volume_24h: 24h traded volume in USD.
        market_cap: Market capitalization in USD.
        fetched_at: When the snapshot containing this quote was fetched.
    """

    instrument_id: str
    value: float
    percent_change_24h: float
    volume_24h: float
    market_cap: float
    fetched_at: datetime

    @classmethod
    def from_coingecko(
        cls, instrument_id: str, data: Mapping[str, Any], fetched_at: datetime
    ) -> Quote:
        """Create a Quote from a ``simple/price`` entry."""
        return cls(
            instrument_id=instrument_id,
            value=float(data["usd"]),
            percent_change_24h=_as_float(data.get("usd_24h_change")),
            volume_24h=_as_float(data.get("usd_24h_vol")),
            market_cap=_as_float(data.get("usd_market_cap")),
            fetched_at=fetched_at,
        )


@dataclass(frozen=True)
class Snapshot:
    """Immutable set of quotes produced by one poll of a price source.

    Iteration follows the order of the source response.
    """

    quotes: Mapping[str, Quote]
    fetched_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        object.__setattr__(self, "quotes", MappingProxyType(dict(self.quotes)))

    @classmethod
    def from_quotes(cls, quotes: list[Quote], fetched_at: datetime | None = None) -> Snapshot:
        """Build a snapshot from an ordered list of quotes."""
        when = fetched_at or (quotes[0].fetched_at if quotes else datetime.now(UTC))
        return cls(quotes={q.instrument_id: q for q in quotes}, fetched_at=when)

    def __contains__(self, instrument_id: object) -> bool:
        return instrument_id in self.quotes

    def __getitem__(self, instrument_id: str) -> Quote:
        return self.quotes[instrument_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self.quotes)

    def __len__(self) -> int:
        return len(self.quotes)

    def get(self, instrument_id: str) -> Quote | None:
        """Return the quote for an instrument, or None if absent."""
        return self.quotes.get(instrument_id)

    def items(self) -> Iterator[tuple[str, Quote]]:
        """Iterate (instrument_id, quote) pairs in source order."""
        return iter(self.quotes.items())


@dataclass(frozen=True)
class NewsItem:
    """A news article. Identity is ``id``."""

    id: str
    title: str
    url: str
    published_at: datetime | None = None
    description: str = ""
    thumbnail_url: str | None = None

    @classmethod
    def from_coingecko(cls, data: Mapping[str, Any]) -> NewsItem:
        """Create a NewsItem from a CoinGecko ``news`` entry.

        Articles without an ``id`` fall back to their URL as identity.
        """
        url = str(data.get("url") or "")
        item_id = data.get("id")
        if item_id is None or item_id == "":
            if not url:
                raise KeyError("id")
            item_id = url
        return cls(
            id=str(item_id),
            title=str(data.get("title") or "Untitled"),
            url=url,
            published_at=parse_timestamp(data.get("created_at") or data.get("updated_at")),
            description=str(data.get("description") or ""),
            thumbnail_url=data.get("thumb_2x") or data.get("image"),
        )


@dataclass(frozen=True)
class SentimentReading:
    """Fear & Greed index reading (0 = extreme fear, 100 = extreme greed)."""

    value: int
    classification: str
    timestamp: datetime | None = None

    @classmethod
    def from_alternative_me(cls, data: Mapping[str, Any]) -> SentimentReading:
        """Create a reading from an alternative.me ``fng`` entry."""
        return cls(
            value=int(data["value"]),
            classification=str(data["value_classification"]),
            timestamp=parse_timestamp(data.get("timestamp")),
        )


@dataclass(frozen=True)
class TrendingItem:
    """An entry in a trending list (coins or NFT collections)."""

    id: str
    name: str
    symbol: str = ""
    market_cap_rank: int | None = None
    description: str = ""

    @classmethod
    def from_coingecko_coin(cls, data: Mapping[str, Any]) -> TrendingItem:
        """Create from a ``search/trending`` coin (the ``item`` object)."""
        rank = data.get("market_cap_rank")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            symbol=str(data.get("symbol") or ""),
            market_cap_rank=int(rank) if rank is not None else None,
        )

    @classmethod
    def from_coingecko_nft(cls, data: Mapping[str, Any]) -> TrendingItem:
        """Create from an ``nfts/list`` entry."""
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            symbol=str(data.get("symbol") or ""),
            description=str(data.get("description") or ""),
        )


@dataclass(frozen=True)
class GasReading:
    """Ethereum gas oracle prices in gwei."""

    safe: float
    standard: float
    fast: float

    @classmethod
    def from_etherscan(cls, data: Mapping[str, Any]) -> GasReading:
        """Create from an Etherscan ``gasoracle`` result."""
        return cls(
            safe=float(data["SafeGasPrice"]),
            standard=float(data.get("ProposeGasPrice", data.get("StandardGasPrice"))),
            fast=float(data["FastGasPrice"]),
        )


@dataclass(frozen=True)
class ChainStats:
    """Bitcoin network statistics."""

    hash_rate: float
    difficulty: float
    transactions_24h: int
    total_btc: float

    @classmethod
    def from_blockchain_info(cls, data: Mapping[str, Any]) -> ChainStats:
        """Create from a blockchain.info ``stats`` payload.

        ``hash_rate`` is reported in GH/s and ``totalbc`` in satoshi.
        """
        return cls(
            hash_rate=float(data["hash_rate"]) * 1e9,
            difficulty=float(data["difficulty"]),
            transactions_24h=int(data["n_tx"]),
            total_btc=float(data["totalbc"]) / 1e8,
        )
