"""Tests for the Fear & Greed, Etherscan and blockchain.info adapters."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from crypto_market_notifier.sources import (
    BlockchainInfoClient,
    EtherscanClient,
    FearGreedClient,
    FetchError,
)


def patched_get(mock_client_class: MagicMock, json_data: Any) -> AsyncMock:
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = json_data
    mock_client = AsyncMock()
    mock_client.get.return_value = response
    mock_client.__aenter__.return_value = mock_client
    mock_client.__aexit__.return_value = None
    mock_client_class.return_value = mock_client
    return mock_client


class TestFearGreedClient:
    """Tests for alternative.me."""

    async def test_get_index(self) -> None:
        payload = {
            "data": [
                {"value": "72", "value_classification": "Greed", "timestamp": "1700000000"}
            ]
        }
        with patch("httpx.AsyncClient") as mock_client_class:
            patched_get(mock_client_class, payload)
            reading = await FearGreedClient().get_index()

        assert reading.value == 72
        assert reading.classification == "Greed"
        assert reading.timestamp is not None
        assert reading.timestamp.year == 2023

    async def test_empty_data_raises(self) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            patched_get(mock_client_class, {"data": []})
            with pytest.raises(FetchError, match="fear-greed"):
                await FearGreedClient().get_index()


class TestEtherscanClient:
    """Tests for the gas oracle."""

    async def test_get_gas_oracle(self) -> None:
        payload = {
            "status": "1",
            "message": "OK",
            "result": {"SafeGasPrice": "12", "ProposeGasPrice": "14", "FastGasPrice": "20.5"},
        }
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = patched_get(mock_client_class, payload)
            gas = await EtherscanClient("key").get_gas_oracle()

        assert (gas.safe, gas.standard, gas.fast) == (12.0, 14.0, 20.5)
        _, kwargs = mock_client.get.call_args
        assert kwargs["params"] == {
            "module": "gastracker",
            "action": "gasoracle",
            "apikey": "key",
        }

    async def test_api_error_status(self) -> None:
        payload = {"status": "0", "message": "NOTOK", "result": "Invalid API Key"}
        with patch("httpx.AsyncClient") as mock_client_class:
            patched_get(mock_client_class, payload)
            with pytest.raises(FetchError, match="Invalid API Key"):
                await EtherscanClient("bad").get_gas_oracle()


class TestBlockchainInfoClient:
    """Tests for blockchain.info stats."""

    async def test_get_stats_converts_units(self) -> None:
        payload = {
            "hash_rate": 600_000_000_000.0,
            "difficulty": 83_000_000_000_000.0,
            "n_tx": 450_000,
            "totalbc": 1_968_000_000_000_000,
        }
        with patch("httpx.AsyncClient") as mock_client_class:
            patched_get(mock_client_class, payload)
            stats = await BlockchainInfoClient().get_stats()

        assert stats.hash_rate == pytest.approx(6.0e20)
        assert stats.transactions_24h == 450_000
        assert stats.total_btc == pytest.approx(19_680_000)

    async def test_missing_field_raises(self) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            patched_get(mock_client_class, {"hash_rate": 1.0})
            with pytest.raises(FetchError, match="malformed stats"):
                await BlockchainInfoClient().get_stats()
