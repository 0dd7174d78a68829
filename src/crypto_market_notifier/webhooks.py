"""Inbound webhook server.

Hosts the TradingView and exchange webhooks alongside the health
endpoints on a single aiohttp application. Webhook requests are
acknowledged as soon as the body parses; delivery happens in the
background.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from aiohttp import web

from crypto_market_notifier.alerter.dispatcher import GENERAL_TRADING, Dispatcher
from crypto_market_notifier.detector.models import AlertEvent, AlertKind
from crypto_market_notifier.health import PipelineHealthMonitor

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

TRADINGVIEW_PATH = "/webhook/tradingview"
EXCHANGE_PATH = "/webhook/exchange"
ORDER_FILL_TYPE = "order_fill"


def normalize_tradingview_alert(body: Mapping[str, Any]) -> AlertEvent:
    """Turn a TradingView alert body into an EXTERNAL_SIGNAL event."""
    symbol = str(body.get("symbol") or "tradingview")
    return AlertEvent(
        instrument_id=symbol,
        kind=AlertKind.EXTERNAL_SIGNAL,
        payload={
            "symbol": body.get("symbol"),
            "message": body.get("message"),
            "action": body.get("action"),
            "price": body.get("price"),
        },
    )


def normalize_exchange_event(body: Mapping[str, Any]) -> AlertEvent | None:
    """Turn an exchange notification into an ORDER_FILL event.

    Returns:
        The event, or None for notification types other than order fills.
    """
    if body.get("type") != ORDER_FILL_TYPE:
        return None
    return AlertEvent(
        instrument_id=str(body.get("symbol") or "exchange"),
        kind=AlertKind.ORDER_FILL,
        payload={
            "symbol": body.get("symbol"),
            "side": body.get("side"),
            "amount": body.get("amount"),
            "price": body.get("price"),
        },
    )


class WebhookServer:
    """aiohttp server for inbound webhooks and health endpoints.

    Example:
        ```python
        server = WebhookServer(dispatcher, monitor)
        await server.start(port=3000)
        ...
        await server.stop()
        ```
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        monitor: PipelineHealthMonitor | None = None,
        *,
        target: str = GENERAL_TRADING,
    ) -> None:
        """Initialize the server.

        Args:
            dispatcher: Dispatcher receiving the normalized events.
            monitor: Health monitor whose endpoints are mounted, if any.
            target: Delivery target for inbound events.
        """
        self._dispatcher = dispatcher
        self._monitor = monitor
        self.target = target
        self._runner: web.AppRunner | None = None

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    def create_app(self) -> web.Application:
        """Create the aiohttp application."""
        app = web.Application()
        app.router.add_post(TRADINGVIEW_PATH, self._handle_tradingview)
        app.router.add_post(EXCHANGE_PATH, self._handle_exchange)
        if self._monitor is not None:
            self._monitor.register_routes(app)
        return app

    async def _read_object(self, request: web.Request) -> dict[str, Any] | None:
        try:
            body = await request.json()
        except ValueError:
            return None
        return body if isinstance(body, dict) else None

    async def _handle_tradingview(self, request: web.Request) -> web.Response:
        """Handle POST /webhook/tradingview."""
        body = await self._read_object(request)
        if body is None:
            return web.Response(status=400, text="Invalid JSON object")

        logger.info("TradingView alert received for %s", body.get("symbol"))
        self._dispatcher.submit(self.target, normalize_tradingview_alert(body))
        return web.Response(text="OK")

    async def _handle_exchange(self, request: web.Request) -> web.Response:
        """Handle POST /webhook/exchange."""
        body = await self._read_object(request)
        if body is None:
            return web.Response(status=400, text="Invalid JSON object")

        event = normalize_exchange_event(body)
        if event is None:
            logger.debug("Ignoring exchange notification of type %r", body.get("type"))
        else:
            logger.info("Order fill received for %s", body.get("symbol"))
            self._dispatcher.submit(self.target, event)
        return web.Response(text="OK")

    async def start(self, port: int = DEFAULT_PORT, host: str = DEFAULT_HOST) -> None:
        """Start listening.

        Args:
            port: Port to listen on.
            host: Interface to bind.
        """
        if self._runner:
            logger.warning("Webhook server already running")
            return

        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, host, port)
        await site.start()
        logger.info("Webhook server listening on %s:%d", host, port)

    async def stop(self) -> None:
        """Stop the server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Webhook server stopped")
