"""Logging channel used in dry-run mode."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from crypto_market_notifier.alerter.models import FormattedAlert

logger = logging.getLogger(__name__)


class LogChannel:
    """Writes alerts to the log instead of sending them."""

    def __init__(self, name: str = "log") -> None:
        self.name = name

    async def send(self, alert: FormattedAlert) -> None:
        logger.info("[dry-run:%s]\n%s", self.name, alert.plain_text)
