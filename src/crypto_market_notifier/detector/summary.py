"""Ranking helpers for periodic market reports."""

from __future__ import annotations

from crypto_market_notifier.sources.models import Quote, Snapshot

DEFAULT_TOP_MOVERS = 3


def rank_top_movers(snapshot: Snapshot, limit: int = DEFAULT_TOP_MOVERS) -> list[Quote]:
    """Rank quotes by absolute 24h change, largest first.

    Ties are broken by instrument id ascending so the order is stable
    across runs.
    """
    ranked = sorted(
        (quote for _, quote in snapshot.items()),
        key=lambda q: (-abs(q.percent_change_24h), q.instrument_id),
    )
    return ranked[:limit]
