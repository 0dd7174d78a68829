"""Percent-change alert tiers.

A sustained move should alert once per tier, not once per poll, so the
absolute 24h change is bucketed into discrete tiers. With a 5% threshold
and boundaries ``(5, 10, 20)`` the tiers are ``5-10%``, ``10-20%`` and
``20%+``; anything below the threshold has no tier.
"""

from __future__ import annotations

import math
from bisect import bisect_right
from collections.abc import Iterable
from dataclasses import dataclass

DEFAULT_THRESHOLD = 5.0
DEFAULT_BOUNDARIES = (5.0, 10.0, 20.0)


@dataclass(frozen=True)
class TierLadder:
    """Sorted tier lower bounds; the first bound is the alert threshold."""

    boundaries: tuple[float, ...]

    def __post_init__(self) -> None:
        if not self.boundaries:
            raise ValueError("TierLadder needs at least one boundary")
        if any(b <= 0 for b in self.boundaries):
            raise ValueError("Tier boundaries must be positive")
        if list(self.boundaries) != sorted(set(self.boundaries)):
            raise ValueError("Tier boundaries must be strictly increasing")

    @classmethod
    def build(
        cls,
        threshold: float = DEFAULT_THRESHOLD,
        boundaries: Iterable[float] = DEFAULT_BOUNDARIES,
    ) -> TierLadder:
        """Build a ladder starting at ``threshold``.

        Boundaries at or below the threshold are dropped, so a threshold of
        7 with boundaries ``(5, 10, 20)`` gives ``7-10%``, ``10-20%``, ``20%+``.
        """
        above = {float(b) for b in boundaries if b > threshold}
        return cls(tuple(sorted({float(threshold), *above})))

    @property
    def threshold(self) -> float:
        """Minimum absolute percent change that alerts."""
        return self.boundaries[0]

    def tier_for(self, percent_change: float) -> str | None:
        """Return the tier label for a signed percent change, or None."""
        magnitude = abs(percent_change)
        if math.isnan(magnitude) or magnitude < self.threshold:
            return None
        index = bisect_right(self.boundaries, magnitude) - 1
        return self._label(index)

    def labels(self) -> list[str]:
        """All tier labels, lowest first."""
        return [self._label(i) for i in range(len(self.boundaries))]

    def _label(self, index: int) -> str:
        lower = self.boundaries[index]
        if index == len(self.boundaries) - 1:
            return f"{lower:g}%+"
        return f"{lower:g}-{self.boundaries[index + 1]:g}%"
