"""Tracking task definition."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from spread_tracker.core.enums import MarketKind, VenueId


@dataclass(frozen=True, slots=True)
class TrackingTask:
    """What one chat asked to watch.

    ``venues`` empty means every venue known to the aggregator. ``min_change``
    drives regular (two-venue) mode only; ultra mode uses the process-wide
    ``spread.min_change`` setting.
    """

    chat_id: int
    symbol: str
    market1_kind: MarketKind = MarketKind.SPOT
    market2_kind: MarketKind = MarketKind.SPOT
    venues: tuple[VenueId, ...] = ()
    min_spread_percent: float = 1.0
    max_spread_percent: float | None = None
    ultra: bool = False
    min_change: float = 1.0

    @property
    def tracking_key(self) -> str:
        key = f"{self.symbol}_{self.market1_kind.value}_{self.market2_kind.value}"
        return f"{key}_ultra" if self.ultra else key

    @property
    def selected_venues(self) -> Sequence[VenueId] | None:
        return self.venues or None

    def in_range(self, spread: float) -> bool:
        """Return True when ``spread`` lies within ``[min, max]`` (max optional)."""

        if spread < self.min_spread_percent:
            return False
        return self.max_spread_percent is None or spread <= self.max_spread_percent


__all__ = ["TrackingTask"]
