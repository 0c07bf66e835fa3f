"""Structured telemetry records written to the spread journal."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict

from spread_tracker.market.models import AggregatedView, SpreadData


@dataclass(slots=True)
class TelemetryEvent:
    """Generic event stored as one line of ``spreads_YYYYMMDD.jsonl``."""

    timestamp: datetime
    event_type: str
    level: str = "INFO"
    payload: Dict[str, Any] = field(default_factory=dict)
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


def spread_notified_event(chat_id: int, tracking_key: str, view: AggregatedView) -> TelemetryEvent:
    """Journal entry for an ultra-mode notification."""

    return TelemetryEvent(
        timestamp=datetime.now(timezone.utc),
        event_type="spread_notified",
        payload={
            "symbol": view.best_ask.symbol,
            "spread_percent": round(view.spread_percent, 6),
            "buy_venue": view.best_ask.venue.value,
            "buy_kind": view.best_ask.kind.value,
            "buy_price": view.best_ask.ask,
            "sell_venue": view.best_bid.venue.value,
            "sell_kind": view.best_bid.kind.value,
            "sell_price": view.best_bid.bid,
            "quotes": sum(len(quotes) for quotes in view.quotes_by_venue.values()),
        },
        context={"chat_id": chat_id, "tracking_key": tracking_key},
    )


def pair_spread_event(chat_id: int, tracking_key: str, spread: SpreadData) -> TelemetryEvent:
    """Journal entry for a regular-mode notification."""

    return TelemetryEvent(
        timestamp=datetime.now(timezone.utc),
        event_type="pair_spread_notified",
        payload={
            "symbol": spread.symbol,
            "spread_percent": round(spread.spread_percent, 6),
            "buy_venue": spread.buy_venue.value,
            "buy_price": spread.buy_price,
            "sell_venue": spread.sell_venue.value,
            "sell_price": spread.sell_price,
        },
        context={"chat_id": chat_id, "tracking_key": tracking_key},
    )


__all__ = ["TelemetryEvent", "pair_spread_event", "spread_notified_event"]
