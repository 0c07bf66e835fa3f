"""Market data contracts shared by venues, the aggregator and the tracker."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

from spread_tracker.core.enums import MarketKind, VenueId


@dataclass(frozen=True, slots=True)
class OrderBookLevel:
    """Single price level (price, size) of an order book side."""

    price: float
    size: float


@dataclass(frozen=True, slots=True)
class OrderBook:
    """Top-of-book snapshot as returned by a venue adapter.

    ``url`` is set by venues that resolve a concrete pair page while fetching
    the book (DexScreener); CEX links are derived from the venue profile.
    """

    symbol: str
    bids: Sequence[OrderBookLevel]
    asks: Sequence[OrderBookLevel]
    url: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.bids or not self.asks

    @property
    def best_bid(self) -> float:
        return self.bids[0].price if self.bids else 0.0

    @property
    def best_ask(self) -> float:
        return self.asks[0].price if self.asks else 0.0

    @property
    def has_positive_prices(self) -> bool:
        """Both sides present and priced above zero."""

        return not self.is_empty and self.best_bid > 0 and self.best_ask > 0


@dataclass(frozen=True, slots=True)
class TokenStatus:
    """Deposit/withdraw availability of a base token on one venue."""

    deposit: bool = False
    withdraw: bool = False

    @property
    def fully_disabled(self) -> bool:
        return not self.deposit and not self.withdraw


@dataclass(frozen=True, slots=True)
class VenueQuote:
    """A venue's best bid/ask for one symbol and market kind.

    Produced fresh on every poll and never mutated.
    """

    venue: VenueId
    kind: MarketKind
    bid: float
    ask: float
    symbol: str
    funding_rate: float | None = None
    token_status: TokenStatus | None = None
    trade_url: str | None = None


@dataclass(frozen=True, slots=True)
class AggregatedView:
    """Best bid/ask across all quotes plus the per-venue grouping."""

    best_bid: VenueQuote
    best_ask: VenueQuote
    spread_percent: float
    quotes_by_venue: Mapping[VenueId, Sequence[VenueQuote]] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SpreadData:
    """Two-venue spread: buy at ``buy_venue`` (best ask), sell at ``sell_venue`` (best bid)."""

    symbol: str
    buy_venue: VenueId
    sell_venue: VenueId
    market1_kind: MarketKind
    market2_kind: MarketKind
    buy_price: float
    sell_price: float
    spread_percent: float


def spread_percent(bid: float, ask: float) -> float:
    """Return ``(bid - ask) / ask * 100``; negative for an inverted market."""

    return (bid - ask) / ask * 100.0
