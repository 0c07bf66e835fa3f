"""Test doubles for venues and the message transport."""
from __future__ import annotations

import threading
import time
from typing import Dict, List, Sequence

from spread_tracker.core.enums import MarketKind, VenueId
from spread_tracker.core.errors import MarketDataError, TransportError
from spread_tracker.market.models import OrderBook, OrderBookLevel, TokenStatus, VenueQuote
from spread_tracker.venues.base import SupportsFundingRate, SupportsTokenContracts, SupportsTokenStatus, VenueAdapter


def make_book(symbol: str, bid: float, ask: float, url: str | None = None) -> OrderBook:
    return OrderBook(
        symbol=symbol,
        bids=[OrderBookLevel(price=bid, size=1.0)],
        asks=[OrderBookLevel(price=ask, size=1.0)],
        url=url,
    )


def make_quote(
    venue: VenueId,
    bid: float,
    ask: float,
    kind: MarketKind = MarketKind.SPOT,
    symbol: str = "BTC/USDT",
    **extra: object,
) -> VenueQuote:
    return VenueQuote(venue=venue, kind=kind, bid=bid, ask=ask, symbol=symbol, **extra)  # type: ignore[arg-type]


class FakeVenue(VenueAdapter):
    """In-memory venue. ``books`` maps market kind to a (bid, ask) pair or an exception."""

    def __init__(
        self,
        venue_id: VenueId,
        books: Dict[MarketKind, object] | None = None,
        kinds: Sequence[MarketKind] = (MarketKind.SPOT,),
    ) -> None:
        self.venue_id = venue_id
        self.books: Dict[MarketKind, object] = dict(books or {})
        self._kinds = tuple(kinds)
        self.calls: List[tuple[str, MarketKind]] = []
        self.closed = False
        self._lock = threading.Lock()

    def market_kinds(self) -> Sequence[MarketKind]:
        return self._kinds

    def get_order_book(self, symbol: str, kind: MarketKind = MarketKind.SPOT) -> OrderBook:
        with self._lock:
            self.calls.append((symbol, kind))
        value = self.books.get(kind)
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise MarketDataError(f"{self.venue_id.value} has no {kind.value} market for {symbol}")
        if isinstance(value, OrderBook):
            return value
        bid, ask = value  # type: ignore[misc]
        return make_book(symbol, bid, ask)

    def calls_for(self, kind: MarketKind) -> int:
        with self._lock:
            return sum(1 for _, called_kind in self.calls if called_kind is kind)

    def close(self) -> None:
        self.closed = True


class FullFeaturedVenue(FakeVenue, SupportsFundingRate, SupportsTokenStatus, SupportsTokenContracts):
    """Fake venue implementing every optional capability."""

    def __init__(
        self,
        venue_id: VenueId,
        books: Dict[MarketKind, object] | None = None,
        kinds: Sequence[MarketKind] = (MarketKind.SPOT, MarketKind.FUTURES),
        *,
        funding: float | Exception = 0.01,
        token_status: TokenStatus | Exception = TokenStatus(deposit=True, withdraw=True),
        contracts: Dict[str, str] | None = None,
    ) -> None:
        super().__init__(venue_id, books, kinds)
        self.funding = funding
        self.token_status = token_status
        self.contracts = dict(contracts or {})
        self.funding_calls = 0
        self.token_calls = 0

    def get_funding_rate(self, symbol: str) -> float:
        self.funding_calls += 1
        if isinstance(self.funding, Exception):
            raise self.funding
        return self.funding

    def check_token_status(self, token: str) -> TokenStatus:
        self.token_calls += 1
        if isinstance(self.token_status, Exception):
            raise self.token_status
        return self.token_status

    def get_networks(self, token: str) -> list[str]:
        return list(self.contracts)

    def get_token_contract(self, token: str, network: str) -> str | None:
        return self.contracts.get(network)


class BlockingVenue(FakeVenue):
    """Venue whose order-book call blocks until ``release`` is set.

    ``block`` arms the gate; ``entered`` is set once a blocked call is in
    flight.
    """

    def __init__(self, venue_id: VenueId, bid: float, ask: float) -> None:
        super().__init__(venue_id, {MarketKind.SPOT: (bid, ask)})
        self.block = threading.Event()
        self.entered = threading.Event()
        self.release = threading.Event()

    def get_order_book(self, symbol: str, kind: MarketKind = MarketKind.SPOT) -> OrderBook:
        if self.block.is_set():
            self.entered.set()
            self.release.wait(timeout=5.0)
        return super().get_order_book(symbol, kind)


class SerializedVenue(FakeVenue):
    """Venue that answers one call at a time, each taking ``delay`` seconds."""

    def __init__(self, venue_id: VenueId, bid: float, ask: float, delay: float) -> None:
        super().__init__(venue_id, {MarketKind.SPOT: (bid, ask)})
        self.delay = delay
        self._serial = threading.Lock()

    def get_order_book(self, symbol: str, kind: MarketKind = MarketKind.SPOT) -> OrderBook:
        with self._serial:
            time.sleep(self.delay)
            return super().get_order_book(symbol, kind)


class FakeTransport:
    """Collects sent messages; ``fail`` makes every send raise ``TransportError``."""

    def __init__(self) -> None:
        self.messages: List[tuple[int, str]] = []
        self.fail = False
        self._lock = threading.Lock()

    def send_message(self, chat_id: int, text: str) -> None:
        if self.fail:
            raise TransportError("transport down")
        with self._lock:
            self.messages.append((chat_id, text))

    def list_active_chat_ids(self) -> list[int]:
        with self._lock:
            return sorted({chat_id for chat_id, _ in self.messages})

    def texts(self, chat_id: int | None = None) -> List[str]:
        with self._lock:
            return [text for cid, text in self.messages if chat_id is None or cid == chat_id]


