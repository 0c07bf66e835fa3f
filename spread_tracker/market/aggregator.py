"""Cross-venue price aggregation.

``MarketAggregator`` owns the venue adapters, the two availability caches and
a small worker pool used to bound every remote call by a timeout. Failures of
individual venues, market kinds or token checks are logged and excluded;
only "nothing worked" conditions are raised to the caller.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence, Tuple, TypeVar

from spread_tracker.core.enums import MarketKind, VenueId
from spread_tracker.core.errors import (
    InsufficientLiquidityError,
    NoPricesAvailableError,
    ProbeFailure,
    VenueTimeoutError,
)
from spread_tracker.core.types import base_token
from spread_tracker.market.availability import MarketAvailabilityCache, TokenAvailabilityCache
from spread_tracker.market.models import OrderBook, SpreadData, TokenStatus, VenueQuote, spread_percent
from spread_tracker.venues.base import (
    SupportsFundingRate,
    SupportsTokenContracts,
    SupportsTokenStatus,
    VenueAdapter,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_CALL_TIMEOUT_SEC = 5.0
DEFAULT_MAX_WORKERS = 16
T = TypeVar("T")


def _describe(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


class MarketAggregator:
    """Query enabled venues for one symbol and merge the answers.

    Parameters
    ----------
    venues:
        Ordered mapping of venue id to adapter. The order is the query order
        and therefore the tie-break order for equal prices.
    call_timeout_sec:
        Upper bound for any single venue call, independent of the polling
        interval of the trackers using this aggregator.
    """

    def __init__(
        self,
        venues: Mapping[VenueId, VenueAdapter],
        *,
        call_timeout_sec: float = DEFAULT_CALL_TIMEOUT_SEC,
        market_cache: MarketAvailabilityCache | None = None,
        token_cache: TokenAvailabilityCache | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self._venues: Dict[VenueId, VenueAdapter] = dict(venues)
        self._call_timeout = call_timeout_sec
        self.market_cache = market_cache or MarketAvailabilityCache()
        self.token_cache = token_cache or TokenAvailabilityCache()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="venue-call")
        self._funding_venues = {vid for vid, adapter in self._venues.items() if isinstance(adapter, SupportsFundingRate)}
        self._token_status_venues = {
            vid for vid, adapter in self._venues.items() if isinstance(adapter, SupportsTokenStatus)
        }
        self._contract_venues = {
            vid for vid, adapter in self._venues.items() if isinstance(adapter, SupportsTokenContracts)
        }

    # ------------------------------------------------------------------
    # Venue registry
    # ------------------------------------------------------------------
    def venue_ids(self) -> list[VenueId]:
        return list(self._venues)

    def get_venue(self, venue: VenueId | str) -> VenueAdapter | None:
        return self._venues.get(VenueId(venue))

    def _select(self, venues: Iterable[VenueId | str] | None) -> List[Tuple[VenueId, VenueAdapter]]:
        if venues is None:
            return list(self._venues.items())
        wanted = {VenueId(venue) for venue in venues}
        return [(vid, adapter) for vid, adapter in self._venues.items() if vid in wanted]

    def _call(self, venue: VenueId, fn: Callable[..., T], *args: Any) -> T:
        """Run one adapter call on the pool; any failure surfaces as :class:`ProbeFailure`."""

        future = self._executor.submit(fn, *args)
        try:
            return future.result(timeout=self._call_timeout)
        except FuturesTimeoutError as exc:
            future.cancel()
            raise VenueTimeoutError(
                venue, f"{venue.value} did not answer within {self._call_timeout:.1f}s"
            ) from exc
        except Exception as exc:
            raise ProbeFailure(venue, _describe(exc)) from exc

    # ------------------------------------------------------------------
    # Two-venue spread
    # ------------------------------------------------------------------
    def calculate_spread(
        self,
        symbol: str,
        market1_kind: MarketKind = MarketKind.SPOT,
        market2_kind: MarketKind = MarketKind.SPOT,
        venues: Iterable[VenueId | str] | None = None,
    ) -> SpreadData:
        """Best bid/ask across the default order book of each selected venue.

        The requested market kinds are carried into the result only; every
        venue is asked for its default (spot) book.
        """

        prices: Dict[VenueId, Tuple[float, float]] = {}
        errors: Dict[str, str] = {}
        for venue_id, adapter in self._select(venues):
            try:
                book = self._call(venue_id, adapter.get_order_book, symbol)
            except ProbeFailure as exc:
                errors[venue_id.value] = str(exc)
                LOGGER.debug("Error getting prices from %s: %s", venue_id.value, exc)
                continue
            if book.is_empty:
                errors[venue_id.value] = "Empty orderbook"
                continue
            if not book.has_positive_prices:
                errors[venue_id.value] = "Non-positive price"
                continue
            prices[venue_id] = (book.best_bid, book.best_ask)

        if len(prices) < 2:
            error = InsufficientLiquidityError(symbol, len(prices), errors)
            LOGGER.warning(str(error))
            raise error

        bid_venue, best_bid = None, 0.0
        ask_venue, best_ask = None, float("inf")
        for venue_id, (bid, ask) in prices.items():
            if bid > best_bid:
                bid_venue, best_bid = venue_id, bid
            if ask < best_ask:
                ask_venue, best_ask = venue_id, ask
        if bid_venue is None or ask_venue is None:
            raise InsufficientLiquidityError(symbol, len(prices), {"all": "Could not find valid bid and ask prices"})

        spread = SpreadData(
            symbol=symbol,
            buy_venue=ask_venue,
            sell_venue=bid_venue,
            market1_kind=market1_kind,
            market2_kind=market2_kind,
            buy_price=best_ask,
            sell_price=best_bid,
            spread_percent=spread_percent(best_bid, best_ask),
        )
        LOGGER.debug(
            "Calculated spread",
            extra={"symbol": symbol, "spread": spread.spread_percent, "route": f"{ask_venue.value}->{bid_venue.value}"},
        )
        return spread

    # ------------------------------------------------------------------
    # All-venue quotes
    # ------------------------------------------------------------------
    def get_all_prices(self, symbol: str, venues: Iterable[VenueId | str] | None = None) -> list[VenueQuote]:
        """Quote every available (venue, market kind) for ``symbol``.

        Raises :class:`NoPricesAvailableError` when nothing could be quoted.
        """

        token = base_token(symbol)
        quotes: list[VenueQuote] = []
        for venue_id, adapter in self._select(venues):
            token_status: TokenStatus | None = None
            token_checked = False
            for kind in adapter.market_kinds():
                try:
                    book = self._fetch_available_book(symbol, venue_id, adapter, kind)
                except ProbeFailure as exc:
                    LOGGER.debug("Error getting prices from %s %s: %s", venue_id.value, kind.value, exc)
                    continue
                if book is None or not book.has_positive_prices:
                    continue
                if not token_checked:
                    token_status = self._token_status(venue_id, adapter, token)
                    token_checked = True
                funding = self._funding_rate(venue_id, adapter, symbol) if kind is MarketKind.FUTURES else None
                quotes.append(
                    VenueQuote(
                        venue=venue_id,
                        kind=kind,
                        bid=book.best_bid,
                        ask=book.best_ask,
                        symbol=book.symbol,
                        funding_rate=funding,
                        token_status=token_status,
                        trade_url=book.url,
                    )
                )

        if not quotes:
            raise NoPricesAvailableError(symbol)
        return quotes

    def _fetch_available_book(
        self,
        symbol: str,
        venue_id: VenueId,
        adapter: VenueAdapter,
        kind: MarketKind,
    ) -> OrderBook | None:
        """Return a fresh book, or ``None`` when the market is known unavailable.

        The first request for a combination doubles as the availability
        probe: success marks it available and its book is used directly,
        failure marks it unavailable for the rest of the process lifetime.
        A timed-out probe leaves the combination unknown and is retried on the
        next request.
        """

        verdict = self.market_cache.get(symbol, venue_id, kind)
        if verdict is False:
            LOGGER.debug("Skipping unavailable market %s for %s on %s", kind.value, symbol, venue_id.value)
            return None
        if verdict is True:
            return self._call(venue_id, adapter.get_order_book, symbol, kind)
        try:
            book = self._call(venue_id, adapter.get_order_book, symbol, kind)
        except VenueTimeoutError as exc:
            LOGGER.debug("Availability probe for %s %s on %s timed out: %s", symbol, kind.value, venue_id.value, exc)
            return None
        except ProbeFailure as exc:
            self.market_cache.mark(symbol, venue_id, kind, False)
            LOGGER.debug("Market %s not available for %s on %s: %s", kind.value, symbol, venue_id.value, exc)
            return None
        self.market_cache.mark(symbol, venue_id, kind, True)
        return book

    def _token_status(self, venue_id: VenueId, adapter: VenueAdapter, token: str) -> TokenStatus | None:
        if venue_id not in self._token_status_venues:
            return None
        if self.token_cache.is_unavailable(venue_id, token):
            return TokenStatus()
        try:
            status = self._call(venue_id, adapter.check_token_status, token)  # type: ignore[attr-defined]
        except VenueTimeoutError as exc:
            LOGGER.debug("Token status check for %s on %s timed out: %s", token, venue_id.value, exc)
            return TokenStatus()
        except ProbeFailure as exc:
            LOGGER.debug("Error checking token status for %s on %s: %s", token, venue_id.value, exc)
            self.token_cache.mark_unavailable(venue_id, token)
            return TokenStatus()
        if status.fully_disabled:
            self.token_cache.mark_unavailable(venue_id, token)
        return status

    def _funding_rate(self, venue_id: VenueId, adapter: VenueAdapter, symbol: str) -> float | None:
        if venue_id not in self._funding_venues:
            return None
        try:
            return self._call(venue_id, adapter.get_funding_rate, symbol)  # type: ignore[attr-defined]
        except ProbeFailure as exc:
            LOGGER.debug("Error getting funding rate from %s: %s", venue_id.value, exc)
            return None

    # ------------------------------------------------------------------
    # Token contracts
    # ------------------------------------------------------------------
    def get_token_contracts(self, token: str) -> Dict[VenueId, Dict[str, str]]:
        """Contract address per network for every venue that publishes them."""

        result: Dict[VenueId, Dict[str, str]] = {}
        for venue_id, adapter in self._venues.items():
            if venue_id not in self._contract_venues:
                continue
            try:
                networks: Sequence[str] = self._call(venue_id, adapter.get_networks, token)  # type: ignore[attr-defined]
                contracts: Dict[str, str] = {}
                for network in networks:
                    contract = self._call(venue_id, adapter.get_token_contract, token, network)  # type: ignore[attr-defined]
                    if contract:
                        contracts[network] = contract
            except ProbeFailure as exc:
                LOGGER.debug("Failed to get contracts from %s: %s", venue_id.value, exc)
                continue
            if contracts:
                result[venue_id] = contracts
        return result

    def close(self) -> None:
        """Stop the worker pool and close every adapter."""

        self._executor.shutdown(wait=False, cancel_futures=True)
        for venue_id, adapter in self._venues.items():
            try:
                adapter.close()
            except Exception as exc:  # pragma: no cover - network teardown
                LOGGER.warning("Failed to close %s adapter: %s", venue_id.value, exc)
