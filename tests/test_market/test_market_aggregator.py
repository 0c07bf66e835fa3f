from __future__ import annotations

import threading

import pytest

from spread_tracker.core.enums import MarketKind, VenueId
from spread_tracker.core.errors import (
    InsufficientLiquidityError,
    MarketDataError,
    NoPricesAvailableError,
    ProbeFailure,
    VenueTimeoutError,
)
from spread_tracker.market.models import OrderBook, TokenStatus
from tests.fakes import BlockingVenue, FakeVenue, FullFeaturedVenue, SerializedVenue, make_book


def _quietly(fetch, symbol: str) -> None:
    try:
        fetch(symbol)
    except NoPricesAvailableError:
        pass


def test_get_all_prices_should_skip_failing_venue(aggregator_factory) -> None:
    good = FakeVenue(VenueId.MEXC, {MarketKind.SPOT: (100.0, 100.5)})
    bad = FakeVenue(VenueId.GATE, {MarketKind.SPOT: RuntimeError("boom")})
    aggregator = aggregator_factory(good, bad)

    quotes = aggregator.get_all_prices("BTC/USDT", [VenueId.MEXC, VenueId.GATE])

    assert len(quotes) == 1
    assert quotes[0].venue is VenueId.MEXC
    assert quotes[0].bid == 100.0
    assert quotes[0].ask == 100.5


def test_get_all_prices_should_raise_when_nothing_quoted(aggregator_factory) -> None:
    aggregator = aggregator_factory(FakeVenue(VenueId.MEXC), FakeVenue(VenueId.GATE))

    with pytest.raises(NoPricesAvailableError, match="No prices available for BTC/USDT"):
        aggregator.get_all_prices("BTC/USDT")


def test_unavailable_market_should_be_probed_only_once(aggregator_factory) -> None:
    venue = FakeVenue(
        VenueId.MEXC,
        {MarketKind.SPOT: (100.0, 101.0), MarketKind.FUTURES: MarketDataError("no swap")},
        kinds=(MarketKind.SPOT, MarketKind.FUTURES),
    )
    aggregator = aggregator_factory(venue)

    aggregator.get_all_prices("BTC/USDT")
    aggregator.get_all_prices("BTC/USDT")

    assert venue.calls_for(MarketKind.FUTURES) == 1
    assert aggregator.market_cache.get("BTC/USDT", VenueId.MEXC, MarketKind.FUTURES) is False
    assert venue.calls_for(MarketKind.SPOT) == 2


def test_probe_book_should_be_reused_for_current_cycle(aggregator_factory) -> None:
    venue = FakeVenue(VenueId.GATE, {MarketKind.SPOT: (10.0, 10.1)})
    aggregator = aggregator_factory(venue)

    quotes = aggregator.get_all_prices("ETH/USDT")

    assert len(quotes) == 1
    assert venue.calls_for(MarketKind.SPOT) == 1
    assert aggregator.market_cache.get("ETH/USDT", VenueId.GATE, MarketKind.SPOT) is True


def test_empty_book_should_be_skipped(aggregator_factory) -> None:
    empty = OrderBook(symbol="BTC/USDT", bids=[], asks=[])
    aggregator = aggregator_factory(
        FakeVenue(VenueId.MEXC, {MarketKind.SPOT: empty}),
        FakeVenue(VenueId.KUCOIN, {MarketKind.SPOT: (1.0, 1.1)}),
    )

    quotes = aggregator.get_all_prices("BTC/USDT")

    assert [quote.venue for quote in quotes] == [VenueId.KUCOIN]


def test_funding_should_be_attached_to_futures_quotes_only(aggregator_factory) -> None:
    venue = FullFeaturedVenue(
        VenueId.BITGET,
        {MarketKind.SPOT: (100.0, 100.2), MarketKind.FUTURES: (100.1, 100.3)},
        funding=0.0125,
    )
    aggregator = aggregator_factory(venue)

    quotes = {quote.kind: quote for quote in aggregator.get_all_prices("BTC/USDT")}

    assert quotes[MarketKind.SPOT].funding_rate is None
    assert quotes[MarketKind.FUTURES].funding_rate == pytest.approx(0.0125)
    assert venue.funding_calls == 1


def test_funding_failure_should_not_drop_quote(aggregator_factory) -> None:
    venue = FullFeaturedVenue(
        VenueId.BITGET,
        {MarketKind.FUTURES: (100.1, 100.3)},
        kinds=(MarketKind.FUTURES,),
        funding=RuntimeError("funding down"),
    )
    aggregator = aggregator_factory(venue)

    quotes = aggregator.get_all_prices("BTC/USDT")

    assert len(quotes) == 1
    assert quotes[0].funding_rate is None


def test_disabled_token_should_be_cached_and_not_rechecked(aggregator_factory) -> None:
    venue = FullFeaturedVenue(
        VenueId.GATE,
        {MarketKind.SPOT: (5.0, 5.1)},
        kinds=(MarketKind.SPOT,),
        token_status=TokenStatus(deposit=False, withdraw=False),
    )
    aggregator = aggregator_factory(venue)

    first = aggregator.get_all_prices("XYZ/USDT")
    second = aggregator.get_all_prices("XYZ/USDT")

    assert venue.token_calls == 1
    assert aggregator.token_cache.is_unavailable(VenueId.GATE, "XYZ")
    assert first[0].token_status == TokenStatus(deposit=False, withdraw=False)
    assert second[0].token_status == TokenStatus(deposit=False, withdraw=False)


def test_failed_token_check_should_yield_disabled_status(aggregator_factory) -> None:
    venue = FullFeaturedVenue(
        VenueId.MEXC,
        {MarketKind.SPOT: (5.0, 5.1)},
        kinds=(MarketKind.SPOT,),
        token_status=RuntimeError("private endpoint"),
    )
    aggregator = aggregator_factory(venue)

    quotes = aggregator.get_all_prices("XYZ/USDT")

    assert quotes[0].token_status == TokenStatus()
    assert aggregator.token_cache.is_unavailable(VenueId.MEXC, "XYZ")


def test_enabled_token_status_should_be_checked_once_per_venue_per_call(aggregator_factory) -> None:
    venue = FullFeaturedVenue(
        VenueId.KUCOIN,
        {MarketKind.SPOT: (5.0, 5.1), MarketKind.FUTURES: (5.0, 5.2)},
    )
    aggregator = aggregator_factory(venue)

    quotes = aggregator.get_all_prices("XYZ/USDT")

    assert len(quotes) == 2
    assert venue.token_calls == 1
    assert all(quote.token_status == TokenStatus(deposit=True, withdraw=True) for quote in quotes)


def test_trade_url_should_come_from_book(aggregator_factory) -> None:
    book = make_book("PEPE/USDT", 1.0, 1.002, url="https://dexscreener.com/ethereum/0xabc")
    aggregator = aggregator_factory(FakeVenue(VenueId.DEXSCREENER, {MarketKind.SPOT: book}))

    quotes = aggregator.get_all_prices("PEPE/USDT")

    assert quotes[0].trade_url == "https://dexscreener.com/ethereum/0xabc"


def test_calculate_spread_should_require_two_venues(aggregator_factory) -> None:
    aggregator = aggregator_factory(
        FakeVenue(VenueId.MEXC, {MarketKind.SPOT: (100.0, 100.5)}),
        FakeVenue(VenueId.GATE, {MarketKind.SPOT: RuntimeError("gate down")}),
    )

    with pytest.raises(InsufficientLiquidityError) as excinfo:
        aggregator.calculate_spread("BTC/USDT", venues=[VenueId.MEXC, VenueId.GATE])

    assert excinfo.value.available == 1
    assert excinfo.value.errors == {"gate": "gate down"}
    assert "available only on 1 exchange(s)" in str(excinfo.value)


def test_calculate_spread_should_record_empty_books(aggregator_factory) -> None:
    empty = OrderBook(symbol="BTC/USDT", bids=[], asks=[])
    aggregator = aggregator_factory(
        FakeVenue(VenueId.MEXC, {MarketKind.SPOT: empty}),
        FakeVenue(VenueId.GATE, {MarketKind.SPOT: (1.0, 1.1)}),
    )

    with pytest.raises(InsufficientLiquidityError) as excinfo:
        aggregator.calculate_spread("BTC/USDT")

    assert excinfo.value.errors == {"mexc": "Empty orderbook"}


def test_calculate_spread_should_pick_best_route_with_first_seen_ties(aggregator_factory) -> None:
    mexc = FakeVenue(VenueId.MEXC, {MarketKind.SPOT: (101.0, 102.0)})
    gate = FakeVenue(VenueId.GATE, {MarketKind.SPOT: (103.0, 100.0)})
    bitget = FakeVenue(VenueId.BITGET, {MarketKind.SPOT: (103.0, 100.0)})
    aggregator = aggregator_factory(mexc, gate, bitget)

    spread = aggregator.calculate_spread("BTC/USDT", MarketKind.SPOT, MarketKind.FUTURES)

    assert spread.buy_venue is VenueId.GATE
    assert spread.sell_venue is VenueId.GATE
    assert spread.buy_price == 100.0
    assert spread.sell_price == 103.0
    assert spread.spread_percent == pytest.approx(3.0)
    assert spread.market2_kind is MarketKind.FUTURES
    assert all(kind is MarketKind.SPOT for _, kind in mexc.calls)


def test_slow_venue_should_time_out_and_be_excluded(aggregator_factory) -> None:
    slow = BlockingVenue(VenueId.KUCOIN, 100.0, 101.0)
    slow.block.set()
    fast = FakeVenue(VenueId.MEXC, {MarketKind.SPOT: (100.0, 100.5)})
    aggregator = aggregator_factory(fast, slow, call_timeout_sec=0.05)
    try:
        quotes = aggregator.get_all_prices("BTC/USDT")
    finally:
        slow.release.set()

    assert [quote.venue for quote in quotes] == [VenueId.MEXC]
    assert aggregator.market_cache.get("BTC/USDT", VenueId.KUCOIN, MarketKind.SPOT) is None


def test_timed_out_probe_should_be_retried_on_next_request(aggregator_factory) -> None:
    slow = BlockingVenue(VenueId.KUCOIN, 100.0, 101.0)
    slow.block.set()
    aggregator = aggregator_factory(slow, call_timeout_sec=0.05)
    try:
        with pytest.raises(NoPricesAvailableError):
            aggregator.get_all_prices("BTC/USDT")
    finally:
        slow.release.set()

    quotes = aggregator.get_all_prices("BTC/USDT")

    assert [quote.venue for quote in quotes] == [VenueId.KUCOIN]
    assert aggregator.market_cache.get("BTC/USDT", VenueId.KUCOIN, MarketKind.SPOT) is True


def test_burst_of_slow_calls_should_not_disable_healthy_markets(aggregator_factory) -> None:
    venue = SerializedVenue(VenueId.MEXC, 100.0, 100.5, delay=0.05)
    aggregator = aggregator_factory(venue, call_timeout_sec=0.12)
    symbols = [f"T{index}/USDT" for index in range(8)]
    threads = [threading.Thread(target=_quietly, args=(aggregator.get_all_prices, symbol)) for symbol in symbols]

    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert all(aggregator.market_cache.get(symbol, VenueId.MEXC, MarketKind.SPOT) is not False for symbol in symbols)


def test_call_timeout_should_raise_venue_timeout(aggregator_factory) -> None:
    slow = BlockingVenue(VenueId.KUCOIN, 100.0, 101.0)
    slow.block.set()
    aggregator = aggregator_factory(slow, call_timeout_sec=0.05)
    try:
        with pytest.raises(VenueTimeoutError):
            aggregator._call(VenueId.KUCOIN, slow.get_order_book, "BTC/USDT")
    finally:
        slow.release.set()


def test_token_contracts_should_collect_per_network(aggregator_factory) -> None:
    aggregator = aggregator_factory(
        FullFeaturedVenue(VenueId.MEXC, contracts={"ETH": "0xmexc", "BSC": "0xbsc"}),
        FakeVenue(VenueId.KUCOIN),
        FullFeaturedVenue(VenueId.GATE, contracts={}),
    )

    contracts = aggregator.get_token_contracts("USDT")

    assert contracts == {VenueId.MEXC: {"ETH": "0xmexc", "BSC": "0xbsc"}}


def test_close_should_close_adapters(aggregator_factory) -> None:
    venue = FakeVenue(VenueId.MEXC)
    aggregator = aggregator_factory(venue)

    aggregator.close()

    assert venue.closed


def test_concurrent_probes_should_agree_on_cached_verdict(aggregator_factory) -> None:
    venue = FakeVenue(VenueId.MEXC, {MarketKind.SPOT: (1.0, 1.1)})
    aggregator = aggregator_factory(venue)
    threads = [threading.Thread(target=aggregator.get_all_prices, args=("BTC/USDT",)) for _ in range(4)]

    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert aggregator.market_cache.get("BTC/USDT", VenueId.MEXC, MarketKind.SPOT) is True
    assert len(aggregator.market_cache) == 1


def test_venue_lookup_should_accept_ids_and_names(aggregator_factory) -> None:
    mexc = FakeVenue(VenueId.MEXC)
    aggregator = aggregator_factory(mexc, FakeVenue(VenueId.GATE))

    assert aggregator.venue_ids() == [VenueId.MEXC, VenueId.GATE]
    assert aggregator.get_venue("mexc") is mexc
    assert aggregator.get_venue(VenueId.KUCOIN) is None


def test_zero_priced_books_should_drop_only_that_venue(aggregator_factory) -> None:
    aggregator = aggregator_factory(
        FakeVenue(VenueId.MEXC, {MarketKind.SPOT: (0.0, 0.0)}),
        FakeVenue(VenueId.GATE, {MarketKind.SPOT: (100.0, 100.5)}),
        FakeVenue(VenueId.BITGET, {MarketKind.SPOT: (101.0, 101.5)}),
    )

    quotes = aggregator.get_all_prices("BTC/USDT")
    spread = aggregator.calculate_spread("BTC/USDT")

    assert [quote.venue for quote in quotes] == [VenueId.GATE, VenueId.BITGET]
    assert spread.buy_venue is VenueId.GATE
    assert spread.sell_venue is VenueId.BITGET


def test_adapter_errors_should_surface_as_probe_failures(aggregator_factory) -> None:
    venue = FakeVenue(VenueId.GATE, {MarketKind.SPOT: KeyError("asks")})
    aggregator = aggregator_factory(venue)

    with pytest.raises(ProbeFailure) as excinfo:
        aggregator._call(VenueId.GATE, venue.get_order_book, "BTC/USDT")

    assert excinfo.value.venue is VenueId.GATE
    assert isinstance(excinfo.value.__cause__, KeyError)
