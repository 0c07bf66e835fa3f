from __future__ import annotations

import pytest

from spread_tracker.core.enums import MarketKind, VenueId
from spread_tracker.venues.links import ParsedLink, parse_link


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://www.mexc.com/exchange/BTC_USDT", ParsedLink(VenueId.MEXC, "BTC/USDT", MarketKind.SPOT)),
        ("https://futures.mexc.com/exchange/BTC_USDT", ParsedLink(VenueId.MEXC, "BTC/USDT", MarketKind.FUTURES)),
        ("https://www.kucoin.com/trade/ETH-USDT", ParsedLink(VenueId.KUCOIN, "ETH/USDT", MarketKind.SPOT)),
        ("https://www.gate.io/trade/PEPE_USDT", ParsedLink(VenueId.GATE, "PEPE/USDT", MarketKind.SPOT)),
        ("https://www.gate.io/futures/USDT/SOL_USDT", ParsedLink(VenueId.GATE, "SOL/USDT", MarketKind.FUTURES)),
        ("https://www.bitget.com/spot/BTCUSDT", ParsedLink(VenueId.BITGET, "BTC/USDT", MarketKind.SPOT)),
        (
            "https://www.bitget.com/futures/usdt/ETHUSDT",
            ParsedLink(VenueId.BITGET, "ETH/USDT", MarketKind.FUTURES),
        ),
    ],
)
def test_parse_link_should_detect_venue_symbol_and_kind(url: str, expected: ParsedLink) -> None:
    assert parse_link(url) == expected


def test_parse_link_should_lowercase_host_and_strip_whitespace() -> None:
    assert parse_link("  https://WWW.MEXC.COM/exchange/btc_usdt ") == ParsedLink(
        VenueId.MEXC, "BTC/USDT", MarketKind.SPOT
    )


@pytest.mark.parametrize(
    "url",
    [
        "https://www.binance.com/en/trade/BTC_USDT",
        "https://dexscreener.com/ethereum/0xabc",
        "not a url",
        "https://www.mexc.com/",
        "https://www.bitget.com/spot/FOOBAR",
        "https://notmexc.com/exchange/BTC_USDT",
    ],
)
def test_parse_link_should_reject_unsupported_urls(url: str) -> None:
    assert parse_link(url) is None
