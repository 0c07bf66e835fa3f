"""Enumerations shared across subsystems.

``VenueId`` is the closed set of venues the tracker knows about. Everything
venue-specific that is not part of an adapter (trade/deposit links, URL
hosts and path markers used by the link parser) hangs off :data:`VENUE_PROFILES`
instead of string comparisons scattered across modules.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping


class MarketKind(str, Enum):
    """Listing type of a symbol on a venue."""

    SPOT = "spot"
    FUTURES = "futures"  # linear perpetual swaps

    @property
    def short_label(self) -> str:
        return "S" if self is MarketKind.SPOT else "F"


class VenueId(str, Enum):
    """Identifiers for the supported venues."""

    MEXC = "mexc"
    KUCOIN = "kucoin"
    GATE = "gate"
    BITGET = "bitget"
    DEXSCREENER = "dexscreener"

    @property
    def profile(self) -> "VenueProfile":
        return VENUE_PROFILES[self]


class TrackerState(str, Enum):
    """Lifecycle of a single tracker."""

    STARTING = "starting"
    POLLING = "polling"
    STOPPED = "stopped"


@dataclass(frozen=True, slots=True)
class VenueProfile:
    """Static per-venue data used for links and URL parsing.

    Templates receive ``{symbol}`` (already joined with ``separator``) or
    ``{token}``. Empty templates mean the venue has no such page.
    """

    host: str
    separator: str
    spot_url: str = ""
    futures_url: str = ""
    deposit_url: str = ""
    withdraw_url: str = ""
    spot_path_marker: str = ""
    is_aggregator: bool = False

    def format_symbol(self, symbol: str) -> str:
        return symbol.replace("/", self.separator)

    def trade_link(self, symbol: str, kind: MarketKind) -> str:
        template = self.spot_url if kind is MarketKind.SPOT else self.futures_url
        if not template:
            return ""
        return template.format(symbol=self.format_symbol(symbol))

    def deposit_link(self, token: str) -> str:
        return self.deposit_url.format(token=token) if self.deposit_url else "#"

    def withdraw_link(self, token: str) -> str:
        return self.withdraw_url.format(token=token) if self.withdraw_url else "#"


VENUE_PROFILES: Mapping[VenueId, VenueProfile] = {
    VenueId.MEXC: VenueProfile(
        host="mexc.com",
        separator="_",
        spot_url="https://www.mexc.com/exchange/{symbol}",
        futures_url="https://futures.mexc.com/exchange/{symbol}",
        deposit_url="https://www.mexc.com/assets/deposit/{token}",
        withdraw_url="https://www.mexc.com/assets/withdraw/{token}",
        spot_path_marker="/exchange/",
    ),
    VenueId.KUCOIN: VenueProfile(
        host="kucoin.com",
        separator="-",
        spot_url="https://www.kucoin.com/trade/{symbol}",
        futures_url="https://futures.kucoin.com/trade/{symbol}",
        deposit_url="https://www.kucoin.com/assets/deposit/{token}",
        withdraw_url="https://www.kucoin.com/assets/withdraw/{token}",
        spot_path_marker="/trade/",
    ),
    VenueId.GATE: VenueProfile(
        host="gate.io",
        separator="_",
        spot_url="https://www.gate.io/trade/{symbol}",
        futures_url="https://www.gate.io/futures/{symbol}",
        deposit_url="https://www.gate.io/myaccount/deposit/{token}",
        withdraw_url="https://www.gate.io/myaccount/withdraw/{token}",
        spot_path_marker="/trade/",
    ),
    VenueId.BITGET: VenueProfile(
        host="bitget.com",
        separator="",
        spot_url="https://www.bitget.com/spot/{symbol}",
        futures_url="https://www.bitget.com/futures/usdt/{symbol}",
        deposit_url="https://www.bitget.com/deposit/{token}",
        withdraw_url="https://www.bitget.com/withdraw/{token}",
        spot_path_marker="/spot/",
    ),
    VenueId.DEXSCREENER: VenueProfile(
        host="dexscreener.com",
        separator="",
        is_aggregator=True,
    ),
}

CEX_VENUES: tuple[VenueId, ...] = (VenueId.MEXC, VenueId.KUCOIN, VenueId.GATE, VenueId.BITGET)
ALL_VENUES: tuple[VenueId, ...] = CEX_VENUES + (VenueId.DEXSCREENER,)
