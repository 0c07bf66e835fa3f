"""Argument parsing for chat commands.

Parsers take the whitespace-split arguments (without the command itself) and
either return a request object or raise :class:`CommandError` whose message
is shown to the user verbatim.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence, Tuple

from spread_tracker.core.enums import ALL_VENUES, CEX_VENUES, MarketKind, VenueId
from spread_tracker.venues.links import ParsedLink, parse_link

POPULAR_PAIRS: Tuple[str, ...] = ("BTC/USDT", "ETH/USDT", "SOL/USDT", "XRP/USDT", "DOGE/USDT")
KIND_PAIRS: Tuple[Tuple[MarketKind, MarketKind], ...] = (
    (MarketKind.SPOT, MarketKind.SPOT),
    (MarketKind.SPOT, MarketKind.FUTURES),
    (MarketKind.FUTURES, MarketKind.FUTURES),
)

_USDT_PAIR = re.compile(r"^([A-Za-z0-9]+)(USDT)$", re.IGNORECASE)
_PAIR_CALLBACK = re.compile(r"^track_(.+)_(spot|futures)_(spot|futures)$")


class CommandError(ValueError):
    """Invalid command arguments; the message is user-facing."""


@dataclass(frozen=True, slots=True)
class TrackRequest:
    symbol: str
    venues: Tuple[VenueId, ...]
    min_spread: float


@dataclass(frozen=True, slots=True)
class LinkTrackRequest:
    link: ParsedLink
    min_spread: float


@dataclass(frozen=True, slots=True)
class PairTrackRequest:
    first: ParsedLink
    second: ParsedLink
    min_spread: float
    max_spread: float


def format_symbol(raw: str) -> str:
    """Normalize user input: ``btcusdt`` -> ``BTC/USDT``, ``btc/usdt`` -> ``BTC/USDT``."""

    raw = raw.strip()
    if "/" not in raw:
        match = _USDT_PAIR.match(raw)
        if match:
            return f"{match.group(1).upper()}/USDT"
    return raw.upper()


def parse_venues(value: str) -> Tuple[VenueId, ...]:
    value = value.strip().lower()
    if value == "all":
        return ALL_VENUES
    if value == "cex":
        return CEX_VENUES
    venues = []
    for name in value.split(","):
        try:
            venue = VenueId(name.strip())
        except ValueError:
            raise CommandError(
                "Invalid venues. Allowed values: " + ", ".join(v.value for v in ALL_VENUES) + ", all or cex"
            ) from None
        if venue not in venues:
            venues.append(venue)
    return tuple(venues)


def parse_positive_float(value: str, what: str) -> float:
    try:
        number = float(value.replace(",", "."))
    except ValueError:
        number = float("nan")
    if not number > 0:
        raise CommandError(f"Invalid {what}. Use a positive number")
    return number


def parse_track_args(
    args: Sequence[str],
    *,
    default_venues: Sequence[VenueId],
    default_min_spread: float,
) -> TrackRequest:
    """``/track SYMBOL [venues|all|cex] [min_spread]``."""

    if not args:
        raise CommandError("Please specify a symbol, e.g. /track BTC/USDT")
    venues = parse_venues(args[1]) if len(args) > 1 else tuple(default_venues)
    min_spread = parse_positive_float(args[2], "minimum spread") if len(args) > 2 else default_min_spread
    return TrackRequest(symbol=format_symbol(args[0]), venues=venues, min_spread=min_spread)


def _parse_link(url: str) -> ParsedLink:
    link = parse_link(url)
    if link is None:
        raise CommandError("Invalid link or unsupported exchange")
    return link


def parse_track_link_args(args: Sequence[str]) -> LinkTrackRequest:
    """``/track_link URL MIN_SPREAD``."""

    if len(args) < 2:
        raise CommandError(
            "Please specify a link and the minimum spread %\n"
            "Example: /track_link https://www.mexc.com/exchange/BTC_USDT 1.5"
        )
    return LinkTrackRequest(link=_parse_link(args[0]), min_spread=parse_positive_float(args[1], "minimum spread"))


def parse_stop_link_args(args: Sequence[str]) -> ParsedLink:
    """``/stop_link URL``."""

    if not args:
        raise CommandError("Please specify the link to stop tracking")
    return _parse_link(args[0])


def parse_track_pair_args(args: Sequence[str]) -> PairTrackRequest:
    """``/track_pair URL1 URL2 MIN_SPREAD MAX_SPREAD``; both links must name the same pair."""

    if len(args) < 4:
        raise CommandError(
            "Please specify two links and the spread range %\n"
            "Example: /track_pair https://www.mexc.com/exchange/BTC_USDT https://www.gate.io/trade/BTC_USDT 1.5 3.0"
        )
    first, second = _parse_link(args[0]), _parse_link(args[1])
    if first.symbol != second.symbol:
        raise CommandError("Both links must point to the same trading pair")
    min_spread = parse_positive_float(args[2], "minimum spread")
    max_spread = parse_positive_float(args[3], "maximum spread")
    if max_spread < min_spread:
        raise CommandError("Maximum spread must not be below the minimum spread")
    return PairTrackRequest(first=first, second=second, min_spread=min_spread, max_spread=max_spread)


def pair_callback_data(symbol: str, kind1: MarketKind, kind2: MarketKind) -> str:
    return f"track_{symbol}_{kind1.value}_{kind2.value}"


def parse_pair_callback(data: str) -> Tuple[str, MarketKind, MarketKind] | None:
    match = _PAIR_CALLBACK.match(data or "")
    if match is None:
        return None
    return match.group(1), MarketKind(match.group(2)), MarketKind(match.group(3))


__all__ = [
    "CommandError",
    "KIND_PAIRS",
    "LinkTrackRequest",
    "POPULAR_PAIRS",
    "PairTrackRequest",
    "TrackRequest",
    "format_symbol",
    "pair_callback_data",
    "parse_pair_callback",
    "parse_positive_float",
    "parse_stop_link_args",
    "parse_track_args",
    "parse_track_link_args",
    "parse_track_pair_args",
    "parse_venues",
]
