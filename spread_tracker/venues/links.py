"""Parsing of pasted venue trade-page URLs into (venue, symbol, kind)."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import urlparse

from spread_tracker.core.enums import CEX_VENUES, MarketKind, VenueId

LOGGER = logging.getLogger(__name__)

_QUOTE_SUFFIX = re.compile(r"^([A-Z0-9]+?)(USDT|USDC|BTC|ETH)$")


@dataclass(frozen=True, slots=True)
class ParsedLink:
    venue: VenueId
    symbol: str
    kind: MarketKind


def _symbol_from_segment(segment: str) -> str | None:
    segment = segment.upper()
    for separator in ("_", "-"):
        if separator in segment:
            base, _, quote = segment.partition(separator)
            return f"{base}/{quote}" if base and quote else None
    match = _QUOTE_SUFFIX.match(segment)
    if match:
        return f"{match.group(1)}/{match.group(2)}"
    return None


def parse_link(url: str) -> ParsedLink | None:
    """Return the venue/symbol/kind encoded in ``url`` or ``None``.

    Supported hosts are the CEX venues from :data:`VENUE_PROFILES`. The market
    kind is spot when the path carries the venue's spot marker and the host
    is not a futures subdomain, futures otherwise.
    """

    try:
        parsed = urlparse(url.strip())
    except ValueError as exc:
        LOGGER.debug("Unparseable URL %r: %s", url, exc)
        return None
    host = (parsed.hostname or "").lower()
    if not host:
        return None
    for venue in CEX_VENUES:
        profile = venue.profile
        if not (host == profile.host or host.endswith("." + profile.host)):
            continue
        segments = [part for part in parsed.path.split("/") if part]
        if not segments:
            return None
        symbol = _symbol_from_segment(segments[-1])
        if symbol is None:
            return None
        is_spot = profile.spot_path_marker in parsed.path and not host.startswith("futures.")
        return ParsedLink(venue=venue, symbol=symbol, kind=MarketKind.SPOT if is_spot else MarketKind.FUTURES)
    return None
