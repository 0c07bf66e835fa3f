"""Venue adapters (market-data fetchers) and venue URL helpers."""

from .base import SupportsFundingRate, SupportsTokenContracts, SupportsTokenStatus, VenueAdapter
from .ccxt_venue import CcxtVenue
from .dexscreener import DexScreenerVenue
from .links import ParsedLink, parse_link
from .registry import build_venues

__all__ = [
    "CcxtVenue",
    "DexScreenerVenue",
    "ParsedLink",
    "SupportsFundingRate",
    "SupportsTokenContracts",
    "SupportsTokenStatus",
    "VenueAdapter",
    "build_venues",
    "parse_link",
]
