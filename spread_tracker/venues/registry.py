"""Builds the ordered venue map from configuration."""
from __future__ import annotations

import logging
from typing import Dict

from spread_tracker.config.models import TrackerSettings, VenueCredentialsConfig
from spread_tracker.core.enums import VenueId

from .base import VenueAdapter
from .ccxt_venue import CCXT_VENUE_SPECS, CcxtVenue
from .dexscreener import DexScreenerVenue

LOGGER = logging.getLogger(__name__)


def build_venues(settings: TrackerSettings, credentials: VenueCredentialsConfig) -> Dict[VenueId, VenueAdapter]:
    """Instantiate adapters for every active venue, preserving query order."""

    venues: Dict[VenueId, VenueAdapter] = {}
    for venue_id in settings.active_venues():
        if venue_id is VenueId.DEXSCREENER:
            venues[venue_id] = DexScreenerVenue(timeout=settings.venue_timeout_sec)
        elif venue_id in CCXT_VENUE_SPECS:
            venues[venue_id] = CcxtVenue(
                venue_id,
                credentials.for_venue(venue_id),
                timeout_sec=settings.venue_timeout_sec,
            )
        else:  # pragma: no cover - VenueId and CCXT_VENUE_SPECS are kept in sync
            LOGGER.warning("No adapter for venue %s", venue_id.value)
    LOGGER.info("Venues initialised", extra={"venues": [venue.value for venue in venues]})
    return venues
