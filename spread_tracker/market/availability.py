"""Process-lifetime availability caches shared by all trackers.

Both caches are lazily populated and never expire: once a (symbol, venue,
kind) combination or a (venue, token) pair is marked unavailable it is not
probed again until restart. Writes are insert-if-absent under a short lock,
so two trackers racing to record the same verdict end up with one entry.
"""
from __future__ import annotations

import threading
from typing import Dict, Set

from spread_tracker.core.enums import MarketKind, VenueId


class MarketAvailabilityCache:
    """symbol -> venue -> market kind -> available?"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._verdicts: Dict[str, Dict[VenueId, Dict[MarketKind, bool]]] = {}

    def get(self, symbol: str, venue: VenueId, kind: MarketKind) -> bool | None:
        with self._lock:
            return self._verdicts.get(symbol, {}).get(venue, {}).get(kind)

    def mark(self, symbol: str, venue: VenueId, kind: MarketKind, available: bool) -> bool:
        """Record a verdict unless one exists; return the stored verdict."""

        with self._lock:
            kinds = self._verdicts.setdefault(symbol, {}).setdefault(venue, {})
            return kinds.setdefault(kind, available)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(kinds) for venues in self._verdicts.values() for kinds in venues.values())


class TokenAvailabilityCache:
    """venue -> base tokens with deposit and withdraw both disabled."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._unavailable: Dict[VenueId, Set[str]] = {}

    def is_unavailable(self, venue: VenueId, token: str) -> bool:
        with self._lock:
            return token in self._unavailable.get(venue, ())

    def mark_unavailable(self, venue: VenueId, token: str) -> None:
        with self._lock:
            self._unavailable.setdefault(venue, set()).add(token)
