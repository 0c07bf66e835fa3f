"""Venue adapter contracts.

Every adapter implements :class:`VenueAdapter`. Optional abilities are
expressed as separate capability base classes; the aggregator checks which
of them an adapter implements once, at construction time, instead of probing
for attributes on every call.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from spread_tracker.core.enums import MarketKind, VenueId
from spread_tracker.market.models import OrderBook, TokenStatus


class VenueAdapter(ABC):
    """Base market-data contract: order books per market kind."""

    venue_id: VenueId

    @abstractmethod
    def market_kinds(self) -> Sequence[MarketKind]:
        """Market kinds this venue lists, in query order."""

    @abstractmethod
    def get_order_book(self, symbol: str, kind: MarketKind = MarketKind.SPOT) -> OrderBook:
        """Return the top of book for ``symbol`` (``BASE/QUOTE``) or raise."""

    def close(self) -> None:
        """Release network resources. No-op by default."""


class SupportsFundingRate(ABC):
    """Venues that publish perpetual funding rates."""

    @abstractmethod
    def get_funding_rate(self, symbol: str) -> float:
        """Current funding rate in percent."""


class SupportsTokenStatus(ABC):
    """Venues that expose deposit/withdraw status per asset."""

    @abstractmethod
    def check_token_status(self, token: str) -> TokenStatus:
        """Status of ``token``; both flags false when unknown."""


class SupportsTokenContracts(ABC):
    """Venues that expose per-network token contract addresses."""

    @abstractmethod
    def get_networks(self, token: str) -> list[str]:
        """Networks with deposits enabled for ``token`` (empty on failure)."""

    @abstractmethod
    def get_token_contract(self, token: str, network: str) -> str | None:
        """Contract address of ``token`` on ``network`` if known."""
