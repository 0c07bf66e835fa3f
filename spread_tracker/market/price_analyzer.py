"""Best-price selection across venue quotes."""
from __future__ import annotations

from typing import Dict, List, Sequence

from spread_tracker.core.enums import VenueId
from spread_tracker.core.errors import InsufficientDataError
from spread_tracker.market.models import AggregatedView, VenueQuote, spread_percent

BEST_PRICE_TOLERANCE = 1e-6


class PriceAnalyzer:
    """Stateless: turns a quote list into an :class:`AggregatedView`."""

    @staticmethod
    def analyze(quotes: Sequence[VenueQuote]) -> AggregatedView:
        """Pick the highest bid and the lowest ask independently.

        Ties go to the quote seen first, i.e. the venue queried first. The
        spread may be negative when the market is inverted.
        """

        if not quotes:
            raise InsufficientDataError("Cannot analyze an empty quote list")
        best_bid = max(quotes, key=lambda quote: quote.bid)
        best_ask = min(quotes, key=lambda quote: quote.ask)
        grouped: Dict[VenueId, List[VenueQuote]] = {}
        for quote in quotes:
            grouped.setdefault(quote.venue, []).append(quote)
        return AggregatedView(
            best_bid=best_bid,
            best_ask=best_ask,
            spread_percent=spread_percent(best_bid.bid, best_ask.ask),
            quotes_by_venue=grouped,
        )

    @staticmethod
    def is_best_price(price: float, best_price: float) -> bool:
        """Cosmetic equality used to highlight the winning price."""

        return abs(price - best_price) < BEST_PRICE_TOLERANCE
