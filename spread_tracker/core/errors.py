"""Error hierarchy shared by the tracker subsystems.

Centralizing exception types lets the tracking layer tell apart failures that
are absorbed at the aggregation boundary (a single venue probe failed) from
aggregate conditions that must reach the chat (no venue returned a price).
Submodules should raise the most specific error available.
"""
from __future__ import annotations

from typing import Mapping

from spread_tracker.core.enums import VenueId


class CoreError(Exception):
    """Base class for all custom exceptions in the application."""


class ConfigurationError(CoreError):
    """Raised when configuration files are missing or invalid."""


class MarketDataError(CoreError):
    """Raised for failures while fetching or parsing market data."""


class ProbeFailure(MarketDataError):
    """A single venue call (order book, funding, token check) failed.

    Raised by the aggregator around every adapter call and absorbed there:
    logged and excluded from the result. A failed first order-book request is
    cached as an unavailable market.
    """

    def __init__(self, venue: VenueId, message: str):
        super().__init__(message)
        self.venue = venue


class VenueTimeoutError(ProbeFailure):
    """A venue call did not complete within the per-call timeout.

    Never cached as an availability verdict.
    """


class InsufficientDataError(MarketDataError):
    """Raised when price analysis receives no quotes at all."""


class InsufficientLiquidityError(MarketDataError):
    """Fewer than two venues returned a usable order book."""

    def __init__(self, symbol: str, available: int, errors: Mapping[str, str]):
        details = ", ".join(f"{venue}: {error}" for venue, error in errors.items())
        super().__init__(
            f"Pair {symbol} is available only on {available} exchange(s). Errors: {details}"
        )
        self.symbol = symbol
        self.available = available
        self.errors = dict(errors)


class NoPricesAvailableError(MarketDataError):
    """No venue/market-kind combination produced a quote."""

    def __init__(self, symbol: str):
        super().__init__(f"No prices available for {symbol} on selected exchanges")
        self.symbol = symbol


class TrackingError(CoreError):
    """Raised by the tracking scheduler and registry."""


class CycleError(TrackingError):
    """Wraps any failure raised while running one tracker update cycle."""

    def __init__(self, symbol: str, cause: BaseException):
        super().__init__(str(cause) or cause.__class__.__name__)
        self.symbol = symbol
        self.cause = cause


class TransportError(CoreError):
    """Raised when a chat message cannot be delivered."""


class TelemetryError(CoreError):
    """Raised when the spread journal cannot be written."""
