"""Logging and spread journal subsystem package."""
from .events import TelemetryEvent, pair_spread_event, spread_notified_event
from .logging_setup import JsonFormatter, configure_logging
from .storage import TelemetryStorage, default_storage

__all__ = [
    "JsonFormatter",
    "TelemetryEvent",
    "TelemetryStorage",
    "configure_logging",
    "default_storage",
    "pair_spread_event",
    "spread_notified_event",
]
