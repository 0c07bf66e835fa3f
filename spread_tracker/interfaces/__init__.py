"""External user interfaces package.

The Telegram front-end lives in :mod:`spread_tracker.interfaces.telegram_bot`
and is imported explicitly by the entry point.
"""

from .commands import CommandError, format_symbol
from .formatter import MessageFormatter

__all__ = ["CommandError", "MessageFormatter", "format_symbol"]
