"""Chat command logic, independent of the Telegram transport.

Each method takes the chat id and the command arguments and returns the
reply text (``None`` when the tracker itself already answered). Methods
block on venue calls and tracker start/stop, so the bot runs them in a
worker thread.
"""
from __future__ import annotations

import logging
from html import escape
from typing import List, Sequence, Tuple

from spread_tracker.config.models import TrackerSettings
from spread_tracker.core.enums import VenueId
from spread_tracker.core.errors import CoreError
from spread_tracker.interfaces.commands import (
    CommandError,
    format_symbol,
    parse_pair_callback,
    parse_stop_link_args,
    parse_track_args,
    parse_track_link_args,
    parse_track_pair_args,
)
from spread_tracker.interfaces.formatter import MessageFormatter
from spread_tracker.market.models import AggregatedView
from spread_tracker.market.price_analyzer import PriceAnalyzer
from spread_tracker.tracking.manager import TrackingManager
from spread_tracker.tracking.models import TrackingTask

LOGGER = logging.getLogger(__name__)

# Regular tracking started from a link pair reacts to smaller moves.
PAIR_MIN_CHANGE = 0.1


class CommandService:
    def __init__(
        self,
        manager: TrackingManager,
        settings: TrackerSettings,
        *,
        formatter: MessageFormatter | None = None,
        analyzer: PriceAnalyzer | None = None,
    ) -> None:
        self._manager = manager
        self._aggregator = manager.aggregator
        self._settings = settings
        self._formatter = formatter or MessageFormatter()
        self._analyzer = analyzer or PriceAnalyzer()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _enabled(self, venues: Sequence[VenueId]) -> Tuple[VenueId, ...]:
        """Keep the requested venues that have a configured adapter."""

        available = set(self._aggregator.venue_ids())
        enabled = tuple(venue for venue in venues if venue in available)
        if not enabled:
            raise CommandError("None of the selected exchanges is enabled")
        return enabled

    def _start(self, task: TrackingTask) -> str | None:
        try:
            self._manager.start_tracking(task)
        except CoreError as exc:
            return f"Failed to start tracking: {escape(str(exc))}"
        return None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def start(self) -> str:
        return self._formatter.start_message()

    def help(self) -> str:
        return self._formatter.help_message(self._settings.spread.min_change)

    def track(self, chat_id: int, args: Sequence[str]) -> str | None:
        """``/track``: ultra mode over the selected (default: all enabled) venues."""

        if not args:
            return self._formatter.track_usage()
        try:
            request = parse_track_args(
                args,
                default_venues=self._aggregator.venue_ids(),
                default_min_spread=self._settings.default_min_spread_percent,
            )
            venues = self._enabled(request.venues)
        except CommandError as exc:
            return str(exc)
        LOGGER.info(
            "New tracking request",
            extra={"chat_id": chat_id, "symbol": request.symbol, "params": " ".join(args[1:])},
        )
        task = TrackingTask(
            chat_id=chat_id,
            symbol=request.symbol,
            venues=venues,
            min_spread_percent=request.min_spread,
            ultra=True,
            min_change=self._settings.spread.min_change,
        )
        return self._start(task)

    def stop(self, chat_id: int, args: Sequence[str]) -> str:
        if not args:
            return "Please specify the symbol to stop tracking.\nExample: /stop BTC/USDT"
        if not self._manager.has_tracking(chat_id):
            return self._formatter.no_active_tracking()
        symbol = format_symbol(args[0])
        stopped = self._manager.stop_symbol(chat_id, symbol)
        if not stopped:
            return self._formatter.tracking_not_found(symbol)
        LOGGER.info("Tracking stopped", extra={"chat_id": chat_id, "symbol": symbol, "keys": stopped})
        return self._formatter.tracking_stopped(symbol)

    def stop_all(self, chat_id: int) -> str:
        if not self._manager.has_tracking(chat_id):
            return self._formatter.no_active_tracking()
        self._manager.stop_all_tracking(chat_id)
        return self._formatter.all_tracking_stopped()

    def list_tracking(self, chat_id: int) -> str:
        """``/list``: a fresh spread for every tracked pair."""

        tasks = self._manager.list_tasks(chat_id)
        if not tasks:
            return self._formatter.no_active_tracking()
        entries: List[Tuple[TrackingTask, AggregatedView | None]] = []
        for task in tasks:
            try:
                quotes = self._aggregator.get_all_prices(task.symbol, task.selected_venues)
                entries.append((task, self._analyzer.analyze(quotes)))
            except CoreError as exc:
                LOGGER.debug("List spread unavailable for %s: %s", task.symbol, exc)
                entries.append((task, None))
        return self._formatter.tracking_list(entries)

    def contracts(self, args: Sequence[str]) -> str:
        if not args:
            return "Please specify a token, e.g. /contracts USDT"
        token = args[0].upper()
        return self._formatter.contracts(token, self._aggregator.get_token_contracts(token))

    def track_link(self, chat_id: int, args: Sequence[str]) -> str | None:
        """``/track_link``: ultra mode for the linked pair, linked venue first.

        A spread needs two venues, so the linked venue is compared against
        every other enabled venue.
        """

        try:
            request = parse_track_link_args(args)
            link = request.link
            others = tuple(venue for venue in self._aggregator.venue_ids() if venue != link.venue)
            venues = self._enabled((link.venue,) + others)
        except CommandError as exc:
            return str(exc)
        task = TrackingTask(
            chat_id=chat_id,
            symbol=link.symbol,
            market1_kind=link.kind,
            market2_kind=link.kind,
            venues=venues,
            min_spread_percent=request.min_spread,
            ultra=True,
            min_change=self._settings.spread.min_change,
        )
        failure = self._start(task)
        if failure:
            return failure
        return (
            f"✅ Tracking {escape(link.symbol)} from {link.venue.value}\n"
            f"Market type: {link.kind.value}\n"
            f"Minimum spread: {request.min_spread:g}%"
        )

    def stop_link(self, chat_id: int, args: Sequence[str]) -> str:
        try:
            link = parse_stop_link_args(args)
        except CommandError as exc:
            return str(exc)
        if not self._manager.stop_symbol(chat_id, link.symbol):
            return self._formatter.tracking_not_found(link.symbol)
        return self._formatter.tracking_stopped(link.symbol)

    def track_pair(self, chat_id: int, args: Sequence[str]) -> str | None:
        """``/track_pair``: regular mode between the two linked markets."""

        try:
            request = parse_track_pair_args(args)
            venues = self._enabled((request.first.venue, request.second.venue))
            if len(set(venues)) < 2:
                raise CommandError("Both exchanges must be enabled and different")
        except CommandError as exc:
            return str(exc)
        first, second = request.first, request.second
        task = TrackingTask(
            chat_id=chat_id,
            symbol=first.symbol,
            market1_kind=first.kind,
            market2_kind=second.kind,
            venues=venues,
            min_spread_percent=request.min_spread,
            max_spread_percent=request.max_spread,
            ultra=False,
            min_change=PAIR_MIN_CHANGE,
        )
        failure = self._start(task)
        if failure:
            return failure
        return (
            f"✅ Tracking {escape(first.symbol)}\n"
            f"{first.venue.value}({first.kind.value}) ↔️ {second.venue.value}({second.kind.value})\n"
            f"Spread range: {request.min_spread:g}% - {request.max_spread:g}%"
        )

    def track_popular_pair(self, chat_id: int, callback_data: str) -> str | None:
        """Inline-keyboard callback from ``/pairs``: regular mode over all enabled venues."""

        parsed = parse_pair_callback(callback_data)
        if parsed is None:
            return "Unknown selection"
        symbol, kind1, kind2 = parsed
        task = TrackingTask(
            chat_id=chat_id,
            symbol=symbol,
            market1_kind=kind1,
            market2_kind=kind2,
            venues=tuple(self._aggregator.venue_ids()),
            min_spread_percent=self._settings.default_min_spread_percent,
            ultra=False,
            min_change=self._settings.spread.min_change,
        )
        return self._start(task)


__all__ = ["CommandService", "PAIR_MIN_CHANGE"]
