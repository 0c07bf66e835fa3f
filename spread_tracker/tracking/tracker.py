"""Polling lifecycle of a single tracking task."""
from __future__ import annotations

import logging
import threading
from typing import Callable

from spread_tracker.config.models import TrackerSettings
from spread_tracker.core.enums import TrackerState
from spread_tracker.core.errors import CycleError, MarketDataError, TrackingError
from spread_tracker.interfaces.formatter import MessageFormatter
from spread_tracker.market.aggregator import MarketAggregator
from spread_tracker.market.models import SpreadData
from spread_tracker.market.price_analyzer import PriceAnalyzer
from spread_tracker.telemetry.events import TelemetryEvent, pair_spread_event, spread_notified_event
from spread_tracker.telemetry.storage import TelemetryStorage
from spread_tracker.tracking.models import TrackingTask
from spread_tracker.tracking.throttle import SpreadThrottle
from spread_tracker.tracking.transport import MessageTransport

LOGGER = logging.getLogger(__name__)

ErrorCallback = Callable[[CycleError], None]


class Tracker:
    """Run update cycles for one :class:`TrackingTask` on a worker thread.

    Lifecycle is ``STARTING -> POLLING -> STOPPED``. Every outbound message,
    notifications and error reports alike, goes through :meth:`_deliver` or
    :meth:`_report`, which check the stop flag while holding the delivery
    lock. :meth:`stop` sets that flag under the same lock, so once it returns
    nothing from an in-flight cycle can reach the chat.
    """

    def __init__(
        self,
        task: TrackingTask,
        *,
        aggregator: MarketAggregator,
        transport: MessageTransport,
        settings: TrackerSettings,
        analyzer: PriceAnalyzer | None = None,
        formatter: MessageFormatter | None = None,
        on_error: ErrorCallback | None = None,
        journal: TelemetryStorage | None = None,
        join_timeout: float | None = None,
    ) -> None:
        self.task = task
        self._aggregator = aggregator
        self._transport = transport
        self._analyzer = analyzer or PriceAnalyzer()
        self._formatter = formatter or MessageFormatter()
        self._on_error = on_error
        self._journal = journal
        self._interval = settings.update_interval_sec
        self._join_timeout = join_timeout if join_timeout is not None else settings.venue_timeout_sec
        self._throttle = SpreadThrottle(settings.spread, task.min_spread_percent)
        self._last_pair_spread: SpreadData | None = None
        self._state = TrackerState.STARTING
        self._stop_event = threading.Event()
        self._delivery_lock = threading.RLock()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def tracking_key(self) -> str:
        return self.task.tracking_key

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def last_max_spread(self) -> float | None:
        return self._throttle.baseline

    @property
    def last_pair_spread(self) -> SpreadData | None:
        return self._last_pair_spread

    @property
    def is_running(self) -> bool:
        return self._state is TrackerState.POLLING and not self._stop_event.is_set()

    def _log_extra(self) -> dict:
        return {"chat_id": self.task.chat_id, "tracking_key": self.tracking_key}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Announce the task, run the first cycle inline, then start polling.

        A failed announcement propagates to the caller; a failed first cycle
        is reported like any other cycle failure.
        """

        if self._state is not TrackerState.STARTING:
            raise TrackingError(f"Tracker {self.tracking_key} cannot be started twice")

        LOGGER.info("Starting tracker", extra=self._log_extra())
        venues = self.task.selected_venues or self._aggregator.venue_ids()
        self._deliver(self._formatter.tracking_started(self.task, venues))
        self._run_guarded()

        with self._delivery_lock:
            if self._stop_event.is_set():
                return
            self._thread = threading.Thread(
                target=self._poll_loop,
                name=f"tracker-{self.task.chat_id}-{self.tracking_key}",
                daemon=True,
            )
            self._state = TrackerState.POLLING
            self._thread.start()
        LOGGER.debug("Tracker polling every %.1fs", self._interval, extra=self._log_extra())

    def stop(self) -> None:
        """Stop polling and wait for the worker to finish its current cycle."""

        with self._delivery_lock:
            already_stopped = self._stop_event.is_set()
            self._stop_event.set()
            self._state = TrackerState.STOPPED
        if already_stopped:
            return

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._join_timeout)
            if thread.is_alive():
                LOGGER.warning(
                    "Tracker worker still busy after stop; its results will be dropped",
                    extra=self._log_extra(),
                )
        LOGGER.info("Tracker stopped", extra=self._log_extra())

    def _poll_loop(self) -> None:
        while not self._stop_event.wait(self._interval):
            self._run_guarded()

    def _run_guarded(self) -> None:
        if self._stop_event.is_set():
            return
        try:
            self.run_cycle()
        except Exception as exc:
            error = CycleError(self.task.symbol, exc)
            LOGGER.error(
                "Tracker cycle failed: %s",
                error,
                extra=self._log_extra(),
                exc_info=None if isinstance(exc, MarketDataError) else exc,
            )
            self._report(error)

    # ------------------------------------------------------------------
    # Update cycles
    # ------------------------------------------------------------------
    def run_cycle(self) -> bool:
        """Run one update; returns True when a notification was delivered."""

        if self.task.ultra:
            return self._ultra_update()
        return self._regular_update()

    def _ultra_update(self) -> bool:
        quotes = self._aggregator.get_all_prices(self.task.symbol, self.task.selected_venues)
        view = self._analyzer.analyze(quotes)
        decision = self._throttle.evaluate(view.spread_percent)
        if not decision.approved:
            return False
        text = self._formatter.ultra_update(view, decision.previous)
        if not self._deliver(text):
            return False
        self._throttle.commit(decision.current)
        self._journal_event(spread_notified_event(self.task.chat_id, self.tracking_key, view))
        return True

    def _regular_update(self) -> bool:
        spread = self._aggregator.calculate_spread(
            self.task.symbol,
            self.task.market1_kind,
            self.task.market2_kind,
            self.task.selected_venues,
        )
        if not self.task.in_range(spread.spread_percent):
            LOGGER.debug(
                "Spread %.4f%% outside tracking range",
                spread.spread_percent,
                extra=self._log_extra(),
            )
            return False
        previous = self._last_pair_spread
        if previous is not None and abs(spread.spread_percent - previous.spread_percent) < self.task.min_change:
            return False
        if not self._deliver(self._formatter.pair_spread(spread, previous)):
            return False
        self._last_pair_spread = spread
        self._journal_event(pair_spread_event(self.task.chat_id, self.tracking_key, spread))
        return True

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------
    def _deliver(self, text: str) -> bool:
        with self._delivery_lock:
            if self._stop_event.is_set():
                LOGGER.debug("Dropping message for stopped tracker", extra=self._log_extra())
                return False
            self._transport.send_message(self.task.chat_id, text)
            return True

    def _report(self, error: CycleError) -> None:
        if self._on_error is None:
            return
        with self._delivery_lock:
            if self._stop_event.is_set():
                return
            try:
                self._on_error(error)
            except Exception:
                LOGGER.exception("Error callback failed", extra=self._log_extra())

    def _journal_event(self, event: TelemetryEvent) -> None:
        if self._journal is None:
            return
        try:
            self._journal.append_event(event)
        except Exception as exc:  # pragma: no cover - filesystem errors are rare
            LOGGER.warning("Failed to journal spread: %s", exc, extra=self._log_extra())


__all__ = ["ErrorCallback", "Tracker"]
