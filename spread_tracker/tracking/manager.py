"""Registry of live trackers keyed by chat and tracking key."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List

from spread_tracker.config.models import TrackerSettings
from spread_tracker.core.errors import CycleError
from spread_tracker.interfaces.formatter import MessageFormatter
from spread_tracker.market.aggregator import MarketAggregator
from spread_tracker.market.price_analyzer import PriceAnalyzer
from spread_tracker.telemetry.storage import TelemetryStorage
from spread_tracker.tracking.models import TrackingTask
from spread_tracker.tracking.tracker import Tracker
from spread_tracker.tracking.transport import MessageTransport

LOGGER = logging.getLogger(__name__)

TrackerFactory = Callable[..., Tracker]


class TrackingManager:
    """Own every live :class:`Tracker` and route their errors to chats.

    The registry maps chat id -> tracking key -> tracker and is guarded by a
    lock. Starting and stopping trackers (network calls, thread joins) runs
    outside that lock. A key maps to at most one live tracker: starting a key
    that is already tracked stops the old tracker and replaces it.
    """

    def __init__(
        self,
        aggregator: MarketAggregator,
        transport: MessageTransport,
        settings: TrackerSettings,
        *,
        analyzer: PriceAnalyzer | None = None,
        formatter: MessageFormatter | None = None,
        journal: TelemetryStorage | None = None,
        join_timeout: float | None = None,
        tracker_factory: TrackerFactory = Tracker,
    ) -> None:
        self._aggregator = aggregator
        self._transport = transport
        self._settings = settings
        self._analyzer = analyzer or PriceAnalyzer()
        self._formatter = formatter or MessageFormatter()
        self._journal = journal
        self._join_timeout = join_timeout
        self._tracker_factory = tracker_factory
        self._trackers: Dict[int, Dict[str, Tracker]] = {}
        self._lock = threading.Lock()

    @property
    def aggregator(self) -> MarketAggregator:
        return self._aggregator

    # ------------------------------------------------------------------
    # Start / stop
    # ------------------------------------------------------------------
    def start_tracking(self, task: TrackingTask) -> str:
        """Start ``task`` and register it; returns its tracking key.

        Setup failures (the announcement could not be sent) propagate and
        leave nothing registered.
        """

        key = task.tracking_key
        LOGGER.debug("start_tracking called", extra={"chat_id": task.chat_id, "tracking_key": key})
        tracker = self._tracker_factory(
            task,
            aggregator=self._aggregator,
            transport=self._transport,
            settings=self._settings,
            analyzer=self._analyzer,
            formatter=self._formatter,
            on_error=lambda error: self._handle_tracking_error(task, error),
            journal=self._journal,
            join_timeout=self._join_timeout,
        )

        with self._lock:
            previous = self._trackers.get(task.chat_id, {}).pop(key, None)
        if previous is not None:
            LOGGER.info("Replacing existing tracker", extra={"chat_id": task.chat_id, "tracking_key": key})
            previous.stop()

        try:
            tracker.start()
        except Exception:
            tracker.stop()
            LOGGER.exception("Failed to start tracking", extra={"chat_id": task.chat_id, "tracking_key": key})
            raise

        with self._lock:
            chat_trackers = self._trackers.setdefault(task.chat_id, {})
            displaced = chat_trackers.get(key)
            chat_trackers[key] = tracker
        if displaced is not None and displaced is not tracker:
            displaced.stop()

        LOGGER.info(
            "Tracking started",
            extra={
                "chat_id": task.chat_id,
                "tracking_key": key,
                "venues": [venue.value for venue in task.venues],
                "min_spread": task.min_spread_percent,
            },
        )
        self.save_state()
        return key

    def stop_tracking(self, chat_id: int, tracking_key: str) -> bool:
        with self._lock:
            chat_trackers = self._trackers.get(chat_id)
            if not chat_trackers:
                return False
            tracker = chat_trackers.pop(tracking_key, None)
            if not chat_trackers:
                del self._trackers[chat_id]
        if tracker is None:
            return False
        tracker.stop()
        self.save_state()
        return True

    def stop_symbol(self, chat_id: int, symbol: str) -> List[str]:
        """Stop every task of ``chat_id`` tracking ``symbol``; returns the stopped keys."""

        prefix = f"{symbol}_"
        with self._lock:
            keys = [key for key in self._trackers.get(chat_id, {}) if key.startswith(prefix)]
        return [key for key in keys if self.stop_tracking(chat_id, key)]

    def stop_all_tracking(self, chat_id: int) -> int:
        with self._lock:
            chat_trackers = self._trackers.pop(chat_id, {})
        for tracker in chat_trackers.values():
            tracker.stop()
        if chat_trackers:
            self.save_state()
        return len(chat_trackers)

    def shutdown(self) -> int:
        """Stop every tracker of every chat; returns how many were stopped."""

        with self._lock:
            registry, self._trackers = self._trackers, {}
        stopped = 0
        for chat_trackers in registry.values():
            for tracker in chat_trackers.values():
                tracker.stop()
                stopped += 1
        LOGGER.info("All trackers stopped", extra={"stopped": stopped})
        return stopped

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def list_tasks(self, chat_id: int) -> List[TrackingTask]:
        with self._lock:
            return [tracker.task for tracker in self._trackers.get(chat_id, {}).values()]

    def get_tracker(self, chat_id: int, tracking_key: str) -> Tracker | None:
        with self._lock:
            return self._trackers.get(chat_id, {}).get(tracking_key)

    def active_chat_ids(self) -> List[int]:
        with self._lock:
            return [chat_id for chat_id, trackers in self._trackers.items() if trackers]

    def has_tracking(self, chat_id: int) -> bool:
        with self._lock:
            return bool(self._trackers.get(chat_id))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _handle_tracking_error(self, task: TrackingTask, error: CycleError) -> None:
        try:
            self._transport.send_message(task.chat_id, self._formatter.error(task.symbol, str(error)))
        except Exception as exc:
            LOGGER.warning(
                "Failed to deliver tracking error: %s",
                exc,
                extra={"chat_id": task.chat_id, "tracking_key": task.tracking_key},
            )

    def save_state(self) -> None:
        """Persistence hook; tracking state lives in memory only."""


__all__ = ["TrackingManager"]
