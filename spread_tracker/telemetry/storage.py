"""Persistence of the spread journal."""
from __future__ import annotations

import json
import threading
from pathlib import Path

from spread_tracker.core.errors import TelemetryError
from spread_tracker.telemetry.events import TelemetryEvent


class TelemetryStorage:
    """Append telemetry events as JSON lines under ``journal_dir``.

    One instance is shared by every tracker, so writes are serialized by an
    internal lock.
    """

    def __init__(self, *, journal_dir: Path) -> None:
        self._journal_dir = journal_dir
        self._journal_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def journal_dir(self) -> Path:
        return self._journal_dir

    def append_event(self, event: TelemetryEvent) -> Path:
        """Append ``event`` to ``spreads_YYYYMMDD.jsonl``."""

        date_str = event.timestamp.strftime("%Y%m%d")
        path = self._journal_dir / f"spreads_{date_str}.jsonl"
        line = json.dumps(event.to_dict(), ensure_ascii=False)
        try:
            with self._lock, path.open("a", encoding="utf-8") as handle:
                handle.write(line)
                handle.write("\n")
        except OSError as exc:  # pragma: no cover - filesystem errors are rare
            raise TelemetryError(f"Failed to write telemetry event: {exc}") from exc
        return path


def default_storage(base_dir: Path) -> TelemetryStorage:
    """Factory returning a journal rooted under ``base_dir/journal``."""

    return TelemetryStorage(journal_dir=base_dir / "journal")


__all__ = ["TelemetryStorage", "default_storage"]
