"""Notification hysteresis for ultra-mode tracking."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from spread_tracker.config.models import SpreadSettings

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ThrottleDecision:
    approved: bool
    current: float
    previous: float | None
    reason: str


class SpreadThrottle:
    """Decide whether a freshly computed spread is worth a notification.

    The baseline is the last spread that was actually delivered. The first
    evaluation always approves. Later evaluations approve only when the
    spread moved by at least ``min_change`` from the baseline and sits at or
    above ``max(min_value, min_spread_percent)``. :meth:`evaluate` never
    mutates; the caller moves the baseline with :meth:`commit` once the
    message is sent, so a slow drift below ``min_change`` per step never
    notifies and a failed send does not consume the move.
    """

    def __init__(self, settings: SpreadSettings, min_spread_percent: float) -> None:
        self._min_change = settings.min_change
        self._floor = max(settings.min_value, min_spread_percent)
        self._baseline: float | None = None

    @property
    def baseline(self) -> float | None:
        return self._baseline

    @property
    def floor(self) -> float:
        return self._floor

    def evaluate(self, spread: float) -> ThrottleDecision:
        previous = self._baseline
        if previous is None:
            return ThrottleDecision(True, spread, None, "first")

        change = abs(spread - previous)
        if change < self._min_change:
            decision = ThrottleDecision(False, spread, previous, "change_below_threshold")
        elif spread < self._floor:
            decision = ThrottleDecision(False, spread, previous, "spread_below_floor")
        else:
            decision = ThrottleDecision(True, spread, previous, "changed")

        LOGGER.debug(
            "Throttle %s",
            "approved" if decision.approved else "skipped",
            extra={
                "spread": spread,
                "baseline": previous,
                "spread_change": change,
                "min_change": self._min_change,
                "floor": self._floor,
                "reason": decision.reason,
            },
        )
        return decision

    def commit(self, spread: float) -> None:
        """Record ``spread`` as delivered."""

        self._baseline = spread


__all__ = ["SpreadThrottle", "ThrottleDecision"]
