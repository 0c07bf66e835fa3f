"""Tracking scheduler: tasks, throttle, trackers and their registry."""

from .manager import TrackingManager
from .models import TrackingTask
from .throttle import SpreadThrottle, ThrottleDecision
from .tracker import Tracker
from .transport import MessageTransport

__all__ = [
    "MessageTransport",
    "SpreadThrottle",
    "ThrottleDecision",
    "Tracker",
    "TrackingManager",
    "TrackingTask",
]
