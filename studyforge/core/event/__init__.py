"""
Event system for StudyForge.

Provides the instance-based EventBus through which the progression engine
announces state transitions. There is no global bus: the application
context owns one.
"""

from .bus import EventBus
from .metrics import EventMetrics, EventMetricsRecorder
from .types import CallbackType, EventListener, ForgeEvent, Unsubscribe

__all__ = [
    "EventBus",
    "EventMetrics",
    "EventMetricsRecorder",
    "EventListener",
    "CallbackType",
    "ForgeEvent",
    "Unsubscribe",
]
