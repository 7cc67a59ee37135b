"""
Counters for the StudyForge EventBus.

`EventMetricsRecorder` is mutated by the bus as events go out;
`EventMetrics` is the frozen view handed to callers (health checks, tests).
Both live on the single asyncio loop that owns the bus.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class EventMetrics:
    """
    Point-in-time copy of the bus counters, keyed by event name.

    >>> EventMetrics({"forge.level_up": 4}, {"forge.level_up": 1}, 2).get_summary()["error_rate"]
    25.0
    """

    events_published: Dict[str, int] = field(default_factory=dict)
    listener_errors: Dict[str, int] = field(default_factory=dict)
    total_listeners: int = 0

    def get_summary(self) -> Dict[str, Any]:
        published = sum(self.events_published.values())
        failed = sum(self.listener_errors.values())
        return {
            "total_events_published": published,
            "events_by_type": dict(self.events_published),
            "total_errors": failed,
            "errors_by_event": dict(self.listener_errors),
            "total_listeners": self.total_listeners,
            "error_rate": round(100.0 * failed / published, 2) if published else 0.0,
        }


class EventMetricsRecorder:
    def __init__(self) -> None:
        self._published: Counter[str] = Counter()
        self._errors: Counter[str] = Counter()
        self._listeners = 0

    @property
    def total_listeners(self) -> int:
        return self._listeners

    def record_publish(self, event_name: str) -> None:
        self._published[event_name] += 1

    def record_error(self, event_name: str) -> None:
        self._errors[event_name] += 1

    def adjust_listener_count(self, delta: int) -> None:
        self._listeners = max(0, self._listeners + delta)

    def reset_listener_count(self) -> None:
        self._listeners = 0

    def snapshot(self) -> EventMetrics:
        return EventMetrics(
            events_published=dict(self._published),
            listener_errors=dict(self._errors),
            total_listeners=self._listeners,
        )
