"""
In-process async observer list for progression events.

The application context owns one bus; tests build their own. Every listener
receives every event, one listener at a time, in the order listeners were
registered, so a UI feed of level-ups sees them exactly as they happened.

- Sync and async callbacks are both accepted; awaitables are awaited before
  the next listener runs.
- A listener that raises is logged and counted, then delivery continues.
- Subscriptions made or dropped during delivery apply from the next publish.
- Nothing is queued or replayed for late subscribers.
- Counters are kept unless `core.event.metrics_enabled` is false.
"""

from __future__ import annotations

import inspect
from typing import Any, List, Optional

from studyforge.core.config.manager import ConfigManager
from studyforge.core.event.errors import handle_listener_error
from studyforge.core.event.metrics import EventMetrics, EventMetricsRecorder
from studyforge.core.event.types import (
    CallbackType,
    EventListener,
    Unsubscribe,
    event_name_of,
)
from studyforge.core.logging.logger import get_logger

logger = get_logger(__name__)


def _callback_name(callback: Any) -> str:
    return getattr(callback, "__qualname__", None) or getattr(callback, "__name__", repr(callback))


def _check_listener(callback: Any) -> None:
    """
    Raise ValueError unless `callback` can be called with just the event.

    Extra parameters are fine when they have defaults or are variadic.
    """
    if not callable(callback):
        raise ValueError(f"Event listener must be callable, got {callback!r}")

    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        # no introspectable signature (some builtins)
        return

    try:
        signature.bind(object())
    except TypeError as exc:
        raise ValueError(
            f"Event listener must take the event as its only required argument, "
            f"'{_callback_name(callback)}{signature}' does not ({exc})"
        ) from exc


class EventBus:
    """
    >>> bus = EventBus()
    >>> unsubscribe = bus.subscribe(on_level_up)
    >>> await bus.publish(LevelUp(new_level=2, total_experience=300))
    >>> unsubscribe()
    True
    """

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        metrics: Optional[EventMetricsRecorder] = None,
        *,
        enable_metrics: Optional[bool] = None,
    ) -> None:
        if enable_metrics is None and config_manager is not None:
            enable_metrics = config_manager.get_bool("core.event.metrics_enabled", True)

        self._listeners: List[EventListener] = []
        self._recorder = metrics or EventMetricsRecorder()
        self._metrics_enabled = True if enable_metrics is None else enable_metrics

        logger.debug("EventBus initialized", extra={"metrics_enabled": self._metrics_enabled})

    # ------------------------------------------------------------------ #
    # Subscriptions
    # ------------------------------------------------------------------ #

    def subscribe(self, callback: CallbackType, *, identifier: Optional[str] = None) -> Unsubscribe:
        """
        Register `callback` for every event on this bus.

        The returned handle removes the listener; it answers True the first
        time and False afterwards. Raises ValueError for a callback that is
        not callable or does not take exactly one argument.
        """
        _check_listener(callback)

        listener = EventListener.from_callback(callback, identifier)
        self._listeners.append(listener)
        self._recorder.adjust_listener_count(1)
        logger.debug("EventBus: subscribed listener", extra={"listener_id": listener.identifier})

        return lambda: self._remove(listener)

    def _remove(self, listener: EventListener) -> bool:
        # identity, not equality: the same callable may be registered twice
        remaining = [entry for entry in self._listeners if entry is not listener]
        if len(remaining) == len(self._listeners):
            return False

        self._listeners = remaining
        self._recorder.adjust_listener_count(-1)
        logger.debug("EventBus: unsubscribed listener", extra={"listener_id": listener.identifier})
        return True

    def clear(self) -> None:
        """Drop every listener (shutdown, tests)."""
        dropped = len(self._listeners)
        self._listeners = []
        self._recorder.reset_listener_count()
        logger.info("EventBus: cleared all listeners", extra={"previous_listener_count": dropped})

    def get_listener_count(self) -> int:
        return len(self._listeners)

    # ------------------------------------------------------------------ #
    # Delivery
    # ------------------------------------------------------------------ #

    async def publish(self, event: Any) -> None:
        """Deliver `event` to a snapshot of the current listeners. Never raises."""
        event_name = event_name_of(event)
        recorder = self._recorder if self._metrics_enabled else None
        if recorder is not None:
            recorder.record_publish(event_name)

        listeners = tuple(self._listeners)
        logger.debug(
            "EventBus: publishing event",
            extra={"event_name": event_name, "listener_count": len(listeners)},
        )

        for listener in listeners:
            try:
                outcome = listener.callback(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                handle_listener_error(
                    logger=logger,
                    event_name=event_name,
                    listener=listener,
                    exc=exc,
                    metrics=recorder,
                )

    # ------------------------------------------------------------------ #
    # Metrics
    # ------------------------------------------------------------------ #

    def get_metrics(self) -> Optional[EventMetrics]:
        """Frozen copy of the counters; None when metrics are disabled."""
        return self._recorder.snapshot() if self._metrics_enabled else None

    def get_metrics_summary(self) -> dict[str, Any]:
        metrics = self.get_metrics()
        return metrics.get_summary() if metrics is not None else {}
