"""
Error handling helpers for the StudyForge EventBus.

A failing listener is logged with its stack trace and counted, and never
affects the publisher or the remaining listeners.
"""

from __future__ import annotations

from logging import Logger
from typing import Optional

from studyforge.core.event.metrics import EventMetricsRecorder
from studyforge.core.event.types import EventListener


def handle_listener_error(
    *,
    logger: Logger,
    event_name: str,
    listener: EventListener,
    exc: Exception,
    metrics: Optional[EventMetricsRecorder],
) -> None:
    """
    Log a listener failure and update metrics. Never raises.

    Examples
    --------
    >>> try:
    ...     await listener.callback(event)
    ... except Exception as exc:
    ...     handle_listener_error(
    ...         logger=logger,
    ...         event_name="forge.level_up",
    ...         listener=listener,
    ...         exc=exc,
    ...         metrics=recorder,
    ...     )
    """
    if metrics is not None:
        metrics.record_error(event_name)

    logger.error(
        "EventBus listener error",
        extra={
            "event_name": event_name,
            "listener_id": listener.identifier,
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
        exc_info=True,
    )
