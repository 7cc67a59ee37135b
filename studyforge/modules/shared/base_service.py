"""
Base Service Foundation

Purpose
-------
Provides the foundational class for StudyForge domain services. Services
implement business logic, enforce business rules, and emit domain events.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Event emission helpers
- Validation error wrapping

What this class does NOT do:
- Manage database transactions (that's the record store's job)
- Contain progression rules

Usage
-----
    class StudyForgeService(BaseService):
        def __init__(self, store, config_manager, event_bus, logger):
            super().__init__(config_manager, event_bus, logger)
            self._store = store
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

from studyforge.modules.shared.exceptions import ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from studyforge.core.config.manager import ConfigManager
    from studyforge.core.event.bus import EventBus


class BaseService:
    """
    Base class for all domain services.

    Args:
        config_manager: Tunable configuration
        event_bus: Event bus for state-change notifications
        logger: Structured logger instance
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger

    async def emit_events(self, events: Iterable[Any]) -> None:
        """Publish domain events in order on the service's bus."""
        for event in events:
            await self._events.publish(event)

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(
        self,
        operation: str,
        error: Exception,
        **context: Any,
    ) -> None:
        self.log.error(
            f"Service error during {operation}: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
        )

    def validate_positive_int(self, value: Any, name: str) -> None:
        """
        Raises:
            ValidationError: If value is not an int > 0 (bools are rejected)
        """
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValidationError(
                name, f"{name} must be a positive integer, got {value!r}"
            )

    def validate_identifier(self, value: Any, name: str) -> None:
        """
        Raises:
            ValidationError: If value is not a non-empty string
        """
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(name, f"{name} must be a non-empty string, got {value!r}")
