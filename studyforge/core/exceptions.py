"""
Infrastructure exceptions for StudyForge.

Failures of the record store, the database lifecycle and configuration.
They share `StructuredError` with the domain hierarchy, so both log the
same `to_dict()` shape. `PersistenceError` is the one the engine lets
through its public operations; callers may retry it.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from studyforge.modules.shared.exceptions import (
    ErrorSeverity,
    StructuredError,
    get_error_severity,
)


def _describe(error: BaseException) -> Dict[str, Any]:
    return {"error": str(error), "error_type": type(error).__name__}


class StudyForgeInfrastructureException(StructuredError):
    """Something below the progression rules failed."""


class ConfigurationError(StudyForgeInfrastructureException):
    """A configuration key is missing or holds an unusable value."""

    SEVERITY = ErrorSeverity.CRITICAL
    CODE = "CONFIG_ERROR"

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            {"config_key": config_key, "message": message},
        )


class PersistenceError(StudyForgeInfrastructureException):
    """
    The progression record could not be loaded or saved.

    `operation` is "load" or "save"; the driver or ORM exception is kept
    as `original_error`. Nothing was committed, so the call can be retried.
    """

    RETRYABLE = True
    CODE = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, original_error: BaseException) -> None:
        self.operation = operation
        self.original_error = original_error
        super().__init__(
            f"Record store error during {operation}: {original_error}",
            {"operation": operation, **_describe(original_error)},
        )


class DatabaseInitializationError(StudyForgeInfrastructureException):
    SEVERITY = ErrorSeverity.CRITICAL
    CODE = "DATABASE_INIT_FAILED"

    def __init__(self, message: str, original_error: Optional[BaseException] = None) -> None:
        self.original_error = original_error
        super().__init__(message, _describe(original_error) if original_error else None)


class DatabaseNotInitializedError(StudyForgeInfrastructureException):
    """A session was requested before `DatabaseService.initialize()`."""

    SEVERITY = ErrorSeverity.CRITICAL
    CODE = "DATABASE_NOT_INITIALIZED"

    def __init__(self) -> None:
        super().__init__("DatabaseService not initialized. Call initialize() first.")


def is_transient_error(exc: BaseException) -> bool:
    return isinstance(exc, StudyForgeInfrastructureException) and exc.is_retryable


__all__ = [
    "ConfigurationError",
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
    "PersistenceError",
    "StudyForgeInfrastructureException",
    "get_error_severity",
    "is_transient_error",
]
