"""
Domain exceptions for StudyForge.

Purpose
-------
Exceptions for the progression rules: bad arguments, unknown catalog
entries, insufficient experience, unmet prerequisites and missions that
cannot be claimed.

Purchases and claims report a plain `False` / `0` to their callers. The
service raises these internally, logs `to_dict()` and translates them at
the boundary. `ValidationError` is the exception that reaches the caller.

Design Notes
------------
- `StructuredError` is shared with the infrastructure hierarchy in
  `studyforge.core.exceptions`; it owns message, details, severity,
  retryability and a stable `error_code`.
- Subclasses only describe themselves: a class-level `SEVERITY`, an
  optional fixed `CODE`, and the details they were raised with.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, Dict, Optional


class ErrorSeverity(Enum):
    """How loudly an error should be logged."""

    DEBUG = "debug"  # expected
    INFO = "info"  # rejected request
    WARNING = "warning"
    ERROR = "error"  # needs attention
    CRITICAL = "critical"  # engine cannot run


class StructuredError(Exception):
    """
    Exception with a code, a severity and a details mapping.

    >>> err = StructuredError("Purchase failed", {"upgrade_id": "small_furnace"})
    >>> err.to_dict()["details"]
    {'upgrade_id': 'small_furnace'}
    """

    SEVERITY: ClassVar[ErrorSeverity] = ErrorSeverity.ERROR
    RETRYABLE: ClassVar[bool] = False
    CODE: ClassVar[Optional[str]] = None

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        *,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details) if details else {}
        self.severity = severity if severity is not None else self.SEVERITY
        self.is_retryable = self.RETRYABLE if is_retryable is None else is_retryable
        self.error_code = error_code or self.CODE or type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        if not self.details:
            return f"[{self.error_code}] {self.message}"
        return f"[{self.error_code}] {self.message} | Details: {self.details}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, details={self.details!r})"


class StudyForgeDomainException(StructuredError):
    """A progression rule refused the request."""

    SEVERITY = ErrorSeverity.INFO


class ValidationError(StudyForgeDomainException):
    """A caller-supplied argument is malformed (wrong type, negative, empty)."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            {"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )


class NotFoundError(StudyForgeDomainException):
    """
    No catalog entry or mission with that identifier.

    `resource_type` is "Upgrade", "Theme" or "Mission"; it also names the
    error code ("UPGRADE_NOT_FOUND", ...).
    """

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier
        suffix = "" if identifier is None else f": {identifier}"
        super().__init__(
            f"{resource_type} not found{suffix}",
            {"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class InsufficientExperienceError(StudyForgeDomainException):
    CODE = "INSUFFICIENT_EXPERIENCE"

    def __init__(self, required: int, current: int) -> None:
        self.required = required
        self.current = current
        super().__init__(
            f"Insufficient experience: need {required:,}, have {current:,}",
            {"required": required, "current": current, "deficit": required - current},
        )


class PrerequisiteNotMetError(StudyForgeDomainException):
    """The upgrade needs another upgrade that is not owned yet."""

    CODE = "PREREQUISITE_NOT_MET"

    def __init__(self, upgrade_id: str, missing: str) -> None:
        self.upgrade_id = upgrade_id
        self.missing = missing
        super().__init__(
            f"Upgrade {upgrade_id} requires {missing}",
            {"upgrade_id": upgrade_id, "missing": missing},
        )


class AlreadyOwnedError(StudyForgeDomainException):
    SEVERITY = ErrorSeverity.DEBUG
    CODE = "ALREADY_OWNED"

    def __init__(self, upgrade_id: str) -> None:
        self.upgrade_id = upgrade_id
        super().__init__(f"Upgrade already owned: {upgrade_id}", {"upgrade_id": upgrade_id})


class MissionNotClaimableError(StudyForgeDomainException):
    """`reason` is "claimed" or "incomplete"."""

    CODE = "MISSION_NOT_CLAIMABLE"

    def __init__(self, mission_id: str, reason: str) -> None:
        self.mission_id = mission_id
        self.reason = reason
        super().__init__(
            f"Mission {mission_id} cannot be claimed: {reason}",
            {"mission_id": mission_id, "reason": reason},
        )


def get_error_severity(exc: BaseException) -> ErrorSeverity:
    """Severity of a StudyForge exception; ERROR for anything else."""
    if isinstance(exc, StructuredError):
        return exc.severity
    return ErrorSeverity.ERROR
