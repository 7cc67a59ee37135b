"""
Base domain model classes for StudyForge.

Purpose
-------
Identity, pending-event bookkeeping and invariant checks shared by the
progression aggregate and its value objects.

Non-Responsibilities
--------------------
- Persistence (the record store)
- Publishing events (the service, after the change is saved)

Event Flow
----------
Aggregate methods call `add_domain_event()` while a transaction draft is
being mutated. The service saves the draft, then drains the events with
`clear_domain_events()` and publishes them in the order they were added.
A draft that fails to save is discarded along with its events.
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from typing import ClassVar, List, NoReturn, Optional


@dataclass(frozen=True)
class DomainEvent:
    """
    Base for immutable event variants.

    Subclasses set `event_name` ("forge.level_up", ...); the bus counts
    publishes under that name. Handlers dispatch on the concrete type.
    """

    event_name: ClassVar[str] = "forge.event"


class Entity(ABC):
    """Object with a stable id; equality and hashing follow the id only."""

    def __init__(self, entity_id: int) -> None:
        self._id = entity_id
        self._domain_events: List[DomainEvent] = []

    @property
    def id(self) -> int:
        return self._id

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Entity) and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def add_domain_event(self, event: DomainEvent) -> None:
        self._domain_events.append(event)

    def clear_domain_events(self) -> List[DomainEvent]:
        """Drain pending events, oldest first."""
        events, self._domain_events = self._domain_events, []
        return events

    def get_pending_events(self) -> List[DomainEvent]:
        return list(self._domain_events)


class AggregateRoot(Entity):
    """
    Consistency boundary. Every change to the aggregate goes through its
    methods so the invariants are checked in one place.
    """


# ============================================================================
# INVARIANT CHECKS
# ============================================================================


class DomainValidationError(Exception):
    """An aggregate or value object invariant was violated."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


def _reject(field_name: str, problem: str) -> NoReturn:
    raise DomainValidationError(f"{field_name} {problem}", field=field_name)


def validate_positive(value: int, field_name: str) -> None:
    if value <= 0:
        _reject(field_name, f"must be positive, got {value}")


def validate_non_negative(value: float, field_name: str) -> None:
    if value < 0:
        _reject(field_name, f"must be non-negative, got {value}")


def validate_range(value: int, min_val: int, max_val: int, field_name: str) -> None:
    """Inclusive on both ends."""
    if not min_val <= value <= max_val:
        _reject(field_name, f"must be between {min_val} and {max_val}, got {value}")


def validate_not_empty(value: str, field_name: str) -> None:
    if not value or not value.strip():
        _reject(field_name, "cannot be empty")
