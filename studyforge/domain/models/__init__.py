"""
Domain models package for StudyForge.

Purpose
-------
Rich domain models with the progression rules: level derivation, streak
advancement, mission progress, the bounded activity log and the event
buffer. These models encapsulate rules, validation and state transitions.

Design Notes
------------
Domain models are separate from database models:
- Database models (studyforge/database/models/): Anemic SQLAlchemy schemas
- Domain models (studyforge/domain/models/): Rich objects with business logic

The record store converts between the two.

Base Classes
------------
- Entity: Objects with identity
- AggregateRoot: Consistency boundaries
- DomainEvent: State change notifications
"""

# Base domain model classes
from .base import (
    AggregateRoot,
    DomainEvent,
    DomainValidationError,
    Entity,
    validate_non_negative,
    validate_not_empty,
    validate_positive,
    validate_range,
)

# Domain events
from .events import (
    ExperienceAwarded,
    LevelUp,
    MissionCompleted,
    SettingsChanged,
    UpgradePurchased,
)

# Domain models
from .progression import (
    ActivityKind,
    ActivityLogEntry,
    ForgeSettings,
    Mission,
    ProgressionRecord,
    ProgressionSnapshot,
)

__all__ = [
    # Base classes
    "Entity",
    "AggregateRoot",
    "DomainEvent",
    "DomainValidationError",
    # Validators
    "validate_positive",
    "validate_non_negative",
    "validate_range",
    "validate_not_empty",
    # Events
    "ExperienceAwarded",
    "LevelUp",
    "UpgradePurchased",
    "MissionCompleted",
    "SettingsChanged",
    # Domain models
    "ProgressionRecord",
    "ProgressionSnapshot",
    "ForgeSettings",
    "Mission",
    "ActivityKind",
    "ActivityLogEntry",
]
