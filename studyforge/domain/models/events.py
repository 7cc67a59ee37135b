"""
Progression domain events.

Each variant is a frozen dataclass recorded on the ProgressionRecord while a
transaction mutates it, and published on the EventBus only after the new
state has been persisted.

Event names
-----------
- forge.experience_awarded
- forge.level_up
- forge.upgrade_purchased
- forge.mission_completed
- forge.settings_changed
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from studyforge.domain.models.base import DomainEvent

if TYPE_CHECKING:
    from studyforge.domain.models.progression import ForgeSettings


@dataclass(frozen=True)
class ExperienceAwarded(DomainEvent):
    """`requested` is the base amount passed in, `effective` what was credited."""

    event_name: ClassVar[str] = "forge.experience_awarded"

    requested: int
    effective: int
    reason: str


@dataclass(frozen=True)
class LevelUp(DomainEvent):
    event_name: ClassVar[str] = "forge.level_up"

    new_level: int
    total_experience: int


@dataclass(frozen=True)
class UpgradePurchased(DomainEvent):
    event_name: ClassVar[str] = "forge.upgrade_purchased"

    upgrade_id: str
    name: str


@dataclass(frozen=True)
class MissionCompleted(DomainEvent):
    event_name: ClassVar[str] = "forge.mission_completed"

    mission_id: str
    reward: int


@dataclass(frozen=True)
class SettingsChanged(DomainEvent):
    event_name: ClassVar[str] = "forge.settings_changed"

    settings: ForgeSettings
