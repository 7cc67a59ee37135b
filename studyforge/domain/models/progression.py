"""
Progression Domain Model for StudyForge.

Purpose
-------
Rich domain model for the single progression record: experience balances,
level, streak, idle accrual, daily missions, owned upgrades and themes,
settings and the recent-activity log.

This is separate from the database model (ProgressionRow), which is an
anemic schema. The record store converts between the two.

Responsibilities
----------------
- Keep `level` equal to `level_from_experience(total_experience)`
- Handle experience credit and level-up (log entry + LevelUp event)
- Maintain the streak, the mission list and the capped activity log
- Record domain events for the service to publish after persistence

Non-Responsibilities
--------------------
- Persistence (handled by the record store)
- Locking, precondition checks and event publishing (handled by the service)

Usage Example
-------------
>>> draft = record.clone()
>>> draft.credit_experience(150, now)
>>> await store.save(draft)
>>> for event in draft.clear_domain_events():
...     await event_bus.publish(event)
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, fields, replace
from datetime import date, datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from studyforge.domain.models.base import (
    AggregateRoot,
    DomainValidationError,
    validate_non_negative,
    validate_not_empty,
    validate_positive,
    validate_range,
)
from studyforge.domain.models.events import LevelUp
from studyforge.modules.shared.constants import (
    ACTIVITY_LOG_LIMIT,
    DEFAULT_THEME,
    MIN_LEVEL,
    PROGRESSION_RECORD_ID,
)
from studyforge.modules.shared.formulas import (
    calculate_level_progress,
    experience_for_level,
    level_from_experience,
)


# ============================================================================
# VALUE OBJECTS
# ============================================================================


@dataclass(frozen=True)
class ForgeSettings:
    """User-facing preferences stored on the record."""

    theme: str = DEFAULT_THEME
    auto_collect: bool = False
    sound_enabled: bool = True
    notifications_enabled: bool = True

    def merged(self, partial: Mapping[str, Any]) -> ForgeSettings:
        """
        Return new settings with `partial` shallow-merged in.

        Raises
        ------
        DomainValidationError
            On unknown keys or values of the wrong type
        """
        expected = {f.name: type(getattr(self, f.name)) for f in fields(self)}
        for key, value in partial.items():
            if key not in expected:
                raise DomainValidationError(f"Unknown setting: {key}", field=str(key))
            if type(value) is not expected[key]:
                raise DomainValidationError(
                    f"{key} must be {expected[key].__name__}, got {type(value).__name__}",
                    field=key,
                )
        return replace(self, **dict(partial))

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class Mission:
    """
    A daily mission instance. Template fields are copied from the mission
    pool at seed time; `progress` and `claimed` change during the day by
    producing new instances.
    """

    id: str
    title: str
    description: str
    target: int
    reward: int
    progress: int = 0
    claimed: bool = False

    def __post_init__(self) -> None:
        validate_not_empty(self.id, "id")
        validate_positive(self.target, "target")
        validate_positive(self.reward, "reward")
        validate_range(self.progress, 0, self.target, "progress")

    @property
    def is_complete(self) -> bool:
        return self.progress >= self.target

    def advance(self, amount: int) -> Mission:
        """New instance with progress increased by `amount`, capped at target."""
        validate_non_negative(amount, "amount")
        return replace(self, progress=min(self.target, self.progress + amount))

    def mark_claimed(self) -> Mission:
        return replace(self, claimed=True)


class ActivityKind(str, Enum):
    XP_EARNED = "xp_earned"
    LEVEL_UP = "level_up"
    UPGRADE_PURCHASED = "upgrade_purchased"
    MISSION_COMPLETED = "mission_completed"


@dataclass(frozen=True)
class ActivityLogEntry:
    timestamp: datetime
    kind: ActivityKind
    message: str
    experience: Optional[int] = None
    level: Optional[int] = None


@dataclass(frozen=True)
class ProgressionSnapshot:
    """
    Immutable copy of the record handed to readers.

    Collections are tuples or read-only mappings; nothing reachable from a
    snapshot aliases the live record.
    """

    total_experience: int
    available_experience: int
    level: int
    experience_for_next_level: int
    level_progress: float
    pending_idle_experience: float
    passive_experience_per_second: float
    last_active_at: datetime
    daily_streak: int
    last_streak_date: Optional[date]
    missions_seeded_on: date
    active_missions: Tuple[Mission, ...]
    owned_themes: Tuple[str, ...]
    owned_upgrades: Mapping[str, bool]
    settings: ForgeSettings
    activity_log: Tuple[ActivityLogEntry, ...]


# ============================================================================
# PROGRESSION AGGREGATE ROOT
# ============================================================================


class ProgressionRecord(AggregateRoot):
    """
    Progression aggregate root.

    Business Rules
    --------------
    - total_experience never decreases; available_experience never goes negative
    - level always equals level_from_experience(total_experience)
    - owned themes always include the default theme; upgrades are never revoked
    - the activity log is newest first and capped

    Domain Events
    -------------
    - LevelUp: recorded by every credit that crosses a level threshold.
      The service records the remaining variants.
    """

    def __init__(
        self,
        *,
        total_experience: int = 0,
        available_experience: int = 0,
        pending_idle_experience: float = 0.0,
        passive_experience_per_second: float = 0.0,
        last_active_at: datetime,
        daily_streak: int = 0,
        last_streak_date: Optional[date] = None,
        missions_seeded_on: date,
        active_missions: Sequence[Mission] = (),
        owned_themes: Sequence[str] = (DEFAULT_THEME,),
        owned_upgrades: Optional[Mapping[str, bool]] = None,
        settings: Optional[ForgeSettings] = None,
        activity_log: Sequence[ActivityLogEntry] = (),
        record_id: int = PROGRESSION_RECORD_ID,
    ) -> None:
        super().__init__(record_id)

        validate_non_negative(total_experience, "total_experience")
        validate_non_negative(available_experience, "available_experience")
        validate_non_negative(pending_idle_experience, "pending_idle_experience")
        validate_non_negative(passive_experience_per_second, "passive_experience_per_second")
        validate_non_negative(daily_streak, "daily_streak")

        self.total_experience = total_experience
        self.available_experience = available_experience
        self.pending_idle_experience = pending_idle_experience
        self.passive_experience_per_second = passive_experience_per_second
        self.last_active_at = last_active_at
        self.daily_streak = daily_streak
        self.last_streak_date = last_streak_date
        self.missions_seeded_on = missions_seeded_on
        self.active_missions: List[Mission] = list(active_missions)
        self.owned_themes: List[str] = list(dict.fromkeys([DEFAULT_THEME, *owned_themes]))
        self.owned_upgrades: Dict[str, bool] = dict(owned_upgrades or {})
        self.settings = settings or ForgeSettings()
        self.activity_log: List[ActivityLogEntry] = list(activity_log)

        self.level = MIN_LEVEL
        self.experience_for_next_level = experience_for_level(MIN_LEVEL + 1)
        self.level_progress = 0.0
        self.refresh_level()

    @classmethod
    def create_default(
        cls,
        now: datetime,
        missions: Sequence[Mission] = (),
    ) -> ProgressionRecord:
        """Fresh record: level 1, no experience, default theme and settings."""
        return cls(
            last_active_at=now,
            missions_seeded_on=now.date(),
            active_missions=missions,
        )

    def clone(self) -> ProgressionRecord:
        """Deep copy without pending domain events; used as a transaction draft."""
        draft = copy.deepcopy(self)
        draft.clear_domain_events()
        return draft

    # ========================================================================
    # LEVEL
    # ========================================================================

    def refresh_level(self) -> bool:
        """
        Re-derive level, next threshold and progress from total experience.

        Returns True when the cached level was stale.
        """
        derived = level_from_experience(self.total_experience)
        stale = derived != self.level
        self.level = derived
        self.experience_for_next_level = experience_for_level(derived + 1)
        self.level_progress = calculate_level_progress(
            self.total_experience, self.level, self.experience_for_next_level
        )
        return stale

    # ========================================================================
    # BUSINESS LOGIC - EXPERIENCE
    # ========================================================================

    def credit_experience(
        self,
        amount: int,
        now: datetime,
        *,
        log_limit: int = ACTIVITY_LOG_LIMIT,
    ) -> Optional[int]:
        """
        Add experience to both balances and run the level-up check.

        Returns the new level when a level-up happened, else None.
        """
        validate_non_negative(amount, "amount")

        old_level = self.level
        self.total_experience += amount
        self.available_experience += amount
        self.refresh_level()

        if self.level <= old_level:
            return None

        self.record_activity(
            ActivityLogEntry(
                timestamp=now,
                kind=ActivityKind.LEVEL_UP,
                message=f"Leveled up to {self.level}!",
                level=self.level,
            ),
            limit=log_limit,
        )
        self.add_domain_event(
            LevelUp(new_level=self.level, total_experience=self.total_experience)
        )
        return self.level

    def spend_experience(self, amount: int) -> None:
        """
        Raises
        ------
        DomainValidationError
            If available experience does not cover `amount`
        """
        validate_non_negative(amount, "amount")
        if self.available_experience < amount:
            raise DomainValidationError(
                f"Insufficient experience: have {self.available_experience}, need {amount}",
                field="available_experience",
            )
        self.available_experience -= amount

    def queue_idle_experience(self, amount: int) -> None:
        validate_non_negative(amount, "amount")
        self.pending_idle_experience += amount

    def take_pending_idle_experience(self) -> int:
        """Empty the idle queue and return its whole part."""
        amount = int(self.pending_idle_experience)
        self.pending_idle_experience = 0.0
        return amount

    def touch(self, now: datetime) -> None:
        self.last_active_at = now

    # ========================================================================
    # BUSINESS LOGIC - STREAK
    # ========================================================================

    def update_streak(self, today: date) -> bool:
        """
        Count consecutive active days.

        Same day: unchanged. Day after the last streak date: +1.
        Anything else: back to 1. Returns True when the streak changed.
        """
        if self.last_streak_date == today:
            return False

        if self.last_streak_date is not None and self.last_streak_date == today - timedelta(days=1):
            self.daily_streak += 1
        else:
            self.daily_streak = 1

        self.last_streak_date = today
        return True

    # ========================================================================
    # BUSINESS LOGIC - UPGRADES & THEMES
    # ========================================================================

    def owns_upgrade(self, upgrade_id: str) -> bool:
        return bool(self.owned_upgrades.get(upgrade_id))

    def grant_upgrade(self, upgrade_id: str) -> None:
        self.owned_upgrades[upgrade_id] = True

    def add_passive_rate(self, value: float) -> None:
        validate_non_negative(value, "value")
        self.passive_experience_per_second += value

    def unlock_theme(self, theme_id: str) -> None:
        validate_not_empty(theme_id, "theme_id")
        if theme_id not in self.owned_themes:
            self.owned_themes.append(theme_id)

    # ========================================================================
    # BUSINESS LOGIC - MISSIONS
    # ========================================================================

    def replace_missions(self, missions: Sequence[Mission], seeded_on: date) -> None:
        """Swap in a new day's missions wholesale; prior progress is discarded."""
        self.active_missions = list(missions)
        self.missions_seeded_on = seeded_on

    def find_mission(self, mission_id: str) -> Optional[Mission]:
        for mission in self.active_missions:
            if mission.id == mission_id:
                return mission
        return None

    def advance_mission(self, mission_id: str, amount: int) -> Optional[Mission]:
        """Advance an active, unclaimed mission. Returns the updated mission."""
        for index, mission in enumerate(self.active_missions):
            if mission.id == mission_id and not mission.claimed:
                updated = mission.advance(amount)
                self.active_missions[index] = updated
                return updated
        return None

    def mark_mission_claimed(self, mission_id: str) -> Mission:
        for index, mission in enumerate(self.active_missions):
            if mission.id == mission_id:
                claimed = mission.mark_claimed()
                self.active_missions[index] = claimed
                return claimed
        raise DomainValidationError(f"Mission not active: {mission_id}", field="mission_id")

    # ========================================================================
    # BUSINESS LOGIC - SETTINGS & LOG
    # ========================================================================

    def apply_settings(self, partial: Mapping[str, Any]) -> ForgeSettings:
        self.settings = self.settings.merged(partial)
        return self.settings

    def record_activity(self, entry: ActivityLogEntry, *, limit: int = ACTIVITY_LOG_LIMIT) -> None:
        """Prepend `entry`, keeping only the newest `limit` entries."""
        self.activity_log = [entry, *self.activity_log][:limit]

    # ========================================================================
    # READ MODEL
    # ========================================================================

    def to_snapshot(self) -> ProgressionSnapshot:
        return ProgressionSnapshot(
            total_experience=self.total_experience,
            available_experience=self.available_experience,
            level=self.level,
            experience_for_next_level=self.experience_for_next_level,
            level_progress=self.level_progress,
            pending_idle_experience=self.pending_idle_experience,
            passive_experience_per_second=self.passive_experience_per_second,
            last_active_at=self.last_active_at,
            daily_streak=self.daily_streak,
            last_streak_date=self.last_streak_date,
            missions_seeded_on=self.missions_seeded_on,
            active_missions=tuple(self.active_missions),
            owned_themes=tuple(self.owned_themes),
            owned_upgrades=MappingProxyType(dict(self.owned_upgrades)),
            settings=self.settings,
            activity_log=tuple(self.activity_log),
        )

    def __repr__(self) -> str:
        return (
            f"ProgressionRecord(level={self.level}, "
            f"total_experience={self.total_experience}, "
            f"available_experience={self.available_experience}, "
            f"daily_streak={self.daily_streak})"
        )
