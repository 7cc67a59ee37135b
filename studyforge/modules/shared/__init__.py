"""
StudyForge Shared Module

Purpose
-------
Domain-level foundations for the forge engine:
- Domain exceptions and error handling
- Progression constants, the upgrade catalog and the mission pool
- Pure calculation functions (level curve, multipliers, idle accrual)

Domain layer only: nothing here touches the database, the event bus or
logging configuration.

BaseService is imported from `studyforge.modules.shared.base_service`
directly.

Usage
-----
    from studyforge.modules.shared import (
        UPGRADES,
        ValidationError,
        compute_multipliers,
        experience_for_level,
    )
"""

from __future__ import annotations

# Domain exceptions
from .exceptions import (
    AlreadyOwnedError,
    ErrorSeverity,
    InsufficientExperienceError,
    MissionNotClaimableError,
    NotFoundError,
    PrerequisiteNotMetError,
    StructuredError,
    StudyForgeDomainException,
    ValidationError,
    get_error_severity,
)

# Domain constants
from .constants import (
    ACTIVITY_LOG_LIMIT,
    AUTO_COLLECT_UPGRADE_ID,
    BASE_MULTIPLIER,
    DAILY_MISSION_COUNT,
    DEFAULT_THEME,
    EARN_XP_MISSION_ID,
    MAX_IDLE_SECONDS,
    MIN_LEVEL,
    PROGRESSION_RECORD_ID,
    STREAK_BOOSTER_BONUS,
    STREAK_BOOSTER_THRESHOLD,
    STREAK_BOOSTER_UPGRADE_ID,
    XP_BASE,
    XP_EXPONENT,
)

# Catalog
from .catalog import (
    MISSION_POOL,
    UPGRADES,
    AutoCollectEffect,
    MissionTemplate,
    MultiplierEffect,
    PassiveRateEffect,
    ThemeUnlockEffect,
    UpgradeDefinition,
    UpgradeEffect,
    get_mission_template,
    get_upgrade,
)

# Formulas
from .formulas import (
    XPMultipliers,
    calculate_effective_experience,
    calculate_idle_experience,
    calculate_level_progress,
    compute_multipliers,
    experience_for_level,
    level_from_experience,
)

__all__ = [
    # Exceptions
    "StructuredError",
    "StudyForgeDomainException",
    "ErrorSeverity",
    "ValidationError",
    "NotFoundError",
    "InsufficientExperienceError",
    "PrerequisiteNotMetError",
    "AlreadyOwnedError",
    "MissionNotClaimableError",
    "get_error_severity",
    # Constants
    "PROGRESSION_RECORD_ID",
    "DEFAULT_THEME",
    "XP_BASE",
    "XP_EXPONENT",
    "MIN_LEVEL",
    "BASE_MULTIPLIER",
    "STREAK_BOOSTER_UPGRADE_ID",
    "STREAK_BOOSTER_THRESHOLD",
    "STREAK_BOOSTER_BONUS",
    "AUTO_COLLECT_UPGRADE_ID",
    "MAX_IDLE_SECONDS",
    "DAILY_MISSION_COUNT",
    "EARN_XP_MISSION_ID",
    "ACTIVITY_LOG_LIMIT",
    # Catalog
    "UPGRADES",
    "MISSION_POOL",
    "UpgradeDefinition",
    "UpgradeEffect",
    "MultiplierEffect",
    "PassiveRateEffect",
    "ThemeUnlockEffect",
    "AutoCollectEffect",
    "MissionTemplate",
    "get_upgrade",
    "get_mission_template",
    # Formulas
    "XPMultipliers",
    "experience_for_level",
    "level_from_experience",
    "compute_multipliers",
    "calculate_effective_experience",
    "calculate_level_progress",
    "calculate_idle_experience",
]
